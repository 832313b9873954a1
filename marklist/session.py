"""Scan session: OCR text in, tabulated table, reconciliation against the model.

`ScanSession` strings the collaborators and the pure pipeline together the
way the panel uses them:

    session = ScanSession(text_source=ocr, entity_source=viewer)
    tabulated = await session.scan(image_bytes, "image/jpeg", target_columns=["Component", "Pcs"])
    table = tabulated.table.with_roles(qty_key="Pcs")
    result = await session.search_model(table)
    print(result.summary.message)

Each step logs a one-line status. OCR failures propagate to the caller;
the advisory OCR review and model lookup failures degrade to an empty
review and fewer (or no) entities.
"""

from typing import Sequence

from marklist.config import MarkListConfig
from marklist.logging import setup_logging
from marklist.reconcile import ReconcileResult
from marklist.row import ModelEntity
from marklist.sources import EntitySourceInterface, TextSourceInterface, collect_entities, strip_code_fences
from marklist.table import MarkTable
from marklist.tabulator import TabulationResult, TabulationStatus, tabulate


class ScanSession:
    """Runs the scan-to-reconciliation flow against pluggable collaborators.

    Attributes:
        config: Tabulator and model settings.
        text_source: OCR service, required only for `scan`.
        entity_source: Host model lookup, required only for `search_model`.
        entities: Entities collected by the last `search_model` call.
    """

    def __init__(
        self,
        config: MarkListConfig | None = None,
        text_source: TextSourceInterface | None = None,
        entity_source: EntitySourceInterface | None = None,
    ):
        self.config = config or MarkListConfig()
        self.text_source = text_source
        self.entity_source = entity_source
        self.entities: list[ModelEntity] = []
        self.logger = setup_logging(name=__name__)

    def tabulate_text(self, text: str) -> TabulationResult:
        result = tabulate(text, self.config.tabulator)
        if result.status is TabulationStatus.EMPTY_INPUT:
            self.logger.warning("No text to tabulate")
            return result
        self.logger.info(
            {
                "message": f"Table ready: {len(result.rows)} rows",
                "skipped": result.skipped_count,
                "unreadable": result.unreadable_count,
                "scanned_lines": result.scanned_lines,
            },
            pprint=True,
        )
        if not result.roles.resolved:
            self.logger.warning("Could not guess the mark and quantity columns; assign them manually")
        return result

    async def scan(
        self,
        content: bytes,
        content_type: str,
        target_columns: Sequence[str] = (),
    ) -> TabulationResult:
        """Run OCR on an image or document and tabulate the text.

        ``target_columns`` limits and orders the columns the OCR service
        extracts. A Markdown code fence around the answer is removed before
        tabulating.
        """
        if self.text_source is None:
            raise RuntimeError("no text source configured")
        text = await self.text_source.extract_text(content, content_type, list(target_columns))
        return self.tabulate_text(strip_code_fences(text))

    async def review(self, text: str) -> str:
        """Ask the text source for a quality review of OCR output.

        The review is advisory: a failing or missing service gives "".
        """
        if self.text_source is None or not text.strip():
            return ""
        try:
            feedback = await self.text_source.review_text(text)
        except Exception as e:
            self.logger.warning({"message": "OCR review failed", "error": repr(e)}, pprint=True)
            return ""
        return (feedback or "").strip()

    async def search_model(
        self,
        table: MarkTable,
        container_ids: Sequence[str] | None = None,
    ) -> ReconcileResult:
        """Collect model entities and reconcile the table against them.

        Raises:
            UnresolvableColumnRole: If the table's roles are not designated.
        """
        table.roles.require(table.headers)
        if self.entity_source is None:
            self.logger.warning("No entity source configured; reconciling against an empty model")
            self.entities = []
        else:
            self.entities = await collect_entities(self.entity_source, container_ids)
        result = table.reconcile(self.entities)
        self.logger.info(
            {
                "message": result.summary.message,
                "summary": result.summary.model_dump(),
            },
            pprint=True,
        )
        return result
