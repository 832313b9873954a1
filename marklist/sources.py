"""Interfaces to the services that feed the reconciliation pipeline.

Two collaborators sit outside the package:

- **TextSourceInterface**: the OCR/LLM service that reads a photographed
  list and returns its text, one row per line, cells separated by tabs.
  Optionally it also reviews its own output and reports on its quality.
- **EntitySourceInterface**: the host viewer, which lists the loaded models
  (containers) and the objects in each one with their mark property.

`build_ocr_prompt` and `build_feedback_prompt` produce the instructions an
LLM-backed text source sends along with the image or text, and
`strip_code_fences` removes the Markdown fences such services tend to wrap
around their answer.

`collect_entities` fans the per-container lookups out concurrently and
flattens the results. A failed container listing, or a container whose
lookup fails, is logged and left out; the pipeline then reconciles against
whatever was collected.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any, Iterable, Sequence

from marklist.logging import setup_logging
from marklist.row import SENTINEL, ModelEntity

DEFAULT_MARK_PROPERTY = r"tekla_assembly\.assemblycast_unit_mark"

_OPENING_FENCE = re.compile(r"^```(?:tsv|csv|plaintext)?\s*\n?")
_CLOSING_FENCE = re.compile(r"\n?```$")


def column_instruction(target_columns: Sequence[str] = ()) -> str:
    """Tell the OCR service which columns to extract and in what order.

    >>> column_instruction(["Component", "Pcs"])  # doctest: +ELLIPSIS
    'Extract ONLY these columns, in exactly this order: Component, Pcs. ...'
    """
    columns = [c.strip() for c in target_columns if c.strip()]
    if not columns:
        return "Extract all visible columns."
    positions = ", ".join(f"column {i + 1} from the left = {name}" for i, name in enumerate(columns))
    return (
        f"Extract ONLY these columns, in exactly this order: {', '.join(columns)}. "
        f"If the column names are not visible in the image, use the column positions ({positions})."
    )


def build_ocr_prompt(
    target_columns: Sequence[str] = (),
    sentinel: str = SENTINEL,
    extra_instructions: str = "",
) -> str:
    """Instructions for reading a transport or fabrication list as TSV."""
    lines = [
        "You are an expert at reading logistics transport lists and fabrication lists. "
        'Distinguish letters and digits carefully ("T" and "5" are different, "TS" is not "T5"). '
        "Numbers are quantities: read them exactly and never change them.",
        column_instruction(target_columns),
        "Return the data as TSV (tab-separated values) with the headers on the first line.",
        "Separate columns ONLY with the TAB character, never with spaces or other separators.",
        "Keep the rows in their exact original order, top to bottom.",
        f'If you cannot read a cell clearly, write "{sentinel}" in it.',
        "Do not skip any row. Do not add extra rows.",
    ]
    if extra_instructions.strip():
        lines.append(extra_instructions.strip())
    lines.append("Do not add any other text or explanation and no Markdown or code blocks: only the plain TSV table.")
    return "\n".join(lines)


def build_feedback_prompt(text: str) -> str:
    """Instructions for reviewing the quality of an OCR result."""
    return (
        f"Analyse this OCR result (TSV format): {text}\n"
        "Assess:\n"
        "1. Was the document easy to read (image quality, font, scan)?\n"
        "2. Did you understand every row? If not, what were the problems?\n"
        "3. Would you recommend scanning again with extra instructions (better lighting, a more precise prompt)?\n"
        "Give a short summary."
    )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```tsv ... ``` block from a service answer."""
    cleaned = (text or "").strip()
    cleaned = _OPENING_FENCE.sub("", cleaned)
    return _CLOSING_FENCE.sub("", cleaned)


class TextSourceInterface(ABC):
    """Extract list text from an image or document."""

    @abstractmethod
    async def extract_text(
        self,
        content: bytes,
        content_type: str,
        target_columns: Sequence[str] = (),
    ) -> str:
        """Return the recognised text.

        Args:
            content: Raw image or document bytes.
            content_type: MIME type such as 'image/png' or 'application/pdf'.
            target_columns: Columns to extract, in output order; all visible
                columns when empty. LLM-backed services typically pass this
                to `build_ocr_prompt`.

        Returns:
            Text with one list row per line. Cells the service could not read
            should be written as the unreadable sentinel ("???").

        Raises:
            Any exception describing the service failure. The caller decides
            how to report it; there is no partial text to fall back on.
        """

    async def review_text(self, text: str) -> str:
        """Return a short quality review of ``text``.

        Services without a review step return an empty string.
        """
        return ""


class EntitySourceInterface(ABC):
    """Look up model objects and their marks in the host viewer."""

    @abstractmethod
    async def list_containers(self) -> list[str]:
        """Return the ids of the models currently loaded in the viewer."""

    @abstractmethod
    async def fetch_entities(self, container_id: str) -> list[ModelEntity]:
        """Return every object of one model that carries a mark."""


def _property_value(prop: dict[str, Any]) -> str:
    value = prop.get("value")
    if value in (None, ""):
        value = prop.get("displayValue")
    return "" if value is None else str(value).strip()


def entities_from_properties(
    container_id: str,
    objects: Iterable[dict[str, Any]],
    property_pattern: str = DEFAULT_MARK_PROPERTY,
) -> list[ModelEntity]:
    """Build entities from a host property payload.

    Each object looks like ``{"id": 12, "properties": [{"name": "Set",
    "properties": [{"name": "...", "value": "B-101"}]}]}``. The first
    property whose name matches ``property_pattern`` (case-insensitive)
    supplies the mark; objects without a non-blank mark are skipped.
    """
    pattern = re.compile(property_pattern, re.IGNORECASE)
    entities = []
    for obj in objects:
        member_id = obj.get("id")
        if member_id is None:
            continue
        mark = ""
        for property_set in obj.get("properties") or []:
            for prop in property_set.get("properties") or []:
                if pattern.search(str(prop.get("name", ""))):
                    mark = _property_value(prop)
                    if mark:
                        break
            if mark:
                break
        if mark:
            entities.append(ModelEntity(container_id=str(container_id), member_id=member_id, mark=mark))
    return entities


async def collect_entities(
    source: EntitySourceInterface,
    container_ids: Sequence[str] | None = None,
) -> list[ModelEntity]:
    """Fetch entities from every container concurrently and flatten them.

    Args:
        source: The host lookup.
        container_ids: Containers to query; all loaded containers when None.

    Returns:
        Entities from the containers that answered, in container order.
        Failed containers are logged and omitted, never raised; a failed
        container listing gives an empty list.
    """
    logger = setup_logging(name=__name__)
    if container_ids is None:
        try:
            container_ids = await source.list_containers()
        except Exception as e:
            logger.warning(
                {
                    "message": "Listing model containers failed",
                    "error": repr(e),
                },
                pprint=True,
            )
            return []

    results = await asyncio.gather(
        *(source.fetch_entities(container_id) for container_id in container_ids),
        return_exceptions=True,
    )

    entities: list[ModelEntity] = []
    failed: list[str] = []
    for container_id, result in zip(container_ids, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            failed.append(container_id)
            logger.warning(
                {
                    "message": f"Entity lookup failed for container {container_id}",
                    "container_id": container_id,
                    "error": repr(result),
                },
                pprint=True,
            )
            continue
        entities.extend(result)

    logger.debug(
        {
            "message": f"Collected {len(entities)} entities",
            "containers": len(container_ids),
            "failed": failed,
        },
        pprint=True,
    )
    return entities
