"""JSON file persistence for a scan session.

The panel keeps its working state (raw text, edited table, chosen export
columns and the entities found in the model) between reloads. The state is
a plain pydantic model, so any store can persist it; this module ships a
single-file JSON store.
"""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from marklist.logging import setup_logging
from marklist.row import ModelEntity
from marklist.table import MarkTable


class SessionState(BaseModel):
    raw_text: str = ""
    table: MarkTable = Field(default_factory=MarkTable)
    selected_columns: list[str] = Field(
        default_factory=list,
        description="Columns chosen for export; empty means all headers.",
    )
    model_entities: list[ModelEntity] = Field(default_factory=list)

    @property
    def export_columns(self) -> list[str]:
        return list(self.selected_columns) if self.selected_columns else list(self.table.headers)


class JsonFileStateStore:
    """Keep one SessionState in a JSON file.

    Attributes:
        state_file: Path to the JSON file.
    """

    def __init__(self, state_file: Path | None = None):
        self.state_file = state_file or Path("marklist_state.json")
        self.logger = setup_logging(name=__name__)

    def load(self) -> SessionState | None:
        """Return the saved state, or None when there is none.

        A corrupt or outdated file is logged and treated as missing.
        """
        if not self.state_file.exists():
            return None
        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return SessionState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            self.logger.warning(
                {
                    "message": f"Discarding unreadable state file {self.state_file}",
                    "state_file": str(self.state_file),
                    "error": str(e),
                },
                pprint=True,
            )
            return None

    def save(self, state: SessionState) -> None:
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.state_file.with_suffix(self.state_file.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(state.model_dump_json(indent=2))
        tmp.replace(self.state_file)
        self.logger.debug(
            {
                "message": f"Saved session state to {self.state_file}",
                "rows": len(state.table.rows),
                "entities": len(state.model_entities),
            },
            pprint=True,
        )

    def clear(self) -> None:
        self.state_file.unlink(missing_ok=True)
