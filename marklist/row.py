"""Row and model-entity types shared by the tabulator and the reconciler.

A `Row` keeps user cells in an open ``cells`` mapping keyed by column name
and carries its annotations as typed fields. Annotations are exposed to
exporters under reserved keys that all start with an underscore; cleaned
column names can never start with one, so the two namespaces stay apart.
"""

from enum import Enum

from pydantic import BaseModel, Field

SENTINEL = "???"

CLEAN_CONFIDENCE = 0.95
UNREADABLE_CONFIDENCE = 0.5
INCOMPLETE_CONFIDENCE = 0.6
EMPTY_CONFIDENCE = 0.3
MANUAL_CONFIDENCE = 1.0

RESERVED_PREFIX = "_"
CONFIDENCE_KEY = "_confidence"
WARNING_KEY = "_warning"
FOUND_KEY = "_found"
MODEL_QUANTITY_KEY = "_model_quantity"
CONTAINER_KEY = "_container_id"
MEMBER_KEY = "_member_id"

RESERVED_KEYS = (
    CONFIDENCE_KEY,
    WARNING_KEY,
    FOUND_KEY,
    MODEL_QUANTITY_KEY,
    CONTAINER_KEY,
    MEMBER_KEY,
)


def is_reserved_key(name: str) -> bool:
    return name.startswith(RESERVED_PREFIX)


class RowWarning(str, Enum):
    """Data-quality tag assigned to a row when it is tabulated."""

    UNREADABLE = "unreadable"
    """At least one cell holds the unreadable sentinel."""

    INCOMPLETE = "incomplete"
    """The source line had fewer columns than the header."""

    EMPTY = "empty"
    """Every cell is blank."""


class ModelRef(BaseModel, frozen=True):
    """Back-reference to one object in the host model."""

    container_id: str = Field(description="Model (container) the object lives in.")
    member_id: int | str = Field(description="Runtime id of the object inside its model.")


class ModelEntity(BaseModel, frozen=True):
    """An object discovered in the host model, carrying its mark property."""

    container_id: str
    member_id: int | str
    mark: str

    @property
    def ref(self) -> ModelRef:
        return ModelRef(container_id=self.container_id, member_id=self.member_id)


class QuantityMismatch(BaseModel, frozen=True):
    """Declared quantity on the list differs from the occurrences in the model."""

    model: int = Field(ge=0)
    declared: int

    @property
    def message(self) -> str:
        return f"quantity mismatch: model={self.model}, declared={self.declared}"


class Row(BaseModel, frozen=True, protected_namespaces=()):
    """One tabulated line of the list.

    Rows are immutable; edits and reconciliation produce copies through
    ``model_copy``.
    """

    cells: dict[str, str] = Field(
        default_factory=dict,
        description="Cell values keyed by column name.",
    )
    confidence: float = Field(
        default=CLEAN_CONFIDENCE,
        ge=0.0,
        le=1.0,
        description="How much the row content can be trusted.",
    )
    warning: RowWarning | None = Field(
        default=None,
        description="Quality warning set by the tabulator.",
    )
    found_in_model: bool | None = Field(
        default=None,
        description="Reconciliation outcome; None until the row has been matched.",
    )
    model_quantity: int | None = Field(
        default=None,
        ge=0,
        description="Number of model objects carrying this row's mark.",
    )
    model_ref: ModelRef | None = Field(
        default=None,
        description="First model object matching this row's mark.",
    )
    mismatch: QuantityMismatch | None = Field(
        default=None,
        description="Set when the row was found but the quantities differ.",
    )

    def get(self, column: str) -> str:
        """Return a cell value, or an annotation when ``column`` is a reserved key."""
        if is_reserved_key(column):
            return self._annotation(column)
        return self.cells.get(column, "")

    def _annotation(self, key: str) -> str:
        if key == CONFIDENCE_KEY:
            return f"{self.confidence:g}"
        if key == WARNING_KEY:
            return self.warning_message
        if key == FOUND_KEY:
            return "" if self.found_in_model is None else str(self.found_in_model).lower()
        if key == MODEL_QUANTITY_KEY:
            return "" if self.model_quantity is None else str(self.model_quantity)
        if key == CONTAINER_KEY:
            return self.model_ref.container_id if self.model_ref else ""
        if key == MEMBER_KEY:
            return str(self.model_ref.member_id) if self.model_ref else ""
        raise KeyError(key)

    def has_sentinel(self, sentinel: str = SENTINEL) -> bool:
        return any(value == sentinel for value in self.cells.values())

    @property
    def warning_message(self) -> str:
        parts = []
        if self.warning is not None:
            parts.append(self.warning.value)
        if self.mismatch is not None:
            parts.append(self.mismatch.message)
        return "; ".join(parts)

    def with_cell(self, column: str, value: str, sentinel: str = SENTINEL) -> "Row":
        """Return a copy with one cell replaced.

        The unreadable check runs again on the new cells: writing the
        sentinel into any cell makes the row unreadable, and correcting the
        last sentinel cell clears the warning.
        """
        cells = dict(self.cells)
        cells[column] = value
        update: dict = {"cells": cells}
        if sentinel in cells.values():
            update["warning"] = RowWarning.UNREADABLE
            update["confidence"] = UNREADABLE_CONFIDENCE
        elif self.warning is RowWarning.UNREADABLE:
            update["warning"] = None
            update["confidence"] = CLEAN_CONFIDENCE
        return self.model_copy(update=update)

    def cleared(self) -> "Row":
        """Drop every reconciliation annotation."""
        return self.model_copy(
            update={
                "found_in_model": None,
                "model_quantity": None,
                "model_ref": None,
                "mismatch": None,
            }
        )
