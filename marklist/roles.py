"""Guess and override which columns hold the mark and the quantity.

Guessing is a heuristic keyword match with a positional fallback. It is a
pure function of the header names so a caller can show the guess, let the
user override it, and re-run it after headers change without touching any
row data.
"""

import re
from typing import Sequence

from pydantic import BaseModel, Field

MARK_PATTERN = re.compile(r"\b(mark|component|item|part|komponent)\b")
QTY_PATTERN = re.compile(r"\b(qty|pcs|amount|count|kogus|tk)\b")

KEYWORD_CONFIDENCE = 1.0
FALLBACK_CONFIDENCE = 0.5


class UnresolvableColumnRole(ValueError):
    """A column role needed for reconciliation is not designated."""

    def __init__(self, role: str, column: str | None = None):
        self.role = role
        self.column = column
        if column:
            message = f"{role} column {column!r} is not one of the table headers"
        else:
            message = f"no {role} column designated; assign one before reconciling"
        super().__init__(message)


class ColumnRoles(BaseModel, frozen=True):
    """The designated mark and quantity columns with the guess confidence."""

    mark_key: str | None = None
    qty_key: str | None = None
    mark_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    qty_confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def resolved(self) -> bool:
        return bool(self.mark_key) and bool(self.qty_key)

    def with_overrides(self, mark_key: str | None = None, qty_key: str | None = None) -> "ColumnRoles":
        """Manually assign roles; an override is taken with full confidence."""
        update: dict = {}
        if mark_key is not None:
            update["mark_key"] = mark_key
            update["mark_confidence"] = 1.0
        if qty_key is not None:
            update["qty_key"] = qty_key
            update["qty_confidence"] = 1.0
        return self.model_copy(update=update)

    def renamed(self, old: str, new: str) -> "ColumnRoles":
        update: dict = {}
        if self.mark_key == old:
            update["mark_key"] = new
        if self.qty_key == old:
            update["qty_key"] = new
        return self.model_copy(update=update)

    def without(self, column: str) -> "ColumnRoles":
        update: dict = {}
        if self.mark_key == column:
            update.update(mark_key=None, mark_confidence=0.0)
        if self.qty_key == column:
            update.update(qty_key=None, qty_confidence=0.0)
        return self.model_copy(update=update)

    def require(self, headers: Sequence[str] | None = None) -> tuple[str, str]:
        """Return ``(mark_key, qty_key)`` or raise UnresolvableColumnRole."""
        if not self.mark_key:
            raise UnresolvableColumnRole("mark")
        if not self.qty_key:
            raise UnresolvableColumnRole("quantity")
        if headers is not None:
            if self.mark_key not in headers:
                raise UnresolvableColumnRole("mark", self.mark_key)
            if self.qty_key not in headers:
                raise UnresolvableColumnRole("quantity", self.qty_key)
        return self.mark_key, self.qty_key


def _first_match(lowered: Sequence[str], pattern: re.Pattern[str]) -> int:
    for i, name in enumerate(lowered):
        if pattern.search(name):
            return i
    return -1


def guess_column_roles(headers: Sequence[str]) -> ColumnRoles:
    """Guess the mark and quantity columns from header names.

    The mark column is the first header naming a mark/component/item/part,
    falling back to the first header. The quantity column is the first
    header naming a qty/pcs/amount/count, falling back to the last one.
    With no headers both roles stay unresolved.
    """
    if not headers:
        return ColumnRoles()
    lowered = [h.lower() for h in headers]

    mark_idx = _first_match(lowered, MARK_PATTERN)
    qty_idx = _first_match(lowered, QTY_PATTERN)

    return ColumnRoles(
        mark_key=headers[mark_idx] if mark_idx >= 0 else headers[0],
        qty_key=headers[qty_idx] if qty_idx >= 0 else headers[-1],
        mark_confidence=KEYWORD_CONFIDENCE if mark_idx >= 0 else FALLBACK_CONFIDENCE,
        qty_confidence=KEYWORD_CONFIDENCE if qty_idx >= 0 else FALLBACK_CONFIDENCE,
    )
