"""Editable table of tabulated rows with designated column roles.

`MarkTable` is immutable like the rows it holds: every edit returns a new
table. Edits keep each row's cell keys equal to the header set, and role
changes never touch row data.
"""

from typing import Iterable

from pydantic import BaseModel, Field, model_validator

from marklist.reconcile import ReconcileResult, declared_quantity, expand_marks, reconcile
from marklist.roles import ColumnRoles, guess_column_roles
from marklist.row import MANUAL_CONFIDENCE, SENTINEL, ModelEntity, Row, is_reserved_key


def _check_column_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("column name must not be blank")
    if is_reserved_key(name):
        raise ValueError(f"column name {name!r} collides with the reserved annotation prefix")
    return name


class MarkTable(BaseModel, frozen=True):
    headers: tuple[str, ...] = ()
    rows: tuple[Row, ...] = ()
    roles: ColumnRoles = Field(default_factory=ColumnRoles)
    sentinel: str = Field(
        default=SENTINEL,
        min_length=1,
        description="Unreadable-cell marker the rows were tabulated with.",
    )

    @model_validator(mode="after")
    def rows_match_headers(self) -> "MarkTable":
        if len(set(self.headers)) != len(self.headers):
            raise ValueError("headers must be unique")
        allowed = set(self.headers)
        for i, row in enumerate(self.rows):
            extra = set(row.cells) - allowed
            if extra:
                raise ValueError(f"row {i} has cells for unknown columns: {sorted(extra)}")
        return self

    def _replace_rows(self, rows: Iterable[Row]) -> "MarkTable":
        return self.model_copy(update={"rows": tuple(rows)})

    def _rebuild(self, headers: Iterable[str], rows: Iterable[Row], roles: ColumnRoles) -> "MarkTable":
        return MarkTable(headers=tuple(headers), rows=tuple(rows), roles=roles, sentinel=self.sentinel)

    # --- cells and rows ---

    def with_cell(self, index: int, column: str, value: str) -> "MarkTable":
        if column not in self.headers:
            raise KeyError(column)
        rows = list(self.rows)
        rows[index] = rows[index].with_cell(column, value, self.sentinel)
        return self._replace_rows(rows)

    def add_row(self) -> "MarkTable":
        blank = Row(cells={h: "" for h in self.headers}, confidence=MANUAL_CONFIDENCE)
        return self._replace_rows((*self.rows, blank))

    def remove_row(self, index: int) -> "MarkTable":
        rows = list(self.rows)
        del rows[index]
        return self._replace_rows(rows)

    def find_replace(self, find: str, replace: str) -> tuple["MarkTable", int]:
        """Replace literal text in every user cell.

        Returns the new table and the number of cells that changed.
        """
        if not find.strip():
            raise ValueError("search text must not be blank")
        replaced = 0
        rows = []
        for row in self.rows:
            for column, value in row.cells.items():
                if find in value:
                    row = row.with_cell(column, value.replace(find, replace), self.sentinel)
                    replaced += 1
            rows.append(row)
        return self._replace_rows(rows), replaced

    # --- columns ---

    def rename_column(self, old: str, new: str) -> "MarkTable":
        new = _check_column_name(new)
        if old not in self.headers:
            raise KeyError(old)
        if new != old and new in self.headers:
            raise ValueError(f"column {new!r} already exists")
        headers = tuple(new if h == old else h for h in self.headers)
        rows = []
        for row in self.rows:
            cells = {(new if k == old else k): v for k, v in row.cells.items()}
            rows.append(row.model_copy(update={"cells": cells}))
        return self._rebuild(headers, rows, self.roles.renamed(old, new))

    def add_column(self, name: str) -> "MarkTable":
        name = _check_column_name(name)
        if name in self.headers:
            raise ValueError(f"column {name!r} already exists")
        rows = [row.model_copy(update={"cells": {**row.cells, name: ""}}) for row in self.rows]
        return self._rebuild((*self.headers, name), rows, self.roles)

    def remove_column(self, name: str) -> "MarkTable":
        if name not in self.headers:
            raise KeyError(name)
        headers = tuple(h for h in self.headers if h != name)
        rows = [
            row.model_copy(update={"cells": {k: v for k, v in row.cells.items() if k != name}})
            for row in self.rows
        ]
        return self._rebuild(headers, rows, self.roles.without(name))

    # --- roles ---

    def with_roles(self, mark_key: str | None = None, qty_key: str | None = None) -> "MarkTable":
        for key in (mark_key, qty_key):
            if key is not None and key not in self.headers:
                raise KeyError(key)
        return self.model_copy(update={"roles": self.roles.with_overrides(mark_key, qty_key)})

    def reguess_roles(self) -> "MarkTable":
        return self.model_copy(update={"roles": guess_column_roles(self.headers)})

    # --- reconciliation ---

    def expected_marks(self) -> list[str]:
        if not self.roles.resolved:
            return []
        return expand_marks(self.rows, self.roles.mark_key, self.roles.qty_key)  # type: ignore[arg-type]

    def reconcile(self, entities: Iterable[ModelEntity] = ()) -> ReconcileResult:
        """Reconcile against model entities; the roles must name existing columns."""
        mark_key, qty_key = self.roles.require(self.headers)
        return reconcile(self.rows, mark_key, qty_key, entities)

    def with_result(self, result: ReconcileResult) -> "MarkTable":
        return self._replace_rows(result.rows)

    # --- counters ---

    def column_values(self, column: str) -> list[str]:
        return [row.get(column) for row in self.rows]

    @property
    def warning_count(self) -> int:
        return sum(1 for row in self.rows if row.warning is not None or row.mismatch is not None)

    @property
    def found_count(self) -> int:
        return sum(1 for row in self.rows if row.found_in_model is True)

    @property
    def not_found_count(self) -> int:
        return sum(1 for row in self.rows if row.found_in_model is False)

    @property
    def mismatch_count(self) -> int:
        return sum(1 for row in self.rows if row.mismatch is not None)

    @property
    def total_declared_quantity(self) -> int:
        if not self.roles.qty_key:
            return 0
        return sum(declared_quantity(row.get(self.roles.qty_key)) for row in self.rows)

    @property
    def total_model_quantity(self) -> int:
        return sum(row.model_quantity or 0 for row in self.rows)
