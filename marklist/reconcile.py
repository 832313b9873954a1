"""Match tabulated rows against the marks found in the host model.

Reconciliation is a single pure pass:

1. Expand each row's mark by its declared quantity into the flat
   "expected marks" sequence the host selection uses.
2. Index the model entities by case-folded mark, counting occurrences and
   keeping the object references for selection and zoom.
3. Annotate every row with a non-blank mark: found or not, how many model
   objects carry the mark, and a quantity mismatch when the declared count
   differs from the model count.

Matching is case-insensitive exact equality. An empty entity list is a
normal result in which nothing is found.
"""

import math
import re
from collections import defaultdict
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from marklist.roles import UnresolvableColumnRole
from marklist.row import ModelEntity, ModelRef, QuantityMismatch, Row

_LEADING_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def normalize_mark(mark: str) -> str:
    return mark.strip().casefold()


def parse_quantity(raw: str | None) -> float | None:
    """Read the leading number of a quantity cell.

    The first comma is taken as a decimal separator, so ``"2,5"`` is 2.5.
    Trailing units are ignored (``"3 pcs"`` is 3.0). Returns None when the
    cell does not start with a number.
    """
    if raw is None:
        return None
    text = str(raw).strip().replace(",", ".", 1)
    match = _LEADING_NUMBER.match(text)
    if not match:
        return None
    value = float(match.group(0))
    if not math.isfinite(value):
        return None
    return value


def expansion_count(raw: str | None) -> int:
    """How many times a mark is repeated in the expected sequence (at least 1)."""
    value = parse_quantity(raw)
    return max(1, math.floor(value)) if value is not None else 1


def declared_quantity(raw: str | None) -> int:
    """Quantity compared against the model count; unparsable cells count as 0."""
    value = parse_quantity(raw)
    return math.floor(value) if value is not None else 0


def expand_marks(rows: Iterable[Row], mark_key: str, qty_key: str) -> list[str]:
    """Repeat every non-blank mark by its row's quantity.

    >>> expand_marks([Row(cells={"Mark": "X", "Qty": "3"})], "Mark", "Qty")
    ['X', 'X', 'X']
    """
    marks: list[str] = []
    for row in rows:
        mark = row.get(mark_key).strip()
        if not mark:
            continue
        marks.extend([mark] * expansion_count(row.get(qty_key)))
    return marks


class MatchIndex(BaseModel, frozen=True):
    """Occurrence counts and object references per normalised mark."""

    counts: dict[str, int] = Field(default_factory=dict)
    refs: dict[str, tuple[ModelRef, ...]] = Field(default_factory=dict)

    @classmethod
    def build(cls, entities: Iterable[ModelEntity]) -> "MatchIndex":
        counts: dict[str, int] = defaultdict(int)
        refs: dict[str, list[ModelRef]] = defaultdict(list)
        for entity in entities:
            key = normalize_mark(entity.mark)
            if not key:
                continue
            counts[key] += 1
            refs[key].append(entity.ref)
        return cls(counts=dict(counts), refs={k: tuple(v) for k, v in refs.items()})

    def count(self, mark: str) -> int:
        return self.counts.get(normalize_mark(mark), 0)

    def refs_for(self, mark: str) -> tuple[ModelRef, ...]:
        return self.refs.get(normalize_mark(mark), ())

    def __len__(self) -> int:
        return len(self.counts)


class ReconcileSummary(BaseModel, frozen=True, protected_namespaces=()):
    """Counts over one reconciliation pass.

    Attributes:
        found: Rows whose mark exists in the model.
        not_found: Rows with a mark that the model does not have.
        quantity_mismatch: Found rows whose declared quantity differs.
        total: All rows, including those with a blank mark.
        skipped_blank: Rows left out of matching because the mark is blank.
        declared_quantity: Sum of declared quantities over all rows.
        model_quantity: Sum of model occurrence counts over matched rows.
    """

    found: int = 0
    not_found: int = 0
    quantity_mismatch: int = 0
    total: int = 0
    skipped_blank: int = 0
    declared_quantity: int = 0
    model_quantity: int = 0

    @property
    def message(self) -> str:
        text = f"{self.found} found, {self.not_found} not found"
        if self.quantity_mismatch:
            text += f", {self.quantity_mismatch} quantity mismatches"
        return text


class ReconcileResult(BaseModel, frozen=True):
    rows: tuple[Row, ...]
    summary: ReconcileSummary
    expected_marks: tuple[str, ...] = ()
    selection: dict[str, tuple[int | str, ...]] = Field(
        default_factory=dict,
        description="Member ids to select for found rows, grouped by container id.",
    )

    @property
    def found_refs(self) -> list[ModelRef]:
        return [
            ModelRef(container_id=container_id, member_id=member_id)
            for container_id, member_ids in self.selection.items()
            for member_id in member_ids
        ]


def _annotate(row: Row, mark: str, qty_key: str, index: MatchIndex) -> Row:
    model_count = index.count(mark)
    found = model_count > 0
    refs = index.refs_for(mark)
    mismatch = None
    if found:
        declared = declared_quantity(row.get(qty_key))
        if declared != model_count:
            mismatch = QuantityMismatch(model=model_count, declared=declared)
    return row.model_copy(
        update={
            "found_in_model": found,
            "model_quantity": model_count,
            "model_ref": refs[0] if refs else None,
            "mismatch": mismatch,
        }
    )


def reconcile(
    rows: Sequence[Row],
    mark_key: str | None,
    qty_key: str | None,
    entities: Iterable[ModelEntity] = (),
) -> ReconcileResult:
    """Reconcile rows against model entities.

    Args:
        rows: Tabulated (possibly edited) rows.
        mark_key: Column holding the mark.
        qty_key: Column holding the declared quantity.
        entities: Flattened model entities; may be empty.

    Returns:
        The annotated rows in input order, the summary, the expanded
        expected-marks sequence and the selection grouped by container.

    Raises:
        UnresolvableColumnRole: If ``mark_key`` or ``qty_key`` is not set.
    """
    if not mark_key:
        raise UnresolvableColumnRole("mark")
    if not qty_key:
        raise UnresolvableColumnRole("quantity")

    index = MatchIndex.build(entities)

    annotated: list[Row] = []
    selection: dict[str, list[int | str]] = {}
    selected: set[tuple[str, int | str]] = set()
    found = not_found = mismatched = blank = 0
    declared_total = model_total = 0

    for row in rows:
        row = row.cleared()
        declared_total += declared_quantity(row.get(qty_key))
        mark = row.get(mark_key).strip()
        if not mark:
            blank += 1
            annotated.append(row)
            continue
        row = _annotate(row, mark, qty_key, index)
        annotated.append(row)
        if not row.found_in_model:
            not_found += 1
            continue
        found += 1
        model_total += row.model_quantity or 0
        if row.mismatch is not None:
            mismatched += 1
        for ref in index.refs_for(mark):
            key = (ref.container_id, ref.member_id)
            if key in selected:
                continue
            selected.add(key)
            selection.setdefault(ref.container_id, []).append(ref.member_id)

    summary = ReconcileSummary(
        found=found,
        not_found=not_found,
        quantity_mismatch=mismatched,
        total=len(annotated),
        skipped_blank=blank,
        declared_quantity=declared_total,
        model_quantity=model_total,
    )
    return ReconcileResult(
        rows=tuple(annotated),
        summary=summary,
        expected_marks=tuple(expand_marks(annotated, mark_key, qty_key)),
        selection={k: tuple(v) for k, v in selection.items()},
    )
