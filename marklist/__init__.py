"""marklist - tabulate scanned transport/fabrication lists and reconcile them with a 3D model.

The pipeline has three pure stages:

    from marklist import tabulate, ModelEntity

    result = tabulate("Mark\\tQty\\nB-101\\t3\\nC-205\\t2")
    table = result.table                      # headers, rows, guessed roles
    report = table.reconcile([ModelEntity(container_id="m1", member_id=1, mark="B-101")])
    print(report.summary.message)

OCR and host-model lookups plug in through `marklist.sources`.
"""

from marklist.reconcile import (
    MatchIndex,
    ReconcileResult,
    ReconcileSummary,
    expand_marks,
    parse_quantity,
    reconcile,
)
from marklist.roles import ColumnRoles, UnresolvableColumnRole, guess_column_roles
from marklist.row import ModelEntity, ModelRef, QuantityMismatch, Row, RowWarning
from marklist.table import MarkTable
from marklist.tabulator import (
    SeparatorMode,
    ShortLinePolicy,
    TabulationResult,
    TabulationStatus,
    TabulatorConfig,
    classify_row,
    tabulate,
)

__all__ = [
    "ColumnRoles",
    "MarkTable",
    "MatchIndex",
    "ModelEntity",
    "ModelRef",
    "QuantityMismatch",
    "ReconcileResult",
    "ReconcileSummary",
    "Row",
    "RowWarning",
    "SeparatorMode",
    "ShortLinePolicy",
    "TabulationResult",
    "TabulationStatus",
    "TabulatorConfig",
    "UnresolvableColumnRole",
    "classify_row",
    "expand_marks",
    "guess_column_roles",
    "parse_quantity",
    "reconcile",
    "tabulate",
]

__version__ = "0.1.0"
