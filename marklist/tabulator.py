"""Turn OCR or pasted list text into headers and quality-tagged rows.

The tabulator works line by line:

1. Split the text into non-blank lines.
2. Score the first lines as header candidates (column count, plus a bonus
   for the usual list keywords) and take the best one, earliest on ties.
3. Clean the header names, or synthesize ``Col1..ColN`` when none survive.
4. Split every other line into cells. Lines with fewer than two columns
   are noise and only counted. Short lines are either padded or skipped,
   depending on `ShortLinePolicy`.
5. Tag each row with a warning and confidence (see `classify_row`).
6. Guess the mark and quantity columns.

Nothing here raises on bad content: empty input comes back as
``TabulationStatus.EMPTY_INPUT`` and malformed lines as ``skipped_count``.
"""

import re
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, Field

from marklist.logging import setup_logging
from marklist.roles import ColumnRoles, guess_column_roles
from marklist.row import (
    CLEAN_CONFIDENCE,
    EMPTY_CONFIDENCE,
    INCOMPLETE_CONFIDENCE,
    SENTINEL,
    UNREADABLE_CONFIDENCE,
    Row,
    RowWarning,
)
from marklist.table import MarkTable

HEADER_KEYWORDS = re.compile(
    r"\b(component|mark|qty|pcs|kogus|profile|length|weight|komponent)\b",
    re.IGNORECASE,
)
HEADER_KEYWORD_BONUS = 3
MIN_COLUMNS = 2

_HEADER_REPLACEMENTS = (
    (re.compile(r"No\.", re.IGNORECASE), "No"),
    (re.compile(r"Amount", re.IGNORECASE), "Qty"),
    (re.compile(r"Pieces", re.IGNORECASE), "Pcs"),
    (re.compile(r"Quantity", re.IGNORECASE), "Qty"),
)
_WHITESPACE = re.compile(r"\s+")
_LINE_BREAK = re.compile(r"\r?\n")


class SeparatorMode(str, Enum):
    """How a line is cut into columns."""

    TAB = "tab"
    """Only tab characters separate columns; empty cells survive."""

    LOOSE = "loose"
    """Tabs or runs of two or more spaces separate columns."""

    WHITESPACE = "whitespace"
    """Any whitespace separates columns, so cells cannot contain spaces."""


_SEPARATORS = {
    SeparatorMode.TAB: re.compile(r"\t"),
    SeparatorMode.LOOSE: re.compile(r"\t+|\s{2,}"),
    SeparatorMode.WHITESPACE: re.compile(r"\s+"),
}


class ShortLinePolicy(str, Enum):
    """What to do with a line that has fewer columns than the header."""

    PAD = "pad"
    """Keep the row, fill missing cells with "" and tag it incomplete."""

    SKIP = "skip"
    """Drop the line and count it as skipped."""


class TabulationStatus(str, Enum):
    OK = "ok"
    EMPTY_INPUT = "empty_input"


class TabulatorConfig(BaseModel, frozen=True):
    """Settings for one tabulation run."""

    separator: SeparatorMode = Field(
        default=SeparatorMode.LOOSE,
        description="Column separator recognised in the text.",
    )
    short_lines: ShortLinePolicy = Field(
        default=ShortLinePolicy.PAD,
        description="Pad short lines or skip them.",
    )
    header_scan_limit: int = Field(
        default=20,
        ge=1,
        description="How many leading lines are considered as the header.",
    )
    sentinel: str = Field(
        default=SENTINEL,
        min_length=1,
        description="Cell value the OCR step writes for unreadable cells.",
    )


class TabulationResult(BaseModel, frozen=True):
    """Headers, rows and bookkeeping from one tabulation run."""

    status: TabulationStatus
    headers: tuple[str, ...] = ()
    rows: tuple[Row, ...] = ()
    skipped_count: int = Field(default=0, ge=0)
    header_index: int | None = None
    scanned_lines: int = Field(default=0, ge=0)
    roles: ColumnRoles = Field(default_factory=ColumnRoles)
    sentinel: str = SENTINEL

    @property
    def table(self) -> MarkTable:
        return MarkTable(headers=self.headers, rows=self.rows, roles=self.roles, sentinel=self.sentinel)

    @property
    def unreadable_count(self) -> int:
        return sum(1 for row in self.rows if row.warning is RowWarning.UNREADABLE)


def split_lines(text: str, separator: SeparatorMode = SeparatorMode.LOOSE) -> list[str]:
    """Split text into non-blank lines.

    In tab mode only spaces are trimmed from the line ends, so leading or
    trailing empty cells are kept.
    """
    lines = []
    for raw in _LINE_BREAK.split(text or ""):
        if not raw.strip():
            continue
        lines.append(raw.strip(" \r") if separator is SeparatorMode.TAB else raw.strip())
    return lines


def split_columns(line: str, separator: SeparatorMode = SeparatorMode.LOOSE) -> list[str]:
    return _SEPARATORS[separator].split(line)


def header_score(line: str, separator: SeparatorMode = SeparatorMode.LOOSE) -> int:
    columns = [c for c in split_columns(line, separator) if c.strip()]
    bonus = HEADER_KEYWORD_BONUS if HEADER_KEYWORDS.search(line) else 0
    return len(columns) + bonus


def find_header_index(lines: Sequence[str], separator: SeparatorMode = SeparatorMode.LOOSE, limit: int = 20) -> int:
    """Index of the best-scoring header candidate; the earliest line wins ties."""
    best_index = 0
    best_score = -1
    for i, line in enumerate(lines[:limit]):
        score = header_score(line, separator)
        if score > best_score:
            best_score = score
            best_index = i
    return best_index


def clean_header(name: str) -> str:
    """Normalise one header cell.

    >>> clean_header("  Amount  (pcs) ")
    'Qty pcs'
    """
    value = _WHITESPACE.sub(" ", name).strip()
    if not value:
        return ""
    for pattern, replacement in _HEADER_REPLACEMENTS:
        value = pattern.sub(replacement, value, count=1)
    value = "".join(ch for ch in value if ch.isalnum() or ch in " .-")
    return _WHITESPACE.sub(" ", value).strip()


def _unique(names: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    out = []
    for name in names:
        candidate = name
        n = 2
        while candidate in seen:
            candidate = f"{name} {n}"
            n += 1
        seen.add(candidate)
        out.append(candidate)
    return out


def derive_headers(line: str, separator: SeparatorMode = SeparatorMode.LOOSE) -> list[str]:
    """Clean the header line into unique column names, or synthesize ``ColN``."""
    candidates = [c for c in split_columns(line, separator) if c.strip()]
    cleaned = [h for h in (clean_header(c) for c in candidates) if h]
    if cleaned:
        return _unique(cleaned)
    return [f"Col{i + 1}" for i in range(max(len(candidates), 1))]


def classify_row(
    values: Sequence[str],
    header_count: int,
    column_count: int | None = None,
    sentinel: str = SENTINEL,
) -> tuple[RowWarning | None, float]:
    """Return ``(warning, confidence)`` for a row's cell values.

    Checks run in priority order: a sentinel cell makes the row unreadable
    whatever else it holds, then a source line with fewer columns than the
    header makes it incomplete, then all-blank cells make it empty.
    """
    if column_count is None:
        column_count = len(values)
    if any(value == sentinel for value in values):
        return RowWarning.UNREADABLE, UNREADABLE_CONFIDENCE
    if column_count < header_count:
        return RowWarning.INCOMPLETE, INCOMPLETE_CONFIDENCE
    if not any(values):
        return RowWarning.EMPTY, EMPTY_CONFIDENCE
    return None, CLEAN_CONFIDENCE


def tabulate(text: str, config: TabulatorConfig | None = None) -> TabulationResult:
    """Tabulate raw list text.

    Args:
        text: OCR output or pasted text, one list row per line.
        config: Separator and short-line settings; defaults apply when None.

    Returns:
        A TabulationResult. Empty input gives ``EMPTY_INPUT`` with no
        headers or rows.
    """
    config = config or TabulatorConfig()
    separator = config.separator
    lines = split_lines(text, separator)
    if not lines:
        return TabulationResult(status=TabulationStatus.EMPTY_INPUT, sentinel=config.sentinel)

    header_index = find_header_index(lines, separator, config.header_scan_limit)
    headers = derive_headers(lines[header_index], separator)
    width = len(headers)

    rows: list[Row] = []
    skipped = 0
    for i, line in enumerate(lines):
        if i == header_index:
            continue
        columns = split_columns(line, separator)
        if len(columns) < MIN_COLUMNS:
            skipped += 1
            continue
        if len(columns) < width and config.short_lines is ShortLinePolicy.SKIP:
            skipped += 1
            continue
        values = [c.strip() for c in columns[:width]]
        values += [""] * (width - len(values))
        warning, confidence = classify_row(values, width, len(columns), config.sentinel)
        rows.append(Row(cells=dict(zip(headers, values)), confidence=confidence, warning=warning))

    result = TabulationResult(
        status=TabulationStatus.OK,
        headers=tuple(headers),
        rows=tuple(rows),
        skipped_count=skipped,
        header_index=header_index,
        scanned_lines=len(lines) - 1,
        roles=guess_column_roles(headers),
        sentinel=config.sentinel,
    )
    logger = setup_logging(name=__name__)
    logger.debug(
        {
            "message": f"Tabulated {len(rows)} rows",
            "headers": headers,
            "header_index": header_index,
            "skipped": skipped,
            "unreadable": result.unreadable_count,
        },
        pprint=True,
    )
    return result
