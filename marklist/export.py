"""Delimiter-joined serialisation of a table for files and the clipboard."""

import csv
import io
import re
from datetime import date
from pathlib import Path
from typing import Iterable, Sequence

from marklist.row import Row

_CELL_BREAKS = re.compile(r"[\t\r\n]+")


def to_delimited(
    columns: Sequence[str],
    rows: Iterable[Row],
    delimiter: str = ",",
    include_headers: bool = True,
) -> str:
    """Join the chosen columns of every row with ``delimiter``.

    With a comma (or any other non-tab delimiter) the output is CSV: cells
    that contain the delimiter, a quote or a line break are quoted and inner
    quotes doubled. With a tab nothing is quoted; tabs and line breaks inside
    a cell become a single space, so the text tabulates back to the same
    cells.

    Reserved annotation keys (``_confidence``, ``_model_quantity``, ...) may
    be listed in ``columns`` next to user columns.
    """
    if delimiter == "\t":
        lines: list[Sequence[str]] = [columns] if include_headers else []
        lines += [[row.get(column) for column in columns] for row in rows]
        return "\n".join("\t".join(_CELL_BREAKS.sub(" ", value) for value in line) for line in lines)

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    if include_headers:
        writer.writerow(columns)
    for row in rows:
        writer.writerow([row.get(column) for column in columns])
    return buffer.getvalue().rstrip("\n")


def to_csv(columns: Sequence[str], rows: Iterable[Row]) -> str:
    return to_delimited(columns, rows, delimiter=",")


def to_clipboard_text(columns: Sequence[str], rows: Iterable[Row], include_headers: bool = True) -> str:
    return to_delimited(columns, rows, delimiter="\t", include_headers=include_headers)


def default_export_filename(today: date) -> str:
    return f"scan_{today.isoformat()}.csv"


def write_csv(path: Path, columns: Sequence[str], rows: Iterable[Row], delimiter: str = ",") -> Path:
    """Write the table to ``path``; a directory gets the default file name."""
    if path.is_dir():
        path = path / default_export_filename(date.today())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_delimited(columns, rows, delimiter=delimiter) + "\n", encoding="utf-8")
    return path
