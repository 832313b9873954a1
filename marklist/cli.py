"""Tabulate a list and reconcile it against exported model entities.

Reads OCR or pasted text from a file (or stdin), tabulates it, optionally
reconciles it against a JSON dump of model entities, prints a summary to
stderr and writes the table as CSV/TSV.

Entity files are either a list of ``{"container_id", "member_id", "mark"}``
objects or the host property payload keyed by container id.

Usage:
  marklist scan.txt --entities model.json --output out.csv
  cat scan.txt | marklist - --qty-key Pcs --tsv
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from marklist.config import MarkListConfig, load_config
from marklist.export import to_delimited, write_csv
from marklist.roles import UnresolvableColumnRole
from marklist.row import MODEL_QUANTITY_KEY, RESERVED_KEYS, WARNING_KEY, ModelEntity
from marklist.sources import entities_from_properties
from marklist.state import JsonFileStateStore, SessionState
from marklist.tabulator import SeparatorMode, ShortLinePolicy, TabulationStatus, tabulate


def load_entities(path: Path, config: MarkListConfig) -> list[ModelEntity]:
    """Read model entities from a JSON file (flat list or per-container payload)."""
    with open(path, "r", encoding="utf-8") as f:
        data: Any = json.load(f)
    if isinstance(data, dict):
        entities: list[ModelEntity] = []
        for container_id, objects in data.items():
            entities.extend(entities_from_properties(container_id, objects, config.model.mark_property))
        return entities
    return [ModelEntity.model_validate(item) for item in data]


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marklist",
        description="Tabulate a transport/fabrication list and reconcile it against model marks.",
    )
    parser.add_argument("text", help="Text file with the list, or '-' for stdin")
    parser.add_argument(
        "--entities",
        type=Path,
        default=None,
        help="JSON file with model entities; without it only tabulation is done",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to marklist.toml")
    parser.add_argument(
        "--separator",
        choices=[m.value for m in SeparatorMode],
        default=None,
        help="Column separator (overrides config)",
    )
    parser.add_argument(
        "--short-lines",
        choices=[p.value for p in ShortLinePolicy],
        default=None,
        help="Pad or skip lines with fewer columns than the header (overrides config)",
    )
    parser.add_argument("--mark-key", default=None, help="Column holding the mark")
    parser.add_argument("--qty-key", default=None, help="Column holding the quantity")
    parser.add_argument("--columns", nargs="+", default=None, help="Columns to export (default: all)")
    parser.add_argument("--output", type=Path, default=None, help="Write the table here instead of stdout")
    parser.add_argument("--tsv", action="store_true", help="Tab-separated output")
    parser.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Save the session (text, table, entities) to this JSON file",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    overrides = {}
    if args.separator:
        overrides["separator"] = SeparatorMode(args.separator)
    if args.short_lines:
        overrides["short_lines"] = ShortLinePolicy(args.short_lines)
    if overrides:
        config = config.model_copy(update={"tabulator": config.tabulator.model_copy(update=overrides)})

    try:
        text = _read_text(args.text)
    except OSError as e:
        print(f"Error: cannot read {args.text}: {e}", file=sys.stderr)
        return 1

    tabulated = tabulate(text, config.tabulator)
    if tabulated.status is TabulationStatus.EMPTY_INPUT:
        print("Error: input has no text", file=sys.stderr)
        return 1

    table = tabulated.table
    try:
        table = table.with_roles(mark_key=args.mark_key, qty_key=args.qty_key)
    except KeyError as e:
        print(f"Error: unknown column {e}; headers are {list(table.headers)}", file=sys.stderr)
        return 2

    print(
        f"Table: {len(table.rows)} rows, {tabulated.skipped_count} skipped, "
        f"mark={table.roles.mark_key!r}, qty={table.roles.qty_key!r}",
        file=sys.stderr,
    )

    columns = list(args.columns) if args.columns else list(table.headers)
    unknown = [c for c in columns if c not in table.headers and c not in RESERVED_KEYS]
    if unknown:
        print(
            f"Error: unknown export columns {unknown}; choose from {list(table.headers) + list(RESERVED_KEYS)}",
            file=sys.stderr,
        )
        return 2

    entities: list[ModelEntity] = []
    if args.entities is not None:
        try:
            entities = load_entities(args.entities, config)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            print(f"Error: cannot load entities from {args.entities}: {e}", file=sys.stderr)
            return 1
        try:
            result = table.reconcile(entities)
        except UnresolvableColumnRole as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        table = table.with_result(result)
        columns += [key for key in (MODEL_QUANTITY_KEY, WARNING_KEY) if key not in columns]
        print(f"Model: {result.summary.message}", file=sys.stderr)

    if args.state is not None:
        JsonFileStateStore(args.state).save(
            SessionState(raw_text=text, table=table, selected_columns=columns, model_entities=entities)
        )

    delimiter = "\t" if args.tsv else ","
    if args.output is not None:
        written = write_csv(args.output, columns, table.rows, delimiter=delimiter)
        print(f"Wrote {written}", file=sys.stderr)
    else:
        print(to_delimited(columns, table.rows, delimiter=delimiter))
    return 0


if __name__ == "__main__":
    sys.exit(main())
