from __future__ import annotations

import csv
import io
import json
from typing import Any, Union

OUTPUT_FORMATS = ["json", "jsonl", "csv", "tsv", "table"]


def tabular_items(data: Any) -> list[Any] | None:
    """Return the rows of a list-like payload: a list, or an object wrapping exactly one list."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and len(data) == 1:
        (only,) = data.values()
        if isinstance(only, list):
            return only
    return None


def _cell(value: Any) -> str:
    return json.dumps(value) if isinstance(value, (dict, list)) else str(value)


def _grid(items: list[Any]) -> tuple[list[str], list[list[str]]]:
    """Columns in first-seen key order, and one row of cells per item.

    Items that are not objects go into a single ``value`` column.
    """
    columns = list(dict.fromkeys(key for item in items if isinstance(item, dict) for key in item)) or ["value"]
    rows = []
    for item in items:
        if isinstance(item, dict):
            rows.append([_cell(item[c]) if c in item else "" for c in columns])
        else:
            rows.append([_cell(item)] + [""] * (len(columns) - 1))
    return columns, rows


def format_delimited(items: list[Any], *, delimiter: str = ",") -> str:
    if not items:
        return ""
    columns, rows = _grid(items)
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows(rows)
    return buf.getvalue()


def format_table(items: list[Any]) -> str:
    """Render items as a markdown table."""
    if not items:
        return ""
    columns, rows = _grid(items)
    widths = [max(len(cell) for cell in column) for column in zip(columns, *rows)]

    def line(cells: list[str]) -> str:
        return "| " + " | ".join(cell.ljust(width) for cell, width in zip(cells, widths)) + " |\n"

    separator = "|" + "|".join("-" * (width + 2) for width in widths) + "|\n"
    return line(columns) + separator + "".join(line(row) for row in rows)


def render_data(data: Any, *, output_format: str = "json", pretty: bool = True) -> Union[str, bytes]:
    """Render parsed response data for the terminal.

    Bytes stay bytes. JSON values are indented unless ``pretty`` is off; list-like
    values can also be rendered as jsonl, csv, tsv or a markdown table.
    """
    if data is None:
        return ""
    if isinstance(data, (str, bytes)):
        return data
    items = tabular_items(data) if output_format != "json" else None
    if items is None:
        return json.dumps(data, indent=2 if pretty else None) + "\n"
    if output_format == "table":
        return format_table(items)
    if output_format == "jsonl":
        return "".join(json.dumps(item) + "\n" for item in items)
    return format_delimited(items, delimiter="\t" if output_format == "tsv" else ",")
