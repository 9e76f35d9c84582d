from collections.abc import Sequence
from datetime import tzinfo
from typing import Any

from sheetsync.core.timezone import to_zone
from sheetsync.services.datasync.base import ColumnType, TableSchema
from sheetsync.services.datasync.cells import Cell, CellKind

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_BOOLEAN_WORDS = {"true": "TRUE", "false": "FALSE"}


def format_instant(cell: Cell, tz: tzinfo) -> str:
    return to_zone(cell.value, tz).strftime(DATETIME_FORMAT)


def format_by_type(value: Any, column_type: ColumnType, tz: tzinfo) -> str:
    """
    Render a cell as text suitable for a column of the given type.

    Values that do not match the column type pass through as their
    native text so BigQuery reports the bad row instead of us guessing.
    """
    cell = Cell.of(value)
    if cell.kind is CellKind.EMPTY:
        return ""

    if column_type is ColumnType.BOOLEAN:
        if cell.kind is CellKind.BOOLEAN:
            return "TRUE" if cell.value else "FALSE"
        return _BOOLEAN_WORDS.get(cell.text.lower(), cell.text)

    if column_type is ColumnType.DATETIME:
        if cell.kind is CellKind.INSTANT:
            return format_instant(cell, tz)
        return cell.text

    if column_type in (ColumnType.INTEGER, ColumnType.FLOAT):
        return cell.text

    if cell.kind is CellKind.BOOLEAN:
        return "TRUE" if cell.value else "FALSE"
    if cell.kind is CellKind.INSTANT:
        return format_instant(cell, tz)
    return cell.text


def escape(field: str, delimiter: str) -> str:
    if '"' in field or "\r" in field or "\n" in field or delimiter in field:
        return '"' + field.replace('"', '""') + '"'
    return field


def encode_table(
    values: Sequence[Sequence[Any]],
    delimiter: str,
    schema: TableSchema,
    tz: tzinfo,
) -> str:
    """Encode header plus data rows as delimited text, one record per line."""
    if not values:
        return ""

    # The load job skips the header row, so it is written verbatim
    lines = [delimiter.join(escape(Cell.of(label).text, delimiter) for label in values[0])]
    for row in values[1:]:
        lines.append(
            delimiter.join(
                escape(format_by_type(value, schema.type_at(index), tz), delimiter)
                for index, value in enumerate(row)
            )
        )
    return "\n".join(lines)
