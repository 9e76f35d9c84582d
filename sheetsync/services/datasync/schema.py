import logging
import re
from collections.abc import Sequence
from typing import Any

from sheetsync.core.config import InferenceMode
from sheetsync.services.datasync.base import ColumnSchema, ColumnType, TableSchema
from sheetsync.services.datasync.cells import Cell, CellKind

logger = logging.getLogger(__name__)

MAX_COLUMN_NAME_LENGTH = 300
MAX_TABLE_NAME_LENGTH = 1024

_WHITESPACE = re.compile(r"\s+")
_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9_]")
_IDENTIFIER_START = re.compile(r"[A-Za-z_]")


def sanitize_column_name(label: Any, index: int) -> str:
    """
    Turn a header label into a BigQuery column name.

    Args:
        label: Raw header cell
        index: 0-based column index, used for the ``col_<n>`` fallback
    """
    text = "" if label is None else str(label).strip()
    text = _WHITESPACE.sub("_", text)
    text = _NON_IDENTIFIER.sub("", text)
    if not text:
        return f"col_{index + 1}"
    if not _IDENTIFIER_START.match(text):
        text = f"_{text}"
    return text[:MAX_COLUMN_NAME_LENGTH]


def sanitize_table_name(name: str) -> str:
    """Derive a table id from a source name, e.g. ``Sales 2024!`` -> ``Sales_2024_``."""
    text = _WHITESPACE.sub("_", name.strip())
    text = _NON_IDENTIFIER.sub("_", text)
    return text[:MAX_TABLE_NAME_LENGTH] or "sheet"


def dedupe_column_names(names: Sequence[str]) -> list[str]:
    # BigQuery column names are case-insensitive
    seen: set[str] = set()
    result = []
    for name in names:
        candidate = name
        suffix = 2
        while candidate.lower() in seen:
            tail = f"_{suffix}"
            candidate = f"{name[: MAX_COLUMN_NAME_LENGTH - len(tail)]}{tail}"
            suffix += 1
        if candidate != name:
            logger.warning(f"Column '{name}' renamed to '{candidate}' to avoid a clash")
        seen.add(candidate.lower())
        result.append(candidate)
    return result


def infer_column_type(values: Sequence[Any]) -> ColumnType:
    """Narrow a column to a non-string type only when every value agrees."""
    seen_number = seen_float = seen_bool = seen_date = seen_string = False

    for raw in values:
        cell = Cell.of(raw)
        if cell.kind is CellKind.EMPTY:
            continue
        if cell.kind is CellKind.NUMBER:
            seen_number = True
            if not cell.is_integer:
                seen_float = True
        elif cell.kind is CellKind.BOOLEAN:
            seen_bool = True
        elif cell.kind is CellKind.INSTANT:
            seen_date = True
        elif cell.text:
            seen_string = True

    if seen_string:
        return ColumnType.STRING
    if seen_bool and not (seen_number or seen_date):
        return ColumnType.BOOLEAN
    if seen_date and not (seen_number or seen_bool):
        return ColumnType.DATETIME
    if seen_number and not (seen_bool or seen_date):
        return ColumnType.FLOAT if seen_float else ColumnType.INTEGER
    return ColumnType.STRING


def infer_schema(
    header: Sequence[Any],
    rows: Sequence[Sequence[Any]],
    mode: InferenceMode = InferenceMode.BASIC,
) -> TableSchema:
    names = dedupe_column_names(
        [sanitize_column_name(label, index) for index, label in enumerate(header)]
    )

    if mode is InferenceMode.ALL_STRING:
        return TableSchema(
            columns=tuple(ColumnSchema(name=name, type=ColumnType.STRING) for name in names)
        )

    columns = []
    for index, name in enumerate(names):
        column_values = [row[index] for row in rows if index < len(row)]
        columns.append(ColumnSchema(name=name, type=infer_column_type(column_values)))

    logger.debug(
        "Inferred schema: "
        + ", ".join(f"{column.name}:{column.type.value}" for column in columns)
    )
    return TableSchema(columns=tuple(columns))
