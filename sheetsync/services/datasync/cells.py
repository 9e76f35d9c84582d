from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any


class CellKind(str, Enum):
    EMPTY = "empty"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    INSTANT = "instant"


@dataclass(frozen=True)
class Cell:
    """A classified spreadsheet cell value."""

    kind: CellKind
    value: Any = None

    @classmethod
    def of(cls, raw: Any) -> "Cell":
        if raw is None or raw == "":
            return cls(CellKind.EMPTY)
        # bool is a subclass of int, so it has to be checked first
        if isinstance(raw, bool):
            return cls(CellKind.BOOLEAN, raw)
        if isinstance(raw, int | float):
            return cls(CellKind.NUMBER, raw)
        if isinstance(raw, date):
            return cls(CellKind.INSTANT, raw)
        if isinstance(raw, str):
            return cls(CellKind.TEXT, raw)
        return cls(CellKind.TEXT, str(raw))

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    @property
    def is_integer(self) -> bool:
        if self.kind is not CellKind.NUMBER:
            return False
        if isinstance(self.value, int):
            return True
        return float(self.value).is_integer()

    @property
    def text(self) -> str:
        """Native text form of the value, without any type coercion."""
        if self.kind is CellKind.EMPTY:
            return ""
        if self.kind is CellKind.NUMBER:
            return number_text(self.value)
        if self.kind is CellKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.kind is CellKind.INSTANT:
            return self.value.isoformat()
        return str(self.value)


def number_text(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_table(values: Sequence[Sequence[Any]]) -> list[list[Any]]:
    """
    Make every row as wide as the header.

    Short rows are padded with empty cells and cells past the header width
    are dropped.
    """
    if not values:
        return []
    width = len(values[0])
    table = [list(values[0])]
    for row in values[1:]:
        cells = list(row[:width])
        cells.extend([None] * (width - len(cells)))
        table.append(cells)
    return table


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(Cell.of(value).is_empty for value in row)
