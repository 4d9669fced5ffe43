"""A1 notation helpers.

Sheets batch requests address cells by zero-based grid indexes, while users
write ranges such as ``Sheet1!A2:D20``. End indexes are exclusive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ...core.errors import ValidationError

_CELL = re.compile(r"^([A-Za-z]+)(\d+)$")


def column_index(letters: str) -> int:
    """Zero-based index of a column letter: ``A`` is 0, ``AA`` is 26."""
    if not letters or not letters.isalpha():
        raise ValidationError(f"Invalid column: {letters!r}", field="sortColumn")
    index = 0
    for letter in letters.upper():
        index = index * 26 + (ord(letter) - ord("A") + 1)
    return index - 1


def cell_index(cell: str) -> tuple[int, int]:
    """Zero-based ``(row, column)`` of a cell such as ``B3``."""
    matched = _CELL.match(cell.strip())
    if matched is None:
        raise ValidationError(f"Invalid A1 cell: {cell!r}", field="range")
    return int(matched.group(2)) - 1, column_index(matched.group(1))


def split_sheet(a1_range: str) -> tuple[str | None, str]:
    """Separate the optional sheet title from the cell part of a range."""
    if "!" not in a1_range:
        return None, a1_range
    sheet, cells = a1_range.rsplit("!", 1)
    # quoted titles: 'My Sheet'!A1:B2
    return sheet.strip("'"), cells


@dataclass(frozen=True)
class GridRange:
    start_row: int
    end_row: int
    start_column: int
    end_column: int

    def to_request(self, sheet_id: int) -> dict[str, int]:
        return {
            "sheetId": sheet_id,
            "startRowIndex": self.start_row,
            "endRowIndex": self.end_row,
            "startColumnIndex": self.start_column,
            "endColumnIndex": self.end_column,
        }


def parse_grid_range(cells: str) -> GridRange:
    """Grid indexes of a two-cell range such as ``A2:D20``."""
    parts = cells.split(":")
    if len(parts) != 2:
        raise ValidationError(f"Invalid range: {cells!r}, expected e.g. A1:D10", field="range")
    start_row, start_column = cell_index(parts[0])
    end_row, end_column = cell_index(parts[1])
    return GridRange(start_row, end_row + 1, start_column, end_column + 1)
