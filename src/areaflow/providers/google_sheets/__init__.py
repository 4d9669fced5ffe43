"""Google Sheets: row, cell, range and spreadsheet actions."""

from .actions import (
    AddRowAction,
    ClearInRangeAction,
    CreateSheetAction,
    CreateSpreadsheetAction,
    DuplicateSheetAction,
    FindReplaceAction,
    SortRangeAction,
    WriteInCellAction,
)
from .client import GoogleSheetsClient

__all__ = [
    "AddRowAction",
    "ClearInRangeAction",
    "CreateSheetAction",
    "CreateSpreadsheetAction",
    "DuplicateSheetAction",
    "FindReplaceAction",
    "GoogleSheetsClient",
    "SortRangeAction",
    "WriteInCellAction",
]
