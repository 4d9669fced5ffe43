"""Tests for the Google Sheets provider."""

import json

import pytest
from pytest_httpx import HTTPXMock

from areaflow.core import NotFoundError, ValidationError
from areaflow.providers.google_sheets import (
    AddRowAction,
    ClearInRangeAction,
    CreateSheetAction,
    CreateSpreadsheetAction,
    DuplicateSheetAction,
    FindReplaceAction,
    SortRangeAction,
    WriteInCellAction,
)
from areaflow.providers.google_sheets.ranges import (
    GridRange,
    column_index,
    parse_grid_range,
    split_sheet,
)

API = "https://sheets.googleapis.com/v4/spreadsheets"
SHEET = "sheet-1"
METADATA = f"{API}/{SHEET}?fields=sheets.properties"


def _sheets(*titles):
    return {
        "sheets": [
            {"properties": {"sheetId": index * 100, "title": title}}
            for index, title in enumerate(titles)
        ]
    }


def _body(httpx_mock, index=-1):
    return json.loads(httpx_mock.get_requests()[index].read())


class TestRanges:
    def test_column_index(self):
        assert column_index("A") == 0
        assert column_index("z") == 25
        assert column_index("AA") == 26
        assert column_index("AZ") == 51

    def test_parse_grid_range_is_end_exclusive(self):
        assert parse_grid_range("B2:D10") == GridRange(1, 10, 1, 4)

    def test_split_sheet(self):
        assert split_sheet("Data!A1:B2") == ("Data", "A1:B2")
        assert split_sheet("'Q1 Sales'!A1:B2") == ("Q1 Sales", "A1:B2")
        assert split_sheet("A1:B2") == (None, "A1:B2")

    @pytest.mark.parametrize("cells", ["A1", "A1:B2:C3", "1A:B2", "A:B"])
    def test_invalid_ranges(self, cells):
        with pytest.raises(ValidationError):
            parse_grid_range(cells)


class TestRowsAndCells:
    @pytest.mark.anyio
    async def test_add_row_defaults_to_first_sheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(url=METADATA, json=_sheets("Leads", "Archive"))
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/{SHEET}/values/Leads!A:Z:append?valueInputOption=USER_ENTERED",
            json={"updates": {"updatedRange": "Leads!A5:C5", "updatedRows": 1}},
        )
        action = AddRowAction()
        config = action.parse_config({"spreadsheetId": SHEET, "values": "Ada; ada@x.io ;42"})

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {"spreadsheetId": SHEET, "updatedRange": "Leads!A5:C5", "updatedRows": 1}
        assert _body(httpx_mock) == {"values": [["Ada", "ada@x.io", "42"]]}

    @pytest.mark.anyio
    async def test_add_row_to_named_sheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/{SHEET}/values/Archive!A:Z:append?valueInputOption=USER_ENTERED",
            json={"updates": {"updatedRange": "Archive!A2:B2", "updatedRows": 1}},
        )
        action = AddRowAction()
        config = action.parse_config(
            {"spreadsheetId": SHEET, "sheetName": "Archive", "values": ["x", 1]}
        )

        result = await action.execute(config, action_context("google_sheets"))

        assert result["updatedRange"] == "Archive!A2:B2"
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.anyio
    async def test_write_in_cell(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="PUT",
            url=f"{API}/{SHEET}/values/Leads!B2?valueInputOption=USER_ENTERED",
            json={"updatedRange": "Leads!B2", "updatedCells": 1},
        )
        action = WriteInCellAction()
        config = action.parse_config({"spreadsheetId": SHEET, "range": "Leads!B2", "value": 7})

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {"updatedRange": "Leads!B2", "updatedCells": 1}
        assert _body(httpx_mock) == {"values": [[7]]}

    @pytest.mark.anyio
    async def test_clear_range(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/{SHEET}/values/Leads!A2:C9:clear",
            json={"clearedRange": "Leads!A2:C9"},
        )
        action = ClearInRangeAction()
        config = action.parse_config({"spreadsheetId": SHEET, "range": "Leads!A2:C9"})

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {"clearedRange": "Leads!A2:C9"}


class TestSpreadsheets:
    @pytest.mark.anyio
    async def test_create_spreadsheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST",
            url=API,
            json={"spreadsheetId": "new", "spreadsheetUrl": "https://docs.google.com/new"},
        )
        action = CreateSpreadsheetAction()

        result = await action.execute(
            action.parse_config({"title": "Budget"}), action_context("google_sheets")
        )

        assert result == {
            "spreadsheetId": "new",
            "spreadsheetUrl": "https://docs.google.com/new",
            "title": "Budget",
        }
        assert _body(httpx_mock) == {"properties": {"title": "Budget"}}

    @pytest.mark.anyio
    async def test_create_sheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/{SHEET}:batchUpdate",
            json={"replies": [{"addSheet": {"properties": {"sheetId": 55, "title": "Q3"}}}]},
        )
        action = CreateSheetAction()
        config = action.parse_config({"spreadsheetId": SHEET, "sheetTitle": "Q3"})

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {"sheetId": 55, "title": "Q3"}
        assert _body(httpx_mock) == {"requests": [{"addSheet": {"properties": {"title": "Q3"}}}]}

    @pytest.mark.anyio
    async def test_duplicate_copies_every_sheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(url=METADATA, json=_sheets("Leads", "Archive"))
        httpx_mock.add_response(
            method="POST",
            url=API,
            json={"spreadsheetId": "copy", "sheets": [{"properties": {"sheetId": 0}}]},
        )
        httpx_mock.add_response(
            method="POST", url=f"{API}/{SHEET}/sheets/0:copyTo", json={"sheetId": 11}
        )
        httpx_mock.add_response(
            method="POST", url=f"{API}/{SHEET}/sheets/100:copyTo", json={"sheetId": 12}
        )
        httpx_mock.add_response(method="POST", url=f"{API}/copy:batchUpdate", json={})
        action = DuplicateSheetAction()
        config = action.parse_config({"spreadsheetId": SHEET, "newTitle": "Backup"})

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {
            "originalSpreadsheetId": SHEET,
            "newSpreadsheetId": "copy",
            "title": "Backup",
            "spreadsheetUrl": "https://docs.google.com/spreadsheets/d/copy/edit",
        }
        assert _body(httpx_mock, 2) == {"destinationSpreadsheetId": "copy"}
        assert _body(httpx_mock) == {"requests": [{"deleteSheet": {"sheetId": 0}}]}


class TestBatchEdits:
    @pytest.mark.anyio
    async def test_find_replace_across_all_sheets(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/{SHEET}:batchUpdate",
            json={"replies": [{"findReplace": {"occurrencesChanged": 3}}]},
        )
        action = FindReplaceAction()
        config = action.parse_config(
            {"spreadsheetId": SHEET, "find": "TODO", "replacement": "DONE"}
        )

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {"occurrencesChanged": 3}
        assert _body(httpx_mock) == {
            "requests": [
                {"findReplace": {"find": "TODO", "replacement": "DONE", "allSheets": True}}
            ]
        }

    @pytest.mark.anyio
    async def test_find_replace_in_one_sheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST", url=f"{API}/{SHEET}:batchUpdate", json={"replies": [{}]}
        )
        action = FindReplaceAction()
        config = action.parse_config({"spreadsheetId": SHEET, "find": "a", "sheetId": 0})

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {"occurrencesChanged": 0}
        request = _body(httpx_mock)["requests"][0]["findReplace"]
        assert request == {"find": "a", "replacement": "", "sheetId": 0}

    @pytest.mark.anyio
    async def test_sort_range_on_named_sheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(url=METADATA, json=_sheets("Leads", "Archive"))
        httpx_mock.add_response(method="POST", url=f"{API}/{SHEET}:batchUpdate", json={})
        action = SortRangeAction()
        config = action.parse_config(
            {
                "spreadsheetId": SHEET,
                "range": "Archive!A2:D20",
                "sortColumn": "C",
                "ascending": False,
            }
        )

        result = await action.execute(config, action_context("google_sheets"))

        assert result == {"sorted": True, "range": "Archive!A2:D20", "sheetId": 100}
        assert _body(httpx_mock) == {
            "requests": [
                {
                    "sortRange": {
                        "range": {
                            "sheetId": 100,
                            "startRowIndex": 1,
                            "endRowIndex": 20,
                            "startColumnIndex": 0,
                            "endColumnIndex": 4,
                        },
                        "sortSpecs": [{"dimensionIndex": 2, "sortOrder": "DESCENDING"}],
                    }
                }
            ]
        }

    @pytest.mark.anyio
    async def test_sort_unknown_sheet(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(url=METADATA, json=_sheets("Leads"))
        action = SortRangeAction()
        config = action.parse_config({"spreadsheetId": SHEET, "range": "Missing!A1:B2"})

        with pytest.raises(NotFoundError):
            await action.execute(config, action_context("google_sheets"))

    @pytest.mark.anyio
    async def test_sort_rejects_bad_range_before_calling_api(self, action_context):
        action = SortRangeAction()
        config = action.parse_config({"spreadsheetId": SHEET, "range": "A1"})

        with pytest.raises(ValidationError):
            await action.execute(config, action_context("google_sheets"))
