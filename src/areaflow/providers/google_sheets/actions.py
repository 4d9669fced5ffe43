"""Google Sheets actions: rows, cells, ranges and whole spreadsheets."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from ...core.errors import NotFoundError
from ...core.logger import get_logger
from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import GoogleSheetsClient, spreadsheet_url
from .ranges import column_index, parse_grid_range, split_sheet

logger = get_logger("providers.google_sheets")

DEFAULT_SHEET = "Sheet1"


class SpreadsheetInput(CapabilityConfig):
    spreadsheet_id: str = Field(..., min_length=1, description="Spreadsheet id from its URL")


class RangeInput(SpreadsheetInput):
    range: str = Field(..., min_length=1, description="A1 range, e.g. Sheet1!A1:C10")


class AddRowConfig(SpreadsheetInput):
    sheet_name: str | None = Field(default=None, description="Sheet tab (first tab when unset)")
    values: list[Any] = Field(..., min_length=1, description="Cell values, left to right")

    @field_validator("values", mode="before")
    @classmethod
    def split_values(cls, value: Any) -> Any:
        # "a;b;c" is how a templated string carries several cells
        if isinstance(value, str):
            return [cell.strip() for cell in value.split(";")]
        return value


class CreateSpreadsheetConfig(CapabilityConfig):
    title: str = Field(..., min_length=1, description="Spreadsheet title")


class WriteInCellConfig(RangeInput):
    value: Any = Field(..., description="Value to write")


class CreateSheetConfig(SpreadsheetInput):
    sheet_title: str = Field(..., min_length=1, description="Title of the new tab")


class DuplicateSheetConfig(SpreadsheetInput):
    new_title: str = Field(..., min_length=1, description="Title of the copy")


class FindReplaceConfig(SpreadsheetInput):
    find: str = Field(..., min_length=1, description="Text to look for")
    replacement: str = Field(default="", description="Replacement text")
    sheet_id: int | None = Field(default=None, description="Only this tab (all tabs when unset)")


class SortRangeConfig(RangeInput):
    sort_column: str | None = Field(
        default=None, description="Column letter to sort by (first column of the range)"
    )
    ascending: bool = Field(default=True, description="Sort A to Z")


class GoogleSheetsAction(Action):
    requires_credentials = True

    def client(self, context: ActionContext) -> GoogleSheetsClient:
        return GoogleSheetsClient(context.access_token, config=context.http_config)


class AddRowAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_ADD_ROW
    name = "Add Row"
    description = "Append a row after the last filled row of a sheet"
    config_model = AddRowConfig

    async def execute(self, config: AddRowConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            sheet_name = config.sheet_name
            if not sheet_name:
                sheets = await client.get_sheets(config.spreadsheet_id)
                sheet_name = sheets[0].get("title") if sheets else DEFAULT_SHEET
            appended = await client.append_row(
                config.spreadsheet_id, f"{sheet_name}!A:Z", config.values
            )
        updates = appended.get("updates") or {}
        return {
            "spreadsheetId": config.spreadsheet_id,
            "updatedRange": updates.get("updatedRange"),
            "updatedRows": updates.get("updatedRows", 0),
        }


class CreateSpreadsheetAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_CREATE_SPREADSHEET
    name = "Create Spreadsheet"
    description = "Create an empty spreadsheet"
    config_model = CreateSpreadsheetConfig

    async def execute(
        self, config: CreateSpreadsheetConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            created = await client.create_spreadsheet(config.title)
        spreadsheet_id = created.get("spreadsheetId")
        return {
            "spreadsheetId": spreadsheet_id,
            "spreadsheetUrl": created.get("spreadsheetUrl") or spreadsheet_url(spreadsheet_id),
            "title": config.title,
        }


class WriteInCellAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_WRITE_IN_CELL
    name = "Write In Cell"
    description = "Write a value into a cell"
    config_model = WriteInCellConfig

    async def execute(self, config: WriteInCellConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            updated = await client.update_cell(config.spreadsheet_id, config.range, config.value)
        return {
            "updatedRange": updated.get("updatedRange"),
            "updatedCells": updated.get("updatedCells", 0),
        }


class CreateSheetAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_CREATE_SHEET
    name = "Create Sheet"
    description = "Add a tab to a spreadsheet"
    config_model = CreateSheetConfig

    async def execute(self, config: CreateSheetConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            reply = await client.batch_update(
                config.spreadsheet_id,
                [{"addSheet": {"properties": {"title": config.sheet_title}}}],
            )
        replies = reply.get("replies") or [{}]
        properties = (replies[0].get("addSheet") or {}).get("properties") or {}
        return {"sheetId": properties.get("sheetId"), "title": config.sheet_title}


class ClearInRangeAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_CLEAR_IN_RANGE
    name = "Clear Range"
    description = "Clear the values of a range, keeping its formatting"
    config_model = RangeInput

    async def execute(self, config: RangeInput, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            cleared = await client.clear_range(config.spreadsheet_id, config.range)
        return {"clearedRange": cleared.get("clearedRange", config.range)}


class DuplicateSheetAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_DUPLICATE_SHEET
    name = "Duplicate Spreadsheet"
    description = "Copy every tab of a spreadsheet into a new spreadsheet"
    config_model = DuplicateSheetConfig

    async def execute(
        self, config: DuplicateSheetConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            sources = await client.get_sheets(config.spreadsheet_id)
            created = await client.create_spreadsheet(config.new_title)
            new_id = created["spreadsheetId"]
            blank = [
                sheet.get("properties", {}).get("sheetId") for sheet in created.get("sheets") or []
            ]
            for source in sources:
                await client.copy_sheet_to(config.spreadsheet_id, source["sheetId"], new_id)
            # drop the empty tab every new spreadsheet starts with
            if sources and blank and blank[0] is not None:
                await client.batch_update(new_id, [{"deleteSheet": {"sheetId": blank[0]}}])
        logger.info("Copied %d sheet(s) into %s", len(sources), new_id)
        return {
            "originalSpreadsheetId": config.spreadsheet_id,
            "newSpreadsheetId": new_id,
            "title": config.new_title,
            "spreadsheetUrl": spreadsheet_url(new_id),
        }


class FindReplaceAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_FIND_TO_REPLACE
    name = "Find and Replace"
    description = "Replace text across one tab or the whole spreadsheet"
    config_model = FindReplaceConfig

    async def execute(self, config: FindReplaceConfig, context: ActionContext) -> dict[str, Any]:
        request: dict[str, Any] = {"find": config.find, "replacement": config.replacement}
        if config.sheet_id is None:
            request["allSheets"] = True
        else:
            request["sheetId"] = config.sheet_id
        async with self.client(context) as client:
            reply = await client.batch_update(config.spreadsheet_id, [{"findReplace": request}])
        replies = reply.get("replies") or [{}]
        found = replies[0].get("findReplace") or {}
        return {"occurrencesChanged": found.get("occurrencesChanged", 0)}


class SortRangeAction(GoogleSheetsAction):
    kind = ActionKind.GOOGLE_SHEETS_SORT_DATA_IN_RANGE
    name = "Sort Range"
    description = "Sort the rows of a range by one column"
    config_model = SortRangeConfig

    async def execute(self, config: SortRangeConfig, context: ActionContext) -> dict[str, Any]:
        sheet_title, cells = split_sheet(config.range)
        grid = parse_grid_range(cells)
        sort_index = (
            column_index(config.sort_column) if config.sort_column else grid.start_column
        )
        async with self.client(context) as client:
            sheets = await client.get_sheets(config.spreadsheet_id)
            if sheet_title:
                sheet = next((s for s in sheets if s.get("title") == sheet_title), None)
                if sheet is None:
                    raise NotFoundError("sheet", sheet_title)
            elif sheets:
                sheet = sheets[0]
            else:
                raise NotFoundError("sheet", config.spreadsheet_id)
            await client.batch_update(
                config.spreadsheet_id,
                [
                    {
                        "sortRange": {
                            "range": grid.to_request(sheet["sheetId"]),
                            "sortSpecs": [
                                {
                                    "dimensionIndex": sort_index,
                                    "sortOrder": "ASCENDING" if config.ascending else "DESCENDING",
                                }
                            ],
                        }
                    }
                ],
            )
        return {"sorted": True, "range": config.range, "sheetId": sheet["sheetId"]}
