"""Google Sheets v4 client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from ..common.http import ProviderClient

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"

USER_ENTERED = "USER_ENTERED"


def spreadsheet_url(spreadsheet_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"


class GoogleSheetsClient(ProviderClient):
    provider = "google_sheets"
    base_url = SHEETS_API_URL

    def _values_path(self, spreadsheet_id: str, a1_range: str) -> str:
        return f"/{spreadsheet_id}/values/{quote(a1_range, safe='!:')}"

    async def get_sheets(self, spreadsheet_id: str) -> list[dict[str, Any]]:
        """``properties`` of every sheet (tab), in display order."""
        data = await self._request(
            "GET", f"/{spreadsheet_id}", params={"fields": "sheets.properties"}
        ) or {}
        return [sheet.get("properties") or {} for sheet in data.get("sheets") or []]

    async def create_spreadsheet(self, title: str) -> dict[str, Any]:
        return await self._request("POST", "", json={"properties": {"title": title}}) or {}

    async def append_row(
        self, spreadsheet_id: str, a1_range: str, values: list[Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._values_path(spreadsheet_id, a1_range)}:append",
            params={"valueInputOption": USER_ENTERED},
            json={"values": [values]},
        ) or {}

    async def update_cell(self, spreadsheet_id: str, a1_range: str, value: Any) -> dict[str, Any]:
        return await self._request(
            "PUT",
            self._values_path(spreadsheet_id, a1_range),
            params={"valueInputOption": USER_ENTERED},
            json={"values": [[value]]},
        ) or {}

    async def clear_range(self, spreadsheet_id: str, a1_range: str) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self._values_path(spreadsheet_id, a1_range)}:clear", json={}
        ) or {}

    async def batch_update(
        self, spreadsheet_id: str, requests: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/{spreadsheet_id}:batchUpdate", json={"requests": requests}
        ) or {}

    async def copy_sheet_to(
        self, spreadsheet_id: str, sheet_id: int, destination_id: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/{spreadsheet_id}/sheets/{sheet_id}:copyTo",
            json={"destinationSpreadsheetId": destination_id},
        ) or {}
