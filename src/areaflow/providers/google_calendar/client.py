"""Google Calendar v3 client."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from ...core.errors import ExternalProviderError
from ..common.http import ProviderClient

CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"

MAX_EVENT_PAGES = 20


def is_sync_token_expired(exc: ExternalProviderError) -> bool:
    """True when Google no longer accepts the stored sync token."""
    return exc.status_code == 410 or "synctoken" in str(exc).lower()


class GoogleCalendarClient(ProviderClient):
    provider = "google-calendar"
    base_url = CALENDAR_API_URL

    def _events_path(self, calendar_id: str) -> str:
        return f"/calendars/{quote(calendar_id, safe='@.')}/events"

    async def sync_events(
        self, calendar_id: str, sync_token: str | None = None, page_size: int = 250
    ) -> dict[str, Any]:
        """Changed events since ``sync_token``, or every event when it is None.

        Returns ``{"items": [...], "nextSyncToken": ...}`` with all pages merged.
        Cancelled events are included so deletions can be reported.

        Raises:
            ExternalProviderError: 410 once the sync token has expired
        """
        params: dict[str, Any] = {"maxResults": page_size, "showDeleted": "true"}
        if sync_token:
            params["syncToken"] = sync_token

        items: list[dict[str, Any]] = []
        next_sync_token = sync_token
        for _ in range(MAX_EVENT_PAGES):
            data = await self._request(
                "GET", self._events_path(calendar_id), params=params
            ) or {}
            items.extend(data.get("items") or [])
            next_sync_token = data.get("nextSyncToken") or next_sync_token
            token = data.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token
        return {"items": items, "nextSyncToken": next_sync_token}

    async def insert_event(self, calendar_id: str, event: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", self._events_path(calendar_id), json=event) or {}

    async def quick_add(self, calendar_id: str, text: str) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self._events_path(calendar_id)}/quickAdd", params={"text": text}
        ) or {}
