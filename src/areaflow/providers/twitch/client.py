"""Twitch Helix API client."""

from __future__ import annotations

from typing import Any

import httpx

from ...core.config import HTTPClientConfig
from ...core.errors import ExternalProviderError
from ..common.http import ProviderClient

TWITCH_API_URL = "https://api.twitch.tv/helix"


class TwitchClient(ProviderClient):
    """Helix requires the app's ``Client-Id`` header next to the bearer token."""

    provider = "twitch"
    base_url = TWITCH_API_URL

    def __init__(
        self,
        access_token: str | None = None,
        *,
        client_id: str | None = None,
        config: HTTPClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(access_token, config=config, client=client)
        self.client_id = client_id
        self._user: dict[str, Any] | None = None

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.client_id:
            headers["Client-Id"] = self.client_id
        return headers

    @staticmethod
    def _first(data: Any) -> dict[str, Any] | None:
        items = (data or {}).get("data") or []
        return items[0] if items else None

    async def get_user(self) -> dict[str, Any]:
        """The authenticated user, cached for the client's lifetime."""
        if self._user is None:
            user = self._first(await self._request("GET", "/users"))
            if user is None:
                raise ExternalProviderError(self.provider, "Authenticated user not found")
            self._user = user
        return self._user

    async def get_stream(self, user_id: str) -> dict[str, Any] | None:
        """The live stream for a user, or None when offline."""
        return self._first(await self._request("GET", "/streams", params={"user_id": user_id}))

    async def get_followers(self, broadcaster_id: str) -> list[dict[str, Any]]:
        """Followers, most recent first."""
        data = await self._request(
            "GET", "/channels/followers", params={"broadcaster_id": broadcaster_id}
        )
        return (data or {}).get("data") or []

    async def update_channel(self, broadcaster_id: str, **fields: Any) -> None:
        await self._request(
            "PATCH", "/channels", params={"broadcaster_id": broadcaster_id}, json=fields
        )

    async def send_chat_message(self, broadcaster_id: str, sender_id: str, message: str) -> None:
        await self._request(
            "POST",
            "/chat/messages",
            json={"broadcaster_id": broadcaster_id, "sender_id": sender_id, "message": message},
        )

    async def create_stream_marker(self, user_id: str, description: str) -> dict[str, Any]:
        data = await self._request(
            "POST", "/streams/markers", json={"user_id": user_id, "description": description}
        )
        return self._first(data) or {}
