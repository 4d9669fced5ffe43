"""Discord incoming-webhook client."""

from __future__ import annotations

from typing import Any

from ..common.http import ProviderClient


class DiscordWebhookClient(ProviderClient):
    """Posts to webhook URLs; the URL itself is the secret."""

    provider = "discord"

    async def execute(
        self, webhook_url: str, content: str, username: str | None = None
    ) -> dict[str, Any] | None:
        payload: dict[str, Any] = {"content": content}
        if username:
            payload["username"] = username
        # wait=true makes Discord return the created message instead of 204
        return await self._request("POST", webhook_url, params={"wait": "true"}, json=payload)
