"""Telegram Bot API client; authenticated by the bot token in the URL."""

from __future__ import annotations

from typing import Any

import httpx

from ...core.config import HTTPClientConfig
from ...core.errors import ExternalProviderError
from ..common.http import ProviderClient

TELEGRAM_API_URL = "https://api.telegram.org"

INVALID_TOKEN_STATUS = frozenset({401, 403, 404})


class TelegramClient(ProviderClient):
    provider = "telegram"

    def __init__(
        self,
        bot_token: str,
        *,
        config: HTTPClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(None, config=config, client=client)
        self.base_url = f"{TELEGRAM_API_URL}/bot{bot_token}"

    async def _call(self, method: str, http_method: str = "GET", **kwargs: Any) -> Any:
        body = await self._request(http_method, f"/{method}", **kwargs) or {}
        if not body.get("ok"):
            raise ExternalProviderError(
                self.provider, body.get("description") or f"{method} returned ok=false"
            )
        return body.get("result")

    async def get_updates(self, offset: int) -> list[dict[str, Any]]:
        """Updates after ``offset``; Telegram confirms everything before ``offset + 1``."""
        result = await self._call("getUpdates", params={"offset": offset + 1, "timeout": 0})
        return result if isinstance(result, list) else []

    async def send_message(
        self, chat_id: str | int, text: str, parse_mode: str | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return await self._call("sendMessage", "POST", json=payload) or {}

    async def send_photo(
        self, chat_id: str | int, photo: str, caption: str | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"chat_id": chat_id, "photo": photo}
        if caption:
            payload["caption"] = caption
        return await self._call("sendPhoto", "POST", json=payload) or {}

    async def pin_chat_message(
        self, chat_id: str | int, message_id: int, disable_notification: bool = False
    ) -> bool:
        return bool(
            await self._call(
                "pinChatMessage",
                "POST",
                json={
                    "chat_id": chat_id,
                    "message_id": message_id,
                    "disable_notification": disable_notification,
                },
            )
        )

    async def ban_chat_member(
        self,
        chat_id: str | int,
        user_id: int,
        until_date: int | None = None,
        revoke_messages: bool = False,
    ) -> bool:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "user_id": user_id,
            "revoke_messages": revoke_messages,
        }
        if until_date is not None:
            payload["until_date"] = until_date
        return bool(await self._call("banChatMember", "POST", json=payload))

    async def unban_chat_member(
        self, chat_id: str | int, user_id: int, only_if_banned: bool = False
    ) -> bool:
        return bool(
            await self._call(
                "unbanChatMember",
                "POST",
                json={"chat_id": chat_id, "user_id": user_id, "only_if_banned": only_if_banned},
            )
        )
