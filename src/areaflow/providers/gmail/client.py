"""Gmail REST client for the signed-in mailbox (``users/me``)."""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any

from ...core.errors import ExternalProviderError
from ..common.http import ProviderClient

GMAIL_API_URL = "https://gmail.googleapis.com/gmail/v1/users/me"

# Marks mail sent by the engine itself so the receive trigger never loops on it
GENERATED_HEADER = "X-Area-Generated"

MAX_HISTORY_PAGES = 10


def is_history_expired(exc: ExternalProviderError) -> bool:
    """True when Gmail no longer knows the start history id."""
    return exc.status_code == 404 or "not found" in str(exc).lower()


def _b64decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8", errors="replace")


def _collect_bodies(part: dict[str, Any], found: dict[str, str]) -> None:
    mime_type = part.get("mimeType", "")
    data = (part.get("body") or {}).get("data")
    if data and mime_type in ("text/plain", "text/html") and mime_type not in found:
        found[mime_type] = _b64decode(data)
    for child in part.get("parts") or []:
        _collect_bodies(child, found)


def parse_message(message: dict[str, Any]) -> dict[str, Any]:
    """Flatten a ``format=full`` message into headers and decoded bodies."""
    payload = message.get("payload") or {}
    headers = {
        header["name"].lower(): header.get("value", "")
        for header in payload.get("headers") or []
        if header.get("name")
    }
    bodies: dict[str, str] = {}
    _collect_bodies(payload, bodies)

    date = headers.get("date")
    if not date and message.get("internalDate"):
        date = datetime.fromtimestamp(
            int(message["internalDate"]) / 1000, tz=timezone.utc
        ).isoformat()

    return {
        "id": message.get("id", ""),
        "threadId": message.get("threadId", ""),
        "labelIds": list(message.get("labelIds") or []),
        "from": headers.get("from", ""),
        "to": headers.get("to", ""),
        "subject": headers.get("subject", ""),
        "date": date or "",
        "body": bodies.get("text/plain", message.get("snippet", "")),
        "htmlBody": bodies.get("text/html", ""),
        "generated": bool(headers.get(GENERATED_HEADER.lower())),
    }


def build_raw_message(
    to: str,
    subject: str,
    body: str,
    *,
    cc: list[str] | None = None,
    html: bool = False,
) -> str:
    """RFC 822 message, base64url encoded as the ``raw`` field expects."""
    message = EmailMessage()
    message["To"] = to
    if cc:
        message["Cc"] = ", ".join(cc)
    message["Subject"] = subject
    message[GENERATED_HEADER] = "true"
    message.set_content(body, subtype="html" if html else "plain")
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")


class GmailClient(ProviderClient):
    provider = "gmail"
    base_url = GMAIL_API_URL

    async def get_profile(self) -> dict[str, Any]:
        return await self._request("GET", "/profile") or {}

    async def list_history(
        self, start_history_id: str, label_id: str | None = None
    ) -> dict[str, Any]:
        """Mailbox history after ``start_history_id``, all pages merged.

        Returns ``{"history": [...], "historyId": <current mailbox id>}``.

        Raises:
            ExternalProviderError: 404 when the start id has expired
        """
        params: dict[str, Any] = {
            "startHistoryId": start_history_id,
            "historyTypes": "messageAdded",
        }
        if label_id:
            params["labelId"] = label_id

        history: list[dict[str, Any]] = []
        latest = start_history_id
        for _ in range(MAX_HISTORY_PAGES):
            data = await self._request("GET", "/history", params=params) or {}
            history.extend(data.get("history") or [])
            latest = data.get("historyId") or latest
            token = data.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token
        return {"history": history, "historyId": str(latest)}

    async def list_messages(
        self,
        query: str | None = None,
        max_results: int = 10,
        label_ids: list[str] | None = None,
    ) -> dict[str, Any]:
        """One page of message ids matching a Gmail search query."""
        params: dict[str, Any] = {"maxResults": max_results}
        if query:
            params["q"] = query
        if label_ids:
            params["labelIds"] = label_ids
        return await self._request("GET", "/messages", params=params) or {}

    async def get_message(self, message_id: str, format: str = "full") -> dict[str, Any]:
        return await self._request(
            "GET", f"/messages/{message_id}", params={"format": format}
        ) or {}

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        *,
        cc: list[str] | None = None,
        html: bool = False,
    ) -> dict[str, Any]:
        raw = build_raw_message(to, subject, body, cc=cc, html=html)
        return await self._request("POST", "/messages/send", json={"raw": raw}) or {}

    async def watch(self, topic_name: str, label_ids: list[str]) -> dict[str, Any]:
        """Start (or renew) push notifications to a Pub/Sub topic.

        Returns ``historyId`` and ``expiration`` (epoch milliseconds, as a string).
        """
        return await self._request(
            "POST",
            "/watch",
            json={
                "topicName": topic_name,
                "labelIds": label_ids,
                "labelFilterBehavior": "include",
            },
        ) or {}

    async def stop(self) -> None:
        await self._request("POST", "/stop")
