"""Telegram ``getUpdates`` polling, partitioned by bot token.

Telegram bots carry their own token in the trigger config instead of a
stored credential, so the update offset is kept in engine memory per token.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from typing import Any

from ...core.config import HTTPClientConfig
from ...core.errors import CredentialError, ExternalProviderError, ValidationError
from ...core.logger import get_logger
from ...engine.cursors import max_key
from ...engine.polling import DetectedEvent, PollingAdapter, PollPartition, PollTarget
from ...registry.capabilities import Registration
from .client import INVALID_TOKEN_STATUS, TelegramClient
from .triggers import TelegramTrigger

logger = get_logger("providers.telegram.polling")

OFFSET = "updateOffset"


def token_fingerprint(bot_token: str) -> str:
    """Stable, log-safe identifier for a bot token."""
    return hashlib.sha256(bot_token.encode("utf-8")).hexdigest()[:12]


def _update_id(update: dict[str, Any]) -> int:
    return int(update["update_id"])


class TelegramPollingAdapter(PollingAdapter):
    provider = "telegram"
    requires_credentials = False

    def __init__(
        self, triggers: Sequence[TelegramTrigger], http_config: HTTPClientConfig | None = None
    ) -> None:
        super().__init__(triggers)
        self.http_config = http_config or HTTPClientConfig()
        self._by_id = {trigger.id: trigger for trigger in triggers}

    def partition_key(self, registration: Registration) -> str | None:
        token = registration.config.get("botToken") or registration.config.get("bot_token")
        if not token:
            return None
        return f"bot:{token_fingerprint(token)}"

    @staticmethod
    def _bot_token(partition: PollPartition) -> str:
        for registration in partition.registrations.values():
            token = registration.config.get("botToken") or registration.config.get("bot_token")
            if token:
                return token
        raise CredentialError(f"No bot token for {partition.key}")

    def connect(self, partition: PollPartition) -> TelegramClient:
        return TelegramClient(self._bot_token(partition), config=self.http_config)

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        configs: dict[int, Any] = {}
        for trigger_id, workflow_ids in partition.tasks.items():
            trigger = self._by_id[trigger_id]
            for workflow_id in workflow_ids:
                try:
                    configs[workflow_id] = trigger.parse_config(
                        partition.registrations[workflow_id].config
                    )
                except ValidationError as exc:
                    logger.warning("Ignoring workflow %s: %s", workflow_id, exc)
        return [
            PollTarget(
                key=OFFSET,
                workflows={tid: list(ids) for tid, ids in partition.tasks.items()},
                params={"configs": configs},
            )
        ]

    async def fetch_snapshot(
        self, client: TelegramClient, target: PollTarget, cursor: Any
    ) -> list[dict[str, Any]]:
        try:
            return await client.get_updates(int(cursor or 0))
        except ExternalProviderError as exc:
            if exc.status_code in INVALID_TOKEN_STATUS:
                logger.warning("Telegram rejected bot token (%s), skipping", exc.status_code)
                return []
            raise

    def seed(self, snapshot: list[dict[str, Any]], target: PollTarget) -> Any:
        return max_key(snapshot, _update_id, default=0)

    def diff(
        self, cursor: Any, snapshot: list[dict[str, Any]], target: PollTarget
    ) -> list[DetectedEvent]:
        configs = target.params.get("configs", {})
        events: list[DetectedEvent] = []
        for update in sorted(snapshot, key=_update_id):
            if _update_id(update) <= int(cursor):
                continue
            message = update.get("message") or update.get("channel_post")
            is_edit = message is None
            if is_edit:
                message = update.get("edited_message") or update.get("edited_channel_post")
            if not message:
                continue

            for trigger_id, workflow_ids in target.workflows.items():
                trigger = self._by_id[trigger_id]
                if trigger.handles_edits != is_edit:
                    continue
                for workflow_id in workflow_ids:
                    config = configs.get(workflow_id)
                    if config is None:
                        continue
                    payload = trigger.payload_for(message, config)
                    if payload is not None:
                        events.append(
                            DetectedEvent(trigger_id, payload, workflow_ids=[workflow_id])
                        )
        return events

    def advance(
        self,
        cursor: Any,
        snapshot: list[dict[str, Any]],
        events: list[DetectedEvent],
        target: PollTarget,
    ) -> Any:
        return max(int(cursor), max_key(snapshot, _update_id, default=0))
