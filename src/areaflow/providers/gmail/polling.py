"""Gmail history polling; the fallback path for receive-email when push is off."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ...core.errors import ExternalProviderError
from ...core.logger import get_logger
from ...engine.polling import CursorExpired, DetectedEvent, PollPartition, PollTarget
from ..common.adapter import CredentialClientAdapter
from .client import GmailClient, is_history_expired, parse_message
from .triggers import ReceiveEmailTrigger, email_payload

logger = get_logger("providers.gmail.polling")

HISTORY = "historyId"


@dataclass
class MailboxSnapshot:
    history_id: str
    emails: list[dict[str, Any]] = field(default_factory=list)


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class GmailPollingAdapter(CredentialClientAdapter):
    provider = "gmail"
    client_class = GmailClient

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        workflow_ids = partition.tasks.get(ReceiveEmailTrigger.id, [])
        if not workflow_ids:
            return []
        return [
            PollTarget(
                key=HISTORY,
                workflows={ReceiveEmailTrigger.id: list(workflow_ids)},
                params={
                    "configs": {
                        workflow_id: partition.registrations[workflow_id].config
                        for workflow_id in workflow_ids
                    }
                },
            )
        ]

    async def fetch_snapshot(
        self, client: GmailClient, target: PollTarget, cursor: Any
    ) -> MailboxSnapshot:
        profile = await client.get_profile()
        if cursor is None:
            return MailboxSnapshot(history_id=str(profile.get("historyId", "")))

        try:
            history = await client.list_history(str(cursor))
        except ExternalProviderError as exc:
            if is_history_expired(exc):
                raise CursorExpired(
                    str(profile.get("historyId", "")), f"history {cursor} no longer available"
                ) from exc
            raise

        self_address = (profile.get("emailAddress") or "").lower()
        emails: list[dict[str, Any]] = []
        for entry in history["history"]:
            for added in entry.get("messagesAdded") or []:
                message_id = (added.get("message") or {}).get("id")
                if not message_id:
                    continue
                details = parse_message(await client.get_message(message_id))
                if details["generated"]:
                    continue
                if self_address and self_address in details["from"].lower():
                    continue
                details["historyId"] = str(entry.get("id", ""))
                emails.append(details)
        return MailboxSnapshot(history_id=history["historyId"], emails=emails)

    def seed(self, snapshot: MailboxSnapshot, target: PollTarget) -> Any:
        return snapshot.history_id

    def diff(
        self, cursor: Any, snapshot: MailboxSnapshot, target: PollTarget
    ) -> list[DetectedEvent]:
        trigger = next(t for t in self.triggers if t.id == ReceiveEmailTrigger.id)
        configs = target.params.get("configs", {})
        events: list[DetectedEvent] = []
        for email in snapshot.emails:
            payload = email_payload(email)
            for workflow_id in target.workflows.get(ReceiveEmailTrigger.id, []):
                if trigger.matches(configs.get(workflow_id, {}), email):
                    events.append(
                        DetectedEvent(ReceiveEmailTrigger.id, payload, workflow_ids=[workflow_id])
                    )
        if snapshot.emails:
            logger.debug("Found %d new email(s), %d match", len(snapshot.emails), len(events))
        return events

    def advance(
        self,
        cursor: Any,
        snapshot: MailboxSnapshot,
        events: list[DetectedEvent],
        target: PollTarget,
    ) -> Any:
        candidates = [_as_int(cursor), _as_int(snapshot.history_id)]
        candidates.extend(_as_int(email.get("historyId")) for email in snapshot.emails)
        latest = max(candidates)
        return str(latest) if latest > _as_int(cursor) else cursor
