"""Google Calendar incremental sync; one sync-token cursor per watched calendar."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ...core.config import HTTPClientConfig, OAuthAppConfig
from ...core.errors import ExternalProviderError
from ...core.logger import get_logger
from ...engine.cursors import now_ms, timestamp_ms
from ...engine.polling import CursorExpired, DetectedEvent, PollPartition, PollTarget
from ...registry.capabilities import Trigger
from ..common.adapter import CredentialClientAdapter
from .client import GoogleCalendarClient, is_sync_token_expired
from .triggers import (
    CalendarConfig,
    EventCancelledTrigger,
    NewEventTrigger,
    cancelled_payload,
    event_payload,
)

logger = get_logger("providers.google_calendar.polling")

CALENDAR_SYNC = "calendarSync"

# Incremental sync also reports edits; only events created this recently count as new
NEW_EVENT_WINDOW_MS = 5 * 60 * 1000


@dataclass
class CalendarSnapshot:
    sync_token: str | None
    events: list[dict[str, Any]] = field(default_factory=list)


class GoogleCalendarPollingAdapter(CredentialClientAdapter):
    provider = "google-calendar"
    client_class = GoogleCalendarClient

    def __init__(
        self,
        triggers: Sequence[Trigger],
        http_config: HTTPClientConfig | None = None,
        oauth_apps: Mapping[str, OAuthAppConfig] | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        super().__init__(triggers, http_config, oauth_apps)
        self.clock = clock

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        by_calendar: dict[str, dict[str, list[int]]] = defaultdict(lambda: defaultdict(list))
        for trigger_id, workflow_ids in partition.tasks.items():
            for workflow_id in workflow_ids:
                try:
                    config = CalendarConfig.model_validate(
                        partition.registrations[workflow_id].config
                    )
                except PydanticValidationError as exc:
                    logger.warning("Ignoring workflow %s with bad calendar: %s", workflow_id, exc)
                    continue
                by_calendar[config.calendar_id][trigger_id].append(workflow_id)

        return [
            PollTarget(
                key=CALENDAR_SYNC,
                sub_key=calendar_id,
                workflows=dict(workflows),
                params={"calendar_id": calendar_id},
            )
            for calendar_id, workflows in by_calendar.items()
        ]

    async def fetch_snapshot(
        self, client: GoogleCalendarClient, target: PollTarget, cursor: Any
    ) -> CalendarSnapshot:
        calendar_id = target.params["calendar_id"]
        try:
            synced = await client.sync_events(calendar_id, sync_token=cursor)
        except ExternalProviderError as exc:
            if cursor is None or not is_sync_token_expired(exc):
                raise
            full = await client.sync_events(calendar_id)
            raise CursorExpired(
                full["nextSyncToken"], f"sync token for {calendar_id} expired"
            ) from exc
        return CalendarSnapshot(sync_token=synced["nextSyncToken"], events=synced["items"])

    def seed(self, snapshot: CalendarSnapshot, target: PollTarget) -> Any:
        return snapshot.sync_token

    def diff(
        self, cursor: Any, snapshot: CalendarSnapshot, target: PollTarget
    ) -> list[DetectedEvent]:
        now = self.clock()
        events: list[DetectedEvent] = []
        for event in snapshot.events:
            status = event.get("status")
            if status == "cancelled":
                events.append(DetectedEvent(EventCancelledTrigger.id, cancelled_payload(event)))
            elif status == "confirmed" and event.get("created"):
                if now - timestamp_ms(event["created"]) < NEW_EVENT_WINDOW_MS:
                    events.append(DetectedEvent(NewEventTrigger.id, event_payload(event)))
        return events

    def advance(
        self,
        cursor: Any,
        snapshot: CalendarSnapshot,
        events: list[DetectedEvent],
        target: PollTarget,
    ) -> Any:
        return snapshot.sync_token or cursor
