"""Google Calendar polling triggers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field

from ...registry.capabilities import CapabilityConfig, EventPayload, Trigger, TriggerType


class CalendarConfig(CapabilityConfig):
    calendar_id: str = Field(default="primary", min_length=1, description="Calendar to watch")


class CalendarEvent(EventPayload):
    event_id: str
    summary: str | None = None
    description: str | None = None
    location: str | None = None
    start: str | None = None
    end: str | None = None
    link: str | None = None


class CancelledEvent(EventPayload):
    event_id: str
    summary: str | None = None


def _moment(value: Mapping[str, Any] | None) -> str | None:
    # all-day events only carry a date
    value = value or {}
    return value.get("dateTime") or value.get("date")


def event_payload(event: Mapping[str, Any]) -> dict[str, Any]:
    return CalendarEvent(
        event_id=event["id"],
        summary=event.get("summary"),
        description=event.get("description"),
        location=event.get("location"),
        start=_moment(event.get("start")),
        end=_moment(event.get("end")),
        link=event.get("htmlLink"),
    ).to_event()


def cancelled_payload(event: Mapping[str, Any]) -> dict[str, Any]:
    return CancelledEvent(event_id=event["id"], summary=event.get("summary")).to_event()


class NewEventTrigger(Trigger):
    provider = "google-calendar"
    id = "new-event"
    name = "New Event"
    description = "Triggers when an event is created in a calendar"
    requires_credentials = True
    trigger_type = TriggerType.POLLING
    config_model = CalendarConfig
    output_model = CalendarEvent


class EventCancelledTrigger(Trigger):
    provider = "google-calendar"
    id = "event-cancelled"
    name = "Event Cancelled"
    description = "Triggers when an event is cancelled or deleted"
    requires_credentials = True
    trigger_type = TriggerType.POLLING
    config_model = CalendarConfig
    output_model = CancelledEvent
