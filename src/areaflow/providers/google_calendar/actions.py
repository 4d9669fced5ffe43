"""Google Calendar actions."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import GoogleCalendarClient


class CalendarInput(CapabilityConfig):
    calendar_id: str = Field(default="primary", min_length=1, description="Target calendar")


class CreateEventConfig(CalendarInput):
    summary: str = Field(..., min_length=1, description="Event title")
    description: str | None = Field(default=None, description="Event description")
    location: str | None = Field(default=None, description="Event location")
    start: str = Field(..., min_length=1, description="Start time, ISO-8601")
    end: str = Field(..., min_length=1, description="End time, ISO-8601")
    attendees: list[str] = Field(default_factory=list, description="Attendee emails")

    @field_validator("attendees", mode="before")
    @classmethod
    def split_attendees(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [email.strip() for email in value.split(",") if email.strip()]
        return value


class QuickAddConfig(CalendarInput):
    text: str = Field(..., min_length=1, description="Natural language event, e.g. Lunch at 1pm")


class GoogleCalendarAction(Action):
    requires_credentials = True

    def client(self, context: ActionContext) -> GoogleCalendarClient:
        return GoogleCalendarClient(context.access_token, config=context.http_config)


def _created(event: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": event.get("id"),
        "htmlLink": event.get("htmlLink"),
        "summary": event.get("summary"),
    }


class CreateEventAction(GoogleCalendarAction):
    kind = ActionKind.GOOGLE_CALENDAR_CREATE_EVENT
    name = "Create Event"
    description = "Create an event in a calendar"
    config_model = CreateEventConfig

    async def execute(self, config: CreateEventConfig, context: ActionContext) -> dict[str, Any]:
        event: dict[str, Any] = {
            "summary": config.summary,
            "start": {"dateTime": config.start},
            "end": {"dateTime": config.end},
        }
        if config.description:
            event["description"] = config.description
        if config.location:
            event["location"] = config.location
        if config.attendees:
            event["attendees"] = [{"email": email} for email in config.attendees]
        async with self.client(context) as client:
            created = await client.insert_event(config.calendar_id, event)
        return _created(created)


class QuickAddAction(GoogleCalendarAction):
    kind = ActionKind.GOOGLE_CALENDAR_QUICK_ADD
    name = "Quick Add Event"
    description = "Create an event from a line of natural language text"
    config_model = QuickAddConfig

    async def execute(self, config: QuickAddConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            created = await client.quick_add(config.calendar_id, config.text)
        return _created(created)
