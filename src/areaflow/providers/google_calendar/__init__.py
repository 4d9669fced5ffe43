"""Google Calendar: new and cancelled event triggers, event creation actions."""

from .actions import CreateEventAction, QuickAddAction
from .client import GoogleCalendarClient
from .polling import GoogleCalendarPollingAdapter
from .triggers import EventCancelledTrigger, NewEventTrigger

__all__ = [
    "CreateEventAction",
    "EventCancelledTrigger",
    "GoogleCalendarClient",
    "GoogleCalendarPollingAdapter",
    "NewEventTrigger",
    "QuickAddAction",
]
