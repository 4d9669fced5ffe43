"""Tests for the Google Calendar provider."""

import json

import pytest
from pytest_httpx import HTTPXMock

from areaflow.core import ExternalProviderError
from areaflow.engine import CursorExpired, PollingEngine, PollPartition, PollTarget
from areaflow.engine.cursors import timestamp_ms
from areaflow.providers.google_calendar import (
    CreateEventAction,
    EventCancelledTrigger,
    GoogleCalendarClient,
    GoogleCalendarPollingAdapter,
    NewEventTrigger,
    QuickAddAction,
)
from areaflow.providers.google_calendar.polling import CalendarSnapshot
from areaflow.registry import Registration

API = "https://www.googleapis.com/calendar/v3"
EVENTS = f"{API}/calendars/primary/events?maxResults=250&showDeleted=true"
NOW = timestamp_ms("2026-10-16T12:00:00Z")

TARGET = PollTarget(
    key="calendarSync",
    sub_key="primary",
    workflows={"new-event": [1], "event-cancelled": [2]},
    params={"calendar_id": "primary"},
)


def _event(event_id, created="2026-10-16T11:58:00Z", status="confirmed", **extra):
    event = {
        "id": event_id,
        "status": status,
        "created": created,
        "updated": created,
        "summary": f"Meeting {event_id}",
        "htmlLink": f"https://calendar.google.com/event?eid={event_id}",
        "start": {"dateTime": "2026-10-17T09:00:00Z"},
        "end": {"dateTime": "2026-10-17T10:00:00Z"},
    }
    event.update(extra)
    return event


@pytest.fixture
def adapter(http_config):
    return GoogleCalendarPollingAdapter(
        [NewEventTrigger(), EventCancelledTrigger()], http_config, clock=lambda: NOW
    )


class TestPlan:
    def test_one_target_per_calendar(self, adapter):
        partition = PollPartition(key="credential:1", credential=None)
        partition.add("new-event", Registration(1, {}))
        partition.add("new-event", Registration(2, {"calendarId": "team@group.calendar"}))
        partition.add("event-cancelled", Registration(3, {"calendarId": "primary"}))
        partition.add("event-cancelled", Registration(4, {"calendarId": ""}))

        targets = adapter.plan(partition)

        assert [(t.key, t.sub_key) for t in targets] == [
            ("calendarSync", "primary"),
            ("calendarSync", "team@group.calendar"),
        ]
        assert targets[0].workflows == {"new-event": [1], "event-cancelled": [3]}
        assert targets[1].params == {"calendar_id": "team@group.calendar"}


class TestDiff:
    def test_recently_created_events_are_new(self, adapter):
        snapshot = CalendarSnapshot(
            sync_token="tok2",
            events=[
                _event("fresh", location="Room 1", description="Weekly"),
                _event("edited", created="2026-10-01T08:00:00Z"),
            ],
        )

        events = adapter.diff("tok1", snapshot, TARGET)

        assert [(e.trigger_id, e.data["eventId"]) for e in events] == [("new-event", "fresh")]
        assert events[0].data == {
            "eventId": "fresh",
            "summary": "Meeting fresh",
            "description": "Weekly",
            "location": "Room 1",
            "start": "2026-10-17T09:00:00Z",
            "end": "2026-10-17T10:00:00Z",
            "link": "https://calendar.google.com/event?eid=fresh",
        }
        assert adapter.advance("tok1", snapshot, events, TARGET) == "tok2"

    def test_cancelled_events(self, adapter):
        snapshot = CalendarSnapshot(
            sync_token="tok2", events=[{"id": "gone", "status": "cancelled"}]
        )

        events = adapter.diff("tok1", snapshot, TARGET)

        assert [(e.trigger_id, e.data) for e in events] == [
            ("event-cancelled", {"eventId": "gone", "summary": None})
        ]

    def test_all_day_events_report_dates(self, adapter):
        all_day = _event("holiday", start={"date": "2026-12-25"}, end={"date": "2026-12-26"})

        [event] = adapter.diff("tok1", CalendarSnapshot("tok2", [all_day]), TARGET)

        assert event.data["start"] == "2026-12-25"
        assert event.data["end"] == "2026-12-26"

    def test_missing_token_keeps_cursor(self, adapter):
        assert adapter.advance("tok1", CalendarSnapshot(None), [], TARGET) == "tok1"


class TestFetch:
    @pytest.mark.anyio
    async def test_full_sync_merges_pages(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(
            url=EVENTS, json={"items": [_event("a")], "nextPageToken": "p2"}
        )
        httpx_mock.add_response(
            url=f"{EVENTS}&pageToken=p2", json={"items": [_event("b")], "nextSyncToken": "tok1"}
        )

        async with GoogleCalendarClient("tok", config=http_config) as client:
            synced = await client.sync_events("primary")

        assert [item["id"] for item in synced["items"]] == ["a", "b"]
        assert synced["nextSyncToken"] == "tok1"

    @pytest.mark.anyio
    async def test_expired_sync_token_reseeds(self, adapter, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(
            url=f"{EVENTS}&syncToken=old",
            status_code=410,
            json={"error": {"code": 410, "message": "Sync token is no longer valid"}},
        )
        httpx_mock.add_response(url=EVENTS, json={"items": [], "nextSyncToken": "fresh"})

        async with GoogleCalendarClient("tok", config=http_config) as client:
            with pytest.raises(CursorExpired) as exc_info:
                await adapter.fetch_snapshot(client, TARGET, "old")

        assert exc_info.value.seed == "fresh"

    @pytest.mark.anyio
    async def test_other_errors_propagate(self, adapter, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(url=f"{EVENTS}&syncToken=tok1", status_code=403, json={})

        async with GoogleCalendarClient("tok", config=http_config) as client:
            with pytest.raises(ExternalProviderError):
                await adapter.fetch_snapshot(client, TARGET, "tok1")


class TestCalendarPolling:
    @pytest.mark.anyio
    async def test_first_pass_only_stores_token(
        self, adapter, httpx_mock: HTTPXMock, store, make_workflow, make_credential
    ):
        credential = make_credential(provider="google-calendar")
        workflow = make_workflow(
            trigger_provider="google-calendar", trigger_id="new-event", trigger_config={}
        )
        await adapter.triggers[0].register(workflow.id, {})
        dispatched = []

        async def dispatch(workflow_id, data):
            dispatched.append((workflow_id, data))

        engine = PollingEngine(adapter, store, dispatch)

        httpx_mock.add_response(url=EVENTS, json={"items": [_event("a")], "nextSyncToken": "t1"})
        await engine.tick()
        assert dispatched == []
        state = store.get_credential(credential.id).polling_state
        assert state == {"calendarSync": {"primary": "t1"}}

        httpx_mock.add_response(
            url=f"{EVENTS}&syncToken=t1",
            json={"items": [_event("b")], "nextSyncToken": "t2"},
        )
        await engine.tick()

        assert [(wid, data["eventId"]) for wid, data in dispatched] == [(workflow.id, "b")]
        state = store.get_credential(credential.id).polling_state
        assert state["calendarSync"]["primary"] == "t2"


class TestActions:
    @pytest.mark.anyio
    async def test_create_event(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/calendars/primary/events",
            json={"id": "e1", "htmlLink": "https://calendar.google.com/e1", "summary": "Sync"},
        )
        action = CreateEventAction()
        config = action.parse_config(
            {
                "summary": "Sync",
                "start": "2026-10-17T09:00:00Z",
                "end": "2026-10-17T09:30:00Z",
                "attendees": "a@example.com, b@example.com",
            }
        )

        result = await action.execute(config, action_context("google-calendar"))

        assert result == {
            "id": "e1",
            "htmlLink": "https://calendar.google.com/e1",
            "summary": "Sync",
        }
        assert json.loads(httpx_mock.get_request().read()) == {
            "summary": "Sync",
            "start": {"dateTime": "2026-10-17T09:00:00Z"},
            "end": {"dateTime": "2026-10-17T09:30:00Z"},
            "attendees": [{"email": "a@example.com"}, {"email": "b@example.com"}],
        }

    @pytest.mark.anyio
    async def test_quick_add(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/calendars/primary/events/quickAdd?text=Lunch+at+1pm",
            json={"id": "e2", "htmlLink": "https://calendar.google.com/e2"},
        )
        action = QuickAddAction()

        result = await action.execute(
            action.parse_config({"text": "Lunch at 1pm"}), action_context("google-calendar")
        )

        assert result["id"] == "e2"
