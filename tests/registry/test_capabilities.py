"""Tests for capability base classes and registries."""

import pytest

from areaflow.core import UnsupportedActionError, ValidationError
from areaflow.registry import (
    ActionKind,
    ActionRegistry,
    EventPayload,
    RegistrationStore,
    TriggerRegistry,
    matches_config,
    render_template,
)
from areaflow.registry.capabilities import Registration
from tests.mocks import ChannelTrigger, RecordingAction


class SampleEvent(EventPayload):
    repo_name: str
    star_count: int


class TestActionKind:
    def test_resolve(self):
        kind = ActionKind.resolve("gmail", "send-email")
        assert kind is ActionKind.GMAIL_SEND_EMAIL
        assert kind.provider == "gmail"
        assert kind.action_id == "send-email"

    def test_unknown_pair(self):
        with pytest.raises(UnsupportedActionError, match="fax:send"):
            ActionKind.resolve("fax", "send")


class TestHelpers:
    def test_matches_config_is_case_insensitive_substring(self):
        event = {"from": "Alice <alice@example.com>", "subject": "Weekly Report"}
        assert matches_config({"from": "ALICE", "subject": "report"}, event)
        assert matches_config({"from": None, "subject": ""}, event)
        assert not matches_config({"subject": "invoice"}, event)
        assert not matches_config({"to": "bob"}, event)

    def test_render_template(self):
        data = {"user": "octo", "count": 3, "empty": ""}
        assert render_template("{{user}} has {{count}}", data) == "octo has 3"
        assert render_template("{{missing}} {{empty}}", data) == "{{missing}} {{empty}}"
        assert render_template({"a": ["{{user}}"], "n": 1}, data) == {"a": ["octo"], "n": 1}
        assert render_template("{{user}}", None) == "{{user}}"

    def test_event_payload_uses_camel_case(self):
        assert SampleEvent(repo_name="hello", star_count=2).to_event() == {
            "repoName": "hello",
            "starCount": 2,
        }


class TestRegistrationStore:
    def test_put_get_remove(self):
        store = RegistrationStore()
        store.put(Registration(1, {"a": 1}))
        assert 1 in store
        assert len(store) == 1
        snapshot = store.snapshot()
        store.remove(1)
        assert 1 in snapshot
        assert store.get(1) is None
        assert store.remove(1) is None


class TestTrigger:
    @pytest.mark.anyio
    async def test_register_validates_before_recording(self):
        trigger = ChannelTrigger()
        with pytest.raises(ValidationError):
            await trigger.register(1, {"channel": ""})
        assert not trigger.is_registered(1)

    @pytest.mark.anyio
    async def test_register_twice_keeps_latest_config(self):
        trigger = ChannelTrigger()
        await trigger.register(1, {"channel": "a"})
        await trigger.register(1, {"channel": "b"})

        registrations = trigger.get_registrations()
        assert len(registrations) == 1
        assert registrations[1].config == {"channel": "b"}
        assert len(trigger.setup_calls) == 2

    @pytest.mark.anyio
    async def test_setup_exception_removes_registration(self):
        trigger = ChannelTrigger()
        trigger.setup_error = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            await trigger.register(1, {"channel": "a"})
        assert not trigger.is_registered(1)

    @pytest.mark.anyio
    async def test_soft_failure_keeps_registration(self):
        trigger = ChannelTrigger()
        trigger.soft_fail = True
        result = await trigger.register(1, {"channel": "a"})
        assert result.success is False
        assert trigger.is_registered(1)

    @pytest.mark.anyio
    async def test_unregister_never_raises(self):
        trigger = ChannelTrigger()
        await trigger.register(1, {"channel": "a"})

        async def broken(registration):
            raise RuntimeError("teardown failed")

        trigger.teardown = broken
        await trigger.unregister(1)
        await trigger.unregister(1)
        assert not trigger.is_registered(1)

    @pytest.mark.anyio
    async def test_get_matching_workflows_sorted(self):
        trigger = ChannelTrigger()
        await trigger.register(3, {"channel": "a"})
        await trigger.register(1, {"channel": "a"})
        assert trigger.get_matching_workflows({}) == [1, 3]

    def test_descriptor(self):
        descriptor = ChannelTrigger().descriptor()
        assert descriptor.key == "fake:channel"
        assert descriptor.to_dict()["triggerType"] == "polling"
        assert "channel" in descriptor.config_schema["properties"]


class TestRegistries:
    def test_last_write_wins(self):
        registry = TriggerRegistry()
        first, second = ChannelTrigger(), ChannelTrigger()
        registry.register(first)
        registry.register(second)
        assert len(registry) == 1
        assert registry.get("fake", "channel") is second

    def test_metadata_and_providers(self):
        actions = ActionRegistry()
        actions.register(RecordingAction())
        assert actions.providers() == ["discord"]
        assert actions.get_metadata("discord", "send-webhook").kind == "action"
        assert actions.get_metadata("discord", "nope") is None
        assert [d.key for d in actions.get_all_metadata("discord")] == ["discord:send-webhook"]
        assert actions.unregister("discord", "send-webhook") is True
        assert actions.has("discord", "send-webhook") is False
