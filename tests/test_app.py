"""Tests for the application wiring."""

import pytest
from pytest_httpx import HTTPXMock

from areaflow import AutomationApp
from areaflow.core import (
    DatabaseConfig,
    DurableBackendConfig,
    EngineConfig,
    GmailWatchConfig,
    HTTPClientConfig,
    PollingConfig,
    RetryPolicyConfig,
)
from areaflow.engine import ActionSpec, TriggerSpec, WorkflowCreate
from areaflow.ingestion import RENEWAL_JOB_ID


def _config(**overrides):
    values = {
        "database": DatabaseConfig(url="sqlite://"),
        "polling": PollingConfig(enabled=False),
        "http": HTTPClientConfig(retry=RetryPolicyConfig(max_attempts=1)),
        "durable": DurableBackendConfig(retry=RetryPolicyConfig(max_attempts=1)),
    }
    values.update(overrides)
    return EngineConfig(**values)


@pytest.fixture
async def app():
    instance = AutomationApp(_config())
    yield instance
    await instance.stop()


class TestConstruction:
    def test_one_engine_per_polling_provider(self):
        app = AutomationApp(_config(polling=PollingConfig()))

        assert [engine.provider for engine in app.engines] == [
            "gmail",
            "spotify",
            "twitch",
            "github",
            "youtube",
            "google-calendar",
            "telegram",
        ]
        assert app.get_engine("gmail").interval_seconds == 5.0
        assert app.get_engine("github").interval_seconds == 20.0
        assert app.get_engine("discord") is None

    def test_polling_can_be_restricted(self):
        app = AutomationApp(_config(polling=PollingConfig(providers=["github"])))
        assert [engine.provider for engine in app.engines] == ["github"]

    def test_polling_disabled(self):
        assert AutomationApp(_config()).engines == []

    def test_self_firing_triggers_are_bound(self):
        app = AutomationApp(_config())
        for trigger in app.catalog.self_firing_triggers():
            assert trigger._dispatch == app.dispatcher.trigger_workflow_execution

    def test_from_config(self, tmp_path):
        path = tmp_path / "areaflow.yaml"
        path.write_text("database:\n  url: 'sqlite://'\ntimezone: Europe/Paris\n")

        app = AutomationApp.from_config(path)

        assert app.config.timezone == "Europe/Paris"
        assert str(app.scheduler.timezone) == "Europe/Paris"


class TestLifecycle:
    @pytest.mark.anyio
    async def test_start_and_stop(self, app):
        await app.start()
        await app.start()

        assert app.is_running
        assert app.scheduler.running
        assert app.scheduler.get_job(RENEWAL_JOB_ID) is None

        await app.stop()

        assert not app.is_running
        assert not app.scheduler.running

    @pytest.mark.anyio
    async def test_renewal_scheduled_when_push_enabled(self):
        app = AutomationApp(
            _config(gmail_watch=GmailWatchConfig(pubsub_topic="projects/p/topics/gmail"))
        )
        await app.start()
        try:
            assert app.scheduler.get_job(RENEWAL_JOB_ID) is not None
        finally:
            await app.stop()

    @pytest.mark.anyio
    async def test_start_restores_and_drops_workflows(self):
        app = AutomationApp(_config())
        app.db.create_tables()
        good = app.store.insert_workflow(
            owner_id="user-1",
            name="hook",
            trigger_provider="webhook",
            trigger_id="incoming-webhook",
            trigger_config={"path": "/deploy"},
            action_provider="discord",
            action_id="send-webhook",
            action_config={"webhookUrl": "https://discord.com/api/webhooks/1/a", "content": "x"},
            is_active=True,
        )
        bad = app.store.insert_workflow(
            owner_id="user-1",
            name="gone",
            trigger_provider="legacy",
            trigger_id="removed",
            trigger_config={},
            action_provider="discord",
            action_id="send-webhook",
            action_config={},
            is_active=True,
        )

        await app.start()
        try:
            assert app.triggers.get("webhook", "incoming-webhook").is_registered(good.id)
            assert app.store.get_workflow(bad.id).is_active is False
        finally:
            await app.stop()


class TestEndToEnd:
    @pytest.mark.anyio
    async def test_webhook_runs_action_and_records_execution(self, app, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="POST",
            url="https://discord.com/api/webhooks/1/abc?wait=true",
            json={"id": "msg-1"},
        )
        await app.start()
        workflow = app.lifecycle.create_workflow(
            "user-1",
            WorkflowCreate(
                name="Deploy notifier",
                trigger=TriggerSpec(
                    provider="webhook", id="incoming-webhook", config={"path": "/deploy"}
                ),
                action=ActionSpec(
                    provider="discord",
                    id="send-webhook",
                    config={
                        "webhookUrl": "https://discord.com/api/webhooks/1/abc",
                        "content": "Deploy finished",
                    },
                ),
            ),
        )
        await app.lifecycle.activate_workflow("user-1", workflow.id)

        result = await app.webhooks.handle_incoming("/deploy", {"sha": "abc123"})
        await app.backend.drain(timeout=5)

        assert result["triggered"] == 1
        [execution] = app.lifecycle.list_executions("user-1", workflow.id)
        assert execution.status == "completed"
        assert execution.trigger_data == {"payload": {"sha": "abc123"}, "headers": {}}
        assert execution.result["actionResult"] == {"delivered": True, "messageId": "msg-1"}
        assert app.store.get_workflow(workflow.id).last_run_at is not None

    @pytest.mark.anyio
    async def test_failed_action_is_recorded(self, app, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="POST",
            url="https://discord.com/api/webhooks/1/abc?wait=true",
            status_code=400,
            json={"message": "Cannot send an empty message"},
        )
        await app.start()
        workflow = app.lifecycle.create_workflow(
            "user-1",
            WorkflowCreate(
                name="Manual",
                trigger=TriggerSpec(
                    provider="webhook", id="incoming-webhook", config={"path": "/m"}
                ),
                action=ActionSpec(
                    provider="discord",
                    id="send-webhook",
                    config={"webhookUrl": "https://discord.com/api/webhooks/1/abc", "content": "x"},
                ),
            ),
        )

        execution = await app.lifecycle.execute_workflow("user-1", workflow.id)
        await app.backend.drain(timeout=5)

        recorded = app.store.get_execution(execution.id)
        assert recorded.status == "failed"
        assert "400" in recorded.error
