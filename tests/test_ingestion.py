"""Tests for push and webhook ingestion."""

import base64
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.jobstores.base import JobLookupError
from pytest_httpx import HTTPXMock

from areaflow.core import AutomationError, GmailWatchConfig, ValidationError
from areaflow.engine import CredentialManager
from areaflow.ingestion import (
    RENEWAL_JOB_ID,
    GmailIngestionService,
    GmailWatchRenewalSweep,
    WebhookIngestionService,
    dispatch_all,
)
from areaflow.providers.github import (
    IssueLabeledTrigger,
    NewIssueTrigger,
    NewPullRequestTrigger,
    PullRequestReviewRequestedTrigger,
    PushTrigger,
    ReleasePublishedTrigger,
)
from areaflow.providers.gmail import GmailWatchService, ReceiveEmailTrigger
from areaflow.providers.webhook import IncomingWebhookTrigger
from areaflow.registry import TriggerRegistry

GMAIL = "https://gmail.googleapis.com/gmail/v1/users/me"

REPOSITORY = {
    "name": "hello",
    "full_name": "octo/hello",
    "html_url": "https://github.com/octo/hello",
    "owner": {"login": "octo"},
}


def _pubsub(email_address, history_id):
    data = json.dumps({"emailAddress": email_address, "historyId": history_id})
    return {
        "message": {"data": base64.b64encode(data.encode()).decode(), "messageId": "1"},
        "subscription": "projects/p/subscriptions/s",
    }


def _full_message(message_id, sender, subject):
    return {
        "id": message_id,
        "threadId": "t1",
        "payload": {
            "headers": [
                {"name": "From", "value": sender},
                {"name": "To", "value": "me@example.com"},
                {"name": "Subject", "value": subject},
            ],
        },
        "snippet": "preview",
    }


@pytest.fixture
def dispatch():
    return AsyncMock(return_value="run-1")


@pytest.fixture
def triggers():
    registry = TriggerRegistry()
    for trigger in (
        ReceiveEmailTrigger(),
        IncomingWebhookTrigger(),
        NewIssueTrigger(),
        PushTrigger(),
        IssueLabeledTrigger(),
        NewPullRequestTrigger(),
        PullRequestReviewRequestedTrigger(),
        ReleasePublishedTrigger(),
    ):
        registry.register(trigger)
    return registry


@pytest.fixture
def watch(store, http_config):
    return GmailWatchService(
        store,
        CredentialManager(store),
        GmailWatchConfig(pubsub_topic="projects/p/topics/gmail"),
        http_config,
    )


@pytest.fixture
def gmail(store, triggers, dispatch, watch, http_config):
    return GmailIngestionService(store, triggers, dispatch, watch, http_config)


@pytest.fixture
def gmail_workflow(make_workflow, make_credential):
    make_credential(provider="gmail", access_token="gmail-token")

    def _make(**overrides):
        values = {
            "trigger_provider": "gmail",
            "trigger_id": "receive-email",
            "trigger_config": {},
        }
        values.update(overrides)
        return make_workflow(**values)

    return _make


class TestDispatchAll:
    @pytest.mark.anyio
    async def test_counts_failures(self):
        async def dispatch(workflow_id, data):
            if workflow_id == 2:
                raise RuntimeError("down")

        result = await dispatch_all(dispatch, [1, 2, 3], {})

        assert result.to_dict() == {
            "success": True,
            "triggered": 2,
            "failed": 1,
            "totalWorkflows": 3,
        }


class TestGmailNotification:
    @pytest.mark.anyio
    async def test_dispatches_to_matching_workflows(self, gmail, triggers, dispatch):
        trigger = triggers.get("gmail", "receive-email")
        await trigger.register(1, {"subject": "invoice"})
        await trigger.register(2, {"from": "carol"})

        result = await gmail.handle_notification(
            {"messageId": "m1", "from": "bob@example.com", "to": "me", "subject": "Invoice #4"}
        )

        assert result["triggered"] == 1
        workflow_id, data = dispatch.await_args.args
        assert workflow_id == 1
        assert data["messageId"] == "m1"
        assert data["date"]

    @pytest.mark.anyio
    async def test_missing_fields_rejected(self, gmail):
        with pytest.raises(ValidationError, match="subject"):
            await gmail.handle_notification({"messageId": "m1", "from": "a", "to": "b"})


class TestGmailPubSub:
    @pytest.mark.anyio
    async def test_new_history_dispatches_and_advances(
        self, gmail, triggers, dispatch, store, gmail_workflow, httpx_mock: HTTPXMock
    ):
        workflow = gmail_workflow()
        store.update_workflow(workflow.id, gmail_history_id="100")
        await triggers.get("gmail", "receive-email").register(workflow.id, {})
        httpx_mock.add_response(url=f"{GMAIL}/profile", json={"emailAddress": "Me@example.com"})
        httpx_mock.add_response(
            url=f"{GMAIL}/history?startHistoryId=100&historyTypes=messageAdded",
            json={
                "historyId": "120",
                "history": [
                    {"id": "110", "messagesAdded": [{"message": {"id": "m1"}}]},
                    {"id": "111", "messagesAdded": [{"message": {"id": "m1"}}]},
                    {"id": "112", "messagesAdded": [{"message": {"id": "m2"}}]},
                ],
            },
        )
        httpx_mock.add_response(
            url=f"{GMAIL}/messages/m1?format=full",
            json=_full_message("m1", "bob@example.com", "Hello"),
        )
        httpx_mock.add_response(
            url=f"{GMAIL}/messages/m2?format=full",
            json=_full_message("m2", "me@example.com", "Note to self"),
        )

        result = await gmail.handle_pubsub(_pubsub("me@example.com", "120"))

        assert result["processed"] == 1
        assert result["triggered"] == 1
        dispatch.assert_awaited_once()
        assert dispatch.await_args.args[1]["subject"] == "Hello"
        assert store.get_workflow(workflow.id).gmail_history_id == "120"

    @pytest.mark.anyio
    async def test_other_mailbox_is_ignored(
        self, gmail, triggers, dispatch, store, gmail_workflow, httpx_mock: HTTPXMock
    ):
        workflow = gmail_workflow()
        store.update_workflow(workflow.id, gmail_history_id="100")
        await triggers.get("gmail", "receive-email").register(workflow.id, {})
        httpx_mock.add_response(url=f"{GMAIL}/profile", json={"emailAddress": "me@example.com"})

        result = await gmail.handle_pubsub(_pubsub("someone@example.com", "120"))

        assert result["processed"] == 0
        dispatch.assert_not_awaited()

    @pytest.mark.anyio
    async def test_first_notification_only_records_history(
        self, gmail, triggers, dispatch, store, gmail_workflow, httpx_mock: HTTPXMock
    ):
        workflow = gmail_workflow()
        await triggers.get("gmail", "receive-email").register(workflow.id, {})
        httpx_mock.add_response(url=f"{GMAIL}/profile", json={"emailAddress": "me@example.com"})

        await gmail.handle_pubsub(_pubsub("me@example.com", "120"))

        dispatch.assert_not_awaited()
        assert store.get_workflow(workflow.id).gmail_history_id == "120"

    @pytest.mark.anyio
    async def test_stale_notification_is_skipped(
        self, gmail, triggers, dispatch, store, gmail_workflow, httpx_mock: HTTPXMock
    ):
        workflow = gmail_workflow()
        store.update_workflow(workflow.id, gmail_history_id="200")
        await triggers.get("gmail", "receive-email").register(workflow.id, {})
        httpx_mock.add_response(url=f"{GMAIL}/profile", json={"emailAddress": "me@example.com"})

        result = await gmail.handle_pubsub(_pubsub("me@example.com", "150"))

        assert result["processed"] == 0
        assert store.get_workflow(workflow.id).gmail_history_id == "200"

    @pytest.mark.anyio
    async def test_expired_history_resets(
        self, gmail, triggers, dispatch, store, gmail_workflow, httpx_mock: HTTPXMock
    ):
        workflow = gmail_workflow()
        store.update_workflow(workflow.id, gmail_history_id="100")
        await triggers.get("gmail", "receive-email").register(workflow.id, {})
        httpx_mock.add_response(url=f"{GMAIL}/profile", json={"emailAddress": "me@example.com"})
        httpx_mock.add_response(
            url=f"{GMAIL}/history?startHistoryId=100&historyTypes=messageAdded", status_code=404
        )

        await gmail.handle_pubsub(_pubsub("me@example.com", "150"))

        dispatch.assert_not_awaited()
        assert store.get_workflow(workflow.id).gmail_history_id == "150"

    @pytest.mark.anyio
    async def test_incomplete_notification(self, gmail):
        result = await gmail.handle_pubsub(_pubsub("", "150"))
        assert result["processed"] == 0

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "envelope",
        [{}, {"message": {}}, {"message": {"data": "not base64 json"}}],
    )
    async def test_invalid_envelopes(self, gmail, envelope):
        with pytest.raises(ValidationError):
            await gmail.handle_pubsub(envelope)


class TestWatchRenewalSweep:
    @pytest.fixture
    def renewal_watch(self):
        watch = MagicMock(enabled=True)
        watch.start = AsyncMock()
        return watch

    def test_due_selects_missing_and_expiring(self, store, triggers, gmail_workflow):
        now = datetime.now(timezone.utc)
        missing = gmail_workflow()
        soon = gmail_workflow()
        later = gmail_workflow()
        store.update_workflow(soon.id, gmail_watch_expiration=now + timedelta(hours=2))
        store.update_workflow(later.id, gmail_watch_expiration=now + timedelta(days=5))
        gmail_workflow(is_active=False)
        sweep = GmailWatchRenewalSweep(store, triggers, MagicMock(), GmailWatchConfig())

        due = sweep.due(now)

        assert sorted(w.id for w in due) == [missing.id, soon.id]

    @pytest.mark.anyio
    async def test_run_isolates_failures(self, store, triggers, gmail_workflow, renewal_watch):
        first = gmail_workflow(trigger_config={"labelIds": ["IMPORTANT"]})
        second = gmail_workflow()
        await triggers.get("gmail", "receive-email").register(first.id, {}, credential_id=9)

        async def start(workflow_id, credential_id, label_ids):
            if workflow_id == second.id:
                raise AutomationError("watch rejected")

        renewal_watch.start.side_effect = start
        sweep = GmailWatchRenewalSweep(store, triggers, renewal_watch)

        assert await sweep.run() == {"renewed": 1, "failed": 1}
        renewal_watch.start.assert_any_await(first.id, 9, ["IMPORTANT"])

    @pytest.mark.anyio
    async def test_disabled_watch_does_nothing(self, store, triggers, gmail_workflow):
        gmail_workflow()
        watch = MagicMock(enabled=False)
        sweep = GmailWatchRenewalSweep(store, triggers, watch)
        assert await sweep.run() == {"renewed": 0, "failed": 0}

    def test_schedule_and_unschedule(self, store, triggers):
        scheduler = MagicMock()
        sweep = GmailWatchRenewalSweep(store, triggers, MagicMock(), GmailWatchConfig())

        sweep.schedule(scheduler)
        kwargs = scheduler.add_job.call_args.kwargs
        assert kwargs["id"] == RENEWAL_JOB_ID
        assert kwargs["hours"] == 6.0

        scheduler.remove_job.side_effect = JobLookupError(RENEWAL_JOB_ID)
        sweep.unschedule(scheduler)


class TestIncomingWebhooks:
    @pytest.mark.anyio
    async def test_dispatches_payload_and_headers(self, triggers, dispatch):
        await triggers.get("webhook", "incoming-webhook").register(4, {"path": "/hooks/deploy"})
        service = WebhookIngestionService(triggers, dispatch)

        result = await service.handle_incoming(
            "hooks/deploy", {"env": "prod"}, headers={"X-Source": "ci"}
        )

        assert result["triggered"] == 1
        dispatch.assert_awaited_once_with(
            4, {"payload": {"env": "prod"}, "headers": {"x-source": "ci"}}
        )

    @pytest.mark.anyio
    async def test_secret_gates_delivery(self, triggers, dispatch):
        await triggers.get("webhook", "incoming-webhook").register(
            4, {"path": "/hooks", "secret": "s3cret"}
        )
        service = WebhookIngestionService(triggers, dispatch)

        result = await service.handle_incoming("/hooks", {}, secret="nope")

        assert result["totalWorkflows"] == 0
        dispatch.assert_not_awaited()

    @pytest.mark.anyio
    async def test_empty_path_rejected(self, triggers, dispatch):
        service = WebhookIngestionService(triggers, dispatch)
        with pytest.raises(ValidationError):
            await service.handle_incoming("/", {})


class TestGitHubWebhooks:
    @pytest.mark.anyio
    async def test_opened_issue(self, triggers, dispatch):
        await triggers.get("github", "new_issue").register(1, {"owner": "Octo", "repo": "hello"})
        await triggers.get("github", "new_issue").register(2, {"owner": "octo", "repo": "other"})
        service = WebhookIngestionService(triggers, dispatch)
        body = {
            "action": "opened",
            "issue": {"number": 3, "title": "Bug", "html_url": "https://x/3"},
            "repository": REPOSITORY,
            "sender": {"login": "alice"},
        }

        result = await service.handle_github_event("issues", body)

        assert result["triggered"] == 1
        workflow_id, data = dispatch.await_args.args
        assert workflow_id == 1
        assert data["issue"]["title"] == "Bug"

    @pytest.mark.anyio
    async def test_push_branch_filter(self, triggers, dispatch):
        push = triggers.get("github", "push")
        await push.register(1, {"owner": "octo", "repo": "hello", "branch": "main"})
        await push.register(2, {"owner": "octo", "repo": "hello", "branch": "dev"})
        service = WebhookIngestionService(triggers, dispatch)
        body = {"ref": "refs/heads/main", "repository": REPOSITORY, "commits": []}

        await service.handle_github_event("push", body)

        assert [call.args[0] for call in dispatch.await_args_list] == [1]

    @pytest.mark.anyio
    async def test_labeled_issue_filters_on_label(self, triggers, dispatch):
        labeled = triggers.get("github", "issue_labeled")
        await labeled.register(1, {"owner": "octo", "repo": "hello", "label": "bug"})
        await labeled.register(2, {"owner": "octo", "repo": "hello", "label": "docs"})
        await labeled.register(3, {"owner": "octo", "repo": "hello"})
        service = WebhookIngestionService(triggers, dispatch)
        body = {
            "action": "labeled",
            "label": {"name": "Bug"},
            "issue": {"number": 3, "title": "Crash", "html_url": "https://x/3"},
            "repository": REPOSITORY,
        }

        result = await service.handle_github_event("issues", body)

        assert result["triggered"] == 2
        assert sorted(call.args[0] for call in dispatch.await_args_list) == [1, 3]
        assert dispatch.await_args.args[1]["label"] == {"name": "Bug"}

    @pytest.mark.anyio
    async def test_pull_request_actions_route_to_their_triggers(self, triggers, dispatch):
        await triggers.get("github", "new_pull_request").register(
            1, {"owner": "octo", "repo": "hello"}
        )
        await triggers.get("github", "pr_review_requested").register(
            2, {"owner": "octo", "repo": "hello"}
        )
        service = WebhookIngestionService(triggers, dispatch)
        pull = {"number": 4, "title": "Docs", "html_url": "https://x/pull/4"}

        await service.handle_github_event(
            "pull_request", {"action": "opened", "pull_request": pull, "repository": REPOSITORY}
        )
        await service.handle_github_event(
            "pull_request",
            {
                "action": "review_requested",
                "pull_request": pull,
                "requested_reviewer": {"login": "bob"},
                "repository": REPOSITORY,
            },
        )
        closed = await service.handle_github_event(
            "pull_request", {"action": "closed", "pull_request": pull, "repository": REPOSITORY}
        )

        assert [call.args[0] for call in dispatch.await_args_list] == [1, 2]
        assert dispatch.await_args.args[1]["requestedReviewer"]["login"] == "bob"
        assert closed["ignored"]

    @pytest.mark.anyio
    async def test_published_release(self, triggers, dispatch):
        await triggers.get("github", "release_published").register(
            1, {"owner": "octo", "repo": "hello"}
        )
        service = WebhookIngestionService(triggers, dispatch)
        body = {
            "action": "published",
            "release": {"tag_name": "v2", "html_url": "https://x/v2"},
            "repository": REPOSITORY,
        }

        result = await service.handle_github_event("release", body)

        assert result["triggered"] == 1
        assert dispatch.await_args.args[1]["release"]["tagName"] == "v2"

    @pytest.mark.anyio
    async def test_unhandled_events_are_ignored(self, triggers, dispatch):
        service = WebhookIngestionService(triggers, dispatch)

        closed = await service.handle_github_event("issues", {"action": "closed"})
        star = await service.handle_github_event("star", {"action": "created"})

        assert closed["ignored"] and star["ignored"]
        dispatch.assert_not_awaited()

    @pytest.mark.anyio
    async def test_malformed_delivery(self, triggers, dispatch):
        service = WebhookIngestionService(triggers, dispatch)
        with pytest.raises(ValidationError):
            await service.handle_github_event("push", {"ref": "refs/heads/main"})
