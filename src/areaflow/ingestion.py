"""Push and webhook ingestion.

Inbound notifications bypass the polling loops: each one is matched against
the live registrations of its trigger and dispatched straight away. The HTTP
layer that receives them is outside this package; it calls these services
with already-decoded bodies.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import contextlib
import json
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .core.config import GmailWatchConfig, HTTPClientConfig
from .core.errors import AutomationError, ExternalProviderError, ValidationError
from .core.logger import get_logger
from .providers.github import (
    issue_event,
    issue_labeled_event,
    pull_request_event,
    push_event,
    release_event,
    repository_coordinates,
    review_requested_event,
)
from .providers.gmail import GmailClient, GmailWatchService, ReceiveEmailTrigger, email_payload
from .providers.gmail.client import is_history_expired, parse_message
from .providers.webhook import IncomingWebhook, IncomingWebhookTrigger
from .registry.capabilities import Trigger
from .registry.registries import TriggerRegistry
from .store.models import WorkflowRecord, as_utc
from .store.repository import AutomationStore

logger = get_logger("ingestion")

DispatchFn = Callable[[int, dict[str, Any]], Awaitable[Any]]

RENEWAL_JOB_ID = "gmail-watch-renewal"


@dataclass
class IngestionResult:
    """Outcome of fanning one inbound event out to its matching workflows."""

    success: bool = True
    triggered: int = 0
    failed: int = 0
    total_workflows: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "triggered": self.triggered,
            "failed": self.failed,
            "totalWorkflows": self.total_workflows,
        }


async def dispatch_all(
    dispatch: DispatchFn, workflow_ids: Iterable[int], data: dict[str, Any]
) -> IngestionResult:
    """Dispatch one event to several workflows concurrently, counting failures."""
    ids = list(workflow_ids)
    results = await asyncio.gather(
        *(dispatch(workflow_id, data) for workflow_id in ids), return_exceptions=True
    )
    result = IngestionResult(total_workflows=len(ids))
    for workflow_id, outcome in zip(ids, results):
        if isinstance(outcome, BaseException):
            result.failed += 1
            logger.warning("Dispatch to workflow %s failed: %s", workflow_id, outcome)
        else:
            result.triggered += 1
    return result


def _validation_error(exc: PydanticValidationError, what: str) -> ValidationError:
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
    message = errors[0]["msg"] if errors else str(exc)
    return ValidationError(f"Invalid {what}: {field}: {message}", field=field)


def _require_trigger(triggers: TriggerRegistry, provider: str, trigger_id: str) -> Trigger:
    trigger = triggers.get(provider, trigger_id)
    if trigger is None:
        raise AutomationError(f"Trigger {provider}:{trigger_id} is not registered")
    return trigger


# ----------------------------------------------------------------------
# Gmail
# ----------------------------------------------------------------------


class GmailNotification(BaseModel):
    """A decoded new-email notification."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message_id: str = Field(..., min_length=1)
    thread_id: str = ""
    from_: str = Field(..., min_length=1, alias="from")
    to: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    body: str = ""
    date: str | None = None


class PubSubMessage(BaseModel):
    data: str = Field(..., min_length=1)
    message_id: str | None = Field(default=None, alias="messageId")
    publish_time: str | None = Field(default=None, alias="publishTime")


class PubSubEnvelope(BaseModel):
    message: PubSubMessage
    subscription: str | None = None


class GmailIngestionService:
    """Handles Gmail notifications, both pre-decoded and raw Pub/Sub pushes."""

    def __init__(
        self,
        store: AutomationStore,
        triggers: TriggerRegistry,
        dispatch: DispatchFn,
        watch: GmailWatchService,
        http_config: HTTPClientConfig | None = None,
    ) -> None:
        self.store = store
        self.triggers = triggers
        self.dispatch = dispatch
        self.watch = watch
        self.http_config = http_config or HTTPClientConfig()

    @property
    def trigger(self) -> Trigger:
        return _require_trigger(self.triggers, "gmail", ReceiveEmailTrigger.id)

    async def handle_notification(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Dispatch one already-decoded email to every matching workflow.

        Raises:
            ValidationError: If messageId, from, to or subject is missing
        """
        try:
            notification = GmailNotification.model_validate(dict(payload))
        except PydanticValidationError as exc:
            raise _validation_error(exc, "Gmail notification") from exc

        email = {
            "id": notification.message_id,
            "threadId": notification.thread_id,
            "from": notification.from_,
            "to": notification.to,
            "subject": notification.subject,
            "body": notification.body,
            "date": notification.date or datetime.now(timezone.utc).isoformat(),
        }
        matching = self.trigger.get_matching_workflows(email)
        logger.info(
            "Gmail notification %s matched %d workflow(s)", notification.message_id, len(matching)
        )
        result = await dispatch_all(self.dispatch, matching, email_payload(email))
        return result.to_dict()

    async def handle_pubsub(self, envelope: Mapping[str, Any]) -> dict[str, Any]:
        """Process a Pub/Sub push: list mailbox history per listening workflow.

        Raises:
            ValidationError: If the envelope has no ``message.data``
        """
        try:
            parsed = PubSubEnvelope.model_validate(dict(envelope))
            data = json.loads(base64.b64decode(parsed.message.data).decode("utf-8"))
        except PydanticValidationError as exc:
            raise _validation_error(exc, "Pub/Sub envelope") from exc
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError(
                f"Invalid Pub/Sub message data: {exc}", field="message.data"
            ) from exc

        if not isinstance(data, dict):
            raise ValidationError("Pub/Sub message data is not an object", field="message.data")

        email_address = str(data.get("emailAddress") or "")
        history_id = str(data.get("historyId") or "")
        if not email_address or not history_id:
            logger.warning("Pub/Sub notification missing emailAddress or historyId")
            return {"success": True, "processed": 0, "message": "Notification incomplete"}

        registrations = self.trigger.get_registrations()
        workflows = self.store.get_workflows_by_ids(registrations)
        total = IngestionResult()
        processed = 0
        for workflow in workflows:
            if not workflow.is_active:
                continue
            registration = registrations[workflow.id]
            try:
                result = await self._process_workflow(
                    workflow,
                    registration.credential_id,
                    registration.config,
                    email_address,
                    history_id,
                )
            except AutomationError as exc:
                logger.error("Gmail push for workflow %s failed: %s", workflow.id, exc)
                total.failed += 1
                continue
            if result is None:
                continue
            processed += 1
            total.triggered += result.triggered
            total.failed += result.failed
            total.total_workflows += result.total_workflows

        summary = total.to_dict()
        summary["processed"] = processed
        return summary

    async def _process_workflow(
        self,
        workflow: WorkflowRecord,
        credential_id: int | None,
        config: Mapping[str, Any],
        email_address: str,
        history_id: str,
    ) -> IngestionResult | None:
        credential = self.watch.credential_for(workflow, credential_id)
        if credential is None:
            logger.debug("No Gmail credential for workflow %s", workflow.id)
            return None
        credential = await self.watch.credentials.ensure_fresh(credential)

        async with GmailClient(credential.access_token, config=self.http_config) as client:
            profile = await client.get_profile()
            mailbox = str(profile.get("emailAddress") or "")
            if mailbox.lower() != email_address.lower():
                return None

            start = workflow.gmail_history_id
            if not start:
                self.store.update_workflow(workflow.id, gmail_history_id=history_id)
                return None
            if _history_number(history_id) <= _history_number(start):
                return None

            try:
                history = await client.list_history(start)
            except ExternalProviderError as exc:
                if is_history_expired(exc):
                    logger.warning(
                        "Stored history %s expired for workflow %s, resetting", start, workflow.id
                    )
                    self.store.update_workflow(workflow.id, gmail_history_id=history_id)
                    return None
                raise

            result = IngestionResult()
            for message_id in _added_message_ids(history["history"]):
                details = parse_message(await client.get_message(message_id))
                if details["generated"] or mailbox.lower() in details["from"].lower():
                    continue
                if not self.trigger.matches(config, details):
                    continue
                outcome = await dispatch_all(self.dispatch, [workflow.id], email_payload(details))
                result.triggered += outcome.triggered
                result.failed += outcome.failed
                result.total_workflows = 1

        self.store.update_workflow(workflow.id, gmail_history_id=history_id)
        return result


def _history_number(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def _added_message_ids(history: list[dict[str, Any]]) -> list[str]:
    seen: dict[str, None] = {}
    for entry in history:
        for added in entry.get("messagesAdded") or []:
            message_id = (added.get("message") or {}).get("id")
            if message_id:
                seen.setdefault(message_id, None)
    return list(seen)


class GmailWatchRenewalSweep:
    """Periodically renews Gmail watches before they lapse."""

    def __init__(
        self,
        store: AutomationStore,
        triggers: TriggerRegistry,
        watch: GmailWatchService,
        config: GmailWatchConfig | None = None,
    ) -> None:
        self.store = store
        self.triggers = triggers
        self.watch = watch
        self.config = config or GmailWatchConfig()

    def due(self, now: datetime | None = None) -> list[WorkflowRecord]:
        """Active receive-email workflows whose watch is missing or expires within the window."""
        now = now or datetime.now(timezone.utc)
        deadline = now + timedelta(hours=self.config.renewal_window_hours)
        return [
            workflow
            for workflow in self.store.list_active_workflows("gmail", ReceiveEmailTrigger.id)
            if workflow.gmail_watch_expiration is None
            or as_utc(workflow.gmail_watch_expiration) <= deadline
        ]

    async def run(self, now: datetime | None = None) -> dict[str, int]:
        """Renew every due watch; one failure never stops the others."""
        if not self.watch.enabled:
            return {"renewed": 0, "failed": 0}

        trigger = self.triggers.get("gmail", ReceiveEmailTrigger.id)
        renewed = failed = 0
        for workflow in self.due(now):
            registration = trigger.registrations.get(workflow.id) if trigger else None
            credential_id = registration.credential_id if registration else None
            label_ids = (workflow.trigger_config or {}).get("labelIds")
            try:
                await self.watch.start(workflow.id, credential_id, label_ids)
                renewed += 1
            except AutomationError as exc:
                failed += 1
                logger.error("Failed to renew Gmail watch for workflow %s: %s", workflow.id, exc)

        if renewed or failed:
            logger.info("Gmail watch renewal: %d renewed, %d failed", renewed, failed)
        return {"renewed": renewed, "failed": failed}

    def schedule(self, scheduler: AsyncIOScheduler) -> None:
        """Run now and then every ``renewal_interval_hours``."""
        scheduler.add_job(
            self.run,
            trigger="interval",
            hours=self.config.renewal_interval_hours,
            id=RENEWAL_JOB_ID,
            name="Gmail watch renewal",
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
            coalesce=True,
            max_instances=1,
        )
        logger.info(
            "Scheduled Gmail watch renewal every %.1f hours", self.config.renewal_interval_hours
        )

    def unschedule(self, scheduler: AsyncIOScheduler) -> None:
        with contextlib.suppress(JobLookupError):
            scheduler.remove_job(RENEWAL_JOB_ID)


# ----------------------------------------------------------------------
# Webhooks
# ----------------------------------------------------------------------


PayloadBuilder = Callable[[Mapping[str, Any]], dict[str, Any]]

GITHUB_EVENTS: dict[tuple[str, str | None], tuple[str, PayloadBuilder]] = {
    ("issues", "opened"): ("new_issue", issue_event),
    ("issues", "labeled"): ("issue_labeled", issue_labeled_event),
    ("pull_request", "opened"): ("new_pull_request", pull_request_event),
    ("pull_request", "review_requested"): ("pr_review_requested", review_requested_event),
    ("release", "published"): ("release_published", release_event),
    ("push", None): ("push", push_event),
}


class WebhookIngestionService:
    """Routes generic and GitHub webhook deliveries to their triggers."""

    def __init__(self, triggers: TriggerRegistry, dispatch: DispatchFn) -> None:
        self.triggers = triggers
        self.dispatch = dispatch

    async def handle_incoming(
        self,
        path: str,
        payload: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None = None,
        secret: str | None = None,
    ) -> dict[str, Any]:
        """Dispatch a generic webhook POST to the workflows listening on ``path``.

        Raises:
            ValidationError: If the path is empty
        """
        if not path or not path.strip("/ "):
            raise ValidationError("Webhook path is required", field="path")
        trigger = _require_trigger(self.triggers, "webhook", IncomingWebhookTrigger.id)
        matching = trigger.get_matching_workflows({"path": path, "secret": secret})
        data = IncomingWebhook(
            payload=dict(payload or {}),
            headers={str(k).lower(): str(v) for k, v in (headers or {}).items()},
        ).to_event()
        logger.info("Webhook %s matched %d workflow(s)", path, len(matching))
        return (await dispatch_all(self.dispatch, matching, data)).to_dict()

    async def handle_github_event(self, event: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Dispatch a GitHub repository webhook delivery.

        Deliveries with no route in ``GITHUB_EVENTS`` are acknowledged and ignored.

        Raises:
            ValidationError: If the delivery lacks its repository
        """
        action = payload.get("action")
        route = GITHUB_EVENTS.get((event, action)) or GITHUB_EVENTS.get((event, None))
        if route is None:
            logger.debug("Ignoring GitHub event %s (%s)", event, action)
            return {**IngestionResult().to_dict(), "ignored": True}

        trigger_id, build = route
        try:
            coordinates = repository_coordinates(payload)
            data = build(payload)
        except (KeyError, TypeError, PydanticValidationError) as exc:
            raise ValidationError(
                f"Invalid GitHub {event} payload: {exc}", field="repository"
            ) from exc

        trigger = _require_trigger(self.triggers, "github", trigger_id)
        matching = trigger.get_matching_workflows(
            {
                **coordinates,
                "ref": payload.get("ref"),
                "label": (payload.get("label") or {}).get("name"),
            }
        )
        logger.info(
            "GitHub %s on %s/%s matched %d workflow(s)",
            event,
            coordinates["owner"],
            coordinates["repo"],
            len(matching),
        )
        return (await dispatch_all(self.dispatch, matching, data)).to_dict()
