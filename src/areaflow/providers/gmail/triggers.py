"""Gmail receive-email trigger.

Fed two ways: Pub/Sub push notifications through the ingestion service, and
the history poller as a fallback. Both end in ``matches``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from ...core.errors import AutomationError, RegistrationError
from ...registry.capabilities import (
    CapabilityConfig,
    EventPayload,
    Registration,
    RegistrationStore,
    SetupResult,
    Trigger,
    TriggerType,
    matches_config,
)
from .watch import GmailWatchService


class ReceiveEmailConfig(CapabilityConfig):
    from_: str | None = Field(default=None, alias="from", description="Sender contains")
    subject: str | None = Field(default=None, description="Subject contains")
    label_ids: list[str] | None = Field(default=None, description="Labels to watch")


class ReceivedEmail(EventPayload):
    message_id: str
    thread_id: str = ""
    from_: str = Field(alias="from")
    to: str
    subject: str
    body: str = ""
    date: str = ""


def email_payload(details: Mapping[str, Any]) -> dict[str, Any]:
    return ReceivedEmail(
        message_id=details.get("id") or details.get("messageId", ""),
        thread_id=details.get("threadId", ""),
        from_=details.get("from", ""),
        to=details.get("to", ""),
        subject=details.get("subject", ""),
        body=details.get("body", ""),
        date=details.get("date", ""),
    ).to_event()


class ReceiveEmailTrigger(Trigger):
    provider = "gmail"
    id = "receive-email"
    name = "Receive Email"
    description = "Triggers when a new email arrives, optionally filtered by sender and subject"
    requires_credentials = True
    trigger_type = TriggerType.PUSH
    config_model = ReceiveEmailConfig
    output_model = ReceivedEmail

    def __init__(
        self,
        store: RegistrationStore | None = None,
        watch: GmailWatchService | None = None,
    ) -> None:
        super().__init__(store)
        self.watch = watch

    async def setup(
        self,
        registration: Registration,
        config: ReceiveEmailConfig,
        *,
        restoring: bool = False,
    ) -> SetupResult:
        # Existing watches are renewed by the sweep, not on restart
        if self.watch is None or not self.watch.enabled or restoring:
            return SetupResult.ok()
        try:
            result = await self.watch.start(
                registration.workflow_id, registration.credential_id, config.label_ids
            )
        except AutomationError as exc:
            return SetupResult.fail(
                RegistrationError(
                    f"Gmail watch failed: {exc}",
                    capability=self.key,
                    workflow_id=registration.workflow_id,
                )
            )
        return SetupResult.ok(historyId=result.history_id, expiration=result.expiration)

    async def teardown(self, registration: Registration) -> None:
        if self.watch is None or not self.watch.enabled:
            return
        # The watch is per mailbox; keep it while another workflow still listens
        if any(
            other.credential_id == registration.credential_id
            for other in self.registrations.snapshot().values()
        ):
            return
        await self.watch.stop(registration.workflow_id, registration.credential_id)

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        try:
            parsed = ReceiveEmailConfig.model_validate(dict(config))
        except PydanticValidationError:
            return False
        if parsed.label_ids and "labelIds" in event:
            if not set(parsed.label_ids) & set(event.get("labelIds") or []):
                return False
        return matches_config({"from": parsed.from_, "subject": parsed.subject}, event)
