"""Mock capabilities shared by the test suite."""

from __future__ import annotations

from pydantic import Field

from areaflow.core import RegistrationError
from areaflow.registry import Action, ActionKind, CapabilityConfig, SetupResult, Trigger


class ChannelConfig(CapabilityConfig):
    channel: str = Field(..., min_length=1)


class ChannelTrigger(Trigger):
    provider = "fake"
    id = "channel"
    name = "Channel"
    config_model = ChannelConfig

    def __init__(self):
        super().__init__()
        self.setup_calls = []
        self.setup_error: Exception | None = None
        self.soft_fail = False

    async def setup(self, registration, config, *, restoring=False):
        self.setup_calls.append((registration.workflow_id, restoring))
        if self.setup_error is not None:
            raise self.setup_error
        if self.soft_fail:
            return SetupResult.fail(RegistrationError("subscription rejected"))
        return SetupResult.ok()


class MessageConfig(CapabilityConfig):
    content: str = Field(..., min_length=1)


class RecordingAction(Action):
    kind = ActionKind.DISCORD_SEND_WEBHOOK
    name = "Recording"
    config_model = MessageConfig

    def __init__(self):
        self.calls = []

    async def execute(self, config, context):
        self.calls.append((config, context))
        return {"content": config.content}


class CredentialedAction(RecordingAction):
    kind = ActionKind.GITHUB_ADD_COMMENT
    requires_credentials = True
