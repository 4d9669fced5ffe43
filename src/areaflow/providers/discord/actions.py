"""Discord actions."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import DiscordWebhookClient

WEBHOOK_PREFIXES = (
    "https://discord.com/api/webhooks/",
    "https://discordapp.com/api/webhooks/",
    "https://canary.discord.com/api/webhooks/",
    "https://ptb.discord.com/api/webhooks/",
)


class SendWebhookConfig(CapabilityConfig):
    webhook_url: str = Field(..., min_length=1, description="Discord webhook URL")
    content: str = Field(..., min_length=1, max_length=2000, description="Message content")
    username: str | None = Field(default=None, description="Override the webhook's name")

    @field_validator("webhook_url")
    @classmethod
    def check_url(cls, value: str) -> str:
        if not value.startswith(WEBHOOK_PREFIXES):
            raise ValueError("must be a Discord webhook URL")
        return value


class SendWebhookAction(Action):
    kind = ActionKind.DISCORD_SEND_WEBHOOK
    name = "Send Discord Webhook"
    description = "Post a message to a Discord webhook URL"
    config_model = SendWebhookConfig

    async def execute(self, config: SendWebhookConfig, context: ActionContext) -> dict[str, Any]:
        async with DiscordWebhookClient(config=context.http_config) as client:
            message = await client.execute(config.webhook_url, config.content, config.username)
        return {"delivered": True, "messageId": (message or {}).get("id")}
