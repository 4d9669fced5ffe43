"""Generic incoming-webhook trigger keyed by URL path."""

from __future__ import annotations

import hmac
from collections.abc import Mapping
from typing import Any

from pydantic import Field, field_validator

from ...registry.capabilities import CapabilityConfig, EventPayload, Trigger, TriggerType


def normalize_path(path: str) -> str:
    return "/" + path.strip().strip("/")


class IncomingWebhookConfig(CapabilityConfig):
    path: str = Field(..., min_length=1, description="Webhook endpoint path")
    secret: str | None = Field(
        default=None, description="Optional shared secret callers must present"
    )

    @field_validator("path")
    @classmethod
    def check_path(cls, value: str) -> str:
        if not value.strip().strip("/"):
            raise ValueError("path must not be empty")
        return normalize_path(value)


class IncomingWebhook(EventPayload):
    payload: dict[str, Any] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)


class IncomingWebhookTrigger(Trigger):
    provider = "webhook"
    id = "incoming-webhook"
    name = "Incoming Webhook"
    description = "Fire workflows from any HTTP POST to a configured path"
    trigger_type = TriggerType.WEBHOOK
    config_model = IncomingWebhookConfig
    output_model = IncomingWebhook

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        """Match on path; a configured secret must be presented exactly."""
        path = config.get("path")
        if not path or normalize_path(str(path)) != normalize_path(str(event.get("path", ""))):
            return False
        secret = config.get("secret")
        if not secret:
            return True
        presented = event.get("secret")
        return bool(presented) and hmac.compare_digest(str(secret), str(presented))
