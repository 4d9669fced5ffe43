"""Tests for the Discord webhook action."""

import json

import pytest
from pytest_httpx import HTTPXMock

from areaflow.core import ExternalProviderError, ValidationError
from areaflow.providers.discord import SendWebhookAction

WEBHOOK = "https://discord.com/api/webhooks/1/abc"


class TestSendWebhook:
    @pytest.mark.anyio
    async def test_posts_and_waits_for_message(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(method="POST", url=f"{WEBHOOK}?wait=true", json={"id": "m1"})
        action = SendWebhookAction()
        config = action.parse_config(
            {"webhookUrl": WEBHOOK, "content": "New star!", "username": "areaflow"}
        )

        result = await action.execute(config, action_context("discord"))

        assert result == {"delivered": True, "messageId": "m1"}
        request = httpx_mock.get_request()
        assert json.loads(request.read()) == {"content": "New star!", "username": "areaflow"}
        assert "Authorization" not in request.headers

    @pytest.mark.anyio
    async def test_rejected_webhook_raises(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(method="POST", url=f"{WEBHOOK}?wait=true", status_code=404)
        action = SendWebhookAction()

        with pytest.raises(ExternalProviderError) as exc_info:
            await action.execute(
                action.parse_config({"webhookUrl": WEBHOOK, "content": "x"}),
                action_context("discord"),
            )
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize(
        "config",
        [
            {"webhookUrl": "https://example.com/hook", "content": "x"},
            {"webhookUrl": WEBHOOK, "content": ""},
            {"webhookUrl": WEBHOOK, "content": "x" * 2001},
            {"content": "x"},
        ],
    )
    def test_invalid_configs(self, config):
        with pytest.raises(ValidationError):
            SendWebhookAction().validate_input(config)

    def test_no_credentials_needed(self):
        assert SendWebhookAction.requires_credentials is False
