"""Twitch actions; each acts on the authenticated user's own channel."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import TwitchClient


class UpdateStreamTitleConfig(CapabilityConfig):
    title: str = Field(..., min_length=1, max_length=140, description="New stream title")


class SendChatMessageConfig(CapabilityConfig):
    message: str = Field(..., min_length=1, max_length=500, description="Chat message")


class CreateStreamMarkerConfig(CapabilityConfig):
    description: str = Field(default="Marker", max_length=140, description="Marker description")


class TwitchAction(Action):
    requires_credentials = True

    def client(self, context: ActionContext) -> TwitchClient:
        return TwitchClient(
            context.access_token, client_id=context.client_id, config=context.http_config
        )


class UpdateStreamTitleAction(TwitchAction):
    kind = ActionKind.TWITCH_UPDATE_STREAM_TITLE
    name = "Update Stream Title"
    description = "Change the channel's stream title"
    config_model = UpdateStreamTitleConfig

    async def execute(
        self, config: UpdateStreamTitleConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            user = await client.get_user()
            await client.update_channel(user["id"], title=config.title)
        return {"title": config.title}


class SendChatMessageAction(TwitchAction):
    kind = ActionKind.TWITCH_SEND_CHAT_MESSAGE
    name = "Send Chat Message"
    description = "Post a message in the channel's chat"
    config_model = SendChatMessageConfig

    async def execute(
        self, config: SendChatMessageConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            user = await client.get_user()
            await client.send_chat_message(user["id"], user["id"], config.message)
        return {"sent": True}


class CreateStreamMarkerAction(TwitchAction):
    kind = ActionKind.TWITCH_CREATE_STREAM_MARKER
    name = "Create Stream Marker"
    description = "Mark the current position of the live stream"
    config_model = CreateStreamMarkerConfig

    async def execute(
        self, config: CreateStreamMarkerConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            user = await client.get_user()
            marker = await client.create_stream_marker(user["id"], config.description)
        return {"markerId": marker.get("id"), "positionSeconds": marker.get("position_seconds")}
