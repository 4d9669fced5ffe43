"""Telegram actions; the bot token travels in the action config."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import TelegramClient


class ChatConfig(CapabilityConfig):
    bot_token: str = Field(..., min_length=1, description="Bot token from @BotFather")
    chat_id: str = Field(..., min_length=1, description="Target chat id or @channel username")


class SendMessageConfig(ChatConfig):
    text: str = Field(..., min_length=1, max_length=4096, description="Message text")
    parse_mode: Literal["Markdown", "MarkdownV2", "HTML"] | None = None


class SendPhotoConfig(ChatConfig):
    photo: str = Field(..., min_length=1, description="Photo URL or file id")
    caption: str | None = Field(default=None, max_length=1024, description="Photo caption")


class PinMessageConfig(ChatConfig):
    message_id: int = Field(..., gt=0, description="Message to pin")
    disable_notification: bool = Field(default=False, description="Pin silently")


class MemberConfig(ChatConfig):
    user_id: int = Field(..., gt=0, description="Member to act on")


class KickMemberConfig(MemberConfig):
    until_date: int | None = Field(
        default=None, description="Unix time the ban ends; omitted bans forever"
    )
    revoke_messages: bool = Field(default=False, description="Delete the member's messages")


class UnbanMemberConfig(MemberConfig):
    only_if_banned: bool = Field(default=False, description="Do nothing unless banned")


class TelegramAction(Action):
    def client(self, config: ChatConfig, context: ActionContext) -> TelegramClient:
        return TelegramClient(config.bot_token, config=context.http_config)


class SendMessageAction(TelegramAction):
    kind = ActionKind.TELEGRAM_SEND_MESSAGE
    name = "Send Message"
    description = "Send a text message from a bot"
    config_model = SendMessageConfig

    async def execute(self, config: SendMessageConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(config, context) as client:
            message = await client.send_message(config.chat_id, config.text, config.parse_mode)
        return {"messageId": message.get("message_id"), "chatId": config.chat_id}


class SendPhotoAction(TelegramAction):
    kind = ActionKind.TELEGRAM_SEND_PHOTO
    name = "Send Photo"
    description = "Send a photo by URL, with an optional caption"
    config_model = SendPhotoConfig

    async def execute(self, config: SendPhotoConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(config, context) as client:
            message = await client.send_photo(config.chat_id, config.photo, config.caption)
        return {"messageId": message.get("message_id"), "chatId": config.chat_id}


class PinMessageAction(TelegramAction):
    kind = ActionKind.TELEGRAM_PIN_MESSAGE
    name = "Pin Message"
    description = "Pin a message in a chat the bot administers"
    config_model = PinMessageConfig

    async def execute(self, config: PinMessageConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(config, context) as client:
            pinned = await client.pin_chat_message(
                config.chat_id, config.message_id, config.disable_notification
            )
        return {"pinned": pinned, "messageId": config.message_id}


class KickMemberAction(TelegramAction):
    kind = ActionKind.TELEGRAM_KICK_MEMBER
    name = "Kick Member"
    description = "Remove a member from a group and ban them"
    config_model = KickMemberConfig

    async def execute(self, config: KickMemberConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(config, context) as client:
            banned = await client.ban_chat_member(
                config.chat_id, config.user_id, config.until_date, config.revoke_messages
            )
        return {"success": banned, "userId": config.user_id}


class UnbanMemberAction(TelegramAction):
    kind = ActionKind.TELEGRAM_UNBAN_MEMBER
    name = "Unban Member"
    description = "Lift a member's ban so they can rejoin"
    config_model = UnbanMemberConfig

    async def execute(self, config: UnbanMemberConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(config, context) as client:
            unbanned = await client.unban_chat_member(
                config.chat_id, config.user_id, config.only_if_banned
            )
        return {"success": unbanned, "userId": config.user_id}
