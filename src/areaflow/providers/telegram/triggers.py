"""Telegram bot triggers.

Every trigger is fed by one ``getUpdates`` loop per bot token. Each
trigger decides from a raw Telegram message whether it fires and what
payload it produces.
"""

from __future__ import annotations

import re
from abc import abstractmethod
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import Field, field_validator

from ...registry.capabilities import CapabilityConfig, EventPayload, Trigger, TriggerType


class BotConfig(CapabilityConfig):
    bot_token: str = Field(..., min_length=1, description="Bot token from @BotFather")


class OnMessageConfig(BotConfig):
    match_text: str | None = Field(
        default=None, description="Regular expression the text must match"
    )

    @field_validator("match_text")
    @classmethod
    def compile_pattern(cls, value: str | None) -> str | None:
        if value:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid regular expression: {exc}") from exc
        return value


class OnCommandConfig(BotConfig):
    command: str = Field(
        ..., min_length=1, description="Command, with or without the leading slash"
    )

    @property
    def normalized(self) -> str:
        return self.command if self.command.startswith("/") else f"/{self.command}"


class MessageEvent(EventPayload):
    message_id: int
    chat_id: int
    user_id: int | None = None
    username: str | None = None
    text: str
    date: str


class CommandEvent(EventPayload):
    message_id: int
    chat_id: int
    user_id: int | None = None
    username: str | None = None
    command: str
    args: str
    date: str


class EditedEvent(EventPayload):
    message_id: int
    chat_id: int
    user_id: int | None = None
    username: str | None = None
    text: str | None = None
    edit_date: str


class StartEvent(EventPayload):
    message_id: int
    chat_id: int
    user_id: int | None = None
    username: str | None = None
    first_name: str | None = None
    date: str


class PinnedEvent(EventPayload):
    message_id: int
    chat_id: int
    pinned_message_id: int
    pinned_text: str | None = None
    pinner_user_id: int | None = None
    date: str


class MediaEvent(EventPayload):
    message_id: int
    chat_id: int
    user_id: int | None = None
    duration: int | None = None
    mime_type: str | None = None
    file_id: str
    date: str


class VideoEvent(MediaEvent):
    is_video_note: bool = False


def iso_from_epoch(seconds: int | None) -> str:
    return datetime.fromtimestamp(seconds or 0, tz=timezone.utc).isoformat()


def _sender(message: Mapping[str, Any]) -> dict[str, Any]:
    sender = message.get("from") or {}
    return {
        "message_id": message["message_id"],
        "chat_id": message["chat"]["id"],
        "user_id": sender.get("id"),
        "username": sender.get("username"),
    }


class TelegramTrigger(Trigger):
    provider = "telegram"
    trigger_type = TriggerType.POLLING
    config_model = BotConfig
    handles_edits = False

    @abstractmethod
    def payload_for(
        self, message: Mapping[str, Any], config: CapabilityConfig
    ) -> dict[str, Any] | None:
        """Payload if the message fires this trigger for ``config``, else None."""


class OnMessageTrigger(TelegramTrigger):
    id = "on-message"
    name = "On Message"
    description = "Triggers on every text message, optionally filtered by a regular expression"
    config_model = OnMessageConfig
    output_model = MessageEvent

    def payload_for(
        self, message: Mapping[str, Any], config: OnMessageConfig
    ) -> dict[str, Any] | None:
        text = message.get("text")
        if not text:
            return None
        if config.match_text and not re.search(config.match_text, text):
            return None
        return MessageEvent(
            **_sender(message), text=text, date=iso_from_epoch(message.get("date"))
        ).to_event()


class OnCommandTrigger(TelegramTrigger):
    id = "on-command"
    name = "On Command"
    description = "Triggers when a message starts with a bot command"
    config_model = OnCommandConfig
    output_model = CommandEvent

    def payload_for(
        self, message: Mapping[str, Any], config: OnCommandConfig
    ) -> dict[str, Any] | None:
        text = message.get("text")
        if not text:
            return None
        command = config.normalized
        # "/start" and "/start@my_bot" match; "/startover" does not
        matched = re.match(rf"{re.escape(command)}(?:@\w+)?(?=\s|$)", text)
        if matched is None:
            return None
        return CommandEvent(
            **_sender(message),
            command=command,
            args=text[matched.end():].strip(),
            date=iso_from_epoch(message.get("date")),
        ).to_event()


class OnMessageEditedTrigger(TelegramTrigger):
    id = "on-message-edited"
    name = "On Message Edited"
    description = "Triggers when a message is edited"
    output_model = EditedEvent
    handles_edits = True

    def payload_for(
        self, message: Mapping[str, Any], config: BotConfig
    ) -> dict[str, Any] | None:
        return EditedEvent(
            **_sender(message),
            text=message.get("text") or message.get("caption"),
            edit_date=iso_from_epoch(message.get("edit_date")),
        ).to_event()


class OnStartDMTrigger(TelegramTrigger):
    id = "on-start-dm"
    name = "On /start in Private Chat"
    description = "Triggers when a user starts a private conversation with the bot"
    output_model = StartEvent

    def payload_for(
        self, message: Mapping[str, Any], config: BotConfig
    ) -> dict[str, Any] | None:
        if message.get("text") != "/start" or message["chat"].get("type") != "private":
            return None
        return StartEvent(
            **_sender(message),
            first_name=(message.get("from") or {}).get("first_name"),
            date=iso_from_epoch(message.get("date")),
        ).to_event()


class OnPinnedMessageTrigger(TelegramTrigger):
    id = "on-pinned-message"
    name = "On Pinned Message"
    description = "Triggers when a message is pinned in a chat"
    output_model = PinnedEvent

    def payload_for(
        self, message: Mapping[str, Any], config: BotConfig
    ) -> dict[str, Any] | None:
        pinned = message.get("pinned_message")
        if not pinned:
            return None
        return PinnedEvent(
            message_id=message["message_id"],
            chat_id=message["chat"]["id"],
            pinned_message_id=pinned["message_id"],
            pinned_text=pinned.get("text") or pinned.get("caption"),
            pinner_user_id=(message.get("from") or {}).get("id"),
            date=iso_from_epoch(message.get("date")),
        ).to_event()


class OnVideoMessageTrigger(TelegramTrigger):
    id = "on-video-message"
    name = "On Video Message"
    description = "Triggers when a video or a round video note is sent"
    output_model = VideoEvent

    def payload_for(
        self, message: Mapping[str, Any], config: BotConfig
    ) -> dict[str, Any] | None:
        video = message.get("video") or message.get("video_note")
        if not video:
            return None
        sender = _sender(message)
        return VideoEvent(
            message_id=sender["message_id"],
            chat_id=sender["chat_id"],
            user_id=sender["user_id"],
            duration=video.get("duration"),
            # video notes carry no mime type
            mime_type=video.get("mime_type") or "video/mp4",
            file_id=video["file_id"],
            is_video_note="video" not in message,
            date=iso_from_epoch(message.get("date")),
        ).to_event()


class OnVoiceMessageTrigger(TelegramTrigger):
    id = "on-voice-message"
    name = "On Voice Message"
    description = "Triggers when a voice message is sent"
    output_model = MediaEvent

    def payload_for(
        self, message: Mapping[str, Any], config: BotConfig
    ) -> dict[str, Any] | None:
        voice = message.get("voice")
        if not voice:
            return None
        sender = _sender(message)
        return MediaEvent(
            message_id=sender["message_id"],
            chat_id=sender["chat_id"],
            user_id=sender["user_id"],
            duration=voice.get("duration"),
            mime_type=voice.get("mime_type"),
            file_id=voice["file_id"],
            date=iso_from_epoch(message.get("date")),
        ).to_event()
