"""Telegram: bot update triggers and chat actions."""

from .actions import (
    KickMemberAction,
    PinMessageAction,
    SendMessageAction,
    SendPhotoAction,
    UnbanMemberAction,
)
from .client import TelegramClient
from .polling import TelegramPollingAdapter
from .triggers import (
    OnCommandTrigger,
    OnMessageEditedTrigger,
    OnMessageTrigger,
    OnPinnedMessageTrigger,
    OnStartDMTrigger,
    OnVideoMessageTrigger,
    OnVoiceMessageTrigger,
    TelegramTrigger,
)

__all__ = [
    "KickMemberAction",
    "OnCommandTrigger",
    "OnMessageEditedTrigger",
    "OnMessageTrigger",
    "OnPinnedMessageTrigger",
    "OnStartDMTrigger",
    "OnVideoMessageTrigger",
    "OnVoiceMessageTrigger",
    "PinMessageAction",
    "SendMessageAction",
    "SendPhotoAction",
    "TelegramClient",
    "TelegramPollingAdapter",
    "TelegramTrigger",
    "UnbanMemberAction",
]
