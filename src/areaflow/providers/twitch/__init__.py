"""Twitch: stream and follower triggers, channel actions."""

from .actions import CreateStreamMarkerAction, SendChatMessageAction, UpdateStreamTitleAction
from .client import TwitchClient
from .polling import TwitchPollingAdapter
from .triggers import (
    NewFollowerTrigger,
    StreamEndedTrigger,
    StreamStartedTrigger,
    ViewerCountThresholdTrigger,
)

__all__ = [
    "CreateStreamMarkerAction",
    "NewFollowerTrigger",
    "SendChatMessageAction",
    "StreamEndedTrigger",
    "StreamStartedTrigger",
    "TwitchClient",
    "TwitchPollingAdapter",
    "UpdateStreamTitleAction",
    "ViewerCountThresholdTrigger",
]
