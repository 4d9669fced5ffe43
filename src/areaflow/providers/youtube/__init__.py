"""YouTube: liked-video and channel-upload triggers, playlist and video actions."""

from .actions import CommentVideoAction, CreatePlaylistAction, RateVideoAction
from .client import YouTubeClient
from .polling import YouTubePollingAdapter
from .triggers import NewLikedVideoTrigger, NewVideoFromChannelTrigger

__all__ = [
    "CommentVideoAction",
    "CreatePlaylistAction",
    "NewLikedVideoTrigger",
    "NewVideoFromChannelTrigger",
    "RateVideoAction",
    "YouTubeClient",
    "YouTubePollingAdapter",
]
