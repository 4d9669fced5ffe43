"""YouTube actions."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import YouTubeClient


class CreatePlaylistConfig(CapabilityConfig):
    title: str = Field(..., min_length=1, description="Playlist title")
    description: str = Field(default="", description="Playlist description")
    privacy_status: Literal["private", "unlisted", "public"] = "private"


class RateVideoConfig(CapabilityConfig):
    video_id: str = Field(..., min_length=1, description="Video to rate")
    rating: Literal["like", "dislike", "none"] = "like"


class CommentVideoConfig(CapabilityConfig):
    video_id: str = Field(..., min_length=1, description="Video to comment on")
    comment: str = Field(..., min_length=1, description="Comment text")


class YouTubeAction(Action):
    requires_credentials = True

    def client(self, context: ActionContext) -> YouTubeClient:
        return YouTubeClient(context.access_token, config=context.http_config)


class CreatePlaylistAction(YouTubeAction):
    kind = ActionKind.YOUTUBE_CREATE_PLAYLIST
    name = "Create Playlist"
    description = "Create a playlist on the user's channel"
    config_model = CreatePlaylistConfig

    async def execute(
        self, config: CreatePlaylistConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            playlist = await client.create_playlist(
                config.title, config.description, config.privacy_status
            )
        return {"playlistId": playlist.get("id"), "title": config.title}


class RateVideoAction(YouTubeAction):
    kind = ActionKind.YOUTUBE_RATE_VIDEO
    name = "Rate Video"
    description = "Like or dislike a video"
    config_model = RateVideoConfig

    async def execute(self, config: RateVideoConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            await client.rate_video(config.video_id, config.rating)
        return {"videoId": config.video_id, "rating": config.rating}


class CommentVideoAction(YouTubeAction):
    kind = ActionKind.YOUTUBE_COMMENT_VIDEO
    name = "Comment on Video"
    description = "Post a top-level comment on a video"
    config_model = CommentVideoConfig

    async def execute(
        self, config: CommentVideoConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            thread = await client.comment_video(config.video_id, config.comment)
        return {"commentThreadId": thread.get("id"), "videoId": config.video_id}
