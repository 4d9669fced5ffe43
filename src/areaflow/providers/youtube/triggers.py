"""YouTube polling triggers."""

from __future__ import annotations

from pydantic import Field

from ...registry.capabilities import CapabilityConfig, EventPayload, Trigger, TriggerType


class LikedVideo(EventPayload):
    video_id: str
    title: str


class ChannelVideo(EventPayload):
    video_id: str
    title: str
    url: str


class ChannelConfig(CapabilityConfig):
    channel_id: str = Field(..., min_length=1, description="Channel to watch")


class NewLikedVideoTrigger(Trigger):
    provider = "youtube"
    id = "new_liked_video"
    name = "New Liked Video"
    description = "Triggers when the user likes a video"
    requires_credentials = True
    trigger_type = TriggerType.POLLING
    output_model = LikedVideo


class NewVideoFromChannelTrigger(Trigger):
    provider = "youtube"
    id = "new_video_from_channel"
    name = "New Video From Channel"
    description = "Triggers when a channel uploads a new video"
    requires_credentials = True
    trigger_type = TriggerType.POLLING
    config_model = ChannelConfig
    output_model = ChannelVideo
