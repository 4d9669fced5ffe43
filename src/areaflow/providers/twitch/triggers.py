"""Twitch polling triggers."""

from __future__ import annotations

from pydantic import Field

from ...registry.capabilities import CapabilityConfig, EventPayload, Trigger, TriggerType


class StreamStarted(EventPayload):
    started_at: str
    title: str


class StreamEnded(EventPayload):
    ended_at: str


class NewFollower(EventPayload):
    follower_name: str
    follower_id: str
    followed_at: str


class ViewerCount(EventPayload):
    viewer_count: int


class ViewerThresholdConfig(CapabilityConfig):
    threshold: int = Field(..., ge=0, description="Viewer count to reach")


class TwitchTrigger(Trigger):
    provider = "twitch"
    requires_credentials = True
    trigger_type = TriggerType.POLLING


class StreamStartedTrigger(TwitchTrigger):
    id = "stream_started"
    name = "Stream Started"
    description = "Triggers when the user goes live"
    output_model = StreamStarted


class StreamEndedTrigger(TwitchTrigger):
    id = "stream_ended"
    name = "Stream Ended"
    description = "Triggers when the user's stream goes offline"
    output_model = StreamEnded


class NewFollowerTrigger(TwitchTrigger):
    id = "new_follower"
    name = "New Follower"
    description = "Triggers when someone follows the channel"
    output_model = NewFollower


class ViewerCountThresholdTrigger(TwitchTrigger):
    id = "viewer_count_threshold"
    name = "Viewer Count Threshold"
    description = "Triggers when the live viewer count reaches a value"
    config_model = ViewerThresholdConfig
    output_model = ViewerCount
