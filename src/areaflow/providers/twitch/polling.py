"""Twitch polling: stream state (flag + value) and followers (id set)."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ...core.config import HTTPClientConfig, OAuthAppConfig
from ...core.logger import get_logger
from ...engine.cursors import Edge, cap_ids, crossed_upward, edge, new_ids
from ...engine.polling import DetectedEvent, PollPartition, PollTarget
from ...registry.capabilities import Trigger
from ..common.adapter import CredentialClientAdapter
from .client import TwitchClient
from .triggers import (
    NewFollower,
    StreamEnded,
    StreamStarted,
    ViewerCount,
    ViewerThresholdConfig,
)

logger = get_logger("providers.twitch.polling")

STREAM = "stream"
FOLLOWERS = "lastFollowers"

STREAM_TRIGGERS = ("stream_started", "stream_ended", "viewer_count_threshold")


class TwitchPollingAdapter(CredentialClientAdapter):
    provider = "twitch"
    client_class = TwitchClient

    def __init__(
        self,
        triggers: Sequence[Trigger],
        http_config: HTTPClientConfig | None = None,
        oauth_apps: Mapping[str, OAuthAppConfig] | None = None,
        id_cap: int = 50,
    ) -> None:
        super().__init__(triggers, http_config, oauth_apps)
        self.id_cap = id_cap

    def connect(self, partition: PollPartition) -> TwitchClient:
        return TwitchClient(
            self.access_token(partition),
            client_id=self.client_id_for(partition),
            config=self.http_config,
        )

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        targets: list[PollTarget] = []

        stream_workflows = {
            trigger_id: list(partition.tasks[trigger_id])
            for trigger_id in STREAM_TRIGGERS
            if trigger_id in partition.tasks
        }
        if stream_workflows:
            thresholds: dict[int, int] = {}
            for workflow_id in stream_workflows.get("viewer_count_threshold", []):
                registration = partition.registrations[workflow_id]
                try:
                    config = ViewerThresholdConfig.model_validate(registration.config)
                except PydanticValidationError as exc:
                    logger.warning("Ignoring workflow %s with bad threshold: %s", workflow_id, exc)
                    continue
                thresholds[workflow_id] = config.threshold
            targets.append(
                PollTarget(
                    key=STREAM, workflows=stream_workflows, params={"thresholds": thresholds}
                )
            )

        if "new_follower" in partition.tasks:
            targets.append(
                PollTarget(
                    key=FOLLOWERS, workflows={"new_follower": list(partition.tasks["new_follower"])}
                )
            )
        return targets

    async def fetch_snapshot(self, client: TwitchClient, target: PollTarget, cursor: Any) -> Any:
        user = await client.get_user()
        if target.key == FOLLOWERS:
            return await client.get_followers(user["id"])

        stream = await client.get_stream(user["id"])
        if stream is None:
            return {"isLive": False, "viewerCount": 0}
        return {
            "isLive": True,
            "viewerCount": int(stream.get("viewer_count") or 0),
            "startedAt": stream.get("started_at", ""),
            "title": stream.get("title", ""),
        }

    def seed(self, snapshot: Any, target: PollTarget) -> Any:
        if target.key == FOLLOWERS:
            return cap_ids([follower["user_id"] for follower in snapshot], self.id_cap)
        return {"isLive": snapshot["isLive"], "lastViewerCount": snapshot["viewerCount"]}

    def diff(self, cursor: Any, snapshot: Any, target: PollTarget) -> list[DetectedEvent]:
        if target.key == FOLLOWERS:
            return self._follower_events(cursor, snapshot)

        was_live = bool(cursor.get("isLive"))
        # A new broadcast counts viewers from zero
        previous_count = int(cursor.get("lastViewerCount") or 0) if was_live else 0
        is_live = snapshot["isLive"]
        count = snapshot["viewerCount"]

        events: list[DetectedEvent] = []
        transition = edge(was_live, is_live)
        if transition is Edge.RISING and "stream_started" in target.workflows:
            payload = StreamStarted(started_at=snapshot["startedAt"], title=snapshot["title"])
            events.append(DetectedEvent("stream_started", payload.to_event()))
        elif transition is Edge.FALLING and "stream_ended" in target.workflows:
            payload = StreamEnded(ended_at=datetime.now(timezone.utc).isoformat())
            events.append(DetectedEvent("stream_ended", payload.to_event()))

        if is_live:
            for workflow_id, threshold in target.params.get("thresholds", {}).items():
                if crossed_upward(previous_count, count, threshold):
                    events.append(
                        DetectedEvent(
                            "viewer_count_threshold",
                            ViewerCount(viewer_count=count).to_event(),
                            workflow_ids=[workflow_id],
                        )
                    )
        return events

    def _follower_events(self, cursor: Any, followers: list[dict[str, Any]]) -> list[DetectedEvent]:
        fresh = set(new_ids([follower["user_id"] for follower in followers], cursor))
        return [
            DetectedEvent(
                "new_follower",
                NewFollower(
                    follower_name=follower.get("user_name", ""),
                    follower_id=follower["user_id"],
                    followed_at=follower.get("followed_at", ""),
                ).to_event(),
            )
            for follower in reversed(followers)
            if follower["user_id"] in fresh
        ]

    def advance(
        self, cursor: Any, snapshot: Any, events: list[DetectedEvent], target: PollTarget
    ) -> Any:
        if target.key == FOLLOWERS:
            if not events:
                return cursor
            return cap_ids([follower["user_id"] for follower in snapshot], self.id_cap)
        return {
            "isLive": snapshot["isLive"],
            "lastViewerCount": snapshot["viewerCount"] if snapshot["isLive"] else 0,
        }
