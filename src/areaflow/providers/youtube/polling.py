"""YouTube polling: liked videos and per-channel uploads, both marker cursors."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ...core.logger import get_logger
from ...engine.cursors import collect_until
from ...engine.polling import DetectedEvent, PollPartition, PollTarget
from ..common.adapter import CredentialClientAdapter
from .client import YouTubeClient
from .triggers import ChannelConfig, ChannelVideo, LikedVideo

logger = get_logger("providers.youtube.polling")

LIKED = "lastLikedVideoId"
UPLOADS = "channelUploads"

NO_MARKER = ""
LIKED_LIMIT = 20


def _liked_id(item: dict[str, Any]) -> str:
    return item["id"]


def _upload_id(item: dict[str, Any]) -> str:
    return item["contentDetails"]["videoId"]


def _since_marker(
    items: list[dict[str, Any]], key: Callable[[dict[str, Any]], str], marker: str
) -> list[dict[str, Any]]:
    """Items newer than the marker, oldest first.

    When the marker has left the window (e.g. the video was unliked) only the
    newest item is reported.
    """
    fresh = collect_until(items, key, marker)
    if items and len(fresh) == len(items):
        return [items[0]]
    return fresh


class YouTubePollingAdapter(CredentialClientAdapter):
    provider = "youtube"
    client_class = YouTubeClient

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        targets: list[PollTarget] = []
        if "new_liked_video" in partition.tasks:
            targets.append(
                PollTarget(
                    key=LIKED,
                    workflows={"new_liked_video": list(partition.tasks["new_liked_video"])},
                )
            )

        by_channel: dict[str, list[int]] = defaultdict(list)
        for workflow_id in partition.tasks.get("new_video_from_channel", []):
            try:
                config = ChannelConfig.model_validate(partition.registrations[workflow_id].config)
            except PydanticValidationError as exc:
                logger.warning("Ignoring workflow %s without a channel: %s", workflow_id, exc)
                continue
            by_channel[config.channel_id].append(workflow_id)
        targets.extend(
            PollTarget(
                key=UPLOADS,
                sub_key=channel_id,
                workflows={"new_video_from_channel": workflow_ids},
                params={"channel_id": channel_id},
            )
            for channel_id, workflow_ids in by_channel.items()
        )
        return targets

    async def fetch_snapshot(
        self, client: YouTubeClient, target: PollTarget, cursor: Any
    ) -> list[dict[str, Any]]:
        if target.key == LIKED:
            return await client.get_liked_videos(LIKED_LIMIT)
        return await client.get_latest_uploads(target.params["channel_id"])

    def _key(self, target: PollTarget) -> Callable[[dict[str, Any]], str]:
        return _liked_id if target.key == LIKED else _upload_id

    def seed(self, snapshot: list[dict[str, Any]], target: PollTarget) -> Any:
        return self._key(target)(snapshot[0]) if snapshot else NO_MARKER

    def diff(
        self, cursor: Any, snapshot: list[dict[str, Any]], target: PollTarget
    ) -> list[DetectedEvent]:
        fresh = _since_marker(snapshot, self._key(target), cursor)
        if target.key == LIKED:
            return [
                DetectedEvent(
                    "new_liked_video",
                    LikedVideo(
                        video_id=item["id"], title=item.get("snippet", {}).get("title", "")
                    ).to_event(),
                )
                for item in fresh
            ]
        return [
            DetectedEvent(
                "new_video_from_channel",
                ChannelVideo(
                    video_id=_upload_id(item),
                    title=item.get("snippet", {}).get("title", ""),
                    url=f"https://www.youtube.com/watch?v={_upload_id(item)}",
                ).to_event(),
            )
            for item in fresh
        ]

    def advance(
        self,
        cursor: Any,
        snapshot: list[dict[str, Any]],
        events: list[DetectedEvent],
        target: PollTarget,
    ) -> Any:
        if not snapshot:
            return cursor
        return self._key(target)(snapshot[0])
