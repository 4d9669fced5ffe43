"""Spotify polling: recently played (monotonic cursor) and liked songs (id set)."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ...core.config import HTTPClientConfig, OAuthAppConfig
from ...engine.cursors import cap_ids, max_key, new_ids, newer_than, timestamp_ms
from ...engine.polling import DetectedEvent, PollPartition, PollTarget
from ...registry.capabilities import Trigger
from ..common.adapter import CredentialClientAdapter
from .client import SpotifyClient
from .triggers import liked_payload, played_payload

PLAYED = "lastPlayedAt"
LIKED = "lastLikedIds"

_STATE_KEYS = {"new_track_played": PLAYED, "new_liked_song": LIKED}

SNAPSHOT_LIMIT = 20


def _played_ms(item: dict[str, Any]) -> int:
    return timestamp_ms(item.get("played_at"))


def _track_id(item: dict[str, Any]) -> str:
    return item["track"]["id"]


class SpotifyPollingAdapter(CredentialClientAdapter):
    provider = "spotify"
    client_class = SpotifyClient

    def __init__(
        self,
        triggers: Sequence[Trigger],
        http_config: HTTPClientConfig | None = None,
        oauth_apps: Mapping[str, OAuthAppConfig] | None = None,
        id_cap: int = 50,
    ) -> None:
        super().__init__(triggers, http_config, oauth_apps)
        self.id_cap = id_cap

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        return [
            PollTarget(key=_STATE_KEYS[trigger_id], workflows={trigger_id: list(ids)})
            for trigger_id, ids in partition.tasks.items()
            if trigger_id in _STATE_KEYS
        ]

    async def fetch_snapshot(
        self, client: SpotifyClient, target: PollTarget, cursor: Any
    ) -> list[dict[str, Any]]:
        if target.key == PLAYED:
            return await client.get_recently_played(SNAPSHOT_LIMIT)
        return await client.get_liked_tracks(SNAPSHOT_LIMIT)

    def seed(self, snapshot: list[dict[str, Any]], target: PollTarget) -> Any:
        if target.key == PLAYED:
            return max_key(snapshot, _played_ms, default=0)
        return cap_ids([_track_id(item) for item in snapshot], self.id_cap)

    def diff(
        self, cursor: Any, snapshot: list[dict[str, Any]], target: PollTarget
    ) -> list[DetectedEvent]:
        if target.key == PLAYED:
            return [
                DetectedEvent("new_track_played", played_payload(item))
                for item in newer_than(snapshot, _played_ms, int(cursor))
            ]

        fresh = set(new_ids([_track_id(item) for item in snapshot], cursor))
        # Saved tracks arrive newest first
        return [
            DetectedEvent("new_liked_song", liked_payload(item))
            for item in reversed(snapshot)
            if _track_id(item) in fresh
        ]

    def advance(
        self,
        cursor: Any,
        snapshot: list[dict[str, Any]],
        events: list[DetectedEvent],
        target: PollTarget,
    ) -> Any:
        if target.key == PLAYED:
            return max_key(newer_than(snapshot, _played_ms, int(cursor)), _played_ms, int(cursor))
        if not events:
            return cursor
        return cap_ids([_track_id(item) for item in snapshot], self.id_cap)
