"""Spotify polling triggers."""

from __future__ import annotations

from typing import Any

from ...registry.capabilities import EventPayload, Trigger, TriggerType


class PlayedTrack(EventPayload):
    track_id: str
    track_name: str
    artist_name: str
    album: str
    uri: str
    played_at: str


class LikedTrack(EventPayload):
    track_id: str
    track_name: str
    artist_name: str
    album: str
    uri: str
    liked_at: str


def _track_fields(track: dict[str, Any]) -> dict[str, Any]:
    artists = track.get("artists") or [{}]
    return {
        "track_id": track.get("id", ""),
        "track_name": track.get("name", ""),
        "artist_name": artists[0].get("name", ""),
        "album": (track.get("album") or {}).get("name", ""),
        "uri": track.get("uri", ""),
    }


def played_payload(item: dict[str, Any]) -> dict[str, Any]:
    """Payload for one recently-played item."""
    return PlayedTrack(**_track_fields(item["track"]), played_at=item["played_at"]).to_event()


def liked_payload(item: dict[str, Any]) -> dict[str, Any]:
    """Payload for one saved-track item."""
    return LikedTrack(**_track_fields(item["track"]), liked_at=item["added_at"]).to_event()


class NewTrackPlayedTrigger(Trigger):
    provider = "spotify"
    id = "new_track_played"
    name = "New Track Played"
    description = "Triggers when a new track is played"
    requires_credentials = True
    trigger_type = TriggerType.POLLING
    output_model = PlayedTrack


class NewLikedSongTrigger(Trigger):
    provider = "spotify"
    id = "new_liked_song"
    name = "New Liked Song"
    description = "Triggers when a new song is liked"
    requires_credentials = True
    trigger_type = TriggerType.POLLING
    output_model = LikedTrack
