"""Spotify actions."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from ...registry.capabilities import Action, ActionContext, CapabilityConfig, EmptyConfig
from ...registry.kinds import ActionKind
from .client import SpotifyClient, format_uri, strip_uri


class PlayMusicConfig(CapabilityConfig):
    track_uri: str = Field(..., min_length=1, description="Track URI or id to play")


class AddToPlaylistConfig(CapabilityConfig):
    playlist_id: str = Field(..., min_length=1, description="Playlist id or URI")
    track_uri: str = Field(..., min_length=1, description="Track URI or id to add")


class CreatePlaylistConfig(CapabilityConfig):
    name: str = Field(..., min_length=1, description="Playlist name")
    description: str = Field(default="", description="Playlist description")
    public: bool = Field(default=False, description="Create a public playlist")


class SpotifyAction(Action):
    requires_credentials = True

    def client(self, context: ActionContext) -> SpotifyClient:
        return SpotifyClient(context.access_token, config=context.http_config)


class PlayMusicAction(SpotifyAction):
    kind = ActionKind.SPOTIFY_PLAY_MUSIC
    name = "Play Music"
    description = "Start playing a track on the user's active device"
    config_model = PlayMusicConfig

    async def execute(self, config: PlayMusicConfig, context: ActionContext) -> dict[str, Any]:
        track_uri = format_uri(config.track_uri, "track")
        async with self.client(context) as client:
            device_id = await client.play_track(track_uri)
        return {"trackUri": track_uri, "deviceId": device_id}


class AddToPlaylistAction(SpotifyAction):
    kind = ActionKind.SPOTIFY_ADD_TO_PLAYLIST
    name = "Add to Playlist"
    description = "Add a track to a playlist"
    config_model = AddToPlaylistConfig

    async def execute(
        self, config: AddToPlaylistConfig, context: ActionContext
    ) -> dict[str, Any]:
        playlist_id = strip_uri(config.playlist_id, "playlist")
        track_uri = format_uri(config.track_uri, "track")
        async with self.client(context) as client:
            result = await client.add_tracks_to_playlist(playlist_id, [track_uri])
        return {"playlistId": playlist_id, "snapshotId": result.get("snapshot_id")}


class CreatePlaylistAction(SpotifyAction):
    kind = ActionKind.SPOTIFY_CREATE_PLAYLIST
    name = "Create Playlist"
    description = "Create a new playlist for the user"
    config_model = CreatePlaylistConfig

    async def execute(
        self, config: CreatePlaylistConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            profile = await client.get_current_user()
            playlist = await client.create_playlist(
                profile["id"], config.name, config.description, config.public
            )
        return {
            "playlistId": playlist.get("id"),
            "playlistUrl": (playlist.get("external_urls") or {}).get("spotify"),
        }


class SkipTrackAction(SpotifyAction):
    kind = ActionKind.SPOTIFY_SKIP_TRACK
    name = "Skip Track"
    description = "Skip to the next track"
    config_model = EmptyConfig

    async def execute(self, config: EmptyConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            await client.skip_track()
        return {"skipped": True}


class PausePlaybackAction(SpotifyAction):
    kind = ActionKind.SPOTIFY_PAUSE_PLAYBACK
    name = "Pause Playback"
    description = "Pause the user's playback"
    config_model = EmptyConfig

    async def execute(self, config: EmptyConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            await client.pause_playback()
        return {"paused": True}
