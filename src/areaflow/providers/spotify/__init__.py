"""Spotify: playback and library triggers, player and playlist actions."""

from .actions import (
    AddToPlaylistAction,
    CreatePlaylistAction,
    PausePlaybackAction,
    PlayMusicAction,
    SkipTrackAction,
)
from .client import SpotifyClient
from .polling import SpotifyPollingAdapter
from .triggers import NewLikedSongTrigger, NewTrackPlayedTrigger

__all__ = [
    "AddToPlaylistAction",
    "CreatePlaylistAction",
    "NewLikedSongTrigger",
    "NewTrackPlayedTrigger",
    "PausePlaybackAction",
    "PlayMusicAction",
    "SkipTrackAction",
    "SpotifyClient",
    "SpotifyPollingAdapter",
]
