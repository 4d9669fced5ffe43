"""Tests for the Spotify provider."""

import json

import pytest
from pytest_httpx import HTTPXMock

from areaflow.core import ExternalProviderError
from areaflow.engine import PollTarget
from areaflow.providers.spotify import (
    AddToPlaylistAction,
    CreatePlaylistAction,
    NewLikedSongTrigger,
    NewTrackPlayedTrigger,
    PlayMusicAction,
    SpotifyClient,
    SpotifyPollingAdapter,
)
from areaflow.providers.spotify.client import format_uri, strip_uri

API = "https://api.spotify.com/v1"


def _track(track_id, name="Song"):
    return {
        "id": track_id,
        "name": name,
        "artists": [{"name": "Artist"}],
        "album": {"name": "Album"},
        "uri": f"spotify:track:{track_id}",
    }


def _played(track_id, played_at):
    return {"track": _track(track_id), "played_at": played_at}


def _liked(track_id, added_at="2024-01-01T00:00:00Z"):
    return {"track": _track(track_id), "added_at": added_at}


@pytest.fixture
def adapter():
    return SpotifyPollingAdapter([NewTrackPlayedTrigger(), NewLikedSongTrigger()], id_cap=3)


PLAYED = PollTarget(key="lastPlayedAt", workflows={"new_track_played": [1]})
LIKED = PollTarget(key="lastLikedIds", workflows={"new_liked_song": [1]})


class TestUris:
    def test_format_and_strip(self):
        assert format_uri("abc", "track") == "spotify:track:abc"
        assert format_uri("spotify:track:abc", "track") == "spotify:track:abc"
        assert strip_uri("spotify:playlist:xyz", "playlist") == "xyz"
        assert strip_uri("xyz", "playlist") == "xyz"


class TestRecentlyPlayed:
    def test_seed_is_latest_play(self, adapter):
        snapshot = [
            _played("a", "1970-01-01T00:00:02Z"),
            _played("b", "1970-01-01T00:00:01Z"),
        ]
        assert adapter.seed(snapshot, PLAYED) == 2000
        assert adapter.seed([], PLAYED) == 0

    def test_diff_is_strictly_newer_oldest_first(self, adapter):
        snapshot = [
            _played("c", "1970-01-01T00:00:05Z"),
            _played("b", "1970-01-01T00:00:04Z"),
            _played("a", "1970-01-01T00:00:02Z"),
        ]

        events = adapter.diff(2000, snapshot, PLAYED)

        assert [e.data["trackId"] for e in events] == ["b", "c"]
        assert events[0].data["artistName"] == "Artist"
        assert events[0].data["playedAt"] == "1970-01-01T00:00:04Z"
        assert adapter.advance(2000, snapshot, events, PLAYED) == 5000

    def test_advance_never_moves_backwards(self, adapter):
        snapshot = [_played("a", "1970-01-01T00:00:01Z")]
        assert adapter.advance(9000, snapshot, [], PLAYED) == 9000


class TestLikedSongs:
    def test_seed_caps_ids(self, adapter):
        snapshot = [_liked(i) for i in ("d", "c", "b", "a")]
        assert adapter.seed(snapshot, LIKED) == ["d", "c", "b"]

    def test_diff_reports_new_ids_oldest_first(self, adapter):
        snapshot = [_liked("z"), _liked("y"), _liked("c"), _liked("b")]

        events = adapter.diff(["c", "b", "a"], snapshot, LIKED)

        assert [e.data["trackId"] for e in events] == ["y", "z"]
        assert adapter.advance(["c", "b", "a"], snapshot, events, LIKED) == ["z", "y", "c"]

    def test_unliked_tracks_do_not_fire(self, adapter):
        cursor = ["c", "b", "a"]
        snapshot = [_liked("b"), _liked("a")]
        events = adapter.diff(cursor, snapshot, LIKED)
        assert events == []
        assert adapter.advance(cursor, snapshot, events, LIKED) == cursor


class TestPlayback:
    @pytest.mark.anyio
    async def test_play_falls_back_to_first_device(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(
            method="PUT",
            url=f"{API}/me/player/play",
            status_code=404,
            json={"error": {"reason": "NO_ACTIVE_DEVICE"}},
        )
        httpx_mock.add_response(
            url=f"{API}/me/player/devices", json={"devices": [{"id": "dev1", "name": "Phone"}]}
        )
        httpx_mock.add_response(
            method="PUT", url=f"{API}/me/player/play?device_id=dev1", status_code=204
        )

        async with SpotifyClient("tok", config=http_config) as client:
            assert await client.play_track("spotify:track:abc") == "dev1"

    @pytest.mark.anyio
    async def test_play_without_devices(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(
            method="PUT",
            url=f"{API}/me/player/play",
            status_code=404,
            json={"error": {"reason": "NO_ACTIVE_DEVICE"}},
        )
        httpx_mock.add_response(url=f"{API}/me/player/devices", json={"devices": []})

        async with SpotifyClient("tok", config=http_config) as client:
            with pytest.raises(ExternalProviderError, match="No Spotify devices"):
                await client.play_track("spotify:track:abc")

    @pytest.mark.anyio
    async def test_other_errors_propagate(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(method="PUT", url=f"{API}/me/player/play", status_code=403)

        async with SpotifyClient("tok", config=http_config) as client:
            with pytest.raises(ExternalProviderError) as exc_info:
                await client.play_track("spotify:track:abc")
        assert exc_info.value.status_code == 403


class TestActions:
    @pytest.mark.anyio
    async def test_play_music_accepts_bare_id(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(method="PUT", url=f"{API}/me/player/play", status_code=204)
        action = PlayMusicAction()

        result = await action.execute(
            action.parse_config({"trackUri": "abc"}), action_context("spotify")
        )

        assert result == {"trackUri": "spotify:track:abc", "deviceId": None}
        assert json.loads(httpx_mock.get_request().read()) == {"uris": ["spotify:track:abc"]}

    @pytest.mark.anyio
    async def test_add_to_playlist(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(
            method="POST", url=f"{API}/playlists/pl1/tracks", json={"snapshot_id": "snap"}
        )
        action = AddToPlaylistAction()
        config = action.parse_config(
            {"playlistId": "spotify:playlist:pl1", "trackUri": "spotify:track:abc"}
        )

        result = await action.execute(config, action_context("spotify"))

        assert result == {"playlistId": "pl1", "snapshotId": "snap"}

    @pytest.mark.anyio
    async def test_create_playlist_for_current_user(self, httpx_mock: HTTPXMock, action_context):
        httpx_mock.add_response(url=f"{API}/me", json={"id": "me"})
        httpx_mock.add_response(
            method="POST",
            url=f"{API}/users/me/playlists",
            json={"id": "pl9", "external_urls": {"spotify": "https://open.spotify.com/p/pl9"}},
        )
        action = CreatePlaylistAction()

        result = await action.execute(
            action.parse_config({"name": "Mix"}), action_context("spotify")
        )

        assert result == {"playlistId": "pl9", "playlistUrl": "https://open.spotify.com/p/pl9"}
