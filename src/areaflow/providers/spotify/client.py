"""Spotify Web API client."""

from __future__ import annotations

from typing import Any

from ...core.errors import ExternalProviderError
from ...core.logger import get_logger
from ..common.http import ProviderClient

logger = get_logger("providers.spotify")

SPOTIFY_API_URL = "https://api.spotify.com/v1"


def format_uri(value: str, kind: str) -> str:
    """Accept a bare id or a ``spotify:<kind>:<id>`` URI and return the URI."""
    if value.startswith("spotify:"):
        return value
    return f"spotify:{kind}:{value}"


def strip_uri(value: str, kind: str) -> str:
    """Return the bare id of a ``spotify:<kind>:<id>`` URI."""
    prefix = f"spotify:{kind}:"
    return value[len(prefix):] if value.startswith(prefix) else value


class SpotifyClient(ProviderClient):
    """Read snapshots for polling and player/playlist writes for actions."""

    provider = "spotify"
    base_url = SPOTIFY_API_URL

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_current_user(self) -> dict[str, Any]:
        return await self._request("GET", "/me") or {}

    async def get_recently_played(self, limit: int = 20) -> list[dict[str, Any]]:
        data = await self._request("GET", "/me/player/recently-played", params={"limit": limit})
        return (data or {}).get("items", [])

    async def get_liked_tracks(self, limit: int = 20) -> list[dict[str, Any]]:
        """Saved tracks, most recently liked first."""
        data = await self._request("GET", "/me/tracks", params={"limit": limit})
        return (data or {}).get("items", [])

    async def get_available_devices(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/me/player/devices")
        return (data or {}).get("devices", [])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def play_track(self, track_uri: str) -> str | None:
        """Start playback of a track.

        Without an active device Spotify rejects the command; in that case the
        first available device is targeted explicitly.

        Returns:
            The device id used for the fallback, or None.
        """
        body = {"uris": [track_uri]}
        try:
            await self._request("PUT", "/me/player/play", json=body)
            return None
        except ExternalProviderError as exc:
            message = str(exc)
            if "NO_ACTIVE_DEVICE" not in message and "No active device" not in message:
                raise

        devices = await self.get_available_devices()
        if not devices:
            raise ExternalProviderError(
                self.provider,
                "No Spotify devices available. Open Spotify on a device to allow playback.",
                status_code=404,
            )
        device_id = devices[0]["id"]
        logger.info("No active Spotify device, using %s", devices[0].get("name", device_id))
        await self._request("PUT", "/me/player/play", params={"device_id": device_id}, json=body)
        return device_id

    async def pause_playback(self) -> None:
        await self._request("PUT", "/me/player/pause")

    async def skip_track(self) -> None:
        await self._request("POST", "/me/player/next")

    async def create_playlist(
        self, user_id: str, name: str, description: str = "", public: bool = False
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/users/{user_id}/playlists",
            json={"name": name, "description": description, "public": public},
        ) or {}

    async def add_tracks_to_playlist(self, playlist_id: str, uris: list[str]) -> dict[str, Any]:
        return await self._request(
            "POST", f"/playlists/{playlist_id}/tracks", json={"uris": uris}
        ) or {}
