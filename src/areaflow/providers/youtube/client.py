"""YouTube Data API v3 client."""

from __future__ import annotations

from typing import Any

from ...core.errors import ExternalProviderError
from ..common.http import ProviderClient

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"


class YouTubeClient(ProviderClient):
    provider = "youtube"
    base_url = YOUTUBE_API_URL

    async def get_liked_videos(self, limit: int = 20) -> list[dict[str, Any]]:
        """Videos the user rated "like", most recent first."""
        data = await self._request(
            "GET",
            "/videos",
            params={"part": "snippet,contentDetails", "myRating": "like", "maxResults": limit},
        )
        return (data or {}).get("items", [])

    async def get_uploads_playlist(self, channel_id: str) -> str:
        data = await self._request(
            "GET", "/channels", params={"part": "contentDetails", "id": channel_id}
        )
        items = (data or {}).get("items") or []
        uploads = (
            items[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            if items
            else None
        )
        if not uploads:
            raise ExternalProviderError(
                self.provider, f"Could not find uploads playlist for channel {channel_id}"
            )
        return uploads

    async def get_latest_uploads(self, channel_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Newest uploads of a channel, most recent first."""
        playlist_id = await self.get_uploads_playlist(channel_id)
        data = await self._request(
            "GET",
            "/playlistItems",
            params={
                "part": "snippet,contentDetails",
                "playlistId": playlist_id,
                "maxResults": limit,
            },
        )
        return (data or {}).get("items", [])

    async def create_playlist(
        self, title: str, description: str = "", privacy_status: str = "private"
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/playlists",
            params={"part": "snippet,status"},
            json={
                "snippet": {"title": title, "description": description},
                "status": {"privacyStatus": privacy_status},
            },
        ) or {}

    async def rate_video(self, video_id: str, rating: str) -> None:
        await self._request("POST", "/videos/rate", params={"id": video_id, "rating": rating})

    async def comment_video(self, video_id: str, text: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/commentThreads",
            params={"part": "snippet"},
            json={
                "snippet": {
                    "videoId": video_id,
                    "topLevelComment": {"snippet": {"textOriginal": text}},
                }
            },
        ) or {}
