"""Shared provider infrastructure: HTTP client base and OAuth refresh."""

from .http import AsyncHTTPClientMixin, ProviderClient
from .oauth import (
    GOOGLE_TOKEN_URL,
    SPOTIFY_TOKEN_URL,
    TWITCH_TOKEN_URL,
    OAuthRefresher,
    TokenBundle,
)

__all__ = [
    "AsyncHTTPClientMixin",
    "GOOGLE_TOKEN_URL",
    "OAuthRefresher",
    "ProviderClient",
    "SPOTIFY_TOKEN_URL",
    "TWITCH_TOKEN_URL",
    "TokenBundle",
]
