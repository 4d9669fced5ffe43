"""OAuth refresh-token exchange shared by providers with expiring tokens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx

from ...core.config import HTTPClientConfig
from ...core.errors import CredentialError, ExternalProviderError
from .http import AsyncHTTPClientMixin

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
TWITCH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


@dataclass
class TokenBundle:
    """Result of a token refresh, to be persisted on the credential."""

    access_token: str
    refresh_token: str | None
    expires_at: datetime | None


class OAuthRefresher(AsyncHTTPClientMixin):
    """Exchanges a refresh token for a new access token at a provider's token endpoint."""

    def __init__(
        self,
        provider: str,
        token_url: str,
        *,
        basic_auth: bool = False,
        config: HTTPClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the refresher.

        Args:
            provider: Provider tag, used in errors and logs
            token_url: OAuth token endpoint
            basic_auth: Send client credentials as HTTP basic auth instead of form fields
            config: HTTP client configuration
            client: Optional shared httpx client
        """
        self.provider = provider
        self.token_url = token_url
        self.basic_auth = basic_auth
        self.config = config or HTTPClientConfig()
        self._client = client

    async def refresh(
        self, refresh_token: str | None, client_id: str | None, client_secret: str | None
    ) -> TokenBundle:
        if not refresh_token or not client_id or not client_secret:
            raise CredentialError(f"Missing {self.provider} credentials for token refresh")

        form = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        auth: tuple[str, str] | None = None
        if self.basic_auth:
            auth = (client_id, client_secret)
        else:
            form.update({"client_id": client_id, "client_secret": client_secret})

        client = self._client or httpx.AsyncClient(timeout=self.config.timeout)
        try:
            response = await self._request_with_retry(
                client, "POST", self.token_url, self.config.retry, data=form, auth=auth
            )
        except ExternalProviderError as exc:
            raise CredentialError(f"Failed to refresh {self.provider} token: {exc}") from exc
        finally:
            if self._client is None:
                await client.aclose()

        payload = response.json()
        expires_in = payload.get("expires_in")
        expires_at = (
            datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
            if expires_in is not None
            else None
        )
        return TokenBundle(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=expires_at,
        )
