"""Tests for the shared provider HTTP client and OAuth refresher."""

import httpx
import pytest
from pytest_httpx import HTTPXMock

from areaflow.core import (
    CredentialError,
    ExternalProviderError,
    HTTPClientConfig,
    RetryPolicyConfig,
)
from areaflow.providers.common import OAuthRefresher, ProviderClient


class EchoClient(ProviderClient):
    provider = "echo"
    base_url = "https://api.example.com"

    async def get(self, path):
        return await self._request("GET", path)


def _fast_retry(attempts):
    return HTTPClientConfig(
        retry=RetryPolicyConfig(max_attempts=attempts, backoff_seconds=0.0)
    )


class TestProviderClient:
    @pytest.mark.anyio
    async def test_bearer_header_and_json(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(url="https://api.example.com/items", json={"items": [1]})

        async with EchoClient("tok", config=http_config) as client:
            assert await client.get("/items") == {"items": [1]}

        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bearer tok"

    @pytest.mark.anyio
    async def test_empty_response_is_none(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(url="https://api.example.com/empty", status_code=204)

        async with EchoClient("tok", config=http_config) as client:
            assert await client.get("/empty") is None

    @pytest.mark.anyio
    async def test_client_error_is_not_retried(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url="https://api.example.com/missing", status_code=404, json={"error": "nope"}
        )

        async with EchoClient("tok", config=_fast_retry(3)) as client:
            with pytest.raises(ExternalProviderError) as exc_info:
                await client.get("/missing")

        assert exc_info.value.status_code == 404
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.anyio
    async def test_server_error_is_retried(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url="https://api.example.com/flaky", status_code=503)
        httpx_mock.add_response(url="https://api.example.com/flaky", json={"ok": True})

        async with EchoClient("tok", config=_fast_retry(3)) as client:
            assert await client.get("/flaky") == {"ok": True}

        assert len(httpx_mock.get_requests()) == 2

    @pytest.mark.anyio
    async def test_transport_error_exhausts_retries(self, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("down"))
        httpx_mock.add_exception(httpx.ConnectError("down"))

        async with EchoClient("tok", config=_fast_retry(2)) as client:
            with pytest.raises(ExternalProviderError) as exc_info:
                await client.get("/down")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)


class TestOAuthRefresher:
    @pytest.mark.anyio
    async def test_refresh_with_form_credentials(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(
            method="POST",
            url="https://id.twitch.tv/oauth2/token",
            json={"access_token": "new", "refresh_token": "rotated", "expires_in": 3600},
        )
        refresher = OAuthRefresher(
            "twitch", "https://id.twitch.tv/oauth2/token", config=http_config
        )

        bundle = await refresher.refresh("old-refresh", "cid", "secret")

        assert bundle.access_token == "new"
        assert bundle.refresh_token == "rotated"
        assert bundle.expires_at is not None
        body = httpx_mock.get_request().content.decode()
        assert "grant_type=refresh_token" in body
        assert "client_id=cid" in body

    @pytest.mark.anyio
    async def test_refresh_with_basic_auth(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(
            method="POST",
            url="https://accounts.spotify.com/api/token",
            json={"access_token": "new"},
        )
        refresher = OAuthRefresher(
            "spotify",
            "https://accounts.spotify.com/api/token",
            basic_auth=True,
            config=http_config,
        )

        bundle = await refresher.refresh("old-refresh", "cid", "secret")

        assert bundle.refresh_token is None
        assert bundle.expires_at is None
        request = httpx_mock.get_request()
        assert request.headers["Authorization"].startswith("Basic ")
        assert "client_id" not in request.content.decode()

    @pytest.mark.anyio
    async def test_missing_material_raises(self):
        refresher = OAuthRefresher("twitch", "https://id.twitch.tv/oauth2/token")
        with pytest.raises(CredentialError, match="Missing twitch credentials"):
            await refresher.refresh(None, "cid", "secret")

    @pytest.mark.anyio
    async def test_rejected_refresh_is_credential_error(self, httpx_mock: HTTPXMock, http_config):
        httpx_mock.add_response(
            method="POST",
            url="https://oauth2.googleapis.com/token",
            status_code=400,
            json={"error": "invalid_grant"},
        )
        refresher = OAuthRefresher(
            "gmail", "https://oauth2.googleapis.com/token", config=http_config
        )

        with pytest.raises(CredentialError, match="Failed to refresh gmail token"):
            await refresher.refresh("revoked", "cid", "secret")
