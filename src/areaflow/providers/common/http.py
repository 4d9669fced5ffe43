"""Async HTTP client base with common retry and error handling logic.

Provider clients subclass ``ProviderClient`` and call ``_request`` with a
path relative to their ``base_url``. Transport failures, 429 and 5xx
responses are retried with exponential backoff; other error responses fail
immediately. Every terminal failure surfaces as ``ExternalProviderError``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from ...core.config import HTTPClientConfig, RetryPolicyConfig
from ...core.errors import ExternalProviderError
from ...core.logger import get_logger

logger = get_logger("providers.http")

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def _describe_error(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = response.text
    return f"{response.status_code} {response.reason_phrase}: {body}"


class AsyncHTTPClientMixin:
    """Mixin providing asynchronous HTTP requests with retry logic."""

    provider: str = "http"

    async def _request_with_retry(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        retry_policy: RetryPolicyConfig | None,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        Args:
            client: httpx AsyncClient instance.
            method: HTTP method.
            url: Absolute target URL.
            retry_policy: Retry configuration (defaults when None).
            params: Query parameters.
            json: JSON body.
            data: Form body.
            headers: Additional headers.
            auth: Optional httpx auth.

        Returns:
            The successful response.

        Raises:
            ExternalProviderError: On a non-retryable error response or once retries run out.
        """
        policy = retry_policy or RetryPolicyConfig()
        last_error: Exception | None = None

        for attempt in range(1, policy.max_attempts + 1):
            try:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    data=data,
                    headers=headers,
                    auth=auth,
                )
            except httpx.TransportError as exc:
                last_error = exc
                status_code = None
            else:
                if response.is_success:
                    return response
                status_code = response.status_code
                last_error = ExternalProviderError(
                    self.provider, _describe_error(response), status_code=status_code
                )
                if status_code not in RETRYABLE_STATUS:
                    logger.warning(
                        "%s %s %s failed: %s", self.provider, method, url, last_error
                    )
                    raise last_error

            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    "%s request failed, retrying in %.1fs (attempt %d/%d, status=%s)",
                    self.provider,
                    delay,
                    attempt,
                    policy.max_attempts,
                    status_code,
                )
                await asyncio.sleep(delay)

        logger.error(
            "%s %s %s failed after %d attempts: %s",
            self.provider,
            method,
            url,
            policy.max_attempts,
            last_error,
        )
        if isinstance(last_error, ExternalProviderError):
            raise last_error
        raise ExternalProviderError(self.provider, str(last_error), original_error=last_error)


class ProviderClient(AsyncHTTPClientMixin):
    """Thin bearer-token JSON client for one provider API.

    Usable as an async context manager; an injected ``httpx.AsyncClient`` is
    left open on exit.
    """

    base_url: str = ""

    def __init__(
        self,
        access_token: str | None = None,
        *,
        config: HTTPClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.access_token = access_token
        self.config = config or HTTPClientConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.config.timeout)

    async def __aenter__(self) -> ProviderClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and decode the JSON body (None for empty responses)."""
        merged = self._headers()
        if headers:
            merged.update(headers)
        response = await self._request_with_retry(
            self._client,
            method,
            self._url(path),
            self.config.retry,
            params=params,
            json=json,
            headers=merged,
        )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"text": response.text}
