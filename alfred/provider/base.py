"""Base provider with shared HTTP, retry and error-mapping logic.

Subclasses turn Alfred messages into a provider request body and parse the
JSON response; this class owns the httpx client, authentication headers, the
retry loop and the translation of HTTP failures into the ProviderError
hierarchy.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import httpx

from alfred.core.errors import ApiError, NetworkError, ProviderError, UnauthorizedError
from alfred.provider.retry import (
    OnPersistentRateLimit,
    OnRetry,
    RetryPolicy,
    retry_with_backoff,
)

if TYPE_CHECKING:
    from alfred.config.schema import ProviderConfig
    from alfred.core.cancel import CancellationToken

logger = logging.getLogger(__name__)

# Hosts that are considered safe for HTTP (non-HTTPS) connections
_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "[::1]"})

# Error bodies are clipped to this size before they go into exception messages
MAX_ERROR_BODY_SIZE: int = 10 * 1024


def validate_base_url(url: str) -> None:
    """Reject base URLs that are not HTTPS (plain HTTP is allowed on loopback).

    Raises:
        ProviderError: If the URL fails validation.
    """
    if not url:
        raise ProviderError("Provider base_url cannot be empty")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()

    if scheme == "https":
        return
    if scheme == "http" and host in _LOOPBACK_HOSTS:
        return
    if not scheme:
        raise ProviderError(
            f"Provider base_url '{url}' must include a scheme (https:// or http://)"
        )
    raise ProviderError(
        f"Provider base_url '{url}' is not allowed. Use https://, or http://localhost "
        "for local development."
    )


def _error_detail(response: httpx.Response) -> str:
    return response.content[:MAX_ERROR_BODY_SIZE].decode(errors="replace")


def raise_for_status(response: httpx.Response) -> None:
    """Map an HTTP error response onto the ProviderError hierarchy.

    Raises:
        UnauthorizedError: For 401 and 403.
        ApiError: For any other status >= 400 (RateLimitError for 429,
            ServerError for 5xx).
    """
    status = response.status_code
    if status < 400:
        return
    if status in (401, 403):
        raise UnauthorizedError(
            f"Authentication failed ({status}). Check your API key and permissions."
        )
    raise ApiError.from_status(status, _error_detail(response))


class BaseProvider(ABC):
    """Abstract base class for model API providers.

    Provides:
    - API key resolution from the environment
    - A lazily created, instance-owned httpx.AsyncClient
    - Request retries with exponential backoff (RetryPolicy)
    - Cancellation of in-flight requests through a CancellationToken

    Subclasses implement:
    - _build_endpoint(): API endpoint URL
    - _build_headers(): authentication headers
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        on_retry: OnRetry | None = None,
        on_persistent_rate_limit: OnPersistentRateLimit | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            config: Provider configuration.
            api_key: Explicit API key; read from config.api_key_env if omitted.
            transport: Custom httpx transport (tests use httpx.MockTransport).
            on_retry: Called before each retry wait.
            on_persistent_rate_limit: Called when rate limiting persists.

        Raises:
            ProviderError: If the API key is missing or base_url is invalid.
        """
        validate_base_url(config.base_url)

        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._model = config.model
        self._api_key = api_key or self._get_api_key()
        self._timeout = config.request_timeout
        self._retry_policy = RetryPolicy.from_config(config.retry)
        self._transport = transport
        self._on_retry = on_retry
        self._on_persistent_rate_limit = on_persistent_rate_limit

        self._client: httpx.AsyncClient | None = None

    @property
    def model(self) -> str:
        return self._model

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (reused across requests)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client. Safe to call multiple times."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_api_key(self) -> str:
        api_key = os.environ.get(self._config.api_key_env)
        if not api_key:
            raise ProviderError(
                f"API key not found. Set the {self._config.api_key_env} environment variable."
            )
        return api_key

    @abstractmethod
    def _build_endpoint(self) -> str:
        """Full URL requests are POSTed to."""

    @abstractmethod
    def _build_headers(self) -> dict[str, str]:
        """HTTP headers including authentication."""

    async def _post_once(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        """Send one request and return the decoded JSON body.

        Raises:
            UnauthorizedError, ApiError: On HTTP error statuses.
            NetworkError: On connection failures and timeouts.
            ProviderError: On any other transport failure or a non-JSON body.
        """
        client = await self._ensure_client()
        try:
            response = await client.post(url, headers=self._build_headers(), json=body)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise NetworkError(f"Failed to reach {url}: {e}") from e
        except httpx.NetworkError as e:
            raise NetworkError(f"Network error talking to {url}: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"HTTP error occurred: {e}") from e

        raise_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON in API response: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError("API response is not a JSON object")
        return data

    async def _make_request(
        self,
        body: dict[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> dict[str, Any]:
        """POST body to the endpoint with retries.

        The request races the cancel token; cancelling the token abandons
        the request and raises asyncio.CancelledError.

        Raises:
            ProviderError: On failure after all retries.
            asyncio.CancelledError: If cancel_token was cancelled.
        """
        url = self._build_endpoint()
        logger.debug("POST %s (model=%s)", url, body.get("model"))

        async def attempt() -> dict[str, Any]:
            if cancel_token is None:
                return await self._post_once(url, body)
            return await _race_cancel(self._post_once(url, body), cancel_token)

        return await retry_with_backoff(
            attempt,
            self._retry_policy,
            on_retry=self._on_retry,
            on_persistent_rate_limit=self._on_persistent_rate_limit,
            cancel_token=cancel_token,
        )


async def _race_cancel(coro: Any, cancel_token: CancellationToken) -> Any:
    """Await coro unless cancel_token fires first."""
    cancel_token.raise_if_cancelled()
    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(cancel_token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()

    if not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        cancel_token.raise_if_cancelled()
    return task.result()
