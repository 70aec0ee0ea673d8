"""HTTP clients that wait out shop API rate limits.

On HTTP 429 the client sleeps for the ``Retry-After`` delay and resends
the same request, up to ``retry_limit`` times.  Any other status is
returned as-is.  When the limit is exhausted ``RetryExhaustedError`` is
raised with the last 429 response attached.

Transport errors from httpx propagate unchanged; only rate limiting is
retried here.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any

import httpx

from shop_appstore.exceptions import RetryExhaustedError

if TYPE_CHECKING:
    from shop_appstore.config import AppstoreSettings

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429
DEFAULT_RETRY_LIMIT = 3
DEFAULT_RETRY_AFTER = 1.0


def retry_after_seconds(response: httpx.Response, default: float = DEFAULT_RETRY_AFTER) -> float:
    """Delay requested by the ``Retry-After`` header, in seconds.

    Accepts delta-seconds (integer or decimal) and HTTP-dates.  A missing
    or unparseable header yields *default*.
    """
    value = response.headers.get("Retry-After")
    if not value:
        return default

    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class _RetryPolicy:
    """Retry-limit state shared by the sync and async clients."""

    def __init__(self, retry_limit: int | None, default_retry_after: float) -> None:
        self._retry_limit = DEFAULT_RETRY_LIMIT
        if retry_limit is not None:
            self.retry_limit = retry_limit
        self.default_retry_after = default_retry_after

    @property
    def retry_limit(self) -> int:
        """Maximum number of resends after a 429 (total sends <= limit + 1)."""
        return self._retry_limit

    @retry_limit.setter
    def retry_limit(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"retry_limit must be >= 0, got {value}")
        self._retry_limit = value

    def get_retry_limit(self) -> int:
        return self.retry_limit

    def set_retry_limit(self, value: int) -> None:
        self.retry_limit = value

    def _log_retry(self, request: httpx.Request, attempt: int, delay: float) -> None:
        logger.warning(
            "Retry %d/%d for %s %s (HTTP 429), waiting %.1fs",
            attempt,
            self._retry_limit,
            request.method,
            request.url.copy_with(query=None),
            delay,
        )


class RetryingHttpClient(_RetryPolicy):
    """Blocking client; ``sleeper`` defaults to ``time.sleep``."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        retry_limit: int | None = None,
        sleeper: Callable[[float], Any] | None = None,
        default_retry_after: float = DEFAULT_RETRY_AFTER,
        timeout: float | None = None,
    ) -> None:
        super().__init__(retry_limit, default_retry_after)
        if client is None:
            client = httpx.Client(timeout=timeout) if timeout is not None else httpx.Client()
        self._client = client
        self._sleeper = sleeper or time.sleep

    @classmethod
    def from_settings(
        cls,
        settings: AppstoreSettings,
        client: httpx.Client | None = None,
        sleeper: Callable[[float], Any] | None = None,
    ) -> RetryingHttpClient:
        """Client using ``retry_limit``, ``default_retry_after`` and ``http_timeout``."""
        return cls(
            client=client,
            retry_limit=settings.retry_limit,
            sleeper=sleeper,
            default_retry_after=settings.default_retry_after,
            timeout=settings.http_timeout,
        )

    def send(self, request: httpx.Request) -> httpx.Response:
        remaining = self._retry_limit
        attempts = 0
        while True:
            response = self._client.send(request)
            attempts += 1
            if response.status_code != HTTP_TOO_MANY_REQUESTS:
                return response
            if remaining <= 0:
                raise RetryExhaustedError(attempts, request, response)

            delay = retry_after_seconds(response, self.default_retry_after)
            self._log_retry(request, attempts, delay)
            self._sleeper(delay)
            remaining -= 1

    def request(self, method: str, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return self.send(self._client.build_request(method, url, **kwargs))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RetryingHttpClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class AsyncRetryingHttpClient(_RetryPolicy):
    """Async client; waits with ``asyncio.sleep`` so the event loop stays free.

    Sends are still strictly sequential: the next attempt starts only
    after the delay has elapsed.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        retry_limit: int | None = None,
        sleeper: Callable[[float], Awaitable[Any]] | None = None,
        default_retry_after: float = DEFAULT_RETRY_AFTER,
        timeout: float | None = None,
    ) -> None:
        super().__init__(retry_limit, default_retry_after)
        if client is None:
            client = httpx.AsyncClient(timeout=timeout) if timeout is not None else httpx.AsyncClient()
        self._client = client
        self._sleeper = sleeper or asyncio.sleep

    @classmethod
    def from_settings(
        cls,
        settings: AppstoreSettings,
        client: httpx.AsyncClient | None = None,
        sleeper: Callable[[float], Awaitable[Any]] | None = None,
    ) -> AsyncRetryingHttpClient:
        return cls(
            client=client,
            retry_limit=settings.retry_limit,
            sleeper=sleeper,
            default_retry_after=settings.default_retry_after,
            timeout=settings.http_timeout,
        )

    async def send(self, request: httpx.Request) -> httpx.Response:
        remaining = self._retry_limit
        attempts = 0
        while True:
            response = await self._client.send(request)
            attempts += 1
            if response.status_code != HTTP_TOO_MANY_REQUESTS:
                return response
            if remaining <= 0:
                raise RetryExhaustedError(attempts, request, response)

            delay = retry_after_seconds(response, self.default_retry_after)
            self._log_retry(request, attempts, delay)
            await self._sleeper(delay)
            remaining -= 1

    async def request(self, method: str, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.send(self._client.build_request(method, url, **kwargs))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRetryingHttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
