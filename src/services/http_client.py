"""Outbound HTTP for link probes and archive lookups.

``AsyncHttpClient`` opens a short-lived ``httpx.AsyncClient`` per request so
the CLI and Celery tasks, which each run their own event loop, never share
pooled connections. Failures are either raised or logged and turned into
``None`` depending on the configured ``ErrorStrategy``.

    # Probe: inspect the final status code ourselves
    prober_http = AsyncHttpClient(timeout=10, check_status=False)
    response = await prober_http.head("https://example.com/article")

    # Archive lookup: retry transient failures, degrade to None
    archive_http = AsyncHttpClient(
        check_status=False,
        error_config=ErrorConfig(strategy=ErrorStrategy.LOG_AND_RETURN_NONE),
        retry_config=RetryConfig(max_attempts=2, backoff_factor=1.0),
    )
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx

from config import settings

logger = logging.getLogger(__name__)


class ErrorStrategy(Enum):
    """What a failed request turns into."""

    RAISE = "raise"
    LOG_AND_RETURN_NONE = "log_and_return_none"


@dataclass
class ErrorConfig:
    strategy: ErrorStrategy = ErrorStrategy.RAISE
    log_level: int = logging.ERROR


@dataclass
class RetryConfig:
    """Retry policy for transient failures.

    A status listed in ``retry_status_codes`` is retried whether it arrives as
    an ``httpx.HTTPStatusError`` or, with status checking off, as a plain
    response. The delay before retry ``n`` (zero-based) is
    ``backoff_factor * 2**n`` capped at ``max_backoff``.
    """

    max_attempts: int = 3
    retry_status_codes: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )
    backoff_factor: float = 2.0
    max_backoff: float = 60.0
    retry_exceptions: tuple[type[Exception], ...] = (
        httpx.ConnectError,
        httpx.ReadTimeout,
        httpx.PoolTimeout,
    )

    def delay_for(self, attempt: int) -> float:
        return min(self.backoff_factor * (2**attempt), self.max_backoff)

    def should_retry(self, error: Exception) -> bool:
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in self.retry_status_codes
        return isinstance(error, self.retry_exceptions)


class AsyncHttpClient:
    """Configured ``httpx`` access shared by probes and archive providers.

    Args:
        timeout: Overall request timeout in seconds (default: settings.http.timeout)
        connect_timeout: Connect timeout in seconds (default: settings.http.connect_timeout)
        error_config: How failures are surfaced
        retry_config: Retry policy (None = single attempt)
        check_status: Raise ``httpx.HTTPStatusError`` for 4xx/5xx responses
        follow_redirects: Return the response at the end of the redirect chain
        user_agent: User-Agent header (default: settings.http.user_agent)
        transport: Optional ``httpx`` transport, e.g. ``httpx.MockTransport``
        sleep: Awaitable used between retries
    """

    def __init__(
        self,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        error_config: ErrorConfig | None = None,
        retry_config: RetryConfig | None = None,
        check_status: bool = True,
        follow_redirects: bool = True,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        http = settings.http
        self.timeout = http.timeout if timeout is None else timeout
        self.connect_timeout = http.connect_timeout if connect_timeout is None else connect_timeout
        self.error_config = error_config or ErrorConfig()
        self.retry_config = retry_config
        self.check_status = check_status
        self.follow_redirects = follow_redirects
        self.user_agent = user_agent or http.user_agent
        self.transport = transport
        self._sleep = sleep

    async def get(self, url: str, **kwargs: Any) -> httpx.Response | None:
        return await self.request("GET", url, **kwargs)

    async def head(self, url: str, **kwargs: Any) -> httpx.Response | None:
        return await self.request("HEAD", url, **kwargs)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response | None:
        """Send a request, retrying per ``retry_config``.

        Returns:
            The final response, or None when the request failed and the
            strategy is LOG_AND_RETURN_NONE.

        Raises:
            httpx.HTTPError: When the request failed and the strategy is RAISE.
        """
        retry = self.retry_config
        attempts = max(1, retry.max_attempts) if retry else 1
        attempt = 0
        while True:
            final = attempt + 1 >= attempts
            try:
                response = await self._send(method, url, **kwargs)
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                if final or retry is None or not retry.should_retry(exc):
                    return self._handle_error(exc, method, url)
                cause = _describe(exc)
            else:
                if final or retry is None or response.status_code not in retry.retry_status_codes:
                    return response
                cause = f"status {response.status_code}"
            await self._backoff(attempt, attempts, method, url, cause)
            attempt += 1

    def _client(self) -> httpx.AsyncClient:
        options: dict[str, Any] = {
            "timeout": httpx.Timeout(self.timeout, connect=self.connect_timeout),
            "follow_redirects": self.follow_redirects,
            "headers": {"User-Agent": self.user_agent},
        }
        if self.transport is not None:
            options["transport"] = self.transport
        return httpx.AsyncClient(**options)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            response = await client.request(method, url, **kwargs)
            if self.check_status:
                response.raise_for_status()
            return response

    async def _backoff(
        self, attempt: int, attempts: int, method: str, url: str, cause: str
    ) -> None:
        assert self.retry_config is not None
        delay = self.retry_config.delay_for(attempt)
        logger.warning(
            "HTTP %s %s failed with %s, retrying in %.1fs (attempt %s/%s)",
            method,
            url,
            cause,
            delay,
            attempt + 1,
            attempts,
        )
        await self._sleep(delay)

    def _handle_error(self, error: Exception, method: str, url: str) -> httpx.Response | None:
        if self.error_config.strategy is ErrorStrategy.RAISE:
            raise error
        logger.log(self.error_config.log_level, "HTTP %s %s failed: %s", method, url, error)
        return None


def _describe(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"status {error.response.status_code}"
    return type(error).__name__
