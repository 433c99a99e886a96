"""HTTP HEAD probes classifying a link's health."""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from config import LinkHealthConfig, settings
from link_health.types import LinkCheckResult
from services.http_client import AsyncHttpClient

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Request timeout"


def _same_url(requested: str, final: str) -> bool:
    return requested.rstrip("/") == final.rstrip("/")


def classify_response(
    requested_url: str, response: httpx.Response, response_time_ms: float
) -> LinkCheckResult:
    """Map a final response onto a link status."""
    status_code = response.status_code
    final_url = str(response.url)
    if status_code < 400:
        if not _same_url(requested_url, final_url):
            return LinkCheckResult(
                success=True,
                status="redirected",
                status_code=status_code,
                redirect_url=final_url,
                response_time_ms=response_time_ms,
            )
        return LinkCheckResult(
            success=True,
            status="healthy",
            status_code=status_code,
            response_time_ms=response_time_ms,
        )
    if status_code < 500:
        return LinkCheckResult(
            success=False,
            status="dead",
            status_code=status_code,
            error=f"HTTP {status_code}",
            response_time_ms=response_time_ms,
        )
    return LinkCheckResult(
        success=False,
        status="unreachable",
        status_code=status_code,
        error=f"Server error: HTTP {status_code}",
        response_time_ms=response_time_ms,
    )


class LinkProber:
    """Lightweight existence check for saved URLs. Never raises."""

    def __init__(
        self,
        config: LinkHealthConfig | None = None,
        http_client: AsyncHttpClient | None = None,
    ) -> None:
        """Initialize with probe timing and an optional preconfigured client."""
        self._config = config or settings.link_health
        timeout = self._config.probe_timeout_seconds
        self._client = http_client or AsyncHttpClient(
            timeout=timeout,
            connect_timeout=min(settings.http.connect_timeout, timeout),
            check_status=False,
            follow_redirects=True,
        )

    async def probe(self, url: str) -> LinkCheckResult:
        """Issue a HEAD request and classify the outcome.

        The whole probe, redirect hops included, is abandoned once
        ``probe_timeout_seconds`` elapses.
        """
        started = time.monotonic()
        try:
            async with asyncio.timeout(self._config.probe_timeout_seconds):
                response = await self._client.head(url)
        except (TimeoutError, httpx.TimeoutException):
            return LinkCheckResult(
                success=False,
                status="unreachable",
                error=TIMEOUT_ERROR,
                response_time_ms=_elapsed_ms(started),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return LinkCheckResult(
                success=False,
                status="unreachable",
                error=str(exc) or type(exc).__name__,
                response_time_ms=_elapsed_ms(started),
            )
        except Exception as exc:
            logger.exception("Unexpected error probing %s", url)
            return LinkCheckResult(
                success=False,
                status="unreachable",
                error=str(exc) or "Unknown error",
                response_time_ms=_elapsed_ms(started),
            )
        return classify_response(url, response, _elapsed_ms(started))


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 1)
