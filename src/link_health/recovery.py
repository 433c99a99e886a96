"""Archive providers and the ordered dead-link recovery chain."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence
from urllib.parse import quote

from config import ArchiveConfig, settings
from link_health.types import RecoveryMethod, RecoveryResult
from services.http_client import AsyncHttpClient, ErrorConfig, ErrorStrategy, RetryConfig

logger = logging.getLogger(__name__)


class RecoveryProvider(Protocol):
    """One archive service that may hold a snapshot of a dead URL."""

    method: RecoveryMethod

    async def recover(self, url: str) -> RecoveryResult:
        """Look up a snapshot; may raise on transport or HTTP errors."""
        ...


class WaybackProvider:
    """Most recent snapshot from the Wayback Machine CDX index."""

    method: RecoveryMethod = "wayback"

    def __init__(self, http_client: AsyncHttpClient, config: ArchiveConfig | None = None) -> None:
        self._http = http_client
        self._config = config or settings.archives

    async def recover(self, url: str) -> RecoveryResult:
        response = await self._http.get(
            self._config.wayback_cdx_url, params={"url": url, "limit": "-1"}
        )
        if response is None:
            return RecoveryResult(success=False, method=self.method, error="Wayback lookup failed")
        response.raise_for_status()
        lines = [line for line in response.text.strip().splitlines() if line.strip()]
        if not lines:
            return RecoveryResult(
                success=False, method=self.method, error="No archived version found"
            )
        parts = lines[-1].split()
        if len(parts) < 3:
            return RecoveryResult(success=False, method=self.method, error="Invalid response format")
        timestamp = parts[1]
        return RecoveryResult(
            success=True,
            method=self.method,
            recovered_url=f"{self._config.wayback_base_url}{timestamp}/{url}",
            timestamp=timestamp,
        )


class GoogleCacheProvider:
    """Cached copy served by Google's page cache."""

    method: RecoveryMethod = "google_cache"

    def __init__(self, http_client: AsyncHttpClient, config: ArchiveConfig | None = None) -> None:
        self._http = http_client
        self._config = config or settings.archives

    async def recover(self, url: str) -> RecoveryResult:
        cache_url = f"{self._config.google_cache_url}{quote(url, safe='')}"
        response = await self._http.head(cache_url)
        if response is None or response.status_code >= 400:
            return RecoveryResult(
                success=False, method=self.method, error="No cached version found"
            )
        return RecoveryResult(success=True, method=self.method, recovered_url=cache_url)


class ArchiveTodayProvider:
    """Latest memento from the archive.today time map."""

    method: RecoveryMethod = "archive_today"

    def __init__(self, http_client: AsyncHttpClient, config: ArchiveConfig | None = None) -> None:
        self._http = http_client
        self._config = config or settings.archives

    async def recover(self, url: str) -> RecoveryResult:
        response = await self._http.get(
            f"{self._config.archive_today_timemap_url}{quote(url, safe='')}"
        )
        if response is None:
            return RecoveryResult(
                success=False, method=self.method, error="Archive.today lookup failed"
            )
        response.raise_for_status()
        data = response.json()
        # First row is the column header.
        if not isinstance(data, list) or len(data) < 2:
            return RecoveryResult(
                success=False, method=self.method, error="No archived version found"
            )
        latest = data[-1]
        return RecoveryResult(success=True, method=self.method, recovered_url=str(latest[1]))


class RecoveryChain:
    """Tries providers strictly in order and stops at the first success."""

    def __init__(self, providers: Sequence[RecoveryProvider]) -> None:
        self._providers = list(providers)

    @property
    def methods(self) -> list[str]:
        return [provider.method for provider in self._providers]

    async def recover(self, url: str) -> RecoveryResult:
        for provider in self._providers:
            try:
                result = await provider.recover(url)
            except Exception as exc:
                logger.warning("Recovery via %s failed for %s: %s", provider.method, url, exc)
                continue
            if result.success:
                logger.info("Recovered %s via %s", url, provider.method)
                return result
        return RecoveryResult(success=False, error="No working archive found")


def build_recovery_chain(
    http_client: AsyncHttpClient | None = None, config: ArchiveConfig | None = None
) -> RecoveryChain:
    """Default chain: Wayback, then Google Cache, then Archive.today.

    Transport failures on the shared archive client are logged and surface as
    an unsuccessful lookup from the provider that hit them.
    """
    client = http_client or AsyncHttpClient(
        check_status=False,
        error_config=ErrorConfig(strategy=ErrorStrategy.LOG_AND_RETURN_NONE, log_level=logging.WARNING),
        retry_config=RetryConfig(max_attempts=2, backoff_factor=1.0),
    )
    archive_config = config or settings.archives
    return RecoveryChain(
        [
            WaybackProvider(client, archive_config),
            GoogleCacheProvider(client, archive_config),
            ArchiveTodayProvider(client, archive_config),
        ]
    )
