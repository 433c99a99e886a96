"""Unit tests for link probes."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from config import LinkHealthConfig
from link_health.probe import TIMEOUT_ERROR, LinkProber, classify_response


def _response(status_code: int, url: str = "https://example.com/page") -> httpx.Response:
    return httpx.Response(status_code=status_code, request=httpx.Request("HEAD", url))


class StubAsyncClient:
    """Async client stub returning one configured response or error."""

    def __init__(self, outcome: httpx.Response | Exception, delay: float = 0.0) -> None:
        self.outcome = outcome
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.options: dict = {}

    async def __aenter__(self) -> "StubAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        pass

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        self.calls.append((method, url))
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _install(monkeypatch, outcome, delay: float = 0.0) -> StubAsyncClient:
    stub = StubAsyncClient(outcome, delay)

    def factory(**kwargs):
        stub.options = kwargs
        return stub

    monkeypatch.setattr(httpx, "AsyncClient", factory)
    return stub


@pytest.mark.asyncio
async def test_404_is_dead(monkeypatch) -> None:
    stub = _install(monkeypatch, _response(404))

    result = await LinkProber().probe("https://example.com/page")

    assert result.success is False
    assert result.status == "dead"
    assert result.status_code == 404
    assert result.error == "HTTP 404"
    assert stub.calls == [("HEAD", "https://example.com/page")]
    assert stub.options["follow_redirects"] is True


@pytest.mark.asyncio
async def test_503_is_unreachable(monkeypatch) -> None:
    _install(monkeypatch, _response(503))

    result = await LinkProber().probe("https://example.com/page")

    assert result.status == "unreachable"
    assert result.error == "Server error: HTTP 503"


@pytest.mark.asyncio
async def test_timeout_is_unreachable_with_timeout_error(monkeypatch) -> None:
    _install(monkeypatch, httpx.ReadTimeout("timed out"))

    result = await LinkProber(LinkHealthConfig(probe_timeout_seconds=10)).probe("https://slow.example")

    assert result.success is False
    assert result.status == "unreachable"
    assert result.error == TIMEOUT_ERROR == "Request timeout"
    assert result.response_time_ms >= 0


@pytest.mark.asyncio
async def test_slow_response_is_abandoned_at_probe_deadline(monkeypatch) -> None:
    _install(monkeypatch, _response(200), delay=5)
    prober = LinkProber(LinkHealthConfig(probe_timeout_seconds=0.05))

    started = time.monotonic()
    result = await prober.probe("https://slow.example/redirecting")

    assert time.monotonic() - started < 2
    assert result.success is False
    assert result.status == "unreachable"
    assert result.error == TIMEOUT_ERROR
    assert result.status_code is None

@pytest.mark.asyncio
async def test_network_error_is_unreachable(monkeypatch) -> None:
    _install(monkeypatch, httpx.ConnectError("Name or service not known"))

    result = await LinkProber().probe("https://nowhere.invalid")

    assert result.status == "unreachable"
    assert "Name or service not known" in result.error


@pytest.mark.asyncio
async def test_probe_timeout_configures_client(monkeypatch) -> None:
    stub = _install(monkeypatch, _response(200))

    await LinkProber(LinkHealthConfig(probe_timeout_seconds=4)).probe("https://example.com/page")

    assert stub.options["timeout"].read == 4


def test_redirect_to_other_url_is_redirected() -> None:
    result = classify_response(
        "https://example.com/old", _response(200, "https://example.com/new"), 12.5
    )

    assert result.status == "redirected"
    assert result.success is True
    assert result.redirect_url == "https://example.com/new"
    assert result.response_time_ms == 12.5


def test_trailing_slash_difference_is_healthy() -> None:
    result = classify_response("https://example.com/page", _response(200, "https://example.com/page/"), 1.0)

    assert result.status == "healthy"
    assert result.redirect_url is None


def test_classification_is_deterministic() -> None:
    for _ in range(3):
        assert classify_response("https://e.com", _response(404, "https://e.com"), 1).status == "dead"
        assert classify_response("https://e.com", _response(503, "https://e.com"), 1).status == "unreachable"
