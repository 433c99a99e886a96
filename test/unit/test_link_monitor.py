"""Unit tests for the link monitor drain, recovery, and reporting."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from config import LinkHealthConfig
from link_health.monitor import LinkMonitor
from link_health.repository import LinkHealthRepository
from link_health.types import LinkCheckResult, LinkHealthRecord, RecoveryResult
from fakes import NOW, InMemoryItemStore, InMemoryKeyValueStore, RecordingNotifier, make_item


class FakeProber:
    """Returns canned statuses per URL and records the order of probes."""

    def __init__(self, statuses: dict[str, str]) -> None:
        self.statuses = statuses
        self.probed: list[str] = []

    async def probe(self, url: str) -> LinkCheckResult:
        self.probed.append(url)
        status = self.statuses.get(url, "healthy")
        code = {"healthy": 200, "dead": 404, "unreachable": 503}.get(status)
        return LinkCheckResult(
            success=status == "healthy",
            status=status,
            status_code=code,
            error=None if status == "healthy" else f"HTTP {code}",
            response_time_ms=5.0,
        )


class FakeChain:
    def __init__(self, result: RecoveryResult) -> None:
        self.result = result
        self.urls: list[str] = []

    async def recover(self, url: str) -> RecoveryResult:
        self.urls.append(url)
        return self.result


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


RECOVERED = RecoveryResult(
    success=True, method="wayback", recovered_url="https://web.archive.org/web/2024/x"
)


def _monitor(
    items,
    *,
    statuses=None,
    recovery=RECOVERED,
    notifier=None,
    repository=None,
):
    store = InMemoryItemStore(items)
    repository = repository or LinkHealthRepository(InMemoryKeyValueStore())
    prober = FakeProber(statuses or {})
    chain = FakeChain(recovery)
    sleep = RecordingSleep()
    monitor = LinkMonitor(
        store,
        repository,
        prober,
        chain,
        config=LinkHealthConfig(),
        notifier=notifier,
        sleep=sleep,
        now_provider=lambda: NOW,
    )
    return monitor, store, repository, prober, chain, sleep


@pytest.mark.asyncio
async def test_drain_checks_in_batches_and_notifies_once() -> None:
    items = [make_item(str(n)) for n in range(7)]
    notifier = RecordingNotifier()
    dead_urls = {items[1].url: "dead", items[5].url: "dead", items[3].url: "unreachable"}
    monitor, _, repository, prober, _, sleep = _monitor(
        items, statuses=dead_urls, notifier=notifier
    )

    scheduled = await monitor.schedule_periodic_checks()
    await monitor.wait_until_idle()

    assert scheduled == 7
    assert len(prober.probed) == 7
    records = await repository.all()
    assert records["1"].status == "dead"
    assert records["3"].status == "unreachable"
    assert records["0"].status == "healthy"
    assert notifier.sent == [("Link health", "2 dead links found")]
    assert [d for d in sleep.delays if d < 2.0] == [0.5, 1.0, 1.5, 0.5]
    assert sleep.delays.count(2.0) == 2
    assert sleep.delays.count(5.0) == 2


@pytest.mark.asyncio
async def test_dead_links_are_recovered_after_grace_delay() -> None:
    item = make_item("1", user_note="Keep this")
    monitor, store, repository, _, chain, sleep = _monitor(
        [item], statuses={item.url: "dead"}
    )

    await monitor.schedule_periodic_checks()
    await monitor.wait_until_idle()

    record = await repository.get("1")
    assert 5.0 in sleep.delays
    assert chain.urls == [item.url]
    assert record.recovery_attempted is True
    assert record.recovery_success is True
    assert record.alternative_urls == ("https://web.archive.org/web/2024/x",)
    assert store.items["1"].url == item.url
    assert store.items["1"].user_note == (
        "Keep this\n\n[Auto-recovered via wayback]\nRecovered URL: https://web.archive.org/web/2024/x"
    )
    assert await monitor.get_dead_links() == ["1"]
    assert await monitor.get_dead_links(unrecovered_only=True) == []


@pytest.mark.asyncio
async def test_exhausted_recovery_marks_attempted_only() -> None:
    item = make_item("1")
    monitor, store, repository, _, _, _ = _monitor(
        [item],
        statuses={item.url: "dead"},
        recovery=RecoveryResult(success=False, error="No working archive found"),
    )

    await monitor.schedule_periodic_checks()
    await monitor.wait_until_idle()

    record = await repository.get("1")
    assert record.recovery_attempted is True
    assert record.recovery_success is False
    assert record.alternative_urls == ()
    assert store.items["1"].user_note == ""
    assert await monitor.get_dead_links(unrecovered_only=True) == ["1"]


@pytest.mark.asyncio
async def test_only_due_items_are_scheduled() -> None:
    items = [make_item(n) for n in ("new", "fresh", "stale", "dead-recent", "dead-old")]
    repository = LinkHealthRepository(InMemoryKeyValueStore())
    for item_id, status, age in (
        ("fresh", "healthy", timedelta(hours=2)),
        ("stale", "healthy", timedelta(hours=25)),
        ("dead-recent", "dead", timedelta(days=3)),
        ("dead-old", "dead", timedelta(days=8)),
    ):
        await repository.save(
            LinkHealthRecord(
                item_id=item_id,
                url=f"https://example.com/{item_id}",
                status=status,
                last_checked=NOW - age,
            )
        )
    monitor, _, _, prober, _, _ = _monitor(items, repository=repository)

    scheduled = await monitor.schedule_periodic_checks()
    await monitor.wait_until_idle()

    assert scheduled == 3
    checked = set(prober.probed)
    assert checked == {items[0].url, items[2].url, items[4].url}


@pytest.mark.asyncio
async def test_recheck_keeps_alternative_urls() -> None:
    item = make_item("1")
    repository = LinkHealthRepository(InMemoryKeyValueStore())
    await repository.save(
        LinkHealthRecord(
            item_id="1",
            url=item.url,
            status="dead",
            last_checked=NOW - timedelta(days=8),
            recovery_attempted=True,
            recovery_success=True,
            alternative_urls=("https://archive/x",),
        )
    )
    monitor, _, _, _, _, _ = _monitor([item], repository=repository)

    await monitor.schedule_periodic_checks()
    await monitor.wait_until_idle()

    record = await repository.get("1")
    assert record.status == "healthy"
    assert record.recovery_success is False
    assert record.alternative_urls == ("https://archive/x",)


@pytest.mark.asyncio
async def test_manual_checks_are_sequential_and_skip_unknown_items() -> None:
    items = [make_item("1"), make_item("2")]
    monitor, _, repository, prober, _, sleep = _monitor(items)

    results = await monitor.check_links_health(["1", "ghost", "2"])

    assert [result.item_id for result in results] == ["1", "2"]
    assert prober.probed == [items[0].url, items[1].url]
    assert sleep.delays == [2.0]
    assert set(await repository.all()) == {"1", "2"}


@pytest.mark.asyncio
async def test_rescue_unknown_item() -> None:
    monitor, *_ = _monitor([])

    result = await monitor.rescue_dead_link("ghost")

    assert result.success is False
    assert result.error == "Link not found"


@pytest.mark.asyncio
async def test_health_report_counts_statuses_and_unchecked() -> None:
    items = [make_item(str(n)) for n in range(4)]
    monitor, _, _, _, _, _ = _monitor(
        items[:3], statuses={items[0].url: "dead", items[1].url: "unreachable"}
    )
    await monitor.check_links_health(["0", "1"])
    await monitor.wait_until_idle()

    report = await monitor.get_health_report()

    assert report.total_items == 3
    assert report.counts_by_status == {
        "healthy": 0,
        "redirected": 0,
        "dead": 1,
        "unreachable": 1,
        "checking": 0,
    }
    assert report.dead_item_ids == ("0",)
    assert report.unchecked == 1
    assert report.recently_recovered == 1
    assert report.last_checked == NOW


@pytest.mark.asyncio
async def test_schedule_returns_zero_when_store_fails() -> None:
    monitor, store, *_ = _monitor([make_item("1")])
    store.broken = True

    assert await monitor.schedule_periodic_checks() == 0
    assert len(monitor.queue) == 0


@pytest.mark.asyncio
async def test_initialize_resets_queue_and_schedules() -> None:
    monitor, _, repository, _, _, _ = _monitor([make_item("1")])
    monitor.queue.enqueue(["leftover"])

    await monitor.initialize()
    await monitor.wait_until_idle()

    assert set(await repository.all()) == {"1"}
