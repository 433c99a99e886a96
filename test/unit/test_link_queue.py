"""Unit tests for the rate-limited link check queue."""

from __future__ import annotations

import asyncio

import pytest

from link_health.queue import LinkCheckQueue


class _Sleeps:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


def test_enqueue_deduplicates() -> None:
    queue = LinkCheckQueue()

    assert queue.enqueue(["a", "b", "a"]) == 2
    assert queue.enqueue(["b", "c"]) == 1
    assert queue.pending == ["a", "b", "c"]
    assert len(queue) == 3


@pytest.mark.asyncio
async def test_drain_processes_batches_with_delay_between() -> None:
    sleeps = _Sleeps()
    queue = LinkCheckQueue(batch_size=2, batch_delay_seconds=2.0, sleep=sleeps)
    batches: list[list[str]] = []
    finished: list[bool] = []

    async def process(batch: list[str]) -> None:
        batches.append(batch)

    async def done() -> None:
        finished.append(queue.is_processing)

    queue.enqueue(["a", "b", "c", "d", "e"])
    assert await queue.start(process, on_finished=done) is True
    await queue.wait_idle()

    assert batches == [["a", "b"], ["c", "d"], ["e"]]
    assert sleeps.delays == [2.0, 2.0]
    assert finished == [False]
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_only_one_drain_runs_and_late_ids_are_picked_up() -> None:
    queue = LinkCheckQueue(batch_size=1, sleep=_Sleeps())
    release = asyncio.Event()
    seen: list[str] = []

    async def process(batch: list[str]) -> None:
        seen.extend(batch)
        await release.wait()

    queue.enqueue(["a"])
    assert await queue.start(process) is True
    await asyncio.sleep(0)
    queue.enqueue(["b"])
    assert await queue.start(process) is False
    assert queue.is_processing is True

    release.set()
    await queue.wait_idle()

    assert seen == ["a", "b"]
    assert queue.is_processing is False


@pytest.mark.asyncio
async def test_start_with_empty_queue_is_noop() -> None:
    queue = LinkCheckQueue()

    async def process(batch: list[str]) -> None:
        raise AssertionError("should not run")

    assert await queue.start(process) is False
    await queue.wait_idle()


@pytest.mark.asyncio
async def test_failed_batch_clears_processing_flag(caplog) -> None:
    queue = LinkCheckQueue(sleep=_Sleeps())

    async def process(batch: list[str]) -> None:
        raise RuntimeError("probe crashed")

    queue.enqueue(["a"])
    await queue.start(process)
    await queue.wait_idle()

    assert queue.is_processing is False
    assert "Link check queue drain failed" in caplog.text
