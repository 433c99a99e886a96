"""Single-consumer, rate-limited queue of link checks."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)

BatchProcessor = Callable[[list[str]], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]


class LinkCheckQueue:
    """Deduplicated queue of item IDs drained in delayed batches.

    Only one drain runs at a time. Enqueueing during a drain grows the
    queue and the running drain picks the new IDs up.
    """

    def __init__(
        self,
        batch_size: int = 5,
        batch_delay_seconds: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._batch_size = batch_size
        self._batch_delay = batch_delay_seconds
        self._sleep = sleep
        self._pending: deque[str] = deque()
        self._lock = asyncio.Lock()
        self._processing = False
        self._task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    def enqueue(self, item_ids: Iterable[str]) -> int:
        """Add IDs not already queued; returns how many were added."""
        added = 0
        for item_id in item_ids:
            if item_id in self._pending:
                continue
            self._pending.append(item_id)
            added += 1
        return added

    def reset(self) -> None:
        """Drop queued IDs and forget any previous drain."""
        self._pending.clear()
        self._processing = False
        self._task = None

    async def start(
        self,
        process_batch: BatchProcessor,
        on_finished: Callable[[], Awaitable[None]] | None = None,
    ) -> bool:
        """Start a background drain unless one is running or the queue is empty."""
        async with self._lock:
            if self._processing or not self._pending:
                return False
            self._processing = True
            self._task = asyncio.create_task(self._drain(process_batch, on_finished))
            return True

    async def wait_idle(self) -> None:
        """Wait for the running drain, if any, to finish."""
        task = self._task
        if task is not None:
            await task

    async def _drain(
        self,
        process_batch: BatchProcessor,
        on_finished: Callable[[], Awaitable[None]] | None,
    ) -> None:
        logger.info("Processing link check queue: %s items", len(self._pending))
        try:
            while self._pending:
                batch = [
                    self._pending.popleft()
                    for _ in range(min(self._batch_size, len(self._pending)))
                ]
                await process_batch(batch)
                if self._pending:
                    await self._sleep(self._batch_delay)
        except Exception:
            logger.exception("Link check queue drain failed.")
        finally:
            self._processing = False
        if on_finished is not None:
            await on_finished()
