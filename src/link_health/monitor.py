"""Scheduled link health checks with archive recovery for dead links."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Sequence

from config import LinkHealthConfig, settings
from inventory.protocols import ItemStore, Notifier
from inventory.types import Item
from link_health.probe import LinkProber
from link_health.queue import LinkCheckQueue
from link_health.recovery import RecoveryChain
from link_health.repository import LinkHealthRepository
from link_health.types import (
    LINK_STATUSES,
    LinkCheckResult,
    LinkHealthRecord,
    LinkHealthReport,
    RecoveryResult,
)
from time_utils import ensure_utc

logger = logging.getLogger(__name__)


class LinkMonitor:
    """Owns the check queue and writes a health record per saved item."""

    def __init__(
        self,
        item_store: ItemStore,
        repository: LinkHealthRepository,
        prober: LinkProber,
        recovery_chain: RecoveryChain,
        *,
        config: LinkHealthConfig | None = None,
        notifier: Notifier | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize with inventory, persistence, probing, and recovery collaborators."""
        self._item_store = item_store
        self._repository = repository
        self._prober = prober
        self._recovery_chain = recovery_chain
        self._config = config or settings.link_health
        self._notifier = notifier
        self._sleep = sleep
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))
        self._queue = LinkCheckQueue(
            batch_size=self._config.batch_size,
            batch_delay_seconds=self._config.batch_delay_seconds,
            sleep=sleep,
        )
        self._recovery_tasks: set[asyncio.Task] = set()
        self._dead_found: list[str] = []

    @property
    def queue(self) -> LinkCheckQueue:
        return self._queue

    async def initialize(self) -> None:
        """Reset queue state and schedule the first round of checks."""
        self._queue.reset()
        self._dead_found.clear()
        scheduled = await self.schedule_periodic_checks()
        logger.info("Link monitor initialized; %s links scheduled.", scheduled)

    async def schedule_periodic_checks(self) -> int:
        """Enqueue items due for a check and start draining; returns the count enqueued."""
        try:
            items = await self._item_store.list_items()
            records = await self._repository.all()
        except Exception:
            logger.exception("Failed to schedule periodic link checks.")
            return 0
        now = self._now_provider()
        due = [item.id for item in items if self._needs_check(records.get(item.id), now)]
        if not due:
            logger.info("No links need health checking at this time.")
            return 0
        added = self._queue.enqueue(due)
        logger.info("Scheduling health checks for %s links (%s new).", len(due), added)
        await self._queue.start(self._process_batch, on_finished=self._notify_dead_links)
        return added

    async def wait_until_idle(self) -> None:
        """Wait for the running drain and any pending recoveries."""
        await self._queue.wait_idle()
        while self._recovery_tasks:
            await asyncio.gather(*list(self._recovery_tasks), return_exceptions=True)

    async def check_link_health(self, url: str) -> LinkCheckResult:
        """Probe one URL without persisting anything."""
        return await self._prober.probe(url)

    async def check_links_health(self, item_ids: Sequence[str]) -> list[LinkCheckResult]:
        """Check items immediately, bypassing the queue, one after another."""
        items_by_id = await self._items_by_id()
        results: list[LinkCheckResult] = []
        for index, item_id in enumerate(item_ids):
            item = items_by_id.get(item_id)
            if item is None:
                logger.warning("Skipping link check for unknown item %s", item_id)
                continue
            if results:
                await self._sleep(self._config.manual_check_delay_seconds)
            results.append(await self._check_and_record(item))
        return results

    async def rescue_dead_link(self, item_id: str) -> RecoveryResult:
        """Look for an archived copy of an item's URL and annotate the item."""
        items_by_id = await self._items_by_id()
        item = items_by_id.get(item_id)
        if item is None:
            return RecoveryResult(success=False, error="Link not found")
        logger.info("Attempting to rescue dead link: %s", item.url)
        result = await self._recovery_chain.recover(item.url)
        if result.success and result.recovered_url:
            await self._annotate(item, result)
        changes: dict = {"recovery_attempted": True, "recovery_success": result.success}
        if result.success and result.recovered_url:
            changes["alternative_urls"] = (result.recovered_url,)
        try:
            await self._repository.update(item_id, **changes)
        except Exception:
            logger.exception("Failed to record recovery outcome for %s", item_id)
        return result

    async def get_dead_links(self, unrecovered_only: bool = False) -> list[str]:
        """Return IDs of items whose last check found the link dead."""
        try:
            records = await self._repository.all()
        except Exception:
            logger.exception("Failed to read link health records.")
            return []
        return [
            record.item_id
            for record in records.values()
            if record.status == "dead" and not (unrecovered_only and record.recovery_success)
        ]

    async def get_health_report(self) -> LinkHealthReport:
        """Aggregate every persisted health record."""
        items = await self._item_store.list_items()
        records = await self._repository.all()
        counts = {status: 0 for status in LINK_STATUSES}
        for record in records.values():
            counts[record.status] += 1
        item_ids = {item.id for item in items}
        checked_times = [ensure_utc(record.last_checked) for record in records.values()]
        return LinkHealthReport(
            total_items=len(items),
            counts_by_status=counts,
            dead_item_ids=tuple(
                record.item_id for record in records.values() if record.status == "dead"
            ),
            unchecked=len(item_ids - set(records)),
            recently_recovered=sum(1 for record in records.values() if record.recovery_success),
            last_checked=max(checked_times) if checked_times else None,
            records=tuple(records.values()),
        )

    def _needs_check(self, record: LinkHealthRecord | None, now: datetime) -> bool:
        if record is None:
            return True
        age = ensure_utc(now) - ensure_utc(record.last_checked)
        if record.status == "dead":
            return age > timedelta(days=self._config.dead_recheck_days)
        return age > timedelta(hours=self._config.check_interval_hours)

    async def _items_by_id(self) -> dict[str, Item]:
        return {item.id: item for item in await self._item_store.list_items()}

    async def _process_batch(self, batch: list[str]) -> None:
        items_by_id = await self._items_by_id()
        await asyncio.gather(
            *(
                self._staggered_check(index, items_by_id.get(item_id))
                for index, item_id in enumerate(batch)
            )
        )

    async def _staggered_check(self, index: int, item: Item | None) -> None:
        if item is None:
            return
        if index:
            await self._sleep(index * self._config.stagger_seconds)
        await self._check_and_record(item)

    async def _check_and_record(self, item: Item) -> LinkCheckResult:
        try:
            existing = await self._repository.get(item.id)
            alternatives = existing.alternative_urls if existing else ()
            await self._repository.save(
                LinkHealthRecord(
                    item_id=item.id,
                    url=item.url,
                    status="checking",
                    last_checked=self._now_provider(),
                    alternative_urls=alternatives,
                )
            )
            result = dataclasses.replace(await self._prober.probe(item.url), item_id=item.id)
            await self._repository.save(
                LinkHealthRecord(
                    item_id=item.id,
                    url=item.url,
                    status=result.status,
                    last_checked=self._now_provider(),
                    status_code=result.status_code,
                    redirect_url=result.redirect_url,
                    error=result.error,
                    alternative_urls=alternatives,
                )
            )
        except Exception as exc:
            logger.exception("Failed to check link %s", item.id)
            return LinkCheckResult(
                success=False,
                status="unreachable",
                error=str(exc) or "Unknown error",
                response_time_ms=0.0,
                item_id=item.id,
            )
        logger.info("Link health updated: %s -> %s", item.url, result.status)
        if result.status == "dead":
            self._dead_found.append(item.id)
            self._schedule_recovery(item.id)
        return result

    def _schedule_recovery(self, item_id: str) -> None:
        task = asyncio.create_task(self._recover_after_delay(item_id))
        self._recovery_tasks.add(task)
        task.add_done_callback(self._recovery_tasks.discard)

    async def _recover_after_delay(self, item_id: str) -> None:
        await self._sleep(self._config.recovery_delay_seconds)
        try:
            await self.rescue_dead_link(item_id)
        except Exception:
            logger.exception("Auto-recovery failed for %s", item_id)

    async def _annotate(self, item: Item, result: RecoveryResult) -> None:
        note = f"[Auto-recovered via {result.method}]\nRecovered URL: {result.recovered_url}"
        updated = f"{item.user_note}\n\n{note}" if item.user_note else note
        try:
            await self._item_store.update_item(item.id, {"user_note": updated})
        except Exception:
            logger.exception("Failed to annotate item %s with recovery info", item.id)

    async def _notify_dead_links(self) -> None:
        dead = list(dict.fromkeys(self._dead_found))
        self._dead_found.clear()
        if not dead or self._notifier is None:
            return
        try:
            await self._notifier.notify("Link health", f"{len(dead)} dead links found")
        except Exception:
            logger.exception("Failed to send dead link notification.")
