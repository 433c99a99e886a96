"""Continue-on-error execution of batch inbox actions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from inventory.protocols import ActivityLog, CollectionWriter, ItemStore
from inventory.types import ActivityEvent, Item
from suggestions.types import BatchAction, BatchActionResult

logger = logging.getLogger(__name__)


class BatchExecutor:
    """Applies batch actions item by item against the item store.

    A failure on one item is recorded and the rest of the batch proceeds.
    Deletes are applied as archives.
    """

    def __init__(
        self,
        item_store: ItemStore,
        activity_log: ActivityLog,
        *,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize with the stores the batch mutates."""
        self._item_store = item_store
        self._activity_log = activity_log
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))

    async def execute(self, actions: Sequence[BatchAction]) -> BatchActionResult:
        result = BatchActionResult()
        started_at = self._now_provider()
        for action in actions:
            collection_id = await self._resolve_collection(action, result)
            for item in action.items:
                await self._apply(action, item, collection_id, result, started_at)
        result.summary = _summarize(result)
        logger.info(
            "Batch actions finished: processed=%s archived=%s errors=%s",
            result.items_processed,
            result.items_archived,
            len(result.errors),
        )
        return result

    async def _resolve_collection(
        self, action: BatchAction, result: BatchActionResult
    ) -> str | None:
        if action.action == "delete":
            return None
        if action.collection_id:
            return action.collection_id
        if not action.collection_name or not isinstance(self._item_store, CollectionWriter):
            return None
        try:
            collection = await self._item_store.create_collection(action.collection_name)
        except Exception as exc:
            result.errors.append(f'Failed to create collection "{action.collection_name}": {exc}')
            result.success = False
            return None
        result.collections_created += 1
        return collection.id

    async def _apply(
        self,
        action: BatchAction,
        item: Item,
        collection_id: str | None,
        result: BatchActionResult,
        started_at: datetime,
    ) -> None:
        fields: dict[str, Any] = {"in_inbox": False}
        if collection_id:
            fields["collection_id"] = collection_id
        try:
            await self._item_store.update_item(item.id, fields)
        except Exception as exc:
            result.errors.append(f'Failed to {action.action} "{item.title}": {exc}')
            result.success = False
            return
        result.items_archived += 1
        result.items_processed += 1
        await self._log(action, item, started_at)

    async def _log(self, action: BatchAction, item: Item, started_at: datetime) -> None:
        # Every event of one run carries the run's start time.
        event = ActivityEvent(
            type="organize",
            timestamp=started_at,
            item_id=item.id,
            metadata={
                "action": action.action,
                "reason": action.reason,
                "batchOperation": True,
            },
        )
        try:
            await self._activity_log.append(event)
        except Exception as exc:
            logger.warning("Failed to log batch %s for item %s: %s", action.action, item.id, exc)


def _summarize(result: BatchActionResult) -> str:
    if result.success:
        return (
            f"Successfully processed {result.items_processed} items. "
            f"{result.items_archived} items were organized or archived."
        )
    return (
        f"Processed {result.items_processed} items with {len(result.errors)} errors. "
        "Some items may need manual attention."
    )
