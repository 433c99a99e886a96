"""Persistence of link health records under one key-value entry."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any

from inventory.protocols import KeyValueStore
from link_health.types import LinkHealthRecord

logger = logging.getLogger(__name__)


class LinkHealthRepository:
    """Map of item ID to health record stored as a single JSON value.

    Writes are read-modify-replace on the whole map, so they are serialized
    with a lock to keep concurrent probes from dropping each other's updates.
    """

    def __init__(self, store: KeyValueStore, storage_key: str = "nest_link_health") -> None:
        """Initialize with a key-value store and the namespaced key."""
        self._store = store
        self._key = storage_key
        self._lock = asyncio.Lock()

    async def all(self) -> dict[str, LinkHealthRecord]:
        """Return every stored record keyed by item ID."""
        return self._decode(await self._store.get(self._key))

    async def get(self, item_id: str) -> LinkHealthRecord | None:
        return (await self.all()).get(item_id)

    async def save(self, record: LinkHealthRecord) -> None:
        """Insert or replace the record for its item."""
        async with self._lock:
            records = self._decode(await self._store.get(self._key))
            records[record.item_id] = record
            await self._write(records)

    async def update(self, item_id: str, **changes: Any) -> LinkHealthRecord | None:
        """Apply field changes to an existing record; None when it does not exist."""
        async with self._lock:
            records = self._decode(await self._store.get(self._key))
            current = records.get(item_id)
            if current is None:
                return None
            updated = dataclasses.replace(current, **changes)
            records[item_id] = updated
            await self._write(records)
            return updated

    async def _write(self, records: dict[str, LinkHealthRecord]) -> None:
        await self._store.set(
            self._key, {item_id: record.to_dict() for item_id, record in records.items()}
        )

    def _decode(self, raw: Any) -> dict[str, LinkHealthRecord]:
        if not raw:
            return {}
        entries = raw.values() if isinstance(raw, dict) else raw
        records: dict[str, LinkHealthRecord] = {}
        for entry in entries:
            try:
                record = LinkHealthRecord.from_dict(entry)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed link health entry: %s", exc)
                continue
            records[record.item_id] = record
        return records
