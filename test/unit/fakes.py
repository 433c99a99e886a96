"""In-memory collaborators shared by the unit tests."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from datetime import datetime, timedelta, timezone
from typing import Any

from inventory.errors import ItemNotFound, StoreError
from inventory.types import ActivityEvent, Collection, Item, Tag
from time_utils import ensure_utc

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_item(
    item_id: str,
    *,
    url: str | None = None,
    title: str | None = None,
    age_days: float = 0,
    now: datetime = NOW,
    **fields: Any,
) -> Item:
    """Build an item saved ``age_days`` before ``now``."""
    return Item(
        id=item_id,
        url=url or f"https://example{item_id}.org/articles/{item_id}",
        title=title or f"Article {item_id}",
        created_at=now - timedelta(days=age_days),
        **fields,
    )


def read_event(item_id: str, when: datetime) -> ActivityEvent:
    return ActivityEvent(type="read", timestamp=when, item_id=item_id)


class InMemoryItemStore:
    """Item store backed by dictionaries, with optional injected failures."""

    def __init__(
        self,
        items: list[Item] | None = None,
        collections: list[Collection] | None = None,
        tags: dict[str, list[Tag]] | None = None,
    ) -> None:
        self.items: dict[str, Item] = {item.id: item for item in items or []}
        self.collections: dict[str, Collection] = {c.id: c for c in collections or []}
        self.tags = tags or {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.failing_updates: set[str] = set()
        self.failing_tags: set[str] = set()
        self.broken = False

    async def list_items(self) -> list[Item]:
        if self.broken:
            raise StoreError("store unavailable")
        return list(self.items.values())

    async def list_collections(self) -> list[Collection]:
        if self.broken:
            raise StoreError("store unavailable")
        return list(self.collections.values())

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> None:
        if item_id in self.failing_updates:
            raise StoreError(f"write rejected for {item_id}")
        if item_id not in self.items:
            raise ItemNotFound(item_id)
        self.updates.append((item_id, dict(fields)))
        self.items[item_id] = dataclasses.replace(self.items[item_id], **fields)

    async def get_tags_for_item(self, item_id: str) -> list[Tag]:
        if item_id in self.failing_tags:
            raise StoreError(f"tags unavailable for {item_id}")
        return list(self.tags.get(item_id, []))

    async def create_collection(self, name: str) -> Collection:
        collection = Collection(id=f"col-{len(self.collections) + 1}", name=name)
        self.collections[collection.id] = collection
        return collection


class InMemoryActivityLog:
    """Activity log returning events newest first."""

    def __init__(self, events: list[ActivityEvent] | None = None) -> None:
        self.events = list(events or [])
        self.broken = False
        self.failing_appends = False

    async def append(self, event: ActivityEvent) -> None:
        if self.failing_appends:
            raise StoreError("log unavailable")
        self.events.append(event)

    async def query(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[ActivityEvent]:
        if self.broken:
            raise StoreError("log unavailable")
        selected = [
            event
            for event in self.events
            if (since is None or ensure_utc(event.timestamp) >= ensure_utc(since))
            and (until is None or ensure_utc(event.timestamp) <= ensure_utc(until))
        ]
        selected.sort(key=lambda event: ensure_utc(event.timestamp), reverse=True)
        return selected[:limit] if limit is not None else selected


class InMemoryKeyValueStore:
    """Key-value store that round-trips values through JSON and yields on access."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.writes = 0

    async def get(self, key: str) -> Any | None:
        await asyncio.sleep(0)
        raw = self.data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        await asyncio.sleep(0)
        self.data[key] = json.dumps(value)
        self.writes += 1


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def notify(self, title: str, message: str) -> None:
        self.sent.append((title, message))


async def no_sleep(delay: float) -> None:
    await asyncio.sleep(0)
