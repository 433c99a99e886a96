"""Collaborator protocols consumed by the analysis and monitoring services."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from inventory.types import ActivityEvent, Collection, Item, Tag


class ItemStore(Protocol):
    """Read and update access to the saved-item inventory."""

    async def list_items(self) -> list[Item]:
        """Return every saved item."""
        ...

    async def list_collections(self) -> list[Collection]:
        """Return every collection."""
        ...

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update to one item."""
        ...

    async def get_tags_for_item(self, item_id: str) -> list[Tag]:
        """Return the tags attached to one item."""
        ...


@runtime_checkable
class CollectionWriter(Protocol):
    """Optional store capability for creating collections during batch actions."""

    async def create_collection(self, name: str) -> Collection:
        """Create and return a new collection."""
        ...


class ActivityLog(Protocol):
    """Append-only store of user activity events."""

    async def append(self, event: ActivityEvent) -> None:
        """Record a new event."""
        ...

    async def query(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[ActivityEvent]:
        """Return events newest first, optionally bounded in time and count."""
        ...


class KeyValueStore(Protocol):
    """Namespaced key-value persistence with whole-value replace semantics."""

    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None when absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Replace the stored value."""
        ...


class Notifier(Protocol):
    """Fire-and-forget user notification sink."""

    async def notify(self, title: str, message: str) -> None:
        """Deliver a notification."""
        ...
