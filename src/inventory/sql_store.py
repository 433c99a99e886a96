"""SQLAlchemy-backed item store, activity log, and key-value store."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import closing
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory.errors import ItemNotFound, StoreError
from inventory.types import ActivityEvent, Collection, Item, Tag
from models import (
    ActivityEventRecord,
    CollectionRecord,
    ItemTag,
    KeyValueEntry,
    SavedItem,
    TagRecord,
)
from time_utils import ensure_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UPDATABLE_FIELDS = {
    "title",
    "category",
    "in_inbox",
    "collection_id",
    "user_note",
    "ai_summary",
    "highlights",
}


async def _run(fn: Callable[..., T], *args: Any) -> T:
    """Run blocking session work off the event loop, normalizing errors."""
    try:
        return await asyncio.to_thread(fn, *args)
    except SQLAlchemyError as exc:
        raise StoreError(str(exc)) from exc


def _to_item(row: SavedItem) -> Item:
    """Convert an ORM row into an immutable Item."""
    return Item(
        id=row.id,
        url=row.url,
        title=row.title or "",
        domain=row.domain or "",
        category=row.category or "general",
        in_inbox=bool(row.in_inbox),
        collection_id=row.collection_id,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at) if row.updated_at else None,
        user_note=row.user_note or "",
        ai_summary=row.ai_summary,
        highlights=tuple(row.highlights or ()),
    )


class SqlItemStore:
    """Item store reading and writing the saved_items tables."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize with a synchronous session factory."""
        self._session_factory = session_factory

    async def list_items(self) -> list[Item]:
        """Return every saved item ordered by creation time."""
        return await _run(self._list_items)

    async def list_collections(self) -> list[Collection]:
        """Return every collection."""
        return await _run(self._list_collections)

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update to one item."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported item fields: {sorted(unknown)}")
        await _run(self._update_item, item_id, dict(fields))

    async def get_tags_for_item(self, item_id: str) -> list[Tag]:
        """Return the tags attached to one item."""
        return await _run(self._get_tags_for_item, item_id)

    async def create_collection(self, name: str) -> Collection:
        """Create a collection with a generated identifier."""
        return await _run(self._create_collection, name)

    async def save_item(self, item: Item) -> None:
        """Insert or replace a saved item."""
        await _run(self._save_item, item)

    async def add_tags(self, item_id: str, names: Iterable[str]) -> None:
        """Attach tags by name, creating missing tags."""
        await _run(self._add_tags, item_id, list(names))

    def _list_items(self) -> list[Item]:
        with closing(self._session_factory()) as session:
            rows = session.query(SavedItem).order_by(SavedItem.created_at.asc()).all()
            return [_to_item(row) for row in rows]

    def _list_collections(self) -> list[Collection]:
        with closing(self._session_factory()) as session:
            rows = session.query(CollectionRecord).order_by(CollectionRecord.name.asc()).all()
            return [
                Collection(
                    id=row.id,
                    name=row.name,
                    created_at=ensure_utc(row.created_at) if row.created_at else None,
                )
                for row in rows
            ]

    def _update_item(self, item_id: str, fields: dict[str, Any]) -> None:
        with closing(self._session_factory()) as session:
            row = session.get(SavedItem, item_id)
            if row is None:
                raise ItemNotFound(item_id)
            for key, value in fields.items():
                if key == "highlights":
                    value = list(value or [])
                setattr(row, key, value)
            row.updated_at = datetime.now(timezone.utc)
            session.commit()

    def _get_tags_for_item(self, item_id: str) -> list[Tag]:
        with closing(self._session_factory()) as session:
            rows = (
                session.query(TagRecord)
                .join(ItemTag, ItemTag.tag_id == TagRecord.id)
                .filter(ItemTag.item_id == item_id)
                .order_by(TagRecord.name.asc())
                .all()
            )
            return [Tag(id=str(row.id), name=row.name) for row in rows]

    def _create_collection(self, name: str) -> Collection:
        with closing(self._session_factory()) as session:
            record = CollectionRecord(id=uuid.uuid4().hex, name=name)
            session.add(record)
            session.commit()
            return Collection(
                id=record.id,
                name=record.name,
                created_at=ensure_utc(record.created_at) if record.created_at else None,
            )

    def _save_item(self, item: Item) -> None:
        with closing(self._session_factory()) as session:
            session.merge(
                SavedItem(
                    id=item.id,
                    url=item.url,
                    title=item.title,
                    domain=item.domain,
                    category=item.category,
                    in_inbox=item.in_inbox,
                    collection_id=item.collection_id,
                    user_note=item.user_note,
                    ai_summary=item.ai_summary,
                    highlights=list(item.highlights),
                    created_at=item.created_at,
                    updated_at=item.updated_at or item.created_at,
                )
            )
            session.commit()

    def _add_tags(self, item_id: str, names: list[str]) -> None:
        with closing(self._session_factory()) as session:
            if session.get(SavedItem, item_id) is None:
                raise ItemNotFound(item_id)
            for name in names:
                tag = session.query(TagRecord).filter(TagRecord.name == name).first()
                if tag is None:
                    tag = TagRecord(name=name)
                    session.add(tag)
                    session.flush()
                exists = (
                    session.query(ItemTag)
                    .filter(ItemTag.item_id == item_id, ItemTag.tag_id == tag.id)
                    .first()
                )
                if exists is None:
                    session.add(ItemTag(item_id=item_id, tag_id=tag.id))
            session.commit()


class SqlActivityLog:
    """Append-only activity log stored in the activity_events table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize with a synchronous session factory."""
        self._session_factory = session_factory

    async def append(self, event: ActivityEvent) -> None:
        """Record a new event."""
        await _run(self._append, event)

    async def query(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[ActivityEvent]:
        """Return events newest first, optionally bounded in time and count."""
        return await _run(self._query, since, until, limit)

    def _append(self, event: ActivityEvent) -> None:
        with closing(self._session_factory()) as session:
            session.add(
                ActivityEventRecord(
                    event_type=event.type,
                    item_id=event.item_id,
                    collection_id=event.collection_id,
                    event_metadata=dict(event.metadata),
                    created_at=ensure_utc(event.timestamp),
                )
            )
            session.commit()

    def _query(
        self,
        since: datetime | None,
        until: datetime | None,
        limit: int | None,
    ) -> list[ActivityEvent]:
        with closing(self._session_factory()) as session:
            query = session.query(ActivityEventRecord)
            if since is not None:
                query = query.filter(ActivityEventRecord.created_at >= ensure_utc(since))
            if until is not None:
                query = query.filter(ActivityEventRecord.created_at <= ensure_utc(until))
            query = query.order_by(
                ActivityEventRecord.created_at.desc(), ActivityEventRecord.id.desc()
            )
            if limit is not None:
                query = query.limit(limit)
            return [
                ActivityEvent(
                    id=row.id,
                    type=row.event_type,
                    item_id=row.item_id,
                    collection_id=row.collection_id,
                    metadata=dict(row.event_metadata or {}),
                    timestamp=ensure_utc(row.created_at),
                )
                for row in query.all()
            ]


class SqlKeyValueStore:
    """Key-value store persisting JSON values in the kv_entries table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize with a synchronous session factory."""
        self._session_factory = session_factory

    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None when absent."""
        return await _run(self._get, key)

    async def set(self, key: str, value: Any) -> None:
        """Replace the stored value."""
        await _run(self._set, key, value)

    def _get(self, key: str) -> Any | None:
        with closing(self._session_factory()) as session:
            row = session.get(KeyValueEntry, key)
            return None if row is None else row.value

    def _set(self, key: str, value: Any) -> None:
        with closing(self._session_factory()) as session:
            session.merge(
                KeyValueEntry(key=key, value=value, updated_at=datetime.now(timezone.utc))
            )
            session.commit()
