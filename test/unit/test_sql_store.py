"""Tests for the SQLAlchemy-backed stores."""

from datetime import timedelta

import pytest

from inventory.errors import ItemNotFound
from inventory.sql_store import SqlActivityLog, SqlItemStore, SqlKeyValueStore
from inventory.types import ActivityEvent
from fakes import NOW, make_item


@pytest.mark.asyncio
async def test_items_round_trip_in_creation_order(session_factory) -> None:
    store = SqlItemStore(session_factory)
    await store.save_item(make_item("b", age_days=1, highlights=("one",)))
    await store.save_item(make_item("a", age_days=3))

    items = await store.list_items()

    assert [item.id for item in items] == ["a", "b"]
    assert items[1].highlights == ("one",)
    assert items[1].domain == "exampleb.org"
    assert items[0].created_at == NOW - timedelta(days=3)


@pytest.mark.asyncio
async def test_update_item_applies_partial_fields(session_factory) -> None:
    store = SqlItemStore(session_factory)
    await store.save_item(make_item("1"))
    collection = await store.create_collection("Reading")

    await store.update_item("1", {"in_inbox": False, "collection_id": collection.id})

    (item,) = await store.list_items()
    assert item.in_inbox is False
    assert item.collection_id == collection.id
    assert item.updated_at is not None
    assert [c.name for c in await store.list_collections()] == ["Reading"]


@pytest.mark.asyncio
async def test_update_item_rejects_unknown_fields(session_factory) -> None:
    store = SqlItemStore(session_factory)
    await store.save_item(make_item("1"))

    with pytest.raises(ValueError):
        await store.update_item("1", {"url": "https://elsewhere.test"})


@pytest.mark.asyncio
async def test_update_missing_item_raises(session_factory) -> None:
    store = SqlItemStore(session_factory)

    with pytest.raises(ItemNotFound):
        await store.update_item("ghost", {"in_inbox": False})


@pytest.mark.asyncio
async def test_tags_are_created_once_per_name(session_factory) -> None:
    store = SqlItemStore(session_factory)
    await store.save_item(make_item("1"))
    await store.save_item(make_item("2"))

    await store.add_tags("1", ["react", "frontend"])
    await store.add_tags("2", ["react"])
    await store.add_tags("1", ["react"])

    assert [tag.name for tag in await store.get_tags_for_item("1")] == ["frontend", "react"]
    tags_two = await store.get_tags_for_item("2")
    assert [tag.name for tag in tags_two] == ["react"]
    assert tags_two[0].id == (await store.get_tags_for_item("1"))[1].id


@pytest.mark.asyncio
async def test_activity_log_returns_newest_first(session_factory) -> None:
    log = SqlActivityLog(session_factory)
    for hours in (5, 1, 3):
        await log.append(
            ActivityEvent(type="read", timestamp=NOW - timedelta(hours=hours), item_id=str(hours))
        )

    events = await log.query()
    recent = await log.query(since=NOW - timedelta(hours=4))
    limited = await log.query(limit=1)

    assert [event.item_id for event in events] == ["1", "3", "5"]
    assert [event.item_id for event in recent] == ["1", "3"]
    assert [event.item_id for event in limited] == ["1"]
    assert events[0].timestamp == NOW - timedelta(hours=1)


@pytest.mark.asyncio
async def test_key_value_store_replaces_values(session_factory) -> None:
    kv = SqlKeyValueStore(session_factory)

    assert await kv.get("missing") is None
    await kv.set("health", {"1": {"status": "dead"}})
    await kv.set("health", {"2": {"status": "healthy"}})

    assert await kv.get("health") == {"2": {"status": "healthy"}}
