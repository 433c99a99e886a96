"""Unit tests for link health record persistence."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from link_health.repository import LinkHealthRepository
from link_health.types import LinkHealthRecord
from fakes import NOW, InMemoryKeyValueStore


def _record(item_id: str, status: str = "healthy", **changes) -> LinkHealthRecord:
    return LinkHealthRecord(
        item_id=item_id,
        url=f"https://example.com/{item_id}",
        status=status,
        last_checked=NOW,
        **changes,
    )


@pytest.mark.asyncio
async def test_save_and_read_back_round_trips_through_store() -> None:
    store = InMemoryKeyValueStore()
    repository = LinkHealthRepository(store)
    record = _record("1", "dead", status_code=404, error="HTTP 404", alternative_urls=("https://a",))

    await repository.save(record)

    assert await repository.get("1") == record
    assert "nest_link_health" in store.data
    assert await repository.get("missing") is None


@pytest.mark.asyncio
async def test_concurrent_saves_do_not_lose_updates() -> None:
    """Parallel writers each keep their own record."""
    repository = LinkHealthRepository(InMemoryKeyValueStore())

    await asyncio.gather(*(repository.save(_record(str(n))) for n in range(20)))

    assert sorted(await repository.all(), key=int) == [str(n) for n in range(20)]


@pytest.mark.asyncio
async def test_update_changes_fields_of_existing_record_only() -> None:
    repository = LinkHealthRepository(InMemoryKeyValueStore())
    await repository.save(_record("1", "dead"))

    updated = await repository.update("1", recovery_attempted=True, recovery_success=True)
    missing = await repository.update("2", recovery_attempted=True)

    assert updated.recovery_success is True
    assert (await repository.get("1")).recovery_attempted is True
    assert missing is None
    assert await repository.get("2") is None


@pytest.mark.asyncio
async def test_malformed_entries_are_skipped() -> None:
    store = InMemoryKeyValueStore()
    await store.set(
        "nest_link_health",
        {
            "1": _record("1").to_dict(),
            "2": {"item_id": "2", "status": "exploded", "last_checked": NOW.isoformat()},
            "3": {"status": "healthy"},
        },
    )

    records = await LinkHealthRepository(store).all()

    assert list(records) == ["1"]


@pytest.mark.asyncio
async def test_list_payloads_are_accepted() -> None:
    store = InMemoryKeyValueStore()
    older = _record("1").to_dict()
    older["last_checked"] = (NOW - timedelta(days=2)).isoformat()
    await store.set("custom_key", [older])

    records = await LinkHealthRepository(store, storage_key="custom_key").all()

    assert records["1"].last_checked == NOW - timedelta(days=2)
