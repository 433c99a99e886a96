"""Unit tests for staleness scoring and stale content identification."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from activity.analyzer import ActivityAnalyzer
from activity.staleness import (
    identify_stale_items,
    staleness_reason,
    staleness_score,
    suggested_action,
)
from activity.types import DEFAULT_ACTIVITY_PATTERN
from config import AnalyzerConfig
from fakes import NOW, InMemoryActivityLog, InMemoryItemStore, make_item, read_event


def test_young_recently_read_item_scores_zero() -> None:
    """Items within the threshold and read recently are never stale."""
    for age in range(0, 31):
        for since_access in range(0, 16):
            if since_access > age:
                continue
            assert staleness_score(age, since_access, 30, 0.0) == 0.0


def test_score_is_monotonic_in_age() -> None:
    """Holding access and affinity fixed, older items never score lower."""
    for since_access in (None, 2, 20):
        for affinity in (0.0, 0.5, 1.0):
            scores = [staleness_score(age, since_access, 30, affinity) for age in range(0, 120)]
            assert scores == sorted(scores)


def test_score_is_clamped_to_unit_interval() -> None:
    assert staleness_score(1000, 1000, 7, 0.0) == 1.0
    assert 0.0 <= staleness_score(45, None, 30, 1.0) <= 1.0


def test_never_accessed_penalty_after_grace_period() -> None:
    assert staleness_score(8, None, 30, 1.0) == pytest.approx(0.3)
    assert staleness_score(7, None, 30, 1.0) == 0.0


def test_reason_precedence() -> None:
    assert staleness_reason(40, None, 30, 1.0, is_duplicate=True) == "never_accessed"
    assert staleness_reason(40, 20, 30, 1.0, is_duplicate=True) == "duplicate_content"
    assert staleness_reason(50, 20, 30, 0.0) == "time_based"
    assert staleness_reason(40, 20, 30, 0.05) == "topic_shift"
    assert staleness_reason(40, 20, 30, 0.5) == "time_based"


def test_suggested_action_thresholds() -> None:
    assert suggested_action(0.9, "duplicate_content") == "delete"
    assert suggested_action(0.9, "time_based") == "archive"
    assert suggested_action(0.7, "never_accessed") == "archive"
    assert suggested_action(0.5, "never_accessed") == "review"
    assert suggested_action(0.5, "topic_shift") == "organize"


def test_identify_stale_items_only_scores_inbox_sorted_desc() -> None:
    items = [
        make_item("old", age_days=90),
        make_item("mid", age_days=40),
        make_item("fresh", age_days=1),
        make_item("filed", age_days=200, in_inbox=False),
    ]
    events = [read_event("mid", NOW - timedelta(days=1))]

    stale = identify_stale_items(items, events, DEFAULT_ACTIVITY_PATTERN, NOW)

    assert [entry.item.id for entry in stale] == ["old", "mid"]
    assert stale[0].reason == "never_accessed"
    assert stale[0].days_since_last_access is None
    assert stale[1].days_since_last_access == 1
    assert stale[0].staleness_score >= stale[1].staleness_score


@pytest.mark.asyncio
async def test_analyzer_flags_newer_duplicate() -> None:
    """The newer copy of an auto-mergeable pair is reported as duplicate content."""
    url = "https://blog.example.com/posts/async-python"
    items = [
        make_item("a", url=url, title="Async Python", age_days=120),
        make_item("b", url=url, title="Async Python", age_days=100),
    ]
    events = [
        read_event("a", NOW - timedelta(days=60)),
        read_event("b", NOW - timedelta(days=60)),
    ]
    analyzer = ActivityAnalyzer(
        InMemoryItemStore(items),
        InMemoryActivityLog(events),
        now_provider=lambda: NOW,
        local_tz=timezone.utc,
    )

    stale = {entry.item.id: entry for entry in await analyzer.identify_stale_content()}

    assert stale["b"].reason == "duplicate_content"
    assert stale["b"].suggested_action == "delete"
    assert stale["a"].reason == "time_based"


@pytest.mark.asyncio
async def test_analyzer_skips_duplicates_when_disabled() -> None:
    url = "https://blog.example.com/posts/async-python"
    items = [
        make_item("a", url=url, title="Async Python", age_days=120),
        make_item("b", url=url, title="Async Python", age_days=100),
    ]
    events = [read_event("a", NOW - timedelta(days=60)), read_event("b", NOW - timedelta(days=60))]
    analyzer = ActivityAnalyzer(
        InMemoryItemStore(items),
        InMemoryActivityLog(events),
        config=AnalyzerConfig(duplicate_detection=False),
        now_provider=lambda: NOW,
        local_tz=timezone.utc,
    )

    stale = await analyzer.identify_stale_content()

    assert {entry.reason for entry in stale} == {"time_based"}
