"""Pure functions deriving an ActivityPattern from events and inventory."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Mapping, Sequence

from activity.types import (
    DEFAULT_ORGANIZATION_CADENCE_DAYS,
    DEFAULT_PREFERRED_HOURS,
    DEFAULT_SESSION_MINUTES,
    DEFAULT_STALENESS_THRESHOLDS,
    ActivityPattern,
)
from inventory.types import ActivityEvent, Collection, Item, Tag
from time_utils import days_between, ensure_utc

MIN_READS_FOR_THRESHOLD_SCALING = 10
MIN_THRESHOLD_DAYS = 3.0
BASELINE_DAYS_TO_READ = 7.0


def chronological(events: Iterable[ActivityEvent]) -> list[ActivityEvent]:
    """Return events sorted oldest first."""
    return sorted(events, key=lambda event: ensure_utc(event.timestamp))


def read_events(events: Iterable[ActivityEvent]) -> list[ActivityEvent]:
    return [event for event in events if event.type == "read"]


def normalize_counts(counts: Mapping[str, int | float]) -> dict[str, float]:
    """Scale counts into [0, 1] by dividing by the largest count."""
    if not counts:
        return {}
    peak = max(counts.values())
    if peak <= 0:
        return {key: 0.0 for key in counts}
    return {key: value / peak for key, value in counts.items()}


def preferred_hours(events: Sequence[ActivityEvent], tz: tzinfo) -> tuple[int, ...]:
    """Return local hours whose read count exceeds the hourly mean."""
    reads = read_events(events)
    if not reads:
        return DEFAULT_PREFERRED_HOURS
    histogram = Counter(ensure_utc(event.timestamp).astimezone(tz).hour for event in reads)
    mean = len(reads) / 24
    return tuple(hour for hour in range(24) if histogram.get(hour, 0) > mean)


def average_session_minutes(
    events: Sequence[ActivityEvent], gap_minutes: int = 30
) -> float:
    """Average span of sessions with at least two events.

    Sessions are split wherever consecutive events are more than
    ``gap_minutes`` apart.
    """
    ordered = chronological(events)
    if not ordered:
        return DEFAULT_SESSION_MINUTES
    gap = timedelta(minutes=gap_minutes)
    spans: list[float] = []
    session = [ordered[0]]
    for previous, current in zip(ordered, ordered[1:]):
        if ensure_utc(current.timestamp) - ensure_utc(previous.timestamp) <= gap:
            session.append(current)
            continue
        _close_session(session, spans)
        session = [current]
    _close_session(session, spans)
    if not spans:
        return DEFAULT_SESSION_MINUTES
    return sum(spans) / len(spans)


def _close_session(session: list[ActivityEvent], spans: list[float]) -> None:
    if len(session) < 2:
        return
    elapsed = ensure_utc(session[-1].timestamp) - ensure_utc(session[0].timestamp)
    spans.append(elapsed.total_seconds() / 60)


def domain_affinity(
    events: Sequence[ActivityEvent], items_by_id: Mapping[str, Item]
) -> dict[str, float]:
    """Normalized read counts per item domain."""
    counts: Counter[str] = Counter()
    for event in read_events(events):
        item = items_by_id.get(event.item_id or "")
        if item is not None:
            counts[item.domain] += 1
    return normalize_counts(counts)


def tag_affinity(tags_by_item: Mapping[str, Sequence[Tag]]) -> dict[str, float]:
    """Normalized tag frequency across the inventory."""
    counts: Counter[str] = Counter()
    for tags in tags_by_item.values():
        for tag in tags:
            counts[tag.name] += 1
    return normalize_counts(counts)


def collection_affinity(
    items: Sequence[Item], collections: Sequence[Collection]
) -> dict[str, float]:
    """Normalized item count per collection name."""
    names = {collection.id: collection.name for collection in collections}
    counts: Counter[str] = Counter()
    for item in items:
        name = names.get(item.collection_id or "")
        if name is not None:
            counts[name] += 1
    return normalize_counts(counts)


def average_days_to_read(
    reads: Sequence[ActivityEvent], items_by_id: Mapping[str, Item]
) -> float:
    """Mean days between saving an item and reading it."""
    durations = [
        days_between(items_by_id[event.item_id].created_at, event.timestamp)
        for event in reads
        if event.item_id in items_by_id
    ]
    if not durations:
        return BASELINE_DAYS_TO_READ
    return sum(durations) / len(durations)


def staleness_thresholds(
    events: Sequence[ActivityEvent], items_by_id: Mapping[str, Item]
) -> dict[str, float]:
    """Per-category staleness thresholds scaled by the user's reading pace."""
    thresholds = dict(DEFAULT_STALENESS_THRESHOLDS)
    reads = read_events(events)
    if len(reads) <= MIN_READS_FOR_THRESHOLD_SCALING:
        return thresholds
    factor = average_days_to_read(reads, items_by_id) / BASELINE_DAYS_TO_READ
    return {
        category: max(days * factor, MIN_THRESHOLD_DAYS)
        for category, days in thresholds.items()
    }


def reading_velocity(events: Sequence[ActivityEvent]) -> float:
    """Reads per day across the span between the first and last read."""
    reads = chronological(read_events(events))
    if not reads:
        return 1.0
    span = days_between(reads[0].timestamp, reads[-1].timestamp)
    if span == 0:
        return float(len(reads))
    return len(reads) / span


def organize_sessions(events: Iterable[ActivityEvent]) -> list[ActivityEvent]:
    """Organize events oldest first, one per batch run.

    Batch runs log an event per item, all stamped with the run's start time.
    """
    sessions: list[ActivityEvent] = []
    batch_runs: set[datetime] = set()
    for event in chronological(event for event in events if event.type == "organize"):
        if event.metadata.get("batchOperation"):
            started_at = ensure_utc(event.timestamp)
            if started_at in batch_runs:
                continue
            batch_runs.add(started_at)
        sessions.append(event)
    return sessions


def organization_cadence_days(events: Sequence[ActivityEvent]) -> float:
    """Mean days between consecutive organize sessions."""
    organizes = organize_sessions(events)
    if len(organizes) < 2:
        return DEFAULT_ORGANIZATION_CADENCE_DAYS
    intervals = [
        days_between(previous.timestamp, current.timestamp)
        for previous, current in zip(organizes, organizes[1:])
    ]
    return sum(intervals) / len(intervals)


def build_pattern(
    events: Sequence[ActivityEvent],
    items: Sequence[Item],
    collections: Sequence[Collection],
    tags_by_item: Mapping[str, Sequence[Tag]],
    tz: tzinfo,
    session_gap_minutes: int = 30,
) -> ActivityPattern:
    """Combine every pattern signal into one ActivityPattern."""
    items_by_id = {item.id: item for item in items}
    return ActivityPattern(
        preferred_hours=preferred_hours(events, tz),
        avg_session_minutes=average_session_minutes(events, session_gap_minutes),
        domain_affinity=domain_affinity(events, items_by_id),
        staleness_threshold_days=staleness_thresholds(events, items_by_id),
        reading_velocity=reading_velocity(events),
        organization_cadence_days=organization_cadence_days(events),
        tag_affinity=tag_affinity(tags_by_item),
        collection_affinity=collection_affinity(items, collections),
    )
