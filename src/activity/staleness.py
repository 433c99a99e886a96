"""Staleness scoring for inbox items."""

from __future__ import annotations

from datetime import datetime
from typing import AbstractSet, Iterable, Sequence

from activity.types import ActivityPattern, StaleAction, StaleContentItem, StaleReason
from inventory.types import ActivityEvent, Item
from time_utils import days_between, ensure_utc

AGE_WEIGHT = 0.4
ACCESS_WEIGHT = 0.3
NEVER_ACCESSED_PENALTY = 0.3
NEVER_ACCESSED_GRACE_DAYS = 7
LOW_AFFINITY_PENALTY = 0.2
LOW_AFFINITY = 0.2
TOPIC_SHIFT_AFFINITY = 0.1
MAX_RATIO = 2.0


def last_access_by_item(events: Iterable[ActivityEvent]) -> dict[str, datetime]:
    """Most recent read timestamp for every item that has been read."""
    latest: dict[str, datetime] = {}
    for event in events:
        if event.type != "read" or not event.item_id:
            continue
        timestamp = ensure_utc(event.timestamp)
        current = latest.get(event.item_id)
        if current is None or timestamp > current:
            latest[event.item_id] = timestamp
    return latest


def staleness_score(
    days_since_created: float,
    days_since_last_access: float | None,
    threshold_days: float,
    domain_affinity: float,
) -> float:
    """Weighted neglect score clamped to [0, 1].

    Young items read recently score zero; the low-affinity penalty only
    adds to an item some other factor already marks as neglected.
    """
    score = 0.0
    if days_since_created > threshold_days:
        score += AGE_WEIGHT * min(days_since_created / threshold_days, MAX_RATIO)
    half_threshold = threshold_days / 2
    if days_since_last_access is not None and days_since_last_access > half_threshold:
        score += ACCESS_WEIGHT * min(days_since_last_access / half_threshold, MAX_RATIO)
    if days_since_last_access is None and days_since_created > NEVER_ACCESSED_GRACE_DAYS:
        score += NEVER_ACCESSED_PENALTY
    if score > 0 and domain_affinity < LOW_AFFINITY:
        score += LOW_AFFINITY_PENALTY
    return max(0.0, min(score, 1.0))


def staleness_reason(
    days_since_created: float,
    days_since_last_access: float | None,
    threshold_days: float,
    domain_affinity: float,
    is_duplicate: bool = False,
) -> StaleReason:
    if days_since_last_access is None:
        return "never_accessed"
    if is_duplicate:
        return "duplicate_content"
    if days_since_created > threshold_days * 1.5:
        return "time_based"
    if domain_affinity < TOPIC_SHIFT_AFFINITY:
        return "topic_shift"
    return "time_based"


def suggested_action(score: float, reason: StaleReason) -> StaleAction:
    if score > 0.8:
        return "delete" if reason == "duplicate_content" else "archive"
    if score > 0.6:
        return "archive"
    if reason == "never_accessed":
        return "review"
    return "organize"


def identify_stale_items(
    items: Sequence[Item],
    events: Sequence[ActivityEvent],
    pattern: ActivityPattern,
    now: datetime,
    duplicate_ids: AbstractSet[str] = frozenset(),
    report_threshold: float = 0.3,
) -> list[StaleContentItem]:
    """Score inbox items and return those at or above the report threshold."""
    last_access = last_access_by_item(events)
    stale: list[StaleContentItem] = []
    for item in items:
        if not item.in_inbox:
            continue
        age = days_between(item.created_at, now)
        accessed_at = last_access.get(item.id)
        since_access = days_between(accessed_at, now) if accessed_at else None
        threshold = pattern.threshold_for(item.category)
        affinity = pattern.affinity_for(item.domain)
        score = staleness_score(age, since_access, threshold, affinity)
        if score < report_threshold:
            continue
        reason = staleness_reason(
            age, since_access, threshold, affinity, is_duplicate=item.id in duplicate_ids
        )
        stale.append(
            StaleContentItem(
                item=item,
                staleness_score=score,
                reason=reason,
                days_since_created=age,
                days_since_last_access=since_access,
                suggested_action=suggested_action(score, reason),
            )
        )
    stale.sort(key=lambda entry: entry.staleness_score, reverse=True)
    return stale
