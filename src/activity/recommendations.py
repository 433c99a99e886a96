"""Reading recommendation scoring."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from activity.staleness import last_access_by_item
from activity.types import ActivityPattern
from inventory.types import ActivityEvent, Item
from time_utils import days_between

CATEGORY_WEIGHTS = {
    "work": 0.8,
    "learning": 0.9,
    "personal": 0.7,
    "general": 0.6,
}
DEFAULT_CATEGORY_WEIGHT = 0.6
RECENCY_HORIZON_DAYS = 30
RECENTLY_READ_DAYS = 7


def reading_score(item: Item, pattern: ActivityPattern, now: datetime) -> float:
    """Blend domain affinity, category weight, and recency into one score."""
    category_weight = CATEGORY_WEIGHTS.get(item.category, DEFAULT_CATEGORY_WEIGHT)
    age = days_between(item.created_at, now)
    recency = max(0.0, 1 - age / RECENCY_HORIZON_DAYS)
    return 0.4 * pattern.affinity_for(item.domain) + 0.3 * category_weight + 0.3 * recency


def recommend_items(
    items: Sequence[Item],
    events: Sequence[ActivityEvent],
    pattern: ActivityPattern,
    now: datetime,
    limit: int = 5,
) -> list[Item]:
    """Highest scoring items not read in the last week."""
    last_access = last_access_by_item(events)
    candidates = [
        item
        for item in items
        if item.id not in last_access
        or days_between(last_access[item.id], now) > RECENTLY_READ_DAYS
    ]
    ranked = sorted(candidates, key=lambda item: reading_score(item, pattern, now), reverse=True)
    return ranked[: max(limit, 0)]
