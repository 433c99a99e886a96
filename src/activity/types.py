"""Result types produced by activity pattern analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from inventory.types import Item

StaleReason = Literal["time_based", "topic_shift", "never_accessed", "duplicate_content"]
StaleAction = Literal["archive", "review", "delete", "organize"]
MergeRecommendation = Literal["auto", "manual", "skip"]

DEFAULT_PREFERRED_HOURS: tuple[int, ...] = (9, 10, 14, 15, 20, 21)
DEFAULT_SESSION_MINUTES = 15.0
DEFAULT_READING_VELOCITY = 2.0
DEFAULT_ORGANIZATION_CADENCE_DAYS = 7.0
DEFAULT_STALENESS_THRESHOLD_DAYS = 30.0
DEFAULT_STALENESS_THRESHOLDS: dict[str, float] = {
    "general": 30.0,
    "work": 14.0,
    "learning": 21.0,
    "personal": 45.0,
    "news": 7.0,
    "reference": 90.0,
}


@dataclass(frozen=True)
class ActivityPattern:
    """Behavioral profile derived from the activity log and inventory."""

    preferred_hours: tuple[int, ...]
    avg_session_minutes: float
    domain_affinity: dict[str, float]
    staleness_threshold_days: dict[str, float]
    reading_velocity: float
    organization_cadence_days: float
    tag_affinity: dict[str, float] = field(default_factory=dict)
    collection_affinity: dict[str, float] = field(default_factory=dict)

    def threshold_for(self, category: str | None) -> float:
        """Return the staleness threshold in days for a category."""
        return self.staleness_threshold_days.get(
            category or "general", DEFAULT_STALENESS_THRESHOLD_DAYS
        )

    def affinity_for(self, domain: str) -> float:
        """Return the domain affinity, zero when there is no signal."""
        return self.domain_affinity.get(domain, 0.0)


DEFAULT_ACTIVITY_PATTERN = ActivityPattern(
    preferred_hours=DEFAULT_PREFERRED_HOURS,
    avg_session_minutes=DEFAULT_SESSION_MINUTES,
    domain_affinity={},
    staleness_threshold_days=dict(DEFAULT_STALENESS_THRESHOLDS),
    reading_velocity=DEFAULT_READING_VELOCITY,
    organization_cadence_days=DEFAULT_ORGANIZATION_CADENCE_DAYS,
)


@dataclass(frozen=True)
class StaleContentItem:
    """Inbox item flagged as neglected."""

    item: Item
    staleness_score: float
    reason: StaleReason
    days_since_created: int
    suggested_action: StaleAction
    days_since_last_access: int | None = None


@dataclass(frozen=True)
class ContentCluster:
    """Group of related inbox items."""

    theme: str
    items: tuple[Item, ...]
    confidence: float
    suggested_collection_name: str
    suggested_tags: tuple[str, ...] = ()

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]


@dataclass(frozen=True)
class DuplicateCandidate:
    """Pair of items that look like the same saved content."""

    original_id: str
    duplicate_id: str
    similarity: float
    reasons: tuple[str, ...]
    merge_recommendation: MergeRecommendation
    confidence: float
