"""Activity pattern analysis over the saved-item inventory and activity log."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable, Sequence

from activity.clustering import detect_clusters
from activity.duplicates import find_duplicate_pairs, newer_of_auto_pairs
from activity.patterns import build_pattern
from activity.recommendations import recommend_items
from activity.staleness import identify_stale_items
from activity.types import (
    DEFAULT_ACTIVITY_PATTERN,
    ActivityPattern,
    ContentCluster,
    DuplicateCandidate,
    StaleContentItem,
)
from config import AnalyzerConfig, settings
from inventory.protocols import ActivityLog, ItemStore
from inventory.types import ActivityEvent, Collection, Item, Tag
from time_utils import get_local_timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventorySnapshot:
    """Inventory and activity read together for one analysis call."""

    items: list[Item]
    collections: list[Collection]
    events: list[ActivityEvent]
    tags_by_item: dict[str, list[Tag]]

    @property
    def items_by_id(self) -> dict[str, Item]:
        return {item.id: item for item in self.items}


@dataclass(frozen=True)
class InventoryInsights:
    """Every analyzer signal derived from one snapshot."""

    items: list[Item]
    pattern: ActivityPattern
    stale: list[StaleContentItem]
    clusters: list[ContentCluster]
    recommendations: list[Item]
    duplicates: list[DuplicateCandidate]


class ActivityAnalyzer:
    """Derives behavioral patterns and neglect signals from user activity.

    The single-signal methods each read a fresh snapshot and never raise;
    read failures are logged and yield neutral defaults. ``collect_insights``
    serves callers that need several signals from one read.
    """

    def __init__(
        self,
        item_store: ItemStore,
        activity_log: ActivityLog,
        *,
        config: AnalyzerConfig | None = None,
        now_provider: Callable[[], datetime] | None = None,
        local_tz: tzinfo | None = None,
    ) -> None:
        """Initialize with inventory collaborators and tuning."""
        self._item_store = item_store
        self._activity_log = activity_log
        self._config = config or settings.analyzer
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))
        self._local_tz = local_tz or get_local_timezone()

    async def analyze_patterns(self) -> ActivityPattern:
        """Return the user's current activity pattern."""
        try:
            snapshot = await self._snapshot()
        except Exception:
            logger.exception("Activity pattern analysis failed; using defaults.")
            return DEFAULT_ACTIVITY_PATTERN
        return self._pattern_for(snapshot)

    async def identify_stale_content(self) -> list[StaleContentItem]:
        """Return neglected inbox items, most stale first."""
        try:
            snapshot = await self._snapshot()
        except Exception:
            logger.exception("Stale content identification failed.")
            return []
        pairs: list[DuplicateCandidate] = []
        if self._config.duplicate_detection:
            pairs = find_duplicate_pairs(snapshot.items, snapshot.tags_by_item)
        return self._stale_for(snapshot, self._pattern_for(snapshot), pairs, self._now_provider())

    async def detect_clusters(self) -> list[ContentCluster]:
        """Return the strongest groups of related inbox items."""
        try:
            snapshot = await self._snapshot()
        except Exception:
            logger.exception("Content cluster detection failed.")
            return []
        return self._clusters_for(snapshot)

    async def recommend_next(self, limit: int = 5) -> list[Item]:
        """Return the items the user is most likely to want to read next."""
        try:
            snapshot = await self._snapshot()
        except Exception:
            logger.exception("Reading recommendations failed.")
            return []
        pattern = self._pattern_for(snapshot)
        return recommend_items(
            snapshot.items, snapshot.events, pattern, self._now_provider(), limit=limit
        )

    async def find_duplicates(self) -> list[DuplicateCandidate]:
        """Return likely duplicate pairs across the whole inventory."""
        try:
            snapshot = await self._snapshot()
        except Exception:
            logger.exception("Duplicate detection failed.")
            return []
        return find_duplicate_pairs(snapshot.items, snapshot.tags_by_item)

    async def last_activity_at(self) -> datetime | None:
        """Timestamp of the newest logged event, or None when the log is empty."""
        try:
            events = await self._activity_log.query(limit=1)
        except Exception:
            logger.exception("Activity log query failed.")
            return None
        return events[0].timestamp if events else None

    async def collect_insights(self, recommendation_limit: int = 5) -> InventoryInsights:
        """Derive every signal from a single snapshot.

        The duplicate scan runs once and feeds both the duplicate list and
        the staleness boost. Unlike the single-signal methods this raises
        when the snapshot cannot be read, leaving the fallback to the caller.
        """
        snapshot = await self._snapshot()
        pattern = self._pattern_for(snapshot)
        duplicates = find_duplicate_pairs(snapshot.items, snapshot.tags_by_item)
        now = self._now_provider()
        return InventoryInsights(
            items=snapshot.items,
            pattern=pattern,
            stale=self._stale_for(snapshot, pattern, duplicates, now),
            clusters=self._clusters_for(snapshot),
            recommendations=recommend_items(
                snapshot.items, snapshot.events, pattern, now, limit=recommendation_limit
            ),
            duplicates=duplicates,
        )

    def _pattern_for(self, snapshot: InventorySnapshot) -> ActivityPattern:
        if not snapshot.events:
            return DEFAULT_ACTIVITY_PATTERN
        return build_pattern(
            snapshot.events,
            snapshot.items,
            snapshot.collections,
            snapshot.tags_by_item,
            self._local_tz,
            session_gap_minutes=self._config.session_gap_minutes,
        )

    def _stale_for(
        self,
        snapshot: InventorySnapshot,
        pattern: ActivityPattern,
        pairs: Sequence[DuplicateCandidate],
        now: datetime,
    ) -> list[StaleContentItem]:
        duplicate_ids: set[str] = set()
        if self._config.duplicate_detection:
            duplicate_ids = newer_of_auto_pairs(pairs, snapshot.items_by_id)
        return identify_stale_items(
            snapshot.items,
            snapshot.events,
            pattern,
            now,
            duplicate_ids=duplicate_ids,
            report_threshold=self._config.stale_report_threshold,
        )

    def _clusters_for(self, snapshot: InventorySnapshot) -> list[ContentCluster]:
        return detect_clusters(
            snapshot.items,
            snapshot.tags_by_item,
            self._local_tz,
            limit=self._config.max_clusters,
        )

    async def _snapshot(self) -> InventorySnapshot:
        items, collections, events = await asyncio.gather(
            self._item_store.list_items(),
            self._item_store.list_collections(),
            self._activity_log.query(limit=self._config.activity_history_limit),
        )
        tags_by_item = await self._tags_for(items)
        return InventorySnapshot(
            items=list(items),
            collections=list(collections),
            events=list(events),
            tags_by_item=tags_by_item,
        )

    async def _tags_for(self, items: Sequence[Item]) -> dict[str, list[Tag]]:
        results = await asyncio.gather(
            *(self._item_store.get_tags_for_item(item.id) for item in items),
            return_exceptions=True,
        )
        tags_by_item: dict[str, list[Tag]] = {}
        for item, result in zip(items, results):
            if isinstance(result, BaseException):
                logger.warning("Skipping tags for item %s: %s", item.id, result)
                continue
            tags_by_item[item.id] = list(result)
        return tags_by_item
