"""Ranked next-best-action suggestions and inbox clearing."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Protocol, Sequence

from activity.analyzer import ActivityAnalyzer
from config import SuggestionConfig, settings
from inventory.protocols import ActivityLog, ItemStore
from suggestions import generators
from suggestions.batch import BatchExecutor
from suggestions.inbox import estimate_processing_time, plan_batch_actions, summarize_inbox
from suggestions.types import BatchAction, BatchActionResult, InboxClearPlan, Suggestion
from time_utils import ensure_utc, get_local_timezone

logger = logging.getLogger(__name__)


class DeadLinkSource(Protocol):
    """Anything that can report dead links, typically the link monitor."""

    async def get_dead_links(self, unrecovered_only: bool = False) -> list[str]:
        """Return item IDs whose links are dead."""
        ...


class SuggestionEngine:
    """Combines analyzer signals into ranked suggestions and batch plans."""

    def __init__(
        self,
        analyzer: ActivityAnalyzer,
        item_store: ItemStore,
        activity_log: ActivityLog,
        *,
        config: SuggestionConfig | None = None,
        link_monitor: DeadLinkSource | None = None,
        now_provider: Callable[[], datetime] | None = None,
        local_tz: tzinfo | None = None,
    ) -> None:
        """Initialize with the analyzer, stores, and optional link monitor."""
        self._analyzer = analyzer
        self._config = config or settings.suggestions
        self._link_monitor = link_monitor
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))
        self._local_tz = local_tz or get_local_timezone()
        self._executor = BatchExecutor(item_store, activity_log, now_provider=self._now_provider)

    async def generate_suggestions(self) -> list[Suggestion]:
        """Return the top suggestions across every signal source."""
        try:
            insights, last_activity_at = await asyncio.gather(
                self._analyzer.collect_insights(recommendation_limit=3),
                self._analyzer.last_activity_at(),
            )
        except Exception:
            logger.exception("Suggestion generation failed; returning fallback.")
            return generators.fallback_suggestions()

        dead_item_ids = await self._dead_item_ids()
        pattern = insights.pattern
        inbox_count = sum(1 for item in insights.items if item.in_inbox)
        suggestions = [
            *generators.reading_suggestions(pattern, insights.recommendations),
            *generators.organization_suggestions(insights.clusters, inbox_count, self._config),
            *generators.maintenance_suggestions(
                insights.stale, insights.duplicates, dead_item_ids, self._config
            ),
            *generators.productivity_suggestions(pattern, last_activity_at, self._now_provider()),
            *generators.learning_suggestions(insights.items),
        ]
        return generators.rank_suggestions(suggestions, self._config.max_suggestions)

    async def summarize_and_plan_clear(self) -> InboxClearPlan:
        """Summarize the inbox and plan the batch actions that would clear it."""
        now = self._now_provider()
        try:
            insights = await self._analyzer.collect_insights()
        except Exception:
            logger.exception("Inbox clear planning failed; returning an empty plan.")
            return InboxClearPlan(
                summary=summarize_inbox([], now),
                actions=(),
                estimated_time=estimate_processing_time([]),
            )
        inbox = [item for item in insights.items if item.in_inbox]
        actions = plan_batch_actions(insights.stale, insights.clusters, self._config)
        return InboxClearPlan(
            summary=summarize_inbox(inbox, now),
            actions=tuple(actions),
            estimated_time=estimate_processing_time(actions),
        )

    async def execute_batch_actions(self, actions: Sequence[BatchAction]) -> BatchActionResult:
        """Apply batch actions, recording per-item failures."""
        return await self._executor.execute(actions)

    async def time_aware_suggestions(self) -> list[Suggestion]:
        """Reading suggestions during preferred hours, organizing ones otherwise."""
        pattern = await self._analyzer.analyze_patterns()
        hour = ensure_utc(self._now_provider()).astimezone(self._local_tz).hour
        if hour in pattern.preferred_hours:
            recommendations = await self._analyzer.recommend_next(5)
            return generators.reading_focused_suggestions(recommendations)
        clusters = await self._analyzer.detect_clusters()
        return generators.organization_focused_suggestions(clusters)

    async def _dead_item_ids(self) -> list[str]:
        if self._link_monitor is None:
            return []
        try:
            return await self._link_monitor.get_dead_links(unrecovered_only=True)
        except Exception:
            logger.exception("Dead link lookup failed; skipping dead link suggestions.")
            return []
