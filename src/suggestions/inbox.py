"""Inbox summaries and clear-inbox planning."""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime
from typing import Sequence

from activity.types import ContentCluster, StaleContentItem
from config import SuggestionConfig
from inventory.types import Item
from suggestions.types import BatchAction, InboxSummary
from time_utils import ensure_utc

ITEMS_PER_MINUTE = 5


def recommended_actions(inbox_count: int) -> tuple[str, ...]:
    actions: list[str] = []
    if inbox_count > 15:
        actions.append("Use batch actions to quickly organize multiple items")
    if inbox_count > 5:
        actions.append("Create collections for related content")
        actions.append("Archive items you're no longer interested in")
    actions.append("Review and tag important items")
    actions.append("Add notes to items you want to remember")
    return tuple(actions)


def summarize_inbox(inbox: Sequence[Item], now: datetime) -> InboxSummary:
    """Describe the inbox by category, age, and next steps."""
    by_age = sorted(inbox, key=lambda item: ensure_utc(item.created_at))
    total_days = sum(
        int((ensure_utc(now) - ensure_utc(item.created_at)).total_seconds() // 86400)
        for item in inbox
    )
    return InboxSummary(
        total_items=len(inbox),
        items_by_category=dict(Counter(item.category or "general" for item in inbox)),
        stalest_item=by_age[0] if by_age else None,
        newest_item=by_age[-1] if by_age else None,
        avg_days_in_inbox=round(total_days / len(inbox)) if inbox else 0,
        recommended_actions=recommended_actions(len(inbox)),
    )


def plan_batch_actions(
    stale: Sequence[StaleContentItem],
    clusters: Sequence[ContentCluster],
    config: SuggestionConfig,
) -> list[BatchAction]:
    """Turn very stale items and strong clusters into batch actions."""
    actions: list[BatchAction] = []
    very_stale = [
        entry.item for entry in stale if entry.staleness_score > config.archive_staleness_threshold
    ]
    if very_stale:
        actions.append(
            BatchAction(
                action="archive",
                items=tuple(very_stale),
                reason="Content is stale and hasn't been accessed recently",
            )
        )
    for cluster in clusters:
        if (
            cluster.confidence > config.cluster_confidence_threshold
            and len(cluster.items) >= config.min_cluster_size_for_batch
        ):
            actions.append(
                BatchAction(
                    action="organize",
                    items=cluster.items,
                    reason=f"Group related {cluster.theme} content into a collection",
                    collection_name=cluster.suggested_collection_name,
                )
            )
    return actions


def estimate_processing_time(actions: Sequence[BatchAction]) -> str:
    """Human-readable time needed to review the planned actions."""
    total = sum(len(action.items) for action in actions)
    minutes = max(2, math.ceil(total / ITEMS_PER_MINUTE))
    if minutes < 5:
        return f"{minutes} min"
    if minutes < 15:
        return f"{minutes}-{minutes + 3} min"
    return "15+ min"
