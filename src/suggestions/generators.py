"""Suggestion builders, one per signal source."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Sequence

from activity.types import ActivityPattern, ContentCluster, DuplicateCandidate, StaleContentItem
from config import SuggestionConfig
from inventory.types import Item
from suggestions.types import Suggestion
from time_utils import ensure_utc

FOCUS_SESSION_MIN_MINUTES = 20
FOCUS_SESSION_MIN_VELOCITY = 1
NEVER_ACCESSED_REVIEW_COUNT = 3
HIGHLIGHT_REVIEW_COUNT = 5
DIGEST_CADENCE_FACTOR = 1.5

READING_TIMES = (
    ("youtube.com", "10-20 min"),
    ("twitter.com", "2 min"),
    ("github.com", "5-15 min"),
    ("medium.com", "8-12 min"),
    ("stackoverflow.com", "3-5 min"),
)
DEFAULT_READING_TIME = "5-10 min"


def estimate_reading_time(item: Item) -> str:
    """Rough reading time based on the item's domain."""
    domain = item.domain.lower()
    for marker, estimate in READING_TIMES:
        if marker in domain:
            return estimate
    return DEFAULT_READING_TIME


def _slug(text: str) -> str:
    return re.sub(r"\s+", "_", text.strip())


def _item_ref(item: Item) -> dict[str, str]:
    return {"item_id": item.id, "title": item.title, "url": item.url}


def _cluster_data(cluster: ContentCluster) -> dict:
    return {
        "theme": cluster.theme,
        "suggested_name": cluster.suggested_collection_name,
        "suggested_tags": list(cluster.suggested_tags),
        "item_ids": cluster.item_ids,
    }


def reading_suggestions(
    pattern: ActivityPattern, recommendations: Sequence[Item]
) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    if recommendations:
        top = recommendations[0]
        suggestions.append(
            Suggestion(
                id=f"read_{top.id}",
                type="read_next",
                priority="high",
                confidence=0.8,
                category="learning",
                title="Continue Your Learning Journey",
                description=(
                    f'Based on your reading habits, "{top.title}" looks like a great next read.'
                ),
                reasoning=(
                    f"This matches your preference for {top.domain} content "
                    "and fits your typical reading patterns."
                ),
                action_data=_item_ref(top),
                estimated_time=estimate_reading_time(top),
            )
        )

    if (
        pattern.avg_session_minutes > FOCUS_SESSION_MIN_MINUTES
        and pattern.reading_velocity > FOCUS_SESSION_MIN_VELOCITY
    ):
        minutes = round(pattern.avg_session_minutes)
        suggestions.append(
            Suggestion(
                id="focus_session_suggestion",
                type="focus_session",
                priority="medium",
                confidence=0.7,
                category="productivity",
                title="Start a Focus Session",
                description=(
                    f"You typically read for {minutes} minutes. "
                    "Want to start a focused reading session?"
                ),
                reasoning="Based on your typical reading session length and current focus patterns.",
                action_data={
                    "suggested_duration": minutes,
                    "item_ids": [item.id for item in recommendations[:3]],
                },
                estimated_time=f"{minutes} min",
            )
        )
    return suggestions


def organization_suggestions(
    clusters: Sequence[ContentCluster], inbox_count: int, config: SuggestionConfig
) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    if inbox_count > config.inbox_overwhelm_threshold:
        suggestions.append(
            Suggestion(
                id="inbox_overwhelm",
                type="clear_inbox",
                priority="high",
                confidence=0.9,
                category="organization",
                title="Your Inbox Needs Attention",
                description=(
                    f"You have {inbox_count} items in your inbox. "
                    "Let's organize them efficiently."
                ),
                reasoning="Large inbox can reduce productivity and make finding content harder.",
                action_data={"item_count": inbox_count},
                dismissible=False,
                estimated_time="10-15 min",
            )
        )

    for cluster in clusters[:2]:
        if cluster.confidence <= config.cluster_confidence_threshold:
            continue
        size = len(cluster.items)
        suggestions.append(
            Suggestion(
                id=f"create_collection_{_slug(cluster.theme)}",
                type="create_collection",
                priority="medium",
                confidence=cluster.confidence,
                category="organization",
                title=f"Organize {cluster.theme}",
                description=(
                    f'Create a "{cluster.suggested_collection_name}" collection '
                    f"for your {size} related items."
                ),
                reasoning=(
                    f"These {size} items share a common theme and would benefit from organization."
                ),
                action_data=_cluster_data(cluster),
                estimated_time="2-3 min",
            )
        )
    return suggestions


def maintenance_suggestions(
    stale: Sequence[StaleContentItem],
    duplicates: Sequence[DuplicateCandidate],
    dead_item_ids: Sequence[str],
    config: SuggestionConfig,
) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    very_stale = [entry for entry in stale if entry.staleness_score > config.archive_staleness_threshold]
    if very_stale:
        suggestions.append(
            Suggestion(
                id="archive_stale_content",
                type="archive",
                priority="medium",
                confidence=0.8,
                category="maintenance",
                title="Archive Old Content",
                description=(
                    f"{len(very_stale)} items haven't been accessed in a while "
                    "and could be archived."
                ),
                reasoning="Archiving stale content helps keep your active workspace clean and focused.",
                action_data={"item_ids": [entry.item.id for entry in very_stale]},
                estimated_time="5 min",
            )
        )

    never_accessed = [entry for entry in stale if entry.reason == "never_accessed"]
    if len(never_accessed) >= NEVER_ACCESSED_REVIEW_COUNT:
        suggestions.append(
            Suggestion(
                id="review_never_accessed",
                type="review_highlights",
                priority="low",
                confidence=0.6,
                category="maintenance",
                title="Review Unread Items",
                description=(
                    f"You have {len(never_accessed)} items you've saved but never opened. "
                    "Worth a quick review?"
                ),
                reasoning="These might contain valuable insights or could be safely archived.",
                action_data={"item_ids": [entry.item.id for entry in never_accessed[:5]]},
                estimated_time="10 min",
            )
        )

    mergeable = [pair for pair in duplicates if pair.merge_recommendation == "auto"]
    if mergeable:
        suggestions.append(
            Suggestion(
                id="merge_duplicates",
                type="merge_duplicates",
                priority="medium",
                confidence=0.75,
                category="maintenance",
                title="Merge Duplicate Items",
                description=f"{len(mergeable)} saved items look like copies of each other.",
                reasoning="Duplicates split your notes and highlights across copies of the same page.",
                action_data={
                    "pairs": [
                        {"original_id": pair.original_id, "duplicate_id": pair.duplicate_id}
                        for pair in mergeable
                    ]
                },
                estimated_time="3-5 min",
            )
        )

    if dead_item_ids:
        suggestions.append(
            Suggestion(
                id="archive_dead_links",
                type="archive",
                priority="low",
                confidence=0.7,
                category="maintenance",
                title="Archive Dead Links",
                description=f"{len(dead_item_ids)} saved links no longer resolve.",
                reasoning="The original pages return errors, so these items are unlikely to be read again.",
                action_data={"item_ids": list(dead_item_ids)},
                estimated_time="2 min",
            )
        )
    return suggestions


def productivity_suggestions(
    pattern: ActivityPattern, last_activity_at: datetime | None, now: datetime
) -> list[Suggestion]:
    if last_activity_at is None:
        return []
    days_since = int((ensure_utc(now) - ensure_utc(last_activity_at)).total_seconds() // 86400)
    if days_since < pattern.organization_cadence_days * DIGEST_CADENCE_FACTOR:
        return []
    return [
        Suggestion(
            id="digest_old_content",
            type="digest_old",
            priority="low",
            confidence=0.7,
            category="productivity",
            title="Catch Up on Your Content",
            description=(
                f"It's been {days_since} days since your last organization session. "
                "Want a digest of what you've saved?"
            ),
            reasoning="Regular content review helps maintain knowledge retention and organization.",
            action_data={"days_since": days_since},
            estimated_time="5-10 min",
        )
    ]


def learning_suggestions(items: Sequence[Item]) -> list[Suggestion]:
    total = sum(len(item.highlights) for item in items)
    if total <= HIGHLIGHT_REVIEW_COUNT:
        return []
    return [
        Suggestion(
            id="review_highlights_learning",
            type="review_highlights",
            priority="medium",
            confidence=0.8,
            category="learning",
            title="Review Your Highlights",
            description=(
                f"You have {total} highlights across your saved content. "
                "Perfect for a quick review session!"
            ),
            reasoning=(
                "Regular highlight review reinforces learning and helps identify knowledge patterns."
            ),
            action_data={"highlight_count": total},
            estimated_time="8-12 min",
        )
    ]


def reading_focused_suggestions(recommendations: Sequence[Item]) -> list[Suggestion]:
    return [
        Suggestion(
            id=f"focused_read_{item.id}",
            type="read_next",
            priority="high" if index == 0 else "medium",
            confidence=0.8,
            category="learning",
            title="Perfect Time to Read",
            description=f'"{item.title}" - matches your current reading preferences.',
            reasoning="This is one of your preferred reading times.",
            action_data=_item_ref(item),
            estimated_time=estimate_reading_time(item),
        )
        for index, item in enumerate(recommendations[:3])
    ]


def organization_focused_suggestions(clusters: Sequence[ContentCluster]) -> list[Suggestion]:
    return [
        Suggestion(
            id=f"organize_{_slug(cluster.theme)}",
            type="organize",
            priority="medium",
            confidence=cluster.confidence,
            category="organization",
            title="Quick Organization",
            description=f"Organize your {len(cluster.items)} {cluster.theme} items.",
            reasoning="Good time for organization tasks during non-reading hours.",
            action_data=_cluster_data(cluster),
            estimated_time="3-5 min",
        )
        for cluster in clusters[:2]
    ]


def fallback_suggestions() -> list[Suggestion]:
    return [
        Suggestion(
            id="fallback_organize",
            type="organize",
            priority="medium",
            confidence=0.5,
            category="organization",
            title="Organize Your Content",
            description="Take a few minutes to organize your saved items.",
            reasoning="Regular organization improves content discoverability.",
            estimated_time="5 min",
        )
    ]


def rank_suggestions(suggestions: Sequence[Suggestion], limit: int) -> list[Suggestion]:
    """Order by priority weight times confidence and keep the top entries."""
    return sorted(suggestions, key=lambda suggestion: suggestion.rank, reverse=True)[:limit]
