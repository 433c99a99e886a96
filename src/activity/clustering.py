"""Grouping of inbox items into organization candidates."""

from __future__ import annotations

from collections import defaultdict
from datetime import tzinfo
from typing import Mapping, Sequence

from activity.types import ContentCluster
from inventory.types import Item, Tag
from time_utils import days_between, ensure_utc

MIN_CLUSTER_SIZE = 2
TEMPORAL_WINDOW_DAYS = 3
TEMPORAL_LOOKAHEAD = 10
TEMPORAL_CONFIDENCE = 0.6

KNOWN_DOMAIN_NAMES = {
    "github.com": "GitHub Projects",
    "stackoverflow.com": "Stack Overflow Q&A",
    "medium.com": "Medium Articles",
    "youtube.com": "YouTube Videos",
    "twitter.com": "Twitter Posts",
    "linkedin.com": "LinkedIn Content",
    "reddit.com": "Reddit Discussions",
    "dev.to": "Dev Community",
    "hashnode.com": "Hashnode Posts",
}


def _strip_www(domain: str) -> str:
    return domain[4:] if domain.startswith("www.") else domain


def domain_collection_name(domain: str) -> str:
    """Human-friendly collection name for a domain."""
    bare = _strip_www(domain)
    if bare in KNOWN_DOMAIN_NAMES:
        return KNOWN_DOMAIN_NAMES[bare]
    return f"{bare.split('.')[0].capitalize()} Collection"


def topic_collection_name(topic: str) -> str:
    return f"{topic[:1].upper()}{topic[1:]} Resources"


def cluster_by_domain(items: Sequence[Item]) -> list[ContentCluster]:
    groups: dict[str, list[Item]] = defaultdict(list)
    for item in items:
        if item.domain:
            groups[item.domain].append(item)
    return [
        ContentCluster(
            theme=f"{domain} content",
            items=tuple(members),
            confidence=min(0.8, len(members) / 5),
            suggested_collection_name=domain_collection_name(domain),
            suggested_tags=(_strip_www(domain).split(".")[0],),
        )
        for domain, members in groups.items()
        if len(members) >= MIN_CLUSTER_SIZE
    ]


def cluster_by_tag(
    items: Sequence[Item], tags_by_item: Mapping[str, Sequence[Tag]]
) -> list[ContentCluster]:
    groups: dict[str, list[Item]] = defaultdict(list)
    for item in items:
        for tag in tags_by_item.get(item.id, ()):
            if item not in groups[tag.name]:
                groups[tag.name].append(item)
    return [
        ContentCluster(
            theme=f"{topic} resources",
            items=tuple(members),
            confidence=min(0.9, len(members) / 4),
            suggested_collection_name=topic_collection_name(topic),
            suggested_tags=(topic,),
        )
        for topic, members in groups.items()
        if len(members) >= MIN_CLUSTER_SIZE
    ]


def cluster_by_time(items: Sequence[Item], tz: tzinfo) -> list[ContentCluster]:
    """Group items saved within a few days of a newer anchor item."""
    ordered = sorted(items, key=lambda item: ensure_utc(item.created_at), reverse=True)
    used: set[str] = set()
    clusters: list[ContentCluster] = []
    for index, anchor in enumerate(ordered):
        if anchor.id in used:
            continue
        used.add(anchor.id)
        members = [anchor]
        for candidate in ordered[index + 1 : index + TEMPORAL_LOOKAHEAD]:
            if candidate.id in used:
                continue
            if days_between(anchor.created_at, candidate.created_at) <= TEMPORAL_WINDOW_DAYS:
                members.append(candidate)
                used.add(candidate.id)
        if len(members) >= MIN_CLUSTER_SIZE:
            saved_on = ensure_utc(anchor.created_at).astimezone(tz).date().isoformat()
            clusters.append(
                ContentCluster(
                    theme="Recent research session",
                    items=tuple(members),
                    confidence=TEMPORAL_CONFIDENCE,
                    suggested_collection_name=f"Research {saved_on}",
                    suggested_tags=("research", "recent"),
                )
            )
    return clusters


def deduplicate_clusters(clusters: Sequence[ContentCluster]) -> list[ContentCluster]:
    """Drop clusters that mostly repeat items of stronger clusters.

    Candidates are visited by descending confidence times size. A candidate
    is dropped when more than half of its items are already claimed, or when
    it would take more than half of an accepted cluster's items.
    """
    ranked = sorted(clusters, key=lambda c: c.confidence * len(c.items), reverse=True)
    accepted: list[ContentCluster] = []
    claimed: set[str] = set()
    for cluster in ranked:
        ids = set(cluster.item_ids)
        if len(ids & claimed) * 2 > len(ids):
            continue
        if any(len(ids & set(kept.item_ids)) * 2 > len(kept.items) for kept in accepted):
            continue
        accepted.append(cluster)
        claimed |= ids
    return accepted


def detect_clusters(
    items: Sequence[Item],
    tags_by_item: Mapping[str, Sequence[Tag]],
    tz: tzinfo,
    limit: int = 5,
) -> list[ContentCluster]:
    """Run every clustering pass over inbox items and keep the strongest."""
    inbox = [item for item in items if item.in_inbox]
    candidates = [
        *cluster_by_domain(inbox),
        *cluster_by_tag(inbox, tags_by_item),
        *cluster_by_time(inbox, tz),
    ]
    unique = [c for c in deduplicate_clusters(candidates) if len(c.items) >= MIN_CLUSTER_SIZE]
    unique.sort(key=lambda cluster: cluster.confidence, reverse=True)
    return unique[:limit]
