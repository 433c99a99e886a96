"""Pairwise duplicate detection across saved items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence
from urllib.parse import urlparse

from activity.types import DuplicateCandidate, MergeRecommendation
from inventory.types import Item, Tag
from time_utils import ensure_utc

URL_WEIGHT = 0.4
TITLE_WEIGHT = 0.3
DOMAIN_WEIGHT = 0.15
SUMMARY_WEIGHT = 0.1
TAG_WEIGHT = 0.05
REPORT_THRESHOLD = 0.3

URL_SHORTENERS = frozenset({"bit.ly", "tinyurl.com", "t.co", "goo.gl", "ow.ly", "short.link"})


@dataclass(frozen=True)
class Similarity:
    score: float
    url_similarity: float
    reasons: tuple[str, ...]
    confidence: float


def levenshtein_distance(left: str, right: str) -> int:
    """Edit distance using a rolling row."""
    if len(left) < len(right):
        left, right = right, left
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def text_similarity(left: str | None, right: str | None) -> float:
    """Normalized Levenshtein similarity of two case-folded strings."""
    if not left or not right:
        return 0.0
    a = left.strip().lower()
    b = right.strip().lower()
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    return max(0.0, 1 - levenshtein_distance(a, b) / longest)


def url_similarity(left: str, right: str) -> float:
    if left == right:
        return 1.0
    first = urlparse(left)
    second = urlparse(right)
    if not first.netloc or not second.netloc:
        return text_similarity(left, right)
    first_host = (first.hostname or "").lower()
    second_host = (second.hostname or "").lower()
    first_path = first.path or "/"
    second_path = second.path or "/"
    if first_host == second_host and first_path == second_path:
        return 0.9
    if first_host == second_host:
        return 0.3 + text_similarity(first_path, second_path) * 0.4
    if first_host in URL_SHORTENERS or second_host in URL_SHORTENERS:
        return 0.8
    return 0.0


def tag_similarity(left: Sequence[Tag], right: Sequence[Tag]) -> float:
    """Jaccard similarity of tag names."""
    first = {tag.name.lower() for tag in left}
    second = {tag.name.lower() for tag in right}
    if not first or not second:
        return 0.0
    return len(first & second) / len(first | second)


def compare_items(
    first: Item,
    second: Item,
    first_tags: Sequence[Tag] = (),
    second_tags: Sequence[Tag] = (),
) -> Similarity:
    reasons: list[str] = []

    urls = url_similarity(first.url, second.url)
    if urls > 0.1:
        reasons.append(f"URLs are {round(urls * 100)}% similar")

    titles = text_similarity(first.title, second.title)
    if titles > 0.3:
        reasons.append(f"Titles are {round(titles * 100)}% similar")

    same_domain = 1.0 if first.domain and first.domain == second.domain else 0.0
    if same_domain:
        reasons.append("Same domain")

    summaries = text_similarity(first.ai_summary, second.ai_summary)
    if summaries > 0.5:
        reasons.append(f"Content summaries are {round(summaries * 100)}% similar")

    tags = tag_similarity(first_tags, second_tags)
    if tags > 0.3:
        reasons.append(f"Share {round(tags * 100)}% of tags")

    score = (
        urls * URL_WEIGHT
        + titles * TITLE_WEIGHT
        + same_domain * DOMAIN_WEIGHT
        + summaries * SUMMARY_WEIGHT
        + tags * TAG_WEIGHT
    )

    confidence = 0.5
    if first.ai_summary and second.ai_summary:
        confidence += 0.2
    if len(reasons) > 2:
        confidence += 0.2
    if urls > 0.8:
        confidence += 0.1

    return Similarity(
        score=min(score, 1.0),
        url_similarity=urls,
        reasons=tuple(reasons),
        confidence=min(confidence, 1.0),
    )


def merge_recommendation(similarity: Similarity) -> MergeRecommendation:
    if similarity.score > 0.8 and similarity.url_similarity >= 0.9:
        return "auto"
    if similarity.score > 0.5:
        return "manual"
    return "skip"


def find_duplicate_pairs(
    items: Sequence[Item], tags_by_item: Mapping[str, Sequence[Tag]]
) -> list[DuplicateCandidate]:
    """Compare every pair of items and return likely duplicates, most similar first."""
    candidates: list[DuplicateCandidate] = []
    for index, first in enumerate(items):
        for second in items[index + 1 :]:
            similarity = compare_items(
                first,
                second,
                tags_by_item.get(first.id, ()),
                tags_by_item.get(second.id, ()),
            )
            if similarity.score <= REPORT_THRESHOLD:
                continue
            candidates.append(
                DuplicateCandidate(
                    original_id=first.id,
                    duplicate_id=second.id,
                    similarity=similarity.score,
                    reasons=similarity.reasons,
                    merge_recommendation=merge_recommendation(similarity),
                    confidence=similarity.confidence,
                )
            )
    candidates.sort(key=lambda candidate: candidate.similarity, reverse=True)
    return candidates


def newer_of_auto_pairs(
    candidates: Sequence[DuplicateCandidate], items_by_id: Mapping[str, Item]
) -> set[str]:
    """IDs of the more recently saved item in each auto-mergeable pair."""
    flagged: set[str] = set()
    for candidate in candidates:
        if candidate.merge_recommendation != "auto":
            continue
        original = items_by_id.get(candidate.original_id)
        duplicate = items_by_id.get(candidate.duplicate_id)
        if original is None or duplicate is None:
            continue
        newer = (
            duplicate
            if ensure_utc(duplicate.created_at) >= ensure_utc(original.created_at)
            else original
        )
        flagged.add(newer.id)
    return flagged
