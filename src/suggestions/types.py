"""Suggestion, inbox summary, and batch action types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from inventory.types import Item

SuggestionType = Literal[
    "read_next",
    "archive",
    "organize",
    "review_highlights",
    "create_collection",
    "clear_inbox",
    "focus_session",
    "digest_old",
    "merge_duplicates",
]
Priority = Literal["low", "medium", "high", "urgent"]
SuggestionCategory = Literal["productivity", "organization", "learning", "maintenance"]
BatchActionKind = Literal["archive", "organize", "delete"]

PRIORITY_WEIGHTS: dict[str, int] = {"urgent": 4, "high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class Suggestion:
    """One actionable recommendation."""

    id: str
    type: SuggestionType
    priority: Priority
    confidence: float
    category: SuggestionCategory
    title: str
    description: str
    reasoning: str
    action_data: dict[str, Any] = field(default_factory=dict)
    dismissible: bool = True
    estimated_time: str | None = None

    @property
    def rank(self) -> float:
        """Priority weight multiplied by confidence."""
        return PRIORITY_WEIGHTS[self.priority] * self.confidence


@dataclass(frozen=True)
class InboxSummary:
    """Snapshot of the inbox."""

    total_items: int
    items_by_category: dict[str, int]
    stalest_item: Item | None
    newest_item: Item | None
    avg_days_in_inbox: int
    recommended_actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class BatchAction:
    """A planned bulk operation over inbox items."""

    action: BatchActionKind
    items: tuple[Item, ...]
    reason: str
    collection_id: str | None = None
    collection_name: str | None = None


@dataclass
class BatchActionResult:
    """Outcome of executing a list of batch actions."""

    success: bool = True
    items_processed: int = 0
    items_archived: int = 0
    collections_created: int = 0
    errors: list[str] = field(default_factory=list)
    summary: str = ""


@dataclass(frozen=True)
class InboxClearPlan:
    """Inbox summary plus the batch actions that would clear it."""

    summary: InboxSummary
    actions: tuple[BatchAction, ...]
    estimated_time: str
