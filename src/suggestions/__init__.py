"""Suggestion generation and batch inbox actions."""

from suggestions.engine import SuggestionEngine
from suggestions.types import (
    BatchAction,
    BatchActionResult,
    InboxClearPlan,
    InboxSummary,
    Suggestion,
)

__all__ = [
    "BatchAction",
    "BatchActionResult",
    "InboxClearPlan",
    "InboxSummary",
    "Suggestion",
    "SuggestionEngine",
]
