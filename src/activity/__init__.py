"""Activity pattern analysis for saved items."""

from activity.analyzer import ActivityAnalyzer
from activity.types import (
    DEFAULT_ACTIVITY_PATTERN,
    ActivityPattern,
    ContentCluster,
    DuplicateCandidate,
    StaleContentItem,
)

__all__ = [
    "ActivityAnalyzer",
    "ActivityPattern",
    "ContentCluster",
    "DEFAULT_ACTIVITY_PATTERN",
    "DuplicateCandidate",
    "StaleContentItem",
]
