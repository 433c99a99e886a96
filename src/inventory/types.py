"""Domain types for saved items, collections, tags, and activity events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from urllib.parse import urlparse

ActivityType = Literal["save", "read", "highlight", "organize", "search"]
ACTIVITY_TYPES: tuple[str, ...] = ("save", "read", "highlight", "organize", "search")

DEFAULT_CATEGORY = "general"


def domain_from_url(url: str) -> str:
    """Return the lowercase host portion of a URL, or an empty string."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


@dataclass(frozen=True)
class Item:
    """A saved link in the user's library."""

    id: str
    url: str
    title: str
    created_at: datetime
    domain: str = ""
    category: str = DEFAULT_CATEGORY
    in_inbox: bool = True
    collection_id: str | None = None
    updated_at: datetime | None = None
    user_note: str = ""
    ai_summary: str | None = None
    highlights: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Derive the domain from the URL when it is not supplied."""
        if not self.domain:
            object.__setattr__(self, "domain", domain_from_url(self.url))
        if not self.category:
            object.__setattr__(self, "category", DEFAULT_CATEGORY)


@dataclass(frozen=True)
class Collection:
    """A named folder items are filed into."""

    id: str
    name: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class Tag:
    """A label attached to one or more items."""

    id: str
    name: str


@dataclass(frozen=True)
class ActivityEvent:
    """One immutable user action recorded in the activity log."""

    type: ActivityType
    timestamp: datetime
    item_id: str | None = None
    collection_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None

    def __post_init__(self) -> None:
        """Reject unknown activity types."""
        if self.type not in ACTIVITY_TYPES:
            raise ValueError(f"Unsupported activity type: {self.type}")
