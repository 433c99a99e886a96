"""Link health records, probe results, and recovery outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from time_utils import ensure_utc

LinkStatus = Literal["healthy", "redirected", "dead", "unreachable", "checking"]
RecoveryMethod = Literal["wayback", "google_cache", "archive_today"]
LINK_STATUSES: tuple[str, ...] = ("healthy", "redirected", "dead", "unreachable", "checking")


@dataclass(frozen=True)
class LinkCheckResult:
    """Outcome of one probe."""

    success: bool
    status: LinkStatus
    response_time_ms: float
    status_code: int | None = None
    redirect_url: str | None = None
    error: str | None = None
    item_id: str | None = None


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of one archive provider attempt."""

    success: bool
    method: RecoveryMethod | None = None
    recovered_url: str | None = None
    timestamp: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class LinkHealthRecord:
    """Persisted health state for one saved item."""

    item_id: str
    url: str
    status: LinkStatus
    last_checked: datetime
    status_code: int | None = None
    redirect_url: str | None = None
    error: str | None = None
    recovery_attempted: bool = False
    recovery_success: bool = False
    alternative_urls: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize into a JSON-compatible mapping."""
        return {
            "item_id": self.item_id,
            "url": self.url,
            "status": self.status,
            "last_checked": ensure_utc(self.last_checked).isoformat(),
            "status_code": self.status_code,
            "redirect_url": self.redirect_url,
            "error": self.error,
            "recovery_attempted": self.recovery_attempted,
            "recovery_success": self.recovery_success,
            "alternative_urls": list(self.alternative_urls),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LinkHealthRecord":
        """Rebuild a record from its serialized mapping."""
        status = data.get("status", "unreachable")
        if status not in LINK_STATUSES:
            raise ValueError(f"Unknown link status: {status}")
        return cls(
            item_id=str(data["item_id"]),
            url=str(data.get("url", "")),
            status=status,
            last_checked=ensure_utc(datetime.fromisoformat(data["last_checked"])),
            status_code=data.get("status_code"),
            redirect_url=data.get("redirect_url"),
            error=data.get("error"),
            recovery_attempted=bool(data.get("recovery_attempted", False)),
            recovery_success=bool(data.get("recovery_success", False)),
            alternative_urls=tuple(data.get("alternative_urls") or ()),
        )


@dataclass(frozen=True)
class LinkHealthReport:
    """Aggregate view over every persisted health record."""

    total_items: int
    counts_by_status: dict[str, int]
    dead_item_ids: tuple[str, ...]
    unchecked: int
    recently_recovered: int
    last_checked: datetime | None = None
    records: tuple[LinkHealthRecord, ...] = field(default=(), repr=False)
