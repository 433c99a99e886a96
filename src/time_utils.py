"""Time zone helpers for UTC storage and local presentation."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings


def get_local_timezone() -> ZoneInfo:
    """Return the configured local timezone."""
    timezone_name = settings.user.timezone
    try:
        return ZoneInfo(timezone_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Invalid timezone: {timezone_name}") from exc


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(start: datetime, end: datetime) -> int:
    """Return the whole days between two instants, rounded up."""
    seconds = abs((ensure_utc(end) - ensure_utc(start)).total_seconds())
    return math.ceil(seconds / 86400)
