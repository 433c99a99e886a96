"""Notification sinks for background monitoring results."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier that writes notifications to the application log."""

    def __init__(self, level: int = logging.INFO) -> None:
        """Initialize with the log level used for notifications."""
        self.level = level
        self.sent: list[tuple[str, str]] = []

    async def notify(self, title: str, message: str) -> None:
        """Log the notification and remember it for inspection."""
        self.sent.append((title, message))
        logger.log(self.level, "Notification: %s - %s", title, message)
