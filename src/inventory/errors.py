"""Error types raised by inventory store adapters."""

from __future__ import annotations


class ItemNotFound(KeyError):
    """Raised when a saved item cannot be located."""

    def __init__(self, item_id: str) -> None:
        """Initialize the error with the missing item identifier."""
        super().__init__(f"item not found: {item_id}")
        self.item_id = item_id


class StoreError(RuntimeError):
    """Raised when a backing store fails to read or write."""
