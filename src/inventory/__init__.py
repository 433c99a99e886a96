"""Saved-item inventory types, collaborator protocols, and store adapters."""

from inventory.errors import ItemNotFound, StoreError
from inventory.types import ActivityEvent, Collection, Item, Tag

__all__ = [
    "ActivityEvent",
    "Collection",
    "Item",
    "ItemNotFound",
    "StoreError",
    "Tag",
]
