"""
Inventory storage.

This module provides the two stores the rest of DustGatherer builds on:
a SQLite record store for inventory items and a directory-backed image
store for item photos.

Storage Structure:
    data/
        dustgatherer.db                     # SQLite database
        images/
            item_{uuid}.{ext}               # Item photos

Usage:
    from dustgatherer.storage import ImageStore, InventoryStore

    store = InventoryStore(data_dir)
    images = ImageStore(data_dir / "images")
    item_id = store.insert(item)
"""

from dustgatherer.storage.image_store import ImageStore
from dustgatherer.storage.inventory_store import (
    InventoryStore,
    ItemNotFoundError,
    StorageError,
)
from dustgatherer.storage.models import InventoryItem, ItemStatus

__all__ = [
    # Stores
    "InventoryStore",
    "ImageStore",
    # Data models
    "InventoryItem",
    "ItemStatus",
    # Exceptions
    "StorageError",
    "ItemNotFoundError",
]
