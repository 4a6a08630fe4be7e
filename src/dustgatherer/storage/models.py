"""
Data models for inventory storage.

This module defines the dataclass used to represent a tracked inventory item
as it lives in the record store, along with its derived lifecycle status.

Schema Design Decisions:
    - IDs are SQLite integer row ids; 0 means "not yet persisted"
    - Money is stored as TEXT holding a Decimal to avoid float drift
    - Calendar dates are stored as ISO format strings (YYYY-MM-DD)
    - Timestamps are epoch milliseconds
    - Image paths point into the image store directory
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class ItemStatus(Enum):
    """Where an item is in the purchase -> schedule -> list -> sell flow."""

    INVENTORY = "inventory"
    SCHEDULED = "scheduled"
    POSTED = "posted"
    SOLD = "sold"


@dataclass
class InventoryItem:
    """
    A single tracked inventory item.

    Attributes:
        id: Store-assigned identifier (0 until persisted).
        title: Short display name.
        description: Free-form description.
        purchase_price: What was paid for the item.
        selling_price: Listing or final sale price, if known.
        purchase_date: When the item was bought.
        scheduled_post_date: When the item is planned to be listed.
        posted_date: When the item was listed.
        sold_date: When the item sold.
        image_path: Absolute path of the item's photo in the image store.
        purchase_location: Where the item was bought.
        category: User-defined category.
        notes: Free-form notes.
        created_at: Creation time (epoch milliseconds).
        updated_at: Last modification time (epoch milliseconds).

    Database Table: inventory_items
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - title TEXT NOT NULL
        - purchase_price TEXT NOT NULL
        - purchase_date TEXT NOT NULL
        - ... remaining columns nullable or defaulted
    """

    title: str
    purchase_price: Decimal
    purchase_date: date
    id: int = 0
    description: str = ""
    selling_price: Decimal | None = None
    scheduled_post_date: date | None = None
    posted_date: date | None = None
    sold_date: date | None = None
    image_path: str | None = None
    purchase_location: str = ""
    category: str = ""
    notes: str = ""
    created_at: int = 0
    updated_at: int = 0

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = now_millis()
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def status(self) -> ItemStatus:
        """Lifecycle status derived from which dates are set."""
        if self.sold_date is not None:
            return ItemStatus.SOLD
        if self.posted_date is not None:
            return ItemStatus.POSTED
        if self.scheduled_post_date is not None:
            return ItemStatus.SCHEDULED
        return ItemStatus.INVENTORY

    @property
    def profit(self) -> Decimal | None:
        """Profit on a sold item, or None if it has not sold at a known price."""
        if self.selling_price is not None and self.sold_date is not None:
            return self.selling_price - self.purchase_price
        return None

    def copy(self, **changes: Any) -> InventoryItem:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_row(self) -> dict[str, Any]:
        """Convert to a column mapping for storage."""
        return {
            "id": self.id or None,
            "title": self.title,
            "description": self.description,
            "purchase_price": str(self.purchase_price),
            "selling_price": None if self.selling_price is None else str(self.selling_price),
            "purchase_date": self.purchase_date.isoformat(),
            "scheduled_post_date": _iso_or_none(self.scheduled_post_date),
            "posted_date": _iso_or_none(self.posted_date),
            "sold_date": _iso_or_none(self.sold_date),
            "image_path": self.image_path,
            "purchase_location": self.purchase_location,
            "category": self.category,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: Any) -> InventoryItem:
        """Create from a database row (sqlite3.Row or mapping)."""
        selling_price = row["selling_price"]
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            purchase_price=Decimal(row["purchase_price"]),
            selling_price=None if selling_price is None else Decimal(selling_price),
            purchase_date=date.fromisoformat(row["purchase_date"]),
            scheduled_post_date=_date_or_none(row["scheduled_post_date"]),
            posted_date=_date_or_none(row["posted_date"]),
            sold_date=_date_or_none(row["sold_date"]),
            image_path=row["image_path"],
            purchase_location=row["purchase_location"] or "",
            category=row["category"] or "",
            notes=row["notes"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


def _iso_or_none(value: date | None) -> str | None:
    return None if value is None else value.isoformat()


def _date_or_none(value: str | None) -> date | None:
    return None if value is None else date.fromisoformat(value)
