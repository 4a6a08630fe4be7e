"""
Data models for DustGatherer backup archives.

An archive is a ZIP file holding one ``inventory.json`` entry (manifest plus
item list) and zero or more ``images/<filename>`` entries. The dataclasses in
this module are the in-memory form of that wire format, plus the result types
returned by the backup operations.

Wire Format Decisions:
    - JSON keys are camelCase to stay readable by other producers
    - Calendar dates are ISO strings (YYYY-MM-DD), parsed only on conversion
    - Money is a decimal string; JSON numbers are accepted on read
    - Unknown keys are ignored for forward compatibility
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any

from dustgatherer.storage.models import InventoryItem

# Highest archive format version this build can read and the version it writes
SUPPORTED_FORMAT_VERSION = 1

MANIFEST_ENTRY = "inventory.json"
IMAGES_PREFIX = "images/"


class ArchiveError(Exception):
    """Base exception for archive errors."""

    pass


class ArchiveFormatError(ArchiveError):
    """Raised when an archive is missing its manifest or it cannot be decoded."""

    pass


class UnsupportedVersionError(ArchiveError):
    """Raised when an archive was written by a newer format version."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(
            f"Backup format version {version} is newer than the supported "
            f"version {SUPPORTED_FORMAT_VERSION}. Please update DustGatherer."
        )


class ImportCancelledError(ArchiveError):
    """Raised when an import is cancelled between entries or items."""

    pass


class ConflictStrategy(Enum):
    """How to treat an archive item whose id already exists locally."""

    SKIP_EXISTING = "skip_existing"
    REPLACE_EXISTING = "replace_existing"
    IMPORT_AS_NEW = "import_as_new"


class ConflictAction(Enum):
    """Decision taken for a single archive item during reconciliation."""

    SKIP = "skip"
    REPLACE_EXISTING = "replace_existing"
    INSERT_AS_NEW = "insert_as_new"


@dataclass(frozen=True)
class Manifest:
    """Versioned metadata header of an archive."""

    format_version: int
    producer_version: str
    created_at: str
    item_count: int

    def to_dict(self) -> dict[str, Any]:
        """Convert manifest to its JSON form."""
        return {
            "formatVersion": self.format_version,
            "producerVersion": self.producer_version,
            "createdAt": self.created_at,
            "itemCount": self.item_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        """Create manifest from its JSON form."""
        return cls(
            format_version=int(data.get("formatVersion", data.get("version", 1))),
            producer_version=str(data.get("producerVersion", data.get("appVersion", "unknown"))),
            created_at=str(data.get("createdAt", data.get("exportDate", ""))),
            item_count=int(data.get("itemCount", 0)),
        )


@dataclass(frozen=True)
class ArchiveItem:
    """
    Serializable projection of an InventoryItem.

    ``image_file_name`` is the bare file name of the item's image inside the
    archive, not the path it had in the image store.
    """

    id: int | None
    title: str
    purchase_price: Any
    purchase_date: str | None
    description: str = ""
    selling_price: Any = None
    scheduled_post_date: str | None = None
    posted_date: str | None = None
    sold_date: str | None = None
    image_file_name: str | None = None
    purchase_location: str = ""
    category: str = ""
    notes: str = ""
    created_at: int = 0
    updated_at: int = 0

    @classmethod
    def from_inventory_item(cls, item: InventoryItem) -> ArchiveItem:
        """Project a stored item into its archive form."""
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            purchase_price=str(item.purchase_price),
            selling_price=None if item.selling_price is None else str(item.selling_price),
            purchase_date=item.purchase_date.isoformat(),
            scheduled_post_date=_iso_or_none(item.scheduled_post_date),
            posted_date=_iso_or_none(item.posted_date),
            sold_date=_iso_or_none(item.sold_date),
            image_file_name=Path(item.image_path).name if item.image_path else None,
            purchase_location=item.purchase_location,
            category=item.category,
            notes=item.notes,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

    def to_inventory_item(self, image_path: str | None) -> InventoryItem:
        """
        Convert back into a new, unsaved InventoryItem.

        The returned item has id 0; callers that replace an existing record
        set the id themselves.

        Raises:
            ValueError: If a required field is missing or a date or price
                cannot be parsed.
        """
        if not self.title:
            raise ValueError("missing title")
        if self.purchase_date is None:
            raise ValueError("missing purchaseDate")

        return InventoryItem(
            id=0,
            title=self.title,
            description=self.description,
            purchase_price=_parse_money(self.purchase_price, "purchasePrice"),
            selling_price=(
                None
                if self.selling_price is None
                else _parse_money(self.selling_price, "sellingPrice")
            ),
            purchase_date=date.fromisoformat(self.purchase_date),
            scheduled_post_date=_parse_date(self.scheduled_post_date),
            posted_date=_parse_date(self.posted_date),
            sold_date=_parse_date(self.sold_date),
            image_path=image_path,
            purchase_location=self.purchase_location,
            category=self.category,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON form."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "purchasePrice": self.purchase_price,
            "sellingPrice": self.selling_price,
            "purchaseDate": self.purchase_date,
            "scheduledPostDate": self.scheduled_post_date,
            "postedDate": self.posted_date,
            "soldDate": self.sold_date,
            "imageFileName": self.image_file_name,
            "purchaseLocation": self.purchase_location,
            "category": self.category,
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArchiveItem:
        """
        Create from the JSON form.

        Missing fields fall back to defaults instead of failing, so one
        malformed item is reported when it is reconciled rather than
        rejecting the whole archive.
        """
        return cls(
            id=_parse_id(data.get("id")),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            purchase_price=data.get("purchasePrice"),
            selling_price=data.get("sellingPrice"),
            purchase_date=data.get("purchaseDate"),
            scheduled_post_date=data.get("scheduledPostDate"),
            posted_date=data.get("postedDate"),
            sold_date=data.get("soldDate"),
            image_file_name=data.get("imageFileName") or None,
            purchase_location=str(data.get("purchaseLocation") or ""),
            category=str(data.get("category") or ""),
            notes=str(data.get("notes") or ""),
            created_at=_int_or_zero(data.get("createdAt")),
            updated_at=_int_or_zero(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class ArchivePayload:
    """Decoded contents of the manifest entry."""

    manifest: Manifest
    items: list[ArchiveItem] = field(default_factory=list)


@dataclass(frozen=True)
class ImportOutcome:
    """Counts and per-item errors from one import."""

    total_items: int
    imported_count: int
    skipped_count: int
    errors: tuple[str, ...] = ()


@dataclass
class ExportResult:
    """Result of an export operation."""

    success: bool
    path: Path | None = None
    item_count: int = 0
    image_count: int = 0
    size_bytes: int = 0
    error: str | None = None


@dataclass
class PreviewResult:
    """Result of previewing an archive."""

    success: bool
    item_count: int = 0
    manifest: Manifest | None = None
    error: str | None = None


@dataclass
class ImportResult:
    """Result of an import operation."""

    success: bool
    outcome: ImportOutcome | None = None
    error: str | None = None


def _iso_or_none(value: date | None) -> str | None:
    return None if value is None else value.isoformat()


def _parse_date(value: str | None) -> date | None:
    return None if value is None else date.fromisoformat(value)


def _parse_money(value: Any, name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValueError(f"missing {name}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"invalid {name}: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"invalid {name}: {value!r}")
    return amount


def _parse_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _int_or_zero(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
