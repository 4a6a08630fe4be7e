"""
Encoding and decoding of the ``inventory.json`` archive entry.

The entry is UTF-8 JSON shaped as ``{"manifest": {...}, "items": [...]}``.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from dustgatherer.backup.models import (
    SUPPORTED_FORMAT_VERSION,
    ArchiveFormatError,
    ArchiveItem,
    ArchivePayload,
    Manifest,
    UnsupportedVersionError,
)
from dustgatherer.storage.models import InventoryItem


def _get_version() -> str:
    """Get DustGatherer version."""
    from dustgatherer import __version__

    return __version__


def build_payload(items: list[InventoryItem]) -> ArchivePayload:
    """
    Build the manifest and archive items for a snapshot of inventory items.

    The manifest's item count always equals the number of items given.
    """
    manifest = Manifest(
        format_version=SUPPORTED_FORMAT_VERSION,
        producer_version=_get_version(),
        created_at=datetime.now().isoformat(timespec="seconds"),
        item_count=len(items),
    )
    return ArchivePayload(
        manifest=manifest,
        items=[ArchiveItem.from_inventory_item(item) for item in items],
    )


def encode(payload: ArchivePayload) -> bytes:
    """Encode a payload as pretty-printed UTF-8 JSON."""
    data = {
        "manifest": payload.manifest.to_dict(),
        "items": [item.to_dict() for item in payload.items],
    }
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def decode(raw: bytes | str) -> ArchivePayload:
    """
    Decode the manifest entry.

    Unknown keys are ignored. Individual items are decoded leniently; only
    a structurally broken document is rejected here.

    Raises:
        ArchiveFormatError: If the entry is not valid JSON or lacks a manifest.
    """
    try:
        data: Any = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArchiveFormatError(f"Invalid backup file: cannot parse manifest: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("manifest"), dict):
        raise ArchiveFormatError("Invalid backup file: manifest section not found")

    raw_items = data.get("items", [])
    if not isinstance(raw_items, list) or not all(isinstance(i, dict) for i in raw_items):
        raise ArchiveFormatError("Invalid backup file: items must be a list of objects")

    try:
        manifest = Manifest.from_dict(data["manifest"])
    except (TypeError, ValueError) as e:
        raise ArchiveFormatError(f"Invalid backup file: bad manifest: {e}") from e

    return ArchivePayload(
        manifest=manifest,
        items=[ArchiveItem.from_dict(item) for item in raw_items],
    )


def check_version(manifest: Manifest) -> None:
    """
    Reject manifests written by a newer format version.

    Raises:
        UnsupportedVersionError: If the format version is not supported.
    """
    if manifest.format_version > SUPPORTED_FORMAT_VERSION:
        raise UnsupportedVersionError(manifest.format_version)
