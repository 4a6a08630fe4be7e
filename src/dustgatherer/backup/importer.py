"""
Two-pass import of DustGatherer backup archives.

Pass 1 walks every archive entry once: the manifest entry is decoded and
version-checked, and each image entry is copied into the image store under a
freshly generated name. Pass 2 reconciles the decoded items against the
record store, one at a time and in archive order. Items to add are staged and
inserted with a single bulk call at the end.

A failure while reconciling one item is recorded and counted as skipped; it
never aborts the rest of the batch. Fatal failures (unreadable source,
missing manifest, unsupported version, cancellation) remove the images this
import extracted that no record points at.
"""

from __future__ import annotations

import logging
import threading
import zipfile
import zlib
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import BinaryIO

from dustgatherer.backup import codec
from dustgatherer.backup.models import (
    ArchiveFormatError,
    ArchiveItem,
    ArchivePayload,
    ConflictAction,
    ConflictStrategy,
    ImportCancelledError,
    ImportOutcome,
)
from dustgatherer.backup.reader import ArchiveEntry, ArchiveReader, EntryKind
from dustgatherer.backup.resolver import resolve
from dustgatherer.storage.image_store import ImageStore, extension_of
from dustgatherer.storage.inventory_store import InventoryStore
from dustgatherer.storage.models import InventoryItem

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def _no_progress(fraction: float) -> None:
    pass


class ImportOrchestrator:
    """
    Drives the extract-then-reconcile import of one archive.

    Example:
        orchestrator = ImportOrchestrator(store, images)
        outcome = orchestrator.run(path, ConflictStrategy.SKIP_EXISTING)
        print(outcome.imported_count, outcome.errors)
    """

    def __init__(
        self,
        store: InventoryStore,
        images: ImageStore,
        reader: ArchiveReader | None = None,
    ) -> None:
        self.store = store
        self.images = images
        self.reader = reader or ArchiveReader()

    def run(
        self,
        source: Path | str | BinaryIO,
        strategy: ConflictStrategy,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ImportOutcome:
        """
        Import an archive.

        Args:
            source: Archive file path or seekable binary stream.
            strategy: How to treat items whose id already exists.
            on_progress: Called with ``(i + 1) / N`` after each item.
            cancel_event: Checked between entries and between items.

        Returns:
            ImportOutcome with counts and per-item error lines.

        Raises:
            OSError: If the source cannot be opened.
            ArchiveFormatError: If the manifest is missing or invalid.
            UnsupportedVersionError: If the archive format is too new.
            ImportCancelledError: If cancel_event was set.
        """
        on_progress = on_progress or _no_progress

        extracted: dict[str, str] = {}
        try:
            payload = self._extract(source, extracted, cancel_event)
        except BaseException:
            self._discard(extracted.values())
            raise

        applied_images: set[str] = set()
        try:
            outcome = self._reconcile(
                payload, extracted, strategy, on_progress, cancel_event, applied_images
            )
        except BaseException:
            self._discard(p for p in extracted.values() if p not in applied_images)
            raise

        logger.info(
            f"Import finished: {outcome.imported_count} imported, "
            f"{outcome.skipped_count} skipped, {len(outcome.errors)} errors"
        )
        return outcome

    def _extract(
        self,
        source: Path | str | BinaryIO,
        extracted: dict[str, str],
        cancel_event: threading.Event | None,
    ) -> ArchivePayload:
        """Pass 1: decode the manifest and copy images into the image store."""
        payload: ArchivePayload | None = None

        with self.reader.open(source) as zf:
            for entry in self.reader.iter_entries(zf):
                _check_cancelled(cancel_event)

                if entry.kind is EntryKind.MANIFEST:
                    payload = entry.read_payload()
                    codec.check_version(payload.manifest)
                elif entry.file_name in extracted:
                    logger.warning(f"Duplicate image entry ignored: {entry.name}")
                else:
                    new_path = self._save_image(entry)
                    if new_path is not None:
                        extracted[entry.file_name] = new_path

        if payload is None:
            raise ArchiveFormatError("Invalid backup file: archive missing manifest")
        return payload

    def _save_image(self, entry: ArchiveEntry) -> str | None:
        """Copy one image entry into the image store; None if it cannot be saved."""
        try:
            return self.images.save_blob(entry.stream, extension_of(entry.file_name))
        except (OSError, EOFError, zipfile.BadZipFile, zlib.error) as e:
            logger.warning(f"Could not extract image {entry.name}: {e}")
            return None

    def _reconcile(
        self,
        payload: ArchivePayload,
        extracted: dict[str, str],
        strategy: ConflictStrategy,
        on_progress: ProgressCallback,
        cancel_event: threading.Event | None,
        applied_images: set[str],
    ) -> ImportOutcome:
        """Pass 2: apply each archive item to the record store."""
        items = payload.items
        total = len(items)
        imported = 0
        skipped = 0
        errors: list[str] = []
        staged: list[InventoryItem] = []

        for index, archive_item in enumerate(items):
            _check_cancelled(cancel_event)

            try:
                action = self._apply(archive_item, extracted, strategy, staged, applied_images)
                if action is ConflictAction.SKIP:
                    skipped += 1
                else:
                    imported += 1
            except Exception as e:
                logger.warning(f"Failed to import item {archive_item.title!r}: {e}")
                errors.append(f"Failed to import item '{archive_item.title}': {e}")
                skipped += 1

            on_progress((index + 1) / total)

        _check_cancelled(cancel_event)
        if staged:
            self.store.insert_many(staged)
            applied_images.update(i.image_path for i in staged if i.image_path)

        if total == 0:
            on_progress(1.0)

        return ImportOutcome(
            total_items=payload.manifest.item_count,
            imported_count=imported,
            skipped_count=skipped,
            errors=tuple(errors),
        )

    def _apply(
        self,
        archive_item: ArchiveItem,
        extracted: dict[str, str],
        strategy: ConflictStrategy,
        staged: list[InventoryItem],
        applied_images: set[str],
    ) -> ConflictAction:
        """Resolve and apply a single item; replacements are written immediately."""
        existing = (
            self.store.get_by_id(archive_item.id) if archive_item.id is not None else None
        )
        image_path = (
            extracted.get(archive_item.image_file_name)
            if archive_item.image_file_name
            else None
        )

        action = resolve(existing, strategy)
        if action is ConflictAction.SKIP:
            return action

        item = archive_item.to_inventory_item(image_path)
        if action is ConflictAction.REPLACE_EXISTING:
            self.store.update(item.copy(id=existing.id))
            if image_path:
                applied_images.add(image_path)
        else:
            staged.append(item)
        return action

    def _discard(self, paths: Iterable[str]) -> None:
        """Delete images extracted by a failed import."""
        removed = sum(1 for path in list(paths) if self.images.delete(path))
        if removed:
            logger.info(f"Removed {removed} images extracted by the failed import")


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ImportCancelledError("Import cancelled")
