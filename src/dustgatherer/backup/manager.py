"""
Backup and restore manager for DustGatherer.

Exposes the three backup operations (export, preview, import) over an
explicitly constructed record store and image store. Every operation returns
a result dataclass; failures are reported through ``success``/``error`` and
never raised to the caller.

At most one export and at most one import may run at a time on a manager.
A second request of the same kind while one is in progress is rejected.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

from dustgatherer.backup.importer import ImportOrchestrator
from dustgatherer.backup.models import (
    ArchiveError,
    ConflictStrategy,
    ExportResult,
    ImportResult,
    PreviewResult,
)
from dustgatherer.backup.reader import ArchiveReader
from dustgatherer.backup.writer import ArchiveWriter
from dustgatherer.storage.image_store import ImageStore
from dustgatherer.storage.inventory_store import InventoryStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class JobInProgressError(Exception):
    """Raised internally when a job of the same kind is already running."""

    pass


class BackupManager:
    """
    Manages export, preview and import of inventory backup archives.

    Archives are ZIP files containing:
    - inventory.json: manifest and every inventory item
    - images/<filename>: one entry per item photo

    Example:
        manager = BackupManager(store, images)
        result = manager.export_archive(Path("~/backups").expanduser())
        preview = manager.preview_archive(result.path)
        imported = manager.import_archive(result.path, ConflictStrategy.SKIP_EXISTING)
    """

    BACKUP_PREFIX = "dustgatherer-backup"
    BACKUP_SUFFIX = ".zip"

    def __init__(
        self,
        store: InventoryStore,
        images: ImageStore,
        writer: ArchiveWriter | None = None,
        reader: ArchiveReader | None = None,
    ) -> None:
        """
        Initialize backup manager.

        Args:
            store: Record store holding inventory items.
            images: Image store holding item photos.
            writer: Archive writer (default: ArchiveWriter()).
            reader: Archive reader (default: ArchiveReader()).
        """
        self.store = store
        self.images = images
        self.writer = writer or ArchiveWriter()
        self.reader = reader or ArchiveReader()
        self._export_lock = threading.Lock()
        self._import_lock = threading.Lock()

    @contextmanager
    def _exclusive(self, lock: threading.Lock, kind: str) -> Generator[None, None, None]:
        if not lock.acquire(blocking=False):
            raise JobInProgressError(f"An {kind} is already in progress")
        try:
            yield
        finally:
            lock.release()

    def export_archive(
        self,
        sink: Path | str | BinaryIO,
        on_progress: ProgressCallback | None = None,
    ) -> ExportResult:
        """
        Export every inventory item and its image into one archive.

        Args:
            sink: Destination file, existing directory (a timestamped file is
                created inside it) or writable binary stream.
            on_progress: Called with the completed fraction after each entry.

        Returns:
            ExportResult with success status and archive details
        """
        try:
            with self._exclusive(self._export_lock, "export"):
                target = self._resolve_sink(sink)
                items = self.store.get_all()
                paths = {item.id: self.images.resolve(item.image_path) for item in items}

                image_count = self.writer.write(items, paths.get, target, on_progress)

                size_bytes = 0
                path = None
                if isinstance(target, Path):
                    path = target
                    size_bytes = target.stat().st_size

                logger.info(
                    f"Export created: {path or 'stream'} "
                    f"({len(items)} items, {image_count} images, {size_bytes:,} bytes)"
                )
                return ExportResult(
                    success=True,
                    path=path,
                    item_count=len(items),
                    image_count=image_count,
                    size_bytes=size_bytes,
                )

        except JobInProgressError as e:
            return ExportResult(success=False, error=str(e))
        except Exception as e:
            logger.exception("Export failed")
            return ExportResult(success=False, error=str(e))

    def preview_archive(self, source: Path | str | BinaryIO) -> PreviewResult:
        """
        Read an archive's manifest without importing anything.

        Returns:
            PreviewResult with the declared item count
        """
        try:
            manifest = self.reader.read_manifest(source)
            return PreviewResult(
                success=True,
                item_count=manifest.item_count,
                manifest=manifest,
            )
        except ArchiveError as e:
            return PreviewResult(success=False, error=str(e))
        except Exception as e:
            logger.exception("Preview failed")
            return PreviewResult(success=False, error=f"Failed to read backup file: {e}")

    def import_archive(
        self,
        source: Path | str | BinaryIO,
        strategy: ConflictStrategy,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ImportResult:
        """
        Import an archive into the record and image stores.

        Args:
            source: Archive file path or seekable binary stream.
            strategy: Conflict strategy for items whose id already exists.
            on_progress: Called with the completed fraction after each item.
            cancel_event: Set from another thread to stop the import.

        Returns:
            ImportResult with the import outcome, or the fatal error
        """
        try:
            with self._exclusive(self._import_lock, "import"):
                orchestrator = ImportOrchestrator(self.store, self.images, self.reader)
                outcome = orchestrator.run(source, strategy, on_progress, cancel_event)
                return ImportResult(success=True, outcome=outcome)

        except JobInProgressError as e:
            return ImportResult(success=False, error=str(e))
        except ArchiveError as e:
            logger.warning(f"Import rejected: {e}")
            return ImportResult(success=False, error=str(e))
        except Exception as e:
            logger.exception("Import failed")
            return ImportResult(success=False, error=str(e))

    def _resolve_sink(self, sink: Path | str | BinaryIO) -> Path | BinaryIO:
        """Turn a directory sink into a timestamped archive path inside it."""
        if not isinstance(sink, (str, Path)):
            return sink

        path = Path(sink)
        if path.is_dir():
            timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
            stem = f"{self.BACKUP_PREFIX}-{timestamp}"
            candidate = path / f"{stem}{self.BACKUP_SUFFIX}"
            counter = 1
            while candidate.exists():
                candidate = path / f"{stem}-{counter}{self.BACKUP_SUFFIX}"
                counter += 1
            return candidate

        path.parent.mkdir(parents=True, exist_ok=True)
        return path
