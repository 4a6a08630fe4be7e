"""
Backup and restore functionality for DustGatherer.

This module serializes the whole inventory (items plus their photos) into a
single portable ZIP archive and restores inventory state from such an
archive, reconciling against items that already exist locally.

Usage:
    from dustgatherer.backup import BackupManager, ConflictStrategy

    manager = BackupManager(store, images)

    # Create a backup
    result = manager.export_archive(output_dir, on_progress=print)

    # Inspect a backup
    preview = manager.preview_archive(result.path)

    # Restore from a backup
    imported = manager.import_archive(result.path, ConflictStrategy.SKIP_EXISTING)
"""

from dustgatherer.backup.importer import ImportOrchestrator
from dustgatherer.backup.manager import BackupManager
from dustgatherer.backup.models import (
    SUPPORTED_FORMAT_VERSION,
    ArchiveError,
    ArchiveFormatError,
    ArchiveItem,
    ArchivePayload,
    ConflictAction,
    ConflictStrategy,
    ExportResult,
    ImportCancelledError,
    ImportOutcome,
    ImportResult,
    Manifest,
    PreviewResult,
    UnsupportedVersionError,
)
from dustgatherer.backup.reader import ArchiveReader
from dustgatherer.backup.resolver import resolve
from dustgatherer.backup.writer import ArchiveWriter

__all__ = [
    # Operations
    "BackupManager",
    "ArchiveWriter",
    "ArchiveReader",
    "ImportOrchestrator",
    "resolve",
    # Data models
    "Manifest",
    "ArchiveItem",
    "ArchivePayload",
    "ImportOutcome",
    "ConflictStrategy",
    "ConflictAction",
    "SUPPORTED_FORMAT_VERSION",
    # Results
    "ExportResult",
    "PreviewResult",
    "ImportResult",
    # Exceptions
    "ArchiveError",
    "ArchiveFormatError",
    "UnsupportedVersionError",
    "ImportCancelledError",
]
