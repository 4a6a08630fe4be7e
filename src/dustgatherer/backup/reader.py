"""
Archive reader for DustGatherer backups.

Opens backup archives, walks their entries in archive order and decodes the
manifest entry. Entries may appear in any order; names other than the
manifest and ``images/<filename>`` are ignored.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, BinaryIO

from dustgatherer.backup import codec
from dustgatherer.backup.models import (
    IMAGES_PREFIX,
    MANIFEST_ENTRY,
    ArchiveFormatError,
    ArchivePayload,
    Manifest,
)

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    """Kinds of archive entries the reader recognizes."""

    MANIFEST = "manifest"
    IMAGE = "image"


@dataclass
class ArchiveEntry:
    """
    One recognized archive entry.

    The stream is only valid until the iteration moves to the next entry.
    """

    name: str
    kind: EntryKind
    stream: IO[bytes]

    @property
    def file_name(self) -> str:
        """Image file name with the images/ prefix removed."""
        return self.name[len(IMAGES_PREFIX):]

    def read_payload(self) -> ArchivePayload:
        """Decode this entry as the manifest entry."""
        return codec.decode(self.stream.read())


def classify(info: zipfile.ZipInfo) -> EntryKind | None:
    """Determine the kind of an archive member, or None to ignore it."""
    if info.is_dir():
        return None
    if info.filename == MANIFEST_ENTRY:
        return EntryKind.MANIFEST
    if info.filename.startswith(IMAGES_PREFIX) and len(info.filename) > len(IMAGES_PREFIX):
        return EntryKind.IMAGE
    return None


class ArchiveReader:
    """Reads backup archives written by ArchiveWriter or compatible producers."""

    @contextmanager
    def open(self, source: Path | str | BinaryIO) -> Generator[zipfile.ZipFile, None, None]:
        """
        Open an archive for reading.

        Raises:
            OSError: If the source cannot be opened.
            ArchiveFormatError: If the source is not a ZIP archive.
        """
        try:
            zf = zipfile.ZipFile(source, "r")
        except zipfile.BadZipFile as e:
            raise ArchiveFormatError(f"Not a valid backup archive: {e}") from e
        try:
            yield zf
        finally:
            zf.close()

    def iter_entries(self, zf: zipfile.ZipFile) -> Iterator[ArchiveEntry]:
        """
        Yield recognized entries in archive order.

        Each entry's stream is closed before the next entry is yielded.
        """
        for info in zf.infolist():
            kind = classify(info)
            if kind is None:
                logger.debug(f"Ignoring archive entry: {info.filename}")
                continue
            with zf.open(info) as stream:
                yield ArchiveEntry(name=info.filename, kind=kind, stream=stream)

    def read_manifest(self, source: Path | str | BinaryIO) -> Manifest:
        """
        Read and validate only the manifest of an archive.

        Scans entries until the manifest entry is found; image entries are
        never read.

        Raises:
            ArchiveFormatError: If the manifest entry is missing or invalid.
            UnsupportedVersionError: If the archive format is too new.
        """
        with self.open(source) as zf:
            for info in zf.infolist():
                if classify(info) is EntryKind.MANIFEST:
                    manifest = codec.decode(zf.read(info)).manifest
                    codec.check_version(manifest)
                    return manifest
        raise ArchiveFormatError(f"Invalid backup file: archive missing manifest ({MANIFEST_ENTRY})")

    def preview(self, source: Path | str | BinaryIO) -> int:
        """
        Report how many items an archive declares without importing it.

        Returns:
            The manifest's item count.
        """
        return self.read_manifest(source).item_count
