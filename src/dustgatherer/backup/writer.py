"""
Archive writer for DustGatherer backups.

Writes a snapshot of inventory items and their images into a single ZIP
archive. The manifest entry is always written first, followed by one
``images/<filename>`` entry per item with an image file on disk, in item
order.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

from dustgatherer.backup import codec
from dustgatherer.backup.models import IMAGES_PREFIX, MANIFEST_ENTRY
from dustgatherer.storage.models import InventoryItem

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
ImageResolver = Callable[[int], Path | None]


def _no_progress(fraction: float) -> None:
    pass


class ArchiveWriter:
    """
    Produces backup archives.

    Progress is reported once per written entry as ``completed / total``,
    where total is one manifest entry plus one entry per item whose image
    resolves to an existing file. The last report is exactly 1.0.
    """

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression

    def write(
        self,
        items: list[InventoryItem],
        image_resolver: ImageResolver,
        sink: Path | str | BinaryIO,
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """
        Write an archive.

        Args:
            items: Snapshot of inventory items, in archive order.
            image_resolver: Maps an item id to its image file, or None.
            sink: Destination file path or writable binary stream.
            on_progress: Called with the completed fraction after each entry.

        Returns:
            Number of image entries written.

        Raises:
            OSError: If the sink cannot be opened or written.
        """
        on_progress = on_progress or _no_progress

        payload = codec.build_payload(items)

        image_files: list[Path] = []
        for item in items:
            path = image_resolver(item.id)
            if path is not None and Path(path).is_file():
                image_files.append(Path(path))

        total_steps = 1 + len(image_files)
        completed = 0

        written_names: set[str] = set()
        with zipfile.ZipFile(sink, "w", compression=self.compression) as zf:
            zf.writestr(MANIFEST_ENTRY, codec.encode(payload))
            completed += 1
            on_progress(completed / total_steps)

            for image_file in image_files:
                if image_file.name in written_names:
                    logger.debug(f"Image already archived, skipping: {image_file.name}")
                else:
                    zf.write(image_file, arcname=f"{IMAGES_PREFIX}{image_file.name}")
                    written_names.add(image_file.name)
                completed += 1
                on_progress(completed / total_steps)

        logger.debug(
            f"Archived {payload.manifest.item_count} items and {len(written_names)} images"
        )
        return len(written_names)
