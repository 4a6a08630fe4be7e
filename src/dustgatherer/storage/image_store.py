"""
Image asset store for DustGatherer.

Item photos live as plain files in a single directory under generated,
collision-free names. The record store only keeps the absolute path.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"

_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]{1,10}$")


def extension_of(file_name: str) -> str:
    """
    Get a safe file extension from a file name.

    Falls back to DEFAULT_EXTENSION when the name has no extension or the
    extension contains anything but ASCII letters and digits.
    """
    _, dot, ext = file_name.rpartition(".")
    if not dot or not _EXTENSION_RE.match(ext):
        return DEFAULT_EXTENSION
    return ext.lower()


class ImageStore:
    """
    Durable storage for item images.

    Example:
        images = ImageStore(Path("./data/images"))
        path = images.save_blob(stream, extension="png")
        with images.open_for_read(path) as f:
            data = f.read()

    Attributes:
        images_dir: Directory holding every stored image.
    """

    def __init__(self, images_dir: Path | str) -> None:
        self.images_dir = Path(images_dir)
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def new_file_name(self, extension: str = DEFAULT_EXTENSION) -> str:
        """Generate a fresh image file name that does not depend on any input name."""
        return f"item_{uuid.uuid4()}.{extension}"

    def save_blob(self, data: bytes | BinaryIO, extension: str = DEFAULT_EXTENSION) -> str:
        """
        Persist image bytes under a newly generated name.

        The blob is streamed into a temp file in the images directory and
        renamed into place, so a failed write never leaves a partial image.

        Args:
            data: Raw bytes or a readable binary stream.
            extension: File extension for the stored image.

        Returns:
            Absolute path of the stored image.
        """
        if not _EXTENSION_RE.match(extension):
            extension = DEFAULT_EXTENSION
        file_path = self.images_dir / self.new_file_name(extension.lower())

        temp_fd, temp_path = tempfile.mkstemp(suffix=".part", dir=str(self.images_dir))
        try:
            with os.fdopen(temp_fd, "wb") as f:
                if isinstance(data, (bytes, bytearray)):
                    f.write(data)
                else:
                    shutil.copyfileobj(data, f)
            os.rename(temp_path, file_path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

        return str(file_path.resolve())

    def open_for_read(self, path: str | Path) -> BinaryIO:
        """Open a stored image for binary reading."""
        return open(path, "rb")

    def resolve(self, image_path: str | None) -> Path | None:
        """
        Resolve a stored image path to an existing file.

        Returns:
            Path of the file, or None if no path is set or the file is gone.
        """
        if not image_path:
            return None
        path = Path(image_path)
        if not path.is_file():
            logger.debug(f"Image not found on disk: {image_path}")
            return None
        return path

    def delete(self, path: str | Path) -> bool:
        """
        Delete a stored image.

        Returns:
            True if the file existed and was removed.
        """
        try:
            Path(path).unlink()
            return True
        except FileNotFoundError:
            return False
