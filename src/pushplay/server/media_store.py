"""Media store - the directory uploaded videos live in.

Owns file bytes only. It knows nothing about playback; interested parties
(the upload media source) register a listener and are told about each
stored file.
"""

import logging
import os
from collections.abc import Callable
from typing import BinaryIO
from urllib.parse import quote

import psutil

logger = logging.getLogger(__name__)

MEDIA_URL_PREFIX = "/media"


class StoreIOError(Exception):
    """Filesystem failure while storing, listing or deleting media."""


def _safe_name(file_name: str) -> str:
    """Keep the original name but never let it leave the media directory."""
    name = os.path.basename((file_name or "").replace("\\", "/")).strip()
    if name in ("", ".", ".."):
        raise ValueError(f"Invalid file name: {file_name!r}")
    return name


class MediaStore:
    """Stores files by original name in a single media directory."""

    def __init__(self, media_dir: str, url_prefix: str = MEDIA_URL_PREFIX):
        self.media_dir = os.path.abspath(media_dir)
        self.url_prefix = url_prefix
        self._listeners: list[Callable[[str, str], object]] = []
        os.makedirs(self.media_dir, exist_ok=True)

    def add_listener(self, listener: Callable[[str, str], object]):
        """Call ``listener(file_name, file_path)`` after every stored file."""
        self._listeners.append(listener)

    def path_for(self, file_name: str) -> str:
        return os.path.join(self.media_dir, _safe_name(file_name))

    def url_for(self, file_name: str) -> str:
        return f"{self.url_prefix}/{quote(file_name)}"

    def save(self, file_name: str, stream: BinaryIO) -> dict:
        """Write ``stream`` to the media directory under ``file_name``.

        An existing file with the same name is overwritten.
        """
        name = _safe_name(file_name)
        path = os.path.join(self.media_dir, name)
        try:
            with open(path, "wb") as f:
                while True:
                    chunk = stream.read(1024 * 1024)
                    if not chunk:
                        break
                    f.write(chunk)
        except OSError as e:
            logger.error("Failed to store %s: %s", name, e)
            raise StoreIOError(f"Failed to store {name}: {e}") from e

        logger.info("Stored upload: %s (%d bytes)", name, os.path.getsize(path))
        for listener in list(self._listeners):
            try:
                listener(name, path)
            except Exception:
                logger.exception("Upload listener failed for %s", name)
        return {"name": name, "url": self.url_for(name)}

    def list_files(self) -> list[dict]:
        try:
            names = sorted(
                entry.name for entry in os.scandir(self.media_dir) if entry.is_file()
            )
        except OSError as e:
            raise StoreIOError(f"Failed to list media: {e}") from e
        return [{"name": name, "url": self.url_for(name)} for name in names]

    def delete(self, file_name: str):
        path = self.path_for(file_name)
        try:
            os.remove(path)
        except OSError as e:
            logger.warning("Failed to delete %s: %s", file_name, e)
            raise StoreIOError(f"Failed to delete {file_name}: {e.strerror or e}") from e
        logger.info("Deleted media: %s", file_name)


def memory_summary() -> str:
    """Free and total system memory, e.g. "2048 MB / 7872 MB"."""
    mem = psutil.virtual_memory()
    mb = 1024 * 1024
    return f"{mem.available // mb} MB / {mem.total // mb} MB"
