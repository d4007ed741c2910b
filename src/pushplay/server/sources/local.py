"""Local file picker source.

Takes files and directories (command line or ``local_paths`` setting),
keeps the video files and opens them as the playlist.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from pushplay.server.playlist import MediaItem
from pushplay.server.sources.base import MediaSource

if TYPE_CHECKING:
    from pushplay.server.router import CommandRouter

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {
    ".mp4", ".mkv", ".avi", ".mov", ".wmv", ".flv", ".webm",
    ".m4v", ".mpg", ".mpeg", ".ts", ".vob", ".3gp",
}


def is_video(path: str) -> bool:
    _, ext = os.path.splitext(path.lower())
    return ext in VIDEO_EXTENSIONS


def scan_paths(paths: list[str]) -> list[str]:
    """Expand directories (one level, sorted) and keep only video files."""
    found = []
    for path in paths:
        path = os.path.expanduser(path)
        if os.path.isdir(path):
            try:
                entries = sorted(os.scandir(path), key=lambda e: e.name.lower())
            except PermissionError:
                logger.warning("Permission denied browsing: %s", path)
                continue
            found.extend(
                e.path for e in entries
                if e.is_file() and not e.name.startswith(".") and is_video(e.name)
            )
        elif os.path.isfile(path):
            if is_video(path):
                found.append(path)
            else:
                logger.info("Skipping non-video file: %s", path)
        else:
            logger.warning("No such file or directory: %s", path)
    return found


class LocalFileSource(MediaSource):
    """Opens a fixed set of local files as the playlist."""

    source_type = "local"

    def __init__(self, paths: list[str] | None = None):
        self.paths = list(paths or [])

    def items(self) -> list[MediaItem]:
        return [MediaItem.from_path(p) for p in scan_paths(self.paths)]

    def attach(self, router: CommandRouter):
        items = self.items()
        if not items:
            logger.info("Local source: no video files in %s", self.paths or "(nothing selected)")
            return
        logger.info("Local source: opening %d video file(s)", len(items))
        router.submit("open_files", items=items)

    def describe(self) -> dict:
        return {"type": self.source_type, "paths": self.paths}
