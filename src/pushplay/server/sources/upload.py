"""Network upload source - files pushed from the phone."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pushplay.server.media_store import MediaStore
from pushplay.server.sources.base import MediaSource

if TYPE_CHECKING:
    from pushplay.server.router import CommandRouter

logger = logging.getLogger(__name__)


class UploadSource(MediaSource):
    """Every file stored by the media store is appended and played."""

    source_type = "upload"

    def __init__(self, store: MediaStore):
        self.store = store

    def attach(self, router: CommandRouter):
        def on_stored(file_name: str, file_path: str):
            logger.info("New upload queued for playback: %s", file_name)
            router.notify_arrival(file_name, file_path)

        self.store.add_listener(on_stored)

    def describe(self) -> dict:
        return {"type": self.source_type, "media_dir": self.store.media_dir}
