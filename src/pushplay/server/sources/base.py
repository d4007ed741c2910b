"""Base media source and registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pushplay.server.router import CommandRouter

logger = logging.getLogger(__name__)


class MediaSource:
    """Base class for media sources."""

    source_type: str = ""

    def attach(self, router: CommandRouter):
        """Start feeding media into ``router``."""

    def describe(self) -> dict:
        return {"type": self.source_type}


class SourceRegistry:
    """Registry of the media sources enabled by configuration."""

    def __init__(self):
        self._sources: list[MediaSource] = []

    def register(self, source: MediaSource):
        self._sources.append(source)
        logger.info("Registered media source: %s", source.source_type)

    def get(self, source_type: str) -> MediaSource | None:
        for source in self._sources:
            if source.source_type == source_type:
                return source
        return None

    def attach_all(self, router: CommandRouter):
        for source in self._sources:
            source.attach(router)

    def list_sources(self) -> list[dict]:
        return [s.describe() for s in self._sources]
