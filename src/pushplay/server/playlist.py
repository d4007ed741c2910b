"""Playlist model for PushPlay.

An ordered list of media items with a cursor. Insertion order is kept and
duplicates are allowed; items are told apart by their ``id``. The cursor
(``current_index``) is -1 when nothing is selected, otherwise it always
points at a valid index.
"""

import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


class EmptyPlaylistError(Exception):
    """Cursor movement was requested on an empty playlist."""


@dataclass(frozen=True)
class MediaItem:
    """A single playable entry.

    ``source_locator`` is opaque to the playlist and the controller; only the
    presentation adapter resolves it (``file://`` URI or network URL).
    """

    display_name: str
    source_locator: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_path(cls, path: str, display_name: str = "") -> "MediaItem":
        """Build an item for a file on local disk."""
        abs_path = os.path.abspath(path)
        return cls(
            display_name=display_name or os.path.basename(abs_path),
            source_locator=Path(abs_path).as_uri(),
        )


class Playlist:
    """Ordered media items plus the playback cursor."""

    def __init__(self, items: list[MediaItem] | None = None):
        self._items: list[MediaItem] = []
        self._current_index = -1
        if items:
            self.replace(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def is_empty(self) -> bool:
        return not self._items

    def _check_index(self, index: int):
        if not 0 <= index < len(self._items):
            raise IndexError(f"Playlist index {index} out of range (length {len(self._items)})")

    def append(self, item: MediaItem) -> int:
        """Add an item at the end and return its index."""
        self._items.append(item)
        if self._current_index == -1:
            self._current_index = 0
        return len(self._items) - 1

    def remove_at(self, index: int) -> MediaItem:
        """Remove and return the item at ``index``.

        If the current item is removed the cursor stays on the same slot,
        which now holds the following item (wrapping to the first item when
        the last one was removed), or becomes -1 if nothing is left.
        """
        self._check_index(index)
        item = self._items.pop(index)
        if not self._items:
            self._current_index = -1
        elif index < self._current_index:
            self._current_index -= 1
        elif index == self._current_index and self._current_index >= len(self._items):
            self._current_index = 0
        logger.debug("Removed %s from playlist (cursor now %d)", item.display_name, self._current_index)
        return item

    def select(self, index: int) -> MediaItem:
        """Move the cursor to ``index``."""
        self._check_index(index)
        self._current_index = index
        return self._items[index]

    def next(self) -> MediaItem:
        """Advance the cursor, wrapping to the first item."""
        if not self._items:
            raise EmptyPlaylistError("Cannot advance an empty playlist")
        self._current_index = (self._current_index + 1) % len(self._items)
        return self._items[self._current_index]

    def previous(self) -> MediaItem:
        """Step the cursor back, wrapping to the last item."""
        if not self._items:
            raise EmptyPlaylistError("Cannot rewind an empty playlist")
        n = len(self._items)
        self._current_index = (self._current_index - 1 + n) % n
        return self._items[self._current_index]

    def current(self) -> MediaItem | None:
        if self._current_index == -1:
            return None
        return self._items[self._current_index]

    def get(self, index: int) -> MediaItem:
        self._check_index(index)
        return self._items[index]

    def replace(self, items: list[MediaItem]):
        """Swap in a whole new list (cursor on the first item)."""
        self._items = list(items)
        self._current_index = 0 if self._items else -1

    def clear(self):
        self._items = []
        self._current_index = -1

    def to_list(self) -> list[dict]:
        result = []
        for idx, item in enumerate(self._items):
            d = item.to_dict()
            d["index"] = idx
            d["current"] = idx == self._current_index
            result.append(d)
        return result
