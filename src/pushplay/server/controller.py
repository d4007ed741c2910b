"""Playback controller - the single authority over playback state.

Every method here is expected to run on the command router's dispatch
thread. Nothing in this module blocks: loads are handed to the
presentation adapter as a bind request and the controller moves to
``playing`` straight away, without waiting for the adapter. If the bind
later fails, the router feeds ``fail()`` back through its queue.
"""

from __future__ import annotations

import copy
import logging
import math
import threading
from collections.abc import Callable
from concurrent.futures import Future
from enum import Enum

from pushplay.server.adapter import AdapterBindError, PresentationAdapter
from pushplay.server.playlist import EmptyPlaylistError, MediaItem, Playlist

logger = logging.getLogger(__name__)

ASPECT_RATIOS = [
    "Default",
    "16:9",
    "4:3",
    "1:1",
    "16:10",
    "2.21:1",
    "2.35:1",
    "2.39:1",
    "5:4",
]

DEFAULT_ASPECT_RATIO = ASPECT_RATIOS[0]


class PlaybackState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


ACTIVE_STATES = (PlaybackState.LOADING, PlaybackState.PLAYING, PlaybackState.PAUSED)


def aspect_ratio_value(mode: str) -> float | None:
    """Return w/h for a mode like "16:9", None for Default.

    Raises ValueError for modes outside ASPECT_RATIOS.
    """
    if mode not in ASPECT_RATIOS:
        raise ValueError(f"Unknown aspect ratio: {mode}")
    if mode == DEFAULT_ASPECT_RATIO:
        return None
    w, h = mode.split(":")
    return float(w) / float(h)


def compute_render_size(mode: str, height: int) -> tuple[int, int] | None:
    """Width/height for ``mode`` at the given surface height.

    Default returns None so the adapter falls back to its natural layout.
    Halves round up.
    """
    ratio = aspect_ratio_value(mode)
    if ratio is None or height <= 0:
        return None
    return int(math.floor(height * ratio + 0.5)), height


Listener = Callable[[str, dict], None]


class PlaybackController:
    """State machine over idle / loading / playing / paused / stopped."""

    def __init__(self, adapter: PresentationAdapter, playlist: Playlist | None = None):
        self.adapter = adapter
        self.playlist = playlist or Playlist()
        self.state = PlaybackState.IDLE
        self.muted = False
        self.aspect_ratio = DEFAULT_ASPECT_RATIO
        self.playlist_visible = True
        self.last_error: str | None = None
        self._generation = 0
        self._listeners: list[Listener] = []
        self._snapshot_lock = threading.Lock()
        self._snapshot: dict = {}
        # Called with (error, generation) when a bind fails. The router
        # replaces this so failures re-enter through its queue.
        self.failure_sink: Callable[[Exception, int], None] = self.fail
        self._refresh_snapshot()

    @property
    def generation(self) -> int:
        """Counter bumped by every load, stop and failure."""
        return self._generation

    # --- Observers ---

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _refresh_snapshot(self) -> dict:
        current = self.playlist.current()
        snapshot = {
            "state": self.state.value,
            "current_index": self.playlist.current_index,
            "current": current.to_dict() if current else None,
            "playlist_length": len(self.playlist),
            "playlist": self.playlist.to_list(),
            "playlist_visible": self.playlist_visible,
            "muted": self.muted,
            "aspect_ratio": self.aspect_ratio,
            "last_error": self.last_error,
        }
        with self._snapshot_lock:
            self._snapshot = snapshot
        return snapshot

    def _notify(self, event_type: str):
        snapshot = self._refresh_snapshot()
        for listener in list(self._listeners):
            try:
                listener(event_type, copy.deepcopy(snapshot))
            except Exception:
                logger.exception("State listener failed on %s", event_type)

    def publish(self):
        """Re-send the current state to every listener."""
        self._notify("state")

    def status(self) -> dict:
        """Last published state. Safe to call from any thread."""
        with self._snapshot_lock:
            return copy.deepcopy(self._snapshot)

    def _set_state(self, state: PlaybackState, event_type: str = "state"):
        if state != self.state:
            logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state
        self._notify(event_type)

    # --- Playlist mutations ---

    def append(self, item: MediaItem) -> int:
        index = self.playlist.append(item)
        logger.info("Added to playlist: %s (#%d)", item.display_name, index)
        self._notify("playlist")
        return index

    def remove_at(self, index: int) -> MediaItem:
        """Remove an entry. Raises IndexError for a bad index."""
        was_current = index == self.playlist.current_index
        item = self.playlist.remove_at(index)
        logger.info("Removed from playlist: %s", item.display_name)
        if was_current and self.state in ACTIVE_STATES:
            if self.playlist.is_empty:
                self.stop()
                return item
            self.load(self.playlist.current_index)
            return item
        self._notify("playlist")
        return item

    def replace_playlist(self, items: list[MediaItem]):
        """Swap the whole playlist (local file picker) and start at the top."""
        self.playlist.replace(items)
        logger.info("Playlist replaced with %d item(s)", len(items))
        if items:
            self.load(0)
        else:
            self._notify("playlist")

    # --- Transport ---

    def load(self, index: int) -> MediaItem:
        """Select ``index`` and start playing it.

        The transition to playing is optimistic; bind failures come back
        through ``failure_sink``.
        """
        item = self.playlist.select(index)
        self._generation += 1
        generation = self._generation
        self.last_error = None
        self.playlist_visible = False
        self._set_state(PlaybackState.LOADING)

        future = self.adapter.bind(item)
        logger.info("Playing: %s (#%d)", item.display_name, index)
        self._set_state(PlaybackState.PLAYING, "playback")

        # Registered last: an already-failed future fires immediately
        future.add_done_callback(lambda f: self._on_bind_done(f, generation, item))
        return item

    def load_last(self) -> MediaItem:
        return self.load(len(self.playlist) - 1)

    def _on_bind_done(self, future: Future, generation: int, item: MediaItem):
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            return
        if not isinstance(error, AdapterBindError):
            error = AdapterBindError(f"Failed to load {item.display_name}: {error}")
        self.failure_sink(error, generation)

    def play(self) -> bool:
        """Resume, or (re)load the current item. False if nothing to play."""
        if self.state == PlaybackState.PAUSED:
            self.adapter.resume()
            self._set_state(PlaybackState.PLAYING)
            return True
        if self.state in (PlaybackState.PLAYING, PlaybackState.LOADING):
            return True
        if self.playlist.is_empty:
            logger.info("Play requested but the playlist is empty")
            return False
        self.load(self.playlist.current_index)
        return True

    def pause(self) -> bool:
        if self.state != PlaybackState.PLAYING:
            return False
        self.adapter.pause()
        self._set_state(PlaybackState.PAUSED)
        return True

    def pause_resume(self) -> bool:
        if self.state == PlaybackState.PLAYING:
            return self.pause()
        return self.play()

    def stop(self):
        """Stop from any state. The playlist becomes visible again."""
        self._generation += 1
        self.adapter.stop()
        self.playlist_visible = True
        self._set_state(PlaybackState.STOPPED)

    def next(self) -> MediaItem | None:
        return self._step(self.playlist.next)

    def previous(self) -> MediaItem | None:
        return self._step(self.playlist.previous)

    def _step(self, move) -> MediaItem | None:
        try:
            item = move()
        except EmptyPlaylistError:
            logger.info("Ignoring next/previous: playlist is empty")
            return None
        if self.state in ACTIVE_STATES:
            return self.load(self.playlist.current_index)
        # Idle/stopped: only the selection moves
        self._notify("playlist")
        return item

    def media_ended(self):
        """End-of-media from the adapter: advance like ``next``."""
        if self.state != PlaybackState.PLAYING:
            logger.debug("Ignoring end-of-media in state %s", self.state.value)
            return None
        return self.next()

    # --- Output settings ---

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        self.adapter.set_muted(self.muted)
        self._notify("settings")
        return self.muted

    def set_aspect_ratio(self, mode: str) -> str:
        height = self.adapter.render_height()
        size = compute_render_size(mode, height)
        self.aspect_ratio = mode
        if size is not None or mode == DEFAULT_ASPECT_RATIO:
            self.adapter.apply_geometry(size)
        else:
            logger.debug("Surface height unknown, %s applies on the next resize", mode)
        logger.info("Aspect ratio: %s", mode)
        self._notify("settings")
        return mode

    def refresh_geometry(self):
        """Re-apply the aspect ratio after the surface changed size."""
        if self.aspect_ratio == DEFAULT_ASPECT_RATIO:
            return
        size = compute_render_size(self.aspect_ratio, self.adapter.render_height())
        if size is not None:
            self.adapter.apply_geometry(size)

    def cycle_aspect_ratio(self) -> str:
        idx = ASPECT_RATIOS.index(self.aspect_ratio)
        return self.set_aspect_ratio(ASPECT_RATIOS[(idx + 1) % len(ASPECT_RATIOS)])

    # --- Failure recovery ---

    def fail(self, error: Exception, generation: int | None = None):
        """Force a stop after an adapter failure.

        ``generation`` identifies the load that failed; failures from loads
        that were already superseded are ignored.
        """
        if generation is not None and generation != self._generation:
            logger.debug("Ignoring failure from superseded load: %s", error)
            return
        logger.warning("Playback failed: %s", error)
        self.last_error = str(error)
        self._generation += 1
        self.adapter.stop()
        self.adapter.show_error(self.last_error)
        self.playlist_visible = True
        self._set_state(PlaybackState.STOPPED, "error")
