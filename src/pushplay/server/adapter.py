"""Presentation adapter interface.

The adapter owns the render surface. The controller talks to it in two ways:

- imperative media requests (``bind``, ``pause``, ``resume``, ``stop`` ...),
  which must return immediately and do their I/O elsewhere;
- state-change notifications (``on_state_change``), registered as a
  controller listener, used to redraw things like the playlist overlay.

Window chrome (fullscreen, minimize, maximize, close) is pure pass-through
to the host window and never touches playback state.
"""

import logging
from collections.abc import Callable
from concurrent.futures import Future

from pushplay.server.playlist import MediaItem

logger = logging.getLogger(__name__)


class AdapterBindError(Exception):
    """The render surface failed to load or play a media item."""


class PresentationAdapter:
    """Base adapter. Subclasses override what their surface supports."""

    def __init__(self):
        self.fullscreen = False
        self.maximized = False
        self.connect_hint = ""  # e.g. "Send videos to http://192.168.1.20:3000"
        self._command_sink: Callable[[str], object] | None = None
        self._media_end_sink: Callable[[], object] | None = None
        self._closed_sink: Callable[[], object] | None = None
        self._failure_sink: Callable[[AdapterBindError], object] | None = None
        self._resize_sink: Callable[[], object] | None = None

    def connect(
        self,
        on_command: Callable[[str], object] | None = None,
        on_media_end: Callable[[], object] | None = None,
        on_closed: Callable[[], object] | None = None,
        on_failure: Callable[[AdapterBindError], object] | None = None,
        on_resize: Callable[[], object] | None = None,
    ):
        """Wire local input events back into the router.

        ``on_failure`` receives errors of media that was already playing,
        e.g. a stream that dies halfway. Load failures go through the bind
        future instead. ``on_resize`` fires when ``render_height()`` changes.
        """
        self._command_sink = on_command
        self._media_end_sink = on_media_end
        self._closed_sink = on_closed
        self._failure_sink = on_failure
        self._resize_sink = on_resize

    def start(self):
        pass

    def shutdown(self):
        pass

    # --- Media requests ---

    def bind(self, item: MediaItem) -> Future:
        """Attach ``item`` to the surface and start playback.

        Returns a Future resolved once the surface confirms the load, or
        failed with AdapterBindError.
        """
        raise NotImplementedError

    def pause(self):
        pass

    def resume(self):
        pass

    def stop(self):
        """Reset position to 0 and clear the bound source."""

    def set_muted(self, muted: bool):
        pass

    def render_height(self) -> int:
        """Current height of the video surface in pixels."""
        return 0

    def apply_geometry(self, size: tuple[int, int] | None):
        """Apply an explicit (width, height), or None for natural layout."""

    def show_error(self, message: str):
        pass

    def on_state_change(self, event_type: str, snapshot: dict):
        pass

    # --- Window chrome ---

    def toggle_fullscreen(self):
        self.fullscreen = not self.fullscreen

    def exit_fullscreen(self):
        if self.fullscreen:
            self.toggle_fullscreen()

    def minimize(self):
        pass

    def toggle_maximize(self):
        self.maximized = not self.maximized

    def close(self):
        pass

    def window_state(self) -> dict:
        return {"fullscreen": self.fullscreen, "maximized": self.maximized}

    # --- Helpers for subclasses ---

    def _emit_command(self, name: str):
        if self._command_sink:
            self._command_sink(name)

    def _emit_media_end(self):
        if self._media_end_sink:
            self._media_end_sink()

    def _emit_closed(self):
        if self._closed_sink:
            self._closed_sink()

    def _emit_failure(self, error: AdapterBindError):
        if self._failure_sink:
            self._failure_sink(error)

    def _emit_resize(self):
        if self._resize_sink:
            self._resize_sink()


class HeadlessAdapter(PresentationAdapter):
    """Adapter without a surface. Every bind succeeds immediately.

    Used with ``--no-player`` so the HTTP side can be exercised on machines
    without mpv or a display.
    """

    def __init__(self, height: int = 720):
        super().__init__()
        self.height = height
        self.bound: MediaItem | None = None
        self.muted = False
        self.geometry: tuple[int, int] | None = None

    def bind(self, item: MediaItem) -> Future:
        logger.info("[headless] bind %s", item.source_locator)
        self.bound = item
        future: Future = Future()
        future.set_result(item)
        return future

    def stop(self):
        logger.info("[headless] stop")
        self.bound = None

    def set_muted(self, muted: bool):
        self.muted = muted

    def render_height(self) -> int:
        return self.height

    def apply_geometry(self, size: tuple[int, int] | None):
        self.geometry = size

    def show_error(self, message: str):
        logger.warning("[headless] %s", message)

    def close(self):
        logger.info("[headless] window closed")
