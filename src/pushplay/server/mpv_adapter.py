"""mpv-backed presentation adapter.

Runs one long-lived mpv window (``--idle``) and drives it over JSON IPC:

- all outgoing IPC runs on a single worker thread, so controller handlers
  never block on the socket and requests reach mpv in order;
- a second IPC connection is read by an event thread that resolves bind
  futures (``file-loaded`` / ``end-file``), reports end-of-media and turns
  key presses in the video window into local commands.

Media events are matched to a load by mpv's ``playlist_entry_id``, which the
``loadfile`` reply hands back.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from pushplay.server.adapter import AdapterBindError, PresentationAdapter
from pushplay.server.mpv_client import MPVClient, MPVError
from pushplay.server.playlist import MediaItem

if TYPE_CHECKING:
    from pushplay.config import ServerConfig

logger = logging.getLogger(__name__)

MESSAGE_TARGET = "pushplay"
HEIGHT_OBSERVER_ID = 1
OVERLAY_DURATION_MS = 24 * 3600 * 1000

# Key in the video window -> router command
KEY_BINDINGS = {
    "n": "next",
    "p": "previous",
    "SPACE": "pause_resume",
    "f": "toggle_fullscreen",
    "ESC": "exit_fullscreen",
    "m": "toggle_maximize",
    "a": "cycle_aspect_ratio",
    "s": "stop",
    "q": "exit",
}


def build_mpv_command(config: ServerConfig) -> list[str]:
    """Command line for the long-lived, idle mpv window."""
    cmd = [
        "mpv",
        f"--input-ipc-server={config.mpv_socket}",
        f"--hwdec={config.mpv_hwdec}",
        "--idle=yes",
        "--force-window=immediate",
        "--keep-open=no",
        "--no-terminal",
        "--title=PushPlay",
    ]
    if config.fullscreen:
        cmd.append("--fullscreen")
    return cmd


class _PendingBind:
    """A load waiting for mpv to report on its playlist entry."""

    def __init__(self, item: MediaItem):
        self.item = item
        self.future: Future = Future()
        self.entry_id: int | None = None  # known once loadfile replies


class MpvAdapter(PresentationAdapter):
    """Presentation adapter for a local mpv window."""

    def __init__(
        self,
        config: ServerConfig,
        mpv: MPVClient | None = None,
        events: MPVClient | None = None,
        spawn: bool = True,
    ):
        super().__init__()
        self._config = config
        self.mpv = mpv or MPVClient(config.mpv_socket)
        self._event_client = events or MPVClient(config.mpv_socket)
        self._spawn = spawn
        self._process: subprocess.Popen | None = None
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mpv-io")
        self._event_thread: threading.Thread | None = None
        self._running = False
        self._pending_lock = threading.Lock()
        self._pending: _PendingBind | None = None
        self._playing_entry: int | None = None
        # Media events that arrived before the loadfile reply named their entry
        self._unclaimed: dict[int, list[dict]] = {}
        self._height = 0
        self.fullscreen = config.fullscreen
        self.overlay_text = ""

    # --- Lifecycle ---

    def start(self):
        """Launch mpv, connect both IPC channels, install key bindings."""
        if self._spawn:
            self._launch()
        if not self._wait_for_socket(self.mpv) or not self._wait_for_socket(self._event_client):
            raise AdapterBindError(f"mpv IPC socket never appeared at {self._config.mpv_socket}")

        for key, name in KEY_BINDINGS.items():
            self.mpv.keybind(key, f"script-message {MESSAGE_TARGET} {name}")
        self._event_client.observe_property(HEIGHT_OBSERVER_ID, "osd-height")
        self._height = int(self.mpv.get_property("osd-height", 0) or 0)

        self._running = True
        self._event_thread = threading.Thread(target=self._event_loop, daemon=True, name="mpv-events")
        self._event_thread.start()
        logger.info("mpv adapter started")

    def _launch(self):
        if not shutil.which("mpv"):
            raise AdapterBindError("mpv not found. Install it: sudo apt install mpv")
        if os.path.exists(self._config.mpv_socket):
            try:
                os.remove(self._config.mpv_socket)
                logger.info("Removed stale mpv socket: %s", self._config.mpv_socket)
            except OSError:
                pass
        log_path = os.path.join(self._config.data_dir, "mpv.log")
        os.makedirs(self._config.data_dir, exist_ok=True)
        with open(log_path, "w") as mpv_log:
            self._process = subprocess.Popen(
                build_mpv_command(self._config), stdout=mpv_log, stderr=mpv_log,
            )
        logger.info("Started mpv (pid %d), log at %s", self._process.pid, log_path)

    @staticmethod
    def _wait_for_socket(client: MPVClient, attempts: int = 20) -> bool:
        for _ in range(attempts):
            if client.connect():
                return True
            time.sleep(0.5)
        return False

    def shutdown(self):
        self._running = False
        self._worker.shutdown(wait=False)
        self._event_client.disconnect()
        if self._process and self._process.poll() is None:
            self.mpv.quit()
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
        self.mpv.disconnect()
        logger.info("mpv adapter stopped")

    def _submit(self, fn, *args):
        try:
            return self._worker.submit(fn, *args)
        except RuntimeError:
            logger.debug("mpv worker already shut down, dropping %s", getattr(fn, "__name__", fn))
            return None

    # --- Media requests ---

    def bind(self, item: MediaItem) -> Future:
        pending = _PendingBind(item)
        with self._pending_lock:
            if self._pending is not None:
                # Last writer wins: the older load will never be reported
                self._pending.future.cancel()
            self._pending = pending
        self._submit(self._do_bind, pending)
        return pending.future

    def _do_bind(self, pending: _PendingBind):
        if pending.future.done():
            return
        entry_id = self.mpv.loadfile(pending.item.source_locator)
        if entry_id is None:
            self._finish_bind(pending, AdapterBindError(f"mpv rejected {pending.item.display_name}"))
            return
        with self._pending_lock:
            if self._pending is not pending:
                return
            pending.entry_id = entry_id
            early = self._unclaimed.pop(entry_id, [])
            self._unclaimed.clear()
        for event in early:
            self._media_event(event)

    def _finish_bind(self, pending: _PendingBind | None = None, error: Exception | None = None):
        """Resolve ``pending`` (default: whatever bind is waiting) and clear it."""
        with self._pending_lock:
            current = self._pending
            if current is None or (pending is not None and current is not pending):
                return
            self._pending = None
            if error is None:
                self._playing_entry = current.entry_id
        if current.future.done():
            return
        if error is None:
            current.future.set_result(current.item)
        else:
            current.future.set_exception(error)

    def pause(self):
        self._submit(self.mpv.pause)

    def resume(self):
        self._submit(self.mpv.resume)

    def stop(self):
        with self._pending_lock:
            if self._pending is not None:
                self._pending.future.cancel()
                self._pending = None
            self._playing_entry = None
            self._unclaimed.clear()
        self._submit(self.mpv.stop)

    def set_muted(self, muted: bool):
        self._submit(self.mpv.set_mute, muted)

    def render_height(self) -> int:
        return self._height

    def apply_geometry(self, size: tuple[int, int] | None):
        # mpv scales the picture inside its window; override the aspect it uses
        value = "-1" if size is None else f"{size[0]}:{size[1]}"
        self._submit(self.mpv.set_property, "video-aspect-override", value)

    def show_error(self, message: str):
        self._show_text(f"Error: {message}", self._config.osd_duration_ms * 2)

    def on_state_change(self, event_type: str, snapshot: dict):
        if snapshot.get("playlist_visible"):
            self.overlay_text = render_overlay(snapshot, self.connect_hint)
            self._show_text(self.overlay_text, OVERLAY_DURATION_MS)
        elif self.overlay_text:
            self.overlay_text = ""
            self._show_text("", 0)

    def _show_text(self, text: str, duration_ms: int):
        if not self._config.osd_enabled:
            return
        self._submit(self.mpv.show_text, text, duration_ms)

    # --- Window chrome ---

    def toggle_fullscreen(self):
        super().toggle_fullscreen()
        self._submit(self.mpv.set_property, "fullscreen", self.fullscreen)

    def minimize(self):
        self._submit(self.mpv.set_property, "window-minimized", True)

    def toggle_maximize(self):
        super().toggle_maximize()
        self._submit(self.mpv.set_property, "window-maximized", self.maximized)

    def close(self):
        self._submit(self.mpv.quit)

    # --- Events ---

    def _event_loop(self):
        while self._running:
            try:
                event = self._event_client.read_event(timeout=1.0)
            except MPVError as e:
                if self._running:
                    logger.info("mpv went away: %s", e)
                    self._running = False
                    self._finish_bind(error=AdapterBindError("mpv exited"))
                    self._emit_closed()
                return
            if event is not None:
                try:
                    self.handle_event(event)
                except Exception:
                    logger.exception("Failed to handle mpv event %s", event.get("event"))

    def handle_event(self, event: dict):
        """React to a single mpv IPC event."""
        name = event.get("event")
        if name in ("file-loaded", "end-file"):
            self._media_event(event)
        elif name == "client-message":
            args = event.get("args") or []
            if len(args) >= 2 and args[0] == MESSAGE_TARGET:
                self._emit_command(args[1])
        elif name == "property-change" and event.get("name") == "osd-height":
            height = int(event.get("data") or 0)
            if height > 0 and height != self._height:
                self._height = height
                self._emit_resize()
        elif name == "shutdown":
            self._running = False
            self._emit_closed()

    def _media_event(self, event: dict):
        """Apply ``file-loaded`` / ``end-file`` to the entry it reports on.

        Events for entries that were replaced since are dropped, so a late
        report about an old file never settles a newer load.
        """
        name = event.get("event")
        entry_id = event.get("playlist_entry_id", 0)
        with self._pending_lock:
            pending = self._pending
            if pending is not None and pending.entry_id is None:
                # _do_bind replays these once loadfile has replied
                self._unclaimed.setdefault(entry_id, []).append(event)
                return
            if pending is not None:
                owner = "bind" if pending.entry_id == entry_id else None
            elif self._playing_entry is not None and self._playing_entry == entry_id:
                owner = "playing"
                if name == "end-file":
                    self._playing_entry = None
            else:
                owner = None
        if owner is None:
            logger.debug("Ignoring %s for replaced entry %s", name, entry_id)
            return

        detail = event.get("file_error", "unknown error")
        reason = event.get("reason")
        if owner == "bind":
            if name == "file-loaded":
                self._finish_bind(pending)
            elif reason == "error":
                self._finish_bind(pending, AdapterBindError(f"mpv could not play file: {detail}"))
        elif name == "end-file":
            if reason == "error":
                self._emit_failure(AdapterBindError(f"Playback failed: {detail}"))
            elif reason == "eof":
                self._emit_media_end()


def render_overlay(snapshot: dict, connect_hint: str = "") -> str:
    """Text shown on the video window while the playlist is visible."""
    lines = []
    if snapshot.get("last_error"):
        lines.extend([f"Error: {snapshot['last_error']}", ""])
    items = snapshot.get("playlist") or []
    if items:
        lines.append("Playlist")
        for entry in items:
            marker = ">" if entry.get("current") else " "
            lines.append(f"{marker} {entry['index'] + 1}. {entry['display_name']}")
    else:
        lines.append("Playlist is empty - send a video from your phone")
    if connect_hint:
        lines.append("")
        lines.append(connect_hint)
    return "\n".join(lines)
