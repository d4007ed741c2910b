"""mpv JSON IPC client.

Talks to mpv over its Unix domain socket. Replies are matched to requests by
``request_id``; asynchronous event messages (``file-loaded``, ``end-file``,
``client-message``, ``property-change`` ...) are buffered so a dedicated
listener can pick them up with ``read_event()``.
Ref: https://mpv.io/manual/master/#json-ipc
"""

import json
import logging
import socket
import threading
import time
from collections import deque

logger = logging.getLogger(__name__)


class MPVError(Exception):
    """Error communicating with mpv."""


class MPVClient:
    """Client for mpv's JSON IPC protocol over Unix socket.

    Usage:
        client = MPVClient("/tmp/pushplay-mpv-socket")
        client.connect()
        client.loadfile("file:///home/me/clip.mp4")
        client.set_property("pause", True)
        event = client.read_event(timeout=1.0)
    """

    def __init__(self, socket_path: str = "/tmp/pushplay-mpv-socket"):
        self.socket_path = socket_path
        self._sock: socket.socket | None = None
        self._lock = threading.Lock()
        self._request_id = 0
        self._recv_buffer = b""
        self._events: deque[dict] = deque(maxlen=256)

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self, timeout: float = 5.0) -> bool:
        """Connect to the mpv IPC socket.

        Returns True if connected, False if the socket isn't there yet.
        """
        with self._lock:
            if self._sock is not None:
                return True
            try:
                sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                sock.settimeout(timeout)
                sock.connect(self.socket_path)
                self._sock = sock
                self._recv_buffer = b""
                logger.info("Connected to mpv at %s", self.socket_path)
                return True
            except (FileNotFoundError, ConnectionRefusedError):
                logger.debug("mpv socket not available at %s", self.socket_path)
                return False
            except OSError as e:
                logger.warning("Failed to connect to mpv: %s", e)
                return False

    def disconnect(self):
        """Close the connection."""
        with self._lock:
            self._close_locked()

    def _close_locked(self):
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
            self._recv_buffer = b""

    def _send(self, data: dict) -> dict | None:
        """Send a JSON command and wait for the matching reply."""
        if not self._sock and not self.connect():
            return None

        with self._lock:
            if not self._sock:
                return None
            self._request_id += 1
            request_id = self._request_id
            data["request_id"] = request_id
            msg = json.dumps(data) + "\n"
            try:
                self._sock.sendall(msg.encode("utf-8"))
            except OSError:
                self._close_locked()
                return None
            return self._recv_until(lambda m: m.get("request_id") == request_id)

    def _read_line(self) -> dict | None:
        """Pop one decoded message from the buffer, if a full line is there."""
        while b"\n" in self._recv_buffer:
            line, self._recv_buffer = self._recv_buffer.split(b"\n", 1)
            if not line.strip():
                continue
            try:
                return json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Dropping malformed IPC line: %r", line[:80])
        return None

    def _recv_until(self, match, timeout: float = 5.0) -> dict | None:
        """Read messages until ``match(msg)`` is true; buffer events on the way."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            msg = self._read_line()
            while msg is not None:
                if "event" in msg:
                    self._events.append(msg)
                    if match(msg):
                        return msg
                elif match(msg):
                    return msg
                msg = self._read_line()

            try:
                remaining = max(0.05, deadline - time.monotonic())
                self._sock.settimeout(remaining)
                chunk = self._sock.recv(4096)
                if not chunk:
                    self._close_locked()
                    raise MPVError("mpv closed the IPC connection")
                self._recv_buffer += chunk
            except socket.timeout:
                break
            except OSError as e:
                self._close_locked()
                raise MPVError(f"IPC read failed: {e}") from e
        return None

    def read_event(self, timeout: float = 1.0) -> dict | None:
        """Return the next event message, or None if none arrived in time.

        Raises MPVError when the connection is gone (mpv exited).
        """
        if self._events:
            return self._events.popleft()
        if not self._sock:
            raise MPVError("Not connected")
        with self._lock:
            if not self._sock:
                raise MPVError("Not connected")
            msg = self._recv_until(lambda m: "event" in m, timeout=timeout)
        if msg is not None and self._events and self._events[-1] is msg:
            self._events.pop()
        return msg

    def command(self, *args) -> dict | None:
        """Send a command to mpv.

        Examples:
            client.command("stop")
            client.command("loadfile", "file:///tmp/a.mp4", "replace")
            client.command("cycle", "fullscreen")
        """
        try:
            return self._send({"command": list(args)})
        except MPVError as e:
            logger.warning("mpv command %s failed: %s", args[0] if args else "?", e)
            return None

    @staticmethod
    def _ok(resp: dict | None) -> bool:
        return resp is not None and resp.get("error") == "success"

    def get_property(self, name: str, default=None):
        """Get an mpv property value.

        Properties used by PushPlay:
            pause        - Whether paused (bool)
            mute         - Whether muted (bool)
            osd-height   - Height of the video window in pixels
            fullscreen   - Whether the window is fullscreen
            path         - Currently loaded file/URL
            idle-active  - Whether mpv has nothing loaded
        """
        resp = self.command("get_property", name)
        if self._ok(resp):
            return resp.get("data")
        return default

    def set_property(self, name: str, value) -> bool:
        return self._ok(self.command("set_property", name, value))

    def cycle(self, name: str) -> bool:
        """Flip a boolean/choice property (fullscreen, window-maximized ...)."""
        return self._ok(self.command("cycle", name))

    def observe_property(self, observer_id: int, name: str) -> bool:
        """Ask mpv to send ``property-change`` events for ``name``."""
        return self._ok(self.command("observe_property", observer_id, name))

    def keybind(self, key: str, mpv_command: str) -> bool:
        """Bind a key in the video window to an mpv input command."""
        return self._ok(self.command("keybind", key, mpv_command))

    def loadfile(self, locator: str) -> int | None:
        """Replace whatever is playing with ``locator`` and start it.

        Returns the playlist entry id mpv assigned to the file, which its
        ``file-loaded`` / ``end-file`` events carry as ``playlist_entry_id``.
        Builds of mpv too old to report one give 0. None if mpv refused.
        """
        resp = self.command("loadfile", locator, "replace")
        if not self._ok(resp):
            return None
        data = resp.get("data")
        if isinstance(data, dict):
            return int(data.get("playlist_entry_id", 0))
        return 0

    def pause(self) -> bool:
        return self.set_property("pause", True)

    def resume(self) -> bool:
        return self.set_property("pause", False)

    def stop(self) -> bool:
        """Stop playback and clear the loaded file."""
        return self._ok(self.command("stop"))

    def set_mute(self, muted: bool) -> bool:
        return self.set_property("mute", muted)

    def show_text(self, text: str, duration_ms: int = 2500) -> bool:
        """Show text on the video window's OSD."""
        return self._ok(self.command("show-text", text, duration_ms))

    def quit(self) -> bool:
        """Tell mpv to exit."""
        resp = self.command("quit")
        self.disconnect()
        return resp is not None
