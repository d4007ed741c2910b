"""Command router - the single serialization point for playback commands.

Commands come from two places:

- the remote channel (HTTP ``/control`` and the REST API), on Flask
  request threads, which only enqueue and return;
- the local UI (key bindings on the video window), which dispatches
  synchronously and waits for the command to finish.

Both land on one queue drained by one thread, so the controller never sees
two commands at once (a ``next`` can't race a ``stop``).
"""

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout

from pushplay.server.adapter import AdapterBindError
from pushplay.server.commands import (
    SOURCE_INTERNAL,
    SOURCE_LOCAL,
    SOURCE_REMOTE,
    WINDOW_ACTIONS,
    Command,
    UnknownCommandError,
    parse_remote,
)
from pushplay.server.controller import PlaybackController
from pushplay.server.playlist import EmptyPlaylistError, MediaItem

logger = logging.getLogger(__name__)

_SHUTDOWN = object()


class CommandRouter:
    """Queues commands and applies them to the controller one at a time."""

    def __init__(
        self,
        controller: PlaybackController,
        on_exit: Callable[[], object] | None = None,
        command_timeout: float = 5.0,
    ):
        self.controller = controller
        self.adapter = controller.adapter
        self.on_exit = on_exit
        self.command_timeout = command_timeout
        self._queue: queue.Queue = queue.Queue()
        self._submit_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._running = False
        self._exiting = False
        self.processed = 0

        c = controller
        self._handlers: dict[str, Callable] = {
            "append": c.append,
            "load": c.load,
            "load_last": c.load_last,
            "remove_at": c.remove_at,
            "open_files": c.replace_playlist,
            "play": c.play,
            "pause": c.pause,
            "pause_resume": c.pause_resume,
            "stop": c.stop,
            "next": c.next,
            "previous": c.previous,
            "media_ended": c.media_ended,
            "toggle_mute": c.toggle_mute,
            "set_aspect_ratio": c.set_aspect_ratio,
            "cycle_aspect_ratio": c.cycle_aspect_ratio,
            "refresh_geometry": c.refresh_geometry,
            "adapter_failed": self._adapter_failed,
            "toggle_fullscreen": self.adapter.toggle_fullscreen,
            "exit_fullscreen": self.adapter.exit_fullscreen,
            "toggle_maximize": self.adapter.toggle_maximize,
            "window": self._window,
            "window_closed": self._window_closed,
            "exit": self._exit,
            "refresh": c.publish,
            "barrier": lambda: None,
        }

        controller.failure_sink = self._submit_failure
        self.adapter.connect(
            on_command=self.dispatch_local,
            on_media_end=lambda: self.submit("media_ended", source=SOURCE_LOCAL),
            on_closed=lambda: self.submit("window_closed", source=SOURCE_LOCAL),
            on_failure=self._report_playback_error,
            on_resize=lambda: self.submit("refresh_geometry", source=SOURCE_LOCAL),
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def knows(self, name: str) -> bool:
        return name in self._handlers

    def start(self):
        """Start the dispatch thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._loop, daemon=True, name="command-router")
        self._thread.start()
        logger.info("Command router started")

    def stop(self, timeout: float = 5.0):
        """Drain what is queued, then stop the dispatch thread."""
        if not self._running:
            return
        self._queue.put(_SHUTDOWN)
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None
        self._running = False
        logger.info("Command router stopped")

    # --- Entry points ---

    def submit(self, name: str, source: str = SOURCE_INTERNAL, **args) -> Future:
        """Enqueue a command and return without waiting."""
        future: Future = Future()
        self._queue.put((Command(name, args, source), future))
        return future

    def dispatch(self, name: str, source: str = SOURCE_INTERNAL, timeout: float | None = None, **args):
        """Enqueue a command and wait for its result.

        Re-raises IndexError / ValueError from the controller so callers can
        report bad arguments.
        """
        if threading.current_thread() is self._thread:
            # Already on the dispatch path; queueing would deadlock
            future: Future = Future()
            self._execute(Command(name, args, source), future)
        else:
            future = self.submit(name, source, **args)
        return future.result(timeout=timeout or self.command_timeout)

    def dispatch_local(self, name: str):
        """Entry point for local input events (key bindings)."""
        if not self.knows(name):
            logger.warning("Unknown local command dropped: %s", name)
            return None
        try:
            return self.dispatch(name, source=SOURCE_LOCAL)
        except FutureTimeout:
            logger.warning("Local command %s timed out", name)
        except Exception as e:
            logger.warning("Local command %s failed: %s", name, e)
        return None

    def dispatch_remote(self, tag: str) -> Future | None:
        """Entry point for the remote channel.

        Unknown tags are logged and dropped; returns None in that case.
        """
        try:
            cmd = parse_remote(tag)
        except UnknownCommandError:
            logger.info("Unknown remote command dropped: %r", tag)
            return None
        logger.debug("Remote command: %s -> %s", tag, cmd.name)
        return self.submit(cmd.name, source=SOURCE_REMOTE)

    def notify_arrival(self, file_name: str, file_path: str) -> Future:
        """A media source produced a new file: append it and play it.

        The two commands are enqueued back to back so another arrival can't
        slip between them.
        """
        item = MediaItem.from_path(file_path, display_name=file_name)
        with self._submit_lock:
            self.submit("append", SOURCE_REMOTE, item=item)
            return self.submit("load_last", SOURCE_REMOTE)

    def flush(self, timeout: float | None = None):
        """Block until every command queued before this call has run."""
        self.dispatch("barrier", timeout=timeout)

    # --- Dispatch loop ---

    def _loop(self):
        while True:
            entry = self._queue.get()
            if entry is _SHUTDOWN:
                break
            cmd, future = entry
            try:
                self._execute(cmd, future)
            except Exception:
                # _execute already converts handler errors; this is the last guard
                logger.exception("Router failed while handling %s", cmd.name)
            self.processed += 1

    def _execute(self, cmd: Command, future: Future):
        if not future.set_running_or_notify_cancel():
            return
        handler = self._handlers.get(cmd.name)
        if handler is None:
            logger.warning("Unknown command dropped: %s (from %s)", cmd.name, cmd.source)
            future.set_result(None)
            return

        logger.debug("Dispatching %s from %s", cmd.name, cmd.source)
        try:
            result = handler(**cmd.args)
        except EmptyPlaylistError as e:
            logger.info("%s ignored: %s", cmd.name, e)
            future.set_result(None)
        except AdapterBindError as e:
            self.controller.fail(e)
            future.set_result(None)
        except (IndexError, ValueError) as e:
            logger.warning("Rejected %s from %s: %s", cmd.name, cmd.source, e)
            future.set_exception(e)
        except Exception as e:
            logger.exception("Command %s failed: %s", cmd.name, e)
            future.set_exception(e)
        else:
            future.set_result(result)

    # --- Internal handlers ---

    def _submit_failure(self, error: Exception, generation: int):
        self.submit("adapter_failed", error=error, generation=generation)

    def _report_playback_error(self, error: Exception):
        # Tied to the load that is current now; a load queued meanwhile wins
        self._submit_failure(error, self.controller.generation)

    def _adapter_failed(self, error: Exception, generation: int | None = None):
        self.controller.fail(error, generation)

    def _window(self, action: str):
        method = WINDOW_ACTIONS.get(action)
        if method is None:
            raise ValueError(f"Unknown window action: {action}")
        if method == "close":
            return self._exit()
        getattr(self.adapter, method)()
        return self.adapter.window_state()

    def _exit(self):
        logger.info("Exit requested")
        self.adapter.close()
        self._run_exit_hook()

    def _window_closed(self):
        logger.info("Video window closed")
        self._run_exit_hook()

    def _run_exit_hook(self):
        if self._exiting:
            return
        self._exiting = True
        if self.on_exit:
            self.on_exit()
