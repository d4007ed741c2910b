"""Shared test fixtures for the PushPlay test suite."""

from concurrent.futures import Future

import pytest

from pushplay.config import ServerConfig
from pushplay.server.adapter import AdapterBindError, HeadlessAdapter
from pushplay.server.app import create_app
from pushplay.server.controller import PlaybackController
from pushplay.server.playlist import MediaItem
from pushplay.server.router import CommandRouter


class RecordingAdapter(HeadlessAdapter):
    """Headless adapter that records calls and can fail or hold binds."""

    def __init__(self, height: int = 720):
        super().__init__(height=height)
        self.calls: list[tuple] = []
        self.fail_binds = False
        self.defer_binds = False
        self.deferred: list[Future] = []
        self.errors: list[str] = []
        self.snapshots: list[tuple[str, dict]] = []
        self.closed = False

    def bind(self, item):
        self.calls.append(("bind", item.display_name))
        self.bound = item
        future: Future = Future()
        if self.defer_binds:
            self.deferred.append(future)
        elif self.fail_binds:
            future.set_exception(AdapterBindError(f"cannot play {item.display_name}"))
        else:
            future.set_result(item)
        return future

    def pause(self):
        self.calls.append(("pause",))

    def resume(self):
        self.calls.append(("resume",))

    def stop(self):
        self.calls.append(("stop",))
        super().stop()

    def set_muted(self, muted):
        self.calls.append(("set_muted", muted))
        super().set_muted(muted)

    def show_error(self, message):
        self.errors.append(message)

    def on_state_change(self, event_type, snapshot):
        self.snapshots.append((event_type, snapshot))

    def close(self):
        self.closed = True

    # Simulated local input
    def press(self, name):
        self._emit_command(name)

    def finish_media(self):
        self._emit_media_end()

    def break_playback(self, message):
        self._emit_failure(AdapterBindError(message))


def _make_items(*names):
    return [MediaItem(display_name=n, source_locator=f"file:///videos/{n}") for n in names]


@pytest.fixture
def make_items():
    """Factory: make_items("a.mp4", "b.mp4") -> list of MediaItem."""
    return _make_items


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
def controller(adapter):
    """Controller on its own, bind failures applied directly."""
    return PlaybackController(adapter)


@pytest.fixture
def router(controller):
    """A running command router, stopped after the test."""
    exits = []
    r = CommandRouter(controller, on_exit=lambda: exits.append(True), command_timeout=2.0)
    r.exits = exits
    r.start()
    yield r
    r.stop()


@pytest.fixture
def server_config(tmp_path):
    return ServerConfig(
        data_dir=str(tmp_path / "data"),
        media_dir=str(tmp_path / "media"),
        mpv_socket=str(tmp_path / "mpv-socket"),
        announce=False,
    )


@pytest.fixture
def app(server_config):
    """Flask test app on a recording adapter (no mpv)."""
    app = create_app(server_config, adapter=RecordingAdapter())
    app.config["TESTING"] = True
    yield app
    app.context.shutdown()


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
