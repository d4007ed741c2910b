"""Tests for application context wiring."""

import pytest

from pushplay.config import ServerConfig
from pushplay.server.context import build_context


@pytest.fixture
def context(server_config, adapter):
    ctx = build_context(server_config, adapter=adapter)
    yield ctx
    ctx.shutdown()


class TestBuildContext:
    def test_upload_source_by_default(self, context):
        assert [s["type"] for s in context.sources.list_sources()] == ["upload"]
        assert context.announcer is None

    def test_connect_hint_on_adapter(self, context):
        assert context.adapter.connect_hint == f"Send videos to {context.url}"
        assert context.url.endswith(":3000")

    def test_local_source_opens_files(self, tmp_path, adapter):
        videos = tmp_path / "videos"
        videos.mkdir()
        (videos / "a.mp4").write_bytes(b"x")
        config = ServerConfig(
            data_dir=str(tmp_path / "data"),
            sources=["local"],
            local_paths=[str(videos)],
            announce=False,
        )
        ctx = build_context(config, adapter=adapter)
        ctx.start()
        try:
            ctx.router.flush()
            status = ctx.status()
            assert status["state"] == "playing"
            assert status["current"]["display_name"] == "a.mp4"
        finally:
            ctx.shutdown()

    def test_start_publishes_initial_state(self, context):
        context.start()
        context.router.flush()
        event_type, snapshot = context.adapter.snapshots[0]
        assert event_type == "state"
        assert snapshot["playlist_visible"] is True
        assert context.event_bus.recent(1)[0]["title"] == "Idle"

    def test_status_includes_runtime(self, context):
        context.start()
        status = context.status()
        assert status["router_running"] is True
        assert status["window"] == {"fullscreen": False, "maximized": False}
        assert status["url"] == context.url

    def test_shutdown_stops_router(self, context):
        context.start()
        context.shutdown()
        assert not context.router.is_running

    def test_exit_hook(self, server_config, adapter):
        calls = []
        ctx = build_context(server_config, adapter=adapter, on_exit=lambda: calls.append(1))
        ctx.start()
        try:
            ctx.router.dispatch_remote("exit")
            ctx.router.flush()
            assert calls == [1]
        finally:
            ctx.shutdown()
