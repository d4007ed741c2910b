"""Tests for the playback controller state machine."""

import pytest

from pushplay.server.adapter import AdapterBindError
from pushplay.server.controller import (
    ASPECT_RATIOS,
    PlaybackState,
    aspect_ratio_value,
    compute_render_size,
)


@pytest.fixture
def loaded(controller, make_items):
    """Controller with [A, B, C], nothing playing yet."""
    for item in make_items("A", "B", "C"):
        controller.append(item)
    return controller


class TestAspectRatio:
    def test_nine_modes(self):
        assert len(ASPECT_RATIOS) == 9
        assert ASPECT_RATIOS[0] == "Default"

    def test_value(self):
        assert aspect_ratio_value("Default") is None
        assert aspect_ratio_value("16:9") == pytest.approx(16 / 9)
        assert aspect_ratio_value("2.35:1") == pytest.approx(2.35)

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            aspect_ratio_value("3:2")

    def test_render_size(self):
        assert compute_render_size("16:9", 720) == (1280, 720)
        assert compute_render_size("4:3", 1080) == (1440, 1080)
        assert compute_render_size("1:1", 500) == (500, 500)

    def test_render_size_rounds_half_up(self):
        # 2.35 * 10 = 23.5
        assert compute_render_size("2.35:1", 10) == (24, 10)

    def test_render_size_default_is_natural(self):
        assert compute_render_size("Default", 720) is None

    def test_render_size_without_surface(self):
        assert compute_render_size("16:9", 0) is None

    def test_cycle_returns_to_default(self, controller):
        for _ in range(len(ASPECT_RATIOS)):
            controller.cycle_aspect_ratio()
        assert controller.aspect_ratio == "Default"
        assert controller.adapter.geometry is None

    def test_set_applies_geometry(self, controller):
        controller.set_aspect_ratio("16:9")
        assert controller.adapter.geometry == (1280, 720)
        assert controller.status()["aspect_ratio"] == "16:9"

    def test_set_before_surface_height_known(self, controller):
        controller.adapter.height = 0
        controller.adapter.geometry = (1, 1)
        controller.set_aspect_ratio("16:9")
        assert controller.aspect_ratio == "16:9"
        # Nothing sent yet: clearing the override would contradict the mode
        assert controller.adapter.geometry == (1, 1)
        controller.adapter.height = 1080
        controller.refresh_geometry()
        assert controller.adapter.geometry == (1920, 1080)

    def test_refresh_keeps_default_natural(self, controller):
        controller.adapter.geometry = None
        controller.refresh_geometry()
        assert controller.adapter.geometry is None

    def test_set_unknown_leaves_state(self, controller):
        with pytest.raises(ValueError):
            controller.set_aspect_ratio("21:9")
        assert controller.aspect_ratio == "Default"


class TestLoad:
    def test_initial_state(self, controller):
        status = controller.status()
        assert status["state"] == "idle"
        assert status["current_index"] == -1
        assert status["playlist_visible"] is True

    def test_load_plays_and_hides_playlist(self, loaded):
        item = loaded.load(1)
        assert item.display_name == "B"
        assert loaded.state == PlaybackState.PLAYING
        assert loaded.playlist_visible is False
        assert loaded.adapter.bound.display_name == "B"

    def test_load_bad_index(self, loaded):
        with pytest.raises(IndexError):
            loaded.load(5)
        assert loaded.state == PlaybackState.IDLE

    def test_load_passes_through_loading(self, loaded):
        states = []
        loaded.add_listener(lambda event, snap: states.append(snap["state"]))
        loaded.load(0)
        assert states[-2:] == ["loading", "playing"]

    def test_bind_failure_stops_and_shows_error(self, loaded):
        loaded.adapter.fail_binds = True
        loaded.load(0)
        assert loaded.state == PlaybackState.STOPPED
        assert loaded.playlist_visible is True
        assert "cannot play A" in loaded.last_error
        assert loaded.adapter.errors == [loaded.last_error]

    def test_late_failure_of_superseded_load_is_ignored(self, loaded):
        loaded.adapter.defer_binds = True
        loaded.load(0)
        loaded.load(1)
        first, second = loaded.adapter.deferred
        first.set_exception(AdapterBindError("too late"))
        assert loaded.state == PlaybackState.PLAYING
        assert loaded.last_error is None
        second.set_exception(AdapterBindError("current load"))
        assert loaded.state == PlaybackState.STOPPED

    def test_non_bind_error_is_wrapped(self, loaded):
        seen = []
        loaded.failure_sink = lambda error, generation: seen.append(error)
        loaded.adapter.defer_binds = True
        loaded.load(0)
        loaded.adapter.deferred[0].set_exception(OSError("socket gone"))
        assert isinstance(seen[0], AdapterBindError)

    def test_new_load_clears_error(self, loaded):
        loaded.adapter.fail_binds = True
        loaded.load(0)
        loaded.adapter.fail_binds = False
        loaded.load(1)
        assert loaded.last_error is None


class TestTransport:
    def test_play_on_empty_is_noop(self, controller):
        assert controller.play() is False
        assert controller.state == PlaybackState.IDLE

    def test_play_loads_current(self, loaded):
        assert loaded.play() is True
        assert loaded.state == PlaybackState.PLAYING
        assert loaded.adapter.bound.display_name == "A"

    def test_pause_and_resume(self, loaded):
        loaded.play()
        assert loaded.pause_resume() is True
        assert loaded.state == PlaybackState.PAUSED
        loaded.pause_resume()
        assert loaded.state == PlaybackState.PLAYING
        assert ("pause",) in loaded.adapter.calls
        assert ("resume",) in loaded.adapter.calls

    def test_pause_only_from_playing(self, loaded):
        assert loaded.pause() is False
        assert loaded.state == PlaybackState.IDLE

    @pytest.mark.parametrize("setup", ["idle", "playing", "paused", "stopped"])
    def test_stop_from_any_state(self, loaded, setup):
        if setup in ("playing", "paused"):
            loaded.play()
        if setup == "paused":
            loaded.pause()
        if setup == "stopped":
            loaded.stop()
        loaded.stop()
        assert loaded.state == PlaybackState.STOPPED
        assert loaded.playlist_visible is True
        assert loaded.adapter.bound is None

    def test_next_scenario_wraps(self, loaded):
        loaded.play()
        assert loaded.next().display_name == "B"
        assert loaded.next().display_name == "C"
        assert loaded.next().display_name == "A"
        assert loaded.playlist.current_index == 0
        assert loaded.state == PlaybackState.PLAYING

    def test_previous_while_playing_loads(self, loaded):
        loaded.play()
        loaded.previous()
        assert loaded.adapter.bound.display_name == "C"

    def test_next_while_stopped_moves_cursor_only(self, loaded):
        loaded.stop()
        loaded.next()
        assert loaded.playlist.current_index == 1
        assert loaded.state == PlaybackState.STOPPED
        assert loaded.adapter.bound is None

    def test_next_on_empty_is_noop(self, controller):
        assert controller.next() is None
        assert controller.previous() is None
        assert controller.state == PlaybackState.IDLE

    def test_media_end_advances(self, loaded):
        loaded.play()
        loaded.media_ended()
        assert loaded.adapter.bound.display_name == "B"

    def test_media_end_ignored_when_paused(self, loaded):
        loaded.play()
        loaded.pause()
        loaded.media_ended()
        assert loaded.playlist.current_index == 0


class TestPlaylistMutations:
    def test_append_notifies(self, controller, make_items):
        events = []
        controller.add_listener(lambda event, snap: events.append(event))
        controller.append(make_items("A")[0])
        assert events == ["playlist"]
        assert controller.status()["playlist_length"] == 1

    def test_remove_only_item_while_playing(self, controller, make_items):
        controller.append(make_items("A")[0])
        controller.play()
        controller.remove_at(0)
        assert controller.playlist.current_index == -1
        assert controller.state == PlaybackState.STOPPED

    def test_remove_only_item_while_idle(self, controller, make_items):
        controller.append(make_items("A")[0])
        controller.remove_at(0)
        assert controller.playlist.current_index == -1
        assert controller.state == PlaybackState.IDLE

    def test_remove_current_while_playing_loads_next(self, loaded):
        loaded.load(1)
        loaded.remove_at(1)
        assert loaded.adapter.bound.display_name == "C"
        assert loaded.state == PlaybackState.PLAYING

    def test_remove_other_keeps_playing(self, loaded):
        loaded.load(2)
        loaded.remove_at(0)
        assert loaded.playlist.current().display_name == "C"
        assert loaded.adapter.calls.count(("bind", "C")) == 1

    def test_replace_playlist_starts_first(self, loaded, make_items):
        loaded.replace_playlist(make_items("X", "Y"))
        assert loaded.adapter.bound.display_name == "X"
        assert loaded.status()["playlist_length"] == 2


class TestSettingsAndObservers:
    def test_toggle_mute(self, controller):
        assert controller.toggle_mute() is True
        assert controller.adapter.muted is True
        assert controller.toggle_mute() is False

    def test_status_is_a_copy(self, loaded):
        status = loaded.status()
        status["playlist"].clear()
        assert len(loaded.status()["playlist"]) == 3

    def test_broken_listener_does_not_break_others(self, loaded):
        seen = []

        def broken(event, snap):
            raise RuntimeError("listener bug")

        loaded.add_listener(broken)
        loaded.add_listener(lambda event, snap: seen.append(event))
        loaded.play()
        assert "playback" in seen

    def test_remove_listener(self, controller, make_items):
        seen = []
        listener = lambda event, snap: seen.append(event)  # noqa: E731
        controller.add_listener(listener)
        controller.remove_listener(listener)
        controller.remove_listener(listener)
        controller.append(make_items("A")[0])
        assert seen == []
