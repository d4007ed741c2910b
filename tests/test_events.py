"""Tests for EventBus."""

import queue

import pytest

from pushplay.server.events import EventBus


@pytest.fixture
def event_bus():
    return EventBus(history=5)


def snapshot(state="playing", name="clip.mp4", error=None):
    return {
        "state": state,
        "current": {"display_name": name} if name else None,
        "last_error": error,
    }


class TestEventBus:
    def test_emit_pushes_to_subscriber(self, event_bus):
        q = event_bus.subscribe()
        event_bus.emit("playback", "Now playing", "clip.mp4")
        event = q.get(timeout=1)
        assert event["type"] == "playback"
        assert event["title"] == "Now playing"
        assert event["detail"] == "clip.mp4"
        assert "timestamp" in event
        event_bus.unsubscribe(q)

    def test_multiple_subscribers(self, event_bus):
        q1 = event_bus.subscribe()
        q2 = event_bus.subscribe()
        event_bus.emit("error", "Test")
        assert q1.get(timeout=1)["type"] == "error"
        assert q2.get(timeout=1)["type"] == "error"

    def test_unsubscribe(self, event_bus):
        q = event_bus.subscribe()
        assert event_bus.subscriber_count == 1
        event_bus.unsubscribe(q)
        assert event_bus.subscriber_count == 0
        event_bus.emit("state", "After unsub")

    def test_unsubscribe_nonexistent(self, event_bus):
        event_bus.unsubscribe(queue.Queue())

    def test_dead_subscriber_cleanup(self, event_bus):
        """Full queues get dropped on the next emit."""
        event_bus.subscribe()
        for i in range(50):
            event_bus.emit("fill", f"Event {i}")
        assert event_bus.subscriber_count == 1
        event_bus.emit("overflow", "This triggers cleanup")
        assert event_bus.subscriber_count == 0


class TestRecent:
    def test_newest_first(self, event_bus):
        for i in range(3):
            event_bus.emit("state", f"e{i}")
        assert [e["title"] for e in event_bus.recent()] == ["e2", "e1", "e0"]

    def test_history_is_bounded(self, event_bus):
        for i in range(10):
            event_bus.emit("state", f"e{i}")
        titles = [e["title"] for e in event_bus.recent()]
        assert titles == ["e9", "e8", "e7", "e6", "e5"]

    def test_limit(self, event_bus):
        for i in range(4):
            event_bus.emit("state", f"e{i}")
        assert len(event_bus.recent(2)) == 2


class TestStateListener:
    def test_playing_title(self, event_bus):
        event_bus.on_state_change("playback", snapshot())
        event = event_bus.recent(1)[0]
        assert event["title"] == "Playing: clip.mp4"
        assert event["state"]["state"] == "playing"

    def test_error_title(self, event_bus):
        event_bus.on_state_change("error", snapshot("stopped", error="no codec"))
        assert event_bus.recent(1)[0]["title"] == "Playback failed: no codec"

    def test_idle_title(self, event_bus):
        event_bus.on_state_change("state", snapshot("idle", name=None))
        assert event_bus.recent(1)[0]["title"] == "Idle"
