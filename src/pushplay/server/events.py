"""Event bus for real-time push notifications.

Registered as a playback-controller listener. Every state change is kept
in a short in-memory history and pushed to Server-Sent-Events subscribers
(the phone app, the terminal remote). Nothing is persisted.
"""

import logging
import queue
import threading
import time
from collections import deque

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe event bus with SSE subscriber management."""

    def __init__(self, history: int = 100):
        self._subscribers: list[queue.Queue] = []
        self._recent: deque[dict] = deque(maxlen=history)
        self._lock = threading.Lock()

    def emit(self, event_type: str, title: str = "", detail: str = "", state: dict | None = None):
        """Emit an event to all subscribers.

        Args:
            event_type: Category ("state", "playback", "playlist", "settings", "error")
            title: Short human-readable summary
            detail: Longer detail text
            state: Controller snapshot at the time of the event
        """
        event_data = {
            "type": event_type,
            "title": title,
            "detail": detail,
            "state": state,
            "timestamp": time.time(),
        }

        dead = []
        with self._lock:
            self._recent.append(event_data)
            for q in self._subscribers:
                try:
                    q.put_nowait(event_data)
                except queue.Full:
                    dead.append(q)

            for q in dead:
                self._subscribers.remove(q)
                logger.debug("Removed dead SSE subscriber (queue full)")

        logger.debug("Emitted event: %s - %s", event_type, title)

    def on_state_change(self, event_type: str, snapshot: dict):
        """Controller listener: turn a snapshot into an event."""
        current = snapshot.get("current") or {}
        if event_type == "error":
            title = f"Playback failed: {snapshot.get('last_error') or 'unknown error'}"
        elif current:
            title = f"{snapshot['state'].capitalize()}: {current.get('display_name', '')}"
        else:
            title = snapshot["state"].capitalize()
        self.emit(event_type, title, state=snapshot)

    def subscribe(self) -> queue.Queue:
        """Create a new SSE subscriber queue."""
        q = queue.Queue(maxsize=50)
        with self._lock:
            self._subscribers.append(q)
        logger.debug("New SSE subscriber (total: %d)", len(self._subscribers))
        return q

    def unsubscribe(self, q: queue.Queue):
        """Remove a subscriber queue."""
        with self._lock:
            try:
                self._subscribers.remove(q)
            except ValueError:
                pass
        logger.debug("SSE subscriber removed (total: %d)", len(self._subscribers))

    def recent(self, limit: int = 20) -> list[dict]:
        """Most recent events, newest first."""
        with self._lock:
            events = list(self._recent)
        return list(reversed(events))[:limit]

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
