"""Now Playing widget - playback state, current item and output settings."""

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label


class NowPlaying(Widget):
    """Displays what the player is doing right now."""

    DEFAULT_CSS = """
    NowPlaying {
        height: auto;
        padding: 0 1;
    }
    NowPlaying .np-title {
        text-style: bold;
        width: 1fr;
    }
    NowPlaying .np-meta-row {
        height: 1;
    }
    NowPlaying .np-meta {
        width: auto;
        min-width: 14;
        margin-right: 2;
        color: $text-muted;
    }
    NowPlaying .np-error {
        color: $error;
        width: 1fr;
    }
    """

    state: reactive[str] = reactive("idle")
    title: reactive[str] = reactive("")
    muted: reactive[bool] = reactive(False)
    aspect_ratio: reactive[str] = reactive("Default")
    error: reactive[str] = reactive("")

    def compose(self) -> ComposeResult:
        yield Label("", id="np-title", classes="np-title")
        with Horizontal(classes="np-meta-row"):
            yield Label("", id="np-state", classes="np-meta")
            yield Label("", id="np-muted", classes="np-meta")
            yield Label("", id="np-aspect", classes="np-meta")
        yield Label("", id="np-error", classes="np-error")

    def update_status(self, status: dict) -> None:
        """Update all fields from a /api/status dict."""
        current = status.get("current") or {}
        self.state = status.get("state", "idle")
        self.title = current.get("display_name", "")
        self.muted = bool(status.get("muted", False))
        self.aspect_ratio = status.get("aspect_ratio", "Default")
        self.error = status.get("last_error") or ""

    def watch_state(self, state: str) -> None:
        self.query_one("#np-state", Label).update(_state_label(state))
        self._update_title()

    def watch_title(self, title: str) -> None:
        self._update_title()

    def _update_title(self) -> None:
        self.query_one("#np-title", Label).update(_format_title(self.state, self.title))

    def watch_muted(self, muted: bool) -> None:
        self.query_one("#np-muted", Label).update("Muted" if muted else "Sound on")

    def watch_aspect_ratio(self, aspect_ratio: str) -> None:
        self.query_one("#np-aspect", Label).update(f"Aspect: {aspect_ratio}")

    def watch_error(self, error: str) -> None:
        label = self.query_one("#np-error", Label)
        label.display = bool(error)
        label.update(f"Error: {error}" if error else "")


_STATE_ICONS = {
    "playing": ">>",
    "loading": "..",
    "paused": "||",
    "stopped": "[]",
}


def _state_label(state: str) -> str:
    return state.capitalize() if state else "Idle"


def _format_title(state: str, title: str) -> str:
    """Title line with a state icon; placeholder when nothing is loaded."""
    if not title or state in ("idle", "stopped"):
        return "Nothing playing - send a video from your phone"
    icon = _STATE_ICONS.get(state, "")
    return f"{icon} {title}" if icon else title
