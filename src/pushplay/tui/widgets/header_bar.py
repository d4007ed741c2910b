"""Header bar widget - app name, server address, memory and connection status."""

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label


class HeaderBar(Widget):
    """Top bar showing the server we talk to and whether it answers."""

    DEFAULT_CSS = """
    HeaderBar {
        dock: top;
        height: 1;
        background: $primary;
        color: $text;
        padding: 0 1;
    }
    HeaderBar .hb-title {
        text-style: bold;
        width: auto;
    }
    HeaderBar .hb-spacer {
        width: 1fr;
    }
    HeaderBar .hb-server, HeaderBar .hb-memory {
        width: auto;
        margin-right: 2;
        color: $text-muted;
    }
    HeaderBar .hb-status {
        width: auto;
        text-style: bold;
    }
    HeaderBar .hb-status.connected {
        color: $success;
    }
    HeaderBar .hb-status.disconnected {
        color: $error;
    }
    """

    server: reactive[str] = reactive("localhost:3000")
    memory: reactive[str] = reactive("")
    connected: reactive[bool] = reactive(False)

    def compose(self) -> ComposeResult:
        with Horizontal():
            yield Label("PushPlay", classes="hb-title")
            yield Label("", classes="hb-spacer")
            yield Label("", id="hb-memory", classes="hb-memory")
            yield Label("", id="hb-server", classes="hb-server")
            yield Label("Connecting...", id="hb-status", classes="hb-status disconnected")

    def watch_server(self, server: str) -> None:
        self.query_one("#hb-server", Label).update(server)

    def watch_memory(self, memory: str) -> None:
        self.query_one("#hb-memory", Label).update(f"Mem: {memory}" if memory else "")

    def watch_connected(self, connected: bool) -> None:
        status_label = self.query_one("#hb-status", Label)
        status_label.set_class(connected, "connected")
        status_label.set_class(not connected, "disconnected")
        status_label.update("Connected" if connected else "Disconnected")
