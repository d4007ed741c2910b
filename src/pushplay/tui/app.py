"""PushPlay TUI - Textual terminal remote for a PushPlay player.

Run with the `pushplay` command on any machine that can reach the player.
"""

import asyncio
import logging

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Label

from pushplay.tui.api_client import AsyncPushPlayClient, PushPlayAPIError
from pushplay.tui.widgets.header_bar import HeaderBar
from pushplay.tui.widgets.now_playing import NowPlaying
from pushplay.tui.widgets.playlist_view import PlaylistView

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0


class HelpScreen(ModalScreen):
    """Help screen showing all keybindings."""

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }
    HelpScreen > Container {
        width: 56;
        height: auto;
        max-height: 20;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }
    HelpScreen .help-title {
        text-style: bold;
        text-align: center;
        margin-bottom: 1;
    }
    HelpScreen .help-line {
        height: 1;
    }
    HelpScreen .help-footer {
        text-align: center;
        margin-top: 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss_help", "Close"),
        Binding("question_mark", "dismiss_help", "Close"),
    ]

    HELP_LINES = [
        ("Space", "Play / pause"),
        ("N", "Next"),
        ("P", "Previous"),
        ("S", "Stop (shows the playlist)"),
        ("M", "Mute / unmute"),
        ("A", "Cycle aspect ratio"),
        ("F", "Toggle fullscreen"),
        ("", ""),
        ("Enter", "Play selected"),
        ("D", "Remove selected"),
        ("X", "Close the player"),
        ("Q", "Quit this remote"),
    ]

    def compose(self) -> ComposeResult:
        with Container():
            yield Label("PushPlay Keybindings", classes="help-title")
            for key, desc in self.HELP_LINES:
                if not key:
                    yield Label("", classes="help-line")
                else:
                    yield Label(f"  [{key:>7}]  {desc}", classes="help-line")
            yield Label("Press [?] or [Esc] to close", classes="help-footer")

    def action_dismiss_help(self) -> None:
        self.dismiss()


class PushPlayApp(App):
    """PushPlay terminal remote."""

    TITLE = "PushPlay"

    BINDINGS = [
        Binding("space", "remote('pause_resume')", "Play/Pause", show=False),
        Binding("n", "remote('next')", "Next", show=False),
        Binding("p", "remote('previous')", "Previous", show=False),
        Binding("s", "remote('stop')", "Stop", show=False),
        Binding("m", "remote('mute_unmute')", "Mute", show=False),
        Binding("a", "remote('aspect_ratio')", "Aspect", show=False),
        Binding("f", "remote('fullscreen')", "Fullscreen", show=False),
        Binding("enter", "play_selected", "Play Selected", show=False),
        Binding("d", "remove_selected", "Remove", show=False),
        Binding("x", "close_player", "Close Player", show=False),
        Binding("q", "quit_app", "Quit", show=False),
        Binding("question_mark", "show_help", "Help", show=False),
    ]

    def __init__(self, host: str = "localhost", port: int = 3000, api: AsyncPushPlayClient | None = None):
        super().__init__()
        self.host = host
        self.port = port
        self.api: AsyncPushPlayClient | None = api
        self._poll_active = True
        self._command_lock = asyncio.Lock()

    def compose(self) -> ComposeResult:
        yield HeaderBar()
        with Vertical(id="main"):
            yield NowPlaying()
            yield PlaylistView()

    async def on_mount(self) -> None:
        if self.api is None:
            self.api = AsyncPushPlayClient(self.host, self.port)
        self.query_one(HeaderBar).server = f"{self.host}:{self.port}"
        self._poll_status()

    async def on_unmount(self) -> None:
        self._poll_active = False
        if self.api:
            await self.api.close()

    @work(exclusive=True, group="poll")
    async def _poll_status(self) -> None:
        """Poll the server for status every second."""
        polls = 0
        while self._poll_active:
            header = self.query_one(HeaderBar)
            try:
                status = await self.api.get_status()
                header.connected = True
                self.query_one(NowPlaying).update_status(status)
                self.query_one(PlaylistView).update_playlist(status.get("playlist", []))
                if polls % 10 == 0:
                    header.memory = (await self.api.get_memory()).get("memory", "")
            except PushPlayAPIError as e:
                logger.debug("Status poll failed: %s", e)
                header.connected = False
            polls += 1
            await asyncio.sleep(POLL_INTERVAL)

    @work(group="command")
    async def _send_command(self, coro) -> None:
        """Send a command to the API and report errors.

        Not exclusive: every key press must reach the player. The lock keeps
        them in the order they were pressed.
        """
        async with self._command_lock:
            try:
                await coro
            except PushPlayAPIError as e:
                self.notify(str(e), severity="error", timeout=3)

    # --- Actions ---

    def action_remote(self, command: str) -> None:
        if self.api:
            self._send_command(self.api.control(command))

    def action_play_selected(self) -> None:
        index = self.query_one(PlaylistView).get_selected_index()
        if self.api and index is not None:
            self._send_command(self.api.play_index(index))

    def action_remove_selected(self) -> None:
        index = self.query_one(PlaylistView).get_selected_index()
        if self.api and index is not None:
            self._send_command(self.api.remove_index(index))
            self.notify("Removed from playlist", timeout=2)

    def action_close_player(self) -> None:
        if self.api:
            self._send_command(self.api.window("close-window"))
            self.notify("Closing player", timeout=2)

    def action_quit_app(self) -> None:
        self.exit()

    def action_show_help(self) -> None:
        self.push_screen(HelpScreen())
