"""Command vocabulary shared by the router, the HTTP API and the clients."""

from dataclasses import dataclass, field

# Tags accepted on the remote channel (GET /control?command=<tag>)
REMOTE_COMMANDS = (
    "play",
    "pause_resume",
    "next",
    "previous",
    "stop",
    "fullscreen",
    "mute_unmute",
    "exit",
    "aspect_ratio",
)

# Remote tag -> internal router command
REMOTE_TO_INTERNAL = {
    "play": "play",
    "pause_resume": "pause_resume",
    "next": "next",
    "previous": "previous",
    "stop": "stop",
    "fullscreen": "toggle_fullscreen",
    "mute_unmute": "toggle_mute",
    "exit": "exit",
    "aspect_ratio": "cycle_aspect_ratio",
}

# Window-chrome IPC action -> adapter window method
WINDOW_ACTIONS = {
    "toggle-fullscreen": "toggle_fullscreen",
    "minimize-window": "minimize",
    "maximize-window": "toggle_maximize",
    "toggle-maximize": "toggle_maximize",
    "close-window": "close",
}

SOURCE_LOCAL = "local"
SOURCE_REMOTE = "remote"
SOURCE_INTERNAL = "internal"


class UnknownCommandError(Exception):
    """A remote tag outside the command vocabulary."""


@dataclass
class Command:
    """A single unit of work for the router. Never stored."""

    name: str
    args: dict = field(default_factory=dict)
    source: str = SOURCE_INTERNAL


def parse_remote(tag: str) -> Command:
    """Turn a remote tag into a Command, or raise UnknownCommandError."""
    tag = (tag or "").strip().lower()
    name = REMOTE_TO_INTERNAL.get(tag)
    if name is None:
        raise UnknownCommandError(tag)
    return Command(name, source=SOURCE_REMOTE)
