"""Configuration loader for PushPlay."""

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python 3.10 fallback

SOURCE_TYPES = ("upload", "local")


@dataclass
class ServerConfig:
    """Configuration for the desktop player and its HTTP server."""

    host: str = "0.0.0.0"
    port: int = 3000
    data_dir: str = ""
    media_dir: str = ""
    mpv_socket: str = "/tmp/pushplay-mpv-socket"
    mpv_hwdec: str = "auto"
    fullscreen: bool = False
    osd_enabled: bool = True             # Playlist / error overlay on the video window
    osd_duration_ms: int = 2500
    sources: list[str] = field(default_factory=lambda: ["upload"])
    local_paths: list[str] = field(default_factory=list)
    announce: bool = True                # mDNS advertisement for the phone app
    max_upload_mb: int = 0               # 0 = unlimited
    command_timeout: float = 5.0         # Seconds a local command may wait on the router

    def __post_init__(self):
        if not self.data_dir:
            self.data_dir = os.path.expanduser("~/.pushplay")
        if not self.media_dir:
            self.media_dir = os.path.join(self.data_dir, "media")
        unknown = [s for s in self.sources if s not in SOURCE_TYPES]
        if unknown:
            raise ValueError(f"Unknown media source(s): {', '.join(unknown)}")


@dataclass
class RemoteConfig:
    """Where the remote tools (TUI, pushplay-ctl) find the server."""

    host: str = "localhost"
    port: int = 3000


@dataclass
class Config:
    """Top-level PushPlay configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)


def load_config(path: str | None = None) -> Config:
    """Load configuration from pushplay.toml.

    Search order:
    1. Explicit path argument
    2. ./pushplay.toml
    3. ~/.config/pushplay/pushplay.toml
    4. Defaults
    """
    search_paths = []
    if path:
        search_paths.append(Path(path))
    search_paths.extend([
        Path("pushplay.toml"),
        Path.home() / ".config" / "pushplay" / "pushplay.toml",
    ])

    for p in search_paths:
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            return _parse_config(data)

    return Config()


def _parse_config(data: dict) -> Config:
    """Parse a TOML dict into Config."""
    config = Config()

    if "server" in data:
        s = data["server"]
        defaults = config.server
        config.server = ServerConfig(
            host=s.get("host", defaults.host),
            port=s.get("port", defaults.port),
            data_dir=s.get("data_dir", ""),
            media_dir=s.get("media_dir", ""),
            mpv_socket=s.get("mpv_socket", defaults.mpv_socket),
            mpv_hwdec=s.get("mpv_hwdec", defaults.mpv_hwdec),
            fullscreen=s.get("fullscreen", defaults.fullscreen),
            osd_enabled=s.get("osd_enabled", defaults.osd_enabled),
            osd_duration_ms=s.get("osd_duration_ms", defaults.osd_duration_ms),
            sources=list(s.get("sources", defaults.sources)),
            local_paths=[os.path.expanduser(p) for p in s.get("local_paths", [])],
            announce=s.get("announce", defaults.announce),
            max_upload_mb=s.get("max_upload_mb", defaults.max_upload_mb),
            command_timeout=float(s.get("command_timeout", defaults.command_timeout)),
        )

    if "remote" in data:
        r = data["remote"]
        config.remote = RemoteConfig(
            host=r.get("host", config.remote.host),
            port=r.get("port", config.remote.port),
        )

    return config
