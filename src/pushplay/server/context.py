"""Application context - every long-lived component, built once at startup.

The context is created by the CLI (or a test) and handed to the Flask app
factory; routes reach components through it instead of module globals.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from pushplay.__about__ import __version__
from pushplay.config import ServerConfig
from pushplay.server.adapter import PresentationAdapter
from pushplay.server.controller import PlaybackController
from pushplay.server.discovery import ServiceAnnouncer, connect_url
from pushplay.server.events import EventBus
from pushplay.server.media_store import MediaStore
from pushplay.server.router import CommandRouter
from pushplay.server.sources import LocalFileSource, SourceRegistry, UploadSource

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Owns the media store, controller, router, adapter and friends."""

    config: ServerConfig
    store: MediaStore
    adapter: PresentationAdapter
    controller: PlaybackController
    router: CommandRouter
    event_bus: EventBus
    sources: SourceRegistry
    announcer: ServiceAnnouncer | None = None
    url: str = ""
    started: bool = field(default=False, init=False)

    def start(self):
        """Bring up the render surface, the router, then the sources."""
        if self.started:
            return
        self.adapter.start()
        self.router.start()
        self.router.submit("refresh")
        self.sources.attach_all(self.router)
        if self.announcer:
            self.announcer.start()
        self.started = True
        logger.info("PushPlay ready at %s", self.url)

    def shutdown(self):
        if self.announcer:
            self.announcer.stop()
        self.router.stop()
        self.adapter.shutdown()
        self.started = False

    def status(self) -> dict:
        status = self.controller.status()
        status["window"] = self.adapter.window_state()
        status["router_running"] = self.router.is_running
        status["pending_commands"] = self.router.pending
        status["url"] = self.url
        return status


def build_context(
    config: ServerConfig,
    adapter: PresentationAdapter | None = None,
    on_exit: Callable[[], object] | None = None,
) -> AppContext:
    """Wire the components together. Nothing is started yet."""
    if adapter is None:
        from pushplay.server.mpv_adapter import MpvAdapter
        adapter = MpvAdapter(config)

    url = connect_url(config.port)
    adapter.connect_hint = f"Send videos to {url}"

    store = MediaStore(config.media_dir)
    controller = PlaybackController(adapter)
    router = CommandRouter(controller, on_exit=on_exit, command_timeout=config.command_timeout)
    event_bus = EventBus()
    controller.add_listener(adapter.on_state_change)
    controller.add_listener(event_bus.on_state_change)

    sources = SourceRegistry()
    if "upload" in config.sources:
        sources.register(UploadSource(store))
    if "local" in config.sources:
        sources.register(LocalFileSource(config.local_paths))

    announcer = ServiceAnnouncer(config.port, version=__version__) if config.announce else None

    return AppContext(
        config=config,
        store=store,
        adapter=adapter,
        controller=controller,
        router=router,
        event_bus=event_bus,
        sources=sources,
        announcer=announcer,
        url=url,
    )
