"""LAN presence for the phone app.

Advertises the PushPlay HTTP server over mDNS/Zeroconf and works out the
IPv4 address shown on the video window, so the companion app can find the
desktop either way.
"""

import logging
import socket

from zeroconf import ServiceInfo, Zeroconf

logger = logging.getLogger(__name__)

SERVICE_TYPE = "_pushplay._tcp.local."


def get_local_ip() -> str:
    """Get the LAN IPv4 address (best effort)."""
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # UDP connect sends nothing; it only picks the outgoing interface
        s.connect(("8.8.8.8", 80))
        return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        s.close()


def connect_url(port: int, host: str | None = None) -> str:
    return f"http://{host or get_local_ip()}:{port}"


class ServiceAnnouncer:
    """Registers this server as a ``_pushplay._tcp`` service."""

    def __init__(self, port: int, name: str = "", version: str = ""):
        self.port = port
        self.name = name or socket.gethostname()
        self.version = version
        self._zeroconf: Zeroconf | None = None
        self._service_info: ServiceInfo | None = None

    @property
    def active(self) -> bool:
        return self._zeroconf is not None

    def start(self, local_ip: str | None = None):
        """Register the service. Failures are logged, never raised."""
        if self._zeroconf:
            return
        local_ip = local_ip or get_local_ip()
        try:
            self._zeroconf = Zeroconf()
            self._service_info = ServiceInfo(
                SERVICE_TYPE,
                f"{self.name}.{SERVICE_TYPE}",
                addresses=[socket.inet_aton(local_ip)],
                port=self.port,
                properties={"version": self.version},
            )
            self._zeroconf.register_service(self._service_info)
            logger.info("Registered mDNS service: %s on %s:%d", self.name, local_ip, self.port)
        except Exception as e:
            logger.warning("Failed to start mDNS: %s", e)
            self.stop()

    def stop(self):
        """Unregister the service."""
        if not self._zeroconf:
            return
        try:
            if self._service_info:
                self._zeroconf.unregister_service(self._service_info)
        except Exception as e:
            logger.debug("mDNS unregister failed: %s", e)
        finally:
            self._zeroconf.close()
            self._zeroconf = None
            self._service_info = None
            logger.info("Stopped mDNS announcement")
