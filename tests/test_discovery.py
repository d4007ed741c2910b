"""Tests for LAN presence (local IP and mDNS announcement)."""

from unittest.mock import MagicMock

from pushplay.server import discovery
from pushplay.server.discovery import SERVICE_TYPE, ServiceAnnouncer, connect_url, get_local_ip


class TestLocalAddress:
    def test_get_local_ip(self):
        ip = get_local_ip()
        assert len(ip.split(".")) == 4

    def test_connect_url(self):
        assert connect_url(3000, host="192.168.1.20") == "http://192.168.1.20:3000"


class TestServiceAnnouncer:
    def test_register_and_unregister(self, monkeypatch):
        zc = MagicMock()
        monkeypatch.setattr(discovery, "Zeroconf", lambda: zc)
        announcer = ServiceAnnouncer(3000, name="living-room", version="0.3.0")

        announcer.start(local_ip="192.168.1.20")
        assert announcer.active
        info = zc.register_service.call_args.args[0]
        assert info.type == SERVICE_TYPE
        assert info.name == f"living-room.{SERVICE_TYPE}"
        assert info.port == 3000

        announcer.stop()
        assert not announcer.active
        zc.unregister_service.assert_called_once_with(info)
        zc.close.assert_called_once()

    def test_failure_is_logged_not_raised(self, monkeypatch):
        zc = MagicMock()
        zc.register_service.side_effect = OSError("no multicast")
        monkeypatch.setattr(discovery, "Zeroconf", lambda: zc)
        announcer = ServiceAnnouncer(3000, name="tv")
        announcer.start(local_ip="10.0.0.5")
        assert not announcer.active
        zc.close.assert_called_once()

    def test_stop_when_not_started(self):
        ServiceAnnouncer(3000).stop()
