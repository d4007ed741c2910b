"""Tests for configuration loading."""

import os

import pytest

from pushplay.config import Config, ServerConfig, _parse_config, load_config


class TestServerConfigDefaults:
    def test_defaults(self):
        config = ServerConfig()
        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.mpv_hwdec == "auto"
        assert config.sources == ["upload"]
        assert config.announce is True

    def test_directories_derived(self):
        config = ServerConfig(data_dir="/srv/pushplay")
        assert config.media_dir == os.path.join("/srv/pushplay", "media")

    def test_data_dir_in_home(self):
        assert ServerConfig().data_dir == os.path.expanduser("~/.pushplay")

    def test_unknown_source_rejected(self):
        with pytest.raises(ValueError, match="carrier-pigeon"):
            ServerConfig(sources=["upload", "carrier-pigeon"])


class TestParseConfig:
    def test_empty(self):
        config = _parse_config({})
        assert isinstance(config, Config)
        assert config.server.port == 3000
        assert config.remote.host == "localhost"

    def test_server_section(self):
        config = _parse_config({"server": {
            "port": 8080,
            "mpv_hwdec": "v4l2m2m-copy",
            "sources": ["upload", "local"],
            "local_paths": ["~/Videos"],
            "max_upload_mb": 500,
            "command_timeout": 2,
        }})
        assert config.server.port == 8080
        assert config.server.mpv_hwdec == "v4l2m2m-copy"
        assert config.server.sources == ["upload", "local"]
        assert config.server.local_paths == [os.path.expanduser("~/Videos")]
        assert config.server.max_upload_mb == 500
        assert config.server.command_timeout == 2.0

    def test_remote_section(self):
        config = _parse_config({"remote": {"host": "192.168.1.20", "port": 3001}})
        assert config.remote.host == "192.168.1.20"
        assert config.remote.port == 3001


class TestLoadConfig:
    def test_explicit_path(self, tmp_path):
        path = tmp_path / "pushplay.toml"
        path.write_text('[server]\nport = 4000\nfullscreen = true\n')
        config = load_config(str(path))
        assert config.server.port == 4000
        assert config.server.fullscreen is True

    def test_cwd_file(self, tmp_path, monkeypatch):
        (tmp_path / "pushplay.toml").write_text('[remote]\nhost = "tv.local"\n')
        monkeypatch.chdir(tmp_path)
        assert load_config().remote.host == "tv.local"

    def test_defaults_when_nothing_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        config = load_config(str(tmp_path / "missing.toml"))
        assert config.server.port == 3000
