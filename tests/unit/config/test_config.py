"""Tests for configuration loading: defaults, TOML file and environment."""

from __future__ import annotations

from pathlib import Path

import pytest

from transrpc.config.config import ConfigManager, get_config, init_config, reset_config
from transrpc.models import Config, LogLevel, Scheme, ServerConfig
from transrpc.utils.exceptions import ConfigurationError

pytestmark = [pytest.mark.unit, pytest.mark.config]


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_defaults(self):
        """Test defaults when no file or environment is present."""
        manager = ConfigManager(configure_logging=False)
        assert manager.config_file is None
        server = manager.config.server
        assert (server.scheme, server.host, server.port) == (Scheme.HTTP, "127.0.0.1", 9091)
        assert manager.config.observability.log_level == LogLevel.INFO

    def test_explicit_file(self, tmp_path):
        """Test loading an explicit TOML file."""
        path = _write(
            tmp_path / "custom.toml",
            '[server]\nscheme = "https"\nhost = "nas.local"\nport = 443\nusername = "admin"\n'
            '[observability]\nlog_level = "DEBUG"\n',
        )
        manager = ConfigManager(path, configure_logging=False)
        assert manager.config.server.scheme == Scheme.HTTPS
        assert manager.config.server.host == "nas.local"
        assert manager.config.server.username == "admin"
        assert manager.config.observability.log_level == LogLevel.DEBUG

    def test_search_cwd(self, tmp_path):
        """Test transrpc.toml in the working directory is found."""
        _write(tmp_path / "transrpc.toml", '[server]\nhost = "from-cwd"\n')
        manager = ConfigManager(configure_logging=False)
        assert manager.config_file == Path.cwd() / "transrpc.toml"
        assert manager.config.server.host == "from-cwd"

    def test_search_home_config_dir(self, tmp_path):
        """Test the per-user config directory is searched."""
        _write(tmp_path / "home" / ".config" / "transrpc" / "transrpc.toml", "[server]\nport = 1234\n")
        assert ConfigManager(configure_logging=False).config.server.port == 1234

    def test_search_home_dotfile(self, tmp_path):
        """Test the home dotfile is searched last."""
        _write(tmp_path / "home" / ".transrpc.toml", "[server]\nport = 4321\n")
        assert ConfigManager(configure_logging=False).config.server.port == 4321

    def test_missing_explicit_file_uses_defaults(self, tmp_path, caplog):
        """Test a missing explicit file logs a warning and falls back."""
        with caplog.at_level("WARNING", logger="transrpc.config.config"):
            manager = ConfigManager(tmp_path / "absent.toml", configure_logging=False)
        assert manager.config.server.port == 9091
        assert "does not exist" in caplog.text

    def test_invalid_toml(self, tmp_path):
        """Test unparsable TOML raises ConfigurationError."""
        path = _write(tmp_path / "bad.toml", "[server\nhost = ")
        with pytest.raises(ConfigurationError, match="Failed to load config file"):
            ConfigManager(path, configure_logging=False)

    def test_invalid_values(self, tmp_path):
        """Test values failing validation raise ConfigurationError."""
        path = _write(tmp_path / "bad.toml", "[server]\nport = 70000\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            ConfigManager(path, configure_logging=False)

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        """Test TRANSRPC_* variables override the file."""
        path = _write(tmp_path / "c.toml", '[server]\nhost = "file-host"\nport = 1000\n')
        monkeypatch.setenv("TRANSRPC_HOST", "env-host")
        monkeypatch.setenv("TRANSRPC_PORT", "2000")
        monkeypatch.setenv("TRANSRPC_SCHEME", "https")
        monkeypatch.setenv("TRANSRPC_STRUCTURED_LOGGING", "true")

        config = ConfigManager(path, configure_logging=False).config

        assert config.server.host == "env-host"
        assert config.server.port == 2000
        assert config.server.scheme == Scheme.HTTPS
        assert config.observability.structured_logging is True

    def test_numeric_password_stays_string(self, monkeypatch):
        """Test string settings are not coerced from the environment."""
        monkeypatch.setenv("TRANSRPC_PASSWORD", "12345")
        monkeypatch.setenv("TRANSRPC_USERNAME", "true")
        server = ConfigManager(configure_logging=False).config.server
        assert server.password == "12345"
        assert server.username == "true"

    def test_merge_config_nested(self):
        """Test nested dictionaries merge key by key."""
        manager = ConfigManager(configure_logging=False)
        merged = manager._merge_config(
            {"server": {"host": "a", "port": 1}, "x": 1},
            {"server": {"port": 2}},
        )
        assert merged == {"server": {"host": "a", "port": 2}, "x": 1}

    def test_configure_logging(self, tmp_path):
        """Test the observability section is applied to logging."""
        import logging

        path = _write(tmp_path / "c.toml", '[observability]\nlog_level = "DEBUG"\n')
        ConfigManager(path)
        assert logging.getLogger("transrpc").level == logging.DEBUG


class TestGlobalConfig:
    """Tests for the module-level configuration accessors."""

    def test_get_config_is_cached(self):
        """Test get_config returns the same instance until reset."""
        first = get_config()
        assert isinstance(first, Config)
        assert get_config() is first
        reset_config()
        assert get_config() is not first

    def test_init_config_replaces_global(self, tmp_path):
        """Test init_config installs a new manager."""
        path = _write(tmp_path / "c.toml", "[server]\nport = 5555\n")
        manager = init_config(path, configure_logging=False)
        assert get_config() is manager.config
        assert get_config().server.port == 5555


class TestServerConfig:
    """Tests for ServerConfig conversions."""

    def test_to_endpoint_and_credentials(self):
        """Test conversion to the immutable RPC types."""
        server = ServerConfig(scheme=Scheme.HTTPS, host="h", port=8443, username="u", password="p")
        assert server.to_endpoint().url == "https://h:8443/transmission/rpc"
        assert server.to_credentials().password == "p"
