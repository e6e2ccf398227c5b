"""Configuration management for transrpc.

Loads configuration hierarchically: defaults → TOML file → environment.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import toml
from pydantic import ValidationError as PydanticValidationError

from transrpc.models import Config
from transrpc.utils.exceptions import ConfigurationError
from transrpc.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "transrpc.toml"

ENV_MAPPINGS: dict[str, str] = {
    "TRANSRPC_SCHEME": "server.scheme",
    "TRANSRPC_HOST": "server.host",
    "TRANSRPC_PORT": "server.port",
    "TRANSRPC_USERNAME": "server.username",
    "TRANSRPC_PASSWORD": "server.password",
    "TRANSRPC_LOG_LEVEL": "observability.log_level",
    "TRANSRPC_LOG_FILE": "observability.log_file",
    "TRANSRPC_STRUCTURED_LOGGING": "observability.structured_logging",
    "TRANSRPC_LOG_CORRELATION_ID": "observability.log_correlation_id",
}

# Values that must stay strings even when they look numeric or boolean
_STRING_PATHS = frozenset(
    {"server.host", "server.username", "server.password", "observability.log_file"}
)

# Global configuration instance
_config_manager: ConfigManager | None = None


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_file: str | Path | None = None, configure_logging: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for transrpc.toml
            configure_logging: Apply the observability section to the logging system

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        if configure_logging:
            self._setup_logging()

    def _find_config_file(self, config_file: str | Path | None) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / CONFIG_FILENAME,
            Path.home() / ".config" / "transrpc" / CONFIG_FILENAME,
            Path.home() / f".{CONFIG_FILENAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                msg = f"Failed to load config file {self.config_file}: {e}"
                raise ConfigurationError(msg) from e
        elif self.config_file:
            logger.warning("Config file %s does not exist, using defaults", self.config_file)

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except PydanticValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        def _parse_env_value(raw: str, path: str) -> bool | int | str:
            if path in _STRING_PATHS:
                return raw
            low = raw.lower()
            if low in {"true", "yes", "on"}:
                return True
            if low in {"false", "no", "off"}:
                return False
            try:
                return int(raw)
            except ValueError:
                return raw

        def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
            parts = path.split(".")
            cur = d
            for p in parts[:-1]:
                cur = cur.setdefault(p, {})
            cur[parts[-1]] = value

        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw, cfg_path))

        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None, configure_logging: bool = True) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file, configure_logging=configure_logging)
    return _config_manager


def reset_config() -> None:
    """Drop the global configuration so the next access reloads it."""
    global _config_manager
    _config_manager = None
