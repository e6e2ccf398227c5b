"""Configuration management.

This module handles configuration loading and validation.
"""

from __future__ import annotations

from transrpc.config.config import ConfigManager, get_config, init_config, reset_config
from transrpc.models import Config

__all__ = [
    "Config",
    "ConfigManager",
    "get_config",
    "init_config",
    "reset_config",
]
