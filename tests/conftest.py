"""Pytest configuration and shared fixtures for transrpc tests."""

from __future__ import annotations

import logging

import pytest

from transrpc.config.config import ENV_MAPPINGS, reset_config


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async (deselect with '-m \"not asyncio\"')"),
        ("unit", "marks tests as unit tests"),
        ("core", "marks tests as core functionality tests"),
        ("bencode", "marks tests as bencode scanner tests"),
        ("rpc", "marks tests as daemon RPC tests"),
        ("session", "marks tests as session state tests"),
        ("config", "marks tests as configuration tests"),
        ("observability", "marks tests as logging tests"),
        ("cli", "marks tests as CLI tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Keep user config files and TRANSRPC_* variables out of tests."""
    for env_name in ENV_MAPPINGS:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    # setup_logging detaches the package logger from root; caplog needs it back
    package_logger = logging.getLogger("transrpc")
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
