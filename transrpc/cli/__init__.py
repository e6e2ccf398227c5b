"""Command-line interface for transrpc."""

from transrpc.cli.main import cli, main

__all__ = [
    "cli",
    "main",
]
