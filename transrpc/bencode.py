"""Bencode module for .torrent metadata.

This module provides a convenient interface to the core bencode functionality.
"""

from __future__ import annotations

from transrpc.core.bencode import (
    BencodeScanner,
    TorrentSummary,
    parse_torrent_summary,
    summarize_torrent,
    summarize_torrent_file,
)

__all__ = [
    "BencodeScanner",
    "TorrentSummary",
    "parse_torrent_summary",
    "summarize_torrent",
    "summarize_torrent_file",
]
