"""Shared utilities for transrpc."""
