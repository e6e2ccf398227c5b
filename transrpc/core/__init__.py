"""Core parsing for transrpc."""
