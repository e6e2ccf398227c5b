"""Exception hierarchy for transrpc.

Every daemon call resolves to a typed result or exactly one of the RPC errors
below; the bencode scanner reports structural problems with ParseError.
"""

from __future__ import annotations

from typing import Any


class TransRPCError(Exception):
    """Base exception for all transrpc errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize transrpc error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class RPCError(TransRPCError):
    """Daemon RPC errors."""


class TransportError(RPCError):
    """No HTTP response reached the client."""


class AuthError(RPCError):
    """The daemon rejected the credentials (HTTP 401)."""


class SessionError(RPCError):
    """The session token was still rejected after the single retry."""


class DecodeError(RPCError):
    """A 200 response body did not match the expected JSON shape."""

    def __init__(
        self,
        message: str,
        raw_body: bytes = b"",
        details: dict[str, Any] | None = None,
    ):
        """Initialize decode error with the undecodable body."""
        super().__init__(message, details)
        self.raw_body = raw_body


class ProtocolError(RPCError):
    """Any other HTTP status; the message is the raw response body."""

    def __init__(self, message: str, status: int | None = None):
        """Initialize protocol error."""
        super().__init__(message, {"status": status} if status is not None else None)
        self.status = status


class ValidationError(TransRPCError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class BencodeError(ValidationError):
    """Bencode decoding errors."""


class ParseError(BencodeError):
    """Bencoded data is structurally invalid, truncated or out of bounds."""

    def __init__(self, message: str, position: int | None = None):
        """Initialize parse error with the offset it was detected at."""
        super().__init__(message, {"position": position} if position is not None else None)
        self.position = position
