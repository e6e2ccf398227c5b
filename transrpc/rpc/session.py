"""Per-daemon connection state.

An :class:`RpcSession` holds the endpoint, credentials and the daemon-issued
session token for one daemon. Every request dispatched through the session
shares that token; a session is never global, so two sessions can talk to two
daemons side by side.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, NamedTuple

from transrpc.rpc.protocol import Credentials, Endpoint, session_id_header
from transrpc.utils.logging_config import get_logger

if TYPE_CHECKING:
    from transrpc.models import ServerConfig

logger = get_logger(__name__)


class SessionSnapshot(NamedTuple):
    """Consistent view of a session taken at the start of a call."""

    endpoint: Endpoint
    credentials: Credentials
    token: str | None


class RpcSession:
    """Endpoint, credentials and session token for one daemon."""

    def __init__(self, endpoint: Endpoint, credentials: Credentials | None = None):
        """Initialize session.

        Args:
            endpoint: Daemon address
            credentials: Basic-auth credentials (empty if None)

        """
        self._lock = threading.Lock()
        self._endpoint = endpoint
        self._credentials = credentials or Credentials()
        self._token: str | None = None

    @classmethod
    def from_config(cls, server: ServerConfig) -> RpcSession:
        """Create a session from the ``[server]`` configuration section."""
        return cls(server.to_endpoint(), server.to_credentials())

    @property
    def endpoint(self) -> Endpoint:
        with self._lock:
            return self._endpoint

    @property
    def credentials(self) -> Credentials:
        with self._lock:
            return self._credentials

    @property
    def token(self) -> str | None:
        """Current session token, None until the daemon has issued one."""
        with self._lock:
            return self._token

    @property
    def token_header_name(self) -> str:
        return session_id_header(self.endpoint.scheme)

    def snapshot(self) -> SessionSnapshot:
        """Read endpoint, credentials and token under one lock acquisition."""
        with self._lock:
            return SessionSnapshot(self._endpoint, self._credentials, self._token)

    def switch_server(self, endpoint: Endpoint, credentials: Credentials | None = None) -> None:
        """Point the session at another daemon and forget the current token."""
        with self._lock:
            self._endpoint = endpoint
            self._credentials = credentials or Credentials()
            self._token = None
        logger.info("Switched RPC session to %s", endpoint.url)

    def adopt_token(self, endpoint: Endpoint, headers: Mapping[str, str]) -> str | None:
        """Store the token carried by a 409 response and return it.

        The stored token is overwritten on every 409, with None if the response
        had no token header. A token from an endpoint the session no longer
        points at is returned but not stored.

        Args:
            endpoint: Endpoint the 409 response came from
            headers: Response headers (case-insensitive lookup expected)

        Returns:
            The token to send on the retry

        """
        token = headers.get(session_id_header(endpoint.scheme))
        if token is None:
            logger.warning("409 from %s carried no session token header", endpoint.url)

        with self._lock:
            if endpoint == self._endpoint:
                self._token = token
                stored = True
            else:
                stored = False

        if stored:
            logger.info("Adopted new session token from %s", endpoint.url)
        else:
            logger.debug("Discarded session token from previous endpoint %s", endpoint.url)
        return token
