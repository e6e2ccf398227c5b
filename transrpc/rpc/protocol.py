"""Protocol definitions for the daemon's HTTP/JSON RPC.

Defines constants, connection identity, and request/response envelopes.
"""

from __future__ import annotations

import base64
import json
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# API Constants
RPC_PATH = "/transmission/rpc"
SESSION_ID_HEADER = "X-Transmission-Session-Id"
TLS_SESSION_ID_HEADER = "x-transmission-session-id"
CONTENT_TYPE_JSON = "application/json"

HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_CONFLICT = 409

ResultT = TypeVar("ResultT")


class RPCMethod(str, Enum):
    """Daemon RPC method names."""

    TORRENT_GET = "torrent-get"
    TORRENT_ADD = "torrent-add"
    TORRENT_REMOVE = "torrent-remove"
    TORRENT_SET = "torrent-set"
    TORRENT_SET_LOCATION = "torrent-set-location"
    TORRENT_RENAME_PATH = "torrent-rename-path"
    TORRENT_VERIFY = "torrent-verify"
    TORRENT_START = "torrent-start"
    TORRENT_START_NOW = "torrent-start-now"
    TORRENT_STOP = "torrent-stop"
    TORRENT_REANNOUNCE = "torrent-reannounce"
    QUEUE_MOVE_TOP = "queue-move-top"
    QUEUE_MOVE_UP = "queue-move-up"
    QUEUE_MOVE_DOWN = "queue-move-down"
    QUEUE_MOVE_BOTTOM = "queue-move-bottom"
    SESSION_GET = "session-get"
    SESSION_SET = "session-set"
    SESSION_STATS = "session-stats"
    FREE_SPACE = "free-space"
    PORT_TEST = "port-test"
    BLOCKLIST_UPDATE = "blocklist-update"


class RequestStatus(str, Enum):
    """Outcome of a call that only reports success or failure."""

    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    CONFIG_ERROR = "config_error"
    FAILED = "failed"


def basic_auth_header(username: str, password: str) -> str:
    """Generate the Authorization header value for HTTP Basic authentication.

    The pair is joined as ``username:password`` and UTF-8 encoded as is; a colon
    inside the username is passed through for the daemon to interpret.

    Args:
        username: RPC username
        password: RPC password

    Returns:
        Authorization header value: "Basic <base64-encoded-credentials>"

    """
    credentials = f"{username}:{password}".encode()
    encoded = base64.b64encode(credentials).decode("ascii")
    return f"Basic {encoded}"


def session_id_header(scheme: str) -> str:
    """Return the session-token header name used with ``scheme``.

    TLS daemons have been observed to need the lower-case spelling while plain
    HTTP uses the canonical one. Reason unknown; kept as observed.
    """
    return TLS_SESSION_ID_HEADER if scheme == "https" else SESSION_ID_HEADER


class Endpoint(BaseModel):
    """Address of one daemon."""

    model_config = ConfigDict(frozen=True)

    scheme: Literal["http", "https"] = Field("http", description="URL scheme")
    host: str = Field(..., min_length=1, description="Daemon host name or address")
    port: int = Field(9091, ge=1, le=65535, description="Daemon RPC port")

    @property
    def is_tls(self) -> bool:
        """Whether requests go over HTTPS."""
        return self.scheme == "https"

    @property
    def url(self) -> str:
        """Full RPC URL for this endpoint."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{RPC_PATH}"


class Credentials(BaseModel):
    """Username and password sent with every call."""

    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: str = Field("", repr=False)

    def authorization_header(self) -> str:
        """Return the ``Authorization`` header value (HTTP Basic)."""
        return basic_auth_header(self.username, self.password)


def build_request_headers(
    endpoint: Endpoint,
    credentials: Credentials,
    token: str | None,
) -> dict[str, str]:
    """Build the headers for one POST to the daemon."""
    headers = {
        "Content-Type": CONTENT_TYPE_JSON,
        "Authorization": credentials.authorization_header(),
    }
    if token is not None:
        headers[session_id_header(endpoint.scheme)] = token
    return headers


class RequestEnvelope(BaseModel):
    """HTTP body of every RPC call: ``{"method": ..., "arguments": {...}}``."""

    method: str = Field(..., description="RPC method name")
    arguments: Any = Field(default_factory=dict, description="Method arguments")

    def to_json_bytes(self) -> bytes:
        """Serialize the envelope, dropping unset optional arguments."""
        arguments = self.arguments
        if isinstance(arguments, BaseModel):
            arguments = arguments.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps({"method": self.method, "arguments": arguments}).encode()


class ResponseEnvelope(BaseModel, Generic[ResultT]):
    """Body of a 200 response: ``{"arguments": {...}}``.

    The daemon's own ``result`` string is not modeled; a body that decodes is
    treated as a successful call.
    """

    arguments: ResultT
