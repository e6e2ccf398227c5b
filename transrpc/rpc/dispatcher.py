"""Request dispatch with session-token negotiation.

Every call POSTs a JSON envelope to the session's endpoint. A 409 answer means
the daemon wants a fresh session token: the token is taken from the response,
stored on the :class:`~transrpc.rpc.session.RpcSession` and the identical
request is sent once more. A second 409 fails the call.

Each call walks an explicit lifecycle::

    INITIAL -> AWAITING_RESPONSE -> RESOLVED
                      |
                      +-> RETRYING_WITH_TOKEN -> AWAITING_RESPONSE -> RESOLVED
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from transrpc.rpc.protocol import (
    HTTP_CONFLICT,
    HTTP_OK,
    HTTP_UNAUTHORIZED,
    RequestEnvelope,
    RequestStatus,
    ResponseEnvelope,
    build_request_headers,
)
from transrpc.rpc.session import RpcSession
from transrpc.utils.exceptions import (
    AuthError,
    DecodeError,
    ProtocolError,
    SessionError,
    TransportError,
)
from transrpc.utils.logging_config import get_logger

logger = get_logger(__name__)

ResultT = TypeVar("ResultT")

MAX_ATTEMPTS = 2


class RequestState(str, Enum):
    """Lifecycle states of one RPC call."""

    INITIAL = "initial"
    AWAITING_RESPONSE = "awaiting_response"
    RETRYING_WITH_TOKEN = "retrying_with_token"
    RESOLVED = "resolved"


_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.INITIAL: frozenset({RequestState.AWAITING_RESPONSE}),
    RequestState.AWAITING_RESPONSE: frozenset(
        {RequestState.RETRYING_WITH_TOKEN, RequestState.RESOLVED}
    ),
    RequestState.RETRYING_WITH_TOKEN: frozenset({RequestState.AWAITING_RESPONSE}),
    RequestState.RESOLVED: frozenset(),
}


class RequestLifecycle:
    """Tracks one call through its states and counts its attempts."""

    def __init__(self, method: str):
        self.method = method
        self.state = RequestState.INITIAL
        self.attempts = 0
        self.history: list[RequestState] = [RequestState.INITIAL]

    def advance(self, new_state: RequestState) -> None:
        """Move to ``new_state``.

        Raises:
            RuntimeError: If the transition is not allowed, or a third attempt
                would be started

        """
        if new_state not in _TRANSITIONS[self.state]:
            msg = f"Invalid request transition {self.state.value} -> {new_state.value}"
            raise RuntimeError(msg)
        if new_state is RequestState.AWAITING_RESPONSE:
            if self.attempts >= MAX_ATTEMPTS:
                msg = f"{self.method}: attempt limit of {MAX_ATTEMPTS} reached"
                raise RuntimeError(msg)
            self.attempts += 1
        logger.debug(
            "%s: %s -> %s (attempt %d)",
            self.method,
            self.state.value,
            new_state.value,
            self.attempts,
        )
        self.state = new_state
        self.history.append(new_state)

    @property
    def resolved(self) -> bool:
        return self.state is RequestState.RESOLVED


@dataclass
class RawResponse:
    """Status, headers and body of one HTTP exchange."""

    status: int
    headers: Mapping[str, str]
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class RequestDispatcher:
    """Sends RPC calls for one :class:`RpcSession` over aiohttp."""

    def __init__(
        self,
        session: RpcSession,
        http_session: aiohttp.ClientSession | None = None,
    ):
        """Initialize dispatcher.

        Args:
            session: Connection state shared by all calls
            http_session: Existing aiohttp session to use. It is not closed by
                the dispatcher. If None, one is created on first use.

        """
        self.session = session
        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._session_loop: asyncio.AbstractEventLoop | None = None

    async def _ensure_http_session(self) -> aiohttp.ClientSession:
        """Return an open aiohttp session bound to the running loop."""
        if not self._owns_http_session and self._http_session is not None:
            return self._http_session

        current_loop = asyncio.get_running_loop()
        should_recreate = (
            self._http_session is None
            or self._http_session.closed
            or self._session_loop is not current_loop
        )
        if should_recreate:
            if self._http_session is not None and not self._http_session.closed:
                try:
                    await self._http_session.close()
                except (aiohttp.ClientError, RuntimeError) as e:
                    logger.debug("Error closing stale HTTP session: %s", e)
            self._http_session = aiohttp.ClientSession()
            self._session_loop = current_loop
        return self._http_session

    async def close(self) -> None:
        """Close the aiohttp session if this dispatcher created it."""
        if self._owns_http_session and self._http_session is not None:
            if not self._http_session.closed:
                await self._http_session.close()
            self._http_session = None
            self._session_loop = None

    async def __aenter__(self) -> RequestDispatcher:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _post(
        self,
        lifecycle: RequestLifecycle,
        url: str,
        body: bytes,
        headers: dict[str, str],
    ) -> RawResponse:
        http = await self._ensure_http_session()
        lifecycle.advance(RequestState.AWAITING_RESPONSE)
        try:
            async with http.post(url, data=body, headers=headers) as resp:
                payload = await resp.read()
                return RawResponse(status=resp.status, headers=resp.headers, body=payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            lifecycle.advance(RequestState.RESOLVED)
            msg = f"No response from {url}: {e}"
            raise TransportError(msg, {"method": lifecycle.method}) from e

    async def send(
        self,
        method: str,
        arguments: BaseModel | Mapping[str, Any] | None = None,
    ) -> RawResponse:
        """Send one call, retrying once with a fresh token after a 409.

        Args:
            method: RPC method name
            arguments: Method arguments (model or plain mapping)

        Returns:
            The final HTTP response, never a 409

        Raises:
            TransportError: No HTTP response was received
            SessionError: The retry was also answered with 409

        """
        envelope = RequestEnvelope(
            method=method,
            arguments=arguments if arguments is not None else {},
        )
        body = envelope.to_json_bytes()
        endpoint, credentials, token = self.session.snapshot()
        lifecycle = RequestLifecycle(method)

        response = await self._post(
            lifecycle,
            endpoint.url,
            body,
            build_request_headers(endpoint, credentials, token),
        )

        if response.status == HTTP_CONFLICT:
            fresh_token = self.session.adopt_token(endpoint, response.headers)
            lifecycle.advance(RequestState.RETRYING_WITH_TOKEN)
            response = await self._post(
                lifecycle,
                endpoint.url,
                body,
                build_request_headers(endpoint, credentials, fresh_token),
            )
            if response.status == HTTP_CONFLICT:
                self.session.adopt_token(endpoint, response.headers)
                lifecycle.advance(RequestState.RESOLVED)
                logger.warning("%s: daemon answered 409 again after token refresh", method)
                msg = f"{method}: session token rejected after retry"
                raise SessionError(msg, {"method": method, "attempts": lifecycle.attempts})

        lifecycle.advance(RequestState.RESOLVED)
        logger.debug("%s answered with HTTP %d", method, response.status)
        return response

    async def request(
        self,
        method: str,
        arguments: BaseModel | Mapping[str, Any] | None,
        result_type: type[ResultT],
    ) -> ResultT:
        """Send a call and decode its ``arguments`` as ``result_type``.

        Raises:
            TransportError: No HTTP response was received
            SessionError: The retry was also answered with 409
            AuthError: The daemon answered 401
            DecodeError: A 200 body did not match ``result_type``
            ProtocolError: Any other HTTP status

        """
        response = await self.send(method, arguments)

        if response.status == HTTP_UNAUTHORIZED:
            msg = f"{method}: daemon rejected the credentials"
            raise AuthError(msg, {"method": method})

        if response.status == HTTP_OK:
            try:
                envelope = ResponseEnvelope[result_type].model_validate_json(response.body)
            except PydanticValidationError as e:
                msg = f"{method}: unexpected response body"
                raise DecodeError(msg, raw_body=response.body, details={"method": method}) from e
            return envelope.arguments

        raise ProtocolError(response.text or f"HTTP {response.status}", status=response.status)

    async def request_status(
        self,
        method: str,
        arguments: BaseModel | Mapping[str, Any] | None = None,
    ) -> RequestStatus:
        """Send a call whose only result is whether it worked."""
        try:
            response = await self.send(method, arguments)
        except (TransportError, SessionError) as e:
            logger.warning("%s failed: %s", method, e)
            return RequestStatus.CONFIG_ERROR

        if response.status == HTTP_OK:
            return RequestStatus.SUCCESS
        if response.status == HTTP_UNAUTHORIZED:
            return RequestStatus.UNAUTHORIZED
        logger.warning("%s failed with HTTP %d: %s", method, response.status, response.text)
        return RequestStatus.FAILED
