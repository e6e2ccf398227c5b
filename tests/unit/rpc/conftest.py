"""Fixtures for RPC tests: a fake aiohttp session that records every POST."""

from __future__ import annotations

import json
from typing import Any

import aiohttp
import pytest
from multidict import CIMultiDict, CIMultiDictProxy

from transrpc.rpc.dispatcher import RequestDispatcher
from transrpc.rpc.protocol import Credentials, Endpoint
from transrpc.rpc.session import RpcSession


class FakeResponse:
    """Stands in for an aiohttp response used as an async context manager."""

    def __init__(self, status: int, body: bytes = b"", headers: dict[str, str] | None = None):
        self.status = status
        self._body = body
        self.headers = CIMultiDictProxy(CIMultiDict(headers or {}))

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        return False


class FakeHttpSession:
    """Replays queued responses and records the requests that consumed them."""

    def __init__(self, responses: list[FakeResponse | Exception]):
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    def post(self, url: str, data: bytes | None = None, headers: dict[str, str] | None = None):
        self.requests.append(
            {
                "url": url,
                "body": json.loads(data) if data else None,
                "headers": dict(headers or {}),
            }
        )
        if not self._responses:
            raise AssertionError("unexpected extra request")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def response():
    """Factory for fake responses; dict bodies are JSON-encoded."""

    def _make(
        status: int = 200,
        body: dict[str, Any] | str | bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> FakeResponse:
        if isinstance(body, dict):
            raw = json.dumps(body).encode()
        elif isinstance(body, str):
            raw = body.encode()
        else:
            raw = body or b""
        return FakeResponse(status, raw, headers)

    return _make


@pytest.fixture
def endpoint() -> Endpoint:
    return Endpoint(scheme="http", host="127.0.0.1", port=9091)


@pytest.fixture
def rpc_session(endpoint) -> RpcSession:
    return RpcSession(endpoint, Credentials(username="user", password="secret"))


@pytest.fixture
def fake_http():
    """Factory building a FakeHttpSession from queued responses."""

    def _make(*responses: FakeResponse | Exception) -> FakeHttpSession:
        return FakeHttpSession(list(responses))

    return _make


@pytest.fixture
def dispatcher_for(rpc_session):
    """Factory building a dispatcher over ``rpc_session`` and a fake HTTP session."""

    def _make(http: FakeHttpSession) -> RequestDispatcher:
        return RequestDispatcher(rpc_session, http)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def client_error() -> Exception:
    return aiohttp.ClientConnectionError("connection refused")
