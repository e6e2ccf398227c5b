"""Client for the daemon's HTTP/JSON RPC.

Provides:
- Per-daemon session state with session-token negotiation
- Request dispatch with a single token retry
- Typed models and one async method per daemon method
"""

from __future__ import annotations

from transrpc.rpc.client import TransmissionClient
from transrpc.rpc.dispatcher import RequestDispatcher, RequestLifecycle, RequestState
from transrpc.rpc.protocol import Credentials, Endpoint, RequestStatus, RPCMethod
from transrpc.rpc.session import RpcSession

__all__ = [
    "Credentials",
    "Endpoint",
    "RPCMethod",
    "RequestDispatcher",
    "RequestLifecycle",
    "RequestState",
    "RequestStatus",
    "RpcSession",
    "TransmissionClient",
]
