"""Transports to the agent backend: the event stream and the request endpoints."""

from .connection import ConnectionManager, FakeConnector, FakeWebSocket
from .http import ChatReply, FakeRequestClient, RequestClient, RequestError

__all__ = [
    "ChatReply",
    "ConnectionManager",
    "FakeConnector",
    "FakeRequestClient",
    "RequestClient",
    "RequestError",
    "FakeWebSocket",
]
