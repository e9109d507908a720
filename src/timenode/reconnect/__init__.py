"""Connection resilience for WebSocket providers."""
from .ws_reconnect import ConnectionState, ReconnectMsg, WsReconnect

__all__ = [
    "ConnectionState",
    "ReconnectMsg",
    "WsReconnect",
]
