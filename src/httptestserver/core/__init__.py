"""
Core networking components.

This package contains:
- SocketServer: listening socket, accept loop, CLOSE sentinel
- Connection: buffered reads, writes and graceful close for one client
- StreamBroadcaster: fan-out of streamed data to open connections
"""

from .broadcaster import StreamBroadcaster, Subscriber
from .connection import Connection, ConnectionState
from .socket_server import SocketServer, CLOSE_SIGNAL, send_close_signal

__all__ = [
    "SocketServer",
    "CLOSE_SIGNAL",
    "send_close_signal",
    "Connection",
    "ConnectionState",
    "StreamBroadcaster",
    "Subscriber",
]
