"""
Core networking components.

Byte streams to origin servers, behind the TransportProvider interface.
"""

from .connection import (
    Connection,
    ConnectionState,
    SocketTransport,
    Stream,
    TransportProvider,
)

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketTransport",
    "Stream",
    "TransportProvider",
]
