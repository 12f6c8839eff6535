"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

The byte-stream side of the client: opening a TCP (or TLS) connection to
an origin and moving raw bytes over it.

=============================================================================
THE TRANSPORT SEAM
=============================================================================

The message engine never touches sockets directly. It talks to two small
interfaces:

    ┌──────────────────────┐  connect(host, port, use_tls)  ┌────────────┐
    │  RedirectController  │ ─────────────────────────────► │ Transport  │
    └──────────┬───────────┘                                │ Provider   │
               │                     Stream                 └─────┬──────┘
               │  write(bytes)  ◄─────────────────────────────────┘
               │  read(n) → bytes   (b"" = peer closed)
               └─ close()

SocketTransport is the real implementation. Tests plug in a fake provider
that replays canned bytes, which is how the parser gets exercised with a
response split at every possible byte boundary.

=============================================================================
ONE CONNECTION PER HOP
=============================================================================

Every request in a redirect chain gets its own connection and sends
"Connection: close". A connection is never reused:

    Hop 1:   connect → write request → read response → close
    Hop 2:   connect → write request → read response → close

The TCP handshake costs one round trip per hop, in exchange for never
having to decide whether a half-read connection is safe to reuse.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    OPEN ──────► WRITING ──────► READING ──────► CLOSED
      │             │               │              ▲
      └─────────────┴───────────────┴── error ─────┘

=============================================================================
"""

import logging
import socket
import ssl
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Tuple

from ..http.errors import TransportError

logger = logging.getLogger(__name__)


class Stream(Protocol):
    """A bidirectional byte stream. read() returns b"" at end of stream."""

    def write(self, data: bytes) -> None: ...

    def read(self, size: int) -> bytes: ...

    def close(self) -> None: ...


class TransportProvider(Protocol):
    """Opens a Stream to host:port, optionally wrapped in TLS."""

    def connect(self, host: str, port: int, use_tls: bool) -> Stream: ...


class ConnectionState(Enum):
    """Connection lifecycle states, tracked for logging."""
    OPEN = "open"            # Connected, nothing sent yet
    WRITING = "writing"      # Sending the request
    READING = "reading"      # Receiving the response
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    A client connection to one origin.

    Wraps the raw socket so that every failure, including timeouts, leaves
    this module as a TransportError with the socket error as its cause.

    Attributes:
        socket: The connected (possibly TLS-wrapped) socket.
        address: (host, port) the socket is connected to.
        id: Short identifier for log correlation.
        state: Current connection state.
        bytes_sent / bytes_received: Traffic counters.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.OPEN
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0
    bytes_received: int = 0

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def age(self) -> float:
        """Seconds since the connection was opened."""
        return time.time() - self.created_at

    def write(self, data: bytes) -> None:
        """
        Send all of `data`.

        sendall() keeps calling send() until every byte is out; a plain
        send() may write only part of the buffer.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except socket.timeout as e:
            raise TransportError(f"Timed out sending to {self._peer}", cause=e) from e
        except OSError as e:
            raise TransportError(f"Send to {self._peer} failed: {e}", cause=e) from e
        self.bytes_sent += len(data)

    def read(self, size: int) -> bytes:
        """Receive up to `size` bytes. Returns b"" once the peer has closed."""
        self.state = ConnectionState.READING
        try:
            data = self.socket.recv(size)
        except socket.timeout as e:
            raise TransportError(f"Timed out reading from {self._peer}", cause=e) from e
        except OSError as e:
            raise TransportError(f"Read from {self._peer} failed: {e}", cause=e) from e
        self.bytes_received += len(data)
        return data

    def close(self) -> None:
        """
        Release the socket. Safe to call more than once.

        shutdown() first sends FIN so the server sees a clean end of the
        conversation; errors there mean the peer is already gone.
        """
        if self.state == ConnectionState.CLOSED:
            return
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        finally:
            self.socket.close()
            self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed {self._peer} "
            f"(sent {self.bytes_sent}B, received {self.bytes_received}B, {self.age:.3f}s)"
        )

    @property
    def _peer(self) -> str:
        return f"{self.address[0]}:{self.address[1]}"


class SocketTransport:
    """
    TransportProvider over real sockets.

    Example:
        transport = SocketTransport(timeout=10.0)
        stream = transport.connect("example.com", 443, use_tls=True)
    """

    def __init__(self, timeout: Optional[float] = 30.0, verify_tls: bool = True):
        """
        Args:
            timeout: Seconds allowed for connect and for each read/write.
                     None blocks forever.
            verify_tls: Check the server certificate and host name.
        """
        self.timeout = timeout
        self.verify_tls = verify_tls

    def _tls_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def connect(self, host: str, port: int, use_tls: bool) -> Connection:
        """
        Open a connection to host:port.

        Raises:
            TransportError: DNS, connect, TLS handshake or timeout failure.
        """
        try:
            sock = socket.create_connection((host, port), timeout=self.timeout)
        except socket.timeout as e:
            raise TransportError(f"Timed out connecting to {host}:{port}", cause=e) from e
        except OSError as e:
            raise TransportError(f"Could not connect to {host}:{port}: {e}", cause=e) from e

        if use_tls:
            try:
                # server_hostname sends SNI and is checked against the cert
                sock = self._tls_context().wrap_socket(sock, server_hostname=host)
            except OSError as e:
                sock.close()
                raise TransportError(f"TLS handshake with {host}:{port} failed: {e}", cause=e) from e

        connection = Connection(socket=sock, address=(host, port))
        logger.debug(
            f"[{connection.id}] Connected to {host}:{port}" + (" (TLS)" if use_tls else "")
        )
        return connection
