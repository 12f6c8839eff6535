"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Dict, Generator, List, Optional, Tuple, Union
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpc.http import HeaderSet, HTTPRequest


def http_response(
    status: str = "200 OK",
    headers: Optional[List[Tuple[str, str]]] = None,
    body: bytes = b"",
    content_length: bool = True,
) -> bytes:
    """Build raw response bytes for canned replies."""
    lines = [f"HTTP/1.1 {status}"]
    for name, value in headers or []:
        lines.append(f"{name}: {value}")
    if content_length:
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


class FakeStream:
    """In-memory Stream replaying canned bytes, `read_size` at most per read."""

    def __init__(self, data: bytes, read_size: Optional[int] = None, fail_on_read: Optional[BaseException] = None):
        self._data = data
        self._read_size = read_size
        self._fail_on_read = fail_on_read
        self.written = b""
        self.closed = False

    def write(self, data: bytes) -> None:
        self.written += data

    def read(self, size: int) -> bytes:
        if self._fail_on_read is not None:
            raise self._fail_on_read
        if self._read_size is not None:
            size = min(size, self._read_size)
        chunk, self._data = self._data[:size], self._data[size:]
        return chunk

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """
    TransportProvider handing out one FakeStream per connect().

    Replies are consumed in order; each entry is raw bytes or an exception
    instance to raise from connect().
    """

    def __init__(self, replies: List[Union[bytes, BaseException]], read_size: Optional[int] = None):
        self._replies = list(replies)
        self._read_size = read_size
        self.connections: List[Tuple[str, int, bool]] = []
        self.streams: List[FakeStream] = []

    def connect(self, host: str, port: int, use_tls: bool) -> FakeStream:
        self.connections.append((host, port, use_tls))
        reply = self._replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        stream = FakeStream(reply, read_size=self._read_size)
        self.streams.append(stream)
        return stream

    @property
    def sent(self) -> List[bytes]:
        """Bytes written on each connection, in order."""
        return [stream.written for stream in self.streams]


@pytest.fixture
def fake_transport_factory() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def simple_get_request() -> HTTPRequest:
    """GET http://example.com/ with the usual client headers."""
    return HTTPRequest(
        method="GET",
        target="http://example.com/",
        headers=HeaderSet([
            ("Host", "example.com"),
            ("User-Agent", "httpc/test"),
            ("Connection", "close"),
        ]),
    )


@pytest.fixture
def chunked_response() -> bytes:
    """Wikipedia's chunked example, with a trailer."""
    return (
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/plain\r\n"
        b"Transfer-Encoding: chunked\r\n"
        b"\r\n"
        b"4\r\nWiki\r\n"
        b"5;name=value\r\npedia\r\n"
        b"E\r\n in\r\n\r\nchunks.\r\n"
        b"0\r\n"
        b"Expires: never\r\n"
        b"\r\n"
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class CannedServer:
    """
    Test server helper that runs in a background thread.

    Answers each connection with the canned reply registered for the request
    path, query ignored (or a 404), then closes. Requests received are
    recorded raw.
    """

    def __init__(self, routes: Dict[str, bytes]):
        self.routes = routes
        self.requests: List[bytes] = []
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._socket.bind(("127.0.0.1", 0))
        self._socket.listen(16)
        self._socket.settimeout(0.2)
        self.port = self._socket.getsockname()[1]
        self._running = False
        self._thread: Optional[threading.Thread] = None

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self):
        """Start server in background thread."""
        self._running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the server."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._socket.close()

    def _serve(self):
        while self._running:
            try:
                client, _ = self._socket.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with client:
                try:
                    client.settimeout(5.0)
                    raw = self._read_request(client)
                    if not raw:
                        continue
                    self.requests.append(raw)
                    path = raw.split(b" ", 2)[1].decode("latin-1").split("?", 1)[0]
                    client.sendall(self.routes.get(path, http_response("404 Not Found", body=b"missing")))
                except OSError:
                    continue

    @staticmethod
    def _read_request(client: socket.socket) -> bytes:
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = client.recv(4096)
            if not chunk:
                return data
            data += chunk
        head, _, body = data.partition(b"\r\n\r\n")
        length = 0
        for line in head.split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                length = int(value.strip())
        while len(body) < length:
            chunk = client.recv(4096)
            if not chunk:
                break
            body += chunk
        return head + b"\r\n\r\n" + body


@pytest.fixture
def canned_server() -> Generator[Callable[[Dict[str, bytes]], CannedServer], None, None]:
    """Factory starting CannedServers that are stopped after the test."""
    servers: List[CannedServer] = []

    def start(routes: Dict[str, bytes]) -> CannedServer:
        server = CannedServer(routes)
        server.start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()
