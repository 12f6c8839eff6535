"""
=============================================================================
HTTP REQUEST MODEL
=============================================================================

Structured representation of an outgoing HTTP/1.1 request, plus a fluent
builder that fills in the headers every request from this client carries.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /api/users?page=1 HTTP/1.1\r\n        ← request line        │
    │    ─┬── ───────┬───────── ────┬───                                  │
    │   Method  request-target   Version                                  │
    │           (origin-form)                                              │
    │                                                                      │
    │    Host: example.com\r\n                       ← headers, in order  │
    │    User-Agent: httpc/1.0.0\r\n                                       │
    │    Connection: close\r\n                                            │
    │    Content-Length: 13\r\n                      ← always == len(body)│
    │    \r\n                                        ← end of headers     │
    │    {"name":"x"}                                ← body, verbatim     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The model keeps the ABSOLUTE URL as its target ("http://example.com/api").
The absolute form is what the user typed, what gets displayed, and what a
relative Location header is resolved against. The origin-form path+query is
derived from it when the request line is written.

=============================================================================
CONTENT-LENGTH INVARIANT
=============================================================================

When a body is present, exactly one Content-Length header equal to
len(body) is present. The model computes it itself; a caller-supplied value
that disagrees is removed and replaced rather than trusted, because a wrong
length makes the server wait forever (too long) or read our next bytes as
a new request (too short).

=============================================================================
"""

import logging
from dataclasses import dataclass, field, replace as dataclass_replace
from typing import Iterable, Optional, Tuple, Union
from urllib.parse import SplitResult, urlsplit

from .. import __version__
from .errors import InvalidMethod, InvalidTarget
from .headers import HeaderSet, TOKEN_PATTERN
from .serializer import serialize_request

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}
DEFAULT_USER_AGENT = f"httpc/{__version__}"


@dataclass
class HTTPRequest:
    """
    An outgoing HTTP request.

    Attributes:
        method:  Method token, sent as-is ("GET", "POST", ...)
        target:  Absolute URL ("https://example.com/path?q=1")
        version: Protocol version for the request line
        headers: Owned HeaderSet, serialized in insertion order
        body:    Body bytes, or None for no body at all
    """

    method: str
    target: str
    version: str = "HTTP/1.1"
    headers: HeaderSet = field(default_factory=HeaderSet)
    body: Optional[bytes] = None

    def __post_init__(self):
        self.sync_content_length()

    # =========================================================================
    # URL COMPONENTS
    # =========================================================================

    @property
    def url_parts(self) -> SplitResult:
        return urlsplit(self.target)

    @property
    def scheme(self) -> str:
        return (self.url_parts.scheme or "http").lower()

    @property
    def host(self) -> str:
        """Host name without brackets or port. Raises InvalidTarget if absent."""
        hostname = self.url_parts.hostname
        if not hostname:
            raise InvalidTarget(f"No host in request target: {self.target!r}")
        return hostname

    @property
    def port(self) -> int:
        try:
            port = self.url_parts.port
        except ValueError as e:
            raise InvalidTarget(f"Invalid port in {self.target!r}: {e}") from e
        if port is not None:
            return port
        if self.scheme not in DEFAULT_PORTS:
            raise InvalidTarget(f"Unsupported scheme: {self.scheme!r}")
        return DEFAULT_PORTS[self.scheme]

    @property
    def use_tls(self) -> bool:
        return self.scheme == "https"

    @property
    def authority(self) -> str:
        """
        Value for the Host header: host, plus ":port" when not the default.

        IPv6 literals get their brackets back: "[::1]:8080".
        """
        host = self.host
        if ":" in host:
            host = f"[{host}]"
        if self.port != DEFAULT_PORTS.get(self.scheme):
            return f"{host}:{self.port}"
        return host

    @property
    def origin(self) -> Tuple[str, str, int]:
        """(scheme, host, port) triple used to detect cross-origin hops."""
        return (self.scheme, self.host, self.port)

    @property
    def request_target(self) -> str:
        """
        Origin-form target for the request line: path plus query.

            "http://example.com"           → "/"
            "http://example.com/a/b?x=1#f" → "/a/b?x=1"

        The fragment is client-side only and never sent.
        """
        parts = self.url_parts
        path = parts.path or "/"
        if parts.query:
            return f"{path}?{parts.query}"
        return path

    # =========================================================================
    # BODY
    # =========================================================================

    def sync_content_length(self) -> None:
        """
        Make the framing headers agree with the body.

            body None   → no Content-Length, no Transfer-Encoding
            body bytes  → exactly one Content-Length: len(body),
                          no Transfer-Encoding (the body is sent unframed)

        Caller-supplied framing headers that disagree are dropped with a
        warning.
        """
        if self.body is None:
            stale = self.headers.get_all("Content-Length") + self.headers.get_all("Transfer-Encoding")
            if stale:
                logger.warning(
                    f"Removing framing headers ({', '.join(stale)}) from a request "
                    f"without a body"
                )
                self.headers.remove_all("Content-Length")
                self.headers.remove_all("Transfer-Encoding")
            return

        encodings = self.headers.get_all("Transfer-Encoding")
        if encodings:
            logger.warning(
                f"Removing Transfer-Encoding {', '.join(encodings)}; "
                f"the body is sent with Content-Length"
            )
            self.headers.remove_all("Transfer-Encoding")

        expected = str(len(self.body))
        current = self.headers.get_all("Content-Length")
        if current == [expected]:
            return
        if current:
            logger.warning(
                f"Replacing Content-Length {', '.join(current)} with {expected} "
                f"(actual body size)"
            )
            self.headers.remove_all("Content-Length")
        self.headers.insert("Content-Length", expected)

    def set_body(self, body: Optional[Union[str, bytes]]) -> "HTTPRequest":
        """
        Replace the body, keeping Content-Length in step.

        Strings are encoded as UTF-8. Passing None removes the body and its
        Content-Length.
        """
        if body is None:
            self.body = None
            self.headers.remove_all("Content-Length")
        else:
            self.body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        self.sync_content_length()
        return self

    def copy(self, **changes) -> "HTTPRequest":
        """Copy with its own HeaderSet, optionally overriding fields."""
        changes.setdefault("headers", self.headers.copy())
        return dataclass_replace(self, **changes)

    def to_bytes(self) -> bytes:
        """Serialize to the exact bytes sent on the wire."""
        return serialize_request(self)


class RequestBuilder:
    """
    Fluent builder for outgoing requests.

    Example:
        request = (RequestBuilder("POST", "example.com/users")
            .header("Content-Type", "application/json")
            .body('{"name": "x"}')
            .build())

    build() normalizes the URL (a bare host gets "http://"), checks it, and
    adds the headers this client always sends unless the caller set them:

        Host:           the URL authority
        User-Agent:     httpc/<version>
        Connection:     close (every hop uses its own connection)
        Content-Length: computed from the body by HTTPRequest

    Framing headers passed to header() are not trusted: HTTPRequest drops a
    Content-Length when there is no body, and any Transfer-Encoding.
    """

    def __init__(
        self,
        method: str = "GET",
        url: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._method = method
        self._url = url
        self._user_agent = user_agent
        self._headers = HeaderSet()
        self._body: Optional[bytes] = None

    def method(self, method: str) -> "RequestBuilder":
        self._method = method
        return self

    def url(self, url: str) -> "RequestBuilder":
        self._url = url
        return self

    def header(self, name: str, value: str) -> "RequestBuilder":
        self._headers.insert(name, value)
        return self

    def headers(self, headers: Iterable[Tuple[str, str]]) -> "RequestBuilder":
        self._headers.extend(headers)
        return self

    def body(self, body: Optional[Union[str, bytes]]) -> "RequestBuilder":
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self

    def build(self) -> HTTPRequest:
        if not TOKEN_PATTERN.match(self._method or ""):
            raise InvalidMethod(f"Invalid method: {self._method!r}")

        target = normalize_url(self._url)

        headers = HeaderSet()
        probe = HTTPRequest(method=self._method, target=target)
        if "Host" not in self._headers:
            headers.insert("Host", probe.authority)
        headers.extend(self._headers)
        if "User-Agent" not in headers:
            headers.insert("User-Agent", self._user_agent)
        if "Connection" not in headers:
            headers.insert("Connection", "close")

        return HTTPRequest(
            method=self._method,
            target=target,
            headers=headers,
            body=self._body,
        )


def normalize_url(url: str) -> str:
    """
    Turn user input into an absolute http(s) URL, or raise InvalidTarget.

        "example.com/get"          → "http://example.com/get"
        "https://example.com"      → "https://example.com"
        "ftp://example.com"        → InvalidTarget
        "http:///nohost"           → InvalidTarget
    """
    url = (url or "").strip()
    if not url:
        raise InvalidTarget("Empty URL")
    if "://" not in url:
        url = f"http://{url}"

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidTarget(f"Unsupported scheme: {parts.scheme!r}")
    if not parts.hostname:
        raise InvalidTarget(f"No host in URL: {url!r}")
    try:
        parts.port
    except ValueError as e:
        raise InvalidTarget(f"Invalid port in {url!r}: {e}") from e
    return url
