"""
=============================================================================
HTTP RESPONSE MODEL
=============================================================================

A parsed HTTP/1.1 response, as produced by the ResponseParser.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 301 Moved Permanently\r\n       ← status line          │
    │    ────┬─── ─┬─ ─────────┬───────                                   │
    │     Version Code  Reason phrase (may be empty)                      │
    │                                                                      │
    │    Location: /new\r\n                       ← headers              │
    │    Content-Length: 0\r\n                                            │
    │    \r\n                                     ← end of headers       │
    │                                             ← body (framed by mode)│
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODY MODE
=============================================================================

How the end of the body was found matters after parsing too:

    CONTENT_LENGTH  exactly N bytes             connection reusable
    CHUNKED         size-prefixed chunks        connection reusable
    EMPTY           no body (HEAD/1xx/204/304)  connection reusable
    UNTIL_CLOSE     everything until EOF        connection is spent

A response whose body ran until the connection closed can never be
followed by another request on the same connection.

=============================================================================
LIFECYCLE
=============================================================================

    bytes ──► ResponseParser ──► HTTPResponse (frozen) ──► RedirectController
                                                            │
                                     returned to caller ◄───┤
                                  or kept in the chain  ◄───┘

The dataclass is frozen: once the parser hands it over, nobody edits it.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .headers import HeaderSet
from .serializer import serialize_response
from .status_codes import is_followable_redirect, status_label


class BodyMode(Enum):
    """How the response body was delimited on the wire."""

    CONTENT_LENGTH = "content-length"
    CHUNKED = "chunked"
    EMPTY = "empty"
    UNTIL_CLOSE = "until-close"


# Content types shown as text, besides every text/* type.
TEXT_CONTENT_TYPES = frozenset({
    "application/json",
    "application/xml",
    "application/javascript",
})


@dataclass(frozen=True)
class HTTPResponse:
    """
    An immutable, completely parsed HTTP response.

    Attributes:
        status_code: Three-digit status (100-599)
        reason:      Reason phrase exactly as received (may be "")
        version:     "HTTP/1.1" or "HTTP/1.0"
        headers:     Received headers, chunked trailers appended at the end.
                     Read-only: the response keeps a frozen() copy of the
                     set it was given.
        body:        Body bytes with any transfer framing removed
        body_mode:   How the body was delimited
    """

    status_code: int
    reason: str = ""
    version: str = "HTTP/1.1"
    headers: HeaderSet = field(default_factory=HeaderSet)
    body: bytes = b""
    body_mode: BodyMode = BodyMode.EMPTY

    def __post_init__(self):
        object.__setattr__(self, "headers", self.headers.frozen())

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status_code} {self.reason}".rstrip()

    @property
    def label(self) -> str:
        """Status label for display, e.g. "301 Moved Permanently"."""
        return status_label(self.status_code, self.reason)

    @property
    def is_redirect(self) -> bool:
        """True for the followable redirects: 301, 302, 303, 307, 308."""
        return is_followable_redirect(self.status_code)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    # =========================================================================
    # HEADERS
    # =========================================================================

    @property
    def location(self) -> Optional[str]:
        return self.headers.get_first("Location")

    @property
    def content_type(self) -> Optional[str]:
        """
        Media type without parameters, lowercased.

        "text/html; charset=utf-8" → "text/html"
        """
        value = self.headers.get_first("Content-Type")
        if value is None:
            return None
        return value.split(";")[0].strip().lower() or None

    @property
    def charset(self) -> str:
        value = self.headers.get_first("Content-Type") or ""
        for param in value.split(";")[1:]:
            key, _, val = param.partition("=")
            if key.strip().lower() == "charset" and val.strip():
                return val.strip().strip('"')
        return "utf-8"

    @property
    def is_text(self) -> bool:
        content_type = self.content_type
        if content_type is None:
            return False
        return (
            content_type.startswith("text/")
            or content_type in TEXT_CONTENT_TYPES
            or content_type.endswith("+json")
        )

    @property
    def reusable(self) -> bool:
        """
        Could the connection carry another request after this response?

        Never after a read-until-close body; otherwise only when the
        server did not ask to close.
        """
        if self.body_mode is BodyMode.UNTIL_CLOSE:
            return False
        connection = (self.headers.get_first("Connection") or "").lower()
        if self.version == "HTTP/1.0":
            return connection == "keep-alive"
        return connection != "close"

    def text(self, errors: str = "replace") -> str:
        """Decode the body using the declared charset (UTF-8 by default)."""
        try:
            return self.body.decode(self.charset, errors=errors)
        except LookupError:
            return self.body.decode("utf-8", errors=errors)

    def to_bytes(self, chunk_size: Optional[int] = None) -> bytes:
        return serialize_response(self, chunk_size=chunk_size)
