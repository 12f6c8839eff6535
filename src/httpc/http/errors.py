"""
=============================================================================
HTTP CLIENT ERRORS
=============================================================================

Every failure the message engine can report is a subclass of
HTTPClientError. Errors are grouped by WHO got something wrong:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ERROR FAMILIES                              │
    ├──────────────────┬──────────────────────────────────────────────────┤
    │  RequestError    │ The caller handed us bad input (serialize time)  │
    │                  │   InvalidHeaderName, InvalidHeaderValue,         │
    │                  │   InvalidTarget, InvalidMethod, InvalidVersion   │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │  HTTPParseError  │ The peer violated the protocol (parse time)      │
    │                  │   MalformedStatusLine, MalformedHeaderLine,      │
    │                  │   MalformedContentLength,                        │
    │                  │   ConflictingContentLength, MalformedChunkSize,  │
    │                  │   ChunkLengthMismatch, IncompleteResponse        │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │  RedirectError   │ The redirect policy refused to continue          │
    │                  │   MissingLocationHeader, TooManyRedirects        │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │  TransportError  │ The byte stream failed (connect/read/write/TLS)  │
    └──────────────────┴──────────────────────────────────────────────────┘

All of them are terminal for the current request chain. Nothing is retried;
the CLI decides how to report the error and which exit status to use.

Each class carries two pieces of metadata:

    kind:      Stable name of the failure ("MalformedStatusLine", ...)
    exit_code: Process exit status the CLI uses for this family

=============================================================================
"""

from typing import Optional


class HTTPClientError(Exception):
    """
    Base class for every error raised by the message engine.

    Like a parse error that knows which status code to answer with, our
    errors know their own kind and exit status, so the CLI never needs a
    lookup table keyed on exception types.
    """

    kind = "HTTPClientError"
    exit_code = 1

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def __str__(self) -> str:
        return self.message


# =============================================================================
# CALLER INPUT ERRORS
# =============================================================================

class RequestError(HTTPClientError):
    """The request could not be built or serialized from caller input."""

    kind = "RequestError"
    exit_code = 2


class InvalidHeaderName(RequestError):
    kind = "InvalidHeaderName"


class InvalidHeaderValue(RequestError):
    kind = "InvalidHeaderValue"


class InvalidTarget(RequestError):
    """
    The request target is unusable.

    Raised when the URL has no host or an unsupported scheme, or when the
    target holds characters that must be percent-encoded. Escaping is the
    caller's job; the wire layer never rewrites a target.
    """

    kind = "InvalidTarget"


class InvalidMethod(RequestError):
    kind = "InvalidMethod"


class InvalidVersion(RequestError):
    """The request line would carry something other than HTTP/1.0 or HTTP/1.1."""

    kind = "InvalidVersion"


# =============================================================================
# PROTOCOL VIOLATIONS BY THE PEER
# =============================================================================

class HTTPParseError(HTTPClientError):
    """The response bytes do not form a valid HTTP/1.1 message."""

    kind = "HTTPParseError"
    exit_code = 3


class MalformedStatusLine(HTTPParseError):
    kind = "MalformedStatusLine"


class MalformedHeaderLine(HTTPParseError):
    kind = "MalformedHeaderLine"


class MalformedContentLength(HTTPParseError):
    kind = "MalformedContentLength"


class ConflictingContentLength(HTTPParseError):
    kind = "ConflictingContentLength"


class MalformedChunkSize(HTTPParseError):
    kind = "MalformedChunkSize"


class ChunkLengthMismatch(HTTPParseError):
    kind = "ChunkLengthMismatch"


class IncompleteResponse(HTTPParseError):
    """The stream ended before the message was complete."""

    kind = "IncompleteResponse"


# =============================================================================
# REDIRECT POLICY
# =============================================================================

class RedirectError(HTTPClientError):
    kind = "RedirectError"
    exit_code = 4


class MissingLocationHeader(RedirectError):
    kind = "MissingLocationHeader"


class TooManyRedirects(RedirectError):
    """
    Raised once the hop count exceeds the configured maximum.

    Attributes:
        max_redirects: The limit that was exceeded.
    """

    kind = "TooManyRedirects"

    def __init__(self, message: str = "", max_redirects: int = 0):
        super().__init__(message)
        self.max_redirects = max_redirects


# =============================================================================
# TRANSPORT
# =============================================================================

class TransportError(HTTPClientError):
    """
    I/O failure on the underlying byte stream.

    The original exception is kept both as ``cause`` and as ``__cause__``
    (callers raise this with ``raise TransportError(...) from exc``).
    Timeouts surface here too, since deadlines belong to the transport.
    """

    kind = "TransportError"
    exit_code = 5

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
