"""
=============================================================================
HTTP MESSAGE SERIALIZER
=============================================================================

Turns message models into the exact bytes that go on the wire.

=============================================================================
SERIALIZATION FORMAT
=============================================================================

    GET /get?x=1 HTTP/1.1\r\n        ← start line
    Host: example.com\r\n            ← one line per HeaderSet entry,
    User-Agent: httpc/1.0.0\r\n        in HeaderSet order
    \r\n                             ← empty line (separator)
    <body bytes>                     ← verbatim, no transformation

Responses use the same grammar with a status line instead, and may frame
their body with chunked transfer-encoding:

    4\r\n                            ← chunk size in hex
    Wiki\r\n                         ← chunk data + CRLF
    0\r\n                            ← last chunk
    Expires: never\r\n               ← optional trailers
    \r\n                             ← end of message

=============================================================================
TARGET CHECKING
=============================================================================

The serializer REJECTS a request-target that still contains characters
needing percent-encoding instead of quietly escaping them. Whether "a b"
should become "a%20b" or "a+b" is the caller's decision; the wire layer
must not guess.

    allowed = unreserved | sub-delims | ":" | "@" | "/" | "?" | pct-encoded
    unreserved = ALPHA DIGIT "-" "." "_" "~"
    sub-delims = "!" "$" "&" "'" "(" ")" "*" "+" "," ";" "="
    pct-encoded = "%" HEXDIG HEXDIG

=============================================================================
"""

import re
from typing import Iterable, Optional, Tuple

from .errors import InvalidHeaderValue, InvalidMethod, InvalidTarget, InvalidVersion
from .headers import TOKEN_PATTERN

CRLF = b"\r\n"
SUPPORTED_VERSIONS = frozenset({"HTTP/1.0", "HTTP/1.1"})

TARGET_PATTERN = re.compile(
    r"^(?:[A-Za-z0-9\-._~!$&'()*+,;=:@/?]|%[0-9A-Fa-f]{2})+$"
)


def validate_target(target: str) -> str:
    """Return `target` unchanged, or raise InvalidTarget."""
    if not target or not TARGET_PATTERN.match(target):
        raise InvalidTarget(
            f"Request target must be percent-encoded by the caller: {target!r}"
        )
    return target


def validate_version(version: str) -> str:
    if version not in SUPPORTED_VERSIONS:
        raise InvalidVersion(f"Unsupported HTTP version: {version!r}")
    return version


def check_framing(request) -> None:
    """
    Refuse a header set that frames the body differently from how it is sent.

    The body always goes out verbatim, so the only framing allowed is a
    single Content-Length equal to its size (or none at all without a body).
    """
    lengths = request.headers.get_all("Content-Length")
    if "Transfer-Encoding" in request.headers:
        raise InvalidHeaderValue("Transfer-Encoding is not supported on requests")
    if request.body is None:
        if lengths:
            raise InvalidHeaderValue(f"Content-Length {', '.join(lengths)} without a body")
    elif lengths != [str(len(request.body))]:
        raise InvalidHeaderValue(
            f"Content-Length {', '.join(lengths) or '(missing)'} does not match "
            f"a {len(request.body)}-byte body"
        )


def _header_block(headers) -> bytes:
    lines = [f"{name}: {value}" for name, value in headers]
    if not lines:
        return b""
    return ("\r\n".join(lines)).encode("utf-8") + CRLF


def serialize_request(request) -> bytes:
    """
    Serialize an HTTPRequest.

    Raises:
        InvalidMethod: The method is not a token.
        InvalidTarget: The target needs percent-encoding.
        InvalidVersion: The version is not HTTP/1.0 or HTTP/1.1.
        InvalidHeaderValue: Content-Length or Transfer-Encoding disagree
                            with the body.
    """
    if not TOKEN_PATTERN.match(request.method or ""):
        raise InvalidMethod(f"Invalid method: {request.method!r}")
    target = validate_target(request.request_target)
    version = validate_version(request.version)
    check_framing(request)

    request_line = f"{request.method} {target} {version}".encode("ascii")
    message = request_line + CRLF + _header_block(request.headers) + CRLF
    if request.body:
        message += request.body
    return message


# =============================================================================
# RESPONSE SIDE
# =============================================================================

def encode_chunked(
    body: bytes,
    chunk_size: int = 4096,
    trailers: Optional[Iterable[Tuple[str, str]]] = None,
) -> bytes:
    """
    Frame `body` with chunked transfer-encoding.

    Args:
        body: Payload to split.
        chunk_size: Maximum bytes per chunk (must be positive).
        trailers: Optional (name, value) pairs after the last chunk.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")

    out = bytearray()
    for start in range(0, len(body), chunk_size):
        chunk = body[start:start + chunk_size]
        out += f"{len(chunk):X}".encode("ascii") + CRLF
        out += chunk + CRLF
    out += b"0" + CRLF
    for name, value in trailers or ():
        out += f"{name}: {value}".encode("latin-1") + CRLF
    out += CRLF
    return bytes(out)


def serialize_response(response, chunk_size: Optional[int] = None) -> bytes:
    """
    Serialize an HTTPResponse-shaped object.

    The headers are written as stored. When `chunk_size` is given the body
    is framed with encode_chunked(); the caller is responsible for having a
    matching Transfer-Encoding header in the set.
    """
    status_line = f"{response.version} {response.status_code:03d} {response.reason}"
    header_lines = [f"{name}: {value}" for name, value in response.headers]
    head = "\r\n".join([status_line, *header_lines]).encode("latin-1") + CRLF + CRLF
    if chunk_size is not None:
        return head + encode_chunked(response.body, chunk_size)
    return head + response.body
