"""
=============================================================================
HTTP STATUS CODES (RFC 7231) - CLIENT VIEW
=============================================================================

A client does not pick status codes, it RECEIVES them. Any three-digit code
from 100 to 599 is legal on the wire, including codes no registry knows
about, so the parser stores a plain int and this module only interprets it:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  1xx   │ INFORMATIONAL - interim, never carries a body             │
    │  2xx   │ SUCCESS       - 204 No Content never carries a body       │
    │  3xx   │ REDIRECTION   - 301/302/303/307/308 are followable        │
    │        │                 304 Not Modified never carries a body     │
    │  4xx   │ CLIENT ERROR                                              │
    │  5xx   │ SERVER ERROR                                              │
    └────────┴───────────────────────────────────────────────────────────┘

The redirect controller asks `is_followable_redirect()`, the parser asks
`forbids_body()`, and the presentation layer asks `status_label()`.

=============================================================================
"""

from enum import IntEnum
from typing import Optional


class HTTPStatus(IntEnum):
    """
    Registered HTTP status codes.

    IntEnum, so members compare equal to the int the parser produced:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus(301).phrase
        'Moved Permanently'
    """

    # 1xx INFORMATIONAL
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102
    EARLY_HINTS = 103

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206

    # 3xx REDIRECTION
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301     # Method may change POST -> GET (legacy)
    FOUND = 302                 # Method may change POST -> GET (legacy)
    SEE_OTHER = 303             # Always fetch the new location with GET
    NOT_MODIFIED = 304          # Cached copy is valid, no body
    TEMPORARY_REDIRECT = 307    # Method and body preserved
    PERMANENT_REDIRECT = 308    # Method and body preserved

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    IM_A_TEAPOT = 418
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Standard reason phrase for this code."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_informational(self) -> bool:
        return 100 <= self < 200

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.CONTINUE: "Continue",
    HTTPStatus.SWITCHING_PROTOCOLS: "Switching Protocols",
    HTTPStatus.PROCESSING: "Processing",
    HTTPStatus.EARLY_HINTS: "Early Hints",
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.ACCEPTED: "Accepted",
    HTTPStatus.NON_AUTHORITATIVE_INFORMATION: "Non-Authoritative Information",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.RESET_CONTENT: "Reset Content",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.MULTIPLE_CHOICES: "Multiple Choices",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.SEE_OTHER: "See Other",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.TEMPORARY_REDIRECT: "Temporary Redirect",
    HTTPStatus.PERMANENT_REDIRECT: "Permanent Redirect",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.NOT_ACCEPTABLE: "Not Acceptable",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.GONE: "Gone",
    HTTPStatus.LENGTH_REQUIRED: "Length Required",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.UNSUPPORTED_MEDIA_TYPE: "Unsupported Media Type",
    HTTPStatus.IM_A_TEAPOT: "I'm a teapot",
    HTTPStatus.UNPROCESSABLE_ENTITY: "Unprocessable Entity",
    HTTPStatus.TOO_MANY_REQUESTS: "Too Many Requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.BAD_GATEWAY: "Bad Gateway",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.GATEWAY_TIMEOUT: "Gateway Timeout",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


# Statuses the redirect controller knows how to follow.
REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


def is_followable_redirect(status_code: int) -> bool:
    return status_code in REDIRECT_STATUSES


def forbids_body(status_code: int, request_method: str = "GET") -> bool:
    """
    Return True when a response can never carry a body.

    RFC 7230 section 3.3.3: responses to HEAD, every 1xx, 204 No Content
    and 304 Not Modified end at the blank line after the headers, whatever
    their Content-Length says.
    """
    if request_method.upper() == "HEAD":
        return True
    return 100 <= status_code < 200 or status_code in (204, 304)


def reason_phrase(status_code: int) -> str:
    """Standard phrase for a code, or "" when the code is unregistered."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


def status_label(status_code: int, reason: Optional[str] = None) -> str:
    """
    Human-readable label such as "301 Moved Permanently".

    The server's own reason phrase wins; an empty one falls back to the
    registered phrase.
    """
    text = reason or reason_phrase(status_code)
    return f"{status_code} {text}".rstrip()
