"""
HTTP protocol components.

Message models, the wire serializer and the streaming response parser.
"""

from .errors import (
    ChunkLengthMismatch,
    ConflictingContentLength,
    HTTPClientError,
    HTTPParseError,
    IncompleteResponse,
    InvalidHeaderName,
    InvalidHeaderValue,
    InvalidMethod,
    InvalidTarget,
    InvalidVersion,
    MalformedChunkSize,
    MalformedContentLength,
    MalformedHeaderLine,
    MalformedStatusLine,
    MissingLocationHeader,
    RedirectError,
    RequestError,
    TooManyRedirects,
    TransportError,
)
from .headers import HeaderSet
from .status_codes import HTTPStatus, REDIRECT_STATUSES
from .serializer import encode_chunked, serialize_request, serialize_response
from .request import HTTPRequest, RequestBuilder
from .response import BodyMode, HTTPResponse
from .parser import ParserState, ResponseParser, parse_response, read_response

__all__ = [
    # Errors
    "ChunkLengthMismatch",
    "ConflictingContentLength",
    "HTTPClientError",
    "HTTPParseError",
    "IncompleteResponse",
    "InvalidHeaderName",
    "InvalidHeaderValue",
    "InvalidMethod",
    "InvalidTarget",
    "InvalidVersion",
    "MalformedChunkSize",
    "MalformedContentLength",
    "MalformedHeaderLine",
    "MalformedStatusLine",
    "MissingLocationHeader",
    "RedirectError",
    "RequestError",
    "TooManyRedirects",
    "TransportError",
    # Messages
    "BodyMode",
    "HeaderSet",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "REDIRECT_STATUSES",
    "RequestBuilder",
    # Wire
    "ParserState",
    "ResponseParser",
    "encode_chunked",
    "parse_response",
    "read_response",
    "serialize_request",
    "serialize_response",
]
