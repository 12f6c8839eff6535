"""
httpc - An HTTP/1.1 client built from scratch in Python.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpc/
    ├── __init__.py          ← You are here (public API exports)
    ├── __main__.py          ← CLI entry point (httpc get/post)
    ├── client.py            ← HTTPClient facade
    ├── config.py            ← ClientConfig dataclass
    ├── redirects.py         ← RedirectController, RedirectPolicy
    ├── logs.py              ← Logging setup, per-exchange log records
    ├── output.py            ← Terminal rendering with rich
    │
    ├── core/
    │   └── connection.py    ← Sockets, TLS, transport interfaces
    │
    └── http/
        ├── errors.py        ← Exception hierarchy
        ├── headers.py       ← HeaderSet
        ├── request.py       ← HTTPRequest, RequestBuilder
        ├── response.py      ← HTTPResponse, BodyMode
        ├── serializer.py    ← Messages to wire bytes
        ├── parser.py        ← Streaming response parser
        └── status_codes.py  ← Status codes and redirect classes

=============================================================================
QUICK START
=============================================================================

    from httpc import HTTPClient, ClientConfig

    client = HTTPClient(ClientConfig(follow_redirects=True))
    chain = client.get("http://example.com/")
    print(chain.final_response.label)
    print(chain.final_response.text())

=============================================================================
"""

__version__ = "1.0.0"

from .http import (
    BodyMode,
    HeaderSet,
    HTTPClientError,
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RedirectError,
    RequestBuilder,
    RequestError,
    ResponseParser,
    TransportError,
    serialize_request,
)
from .config import ClientConfig
from .redirects import RedirectChain, RedirectController, RedirectPolicy
from .client import HTTPClient

__all__ = [
    "__version__",
    # Client
    "HTTPClient",
    "ClientConfig",
    "RedirectChain",
    "RedirectController",
    "RedirectPolicy",
    # Messages
    "BodyMode",
    "HeaderSet",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "RequestBuilder",
    "ResponseParser",
    "serialize_request",
    # Errors
    "HTTPClientError",
    "HTTPParseError",
    "RedirectError",
    "RequestError",
    "TransportError",
]
