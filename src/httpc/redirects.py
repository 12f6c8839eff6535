"""
=============================================================================
REDIRECT CONTROLLER
=============================================================================

Drives one request through as many redirect hops as policy allows and
returns every request/response pair it produced.

=============================================================================
ONE HOP
=============================================================================

    ┌───────────┐ serialize ┌─────────┐ connect/write ┌──────────────────┐
    │HTTPRequest│ ────────► │  bytes  │ ────────────► │ Stream (fresh)   │
    └───────────┘           └─────────┘               └────────┬─────────┘
                                                               │ read
    ┌────────────┐   ResponseParser (skips interim 1xx)        │
    │HTTPResponse│ ◄───────────────────────────────────────────┘
    └────────────┘                                     close (always)

=============================================================================
THE LOOP
=============================================================================

    response is not 301/302/303/307/308  ──► done
    following disabled                   ──► done
    max_redirects == 0                   ──► done (redirect returned as is)
    no Location header                   ──► MissingLocationHeader
    hop count > max_redirects            ──► TooManyRedirects
    otherwise                            ──► build next request, loop

=============================================================================
BUILDING THE NEXT REQUEST
=============================================================================

    Location          resolved against the previous request URL:
                        "/b"              → http://a.example/b
                        "c"               → http://a.example/dir/c
                        "//cdn.example/x" → http://cdn.example/x
                        "https://x/"      → used verbatim

    Method/body       RedirectPolicy (overridable):
                        303        → GET, no body (whatever the method)
                        301, 302   → POST becomes GET, no body;
                                     GET, HEAD and others unchanged
                        307, 308   → method and body unchanged

    Headers           Host rebuilt for the new authority.
                      Content-Length, Content-Type and Transfer-Encoding
                      leave together with the body.
                      Authorization and Cookie are dropped when the
                      origin (scheme, host, port) changes.

=============================================================================
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from .core.connection import TransportProvider
from .http.errors import (
    HTTPClientError,
    InvalidTarget,
    MissingLocationHeader,
    TooManyRedirects,
    TransportError,
)
from .http.parser import DEFAULT_MAX_LINE_SIZE, read_response
from .http.request import DEFAULT_PORTS, HTTPRequest
from .http.response import HTTPResponse
from .logs import ExchangeLog

logger = logging.getLogger(__name__)

DEFAULT_MAX_REDIRECTS = 10

BODY_HEADERS = ("Content-Length", "Content-Type", "Transfer-Encoding")
CREDENTIAL_HEADERS = ("Authorization", "Cookie")


@dataclass(frozen=True)
class RedirectPolicy:
    """
    Method rewrite rules for redirects.

    These follow what browsers and most clients do rather than a strict
    reading of RFC 7231. Replace the sets to change them:

        # Never turn POST into GET on 301/302
        RedirectPolicy(post_to_get=frozenset())
    """

    always_get: FrozenSet[int] = frozenset({303})
    post_to_get: FrozenSet[int] = frozenset({301, 302})

    def rewrite(self, status_code: int, method: str) -> Tuple[str, bool]:
        """
        Method for the next hop.

        Returns:
            (method, keep_body)
        """
        if status_code in self.always_get:
            return "GET", False
        if status_code in self.post_to_get and method.upper() == "POST":
            return "GET", False
        return method, True


@dataclass(frozen=True)
class Exchange:
    """One hop: the request sent, the response it got, and its 1-based position."""

    request: HTTPRequest
    response: HTTPResponse
    hop: int = 1


@dataclass
class RedirectChain:
    """
    Every exchange of one execute(), in order. Never empty once returned.

    The last exchange is the final answer; the ones before it are the
    redirects that were followed.
    """

    exchanges: List[Exchange] = field(default_factory=list)

    def append(self, request: HTTPRequest, response: HTTPResponse) -> None:
        self.exchanges.append(Exchange(request, response, hop=len(self.exchanges) + 1))

    @property
    def final(self) -> Exchange:
        return self.exchanges[-1]

    @property
    def final_response(self) -> HTTPResponse:
        return self.exchanges[-1].response

    @property
    def requests(self) -> List[HTTPRequest]:
        return [e.request for e in self.exchanges]

    @property
    def responses(self) -> List[HTTPResponse]:
        return [e.response for e in self.exchanges]

    @property
    def redirects_followed(self) -> int:
        return max(len(self.exchanges) - 1, 0)

    def __iter__(self) -> Iterator[Exchange]:
        return iter(self.exchanges)

    def __len__(self) -> int:
        return len(self.exchanges)


class RedirectController:
    """
    Executes a request, following redirects per policy.

    Example:
        controller = RedirectController(SocketTransport(timeout=10))
        chain = controller.execute(request, max_redirects=5)
        chain.final_response.status_code
    """

    def __init__(
        self,
        transport: TransportProvider,
        policy: Optional[RedirectPolicy] = None,
        buffer_size: int = 8192,
        max_line_size: int = DEFAULT_MAX_LINE_SIZE,
    ):
        self.transport = transport
        self.policy = policy or RedirectPolicy()
        self.buffer_size = buffer_size
        self.max_line_size = max_line_size

    def execute(
        self,
        initial_request: HTTPRequest,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        follow_enabled: bool = True,
    ) -> RedirectChain:
        """
        Send `initial_request` and follow redirects.

        Args:
            initial_request: The first request. Not modified.
            max_redirects: Redirects that may be followed. 0 returns the
                           first redirect response without following it.
            follow_enabled: False returns after the first response.

        Raises:
            RequestError: A request could not be serialized.
            HTTPParseError: A response violated the protocol.
            MissingLocationHeader / TooManyRedirects: Redirect policy.
            TransportError: Connect, TLS, read or write failure.
        """
        if max_redirects < 0:
            raise ValueError(f"max_redirects must be >= 0, got {max_redirects}")

        exchange_id = str(uuid.uuid4())[:8]
        chain = RedirectChain()
        request = initial_request
        hops = 0

        while True:
            response = self._send(request, exchange_id, len(chain) + 1)
            chain.append(request, response)

            if not follow_enabled or not response.is_redirect or max_redirects == 0:
                return chain

            location = response.location
            if not location:
                raise MissingLocationHeader(
                    f"{response.label} from {request.target} has no Location header"
                )

            hops += 1
            if hops > max_redirects:
                raise TooManyRedirects(
                    f"Exceeded {max_redirects} redirects (last: {request.target} → {location})",
                    max_redirects=max_redirects,
                )

            request = self.next_request(request, response)
            logger.debug(f"[{exchange_id}] Following {response.status_code} to {request.target}")

    # =========================================================================
    # HOP
    # =========================================================================

    def _send(self, request: HTTPRequest, exchange_id: str, hop: int) -> HTTPResponse:
        """Run one exchange on a fresh connection, closed however it ends."""
        entry = ExchangeLog(exchange_id=exchange_id, hop=hop, method=request.method, url=request.target)
        start_time = time.time()

        try:
            data = request.to_bytes()
            stream = self.transport.connect(request.host, request.port, request.use_tls)
            try:
                stream.write(data)
                response = read_response(
                    stream,
                    request_method=request.method,
                    buffer_size=self.buffer_size,
                    max_line_size=self.max_line_size,
                )
            finally:
                stream.close()
        except OSError as e:
            error = TransportError(f"{request.method} {request.target}: {e}", cause=e)
            self._finish(entry, start_time, error=error)
            raise error from e
        except HTTPClientError as e:
            self._finish(entry, start_time, error=e)
            raise

        entry.status_code = response.status_code
        entry.reason = response.reason
        entry.body_mode = response.body_mode.value
        entry.body_bytes = len(response.body)
        self._finish(entry, start_time)
        return response

    def _finish(
        self,
        entry: ExchangeLog,
        start_time: float,
        error: Optional[HTTPClientError] = None,
    ) -> None:
        entry.duration_ms = (time.time() - start_time) * 1000
        if error is not None:
            entry.error = f"{error.kind}: {error}"
        entry.emit()

    # =========================================================================
    # NEXT REQUEST
    # =========================================================================

    def next_request(self, request: HTTPRequest, response: HTTPResponse) -> HTTPRequest:
        """
        Build the request that follows `response`.

        Raises:
            MissingLocationHeader: No Location header.
            InvalidTarget: Location resolves to a non-http(s) URL.
        """
        location = response.location
        if not location:
            raise MissingLocationHeader(f"{response.label} has no Location header")

        target = resolve_location(request.target, location)
        method, keep_body = self.policy.rewrite(response.status_code, request.method)

        headers = request.headers.copy()
        body = request.body if keep_body else None
        if not keep_body:
            for name in BODY_HEADERS:
                headers.remove_all(name)

        next_request = HTTPRequest(
            method=method,
            target=target,
            version=request.version,
            headers=headers,
            body=body,
        )
        next_request.headers.replace("Host", next_request.authority)

        if next_request.origin != request.origin:
            dropped = [name for name in CREDENTIAL_HEADERS if headers.remove_all(name)]
            if dropped:
                logger.debug(
                    f"Dropped {', '.join(dropped)} on redirect to another origin "
                    f"({next_request.authority})"
                )

        return next_request


def resolve_location(base_url: str, location: str) -> str:
    """
    Resolve a Location header against the URL that produced it.

    Raises:
        InvalidTarget: The result is not an http(s) URL with a host.
    """
    target = urljoin(base_url, location.strip())
    parts = urlsplit(target)
    if parts.scheme.lower() not in DEFAULT_PORTS:
        raise InvalidTarget(f"Redirect to unsupported scheme: {location!r}")
    if not parts.hostname:
        raise InvalidTarget(f"Redirect target has no host: {location!r}")
    return target
