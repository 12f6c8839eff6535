"""
=============================================================================
HTTP CLIENT
=============================================================================

The facade tying configuration, request building and the redirect
controller together.

    ┌─────────────┐   ┌────────────────┐   ┌────────────────────┐
    │ ClientConfig│──►│   HTTPClient   │──►│ RedirectController │──► chain
    └─────────────┘   │  RequestBuilder│   │  SocketTransport   │
                      └────────────────┘   └────────────────────┘

Example:
    client = HTTPClient(ClientConfig(follow_redirects=True))
    chain = client.get("example.com", headers=[("Accept", "text/html")])
    print(chain.final_response.label)

=============================================================================
"""

import logging
from typing import Iterable, List, Optional, Tuple, Union

from .config import ClientConfig
from .core.connection import SocketTransport, TransportProvider
from .http.errors import InvalidHeaderName
from .http.request import HTTPRequest, RequestBuilder
from .redirects import RedirectChain, RedirectController, RedirectPolicy

logger = logging.getLogger(__name__)

HeaderPairs = Iterable[Tuple[str, str]]


class HTTPClient:
    """
    Blocking HTTP/1.1 client.

    Attributes:
        config: The ClientConfig in use.
        transport: TransportProvider; a SocketTransport unless one is given.
        controller: The RedirectController every request goes through.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[TransportProvider] = None,
    ):
        self.config = config or ClientConfig()
        self.config.validate()

        self.transport = transport or SocketTransport(
            timeout=self.config.timeout,
            verify_tls=self.config.verify_tls,
        )

        policy = RedirectPolicy()
        if not self.config.redirect_post_to_get:
            policy = RedirectPolicy(post_to_get=frozenset())

        self.controller = RedirectController(
            self.transport,
            policy=policy,
            buffer_size=self.config.buffer_size,
            max_line_size=self.config.max_line_size,
        )

    def build_request(
        self,
        method: str,
        url: str,
        headers: Optional[HeaderPairs] = None,
        body: Optional[Union[str, bytes]] = None,
    ) -> HTTPRequest:
        return (
            RequestBuilder(method, url, user_agent=self.config.user_agent)
            .headers(headers or [])
            .body(body)
            .build()
        )

    def send(self, request: HTTPRequest) -> RedirectChain:
        """Execute a prepared request with the configured redirect settings."""
        return self.controller.execute(
            request,
            max_redirects=self.config.max_redirects,
            follow_enabled=self.config.follow_redirects,
        )

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[HeaderPairs] = None,
        body: Optional[Union[str, bytes]] = None,
    ) -> RedirectChain:
        request = self.build_request(method, url, headers=headers, body=body)
        logger.debug(f"{request.method} {request.target}")
        return self.send(request)

    def get(self, url: str, headers: Optional[HeaderPairs] = None) -> RedirectChain:
        return self.request("GET", url, headers=headers)

    def head(self, url: str, headers: Optional[HeaderPairs] = None) -> RedirectChain:
        return self.request("HEAD", url, headers=headers)

    def post(
        self,
        url: str,
        body: Optional[Union[str, bytes]] = None,
        headers: Optional[HeaderPairs] = None,
    ) -> RedirectChain:
        return self.request("POST", url, headers=headers, body=body)


def parse_header_args(values: Optional[Iterable[str]]) -> List[Tuple[str, str]]:
    """
    Parse "Name:value" strings from the command line.

        ["Accept: text/html", "X-Empty:"] → [("Accept", "text/html"), ("X-Empty", "")]

    Only the first colon splits, so "X-Time: 12:30" keeps its value intact.
    Names and values are validated later, when they enter a HeaderSet.

    Raises:
        InvalidHeaderName: An entry has no colon or an empty name.
    """
    headers = []
    for value in values or []:
        name, sep, rest = value.partition(":")
        if not sep or not name.strip():
            raise InvalidHeaderName(f"Header must be given as 'Name: value', got {value!r}")
        headers.append((name.strip(), rest.strip()))
    return headers
