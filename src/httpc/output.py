"""
=============================================================================
TERMINAL OUTPUT
=============================================================================

Renders a redirect chain for the terminal with rich.

=============================================================================
WHAT GETS PRINTED
=============================================================================

    -vv  → Sending                        (each outgoing request, styled)
         GET /get HTTP/1.1                 method green, target blue,
         Host: example.com                 version dim, names cyan,
                                           values magenta
    -v   HTTP/1.1 301 Moved Permanently    (each response head)
         Location: /get

    always: the final body
         text/*, JSON, XML      → decoded and printed
         anything else          → "Binary data, not displaying."
         no Content-Type        → "No content type header, not displaying anything."

Colour follows --color: "always" forces ANSI codes even into a pipe,
"never" strips them, "auto" lets rich decide from the terminal.

=============================================================================
"""

from pathlib import Path
from typing import IO, Optional, Union

from rich.console import Console
from rich.text import Text

from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .redirects import RedirectChain

COLOR_MODES = ("auto", "always", "never")

BINARY_NOTICE = "Binary data, not displaying."
NO_CONTENT_TYPE_NOTICE = "No content type header, not displaying anything."


def make_console(color: str = "auto", file: Optional[IO[str]] = None) -> Console:
    """Build a Console for stdout (or `file`) honouring the colour mode."""
    options = dict(file=file, soft_wrap=True, highlight=False, emoji=False)
    if color == "always":
        # ANSI codes even when stdout is not a TTY
        return Console(force_terminal=True, color_system="standard", **options)
    if color == "never":
        return Console(color_system=None, **options)
    return Console(**options)


def _status_style(status_code: int) -> str:
    if status_code >= 400:
        return "bold red"
    if status_code >= 300:
        return "bold yellow"
    if status_code >= 200:
        return "bold green"
    return "bold"


class ResponsePrinter:
    """
    Prints requests and responses at a given verbosity.

    Example:
        printer = ResponsePrinter(make_console("never"), verbosity=1)
        printer.print_chain(chain)
    """

    def __init__(self, console: Optional[Console] = None, verbosity: int = 0):
        self.console = console or make_console()
        self.verbosity = verbosity

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def print_request(self, request: HTTPRequest) -> None:
        self.console.print(Text("→ Sending", style="yellow"))

        line = Text()
        line.append(request.method, style="green")
        line.append(" ")
        line.append(request.request_target, style="blue")
        line.append(" ")
        line.append(request.version, style="bright_black")
        self.console.print(line)
        self._print_headers(request.headers)
        self.console.print()

        if request.body:
            try:
                body = request.body.decode("utf-8")
            except UnicodeDecodeError:
                body = "[Invalid UTF-8]"
            self.console.print(Text(body))
            self.console.print()

    # =========================================================================
    # RESPONSES
    # =========================================================================

    def print_response_head(self, response: HTTPResponse) -> None:
        line = Text()
        line.append(response.version)
        line.append(" ")
        line.append(response.label, style=_status_style(response.status_code))
        self.console.print(line)
        self._print_headers(response.headers)
        self.console.print()

    def print_body(self, response: HTTPResponse) -> None:
        if response.content_type is None:
            self.console.print(NO_CONTENT_TYPE_NOTICE)
        elif not response.is_text:
            self.console.print(BINARY_NOTICE)
        else:
            text = response.text()
            self.console.print(Text(text), end="" if text.endswith("\n") else "\n")

    def print_chain(self, chain: RedirectChain, show_body: bool = True) -> None:
        """Print every exchange per verbosity, then the final body."""
        for exchange in chain:
            if self.verbosity >= 2:
                self.print_request(exchange.request)
            if self.verbosity >= 1:
                self.print_response_head(exchange.response)
        if show_body:
            self.print_body(chain.final_response)

    def _print_headers(self, headers) -> None:
        for name, value in headers:
            line = Text()
            line.append(name, style="cyan")
            line.append(": ")
            line.append(value, style="magenta")
            self.console.print(line)


def write_body_to_file(response: HTTPResponse, path: Union[str, Path]) -> int:
    """
    Write the raw body bytes to `path`.

    Returns:
        Number of bytes written.

    Raises:
        OSError: The file could not be written.
    """
    return Path(path).write_bytes(response.body)
