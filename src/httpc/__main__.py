"""
=============================================================================
HTTPC CLI ENTRY POINT
=============================================================================

Command-line interface for the HTTP client.

=============================================================================
USAGE
=============================================================================

    # Fetch a page, print the body
    httpc get example.com

    # Show response status line and headers
    httpc get -v http://example.com/get

    # Also show the request as sent, with custom headers
    httpc get -vv -h "Accept: application/json" -h "X-Trace: 1" example.com

    # Follow redirects, at most 3
    httpc get -L --max-redirs 3 example.com/redirect/5

    # POST inline data or a file
    httpc post -d '{"name": "x"}' -h "Content-Type: application/json" example.com/post
    httpc post -f payload.bin example.com/upload

    # Save the body instead of printing it
    httpc get -o page.html example.com

Note that -h is the HEADER option, like curl's -H. Help is
available with --help only.

=============================================================================
EXIT STATUS
=============================================================================

    0   success (whatever the HTTP status)
    2   bad input: invalid URL, header, method or configuration
    3   the server broke the HTTP protocol
    4   redirect policy: missing Location or too many redirects
    5   connection, TLS, read/write failure or timeout
    6   file could not be read (-f) or written (-o)

=============================================================================
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.text import Text

from . import __version__
from .client import HTTPClient, parse_header_args
from .config import ClientConfig, LOG_FORMATS, LOG_LEVELS
from .core.connection import TransportProvider
from .http.errors import HTTPClientError
from .logs import setup_logging
from .output import COLOR_MODES, ResponsePrinter, make_console, write_body_to_file

logger = logging.getLogger("httpc")

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_FILE_ERROR = 6
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    =========================================================================
    ARGUMENT LAYOUT
    =========================================================================

        httpc [global options] {get,post} [request options] URL

    Global options (before the command):
    - --color, --log-level, --log-format, --version

    Request options (after the command), shared by get and post:
    - -v/-vv, -h HEADER (repeatable), -o FILE, -L, --max-redirs,
      --keep-post, -k

    post only, mutually exclusive:
    - -d DATA, -f FILE

    =========================================================================
    """
    parser = argparse.ArgumentParser(
        prog="httpc",
        description="A small HTTP/1.1 client built from scratch in Python",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  httpc get example.com                          # Print the body
  httpc get -v -L example.com                    # Follow redirects, show heads
  httpc get -h "Accept: text/html" example.com   # Custom header
  httpc post -d 'a=1' example.com/post           # POST inline data
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # GLOBAL ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--color",
        choices=COLOR_MODES,
        default="auto",
        help="Colorize output (default: auto)",
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: HTTPC_LOG_LEVEL or WARNING)",
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Log format on stderr (default: HTTPC_LOG_FORMAT or text)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"httpc {__version__}",
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST ARGUMENTS (shared by every command)
    # ─────────────────────────────────────────────────────────────────────
    # add_help=False everywhere: -h belongs to --header.

    common = argparse.ArgumentParser(add_help=False)

    common.add_argument(
        "--help",
        action="help",
        help="Show this help message and exit",
    )

    common.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="-v shows response heads, -vv also shows requests",
    )

    common.add_argument(
        "-h", "--header",
        dest="headers",
        action="append",
        default=[],
        metavar="HEADER",
        help='Add a request header, "Name: value" (repeatable)',
    )

    common.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help="Write the response body to FILE instead of stdout",
    )

    common.add_argument(
        "-L", "--location",
        action="store_true",
        help="Follow redirects",
    )

    common.add_argument(
        "--max-redirs",
        type=int,
        default=None,
        metavar="N",
        help="Maximum redirects to follow (default: HTTPC_MAX_REDIRECTS or 10)",
    )

    common.add_argument(
        "--keep-post",
        action="store_true",
        help="Keep POST (and its body) on 301/302 redirects",
    )

    common.add_argument(
        "-k", "--insecure",
        action="store_true",
        help="Do not verify TLS certificates",
    )

    common.add_argument("url", help="URL to request; http:// is assumed without a scheme")

    # ─────────────────────────────────────────────────────────────────────
    # COMMANDS
    # ─────────────────────────────────────────────────────────────────────

    commands = parser.add_subparsers(dest="command", metavar="{get,post}")
    commands.required = True

    commands.add_parser(
        "get",
        parents=[common],
        add_help=False,
        help="Send a GET request",
    )

    post = commands.add_parser(
        "post",
        parents=[common],
        add_help=False,
        help="Send a POST request",
    )
    body = post.add_mutually_exclusive_group()
    body.add_argument("-d", "--data", default=None, help="Inline request body")
    body.add_argument("-f", "--file", default=None, help="Read the request body from FILE")

    return parser


def config_from_args(args: argparse.Namespace) -> ClientConfig:
    """Environment settings, overridden by whatever was given on the command line."""
    config = ClientConfig.from_env()

    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format
    if args.location:
        config.follow_redirects = True
    if args.max_redirs is not None:
        config.max_redirects = args.max_redirs
    if args.keep_post:
        config.redirect_post_to_get = False
    if args.insecure:
        config.verify_tls = False

    config.validate()
    return config


def read_request_body(args: argparse.Namespace) -> Optional[bytes]:
    """The post body from -d or -f; None for get or when neither is given."""
    data = getattr(args, "data", None)
    path = getattr(args, "file", None)
    if data is not None:
        return data.encode("utf-8")
    if path is not None:
        return Path(path).read_bytes()
    return None


def main(argv: Optional[List[str]] = None, transport: Optional[TransportProvider] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Arguments without the program name (default: sys.argv[1:]).
        transport: TransportProvider override, used by tests.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)
    errors = make_console(args.color, file=sys.stderr)

    def report(kind: str, message: str) -> None:
        errors.print(Text(f"error: {kind}: {message}", style="red"))

    try:
        config = config_from_args(args)
    except ValueError as e:
        report("ConfigError", str(e))
        return EXIT_USAGE

    setup_logging(config.log_level, config.log_format)
    printer = ResponsePrinter(make_console(args.color), verbosity=args.verbose)

    try:
        headers = parse_header_args(args.headers)
        body = read_request_body(args)
        client = HTTPClient(config, transport=transport)
        request = client.build_request(args.command.upper(), args.url, headers=headers, body=body)
        chain = client.send(request)
    except HTTPClientError as e:
        report(e.kind, str(e))
        return e.exit_code
    except OSError as e:
        report("FileError", f"Cannot read request body: {e}")
        return EXIT_FILE_ERROR
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED

    printer.print_chain(chain, show_body=args.output is None)

    if args.output is not None:
        try:
            written = write_body_to_file(chain.final_response, args.output)
        except OSError as e:
            report("FileError", f"Cannot write {args.output}: {e}")
            return EXIT_FILE_ERROR
        logger.info(f"Wrote {written} bytes to {args.output}")

    return EXIT_OK


# =============================================================================
# ENTRY POINT
# =============================================================================
# Allows running: python -m httpc

if __name__ == "__main__":
    sys.exit(main())
