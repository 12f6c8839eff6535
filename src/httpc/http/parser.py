"""
=============================================================================
HTTP RESPONSE PARSER
=============================================================================

Incremental parser turning response bytes into an HTTPResponse.

=============================================================================
WHY INCREMENTAL?
=============================================================================

TCP delivers a byte STREAM, not messages. One recv() can return half a
status line, three headers and a piece of the body, or a single byte:

    recv() #1:  b"HTTP/1.1 200 OK\\r\\nContent-Le"
    recv() #2:  b"ngth: 2\\r\\n\\r"
    recv() #3:  b"\\nOK"

"Read everything until the connection closes, then parse" only works when
the server closes after every response and wastes memory either way. This
parser instead keeps a small buffer, consumes whatever complete pieces it
holds, and waits for more. Feeding a response one byte at a time or all at
once gives the same result.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────────┐  CRLF    ┌─────────┐  empty line  ┌────────────┐
    │ STATUS_LINE │ ───────► │ HEADERS │ ───────────► │ BODY(mode) │
    └──────┬──────┘          └────┬────┘              └─────┬──────┘
           │                      │                         │ framing done
           │                      │                         ▼
           │                      │                   ┌──────────┐
           │                      │                   │ COMPLETE │
           │                      │                   └──────────┘
           ▼                      ▼                         │
    ┌──────────────────────────────────────────────────────┴──┐
    │                      FAILED(kind)                        │
    │   reachable from every state; nothing partial escapes    │
    └──────────────────────────────────────────────────────────┘

Body mode is chosen ONCE, when the headers end:

    1. HEAD request, 1xx, 204, 304   → EMPTY
    2. Transfer-Encoding: chunked    → CHUNKED        (wins over length)
    3. Content-Length: n             → CONTENT_LENGTH
    4. otherwise                     → UNTIL_CLOSE

Chunked bodies run their own little cycle inside BODY:

    SIZE ──► DATA ──► DATA_END ──► SIZE ... ──(size 0)──► TRAILERS ──► done

=============================================================================
REQUEST SMUGGLING
=============================================================================

When Transfer-Encoding: chunked and Content-Length arrive together, the
chunked framing is used and the length ignored. Two Content-Length headers
that disagree are an error, never "pick one": two parties choosing
differently is exactly how one response gets read as two.

=============================================================================
"""

import logging
import re
from enum import Enum
from typing import Optional, Type

from .errors import (
    ChunkLengthMismatch,
    ConflictingContentLength,
    HTTPParseError,
    IncompleteResponse,
    InvalidHeaderName,
    InvalidHeaderValue,
    MalformedChunkSize,
    MalformedContentLength,
    MalformedHeaderLine,
    MalformedStatusLine,
)
from .headers import HeaderSet
from .response import BodyMode, HTTPResponse
from .serializer import SUPPORTED_VERSIONS
from .status_codes import forbids_body

logger = logging.getLogger(__name__)

CRLF = b"\r\n"
DEFAULT_MAX_LINE_SIZE = 64 * 1024

STATUS_CODE_PATTERN = re.compile(r"[0-9]{3}")
DIGITS_PATTERN = re.compile(r"[0-9]+")
HEX_PATTERN = re.compile(r"[0-9A-Fa-f]+")


class ParserState(Enum):
    STATUS_LINE = "status_line"
    HEADERS = "headers"
    BODY = "body"
    COMPLETE = "complete"
    FAILED = "failed"


class ChunkPhase(Enum):
    SIZE = "size"
    DATA = "data"
    DATA_END = "data_end"
    TRAILERS = "trailers"


class ResponseParser:
    """
    Streaming HTTP/1.1 response parser.

    Usage:
        parser = ResponseParser(request_method="GET")
        while not parser.is_complete:
            parser.feed(stream.read(8192))   # b"" means end of stream
        response = parser.response

    feed() raises the HTTPParseError subclass for the first protocol
    violation it sees; the parser then stays FAILED and re-raises that
    same error on every later call.

    Attributes:
        state:     Current ParserState
        body_mode: BodyMode, known once the headers are complete
        error:     The failure, once FAILED
    """

    def __init__(
        self,
        request_method: str = "GET",
        max_line_size: int = DEFAULT_MAX_LINE_SIZE,
    ):
        """
        Args:
            request_method: Method of the request being answered. A HEAD
                            response has no body whatever its headers say.
            max_line_size: Longest status, header or chunk-size line
                           accepted before failing.
        """
        self.request_method = request_method.upper()
        self.max_line_size = max_line_size

        self.state = ParserState.STATUS_LINE
        self.body_mode: Optional[BodyMode] = None
        self.error: Optional[HTTPParseError] = None

        self._buffer = bytearray()
        self._eof = False

        self._version = ""
        self._status_code = 0
        self._reason = ""
        self._headers = HeaderSet()
        self._body = bytearray()

        self._remaining = 0
        self._chunk_phase = ChunkPhase.SIZE
        self._response: Optional[HTTPResponse] = None

    # =========================================================================
    # PUBLIC INTERFACE
    # =========================================================================

    @property
    def is_complete(self) -> bool:
        return self.state is ParserState.COMPLETE

    @property
    def is_failed(self) -> bool:
        return self.state is ParserState.FAILED

    @property
    def response(self) -> HTTPResponse:
        """The finished response. Only available in COMPLETE."""
        if self.error is not None:
            raise self.error
        if self._response is None:
            raise RuntimeError(f"Response is not complete (state: {self.state.value})")
        return self._response

    @property
    def unconsumed(self) -> bytes:
        """Bytes received after the end of the message."""
        if self.state is ParserState.COMPLETE:
            return bytes(self._buffer)
        return b""

    def feed(self, data: bytes) -> ParserState:
        """
        Consume the next piece of the stream.

        Args:
            data: Bytes as returned by a read. Empty means end of stream.

        Returns:
            The state after consuming everything possible.

        Raises:
            HTTPParseError: On the first protocol violation.
        """
        if self.error is not None:
            raise self.error
        if not data:
            return self.feed_eof()
        self._buffer += data
        if self.state is not ParserState.COMPLETE:
            self._run()
        return self.state

    def feed_eof(self) -> ParserState:
        """Signal that the peer closed the stream."""
        if self.error is not None:
            raise self.error
        if not self._eof:
            self._eof = True
            if self.state is not ParserState.COMPLETE:
                self._run()
        return self.state

    # =========================================================================
    # DRIVER
    # =========================================================================

    def _run(self) -> None:
        try:
            while self.state is not ParserState.COMPLETE and self._step():
                pass
        except HTTPParseError as e:
            self.state = ParserState.FAILED
            self.error = e
            self._buffer.clear()
            self._body.clear()
            logger.debug(f"Response parse failed: {e.kind}: {e}")
            raise

    def _step(self) -> bool:
        """Advance once. Returns False when more input is needed."""
        if self.state is ParserState.STATUS_LINE:
            line = self._read_line(MalformedStatusLine)
            if line is None:
                return self._need_more("status line")
            self._parse_status_line(line)
            self.state = ParserState.HEADERS
            return True

        if self.state is ParserState.HEADERS:
            line = self._read_line(MalformedHeaderLine)
            if line is None:
                return self._need_more("headers")
            if line == "":
                self._start_body()
            else:
                self._parse_header_line(line)
            return True

        if self.state is ParserState.BODY:
            return self._step_body()

        return False

    def _need_more(self, where: str) -> bool:
        if self._eof:
            raise IncompleteResponse(f"Connection closed while reading {where}")
        return False

    def _read_line(self, error: Type[HTTPParseError]) -> Optional[str]:
        """
        Pop one CRLF-terminated line from the buffer.

        Lines are decoded as ISO-8859-1, which maps every byte to exactly
        one character, so nothing received is lost or rejected here.
        """
        end = self._buffer.find(CRLF)
        if end == -1:
            if len(self._buffer) > self.max_line_size:
                raise error(f"Line exceeds {self.max_line_size} bytes")
            return None
        if end > self.max_line_size:
            raise error(f"Line exceeds {self.max_line_size} bytes")
        line = bytes(self._buffer[:end]).decode("latin-1")
        del self._buffer[:end + 2]
        return line

    # =========================================================================
    # STATUS LINE AND HEADERS
    # =========================================================================

    def _parse_status_line(self, line: str) -> None:
        """
        Parse "HTTP-version SP status-code SP reason-phrase".

            "HTTP/1.1 200 OK"   → ("HTTP/1.1", 200, "OK")
            "HTTP/1.1 204 "     → ("HTTP/1.1", 204, "")
            "HTTP/1.1 204"      → ("HTTP/1.1", 204, "")
            "HTTP/1.1 20 OK"    → MalformedStatusLine (two digits)
            "HTTP/2.0 200 OK"   → MalformedStatusLine (version)
        """
        parts = line.split(" ", 2)
        if len(parts) < 2:
            raise MalformedStatusLine(f"Invalid status line: {line!r}")

        version, code = parts[0], parts[1]
        if version not in SUPPORTED_VERSIONS:
            raise MalformedStatusLine(f"Unsupported HTTP version: {version!r}")
        if not STATUS_CODE_PATTERN.fullmatch(code) or not 100 <= int(code) <= 599:
            raise MalformedStatusLine(f"Invalid status code: {code!r}")

        self._version = version
        self._status_code = int(code)
        self._reason = parts[2] if len(parts) == 3 else ""

    def _parse_header_line(self, line: str) -> None:
        """
        Parse "field-name: field-value" into the header set.

        Obsolete line folding (a line starting with SP or HTAB that
        continues the previous header) is refused, as is any name that is
        not a token ("Bad Name: x", ": x").
        """
        if line[0] in " \t":
            raise MalformedHeaderLine(f"Folded header lines are not supported: {line!r}")
        name, sep, value = line.partition(":")
        if not sep:
            raise MalformedHeaderLine(f"Header line has no colon: {line!r}")
        try:
            self._headers.insert(name, value)
        except (InvalidHeaderName, InvalidHeaderValue) as e:
            raise MalformedHeaderLine(f"Invalid header line {line!r}: {e}") from e

    # =========================================================================
    # BODY MODE SELECTION
    # =========================================================================

    def _is_chunked(self) -> bool:
        codings = []
        for value in self._headers.get_all("Transfer-Encoding"):
            codings.extend(c.strip().lower() for c in value.split(","))
        return "chunked" in codings

    def _content_length(self) -> Optional[int]:
        """
        The declared body length, or None without a Content-Length.

        "5" and "5, 5" (same value repeated) are accepted; "-1", "5a" and
        "" are malformed; "5" next to "6" is a conflict.
        """
        values = self._headers.get_all("Content-Length")
        if not values:
            return None

        lengths = set()
        for value in values:
            for item in value.split(","):
                item = item.strip()
                if not DIGITS_PATTERN.fullmatch(item):
                    raise MalformedContentLength(f"Invalid Content-Length: {value!r}")
                lengths.add(int(item))

        if len(lengths) > 1:
            raise ConflictingContentLength(
                f"Conflicting Content-Length values: {', '.join(values)}"
            )
        return lengths.pop()

    def _start_body(self) -> None:
        chunked = self._is_chunked()
        length = None if chunked else self._content_length()

        if forbids_body(self._status_code, self.request_method):
            self.body_mode = BodyMode.EMPTY
        elif chunked:
            self.body_mode = BodyMode.CHUNKED
            self._chunk_phase = ChunkPhase.SIZE
        elif length is not None:
            self.body_mode = BodyMode.CONTENT_LENGTH
            self._remaining = length
        else:
            self.body_mode = BodyMode.UNTIL_CLOSE

        logger.debug(f"Status {self._status_code}, body mode {self.body_mode.value}")
        self.state = ParserState.BODY

    # =========================================================================
    # BODY READING
    # =========================================================================

    def _step_body(self) -> bool:
        mode = self.body_mode

        if mode is BodyMode.EMPTY:
            self._complete()
            return True

        if mode is BodyMode.CONTENT_LENGTH:
            self._take_remaining()
            if self._remaining == 0:
                self._complete()
                return True
            return self._need_more("body")

        if mode is BodyMode.UNTIL_CLOSE:
            self._body += self._buffer
            self._buffer.clear()
            if self._eof:
                self._complete()
                return True
            return False

        return self._step_chunked()

    def _take_remaining(self) -> None:
        """Move up to self._remaining bytes from the buffer into the body."""
        take = min(self._remaining, len(self._buffer))
        if take:
            self._body += self._buffer[:take]
            del self._buffer[:take]
            self._remaining -= take

    def _step_chunked(self) -> bool:
        phase = self._chunk_phase

        if phase is ChunkPhase.SIZE:
            line = self._read_line(MalformedChunkSize)
            if line is None:
                return self._need_more("chunk size")
            # chunk-size [ ";" chunk-ext ], extensions ignored
            size_text = line.split(";", 1)[0].strip(" \t")
            if not HEX_PATTERN.fullmatch(size_text):
                raise MalformedChunkSize(f"Invalid chunk size line: {line!r}")
            size = int(size_text, 16)
            if size == 0:
                self._chunk_phase = ChunkPhase.TRAILERS
            else:
                self._remaining = size
                self._chunk_phase = ChunkPhase.DATA
            return True

        if phase is ChunkPhase.DATA:
            self._take_remaining()
            if self._remaining == 0:
                self._chunk_phase = ChunkPhase.DATA_END
                return True
            return self._need_more("chunk data")

        if phase is ChunkPhase.DATA_END:
            if len(self._buffer) < 2:
                if self._buffer and self._buffer[:1] != b"\r":
                    raise ChunkLengthMismatch("Chunk data is not followed by CRLF")
                return self._need_more("chunk terminator")
            if self._buffer[:2] != CRLF:
                raise ChunkLengthMismatch("Chunk data is not followed by CRLF")
            del self._buffer[:2]
            self._chunk_phase = ChunkPhase.SIZE
            return True

        # TRAILERS: header lines until the final empty line
        line = self._read_line(MalformedHeaderLine)
        if line is None:
            return self._need_more("chunked trailers")
        if line == "":
            self._complete()
        else:
            self._parse_header_line(line)
        return True

    def _complete(self) -> None:
        self._response = HTTPResponse(
            status_code=self._status_code,
            reason=self._reason,
            version=self._version,
            headers=self._headers,
            body=bytes(self._body),
            body_mode=self.body_mode,
        )
        self.state = ParserState.COMPLETE


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def parse_response(data: bytes, request_method: str = "GET", eof: bool = True) -> HTTPResponse:
    """
    Parse a complete response held in memory.

    Args:
        data: Raw response bytes.
        request_method: Method of the request being answered.
        eof: Treat the end of `data` as the end of the stream (needed for
             read-until-close bodies).
    """
    parser = ResponseParser(request_method=request_method)
    parser.feed(data)
    if eof and not parser.is_complete:
        parser.feed_eof()
    return parser.response


def read_response(
    stream,
    request_method: str = "GET",
    buffer_size: int = 8192,
    max_line_size: int = DEFAULT_MAX_LINE_SIZE,
) -> HTTPResponse:
    """
    Read one final response from a Stream.

    Interim 1xx responses (100 Continue, 103 Early Hints) are skipped: the
    real answer follows them on the same stream. 101 Switching Protocols is
    final and returned as is.

    Stream errors (OSError) propagate unchanged for the caller to wrap.
    """
    leftover = b""
    while True:
        parser = ResponseParser(request_method=request_method, max_line_size=max_line_size)
        if leftover:
            parser.feed(leftover)
        while not parser.is_complete:
            parser.feed(stream.read(buffer_size))

        response = parser.response
        if 100 <= response.status_code < 200 and response.status_code != 101:
            logger.debug(f"Skipping interim response {response.label}")
            leftover = parser.unconsumed
            continue
        return response
