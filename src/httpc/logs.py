"""
=============================================================================
LOGGING
=============================================================================

Logging setup and the per-exchange log record.

=============================================================================
TWO KINDS OF LOG LINES
=============================================================================

    Module loggers           logging.getLogger(__name__) in every module.
                             Debug detail: connects, body modes, closes.

    Exchange log             logging.getLogger("httpc.exchange"), one INFO
                             record per request/response hop:

        text:  [3f2a9c1e] hop 1 GET http://example.com/ → 301 Moved
               Permanently (content-length, 0B) 12.41ms
        json:  {"exchange_id": "3f2a9c1e", "hop": 1, "method": "GET", ...}

The exchange id is shared by every hop of one redirect chain, so a chain
can be pulled out of interleaved logs with a single grep.

Logs go to stderr. stdout belongs to the response being displayed, which
may be piped into another program.

=============================================================================
"""

import json
import logging
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

exchange_logger = logging.getLogger("httpc.exchange")


@dataclass
class ExchangeLog:
    """
    Structured log entry for one hop of a redirect chain.

    Fields:
        exchange_id:  Identifier shared by all hops of one execute()
        hop:          1 for the initial request, +1 per redirect followed
        method:       Request method as sent
        url:          Absolute request URL
        status_code:  Response status, 0 when the hop failed
        reason:       Reason phrase as received
        body_mode:    How the response body was framed
        body_bytes:   Response body size after de-framing
        duration_ms:  Connect to close, in milliseconds
        error:        Error kind when the hop failed
        timestamp:    ISO 8601, UTC
    """

    exchange_id: str
    hop: int
    method: str
    url: str
    status_code: int = 0
    reason: str = ""
    body_mode: str = ""
    body_bytes: int = 0
    duration_ms: float = 0.0
    error: Optional[str] = None
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        head = f"[{self.exchange_id}] hop {self.hop} {self.method} {self.url}"
        if self.error:
            return f"{head} failed: {self.error} {self.duration_ms:.2f}ms"
        status = f"{self.status_code} {self.reason}".rstrip()
        return (
            f"{head} → {status} ({self.body_mode}, {self.body_bytes}B) "
            f"{self.duration_ms:.2f}ms"
        )

    def emit(self) -> None:
        level = logging.WARNING if self.error else logging.INFO
        exchange_logger.log(level, self.to_text(), extra={"exchange": self.to_dict()})


class JsonFormatter(logging.Formatter):
    """Emit records as JSON objects, with exchange fields inlined."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
        }
        exchange = getattr(record, "exchange", None)
        if exchange is not None:
            payload.update(exchange)
        else:
            payload["message"] = record.getMessage()
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True)


def setup_logging(level: str = "WARNING", log_format: str = "text") -> None:
    """
    Configure root logging for the CLI.

    Args:
        level: Level name ("DEBUG", "INFO", ...).
        log_format: "text" for a rich console handler, "json" for one JSON
                    object per line.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    if log_format == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            markup=False,
            show_path=False,
            level=numeric_level,
        )

    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
