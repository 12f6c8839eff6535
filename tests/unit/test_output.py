"""
Unit tests for terminal output and logging setup.
"""

import io
import json
import logging

import pytest

from httpc.http.headers import HeaderSet
from httpc.http.request import RequestBuilder
from httpc.http.response import HTTPResponse
from httpc.logs import ExchangeLog, JsonFormatter, setup_logging
from httpc.output import (
    BINARY_NOTICE,
    NO_CONTENT_TYPE_NOTICE,
    ResponsePrinter,
    make_console,
    write_body_to_file,
)
from httpc.redirects import RedirectChain


def printer(verbosity: int = 0, color: str = "never"):
    buffer = io.StringIO()
    return ResponsePrinter(make_console(color, file=buffer), verbosity=verbosity), buffer


def response(content_type=None, body=b"", status_code=200, reason="OK") -> HTTPResponse:
    headers = HeaderSet()
    if content_type is not None:
        headers.insert("Content-Type", content_type)
    return HTTPResponse(status_code=status_code, reason=reason, headers=headers, body=body)


class TestBodyDisplay:
    """Tests for final body display."""

    def test_text_body_printed(self):
        p, out = printer()

        p.print_body(response("text/plain", b"hello world"))

        assert out.getvalue() == "hello world\n"

    def test_trailing_newline_not_doubled(self):
        p, out = printer()

        p.print_body(response("application/json", b'{"a": 1}\n'))

        assert out.getvalue() == '{"a": 1}\n'

    def test_markup_not_interpreted(self):
        p, out = printer()

        p.print_body(response("text/html", b"[bold]not markup[/bold] :smile:"))

        assert out.getvalue() == "[bold]not markup[/bold] :smile:\n"

    def test_binary_notice(self):
        p, out = printer()

        p.print_body(response("image/png", b"\x89PNG"))

        assert out.getvalue() == BINARY_NOTICE + "\n"

    def test_no_content_type_notice(self):
        p, out = printer()

        p.print_body(response(None, b"something"))

        assert out.getvalue() == NO_CONTENT_TYPE_NOTICE + "\n"


class TestChainDisplay:
    """Tests for verbosity levels."""

    def make_chain(self) -> RedirectChain:
        chain = RedirectChain()
        first = RequestBuilder("GET", "example.com/old").build()
        second = RequestBuilder("GET", "example.com/new").build()
        redirect = HTTPResponse(
            status_code=301,
            reason="Moved Permanently",
            headers=HeaderSet([("Location", "/new")]),
        )
        chain.append(first, redirect)
        chain.append(second, response("text/plain", b"done"))
        return chain

    def test_quiet_prints_only_body(self):
        p, out = printer(verbosity=0)

        p.print_chain(self.make_chain())

        assert out.getvalue() == "done\n"

    def test_verbose_prints_each_response_head(self):
        p, out = printer(verbosity=1)

        p.print_chain(self.make_chain())

        assert out.getvalue() == (
            "HTTP/1.1 301 Moved Permanently\n"
            "Location: /new\n"
            "\n"
            "HTTP/1.1 200 OK\n"
            "Content-Type: text/plain\n"
            "\n"
            "done\n"
        )

    def test_very_verbose_prints_requests(self):
        p, out = printer(verbosity=2)

        p.print_chain(self.make_chain())
        text = out.getvalue()

        assert text.startswith("→ Sending\nGET /old HTTP/1.1\nHost: example.com\n")
        assert text.count("→ Sending") == 2
        assert "GET /new HTTP/1.1" in text

    def test_request_body_shown(self):
        p, out = printer(verbosity=2)

        p.print_request(RequestBuilder("POST", "example.com").body(b"a=1").build())

        assert out.getvalue().endswith("Content-Length: 3\n\na=1\n\n")

    def test_binary_request_body(self):
        p, out = printer(verbosity=2)

        p.print_request(RequestBuilder("POST", "example.com").body(b"\xff\xfe").build())

        assert "[Invalid UTF-8]" in out.getvalue()

    def test_show_body_false(self):
        p, out = printer(verbosity=0)

        p.print_chain(self.make_chain(), show_body=False)

        assert out.getvalue() == ""

    def test_color_always_styles_output(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        p, out = printer(verbosity=2, color="always")

        p.print_request(RequestBuilder("GET", "example.com").build())

        assert "\x1b[" in out.getvalue()


class TestWriteBody:
    """Tests for -o output."""

    def test_raw_bytes_written(self, tmp_path):
        target = tmp_path / "body.bin"

        written = write_body_to_file(response("image/png", b"\x00\x01binary"), target)

        assert written == 8
        assert target.read_bytes() == b"\x00\x01binary"

    def test_unwritable_path(self, tmp_path):
        with pytest.raises(OSError):
            write_body_to_file(response(body=b"x"), tmp_path / "missing-dir" / "out")


class TestLogging:
    """Tests for exchange log records and logging setup."""

    @pytest.fixture
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield root
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_exchange_log_text(self):
        entry = ExchangeLog(
            exchange_id="abcd1234",
            hop=1,
            method="GET",
            url="http://example.com/",
            status_code=301,
            reason="Moved Permanently",
            body_mode="until-close",
            body_bytes=0,
            duration_ms=12.345,
        )

        assert entry.to_text() == (
            "[abcd1234] hop 1 GET http://example.com/ → 301 Moved Permanently (until-close, 0B) 12.35ms"
        )
        assert entry.to_dict()["duration_ms"] == 12.35
        assert entry.timestamp

    def test_exchange_log_failure_text(self):
        entry = ExchangeLog("abcd1234", 2, "GET", "http://x/", error="TransportError: refused", duration_ms=1)

        assert entry.to_text() == "[abcd1234] hop 2 GET http://x/ failed: TransportError: refused 1.00ms"

    def test_json_formatter_inlines_exchange(self):
        entry = ExchangeLog("abcd1234", 1, "GET", "http://x/", status_code=200, reason="OK")
        record = logging.LogRecord("httpc.exchange", logging.INFO, __file__, 1, entry.to_text(), None, None)
        record.exchange = entry.to_dict()

        payload = json.loads(JsonFormatter().format(record))

        assert payload["status_code"] == 200
        assert payload["exchange_id"] == "abcd1234"
        assert payload["level"] == "INFO"
        assert "message" not in payload

    def test_json_formatter_plain_record(self):
        record = logging.LogRecord("httpc.client", logging.DEBUG, __file__, 1, "hello %s", ("there",), None)

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "hello there"
        assert payload["logger"] == "httpc.client"

    def test_setup_logging_json(self, restore_root_logger):
        setup_logging("DEBUG", "json")

        assert restore_root_logger.level == logging.DEBUG
        assert isinstance(restore_root_logger.handlers[0].formatter, JsonFormatter)

    def test_setup_logging_text_uses_rich(self, restore_root_logger):
        from rich.logging import RichHandler

        setup_logging("INFO", "text")

        assert restore_root_logger.level == logging.INFO
        assert isinstance(restore_root_logger.handlers[0], RichHandler)
