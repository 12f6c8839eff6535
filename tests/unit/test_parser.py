"""
Unit tests for the streaming response parser.
"""

import pytest

from httpc.http.errors import (
    ChunkLengthMismatch,
    ConflictingContentLength,
    IncompleteResponse,
    InvalidHeaderName,
    MalformedChunkSize,
    MalformedContentLength,
    MalformedHeaderLine,
    MalformedStatusLine,
)
from httpc.http.headers import HeaderSet
from httpc.http.parser import ParserState, ResponseParser, parse_response, read_response
from httpc.http.response import BodyMode, HTTPResponse

from conftest import FakeStream


def feed_bytewise(data: bytes, request_method: str = "GET", eof: bool = True) -> HTTPResponse:
    parser = ResponseParser(request_method=request_method)
    for i in range(len(data)):
        parser.feed(data[i:i + 1])
    if eof and not parser.is_complete:
        parser.feed(b"")
    return parser.response


class TestStatusLine:
    """Tests for status line parsing."""

    def test_simple_ok(self):
        """A Content-Length response parses to status, reason and body."""
        response = parse_response(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nOK")

        assert response.status_code == 200
        assert response.reason == "OK"
        assert response.version == "HTTP/1.1"
        assert response.body == b"OK"
        assert response.body_mode is BodyMode.CONTENT_LENGTH

    def test_two_digit_code(self):
        """A two-digit status code is malformed."""
        with pytest.raises(MalformedStatusLine):
            parse_response(b"HTTP/1.1 20 OK\r\n\r\n")

    @pytest.mark.parametrize("line", [
        b"HTTP/2.0 200 OK",
        b"HTTP/1.1 2OO OK",
        b"HTTP/1.1 600 Nope",
        b"HTTP/1.1 099 Nope",
        b"HTTP/1.1",
        b"ICY 200 OK",
        b"HTTP/1.1  200 OK",
    ])
    def test_malformed_lines(self, line):
        with pytest.raises(MalformedStatusLine):
            parse_response(line + b"\r\nContent-Length: 0\r\n\r\n")

    @pytest.mark.parametrize("line", [b"HTTP/1.1 204 ", b"HTTP/1.1 204"])
    def test_empty_reason(self, line):
        response = parse_response(line + b"\r\n\r\n")

        assert response.status_code == 204
        assert response.reason == ""
        assert response.label == "204 No Content"

    def test_reason_with_spaces(self):
        response = parse_response(b"HTTP/1.0 404 Not Found Here\r\nContent-Length: 0\r\n\r\n")

        assert response.version == "HTTP/1.0"
        assert response.reason == "Not Found Here"


class TestHeaders:
    """Tests for header line parsing."""

    def test_order_case_and_duplicates(self):
        response = parse_response(
            b"HTTP/1.1 200 OK\r\n"
            b"Set-Cookie: a=1\r\n"
            b"content-type:text/plain\r\n"
            b"Set-Cookie:   b=2  \r\n"
            b"Content-Length: 0\r\n"
            b"\r\n"
        )

        assert list(response.headers) == [
            ("Set-Cookie", "a=1"),
            ("content-type", "text/plain"),
            ("Set-Cookie", "b=2"),
            ("Content-Length", "0"),
        ]

    def test_parsed_headers_read_only(self):
        """A completed response cannot gain or lose headers afterwards."""
        response = parse_response(b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\n\r\n")

        with pytest.raises(TypeError):
            response.headers.insert("X-Late", "1")

        assert response.headers.read_only is True
        assert "X-Late" not in response.headers

    def test_value_with_colon(self):
        response = parse_response(
            b"HTTP/1.1 302 Found\r\nLocation: http://example.com:8080/x\r\nContent-Length: 0\r\n\r\n"
        )

        assert response.location == "http://example.com:8080/x"

    def test_folded_header_rejected(self):
        with pytest.raises(MalformedHeaderLine):
            parse_response(b"HTTP/1.1 200 OK\r\nX-A: 1\r\n  continued\r\n\r\n")

    def test_missing_colon(self):
        with pytest.raises(MalformedHeaderLine):
            parse_response(b"HTTP/1.1 200 OK\r\nNoColonHere\r\n\r\n")

    def test_invalid_name_chains_cause(self):
        """Name validation errors surface as MalformedHeaderLine."""
        with pytest.raises(MalformedHeaderLine) as exc_info:
            parse_response(b"HTTP/1.1 200 OK\r\nBad Name: x\r\n\r\n")

        assert isinstance(exc_info.value.__cause__, InvalidHeaderName)

    def test_obs_text_value_kept(self):
        response = parse_response(b"HTTP/1.1 200 OK\r\nX-Name: caf\xe9\r\nContent-Length: 0\r\n\r\n")

        assert response.headers.get_first("X-Name") == "caf\xe9"

    def test_line_too_long(self):
        parser = ResponseParser(max_line_size=64)
        parser.feed(b"HTTP/1.1 200 OK\r\n")

        with pytest.raises(MalformedHeaderLine):
            parser.feed(b"X-Long: " + b"a" * 100)


class TestBodyModes:
    """Tests for body mode selection and framing."""

    def test_content_length_exact(self):
        """Exactly n bytes are consumed; the rest stays unconsumed."""
        parser = ResponseParser()
        parser.feed(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhelloEXTRA")

        assert parser.is_complete
        assert parser.response.body == b"hello"
        assert parser.unconsumed == b"EXTRA"

    def test_content_length_zero(self):
        response = parse_response(b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\n\r\n", eof=False)

        assert response.body == b""
        assert response.body_mode is BodyMode.CONTENT_LENGTH

    def test_repeated_equal_content_length(self):
        response = parse_response(
            b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\nContent-Length: 2, 2\r\n\r\nOK"
        )

        assert response.body == b"OK"

    def test_conflicting_content_length(self):
        with pytest.raises(ConflictingContentLength):
            parse_response(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\nContent-Length: 3\r\n\r\nOKK")

    @pytest.mark.parametrize("value", [b"abc", b"-1", b"5a", b"", b"+5"])
    def test_malformed_content_length(self, value):
        with pytest.raises(MalformedContentLength):
            parse_response(b"HTTP/1.1 200 OK\r\nContent-Length: " + value + b"\r\n\r\nhello")

    def test_chunked_wins_over_content_length(self):
        """With both framings present, chunked is used."""
        response = parse_response(
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Length: 0\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"4\r\nWiki\r\n0\r\n\r\n"
        )

        assert response.body_mode is BodyMode.CHUNKED
        assert response.body == b"Wiki"

    def test_chunked_in_coding_list(self):
        response = parse_response(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: gzip, Chunked\r\n\r\n2\r\nab\r\n0\r\n\r\n"
        )

        assert response.body_mode is BodyMode.CHUNKED
        assert response.body == b"ab"

    def test_until_close(self):
        """Without framing headers the body runs until end of stream."""
        parser = ResponseParser()
        parser.feed(b"HTTP/1.0 200 OK\r\n\r\npart one, ")
        parser.feed(b"part two")

        assert parser.state is ParserState.BODY
        assert parser.body_mode is BodyMode.UNTIL_CLOSE

        parser.feed(b"")

        assert parser.response.body == b"part one, part two"
        assert parser.response.reusable is False

    def test_head_response_has_no_body(self):
        response = parse_response(
            b"HTTP/1.1 200 OK\r\nContent-Length: 1234\r\n\r\n",
            request_method="HEAD",
            eof=False,
        )

        assert response.body == b""
        assert response.body_mode is BodyMode.EMPTY
        assert response.headers.get_first("Content-Length") == "1234"

    @pytest.mark.parametrize("status", [b"204 No Content", b"304 Not Modified", b"100 Continue"])
    def test_bodyless_statuses(self, status):
        parser = ResponseParser()
        parser.feed(b"HTTP/1.1 " + status + b"\r\nContent-Length: 10\r\n\r\n")

        assert parser.is_complete
        assert parser.response.body_mode is BodyMode.EMPTY

    def test_bodyless_status_still_checks_length(self):
        with pytest.raises(MalformedContentLength):
            parse_response(b"HTTP/1.1 304 Not Modified\r\nContent-Length: x\r\n\r\n")


class TestChunked:
    """Tests for chunked transfer-encoding."""

    def test_wiki(self):
        response = parse_response(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n4\r\nWiki\r\n0\r\n\r\n"
        )

        assert response.body == b"Wiki"

    def test_extensions_and_trailers(self, chunked_response: bytes):
        """Chunk extensions are ignored; trailers join the header set."""
        response = parse_response(chunked_response)

        assert response.body == b"Wikipedia in\r\n\r\nchunks."
        assert response.headers.get_first("Expires") == "never"
        assert list(response.headers)[-1] == ("Expires", "never")

    def test_chunked_equals_fixed_length(self):
        """Concatenated chunks equal the same content sent with a length."""
        chunked = parse_response(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"3\r\nabc\r\nA\r\n0123456789\r\n0\r\n\r\n"
        )
        fixed = parse_response(b"HTTP/1.1 200 OK\r\nContent-Length: 13\r\n\r\nabc0123456789")

        assert chunked.body == fixed.body

    def test_uppercase_and_lowercase_hex(self):
        body = bytes(range(65, 91))
        response = parse_response(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"a\r\n" + body[:10] + b"\r\n"
            b"F\r\n" + body[10:25] + b"\r\n"
            b"1\r\n" + body[25:] + b"\r\n"
            b"0\r\n\r\n"
        )

        assert response.body == body

    def test_bad_chunk_size(self):
        with pytest.raises(MalformedChunkSize):
            parse_response(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\nzz\r\nab\r\n0\r\n\r\n")

    def test_chunk_longer_than_declared(self):
        with pytest.raises(ChunkLengthMismatch):
            parse_response(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n4\r\nWikiX\r\n0\r\n\r\n")

    def test_chunk_mismatch_bytewise(self):
        with pytest.raises(ChunkLengthMismatch):
            feed_bytewise(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n4\r\nWikiX\r\n0\r\n\r\n")


class TestIncomplete:
    """Tests for streams that end early."""

    @pytest.mark.parametrize("data", [
        b"",
        b"HTTP/1.1 200",
        b"HTTP/1.1 200 OK\r\nContent-Le",
        b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nshort",
        b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n4\r\nWi",
        b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n4\r\nWiki\r\n",
    ])
    def test_eof_mid_message(self, data):
        with pytest.raises(IncompleteResponse):
            parse_response(data)

    def test_failed_parser_stays_failed(self):
        parser = ResponseParser()
        with pytest.raises(MalformedStatusLine):
            parser.feed(b"garbage\r\n")

        assert parser.state is ParserState.FAILED
        assert parser.error.kind == "MalformedStatusLine"
        with pytest.raises(MalformedStatusLine):
            parser.feed(b"HTTP/1.1 200 OK\r\n")

    def test_response_before_complete(self):
        parser = ResponseParser()
        parser.feed(b"HTTP/1.1 200 OK\r\n")

        with pytest.raises(RuntimeError):
            parser.response


class TestStreamingInvariance:
    """Byte-at-a-time feeding gives the same result as one bulk feed."""

    @pytest.mark.parametrize("data,method", [
        (b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nOK", "GET"),
        (b"HTTP/1.1 301 Moved Permanently\r\nLocation: /new\r\n\r\n", "GET"),
        (b"HTTP/1.0 200 OK\r\nContent-Type: text/plain\r\n\r\nuntil close", "GET"),
        (b"HTTP/1.1 200 OK\r\nContent-Length: 50\r\n\r\n", "HEAD"),
        (b"HTTP/1.1 204 No Content\r\n\r\n", "GET"),
    ])
    def test_bytewise_equals_bulk(self, data, method):
        assert feed_bytewise(data, method) == parse_response(data, request_method=method)

    def test_chunked_with_trailers(self, chunked_response: bytes):
        assert feed_bytewise(chunked_response) == parse_response(chunked_response)


class TestRoundTrip:
    """Serialized responses parse back to the same message."""

    def test_content_length_round_trip(self):
        original = HTTPResponse(
            status_code=404,
            reason="Not Found",
            headers=HeaderSet([("Content-Type", "text/plain"), ("X-A", "1"), ("Content-Length", "4")]),
            body=b"nope",
            body_mode=BodyMode.CONTENT_LENGTH,
        )

        assert parse_response(original.to_bytes()) == original

    def test_chunked_round_trip(self):
        original = HTTPResponse(
            status_code=200,
            reason="OK",
            headers=HeaderSet([("Transfer-Encoding", "chunked")]),
            body=b"The quick brown fox",
            body_mode=BodyMode.CHUNKED,
        )

        assert parse_response(original.to_bytes(chunk_size=4)) == original


class TestReadResponse:
    """Tests for reading a final response from a stream."""

    def test_reads_across_small_reads(self):
        stream = FakeStream(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nOK", read_size=1)

        response = read_response(stream)

        assert response.body == b"OK"

    def test_skips_interim_responses(self):
        stream = FakeStream(
            b"HTTP/1.1 100 Continue\r\n\r\n"
            b"HTTP/1.1 103 Early Hints\r\nLink: </style.css>\r\n\r\n"
            b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nOK"
        )

        response = read_response(stream)

        assert response.status_code == 200
        assert response.body == b"OK"

    def test_switching_protocols_is_final(self):
        stream = FakeStream(b"HTTP/1.1 101 Switching Protocols\r\nUpgrade: websocket\r\n\r\n")

        assert read_response(stream).status_code == 101

    def test_head_request(self):
        stream = FakeStream(b"HTTP/1.1 200 OK\r\nContent-Length: 99\r\n\r\n")

        response = read_response(stream, request_method="HEAD")

        assert response.body == b""
