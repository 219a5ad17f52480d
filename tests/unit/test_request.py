"""
Unit tests for HTTP request parsing.
"""

import pytest

from webserver.http.request import (
    LineAssembler,
    ParsedRequest,
    RequestParser,
    parse_request,
    split_lines,
)


class TestRequestParser:
    """Tests for RequestParser and parse_request()."""

    def test_parse_well_formed_get(self, well_formed_request: bytes):
        """Test that a complete GET request passes every check."""
        request = parse_request(well_formed_request)

        assert request.method_is_get is True
        assert request.path == "index.html"
        assert request.http_version_ok is True
        assert request.host_header_present is True
        assert request.headers_terminated is True
        assert request.is_well_formed
        assert request.request_line == "GET /index.html HTTP/1.1"

    def test_http_1_0_accepted(self):
        """Test that any HTTP/1.x minor version is accepted."""
        request = parse_request(b"GET /a HTTP/1.0\r\nHost: x\r\n\r\n")
        assert request.http_version_ok
        assert request.is_well_formed

    @pytest.mark.parametrize("version", [b"HTTP/0.9", b"HTTP/2.0", b"http/1.1", b"HTTP/1"])
    def test_bad_version_rejected(self, version: bytes):
        """Test that the version token must start with 'HTTP/1.'."""
        request = parse_request(b"GET /x " + version + b"\r\nHost: x\r\n\r\n")

        assert request.method_is_get
        assert request.http_version_ok is False
        assert not request.is_well_formed

    def test_missing_host(self):
        """Test that a request without Host is malformed."""
        request = parse_request(b"GET /a HTTP/1.1\r\nAccept: */*\r\n\r\n")

        assert request.host_header_present is False
        assert not request.is_well_formed

    def test_lowercase_host_not_recognized(self):
        """Test that Host detection is case-sensitive."""
        request = parse_request(b"GET /a HTTP/1.1\r\nhost: x\r\n\r\n")
        assert request.host_header_present is False

    def test_missing_get(self):
        """Test that other methods are malformed."""
        request = parse_request(b"POST /a HTTP/1.1\r\nHost: x\r\n\r\n")

        assert request.method_is_get is False
        assert request.path == ""
        assert not request.is_well_formed

    def test_missing_terminator(self):
        """Test that a header block without the blank line is malformed."""
        request = parse_request(b"GET /a HTTP/1.1\r\nHost: x\r\n")

        assert request.headers_terminated is False
        assert not request.is_well_formed

    def test_bare_lf_terminator_not_recognized(self):
        """Test that the terminator line must be exactly CR."""
        request = parse_request(b"GET /a HTTP/1.1\nHost: x\n\n")

        assert request.method_is_get
        assert request.host_header_present
        assert request.headers_terminated is False

    def test_short_request_line_does_not_raise(self):
        """Test that 'GET' alone leaves the request malformed."""
        request = parse_request(b"GET\r\nHost: x\r\n\r\n")

        assert request.method_is_get is True
        assert request.path == ""
        assert request.http_version_ok is False
        assert not request.is_well_formed

    def test_request_line_without_version(self):
        """Test a two-token request line keeps the CR on its path token."""
        request = parse_request(b"GET /a.txt\r\nHost: x\r\n\r\n")

        assert request.path == "a.txt\r"
        assert request.http_version_ok is False

    def test_leading_character_stripped_once(self):
        """Test that only the first character of the target is removed."""
        request = parse_request(b"GET //etc/hostname HTTP/1.1\r\nHost: x\r\n\r\n")
        assert request.path == "/etc/hostname"

    def test_path_kept_raw(self):
        """Test that no decoding or normalization is applied."""
        request = parse_request(b"GET /a%20b/../c?q=1 HTTP/1.1\r\nHost: x\r\n\r\n")
        assert request.path == "a%20b/../c?q=1"

    def test_header_containing_get_reparsed_as_request_line(self):
        """Test that substring matching treats any 'GET' line as a request line."""
        raw = (
            b"GET /a HTTP/1.1\r\n"
            b"Host: x\r\n"
            b"Referer: http://example.com/GETting-started\r\n"
            b"\r\n"
        )
        request = parse_request(raw)

        assert request.path == "ttp://example.com/GETting-started\r"
        assert request.http_version_ok is False
        assert not request.is_well_formed

    def test_host_substring_counts(self):
        """Test that any line containing 'Host' marks the Host header."""
        request = parse_request(b"GET /a HTTP/1.1\r\nX-Hostname: a\r\n\r\n")
        assert request.host_header_present is True

    def test_get_line_is_not_checked_for_host(self):
        """Test that a request line mentioning Host does not count as Host."""
        request = parse_request(b"GET /Host HTTP/1.1\r\n\r\n")

        assert request.path == "Host"
        assert request.host_header_present is False

    def test_lines_after_terminator_ignored(self):
        """Test that nothing after the blank line is parsed."""
        request = parse_request(b"GET /a HTTP/1.1\r\n\r\nHost: x\r\n")

        assert request.headers_terminated is True
        assert request.host_header_present is False

    def test_header_order_irrelevant(self):
        """Test that Host may come before the request line."""
        request = parse_request(b"Host: x\r\nGET /a HTTP/1.1\r\n\r\n")
        assert request.is_well_formed

    def test_incremental_feeding(self):
        """Test feeding lines one at a time."""
        parser = RequestParser()
        assert not parser.headers_complete

        parser.feed_line("GET /a HTTP/1.1\r")
        parser.feed_line("Host: x\r")
        assert not parser.headers_complete

        parser.feed_line("\r")
        assert parser.headers_complete
        assert parser.result().is_well_formed

    def test_non_ascii_bytes(self):
        """Test that arbitrary bytes never fail to decode."""
        request = parse_request(b"GET /caf\xe9 HTTP/1.1\r\nHost: \xff\r\n\r\n")

        assert request.path == "caf\xe9"
        assert request.is_well_formed


class TestParsedRequest:
    """Tests for the ParsedRequest dataclass."""

    def test_defaults_are_malformed(self):
        """Test that an empty request is not well-formed."""
        assert not ParsedRequest().is_well_formed

    def test_all_flags_required(self):
        """Test that each of the four flags is required."""
        flags = ["method_is_get", "http_version_ok", "host_header_present", "headers_terminated"]
        for missing in flags:
            values = {name: name != missing for name in flags}
            assert not ParsedRequest(**values).is_well_formed
        assert ParsedRequest(**{name: True for name in flags}).is_well_formed


class TestLineAssembler:
    """Tests for splitting a byte stream into lines."""

    def test_lines_split_across_chunks(self):
        """Test that a line split over several recv() calls is reassembled."""
        assembler = LineAssembler()

        assert list(assembler.feed(b"GET /a HT")) == []
        assert list(assembler.feed(b"TP/1.1\r\nHost: x")) == ["GET /a HTTP/1.1\r"]
        assert assembler.pending == len(b"Host: x")
        assert list(assembler.feed(b"\r\n\r\n")) == ["Host: x\r", "\r"]
        assert assembler.pending == 0

    def test_carriage_return_kept(self):
        """Test that CR stays part of the line and LF is removed."""
        assert split_lines(b"a\r\nb\n") == ["a\r", "b"]

    def test_unterminated_tail_dropped(self):
        """Test that a final line without LF is never returned."""
        assert split_lines(b"GET /a HTTP/1.1\r\nHost: x") == ["GET /a HTTP/1.1\r"]

    def test_byte_at_a_time(self):
        """Test feeding one byte per chunk."""
        assembler = LineAssembler()
        lines = []
        for byte in b"ab\r\n\r\n":
            lines.extend(assembler.feed(bytes([byte])))
        assert lines == ["ab\r", "\r"]
