"""
Tests for the HTTP/1.1 connection driver.

These tests run HTTP11Connection against in-memory streams, checking
both what is written to the wire and how responses are framed.
"""

import pytest

from minihttp.exceptions import BuildError, ConnectError, ReadError, TimeoutError
from minihttp.http11 import ConnectionState, HTTP11Connection, build_wire_headers
from minihttp.http_primitives import Request, RequestBody
from minihttp.network.mock import MockNetworkStream


def get_request(url: str = "http://example.com/", **kwargs) -> Request:
    return Request.create("GET", url, **kwargs)


class TestWireHeaders:
    """Test the headers computed for the wire."""

    def test_host_is_added(self) -> None:
        headers = dict(build_wire_headers(get_request("http://example.com:8080/x")))
        assert headers[b"Host"] == b"example.com:8080"
        assert headers[b"Connection"] == b"close"

    def test_caller_host_is_kept(self) -> None:
        wire = build_wire_headers(get_request(headers=[("Host", "virtual.example")]))
        assert [value for name, value in wire if name.lower() == b"host"] == [b"virtual.example"]

    def test_content_length_is_computed_not_trusted(self) -> None:
        request = Request.create(
            "POST",
            "http://example.com/",
            headers=[("Content-Length", "999"), ("Transfer-Encoding", "chunked")],
            body=RequestBody(b"hello", "text/plain"),
        )
        wire = build_wire_headers(request)
        lengths = [value for name, value in wire if name.lower() == b"content-length"]
        assert lengths == [b"5"]
        assert not any(name.lower() == b"transfer-encoding" for name, _ in wire)
        assert (b"Content-Type", b"text/plain") in wire

    def test_explicit_content_type_wins_over_body(self) -> None:
        request = Request.create(
            "POST",
            "http://example.com/",
            headers=[("Content-Type", "application/vnd.custom+json")],
            body=RequestBody(b"{}", "application/json"),
        )
        content_types = [v for n, v in build_wire_headers(request) if n.lower() == b"content-type"]
        assert content_types == [b"application/vnd.custom+json"]

    def test_bodyless_post_sends_zero_length(self) -> None:
        wire = dict(build_wire_headers(Request.create("POST", "http://example.com/")))
        assert wire[b"Content-Length"] == b"0"

    def test_bodyless_get_sends_no_length(self) -> None:
        wire = build_wire_headers(get_request())
        assert not any(name.lower() == b"content-length" for name, _ in wire)


class TestHTTP11Connection:
    """Test HTTP/1.1 request/response cycles."""

    @pytest.fixture
    def mock_stream(self):
        return MockNetworkStream()

    @pytest.fixture
    def connection(self, mock_stream):
        return HTTP11Connection(mock_stream, read_timeout=5.0, write_timeout=6.0)

    def test_connection_initialization(self, connection) -> None:
        assert connection.state is ConnectionState.NEW
        assert connection.metrics == {"bytes_sent": 0, "bytes_received": 0, "state": "new"}

    def test_simple_get_request_cycle(self, connection, mock_stream, make_response) -> None:
        mock_stream.add_data(make_response(200, "OK", [("Server", "test")], b"Hello World"))

        connection.send_request(get_request("http://example.com/path?q=1"))
        head = connection.receive_response_head()
        body = connection.read_body()

        assert head.status_code == 200
        assert head.reason == "OK"
        assert head.http_version == "1.1"
        assert head.headers.get("server") == "test"
        assert body == b"Hello World"

        written = mock_stream.written_data
        assert written.startswith(b"GET /path?q=1 HTTP/1.1\r\n")
        assert b"host: example.com\r\n" in written.lower()
        assert mock_stream.timeouts == [6.0, 5.0]

    def test_post_request_with_body(self, connection, mock_stream, make_response) -> None:
        mock_stream.add_data(make_response(201, "Created"))
        request = Request.create(
            "POST", "http://example.com/items",
            body=RequestBody(b'{"message": "Hello, World!"}', "application/json"),
        )

        connection.send_request(request)
        head = connection.receive_response_head()

        assert head.status_code == 201
        written = mock_stream.written_data
        assert written.endswith(b'\r\n\r\n{"message": "Hello, World!"}')
        assert b"content-length: 28\r\n" in written.lower()

    def test_connection_cannot_be_reused(self, connection, mock_stream, make_response) -> None:
        mock_stream.add_data(make_response())
        connection.send_request(get_request())
        with pytest.raises(ConnectError):
            connection.send_request(get_request())

    def test_exact_content_length_is_read(self, connection, mock_stream, make_response) -> None:
        mock_stream.add_data(make_response(body=b"12345") + b"EXTRA BYTES")
        connection.send_request(get_request())
        connection.receive_response_head()
        assert connection.read_body() == b"12345"

    @pytest.mark.parametrize("chunk_size", [1, 3, 7, 64])
    def test_chunked_body_is_reassembled(self, make_response, chunk_size) -> None:
        raw = (
            b"HTTP/1.1 200 OK\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"5\r\nHello\r\n"
            b"1;ext=1\r\n,\r\n"
            b"6\r\n World\r\n"
            b"0\r\n"
            b"X-Trailer: yes\r\n"
            b"\r\n"
        )
        stream = MockNetworkStream(raw, chunk_size=chunk_size)
        connection = HTTP11Connection(stream)
        connection.send_request(get_request())
        connection.receive_response_head()
        assert connection.read_body() == b"Hello, World"

    def test_close_delimited_body(self) -> None:
        stream = MockNetworkStream(b"HTTP/1.1 200 OK\r\n\r\nuntil the end", chunk_size=4)
        connection = HTTP11Connection(stream)
        connection.send_request(get_request())
        connection.receive_response_head()
        assert connection.read_body() == b"until the end"

    def test_informational_responses_are_skipped(self, connection, mock_stream, make_response) -> None:
        mock_stream.add_data(b"HTTP/1.1 100 Continue\r\n\r\n" + make_response(204, "No Content", content_length=False))
        connection.send_request(get_request())
        head = connection.receive_response_head()
        assert head.status_code == 204
        assert connection.read_body() == b""

    def test_head_response_has_no_body(self, connection, mock_stream) -> None:
        mock_stream.add_data(b"HTTP/1.1 200 OK\r\nContent-Length: 1000\r\n\r\n")
        connection.send_request(Request.create("HEAD", "http://example.com/"))
        head = connection.receive_response_head()
        assert head.headers.get("content-length") == "1000"
        assert connection.read_body() == b""

    def test_truncated_body_raises_read_error(self, connection, mock_stream) -> None:
        mock_stream.add_data(b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\nshort")
        connection.send_request(get_request())
        connection.receive_response_head()
        with pytest.raises(ReadError):
            connection.read_body()

    def test_truncated_chunked_body_raises_read_error(self, connection, mock_stream) -> None:
        mock_stream.add_data(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n5\r\nHel")
        connection.send_request(get_request())
        connection.receive_response_head()
        with pytest.raises(ReadError):
            connection.read_body()

    @pytest.mark.parametrize(
        "raw",
        [b"NOT HTTP AT ALL\r\n\r\n", b"HTTP/1.1 abc OK\r\n\r\n", b"HTTP/1.1 200 OK\r\nBad Header\r\n\r\n"],
    )
    def test_malformed_head_raises_read_error(self, connection, mock_stream, raw) -> None:
        mock_stream.add_data(raw)
        connection.send_request(get_request())
        with pytest.raises(ReadError):
            connection.receive_response_head()

    def test_empty_response_raises_read_error(self, connection) -> None:
        connection.send_request(get_request())
        with pytest.raises(ReadError):
            connection.receive_response_head()

    def test_read_timeout(self) -> None:
        stream = MockNetworkStream(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\n12", stall=True)
        connection = HTTP11Connection(stream, read_timeout=0.5)
        connection.send_request(get_request())
        connection.receive_response_head()
        with pytest.raises(TimeoutError) as exc_info:
            connection.read_body()
        assert exc_info.value.phase == TimeoutError.READ
        assert exc_info.value.timeout == 0.5

    def test_write_failure_raises_connect_error(self, connection, mock_stream) -> None:
        mock_stream.close()
        with pytest.raises(ConnectError):
            connection.send_request(get_request())

    def test_non_ascii_target_raises_build_error(self, connection) -> None:
        with pytest.raises(BuildError):
            connection.send_request(get_request("http://example.com/café"))

    def test_close_is_idempotent(self, connection, mock_stream) -> None:
        with connection:
            pass
        connection.close()
        assert connection.is_closed
        assert mock_stream.is_closed
