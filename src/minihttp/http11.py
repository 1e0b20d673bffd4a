"""
HTTP/1.1 connection implementation for minihttp.

This module implements the HTTP11Connection class that drives one
HTTP/1.1 request/response exchange over a NetworkStream using h11.
Connections are single-use: the client always sends
``Connection: close`` and never reuses a connection.
"""

import logging
import socket
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import h11

from .exceptions import BuildError, ConnectError, ReadError, TimeoutError
from .headers import HeaderMap
from .http_primitives import Method, Request
from .network.stream import NetworkStream

logger = logging.getLogger(__name__)

# Framing headers are always computed from the body, never taken from the caller.
FRAMING_HEADERS = ("content-length", "transfer-encoding", "connection")


class ConnectionState(Enum):
    """States of an HTTP/1.1 connection."""
    NEW = "new"           # Connection created, nothing sent yet
    ACTIVE = "active"     # Request sent, response being read
    CLOSED = "closed"     # Connection closed, cannot be used


class ResponseHead:
    """Status line and headers of a response, before its body is read."""

    __slots__ = ("status_code", "reason", "headers", "http_version")

    def __init__(self, status_code: int, reason: str, headers: HeaderMap, http_version: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.headers = headers
        self.http_version = http_version


def build_wire_headers(request: Request) -> List[Tuple[bytes, bytes]]:
    """
    Compute the headers actually written for ``request``.

    Host is added when absent, framing headers supplied by the caller
    are replaced by a Content-Length computed from the body, and
    ``Connection: close`` is always sent.
    """
    headers = request.headers.copy()
    for name in FRAMING_HEADERS:
        headers.remove(name)

    wire = HeaderMap()
    if "host" not in headers:
        wire.add("Host", request.components.host_header)
    for name, value in headers:
        wire.add(name, value)

    if request.body is not None:
        if "content-type" not in wire and request.body.content_type:
            wire.add("Content-Type", request.body.content_type)
        wire.add("Content-Length", str(len(request.body.content)))
    elif request.method in (Method.POST, Method.PUT, Method.PATCH):
        wire.add("Content-Length", "0")
    wire.add("Connection", "close")
    return wire.to_raw()


class HTTP11Connection:
    """
    HTTP/1.1 connection driver.

    This class owns a NetworkStream for the duration of one exchange,
    writing the request and parsing the response with h11. The read
    timeout covers the read phase only; the write timeout covers
    sending the request.
    """

    # Default configuration
    DEFAULT_READ_TIMEOUT = 30.0  # 30 seconds
    DEFAULT_WRITE_TIMEOUT = 30.0  # 30 seconds
    READ_CHUNK_SIZE = 65536  # 64KB chunks

    def __init__(
        self,
        stream: NetworkStream,
        read_timeout: Optional[float] = DEFAULT_READ_TIMEOUT,
        write_timeout: Optional[float] = DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        """
        Initialize HTTP/1.1 connection.

        Args:
            stream: The NetworkStream to use for communication
            read_timeout: Timeout for each read in seconds, None for no limit
            write_timeout: Timeout for each write in seconds, None for no limit
        """
        self._stream = stream
        self._h11_connection = h11.Connection(h11.CLIENT)
        self._state = ConnectionState.NEW
        self._read_timeout = read_timeout
        self._write_timeout = write_timeout

        # Metrics
        self._bytes_sent = 0
        self._bytes_received = 0

    def send_request(self, request: Request) -> None:
        """
        Write the request line, headers and body.

        Raises:
            BuildError: If h11 rejects the request as malformed
            TimeoutError: If a write exceeds the write timeout
            ConnectError: If the connection is lost while sending
        """
        if self._state is not ConnectionState.NEW:
            raise ConnectError("connection already used")
        self._state = ConnectionState.ACTIVE
        self._stream.set_timeout(self._write_timeout)

        try:
            h11_request = h11.Request(
                method=request.method.value.encode("ascii"),
                target=request.target.encode("ascii"),
                headers=build_wire_headers(request),
            )
        except (h11.LocalProtocolError, UnicodeEncodeError) as e:
            raise BuildError(f"invalid request for {request.url}: {e}", cause=e) from e

        self._send_event(h11_request)
        if request.body is not None and request.body.content:
            self._send_event(h11.Data(data=request.body.content))
        self._send_event(h11.EndOfMessage())

        logger.debug(f"Sent {request.method} {request.target} ({self._bytes_sent} bytes)")

    def _send_event(self, event: Any) -> None:
        """Serialize an h11 event and write it to the network stream."""
        try:
            data = self._h11_connection.send(event)
        except h11.LocalProtocolError as e:
            raise BuildError(f"cannot send request: {e}", cause=e) from e
        if not data:
            return
        try:
            self._stream.write(data)
        except socket.timeout as e:
            raise TimeoutError(
                "sending request", phase=TimeoutError.WRITE,
                timeout=self._write_timeout, cause=e,
            ) from e
        except OSError as e:
            raise ConnectError(f"connection lost while sending request: {e}", cause=e) from e
        self._bytes_sent += len(data)

    def receive_response_head(self) -> ResponseHead:
        """
        Read the status line and headers, skipping 1xx responses.

        Raises:
            ReadError: If the status line or headers are malformed or
                       the connection closes before they arrive
            TimeoutError: If the read timeout expires
        """
        self._stream.set_timeout(self._read_timeout)
        while True:
            event = self._next_event()
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.Response):
                return ResponseHead(
                    status_code=event.status_code,
                    reason=event.reason.decode("latin-1"),
                    headers=HeaderMap.from_raw(event.headers.raw_items()),
                    http_version=event.http_version.decode("ascii"),
                )
            raise ReadError(f"unexpected event before response head: {type(event).__name__}")

    def receive_body_chunk(self) -> Optional[bytes]:
        """
        Return the next chunk of the response body, or None at its end.

        Raises:
            ReadError: If the body is truncated or its framing is malformed
            TimeoutError: If the read timeout expires
        """
        while True:
            event = self._next_event()
            if isinstance(event, h11.Data):
                if event.data:
                    return bytes(event.data)
                continue
            if isinstance(event, h11.EndOfMessage):
                return None
            raise ReadError(f"unexpected event in response body: {type(event).__name__}")

    def read_body(self) -> bytes:
        """Read the remaining body fully into memory."""
        chunks = []
        while True:
            chunk = self.receive_body_chunk()
            if chunk is None:
                return b"".join(chunks)
            chunks.append(chunk)

    def _next_event(self) -> Any:
        while True:
            try:
                event = self._h11_connection.next_event()
            except h11.RemoteProtocolError as e:
                raise ReadError(f"malformed response: {e}", cause=e) from e

            if event is h11.NEED_DATA:
                # An empty read is fed to h11 as EOF, which ends a
                # close-delimited body or raises for a truncated one.
                self._h11_connection.receive_data(self._read())
                continue
            if isinstance(event, h11.ConnectionClosed):
                raise ReadError("connection closed before the response was complete")
            return event

    def _read(self) -> bytes:
        try:
            data = self._stream.read(self.READ_CHUNK_SIZE)
        except socket.timeout as e:
            raise TimeoutError(
                "waiting for response", phase=TimeoutError.READ,
                timeout=self._read_timeout, cause=e,
            ) from e
        except OSError as e:
            raise ReadError(f"connection error while reading: {e}", cause=e) from e
        self._bytes_received += len(data)
        return data

    def close(self) -> None:
        """Close the connection and cleanup resources."""
        if self._state is ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        self._stream.close()
        logger.debug(
            f"Connection closed (sent={self._bytes_sent}, received={self._bytes_received})"
        )

    @property
    def is_closed(self) -> bool:
        """Check if connection is closed."""
        return self._state is ConnectionState.CLOSED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def metrics(self) -> Dict[str, Any]:
        """
        Get connection metrics.

        Returns:
            Dictionary with connection metrics
        """
        return {
            "bytes_sent": self._bytes_sent,
            "bytes_received": self._bytes_received,
            "state": self._state.value,
        }

    def __enter__(self) -> "HTTP11Connection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
