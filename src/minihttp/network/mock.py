"""
Mock network implementations for testing.

This module provides mock implementations of NetworkStream and NetworkBackend
that can be used for unit testing without requiring actual network connections.
"""

import socket
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

from .backend import NetworkBackend
from .stream import NetworkStream


class MockNetworkStream(NetworkStream):
    """
    Mock network stream for testing.

    This implementation simulates a network stream in memory,
    allowing tests to verify network behavior without actual I/O.
    """

    def __init__(
        self,
        data: bytes = b"",
        chunk_size: Optional[int] = None,
        stall: bool = False,
    ) -> None:
        """
        Initialize the mock stream.

        Args:
            data: Initial data to be available for reading.
            chunk_size: Upper bound on bytes returned per read, to
                        exercise arbitrary segment boundaries.
            stall: Raise ``socket.timeout`` instead of signalling EOF once
                   the data is exhausted, like a peer that stops sending.
        """
        self._data = data
        self._position = 0
        self._chunk_size = chunk_size
        self._stall = stall
        self._closed = False
        self._extra_info: Dict[str, Any] = {}
        self._write_buffer: List[bytes] = []
        self.timeouts: List[Optional[float]] = []

    def read(self, max_bytes: int = 65536) -> bytes:
        if self._closed:
            raise OSError("Stream is closed")

        if self._position >= len(self._data):
            if self._stall:
                raise socket.timeout("timed out")
            return b""

        size = max_bytes
        if self._chunk_size is not None:
            size = min(size, self._chunk_size)
        end = min(self._position + size, len(self._data))
        result = self._data[self._position:end]
        self._position = end
        return result

    def write(self, data: bytes) -> None:
        if self._closed:
            raise OSError("Stream is closed")
        self._write_buffer.append(data)

    def set_timeout(self, timeout: Optional[float]) -> None:
        self.timeouts.append(timeout)

    def close(self) -> None:
        """Close the mock stream."""
        self._closed = True

    def get_extra_info(self, name: str) -> Optional[Any]:
        return self._extra_info.get(name)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def written_data(self) -> bytes:
        """Get all data that was written to the stream."""
        return b"".join(self._write_buffer)

    @property
    def unread_data(self) -> bytes:
        """Data that was never consumed by a read."""
        return self._data[self._position:]

    def set_extra_info(self, name: str, value: Any) -> None:
        self._extra_info[name] = value

    def add_data(self, data: bytes) -> None:
        """Add data to be available for reading."""
        self._data += data


Script = Union[bytes, MockNetworkStream, BaseException]


class MockNetworkBackend(NetworkBackend):
    """
    Mock network backend for testing.

    Each ``connect_tcp`` call consumes the next scripted entry: raw
    response bytes, a prepared MockNetworkStream, or an exception to
    raise instead of connecting.
    """

    def __init__(self, *scripts: Script) -> None:
        self._scripts: Deque[Script] = deque(scripts)
        self.connections: List[Tuple[str, int, Optional[float]]] = []
        self.streams: List[MockNetworkStream] = []
        self.tls_hosts: List[str] = []

    def queue(self, script: Script) -> None:
        self._scripts.append(script)

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> MockNetworkStream:
        self.connections.append((host, port, timeout))
        if not self._scripts:
            raise AssertionError(f"unexpected connection to {host}:{port}")
        script = self._scripts.popleft()
        if isinstance(script, BaseException):
            raise script
        stream = script if isinstance(script, MockNetworkStream) else MockNetworkStream(script)
        stream.set_extra_info("peername", (host, port))
        stream.set_extra_info("sockname", ("127.0.0.1", 12345))
        self.streams.append(stream)
        return stream

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        timeout: Optional[float] = None,
    ) -> NetworkStream:
        self.tls_hosts.append(host)
        if isinstance(stream, MockNetworkStream):
            stream.set_extra_info("ssl_object", True)
        return stream

    @property
    def last_stream(self) -> MockNetworkStream:
        return self.streams[-1]

    def reset(self) -> None:
        """Reset all mock connections."""
        self._scripts.clear()
        self.connections.clear()
        self.streams.clear()
        self.tls_hosts.clear()
