"""
Pytest configuration for minihttp tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import socket
import threading
from typing import Callable, List, Optional

import pytest

from minihttp import Client
from minihttp.network.mock import MockNetworkBackend


def http_response(
    status: int = 200,
    reason: str = "OK",
    headers: Optional[List[tuple]] = None,
    body: bytes = b"",
    content_length: bool = True,
) -> bytes:
    """Serialize a raw HTTP/1.1 response for the mock backend."""
    lines = [f"HTTP/1.1 {status} {reason}".encode()]
    for name, value in headers or []:
        lines.append(f"{name}: {value}".encode())
    if content_length:
        lines.append(f"Content-Length: {len(body)}".encode())
    return b"\r\n".join(lines) + b"\r\n\r\n" + body


def redirect_response(status: int, location: str) -> bytes:
    return http_response(status, "Redirect", headers=[("Location", location)])


@pytest.fixture
def make_response() -> Callable[..., bytes]:
    return http_response


@pytest.fixture
def mock_backend() -> MockNetworkBackend:
    """An empty mock backend; tests queue responses on it."""
    return MockNetworkBackend()


@pytest.fixture
def client(mock_backend: MockNetworkBackend) -> Client:
    """A client for http://example.com backed by the mock backend."""
    return Client(
        "http://example.com/api",
        default_headers={"User-Agent": "minihttp/0.1.0", "Accept": "*/*"},
        backend=mock_backend,
    )


@pytest.fixture
def sample_headers():
    """Sample headers for testing."""
    return [
        ("Content-Type", "application/json"),
        ("Authorization", "Bearer token123"),
        ("User-Agent", "minihttp/0.1.0"),
        ("Accept", "*/*"),
    ]


class LoopbackServer:
    """
    Tiny TCP server on 127.0.0.1 for real-socket tests.

    Every accepted connection is passed to ``handler`` on a worker thread.
    """

    def __init__(self, handler: Callable[[socket.socket], None]) -> None:
        self._handler = handler
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(8)
        self._sock.settimeout(0.2)
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self.requests: List[bytes] = []

    @property
    def port(self) -> int:
        return self._sock.getsockname()[1]

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def start(self) -> "LoopbackServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stopped.set()
        self._thread.join(timeout=2)
        self._sock.close()

    def _serve(self) -> None:
        while not self._stopped.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        with conn:
            try:
                self._handler(conn)
            except OSError:
                pass


def read_request(conn: socket.socket) -> bytes:
    """Read one request head plus a Content-Length body from ``conn``."""
    conn.settimeout(2)
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = conn.recv(4096)
        if not chunk:
            return data
        data += chunk
    head, _, body = data.partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value.strip())
    while len(body) < length:
        chunk = conn.recv(4096)
        if not chunk:
            break
        body += chunk
    return head + b"\r\n\r\n" + body


@pytest.fixture
def loopback_server():
    """Factory starting LoopbackServers that are stopped after the test."""
    servers: List[LoopbackServer] = []

    def _start(handler: Callable[[socket.socket], None]) -> LoopbackServer:
        server = LoopbackServer(handler).start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()
