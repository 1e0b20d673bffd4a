"""
Socket-based network backend for minihttp.

Blocking TCP and TLS streams on top of the standard ``socket`` and
``ssl`` modules.
"""

import logging
import socket
import ssl
from typing import Any, Optional

from ..exceptions import ConnectError, TimeoutError
from .backend import NetworkBackend
from .stream import NetworkStream
from .utils import configure_socket, create_ssl_context, validate_port

logger = logging.getLogger(__name__)


class SocketStream(NetworkStream):
    """NetworkStream over a connected (optionally TLS-wrapped) socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._closed = False

    def read(self, max_bytes: int = 65536) -> bytes:
        if self._closed:
            raise OSError("Stream is closed")
        return self._sock.recv(max_bytes)

    def write(self, data: bytes) -> None:
        if self._closed:
            raise OSError("Stream is closed")
        self._sock.sendall(data)

    def set_timeout(self, timeout: Optional[float]) -> None:
        self._sock.settimeout(timeout)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError as e:
            logger.debug(f"Error while closing socket: {e}")

    def get_extra_info(self, name: str) -> Optional[Any]:
        try:
            if name == "peername":
                return self._sock.getpeername()
            if name == "sockname":
                return self._sock.getsockname()
        except OSError:
            return None
        if name == "socket":
            return self._sock
        if name == "ssl_object" and isinstance(self._sock, ssl.SSLSocket):
            return self._sock
        return None

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def socket(self) -> socket.socket:
        return self._sock


class SocketNetworkBackend(NetworkBackend):
    """
    Default backend: one blocking socket per connection.

    Args:
        ssl_context: Context used for https URLs; a verifying default
                     context is created when omitted.
    """

    def __init__(self, ssl_context: Optional[ssl.SSLContext] = None) -> None:
        self._ssl_context = ssl_context

    @property
    def ssl_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            self._ssl_context = create_ssl_context()
        return self._ssl_context

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> SocketStream:
        try:
            port = validate_port(port)
        except ValueError as e:
            raise ConnectError(f"cannot connect to {host}: {e}", cause=e) from e
        logger.debug(f"Connecting to {host}:{port} (timeout={timeout})")
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except socket.timeout as e:
            raise TimeoutError(
                f"connecting to {host}:{port}", phase=TimeoutError.CONNECT,
                timeout=timeout, cause=e,
            ) from e
        except socket.gaierror as e:
            raise ConnectError(f"cannot resolve {host}: {e}", cause=e) from e
        except OSError as e:
            raise ConnectError(f"cannot connect to {host}:{port}: {e}", cause=e) from e
        return SocketStream(configure_socket(sock))

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        timeout: Optional[float] = None,
    ) -> SocketStream:
        if not isinstance(stream, SocketStream):
            raise TypeError("SocketNetworkBackend can only wrap SocketStream")
        sock = stream.socket
        sock.settimeout(timeout)
        try:
            tls_sock = self.ssl_context.wrap_socket(sock, server_hostname=host)
        except socket.timeout as e:
            stream.close()
            raise TimeoutError(
                f"TLS handshake with {host}", phase=TimeoutError.CONNECT,
                timeout=timeout, cause=e,
            ) from e
        except (ssl.SSLError, OSError) as e:
            stream.close()
            raise ConnectError(f"TLS handshake with {host} failed: {e}", cause=e) from e
        logger.debug(f"TLS established with {host} ({tls_sock.version()})")
        return SocketStream(tls_sock)
