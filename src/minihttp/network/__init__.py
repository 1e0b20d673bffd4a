"""
Network backend components for minihttp.

This module provides the low-level networking abstractions:
blocking network streams and the backends that open them.
"""

from .backend import NetworkBackend
from .stream import NetworkStream
from .sync import SocketNetworkBackend, SocketStream
from .mock import MockNetworkBackend, MockNetworkStream
from .utils import configure_socket, create_ssl_context, validate_port

__all__ = [
    "NetworkBackend",
    "NetworkStream",
    "SocketNetworkBackend",
    "SocketStream",
    "MockNetworkBackend",
    "MockNetworkStream",
    "configure_socket",
    "create_ssl_context",
    "validate_port",
]
