"""
Network utilities for minihttp.

This module provides helpers for socket tuning and SSL context setup
used by the socket backend.
"""

import socket
import ssl
from typing import Optional, Union


def configure_socket(sock: socket.socket) -> socket.socket:
    """
    Apply client-side socket options.

    Args:
        sock: A connected TCP socket

    Returns:
        The same socket, for chaining
    """
    try:
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    except OSError:
        # Not every socket family supports TCP_NODELAY.
        pass
    return sock


def create_ssl_context(
    verify: bool = True,
    cafile: Optional[str] = None,
    cert_file: Optional[str] = None,
    key_file: Optional[str] = None,
) -> ssl.SSLContext:
    """
    Create an SSL context for HTTP/1.1 client connections.

    Args:
        verify: Whether to verify the server certificate and hostname
        cafile: Optional CA bundle path
        cert_file: Path to certificate file (for client auth)
        key_file: Path to private key file (for client auth)

    Returns:
        Configured SSL context

    Raises:
        ssl.SSLError: If SSL context creation fails
    """
    context = ssl.create_default_context(cafile=cafile)
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    context.set_alpn_protocols(["http/1.1"])
    context.options |= ssl.OP_NO_COMPRESSION
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    if cert_file:
        context.load_cert_chain(cert_file, key_file)

    return context


def validate_port(port: Union[int, str]) -> int:
    """
    Validate and convert port to integer.

    Args:
        port: Port number (int or string)

    Returns:
        Port as integer

    Raises:
        ValueError: If port is invalid
    """
    try:
        port_int = int(port)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid port: {port}")

    if not (1 <= port_int <= 65535):
        raise ValueError(f"Port must be between 1 and 65535, got {port_int}")

    return port_int
