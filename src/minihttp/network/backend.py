"""
Network backend interface for minihttp.

This module defines the NetworkBackend interface that provides
abstractions for creating network connections.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .stream import NetworkStream


class NetworkBackend(ABC):
    """
    Interface for network backend implementations.

    A backend opens one fresh connection per call; the client never
    shares or reuses connections between requests.
    """

    @abstractmethod
    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> NetworkStream:
        """
        Connect to a TCP endpoint.

        Args:
            host: The hostname or IP address to connect to.
            port: The port number to connect to.
            timeout: Optional timeout in seconds for the connection.

        Returns:
            A NetworkStream representing the TCP connection.

        Raises:
            ConnectError: If the connection is refused or the host cannot be resolved.
            TimeoutError: If the connection times out (phase "connect").
        """
        pass

    @abstractmethod
    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        timeout: Optional[float] = None,
    ) -> NetworkStream:
        """
        Upgrade a TCP stream to TLS.

        Args:
            stream: The existing TCP NetworkStream to upgrade.
            host: The hostname for TLS certificate verification.
            timeout: Optional timeout in seconds for the TLS handshake.

        Returns:
            A NetworkStream representing the TLS connection.

        Raises:
            ConnectError: If the TLS handshake fails.
            TimeoutError: If the TLS handshake times out (phase "connect").
        """
        pass
