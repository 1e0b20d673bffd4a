"""
Network stream interface for minihttp.

This module defines the NetworkStream interface that all network stream
implementations must follow for consistent behavior across the library.
Streams are blocking: every call suspends the calling thread until it
completes, fails, or its timeout expires.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class NetworkStream(ABC):
    """
    Interface for blocking network streams.

    Implementations raise ``socket.timeout`` when a read or write
    deadline expires and ``OSError`` for any other transport failure;
    the HTTP layer translates these into library errors.
    """

    @abstractmethod
    def read(self, max_bytes: int = 65536) -> bytes:
        """
        Read data from the stream.

        Args:
            max_bytes: Maximum number of bytes to read.

        Returns:
            The data read, or ``b""`` once the peer closed the connection.

        Raises:
            socket.timeout: If the read timeout expires.
            OSError: If a network error occurs.
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Write all of ``data`` to the stream.

        Raises:
            socket.timeout: If the write blocks longer than the timeout.
            OSError: If a network error occurs.
        """
        pass

    @abstractmethod
    def set_timeout(self, timeout: Optional[float]) -> None:
        """Set the deadline applied to each subsequent read or write."""
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close the stream and cleanup resources.

        Closing an already closed stream is a no-op.
        """
        pass

    @abstractmethod
    def get_extra_info(self, name: str) -> Optional[Any]:
        """
        Get extra information about the stream.

        Args:
            name: The name of the information to retrieve. Common values include:
                 - "peername": The remote endpoint address
                 - "sockname": The local endpoint address
                 - "ssl_object": The SSL object for TLS streams

        Returns:
            The requested information or None if not available.
        """
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """Check if the stream is closed."""
        pass
