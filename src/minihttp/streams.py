"""
Streaming response bodies for minihttp.

A ResponseStream reads the body lazily from the connection that
produced the response. It can be iterated at most once and owns the
connection until the body is exhausted or the stream is closed.
"""

import logging
from typing import TYPE_CHECKING, Any, Iterator, List, Optional

from .exceptions import HTTPClientError, StreamError

if TYPE_CHECKING:
    from .http11 import HTTP11Connection

logger = logging.getLogger(__name__)


class ResponseStream:
    """
    Single-use iterator over a response body.

    The connection is released when the last chunk has been read, when
    reading fails, or when ``close()`` is called, whichever comes first.
    Use it as a context manager so early abandonment still releases it.
    """

    def __init__(
        self,
        connection: "HTTP11Connection",
        content_length: Optional[int] = None,
    ) -> None:
        """
        Initialize ResponseStream.

        Args:
            connection: The HTTP11Connection that owns this stream
            content_length: Declared Content-Length, if any
        """
        self._connection = connection
        self._content_length = content_length
        self._closed = False
        self._started = False
        self._exhausted = False
        self._bytes_read = 0
        self._buffer: Optional[bytes] = None

    def __iter__(self) -> Iterator[bytes]:
        if self._closed:
            raise StreamError("Cannot iterate over closed stream")
        if self._started:
            raise StreamError("Response body can only be read once")
        self._started = True
        return self._iter_chunks()

    def _iter_chunks(self) -> Iterator[bytes]:
        try:
            while not self._closed:
                chunk = self._connection.receive_body_chunk()
                if chunk is None:
                    self._exhausted = True
                    return
                self._bytes_read += len(chunk)
                yield chunk
        except HTTPClientError:
            logger.debug(f"Streaming read failed after {self._bytes_read} bytes")
            raise
        finally:
            self.close()

    def read(self) -> bytes:
        """
        Read the entire remaining body and cache it.

        Subsequent calls return the cached bytes. Fails if iteration
        was already started by someone else.
        """
        if self._buffer is not None:
            return self._buffer
        chunks: List[bytes] = list(self)
        self._buffer = b"".join(chunks)
        return self._buffer

    def close(self) -> None:
        """Close the stream and release the connection."""
        if not self._closed:
            self._closed = True
            self._connection.close()

    @property
    def content_length(self) -> Optional[int]:
        """Get the declared content length of the stream."""
        return self._content_length

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def bytes_read(self) -> int:
        """Get the number of bytes read so far."""
        return self._bytes_read

    def __enter__(self) -> "ResponseStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
