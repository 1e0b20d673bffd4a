"""
Custom exceptions for minihttp.

This module defines the exception hierarchy used throughout
the library. Every failure surfaced to the caller identifies the
phase that failed: building, connecting, reading, decoding or
following redirects.
"""

from typing import TYPE_CHECKING, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .http_primitives import Response


class HTTPClientError(Exception):
    """Base exception for all minihttp errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class BuildError(HTTPClientError):
    """Raised when a request cannot be built, before any I/O happens."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Build error: {message}", cause)


class ConnectError(HTTPClientError):
    """Raised when the transport connection cannot be established."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Connect error: {message}", cause)


class TimeoutError(HTTPClientError):
    """
    Raised when a connect, write or read deadline expires.

    The ``phase`` attribute tells which budget ran out, so a slow
    handshake can be told apart from a slow response body.
    """

    CONNECT = "connect"
    WRITE = "write"
    READ = "read"

    def __init__(
        self,
        message: str,
        phase: str = READ,
        timeout: Optional[float] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        if timeout is not None:
            message = f"{message} (timeout: {timeout}s)"
        super().__init__(f"Timeout error [{phase}]: {message}", cause)
        self.phase = phase
        self.timeout = timeout


class ReadError(HTTPClientError):
    """Raised when the response framing is malformed or truncated."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Read error: {message}", cause)


class CodecError(HTTPClientError):
    """Base class for body codec failures."""


class DecodeError(CodecError):
    """Raised when body bytes do not match the codec's grammar."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Decode error: {message}", cause)


class EncodeError(CodecError):
    """Raised when a codec cannot encode the given payload."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Encode error: {message}", cause)


class RedirectLoopError(HTTPClientError):
    """Raised when the redirect budget is exhausted."""

    def __init__(self, message: str, history: Sequence[str] = ()) -> None:
        super().__init__(f"Redirect error: {message}")
        self.history: Tuple[str, ...] = tuple(history)


class StreamError(HTTPClientError):
    """Raised when a streamed body is misused (read twice, read after close)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)


class HTTPStatusError(HTTPClientError):
    """Raised by ``Response.raise_for_status`` for 4xx and 5xx responses."""

    def __init__(self, response: "Response") -> None:
        super().__init__(
            f"HTTP status error: {response.status_code} {response.reason} for {response.url}"
        )
        self.response = response
