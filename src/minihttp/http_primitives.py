"""
HTTP primitives for minihttp.

This module defines the core data structures for HTTP requests and responses.
All classes are immutable to ensure thread safety and simplify reasoning.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Iterator,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import urljoin, urlsplit

from .codecs import BodyCodec, ContentType
from .exceptions import BuildError, HTTPStatusError, StreamError
from .headers import HeaderItems, HeaderMap
from .network.utils import validate_port

if TYPE_CHECKING:
    from .streams import ResponseStream

StatusCode = int

DEFAULT_PORTS = {"http": 80, "https": 443}


class Method(str, Enum):
    """HTTP methods supported by the client."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: Union[str, bytes, "Method"]) -> "Method":
        """Convert a str, bytes or Method into a Method (case-insensitive)."""
        if isinstance(value, Method):
            return value
        if isinstance(value, bytes):
            value = value.decode("ascii", "replace")
        if not isinstance(value, str):
            raise BuildError(f"method must be str or bytes, got {type(value).__name__}")
        try:
            return cls(value.upper())
        except ValueError:
            raise BuildError(f"unsupported HTTP method {value!r}") from None

    @property
    def allows_body(self) -> bool:
        return self is not Method.HEAD

    def __str__(self) -> str:
        return self.value


class URLComponents(NamedTuple):
    """Immutable representation of the parts of an absolute URL."""

    scheme: str
    host: str
    port: int
    target: str

    @classmethod
    def from_url(cls, url: str) -> "URLComponents":
        """Split an absolute http(s) URL into its components."""
        parsed = urlsplit(url)
        scheme = parsed.scheme.lower()
        if scheme not in DEFAULT_PORTS:
            raise BuildError(f"unsupported URL scheme in {url!r}")
        if not parsed.hostname:
            raise BuildError(f"no host in URL {url!r}")
        try:
            port = parsed.port
            port = DEFAULT_PORTS[scheme] if port is None else validate_port(port)
        except ValueError as e:
            raise BuildError(f"invalid port in URL {url!r}", cause=e) from e
        target = parsed.path or "/"
        if parsed.query:
            target += "?" + parsed.query
        return cls(scheme=scheme, host=parsed.hostname, port=port, target=target)

    @property
    def origin(self) -> Tuple[str, str, int]:
        return (self.scheme, self.host, self.port)

    @property
    def host_header(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if DEFAULT_PORTS[self.scheme] == self.port:
            return host
        return f"{host}:{self.port}"


def resolve_url(base: str, location: str) -> str:
    """Resolve a Location value against the URL it was received from."""
    return urljoin(base, location)


@dataclass(frozen=True)
class Timeouts:
    """
    Connect and read budgets in seconds.

    The two budgets are independent: the connect timeout only covers
    establishing the connection, the read timeout only covers waiting
    for response bytes. ``None`` disables a budget.
    """

    connect: Optional[float] = 10.0
    read: Optional[float] = 30.0

    def __post_init__(self) -> None:
        for name in ("connect", "read"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} timeout must be positive")

    def with_connect(self, timeout: Optional[float]) -> "Timeouts":
        return Timeouts(connect=timeout, read=self.read)

    def with_read(self, timeout: Optional[float]) -> "Timeouts":
        return Timeouts(connect=self.connect, read=timeout)


@dataclass(frozen=True)
class RequestBody:
    """Already-encoded request body."""

    content: bytes
    content_type: str

    def __post_init__(self) -> None:
        if not isinstance(self.content, bytes):
            raise ValueError("body content must be bytes")

    def __len__(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class Request:
    """
    Immutable HTTP request representation.

    This class represents an HTTP request with all its components.
    Once created, the request cannot be modified - any changes
    must create a new Request instance. The header map is copied
    and frozen on construction.
    """

    method: Method
    url: str
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: Optional[RequestBody] = None
    timeouts: Timeouts = field(default_factory=Timeouts)

    def __post_init__(self) -> None:
        """Validate and normalize request data after initialization."""
        object.__setattr__(self, "method", Method.parse(self.method))
        if not isinstance(self.headers, HeaderMap):
            raise ValueError("headers must be a HeaderMap")
        if not self.headers.is_frozen:
            object.__setattr__(self, "headers", self.headers.frozen())
        if self.body is not None and not isinstance(self.body, RequestBody):
            raise ValueError("body must be a RequestBody")
        # Fails early on relative or non-http URLs.
        URLComponents.from_url(self.url)

    @classmethod
    def create(
        cls,
        method: Union[str, bytes, Method],
        url: str,
        headers: Optional[HeaderItems] = None,
        body: Optional[RequestBody] = None,
        timeouts: Optional[Timeouts] = None,
    ) -> "Request":
        """
        Create a Request with proper type conversion.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Absolute URL string
            headers: Optional HeaderMap, mapping or list of (name, value) pairs
            body: Optional encoded body
            timeouts: Optional timeout budgets

        Returns:
            New Request instance
        """
        return cls(
            method=Method.parse(method),
            url=url,
            headers=HeaderMap(headers),
            body=body,
            timeouts=timeouts or Timeouts(),
        )

    def with_method(self, method: Union[str, bytes, Method]) -> "Request":
        """Create a new request with a different method."""
        return Request(method=Method.parse(method), url=self.url, headers=self.headers,
                       body=self.body, timeouts=self.timeouts)

    def with_url(self, url: str) -> "Request":
        """Create a new request with a different URL."""
        return Request(method=self.method, url=url, headers=self.headers,
                       body=self.body, timeouts=self.timeouts)

    def with_headers(self, headers: HeaderItems) -> "Request":
        """Create a new request with different headers."""
        return Request(method=self.method, url=self.url, headers=HeaderMap(headers),
                       body=self.body, timeouts=self.timeouts)

    def with_body(self, body: Optional[RequestBody]) -> "Request":
        """Create a new request with a different body."""
        return Request(method=self.method, url=self.url, headers=self.headers,
                       body=body, timeouts=self.timeouts)

    @property
    def components(self) -> URLComponents:
        return URLComponents.from_url(self.url)

    @property
    def scheme(self) -> str:
        """Get the URL scheme."""
        return self.components.scheme

    @property
    def host(self) -> str:
        """Get the URL host."""
        return self.components.host

    @property
    def port(self) -> int:
        """Get the URL port."""
        return self.components.port

    @property
    def target(self) -> str:
        """Get the request target (path and query)."""
        return self.components.target


@dataclass(frozen=True)
class Response:
    """
    Immutable HTTP response representation.

    A buffered response carries its full body in ``content``. A
    streamed response carries a single-use ``stream`` instead; the
    body accessors drain it on first use.
    """

    status_code: StatusCode
    reason: str = ""
    headers: HeaderMap = field(default_factory=HeaderMap)
    content: Optional[bytes] = None
    url: str = ""
    history: Tuple[str, ...] = ()
    stream: Optional["ResponseStream"] = None

    def __post_init__(self) -> None:
        """Validate response data after initialization."""
        if not isinstance(self.status_code, int):
            raise ValueError("status_code must be int")
        if not isinstance(self.headers, HeaderMap):
            raise ValueError("headers must be a HeaderMap")
        if not self.headers.is_frozen:
            object.__setattr__(self, "headers", self.headers.frozen())
        if self.content is not None and self.stream is not None:
            raise ValueError("a response is either buffered or streamed, not both")
        object.__setattr__(self, "history", tuple(self.history))

    @property
    def status(self) -> StatusCode:
        return self.status_code

    @property
    def content_length(self) -> Optional[int]:
        """Content-Length as declared by the server, if any."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value by name (case-insensitive)."""
        return self.headers.get(name, default)

    def has_header(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return name in self.headers

    def body_bytes(self) -> bytes:
        """
        Return the full body.

        For streamed responses the stream is drained and cached on the
        first call, which fails with StreamError if iteration already
        started.
        """
        if self.stream is not None:
            return self.stream.read()
        return self.content or b""

    def iter_bytes(self) -> Iterator[bytes]:
        """Iterate over the body in chunks; single-use for streamed responses."""
        if self.stream is not None:
            return iter(self.stream)
        if self.content is None:
            raise StreamError("response has no body")
        return iter([self.content] if self.content else [])

    def text(self, encoding: Optional[str] = None) -> str:
        charset = encoding or ContentType.parse(self.content_type).charset or "utf-8"
        return self.body_bytes().decode(charset, errors="replace")

    def body_as(self, codec: BodyCodec, shape: Any = None) -> Any:
        """Decode the body with ``codec``; DecodeError on mismatch."""
        return codec.decode(self.content_type, self.body_bytes(), shape)

    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400 and "location" in self.headers

    def raise_for_status(self) -> "Response":
        if self.status_code >= 400:
            raise HTTPStatusError(self)
        return self

    def close(self) -> None:
        """Release the connection of a streamed response; no-op otherwise."""
        if self.stream is not None:
            self.stream.close()

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
