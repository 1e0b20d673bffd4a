"""
Fluent request construction for minihttp.

A RequestBuilder accumulates the parts of one call on top of the
defaults of the Client that created it. It is single-owner: do not
share one builder between threads while mutating it.
"""

import logging
import re
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import quote, urlencode, urlsplit, urlunsplit

from typing_extensions import Self

from .codecs import BodyCodec
from .exceptions import BuildError, CodecError
from .executor import Executor
from .http_primitives import Method, Request, RequestBody, Response, URLComponents

if TYPE_CHECKING:
    from .client import ClientSettings

logger = logging.getLogger(__name__)

ResponseHandler = Callable[[Response], Any]
ExceptionHandler = Callable[[Exception], Any]

# Characters kept as-is inside a path segment (RFC 3986 pchar minus "/").
SEGMENT_SAFE = "!$&'()*+,;=:@-._~"

_ABSOLUTE_URL = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")

_SET = "set"
_ADD = "add"


class RequestBuilder:
    """
    Mutable accumulator producing immutable Requests.

    ``build()`` snapshots the current state: calling it twice yields two
    equal, independent Requests. ``execute()`` builds and sends.
    """

    def __init__(
        self,
        settings: "ClientSettings",
        method: Optional[Union[str, Method]] = None,
        path: str = "",
    ) -> None:
        self._settings = settings
        self._method: Optional[Method] = Method.parse(method) if method is not None else None
        self._absolute_url: Optional[str] = None
        self._segments: List[str] = []
        self._errors: List[str] = []
        self._query: List[Tuple[str, str]] = []
        self._header_ops: List[Tuple[str, str, str]] = []
        self._body: Optional[RequestBody] = None
        self._body_sources: List[str] = []
        self._connect_timeout: Optional[float] = None
        self._read_timeout: Optional[float] = None
        self._follow_redirects: Optional[bool] = None
        self._max_redirects: Optional[int] = None
        self._status_handlers: Dict[int, ResponseHandler] = {}
        self._remaining_handler: Optional[ResponseHandler] = None
        self._exception_handler: Optional[ExceptionHandler] = None
        self._decorated = False
        if path:
            self.append_path(path)

    # URL

    def method(self, verb: Union[str, bytes, Method]) -> Self:
        self._method = Method.parse(verb)
        return self

    def url(self, absolute_url: str) -> Self:
        """
        Target an absolute URL, bypassing the client's base URL.

        Its query is kept; segments and query parameters added to the
        builder are merged into its path and query at build time.
        """
        URLComponents.from_url(absolute_url)
        if urlsplit(absolute_url).fragment:
            raise BuildError(f"URL {absolute_url!r} must not contain a fragment")
        self._absolute_url = absolute_url
        return self

    def path(self, segment: str) -> Self:
        """Append one path segment; "/" inside it is percent-encoded."""
        self._segments.append(quote(str(segment), safe=SEGMENT_SAFE))
        return self

    def append_path(self, path: str) -> Self:
        """
        Append a relative path of one or more "/"-separated segments.

        A leading "/" is ignored; the path is always relative to the
        base URL. Absolute URLs are rejected at build time and must go
        through ``url()`` instead.
        """
        if _ABSOLUTE_URL.match(path) or path.startswith("//"):
            self._errors.append(
                f"path {path!r} resolves outside the base URL; use url() for absolute URLs"
            )
            return self
        path = path.lstrip("/")
        if not path:
            return self
        split = urlsplit(path)
        if split.query:
            self._errors.append(f"path {path!r} contains a query; use query_param()")
            return self
        for segment in path.split("/"):
            self._segments.append(quote(segment, safe=SEGMENT_SAFE))
        return self

    def query_param(self, name: str, value: Any) -> Self:
        """Append a query parameter; repeated names keep every value."""
        self._query.append((str(name), str(value)))
        return self

    # Headers

    def header(self, name: str, value: str) -> Self:
        """Set a header, replacing defaults and earlier values of that name."""
        self._header_ops.append((_SET, name, value))
        return self

    def add_header(self, name: str, value: str) -> Self:
        """Add a header value, keeping defaults and earlier values."""
        self._header_ops.append((_ADD, name, value))
        return self

    # Body

    def body(self, payload: Any, codec: Optional[BodyCodec] = None) -> Self:
        """
        Encode ``payload`` now with ``codec`` (or the client default).

        Raises:
            BuildError: If the codec cannot encode the payload
        """
        codec = codec or self._settings.default_codec
        try:
            content_type, data = codec.encode(payload)
        except CodecError as e:
            raise BuildError(f"cannot encode body with {type(codec).__name__}", cause=e) from e
        self._set_body("payload", RequestBody(content=data, content_type=content_type))
        return self

    def raw_body(self, data: bytes, content_type: str = "application/octet-stream") -> Self:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise BuildError("raw body must be bytes")
        self._set_body("raw", RequestBody(content=bytes(data), content_type=content_type))
        return self

    def _set_body(self, source: str, body: RequestBody) -> None:
        self._body_sources.append(source)
        self._body = body

    # Per-call policy

    def connect_timeout(self, timeout: Optional[float]) -> Self:
        self._connect_timeout = timeout
        return self

    def read_timeout(self, timeout: Optional[float]) -> Self:
        self._read_timeout = timeout
        return self

    def follow_redirects(self, follow: bool = True) -> Self:
        self._follow_redirects = follow
        return self

    def max_redirects(self, count: int) -> Self:
        if count < 0:
            raise BuildError("max_redirects must be non-negative")
        self._max_redirects = count
        return self

    # Response handling

    def on_status(self, code: int, handler: ResponseHandler) -> Self:
        """Call ``handler`` with the response when its status is ``code``."""
        self._status_handlers[code] = handler
        return self

    def on_remaining(self, handler: ResponseHandler) -> Self:
        """Call ``handler`` for responses without a matching ``on_status``."""
        self._remaining_handler = handler
        return self

    def on_exception(self, handler: ExceptionHandler) -> Self:
        """
        Route failures to ``handler`` instead of raising them.

        With a handler registered, ``execute()`` returns None on failure.
        """
        self._exception_handler = handler
        return self

    # Terminal operations

    def build(self) -> Request:
        """
        Snapshot the accumulated state into a Request.

        Raises:
            BuildError: If the method is unset, both a payload and a raw
                        body were given, or the URL cannot be resolved
        """
        if self._method is None:
            raise BuildError("no HTTP method set")
        if len(set(self._body_sources)) > 1:
            raise BuildError("conflicting body sources: payload and raw body")
        if self._errors:
            raise BuildError(self._errors[0])
        if self._body is not None and not self._method.allows_body:
            raise BuildError(f"{self._method} requests cannot carry a body")

        headers = self._settings.default_headers.copy()
        try:
            for op, name, value in self._header_ops:
                if op == _SET:
                    headers.set(name, value)
                else:
                    headers.add(name, value)
        except ValueError as e:
            raise BuildError(str(e), cause=e) from e

        timeouts = self._settings.timeouts
        if self._connect_timeout is not None:
            timeouts = timeouts.with_connect(self._connect_timeout)
        if self._read_timeout is not None:
            timeouts = timeouts.with_read(self._read_timeout)

        return Request(
            method=self._method,
            url=self._resolve_url(),
            headers=headers,
            body=self._body,
            timeouts=timeouts,
        )

    def _resolve_url(self) -> str:
        base = self._absolute_url or self._settings.base_url
        if not base:
            raise BuildError("no base URL configured and no absolute URL given")
        split = urlsplit(base)
        path = split.path
        if self._segments:
            path = path.rstrip("/") + "/" + "/".join(self._segments)
        query = split.query
        if self._query:
            encoded = urlencode(self._query, quote_via=quote)
            query = f"{query}&{encoded}" if query else encoded
        return urlunsplit((split.scheme, split.netloc, path, query, ""))

    def executor(self) -> Executor:
        """The executor configured with this call's redirect settings."""
        policy = self._settings.redirect_policy
        if self._follow_redirects is not None:
            policy = policy.with_follow(self._follow_redirects)
        if self._max_redirects is not None:
            policy = policy.with_max_redirects(self._max_redirects)
        return Executor(backend=self._settings.backend, redirect_policy=policy)

    def execute(self) -> Optional[Response]:
        """
        Build the request, send it and dispatch the response handlers.

        Returns:
            The final response, or None when an ``on_exception`` handler
            consumed a failure
        """
        try:
            self._decorate()
            response = self.executor().execute(self.build())
            handler = self._status_handlers.get(response.status_code, self._remaining_handler)
            if handler is not None:
                handler(response)
        except Exception as e:
            if self._exception_handler is None:
                raise
            logger.debug(f"Request failed, passing {type(e).__name__} to exception handler")
            self._exception_handler(e)
            return None
        return response

    def stream(self) -> Response:
        """
        Build and send the request, returning a streamed response.

        The caller must close the response (or use it as a context
        manager) to release the connection.
        """
        self._decorate()
        return self.executor().execute(self.build(), stream=True)

    def _decorate(self) -> None:
        if self._decorated:
            return
        self._decorated = True
        for decorator in self._settings.decorators:
            decorator(self)
