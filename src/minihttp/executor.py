"""
Request execution for minihttp.

The Executor turns an immutable Request into a Response: it opens a
fresh connection per attempt, performs one HTTP/1.1 exchange, and
follows redirects within the configured budget.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional, Tuple

from .exceptions import BuildError, HTTPClientError, RedirectLoopError
from .http11 import HTTP11Connection, ResponseHead
from .http_primitives import Method, Request, Response, URLComponents, resolve_url
from .network.backend import NetworkBackend
from .network.stream import NetworkStream
from .network.sync import SocketNetworkBackend
from .streams import ResponseStream

logger = logging.getLogger(__name__)

REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})

_ALL_BUT_HEAD = frozenset(m for m in Method if m is not Method.HEAD)

# Headers describing the body; dropped when a redirect drops the body.
BODY_HEADERS = ("content-type", "content-length", "transfer-encoding", "content-encoding")


def _default_rewrites() -> Mapping[int, FrozenSet[Method]]:
    return {
        301: frozenset({Method.POST}),
        302: frozenset({Method.POST}),
        303: _ALL_BUT_HEAD,
    }


@dataclass(frozen=True)
class RedirectPolicy:
    """
    How redirects are followed.

    Attributes:
        follow: Whether redirects are followed at all
        max_redirects: Number of hops allowed before RedirectLoopError
        redirect_codes: Status codes treated as redirects
        rewrite_to_get: Per status code, the methods rewritten to GET on
                        the next hop; the body is dropped when rewritten.
                        307 and 308 are absent, so they keep method and body.
        strip_authorization: Drop the Authorization header when a hop
                             leaves the original origin
    """

    follow: bool = True
    max_redirects: int = 5
    redirect_codes: FrozenSet[int] = REDIRECT_CODES
    rewrite_to_get: Mapping[int, FrozenSet[Method]] = field(default_factory=_default_rewrites)
    strip_authorization: bool = True

    def __post_init__(self) -> None:
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be non-negative")

    def with_follow(self, follow: bool) -> "RedirectPolicy":
        return RedirectPolicy(follow, self.max_redirects, self.redirect_codes,
                              self.rewrite_to_get, self.strip_authorization)

    def with_max_redirects(self, max_redirects: int) -> "RedirectPolicy":
        return RedirectPolicy(self.follow, max_redirects, self.redirect_codes,
                              self.rewrite_to_get, self.strip_authorization)

    def should_follow(self, head: ResponseHead) -> bool:
        return (
            self.follow
            and head.status_code in self.redirect_codes
            and head.headers.get("location") is not None
        )

    def redirect_method(self, status_code: int, method: Method) -> Method:
        if method in self.rewrite_to_get.get(status_code, frozenset()):
            return Method.GET
        return method


class Executor:
    """
    Executes requests, one independent connection per attempt.

    An Executor holds only read-only configuration, so one instance can
    serve concurrent callers; every call owns its own connection.
    """

    def __init__(
        self,
        backend: Optional[NetworkBackend] = None,
        redirect_policy: Optional[RedirectPolicy] = None,
        write_timeout: Optional[float] = HTTP11Connection.DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        self._backend = backend or SocketNetworkBackend()
        self._policy = redirect_policy or RedirectPolicy()
        self._write_timeout = write_timeout

    @property
    def redirect_policy(self) -> RedirectPolicy:
        return self._policy

    def execute(self, request: Request, stream: bool = False) -> Response:
        """
        Send ``request`` and return the final response.

        Args:
            request: The request to send
            stream: Return a response whose body is read lazily; the
                    caller must close it

        Raises:
            ConnectError, TimeoutError, ReadError: Transport or framing failures
            RedirectLoopError: If more redirects are needed than allowed
        """
        history: List[str] = []
        remaining = self._policy.max_redirects
        current = request

        while True:
            connection, head = self._exchange(current)

            if not self._policy.should_follow(head):
                return self._finish(connection, head, current, history, stream)

            connection.close()
            history.append(current.url)
            if remaining == 0:
                raise RedirectLoopError(
                    f"exceeded {self._policy.max_redirects} redirects", history
                )
            remaining -= 1
            current = self._redirect_request(current, head)
            logger.debug(
                f"Redirect {head.status_code}: {history[-1]} -> {current.method} {current.url}"
            )

    def _exchange(self, request: Request) -> Tuple[HTTP11Connection, ResponseHead]:
        """Open a connection, send the request and read the response head."""
        start_time = time.monotonic()
        components = request.components
        stream = self._connect(components, request)
        connection = HTTP11Connection(
            stream,
            read_timeout=request.timeouts.read,
            write_timeout=self._write_timeout,
        )
        try:
            connection.send_request(request)
            head = connection.receive_response_head()
        except HTTPClientError as e:
            duration = time.monotonic() - start_time
            logger.error(f"{request.method} {request.url} failed: {e} ({duration:.3f}s)")
            connection.close()
            raise
        except BaseException:
            connection.close()
            raise

        logger.debug(
            f"{request.method} {request.url} -> {head.status_code} "
            f"({time.monotonic() - start_time:.3f}s)"
        )
        return connection, head

    def _connect(self, components: URLComponents, request: Request) -> NetworkStream:
        timeout = request.timeouts.connect
        stream = self._backend.connect_tcp(components.host, components.port, timeout=timeout)
        if components.scheme != "https":
            return stream
        try:
            return self._backend.connect_tls(stream, components.host, timeout=timeout)
        except BaseException:
            stream.close()
            raise

    def _finish(
        self,
        connection: HTTP11Connection,
        head: ResponseHead,
        request: Request,
        history: List[str],
        stream: bool,
    ) -> Response:
        if stream:
            content_length = head.headers.get("content-length")
            return Response(
                status_code=head.status_code,
                reason=head.reason,
                headers=head.headers,
                url=request.url,
                history=tuple(history),
                stream=ResponseStream(
                    connection,
                    content_length=int(content_length) if content_length else None,
                ),
            )

        try:
            body = connection.read_body()
        finally:
            connection.close()

        return Response(
            status_code=head.status_code,
            reason=head.reason,
            headers=head.headers,
            content=body,
            url=request.url,
            history=tuple(history),
        )

    def _redirect_request(self, request: Request, head: ResponseHead) -> Request:
        location = head.headers.get("location") or ""
        url = resolve_url(request.url, location)
        try:
            target = URLComponents.from_url(url)
        except BuildError as e:
            raise BuildError(f"cannot follow redirect to {location!r}", cause=e) from e

        method = self._policy.redirect_method(head.status_code, request.method)
        headers = request.headers.copy()
        headers.remove("host")
        body = request.body
        if method is not request.method:
            body = None
            for name in BODY_HEADERS:
                headers.remove(name)
        if self._policy.strip_authorization and target.origin != request.components.origin:
            headers.remove("authorization")

        return Request(
            method=method,
            url=url,
            headers=headers,
            body=body,
            timeouts=request.timeouts,
        )
