"""
Client entry point for minihttp.

A Client holds immutable defaults (base URL, headers, timeouts,
redirect policy, default codec, decorators) and hands out
RequestBuilders seeded with them. It keeps no per-request state and
can be shared freely between threads.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Tuple, Union, cast

from .builder import RequestBuilder
from .codecs import BodyCodec, RawCodec
from .exceptions import BuildError
from .executor import RedirectPolicy
from .headers import HeaderItems, HeaderMap
from .http_primitives import Method, Response, Timeouts, URLComponents
from .network.backend import NetworkBackend
from .network.sync import SocketNetworkBackend

logger = logging.getLogger(__name__)

Decorator = Callable[[RequestBuilder], Any]


def normalize_base_url(base_url: str) -> str:
    """Validate a base URL and strip its trailing slash."""
    if not base_url:
        return ""
    URLComponents.from_url(base_url)
    if "?" in base_url or "#" in base_url:
        raise BuildError(f"base URL {base_url!r} must not contain a query or fragment")
    return base_url.rstrip("/")


@dataclass(frozen=True)
class ClientSettings:
    """
    Immutable client configuration.

    Attributes:
        base_url: Absolute http(s) URL prefix for relative paths, or ""
        default_headers: Headers added to every request (read-only copy)
        timeouts: Default connect and read budgets
        redirect_policy: Redirect following rules and budget
        default_codec: Codec used by ``body()`` when none is given
        decorators: Callables applied to every builder before execution
        backend: Network backend opening connections
    """

    base_url: str = ""
    default_headers: HeaderMap = field(default_factory=HeaderMap)
    timeouts: Timeouts = field(default_factory=Timeouts)
    redirect_policy: RedirectPolicy = field(default_factory=RedirectPolicy)
    default_codec: BodyCodec = field(default_factory=RawCodec)
    decorators: Tuple[Decorator, ...] = ()
    backend: NetworkBackend = field(default_factory=SocketNetworkBackend)

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", normalize_base_url(self.base_url))
        object.__setattr__(self, "default_headers", HeaderMap(self.default_headers).frozen())
        object.__setattr__(self, "decorators", tuple(self.decorators))

    @property
    def follow_redirects(self) -> bool:
        return self.redirect_policy.follow

    @property
    def max_redirects(self) -> int:
        return self.redirect_policy.max_redirects


class Client:
    """
    Entry point producing RequestBuilders bound to shared defaults.

    Example:
        client = Client("https://api.example.com", default_headers={"Accept": "application/json"})
        response = client.get("/users").query_param("page", 2).execute()
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        default_headers: Optional[HeaderItems] = None,
        connect_timeout: Optional[float] = 10.0,
        read_timeout: Optional[float] = 30.0,
        follow_redirects: Optional[bool] = None,
        max_redirects: Optional[int] = None,
        default_codec: Optional[BodyCodec] = None,
        redirect_policy: Optional[RedirectPolicy] = None,
        decorators: Tuple[Decorator, ...] = (),
        backend: Optional[NetworkBackend] = None,
    ) -> None:
        policy = redirect_policy or RedirectPolicy()
        if follow_redirects is not None:
            policy = policy.with_follow(follow_redirects)
        if max_redirects is not None:
            policy = policy.with_max_redirects(max_redirects)
        self._settings = ClientSettings(
            base_url=base_url,
            default_headers=HeaderMap(default_headers),
            timeouts=Timeouts(connect=connect_timeout, read=read_timeout),
            redirect_policy=policy,
            default_codec=default_codec or RawCodec(),
            decorators=decorators,
            backend=backend or SocketNetworkBackend(),
        )
        logger.debug(f"Client created for base URL {self._settings.base_url!r}")

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "Client":
        client = cls.__new__(cls)
        client._settings = settings
        return client

    @classmethod
    def builder(cls) -> "ClientBuilder":
        return ClientBuilder()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    def with_settings(self, **changes: Any) -> "Client":
        """Return a new client with some settings replaced."""
        return Client.from_settings(replace(self._settings, **changes))

    def request(self, method: Optional[Union[str, Method]] = None, path: str = "") -> RequestBuilder:
        """Start a builder seeded with this client's defaults."""
        return RequestBuilder(self._settings, method=method, path=path)

    def get(self, path: str = "") -> RequestBuilder:
        return self.request(Method.GET, path)

    def head(self, path: str = "") -> RequestBuilder:
        return self.request(Method.HEAD, path)

    def options(self, path: str = "") -> RequestBuilder:
        return self.request(Method.OPTIONS, path)

    def delete(self, path: str = "") -> RequestBuilder:
        return self.request(Method.DELETE, path)

    def post(self, path: str = "", payload: Any = None, codec: Optional[BodyCodec] = None) -> RequestBuilder:
        return self._with_payload(Method.POST, path, payload, codec)

    def put(self, path: str = "", payload: Any = None, codec: Optional[BodyCodec] = None) -> RequestBuilder:
        return self._with_payload(Method.PUT, path, payload, codec)

    def patch(self, path: str = "", payload: Any = None, codec: Optional[BodyCodec] = None) -> RequestBuilder:
        return self._with_payload(Method.PATCH, path, payload, codec)

    def _with_payload(
        self,
        method: Method,
        path: str,
        payload: Any,
        codec: Optional[BodyCodec],
    ) -> RequestBuilder:
        builder = self.request(method, path)
        if payload is not None:
            builder.body(payload, codec)
        return builder

    def fetch(self, method: Union[str, Method], path: str = "") -> Response:
        """Build and execute a bodyless request in one call."""
        return cast(Response, self.request(method, path).execute())

    def __repr__(self) -> str:
        return f"Client(base_url={self._settings.base_url!r})"


class ClientBuilder:
    """Fluent construction of a Client."""

    def __init__(self) -> None:
        self._base_url = ""
        self._headers = HeaderMap()
        self._timeouts = Timeouts()
        self._policy = RedirectPolicy()
        self._codec: BodyCodec = RawCodec()
        self._decorators: Tuple[Decorator, ...] = ()
        self._backend: Optional[NetworkBackend] = None

    def with_base_url(self, base_url: str) -> "ClientBuilder":
        self._base_url = base_url
        return self

    def with_header(self, name: str, value: str) -> "ClientBuilder":
        self._headers.add(name, value)
        return self

    def with_codec(self, codec: BodyCodec) -> "ClientBuilder":
        self._codec = codec
        return self

    def with_decorator(self, decorator: Decorator) -> "ClientBuilder":
        self._decorators += (decorator,)
        return self

    def with_timeouts(
        self,
        connect: Optional[float] = 10.0,
        read: Optional[float] = 30.0,
    ) -> "ClientBuilder":
        self._timeouts = Timeouts(connect=connect, read=read)
        return self

    def with_redirects(self, follow: bool = True, max_redirects: int = 5) -> "ClientBuilder":
        self._policy = self._policy.with_follow(follow).with_max_redirects(max_redirects)
        return self

    def with_redirect_policy(self, policy: RedirectPolicy) -> "ClientBuilder":
        self._policy = policy
        return self

    def with_backend(self, backend: NetworkBackend) -> "ClientBuilder":
        self._backend = backend
        return self

    def build(self) -> Client:
        return Client.from_settings(
            ClientSettings(
                base_url=self._base_url,
                default_headers=self._headers,
                timeouts=self._timeouts,
                redirect_policy=self._policy,
                default_codec=self._codec,
                decorators=self._decorators,
                backend=self._backend or SocketNetworkBackend(),
            )
        )
