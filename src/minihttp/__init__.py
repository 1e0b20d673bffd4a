"""
minihttp - Minimal synchronous HTTP/1.1 client

Build a request through a Client-bound fluent builder, execute it over
a connection the library opens and closes for you, and get back an
immutable Response.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .headers import HeaderMap
from .codecs import BodyCodec, ContentType, FormCodec, JsonCodec, RawCodec, TextCodec
from .http_primitives import Method, Request, RequestBody, Response, Timeouts
from .builder import RequestBuilder
from .executor import Executor, RedirectPolicy
from .client import Client, ClientBuilder, ClientSettings
from .streams import ResponseStream
from .exceptions import (
    HTTPClientError,
    BuildError,
    ConnectError,
    TimeoutError,
    ReadError,
    CodecError,
    DecodeError,
    EncodeError,
    RedirectLoopError,
    StreamError,
    HTTPStatusError,
)

__all__ = [
    "HeaderMap",
    "BodyCodec",
    "ContentType",
    "FormCodec",
    "JsonCodec",
    "RawCodec",
    "TextCodec",
    "Method",
    "Request",
    "RequestBody",
    "Response",
    "Timeouts",
    "RequestBuilder",
    "Executor",
    "RedirectPolicy",
    "Client",
    "ClientBuilder",
    "ClientSettings",
    "ResponseStream",
    "HTTPClientError",
    "BuildError",
    "ConnectError",
    "TimeoutError",
    "ReadError",
    "CodecError",
    "DecodeError",
    "EncodeError",
    "RedirectLoopError",
    "StreamError",
    "HTTPStatusError",
]
