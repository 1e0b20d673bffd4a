"""
Body codecs for minihttp.

A codec turns a typed payload into bytes plus a content type, and
back. The core only ever talks to the BodyCodec interface; the
concrete codecs here are the baseline set shipped with the library.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from .exceptions import DecodeError, EncodeError

Encoded = Tuple[str, bytes]


@dataclass(frozen=True)
class ContentType:
    """
    Parsed media type with its parameters.

    Media type and parameter names are compared case-insensitively,
    so ``ContentType.parse("Application/JSON")`` equals ``ContentType.JSON``.
    """

    media_type: str
    params: Tuple[Tuple[str, str], ...] = field(default=())

    # Filled in after the class body.
    JSON = None  # type: ContentType
    XML = None  # type: ContentType
    FORM = None  # type: ContentType
    OCTET_STREAM = None  # type: ContentType
    TEXT = None  # type: ContentType

    @classmethod
    def parse(cls, value: Optional[str]) -> "ContentType":
        if not value:
            return cls("application/octet-stream")
        media_type, *rest = value.split(";")
        params = []
        for part in rest:
            if "=" not in part:
                continue
            name, _, param = part.partition("=")
            params.append((name.strip().lower(), param.strip().strip('"')))
        return cls(media_type.strip().lower(), tuple(params))

    @property
    def charset(self) -> Optional[str]:
        return self.param("charset")

    def param(self, name: str) -> Optional[str]:
        for key, value in self.params:
            if key == name.lower():
                return value
        return None

    def with_charset(self, charset: str) -> "ContentType":
        params = tuple(p for p in self.params if p[0] != "charset")
        return ContentType(self.media_type, params + (("charset", charset),))

    def matches(self, other: "ContentType") -> bool:
        """True when both share a media type; ``*`` subtypes match anything."""
        main, _, sub = self.media_type.partition("/")
        other_main, _, other_sub = other.media_type.partition("/")
        if main != other_main:
            return False
        return sub == "*" or other_sub == "*" or sub == other_sub

    def __str__(self) -> str:
        rendered = self.media_type
        for name, value in self.params:
            rendered += f"; {name}={value}"
        return rendered


ContentType.JSON = ContentType("application/json")
ContentType.XML = ContentType("application/xml")
ContentType.FORM = ContentType("application/x-www-form-urlencoded")
ContentType.OCTET_STREAM = ContentType("application/octet-stream")
ContentType.TEXT = ContentType("text/plain")


class BodyCodec(ABC):
    """
    Interface for request/response body codecs.

    ``encode`` must be pure: it runs eagerly when a body is attached
    to a builder, so failures surface before any network I/O.
    """

    content_type: ContentType = ContentType.OCTET_STREAM

    @abstractmethod
    def encode(self, payload: Any) -> Encoded:
        """
        Encode a payload.

        Args:
            payload: The value to encode

        Returns:
            Tuple of (content type string, body bytes)

        Raises:
            EncodeError: If the payload is not supported by this codec
        """
        pass

    @abstractmethod
    def decode(self, content_type: Optional[str], data: bytes, shape: Any = None) -> Any:
        """
        Decode body bytes.

        Args:
            content_type: The declared Content-Type, if any
            data: Raw body bytes
            shape: Optional codec-specific hint for the result type

        Returns:
            The decoded payload

        Raises:
            DecodeError: If the bytes do not match the codec's grammar
        """
        pass


class RawCodec(BodyCodec):
    """Identity codec for byte payloads."""

    def __init__(self, content_type: str = "application/octet-stream") -> None:
        self.content_type = ContentType.parse(content_type)

    def encode(self, payload: Any) -> Encoded:
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise EncodeError(
                f"RawCodec expects bytes, got {type(payload).__name__}"
            )
        return str(self.content_type), bytes(payload)

    def decode(self, content_type: Optional[str], data: bytes, shape: Any = None) -> bytes:
        return bytes(data)


class TextCodec(BodyCodec):
    """Plain text codec honoring the declared charset."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self.content_type = ContentType.TEXT.with_charset(encoding)

    def encode(self, payload: Any) -> Encoded:
        if not isinstance(payload, str):
            raise EncodeError(f"TextCodec expects str, got {type(payload).__name__}")
        return str(self.content_type), payload.encode(self.encoding)

    def decode(self, content_type: Optional[str], data: bytes, shape: Any = None) -> str:
        charset = ContentType.parse(content_type).charset or self.encoding
        try:
            return data.decode(charset)
        except (UnicodeDecodeError, LookupError) as e:
            raise DecodeError(f"body is not valid {charset} text", cause=e) from e


class FormCodec(BodyCodec):
    """
    ``application/x-www-form-urlencoded`` codec.

    Payloads may be a mapping or a sequence of (key, value) pairs;
    repeated keys are preserved in order. Without a ``shape`` a body
    whose keys are all distinct decodes to a dict, so a mapping payload
    round-trips; a body with repeated keys decodes to a list of pairs.
    ``shape=list`` always yields pairs, ``shape=dict`` always yields a
    dict (last value wins).
    """

    content_type = ContentType.FORM

    def encode(self, payload: Any) -> Encoded:
        if isinstance(payload, Mapping):
            pairs = list(payload.items())
        else:
            try:
                pairs = [(key, value) for key, value in payload]
            except (TypeError, ValueError) as e:
                raise EncodeError(
                    "FormCodec expects a mapping or a sequence of pairs", cause=e
                ) from e
        for key, value in pairs:
            if not isinstance(key, str) or not isinstance(value, str):
                raise EncodeError("form keys and values must be str")
        return str(self.content_type), urlencode(pairs).encode("ascii")

    def decode(self, content_type: Optional[str], data: bytes, shape: Any = None) -> Any:
        try:
            text = data.decode("ascii")
            pairs: List[Tuple[str, str]] = parse_qsl(
                text,
                keep_blank_values=True,
                strict_parsing=bool(text),
                errors="strict",
            )
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError("malformed form-encoded body", cause=e) from e
        if shape is list:
            return pairs
        if shape is None and len({key for key, _ in pairs}) < len(pairs):
            return pairs
        result: Dict[str, str] = {}
        for key, value in pairs:
            result[key] = value
        return result


class JsonCodec(BodyCodec):
    """
    JSON codec backed by the standard ``json`` module.

    ``shape`` may be a callable applied to the decoded document, e.g.
    a dataclass constructor or a validation function.
    """

    content_type = ContentType.JSON.with_charset("utf-8")

    def __init__(
        self,
        dumps: Callable[[Any], str] = json.dumps,
        loads: Callable[[str], Any] = json.loads,
    ) -> None:
        self._dumps = dumps
        self._loads = loads

    def encode(self, payload: Any) -> Encoded:
        try:
            text = self._dumps(payload)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"cannot encode {type(payload).__name__} as JSON", cause=e) from e
        return str(self.content_type), text.encode("utf-8")

    def decode(self, content_type: Optional[str], data: bytes, shape: Any = None) -> Any:
        charset = ContentType.parse(content_type).charset or "utf-8"
        try:
            document = self._loads(data.decode(charset))
        except (UnicodeDecodeError, LookupError, ValueError) as e:
            raise DecodeError("malformed JSON body", cause=e) from e
        if shape is None:
            return document
        try:
            return shape(document)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"JSON body does not fit {shape!r}", cause=e) from e
