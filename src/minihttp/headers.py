"""
Header storage for minihttp.

HeaderMap keeps headers as an ordered list of (name, value) pairs.
Names keep the case they were inserted with; lookups ignore case.
"""

from typing import (
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

HeaderItems = Union[
    "HeaderMap",
    Mapping[str, str],
    Iterable[Tuple[str, str]],
]
RawHeaders = List[Tuple[bytes, bytes]]


class HeaderValues(Sequence[str]):
    """
    Lazy view over the values of one header name.

    The view re-scans the owning map on every access, so it can be
    iterated any number of times and always reflects the current state.
    """

    def __init__(self, headers: "HeaderMap", name: str) -> None:
        self._headers = headers
        self._key = name.lower()

    def __iter__(self) -> Iterator[str]:
        for name, value in self._headers._items:
            if name.lower() == self._key:
                yield value

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __getitem__(self, index):  # type: ignore[override]
        return list(self)[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (HeaderValues, list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"HeaderValues({list(self)!r})"


class HeaderMap:
    """Ordered, case-insensitive multimap of header names to values."""

    def __init__(self, items: Optional[HeaderItems] = None) -> None:
        self._items: List[Tuple[str, str]] = []
        self._frozen = False
        if items is None:
            return
        if isinstance(items, HeaderMap):
            self._items = list(items._items)
        elif isinstance(items, Mapping):
            for name, value in items.items():
                self.add(name, value)
        else:
            for name, value in items:
                self.add(name, value)

    @classmethod
    def from_raw(cls, raw: Iterable[Tuple[bytes, bytes]]) -> "HeaderMap":
        """Build a map from wire-level byte pairs."""
        headers = cls()
        for name, value in raw:
            headers.add(name.decode("latin-1"), value.decode("latin-1"))
        return headers

    def to_raw(self) -> RawHeaders:
        """Return the headers as byte pairs ready for the wire."""
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self._items
        ]

    def set(self, name: str, value: str) -> None:
        """Replace every value of ``name`` with ``value``."""
        self._check_mutable()
        _validate(name, value)
        key = name.lower()
        replaced = False
        items: List[Tuple[str, str]] = []
        for existing, current in self._items:
            if existing.lower() != key:
                items.append((existing, current))
            elif not replaced:
                items.append((name, value))
                replaced = True
        if not replaced:
            items.append((name, value))
        self._items = items

    def add(self, name: str, value: str) -> None:
        """Append a value for ``name``, keeping any existing ones."""
        self._check_mutable()
        _validate(name, value)
        self._items.append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value of ``name`` or ``default``."""
        key = name.lower()
        for existing, value in self._items:
            if existing.lower() == key:
                return value
        return default

    def get_all(self, name: str) -> HeaderValues:
        return HeaderValues(self, name)

    def remove(self, name: str) -> None:
        self._check_mutable()
        key = name.lower()
        self._items = [item for item in self._items if item[0].lower() != key]

    def names(self) -> List[str]:
        """Distinct header names in first-seen order."""
        seen = set()
        names = []
        for name, _ in self._items:
            if name.lower() not in seen:
                seen.add(name.lower())
                names.append(name)
        return names

    def items(self) -> List[Tuple[str, str]]:
        return list(self._items)

    def copy(self) -> "HeaderMap":
        return HeaderMap(self)

    def frozen(self) -> "HeaderMap":
        """Return a read-only copy of this map."""
        headers = HeaderMap(self)
        headers._frozen = True
        return headers

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TypeError("HeaderMap is read-only")

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._items))

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get(name) is not None

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMap):
            return NotImplemented
        return [(n.lower(), v) for n, v in self._items] == [
            (n.lower(), v) for n, v in other._items
        ]

    def __repr__(self) -> str:
        return f"HeaderMap({self._items!r})"


def _validate(name: str, value: str) -> None:
    if not isinstance(name, str) or not isinstance(value, str):
        raise ValueError("header names and values must be str")
    if not name:
        raise ValueError("header name must not be empty")
    if any(c in name for c in "\r\n:") or any(c in value for c in "\r\n"):
        raise ValueError(f"invalid characters in header {name!r}")
