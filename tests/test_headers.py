"""
Unit tests for HeaderMap.
"""

import pytest

from minihttp.headers import HeaderMap


class TestHeaderMap:
    """Test HeaderMap operations."""

    def test_lookup_is_case_insensitive(self) -> None:
        headers = HeaderMap()
        headers.set("Content-Type", "application/json")
        assert headers.get("content-type") == "application/json"
        assert headers.get("CONTENT-TYPE") == "application/json"
        assert "content-TYPE" in headers

    def test_original_case_is_preserved(self) -> None:
        headers = HeaderMap([("X-Custom-Header", "1")])
        assert headers.items() == [("X-Custom-Header", "1")]

    def test_get_missing_returns_default(self) -> None:
        headers = HeaderMap()
        assert headers.get("missing") is None
        assert headers.get("missing", "fallback") == "fallback"
        assert list(headers.get_all("missing")) == []

    def test_add_appends_in_order(self) -> None:
        headers = HeaderMap()
        headers.add("Accept", "text/html")
        headers.add("accept", "application/json")
        assert headers.get("Accept") == "text/html"
        assert list(headers.get_all("ACCEPT")) == ["text/html", "application/json"]
        assert len(headers) == 2

    def test_set_replaces_all_values(self) -> None:
        headers = HeaderMap([("A", "1"), ("B", "2"), ("a", "3")])
        headers.set("A", "new")
        assert list(headers.get_all("a")) == ["new"]
        assert headers.items() == [("A", "new"), ("B", "2")]

    def test_set_new_name_appends(self) -> None:
        headers = HeaderMap([("A", "1")])
        headers.set("B", "2")
        assert headers.items() == [("A", "1"), ("B", "2")]

    def test_remove_removes_every_value(self) -> None:
        headers = HeaderMap([("A", "1"), ("B", "2"), ("a", "3")])
        headers.remove("A")
        assert "a" not in headers
        assert headers.items() == [("B", "2")]
        headers.remove("does-not-exist")
        assert len(headers) == 1

    def test_get_all_is_restartable_and_lazy(self) -> None:
        headers = HeaderMap([("Via", "a")])
        values = headers.get_all("via")
        assert list(values) == ["a"]
        assert list(values) == ["a"]
        headers.add("Via", "b")
        assert list(values) == ["a", "b"]
        assert len(values) == 2
        assert values[1] == "b"

    def test_iteration_in_insertion_order(self, sample_headers) -> None:
        headers = HeaderMap(sample_headers)
        assert list(headers) == sample_headers
        assert headers.names() == [name for name, _ in sample_headers]

    def test_names_are_distinct(self) -> None:
        headers = HeaderMap([("Set-Cookie", "a=1"), ("set-cookie", "b=2"), ("X", "y")])
        assert headers.names() == ["Set-Cookie", "X"]

    def test_from_mapping(self) -> None:
        headers = HeaderMap({"Accept": "*/*", "User-Agent": "test"})
        assert headers.get("user-agent") == "test"

    def test_copy_is_independent(self) -> None:
        original = HeaderMap([("A", "1")])
        copy = original.copy()
        copy.add("B", "2")
        assert "B" not in original
        assert copy == HeaderMap([("a", "1"), ("b", "2")])

    def test_equality_ignores_name_case(self) -> None:
        assert HeaderMap([("Content-Type", "x")]) == HeaderMap([("content-type", "x")])
        assert HeaderMap([("A", "1")]) != HeaderMap([("A", "2")])

    def test_frozen_copy_rejects_mutation(self) -> None:
        frozen = HeaderMap([("A", "1")]).frozen()
        assert frozen.is_frozen
        with pytest.raises(TypeError):
            frozen.add("B", "2")
        with pytest.raises(TypeError):
            frozen.set("A", "2")
        with pytest.raises(TypeError):
            frozen.remove("A")
        assert not frozen.copy().is_frozen

    def test_raw_round_trip(self) -> None:
        headers = HeaderMap.from_raw([(b"Server", b"nginx"), (b"X-Id", b"42")])
        assert headers.get("server") == "nginx"
        assert headers.to_raw() == [(b"Server", b"nginx"), (b"X-Id", b"42")]

    @pytest.mark.parametrize(
        "name, value",
        [("", "x"), ("Bad\r\nName", "x"), ("X-Test", "evil\r\nInjected: 1"), ("Na:me", "x")],
    )
    def test_invalid_headers_rejected(self, name, value) -> None:
        with pytest.raises(ValueError):
            HeaderMap().add(name, value)
