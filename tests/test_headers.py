"""Tests for waypoint.http.headers: immutable, case-insensitive Headers."""

import pytest

from waypoint.http.headers import Headers


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_getitem(self) -> None:
        h = _h(("Content-Type", "application/json"))
        assert h["Content-Type"] == "application/json"

    def test_case_insensitive(self) -> None:
        h = _h(("Content-Type", "application/json"))
        assert h["content-type"] == "application/json"
        assert h["CONTENT-TYPE"] == "application/json"

    def test_missing_key_raises(self) -> None:
        h = _h(("Accept", "*/*"))
        with pytest.raises(KeyError):
            h["X-Missing"]

    def test_contains(self) -> None:
        h = _h(("Accept", "*/*"))
        assert "accept" in h
        assert "x-missing" not in h

    def test_contains_rejects_non_str(self) -> None:
        h = _h(("Accept", "*/*"))
        assert 42 not in h  # type: ignore[operator]

    def test_len_deduplicates(self) -> None:
        h = _h(("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), ("Accept", "*/*"))
        assert len(h) == 2

    def test_iter_yields_unique_lowercase_keys(self) -> None:
        h = _h(("Accept", "*/*"), ("Content-Type", "text/csv"), ("Accept", "text/xml"))
        assert list(h) == ["accept", "content-type"]

    def test_get_default(self) -> None:
        h = _h()
        assert h.get("accept") is None
        assert h.get("accept", "*/*") == "*/*"


    def test_repeated_header_keeps_first_value(self) -> None:
        h = _h(("Content-Type", "application/json"), ("content-type", "text/plain"))
        assert h["content-type"] == "application/json"
