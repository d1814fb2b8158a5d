"""Tests for waypoint.http.query: immutable QueryParams."""

import pytest

from waypoint.http.query import QueryParams


class TestQueryParams:
    def test_getitem(self) -> None:
        q = QueryParams(b"q=hello&page=2")
        assert q["q"] == "hello"
        assert q["page"] == "2"

    def test_missing_key_raises(self) -> None:
        q = QueryParams(b"q=hello")
        with pytest.raises(KeyError):
            q["missing"]

    def test_accepts_str(self) -> None:
        q = QueryParams("sort=name")
        assert q["sort"] == "name"

    def test_first_value_wins(self) -> None:
        q = QueryParams(b"tag=python&tag=rust")
        assert q["tag"] == "python"

    def test_blank_values_kept(self) -> None:
        q = QueryParams(b"flag=&q=x")
        assert "flag" in q
        assert q["flag"] == ""

    def test_percent_decoding(self) -> None:
        q = QueryParams(b"name=Ada%20Lovelace&city=S%C3%A3o+Paulo")
        assert q["name"] == "Ada Lovelace"
        assert q["city"] == "São Paulo"

    def test_get_default(self) -> None:
        q = QueryParams(b"")
        assert q.get("missing") is None
        assert q.get("missing", "x") == "x"
        assert len(q) == 0

    def test_iter(self) -> None:
        assert set(QueryParams(b"a=1&b=2")) == {"a", "b"}

    def test_repr(self) -> None:
        assert repr(QueryParams(b"a=1")) == "QueryParams({'a': '1'})"
