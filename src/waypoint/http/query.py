"""Query string values checked by route query constraints."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    A repeated key keeps its first value; that is the value a route's
    query constraint is matched against. Blank values are kept, so
    ``?flag`` satisfies a presence-only constraint.
    """

    __slots__ = ("_values",)

    def __init__(self, query_string: bytes | str = b"") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        values: dict[str, str] = {}
        for key, value in parse_qsl(query_string, keep_blank_values=True):
            values.setdefault(key, value)
        object.__setattr__(self, "_values", values)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"QueryParams({self._values!r})"
