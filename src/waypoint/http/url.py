"""Parsed request URL: path, query, and fragment.

ASGI servers strip the fragment before the application sees the path,
but some clients and proxies forward it inside ``raw_path``. The router
matches against it first when it is present.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from waypoint.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class URL:
    """The parts of a request URL the pipeline evaluates."""

    path: str
    query: QueryParams
    fragment: str = ""

    @classmethod
    def from_scope(cls, scope: dict[str, Any]) -> "URL":
        """Build a URL from an ASGI HTTP scope."""
        path = scope.get("path") or "/"
        query_string = scope.get("query_string", b"")
        fragment = ""
        raw_path = scope.get("raw_path") or b""
        if b"#" in raw_path:
            parts = urlsplit(raw_path.decode("latin-1"))
            fragment = parts.fragment
            if not query_string and parts.query:
                query_string = parts.query.encode("latin-1")
        if "#" in path:
            path, _, fragment = path.partition("#")
        return cls(path=path, query=QueryParams(query_string), fragment=fragment)
