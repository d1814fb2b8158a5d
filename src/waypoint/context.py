"""Per-dispatch request state.

A ``RequestContext`` is created fresh for every dispatch and handed to
exactly one handler. Nothing in it outlives the dispatch, so no state
leaks from one request to the next.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from waypoint.http.query import QueryParams
from waypoint.http.request import Request
from waypoint.http.response import ResponseWriter
from waypoint.http.url import URL

if TYPE_CHECKING:
    from waypoint.routing.route import RouteDefinition


@dataclass(slots=True)
class RequestContext:
    """Mutable state of one dispatch.

    ``query`` and ``params`` stay empty until a route matches. ``body``
    holds the assembled payload once ``parsed`` is true: ``bytes`` for raw
    bodies, a field ``dict`` for structured ones, or a ``BodyDecodeError``.
    """

    request: Request
    response: ResponseWriter
    url: URL
    query: QueryParams = field(default_factory=QueryParams)
    params: dict[str, str] = field(default_factory=dict)
    body: Any = None
    matched: bool = False
    parsed: bool = False
    route: "RouteDefinition | None" = None

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.url.path
