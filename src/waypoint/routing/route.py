"""RouteDefinition and RouteEvaluation frozen dataclasses."""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from waypoint.routing.params import ParamSpec

if TYPE_CHECKING:
    from waypoint.context import RequestContext


@dataclass(frozen=True, slots=True)
class RouteDefinition:
    """A compiled route. Created at registration, immutable thereafter.

    ``timeout`` is in seconds; ``0`` means no timeout guard.
    """

    method: str
    template: str
    matcher: re.Pattern[str]
    handler: Callable[..., Any]
    param_map: tuple[ParamSpec | None, ...] = ()
    query: Mapping[str, re.Pattern[str]] = field(default_factory=dict)
    timeout: float = 0

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", None) or repr(self.handler)

    def __repr__(self) -> str:
        return f"RouteDefinition({self.method} {self.template!r} -> {self.handler_name})"


@dataclass(frozen=True, slots=True)
class RouteEvaluation:
    """Outcome of evaluating one route against one request.

    Payload of the ``evaluate`` and ``match`` events.
    """

    route: RouteDefinition
    context: "RequestContext"
    matched: bool
