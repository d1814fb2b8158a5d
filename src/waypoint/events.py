"""Router observability events.

A small synchronous listener registry. The router emits:

- ``evaluate``: every route attempt (``RouteEvaluation``)
- ``match``: the winning route (``RouteEvaluation``)
- ``body``: the request body is complete (body value)
- ``error``: the pipeline failed (``DispatchResult``)
- ``end``: the dispatch finished (``DispatchResult``)

Listeners run inline on the event loop. A failing listener is logged
and skipped; it never changes the outcome of a dispatch.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from waypoint.routing.route import RouteEvaluation

logger = logging.getLogger("waypoint.events")

EVENTS = frozenset({"evaluate", "match", "body", "error", "end"})

type Listener = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Summary of one dispatch. Payload of ``end`` and ``error``."""

    error: BaseException | None
    results: tuple[RouteEvaluation, ...] = field(default=())

    @property
    def matched(self) -> RouteEvaluation | None:
        """The winning evaluation, if any."""
        for result in self.results:
            if result.matched:
                return result
        return None


class EventHub:
    """Named listener lists, shared by every dispatch of one router."""

    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {name: [] for name in EVENTS}

    def on(self, event: str, listener: Listener) -> Listener:
        """Subscribe *listener* to *event*. Returns the listener."""
        if event not in self._listeners:
            msg = f"Unknown router event {event!r}; expected one of {sorted(EVENTS)}"
            raise ValueError(msg)
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Unsubscribe *listener*. Unknown listeners are ignored."""
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, payload: Any) -> None:
        for listener in tuple(self._listeners[event]):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener %r for %r event failed", listener, event)
