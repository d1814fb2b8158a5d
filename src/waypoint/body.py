"""Request body aggregation and its one-shot completion signal.

The aggregator drains the ASGI receive channel while the pipeline runs.
Handlers of body methods wait on the signal, so they always observe the
complete body exactly once.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any

from waypoint.config import RouterConfig
from waypoint.context import RequestContext
from waypoint.errors import BodyDecodeError, IncompleteBodyError
from waypoint.http.forms import create_decoder

logger = logging.getLogger("waypoint.body")


class BodySignal:
    """Fire-at-most-once completion signal, backed by an ``asyncio.Future``."""

    __slots__ = ("_future",)

    def __init__(self) -> None:
        self._future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

    @property
    def fired(self) -> bool:
        return self._future.done()

    def fire(self, value: Any) -> bool:
        """Resolve the signal with *value*. Returns False if it already fired."""
        if self._future.done():
            return False
        self._future.set_result(value)
        return True

    async def wait(self) -> Any:
        """Wait for the signal and return the value it fired with."""
        return await asyncio.shield(self._future)


def is_structured(config: RouterConfig, method: str, content_type: str | None) -> bool:
    """Whether the body is decoded into fields rather than kept as bytes."""
    if method.upper() not in config.body_methods or not content_type:
        return False
    return re.search(config.structured_types, content_type, re.IGNORECASE) is not None


class BodyAggregator:
    """Collect one request's body into ``context.body``.

    The branch (structured or raw) is chosen once, on construction.
    ``on_complete`` runs when the signal fires, never more than once.
    """

    __slots__ = ("_on_complete", "context", "signal", "structured")

    def __init__(
        self,
        context: RequestContext,
        config: RouterConfig,
        *,
        on_complete: Callable[[Any], None] | None = None,
    ) -> None:
        self.context = context
        self.signal = BodySignal()
        self.structured = is_structured(config, context.method, context.request.content_type)
        self._on_complete = on_complete

    async def run(self) -> None:
        """Read the body to completion and fire the signal.

        A read that fails or ends early stores an ``IncompleteBodyError``
        and still fires, so a waiting handler can answer it. Cancellation
        fires nothing: a body nobody finished reading is never announced.
        """
        try:
            if self.structured:
                await self._collect_fields()
            else:
                await self._collect_raw()
        except Exception as exc:
            logger.warning("Reading the body of %s %s failed: %s", self.context.method, self.context.path, exc)
            self.context.body = IncompleteBodyError(self.context.request.content_type or "", exc)
        self._complete(self.context.body)

    def _complete(self, value: Any) -> None:
        if self.signal.fire(value):
            self.context.parsed = True
            if self._on_complete is not None:
                self._on_complete(value)

    async def _collect_fields(self) -> None:
        content_type = self.context.request.content_type or ""
        fields: dict[str, Any] = {}
        self.context.body = fields

        def on_field(name: str, value: Any) -> None:
            fields[name] = value

        try:
            decoder = create_decoder(content_type, on_field)
            async for chunk in self.context.request.stream():
                decoder.feed(chunk)
            decoder.finish()
        except ValueError as exc:
            logger.debug("Body decode failed for %s %s: %s", self.context.method, self.context.path, exc)
            self.context.body = BodyDecodeError(content_type, exc)

    async def _collect_raw(self) -> None:
        chunks: list[bytes] = []
        async for chunk in self.context.request.stream():
            chunks.append(chunk)
        self.context.body = b"".join(chunks)
