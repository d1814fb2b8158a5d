"""Per-route response deadline.

Armed once a route matches. If the response has not finished when the
deadline passes, the guard writes a fixed 500 and ends the response. The
handler is not cancelled; anything it writes afterwards is dropped by the
finished ``ResponseWriter``.
"""

import asyncio
import logging

from waypoint.config import RouterConfig
from waypoint.context import RequestContext
from waypoint.errors import RequestTimedOut

logger = logging.getLogger("waypoint.server")


class TimeoutGuard:
    """One-shot timer bound to one dispatch's response."""

    __slots__ = ("_config", "_context", "_handle", "_task", "fired", "timeout")

    def __init__(self, context: RequestContext, timeout: float, config: RouterConfig) -> None:
        self._context = context
        self._config = config
        self.timeout = timeout
        self.fired = False
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

    def arm(self) -> None:
        """Start the timer; finishing the response cancels it."""
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout, self._expire)
        self._context.response.on_finish(self.cancel)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def wait(self) -> None:
        """Wait for a forced response that is already being written."""
        if self._task is not None:
            await self._task

    def _expire(self) -> None:
        self._handle = None
        if self.fired or self._context.response.finished:
            return
        self.fired = True
        self._task = asyncio.get_running_loop().create_task(self._force_response())

    async def _force_response(self) -> None:
        response = self._context.response
        logger.warning("%s", RequestTimedOut(self._context.method, self._context.path, self.timeout))
        try:
            if not response.headers_sent:
                await response.write_head(
                    self._config.timeout_status,
                    {"content-type": self._config.timeout_content_type},
                )
            await response.end(self._config.timeout_text)
        except Exception:
            logger.exception("Could not send timeout response for %s %s", self._context.method, self._context.path)
