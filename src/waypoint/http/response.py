"""HTTP responses: an immutable value type and a stream-style writer.

Handlers either return a ``Response`` (sent on their behalf) or write
through ``context.response``, a ``ResponseWriter`` bound to the ASGI
``send`` channel. The writer is the single point that decides whether
bytes still reach the client, which lets the timeout guard and a slow
handler race safely.
"""

from __future__ import annotations

import asyncio
import json as json_module
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from waypoint._internal.asgi import Send, encode_headers

logger = logging.getLogger("waypoint.server")


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set status
    and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    @classmethod
    def json(cls, data: Any, status: int = 200) -> Response:
        """A JSON response."""
        return cls(
            body=json_module.dumps(data, default=str),
            status=status,
            content_type="application/json",
        )

    @property
    def body_bytes(self) -> bytes:
        """The body encoded as bytes."""
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")

    @property
    def text(self) -> str:
        """The body decoded as text."""
        if isinstance(self.body, str):
            return self.body
        return self.body.decode("utf-8")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    return not (100 <= status < 200 or status in {204, 304})


def _encode_chunk(chunk: str | bytes) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else chunk


class ResponseWriter:
    """Write a response through ASGI ``send`` in start/body order.

    State flips before each ``await`` so concurrent writers (a handler and
    the timeout guard) always observe a consistent ``headers_sent`` and
    ``finished``. Once finished, every further write is dropped.
    """

    __slots__ = ("_finish_callbacks", "_finished", "_headers_sent", "_send", "_waiter", "headers", "status")

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status = 200
        self.headers: dict[str, str] = {}
        self._headers_sent = False
        self._finished = False
        self._finish_callbacks: list[Callable[[], Any]] = []
        self._waiter: asyncio.Future[None] | None = None

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    @property
    def finished(self) -> bool:
        return self._finished

    def set_header(self, name: str, value: str) -> None:
        """Set a header for the upcoming ``http.response.start``."""
        self.headers[name.lower()] = value

    def on_finish(self, callback: Callable[[], Any]) -> None:
        """Run *callback* once the response has ended (immediately if it has)."""
        if self._finished:
            callback()
        else:
            self._finish_callbacks.append(callback)

    async def wait_finished(self) -> None:
        """Block until the response has ended."""
        if self._finished:
            return
        if self._waiter is None:
            self._waiter = asyncio.get_running_loop().create_future()
        await asyncio.shield(self._waiter)

    async def write_head(self, status: int | None = None, headers: Mapping[str, str] | None = None) -> None:
        """Send status and headers. Ignored once headers went out."""
        if self._headers_sent or self._finished:
            logger.debug("Ignoring write_head(%s) on a response already started", status)
            return
        if status is not None:
            self.status = status
        if headers:
            for name, value in headers.items():
                self.set_header(name, value)
        self._headers_sent = True
        await self._send(
            {
                "type": "http.response.start",
                "status": self.status,
                "headers": encode_headers(self.headers),
            }
        )

    async def write(self, chunk: str | bytes) -> None:
        """Send a body chunk, starting the response if needed."""
        if self._finished:
            logger.debug("Dropping %d byte write on a finished response", len(chunk))
            return
        if not self._headers_sent:
            await self.write_head()
        if self._finished:
            return
        await self._send({"type": "http.response.body", "body": _encode_chunk(chunk), "more_body": True})

    async def end(self, chunk: str | bytes = b"") -> None:
        """Send the final body chunk and close the response."""
        if self._finished:
            logger.debug("Ignoring end() on a finished response")
            return
        if not self._headers_sent:
            await self.write_head()
        if self._finished:
            return
        self._finished = True
        try:
            await self._send({"type": "http.response.body", "body": _encode_chunk(chunk), "more_body": False})
        finally:
            self._mark_finished()

    async def send_response(self, response: Response) -> bool:
        """Send a complete ``Response``. Returns False if already finished."""
        if self._finished:
            return False
        body = response.body_bytes if _body_allowed(response.status) else b""
        if not self._headers_sent:
            headers = {"content-type": response.content_type}
            headers.update((name.lower(), value) for name, value in response.headers)
            headers["content-length"] = str(len(body))
            await self.write_head(response.status, headers)
        await self.end(body)
        return True

    def _mark_finished(self) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)
        callbacks, self._finish_callbacks = self._finish_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Response finish callback failed")
