"""Immutable HTTP request.

Frozen metadata plus the ASGI receive channel. The body is not read
here: the body aggregator drains ``stream()`` once per dispatch and
stores the result on the request context.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Any

from waypoint._internal.asgi import Receive
from waypoint.http.headers import Headers
from waypoint.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request."""

    method: str
    path: str
    headers: Headers
    query: QueryParams
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks.

        Stops at the last ``http.request`` message.

        Raises:
            ConnectionError: If the client disconnects before that message.
        """
        while True:
            message = await self._receive()
            if message.get("type") == "http.disconnect":
                msg = "Client disconnected before the request body was complete"
                raise ConnectionError(msg)
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope.get("path") or "/",
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )
