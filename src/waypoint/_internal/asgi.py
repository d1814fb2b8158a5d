"""Raw ASGI callable types.

The router speaks plain ASGI 3.0 so any compliant server can host it.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]


def encode_headers(headers: dict[str, str] | tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    """Lower-case and latin-1 encode header pairs for ``http.response.start``."""
    items = headers.items() if isinstance(headers, dict) else headers
    return [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in items]
