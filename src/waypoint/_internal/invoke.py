"""Invoke helper: call sync or async handlers uniformly.

Route handlers can be ``def`` or ``async def``. The pipeline calls them
through this single helper so the sync/async check lives in one place.
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        def show(ctx):
            return Response(ctx.params["id"])

        async def create(ctx):
            await save(ctx.body)
            await ctx.response.end(b"created")
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
