"""Invoke helpers — call sync or async callables uniformly.

Handlers, derive/resolve functions, header providers, and client hooks
can all be ``def`` or ``async def``. This module provides a single helper
so the sync/async check lives in exactly one place.

Usage::

    from wren._internal.invoke import invoke

    result = await invoke(handler, ctx)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately
        @app.derive
        def agent(ctx):
            return {"agent": ctx.headers.get("user-agent")}

        # async: returns a coroutine
        @app.resolve
        async def user(ctx):
            return {"user": await lookup(ctx.cookie.get("session"))}
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
