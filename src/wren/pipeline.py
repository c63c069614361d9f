"""Context pipeline — builds a request's context and runs its handler.

Stages run strictly in order for every request; each may await before
the next begins:

1. seed      — raw request parts plus the live ``store`` (``Context.seed``)
2. decorate  — setup-time decorator values
3. derive    — each derive function, in registration order
4. validate  — the route schema, if any, replaces raw parts with parsed ones
5. resolve   — each resolve function, in registration order
6. invoke    — the route handler
7. serialize — the handler's return value becomes the response

Derive and resolve functions receive the context built so far and may
return a mapping; its keys are merged on immediately, so later functions
see them and win on collision. Any other return value is ignored.

A body that cannot be decoded is a 400. Nothing else here catches
exceptions: a failing stage propagates to the ASGI bridge, which turns it
into an error response.
"""

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from wren._internal.invoke import invoke
from wren._internal.types import ContextFn, Endpoint, Handler
from wren.context import Context, context_var
from wren.errors import HTTPError
from wren.http.request import Request
from wren.http.response import Redirect, Response
from wren.schema import InputSchema, apply_schema


@dataclass(slots=True)
class Singleton:
    """Per-app state every request's context is composed from.

    ``store`` keeps its identity for the app's lifetime and is the only
    part mutated while serving. It is shared by concurrent requests with
    no locking: handlers that need exclusive access bring their own
    (an ``asyncio.Lock`` kept in the store works). ``decorator``,
    ``derive`` and ``resolve`` only change during setup.
    """

    store: dict[str, Any] = field(default_factory=dict)
    decorator: dict[str, Any] = field(default_factory=dict)
    derive: list[ContextFn] = field(default_factory=list)
    resolve: list[ContextFn] = field(default_factory=list)

    def mount(self, other: "Singleton") -> None:
        """Fold *other* into this singleton, in place.

        Store and decorator keys are unioned with this singleton's values
        winning on collision. *other*'s derive and resolve functions run
        after this singleton's, so they see the host's derived values.
        """
        for key, value in other.store.items():
            self.store.setdefault(key, value)
        for key, value in other.decorator.items():
            self.decorator.setdefault(key, value)
        self.derive.extend(other.derive)
        self.resolve.extend(other.resolve)


async def _contribute(fn: ContextFn, ctx: Context) -> Context:
    produced = await invoke(fn, ctx)
    if isinstance(produced, Mapping):
        return ctx.merge(produced)
    return ctx


async def compose_context(
    ctx: Context,
    singleton: Singleton,
    schema: InputSchema | None = None,
) -> Context:
    """Run the decorate, derive, validate and resolve stages over *ctx*."""
    if singleton.decorator:
        ctx = ctx.merge(singleton.decorator)

    for derive in tuple(singleton.derive):
        ctx = await _contribute(derive, ctx)

    if schema is not None:
        ctx = ctx.merge(apply_schema(schema, ctx))

    for resolve in tuple(singleton.resolve):
        ctx = await _contribute(resolve, ctx)

    return ctx


def serialize(result: Any, ctx: Context) -> None:
    """Write a handler's return value to ``ctx.res``.

    - ``None``              -> nothing; the handler wrote the response itself
    - ``Response``          -> written as is
    - ``Redirect``          -> Location response
    - mapping/list/tuple    -> JSON
    - dataclass instance    -> JSON
    - ``bytes``             -> application/octet-stream
    - anything else         -> ``str(value)`` as text/plain
    """
    match result:
        case None:
            return
        case Response():
            ctx.res.write(result)
        case Redirect():
            ctx.res.write(result.to_response())
        case Mapping() | list() | tuple():
            ctx.res.json(result)
        case bytes():
            ctx.res.send(result, content_type="application/octet-stream")
        case _ if dataclasses.is_dataclass(result) and not isinstance(result, type):
            ctx.res.json(result)
        case _:
            ctx.res.send(str(result))


async def run_pipeline(
    ctx: Context,
    handler: Handler,
    singleton: Singleton,
    schema: InputSchema | None = None,
) -> Context:
    """Compose *ctx*, call *handler* with it, and serialize the result.

    Returns the final context; ``ctx.response()`` is what to send.
    """
    ctx = await compose_context(ctx, singleton, schema)

    token = context_var.set(ctx)
    try:
        result = await invoke(handler, ctx)
    finally:
        context_var.reset(token)

    serialize(result, ctx)
    return ctx


def wrap_handler(
    handler: Handler,
    singleton: Singleton,
    *,
    route: str,
    schema: InputSchema | None = None,
) -> Endpoint:
    """Wrap a route handler so it runs behind the context pipeline.

    The returned endpoint is what the transport calls with the request
    and the matcher's path parameters. It reads *singleton* at call time,
    so setup done after registration still applies.
    """

    async def endpoint(request: Request, path_params: dict[str, str]) -> Response:
        request = request.with_path_params(path_params)
        try:
            body = await request.decoded_body()
        except ValueError as exc:
            raise HTTPError(status=400, detail=f"Malformed request body: {exc}") from exc
        ctx = Context.seed(request, store=singleton.store, route=route, body=body)
        ctx = await run_pipeline(ctx, handler, singleton, schema)
        return ctx.response()

    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    endpoint.__wrapped__ = handler  # type: ignore[attr-defined]
    return endpoint
