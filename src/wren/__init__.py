"""Wren — a small HTTP toolkit with a typed client.

The server side composes every request's context from app-wide state,
derive and resolve functions, and an optional input schema, then runs
the route handler. The client side mirrors the route tree as attribute
chains.

Basic usage::

    from wren import App

    app = App(matcher=my_matcher)
    app.state("counter", 0)

    @app.get("/count")
    def count(ctx):
        ctx.store["counter"] += 1
        return {"count": ctx.store["counter"]}

Client::

    from wren.client import client

    api = client("localhost:8000")
    data, error = await api.count.get()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ClientConfig",
    "ClientError",
    "ConfigurationError",
    "Context",
    "HTTPError",
    "InputSchema",
    "MethodNotAllowed",
    "NotFound",
    "Redirect",
    "Request",
    "Response",
    "Result",
    "RouteConflictError",
    "ValidationFailed",
    "WrenError",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "App":
        from wren.app import App

        return App

    if name == "AppConfig":
        from wren.config import AppConfig

        return AppConfig

    if name == "Request":
        from wren.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from wren.http import response as _resp

        return getattr(_resp, name)

    if name in ("Context", "get_context"):
        from wren import context as _ctx

        return getattr(_ctx, name)

    if name == "InputSchema":
        from wren.schema import InputSchema

        return InputSchema

    if name in ("ClientConfig", "Result"):
        from wren.client import ClientConfig, Result

        return ClientConfig if name == "ClientConfig" else Result

    if name in (
        "WrenError",
        "ClientError",
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "RouteConflictError",
        "ValidationFailed",
    ):
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
