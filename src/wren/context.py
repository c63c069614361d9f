"""Per-request handler context.

A ``Context`` is what every derive function, resolve function, and route
handler receives. It is an immutable snapshot: the pipeline layers each
stage's output on top with ``merge()``, which returns a new snapshot and
leaves the previous one untouched. Two objects are shared by every
snapshot of one request and are meant to be mutated:

- ``ctx.set`` — status, headers, and redirect to apply to the response
- ``ctx.res`` — a writer a handler can use to produce the response itself

``ctx.store`` is the app's live store, shared by *all* requests.

Thread safety:
    ``context_var`` is task-local under asyncio, so the current context
    never leaks between concurrent requests.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from wren.http.request import Request
from wren.http.response import TEXT_CONTENT_TYPE, Redirect, Response, json_response


@dataclass(slots=True)
class ResponseSet:
    """Response adjustments collected while a request is handled.

    Usage::

        @app.get("/teapot")
        def teapot(ctx):
            ctx.set.status = 418
            ctx.set.headers["x-brew"] = "earl grey"
            return "short and stout"
    """

    headers: dict[str, Any] = field(default_factory=dict)
    status: int | None = None
    redirect: str | None = None

    def apply(self, response: Response) -> Response:
        """Return *response* with these adjustments layered on.

        A redirect replaces the body with a ``Location`` response; its
        status is ``status`` when one was set, 302 otherwise. A
        ``content-type`` entry in ``headers`` replaces the response's
        content type.
        """
        if self.redirect is not None:
            response = Redirect(self.redirect, status=self.status or 302).to_response()
        elif self.status is not None:
            response = response.with_status(self.status)
        headers = dict(self.headers)
        for name in [name for name in headers if name.lower() == "content-type"]:
            response = response.with_content_type(str(headers.pop(name)))
        if headers:
            response = response.with_headers(headers)
        return response


class ResponseWriter:
    """Lets a handler write the response directly instead of returning it.

    A handler that writes and then returns ``None`` leaves the written
    response in place. Writing twice keeps the last write.
    """

    __slots__ = ("_response",)

    def __init__(self) -> None:
        self._response: Response | None = None

    @property
    def response(self) -> Response | None:
        """The written response, or ``None`` if nothing was written."""
        return self._response

    @property
    def written(self) -> bool:
        return self._response is not None

    def write(self, response: Response) -> None:
        self._response = response

    def send(self, body: str | bytes, *, content_type: str = TEXT_CONTENT_TYPE) -> None:
        """Write a plain body."""
        self._response = Response(body=body, content_type=content_type)

    def json(self, value: Any) -> None:
        """Write *value* as a JSON body."""
        self._response = json_response(value)

    def redirect(self, url: str, status: int = 302) -> None:
        self._response = Redirect(url, status=status).to_response()


class Context(Mapping[str, Any]):
    """Immutable per-request context.

    Every value is reachable by attribute or by item::

        ctx.store["counter"]
        ctx.user            # merged in by a derive/resolve function
        ctx["user"]         # same value

    Item access also reaches keys that collide with ``Mapping`` method
    names (``ctx["items"]``).
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_values", MappingProxyType(dict(values)))

    @classmethod
    def seed(
        cls,
        request: Request,
        *,
        store: dict[str, Any],
        route: str = "",
        body: Any = None,
    ) -> Context:
        """Build the first snapshot of a request's context.

        Holds the raw request parts plus the live *store* reference.
        """
        return cls(
            {
                "request": request,
                "set": ResponseSet(),
                "res": ResponseWriter(),
                "path": request.path,
                "route": route,
                "params": dict(request.path_params),
                "query": request.query.to_dict(),
                "headers": request.headers.to_dict(),
                "cookie": dict(request.cookies),
                "body": body,
                "store": store,
            }
        )

    def merge(self, values: Mapping[str, Any]) -> Context:
        """Return a new snapshot with *values* layered over this one."""
        return Context({**self._values, **values})

    def response(self) -> Response:
        """The response this request produced.

        What the handler wrote through ``res`` (an empty 200 if nothing),
        with ``set`` applied on top.
        """
        written = self._values["res"].response
        base = written if written is not None else Response(body="")
        return self._values["set"].apply(base)

    # -- Mapping --

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    # -- Attribute access --

    def __getattr__(self, name: str) -> Any:
        if name == "_values":
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            msg = f"Context has no value {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        msg = (
            "Context is immutable. Return a mapping from a derive/resolve "
            "function to add values, or mutate ctx.set / ctx.store."
        )
        raise AttributeError(msg)

    def __repr__(self) -> str:
        return f"<Context {sorted(self._values)!r}>"


context_var: ContextVar[Context] = ContextVar("wren_context")
"""The context of the request being handled. Set around the handler call."""


def get_context() -> Context:
    """Return the current request's context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()
