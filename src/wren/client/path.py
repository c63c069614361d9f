"""Path builder — accumulates URL segments one attribute at a time.

A builder mirrors the server's route tree::

    api = client("localhost:3000")

    await api.users.get()                     # GET /users
    await api.users(id=42).get()              # GET /users/42
    await api.users.post({"name": "Ada"})     # POST /users
    await api.index.get()                     # GET /

Builders are immutable: every step returns a new builder over a new
segment tuple, so chains started from one builder never affect each
other. Nothing here performs I/O until a verb caller is awaited.

Names starting with an underscore, and the few names the builder defines
itself (``segment``, ``param``, ``method``, ``segments``, ``domain``,
``config``), are not treated as segments; spell those
``api["_private"]`` or ``api.segment("method")``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from wren.client.config import ClientConfig
from wren.client.executor import VERBS, execute
from wren.client.result import Result

type VerbCaller = Callable[..., Awaitable[Result]]


class PathBuilder:
    """An immutable chain of path segments bound to a domain and config."""

    __slots__ = ("_config", "_domain", "_segments")

    def __init__(
        self,
        domain: str,
        config: ClientConfig | None = None,
        segments: tuple[str, ...] = (),
    ) -> None:
        object.__setattr__(self, "_domain", domain)
        object.__setattr__(self, "_config", config or ClientConfig())
        object.__setattr__(self, "_segments", tuple(segments))

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def segments(self) -> tuple[str, ...]:
        """The accumulated segments."""
        return self._segments

    # -- Explicit spelling --

    def segment(self, name: str) -> PathBuilder:
        """Return a new builder with *name* appended."""
        return PathBuilder(self._domain, self._config, (*self._segments, name))

    def param(self, value: Any) -> PathBuilder:
        """Return a new builder with ``str(value)`` appended."""
        return self.segment(str(value))

    def method(self, verb: str) -> VerbCaller:
        """Return the caller for *verb* over the current segments.

        Raises:
            ValueError: *verb* is not an HTTP verb the client supports.
        """
        verb = verb.lower()
        if verb not in VERBS:
            msg = f"Unsupported HTTP verb {verb!r}. Use one of: {', '.join(VERBS)}"
            raise ValueError(msg)

        domain, config, segments = self._domain, self._config, self._segments

        async def call(body_or_options: Any = None, options: Mapping[str, Any] | None = None) -> Result:
            return await execute(verb, domain, config, segments, body_or_options, options)

        call.__name__ = verb
        call.__qualname__ = f"PathBuilder.{verb}"
        return call

    # -- Attribute surface --

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __getitem__(self, name: str) -> Any:
        if name in VERBS:
            return self.method(name)
        if name == "index":
            return PathBuilder(self._domain, self._config, self._segments)
        return self.segment(name)

    def __call__(self, params: Mapping[str, Any] | None = None, **kwargs: Any) -> PathBuilder:
        """Append the first parameter value as a segment.

        ``api.users({"id": 1})`` and ``api.users(id=1)`` both give
        ``/users/1``. Only the first value counts; with none, the segments
        are unchanged.
        """
        for source in (params, kwargs):
            if isinstance(source, Mapping) and source:
                return self.param(next(iter(source.values())))
        return PathBuilder(self._domain, self._config, self._segments)

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "PathBuilder is immutable"
        raise AttributeError(msg)

    def __repr__(self) -> str:
        return f"<PathBuilder {self._domain}/{'/'.join(self._segments)}>"
