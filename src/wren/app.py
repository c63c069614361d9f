"""Wren application class.

Mutable during setup (state, decorators, derive/resolve, routes, mounts).
Frozen at runtime when the ASGI entry point is first invoked.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable
from typing import Any

from wren._internal.asgi import Receive, Scope, Send
from wren._internal.types import ContextFn, Handler
from wren.config import AppConfig
from wren.errors import ConfigurationError, RouteConflictError
from wren.pipeline import Singleton, wrap_handler
from wren.routing.registry import RouteRegistry, join_path
from wren.routing.route import Matcher, MatcherFactory, RouteDefinition
from wren.schema import InputSchema
from wren.server.handler import handle_request

logger = logging.getLogger("wren.app")

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")


class App:
    """The wren application.

    Setup calls accumulate the state every request's context is built
    from::

        app = App(AppConfig(prefix="/api"), matcher=my_matcher)
        app.state("counter", 0).decorate("version", "1.0")

        @app.derive
        def agent(ctx):
            return {"agent": ctx.headers.get("user-agent", "unknown")}

        @app.get("/users/{id}")
        def user(ctx):
            return {"id": ctx.params["id"], "agent": ctx.agent}

    Path matching is not done here: *matcher* is a factory that receives
    the route definitions when the app freezes and returns the callable
    the ASGI bridge uses to match requests.

    Thread safety:
        Setup is single-threaded (decorators at import time). The freeze
        transition uses a Lock + double-check so exactly one thread
        builds the matcher, even if several workers call ``__call__()``
        concurrently on the first request.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_matcher",
        "_matcher_factory",
        "_mounted",
        "_registry",
        "_shutdown_hooks",
        "_singleton",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        matcher: MatcherFactory | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._singleton: Singleton = Singleton()
        self._registry: RouteRegistry = RouteRegistry()
        self._mounted: set[str] = set()
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._matcher_factory: MatcherFactory | None = matcher
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._matcher: Matcher | None = None

    # -- Shared state --

    @property
    def store(self) -> dict[str, Any]:
        """The live store shared by every request (no locking)."""
        return self._singleton.store

    @property
    def singleton(self) -> Singleton:
        return self._singleton

    def state(self, key: str, value: Any) -> App:
        """Add *key* to the store. Returns the app for chaining::

            app.state("counter", 0).state("sessions", {})
        """
        self._check_not_frozen()
        self._singleton.store[key] = value
        return self

    def decorate(self, key: str, value: Any) -> App:
        """Attach a read-only value to every request's context::

            app.decorate("db", database)

            @app.get("/")
            async def index(ctx):
                return await ctx.db.fetch_all()
        """
        self._check_not_frozen()
        self._singleton.decorator[key] = value
        return self

    def derive(self, fn: ContextFn) -> ContextFn:
        """Register a derive function via decorator.

        Derive functions run before schema validation, in registration
        order. A returned mapping is merged onto the context.
        """
        self._check_not_frozen()
        self._singleton.derive.append(fn)
        return fn

    def resolve(self, fn: ContextFn) -> ContextFn:
        """Register a resolve function via decorator.

        Resolve functions run after schema validation and after every
        derive function, in registration order::

            @app.resolve
            async def user(ctx):
                return {"user": await users.get(ctx.cookie.get("session"))}
        """
        self._check_not_frozen()
        self._singleton.resolve.append(fn)
        return fn

    # -- Route registration --

    def add_route(
        self,
        method: str,
        path: str,
        handler: Handler,
        *,
        schema: InputSchema | None = None,
    ) -> RouteDefinition:
        """Register *handler* for *method* on ``prefix + path``.

        Raises ``RouteConflictError`` if that method and path are taken.
        """
        self._check_not_frozen()
        method = method.upper()
        if method not in HTTP_METHODS:
            msg = f"Unsupported HTTP method {method!r}. Use one of: {', '.join(HTTP_METHODS)}"
            raise ConfigurationError(msg)
        definition = self._define(method, join_path(self.config.prefix, path), handler, schema)
        self._registry.add(definition)
        return definition

    def _define(
        self,
        method: str,
        full_path: str,
        handler: Handler,
        schema: InputSchema | None,
    ) -> RouteDefinition:
        endpoint = wrap_handler(handler, self._singleton, route=full_path, schema=schema)
        return RouteDefinition(
            method=method,
            full_path=full_path,
            handler=handler,
            endpoint=endpoint,
            schema=schema,
        )

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        schema: InputSchema | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path. Use ``{param}`` (or ``:param``) for parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            schema: Optional ``InputSchema`` applied before resolve.
        """

        def decorator(func: Handler) -> Handler:
            for method in methods or ["GET"]:
                self.add_route(method, path, func, schema=schema)
            return func

        return decorator

    def get(self, path: str, *, schema: InputSchema | None = None) -> Callable[[Handler], Handler]:
        """Register a GET handler via decorator."""
        return self.route(path, methods=["GET"], schema=schema)

    def post(self, path: str, *, schema: InputSchema | None = None) -> Callable[[Handler], Handler]:
        """Register a POST handler via decorator."""
        return self.route(path, methods=["POST"], schema=schema)

    def put(self, path: str, *, schema: InputSchema | None = None) -> Callable[[Handler], Handler]:
        """Register a PUT handler via decorator."""
        return self.route(path, methods=["PUT"], schema=schema)

    def delete(self, path: str, *, schema: InputSchema | None = None) -> Callable[[Handler], Handler]:
        """Register a DELETE handler via decorator."""
        return self.route(path, methods=["DELETE"], schema=schema)

    def patch(self, path: str, *, schema: InputSchema | None = None) -> Callable[[Handler], Handler]:
        """Register a PATCH handler via decorator."""
        return self.route(path, methods=["PATCH"], schema=schema)

    def head(self, path: str, *, schema: InputSchema | None = None) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["HEAD"], schema=schema)

    def options(self, path: str, *, schema: InputSchema | None = None) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["OPTIONS"], schema=schema)

    @property
    def routes(self) -> list[RouteDefinition]:
        """All route definitions, in registration order."""
        return self._registry.routes

    def route_tree(self) -> dict[str, Any]:
        """The nested route tree (see ``RouteRegistry.tree``)."""
        return self._registry.tree()

    # -- Composition --

    def use(self, plugin: App) -> App:
        """Mount *plugin* into this app. Returns the app for chaining.

        - store and decorator keys are unioned; this app wins on collision
        - the plugin's derive/resolve functions run after this app's
        - the plugin's routes are registered here, under this app's prefix,
          and run behind this app's pipeline

        A plugin with a ``config.name`` is mounted at most once; mounting
        it again is a no-op. A route the host already has raises
        ``RouteConflictError`` and leaves the host untouched.
        """
        self._check_not_frozen()
        name = plugin.config.name
        if name and name in self._mounted:
            logger.debug("Skipping already mounted app %r", name)
            return self

        incoming = [
            (route, join_path(self.config.prefix, route.full_path)) for route in plugin.routes
        ]
        for route, full_path in incoming:
            if (route.method, full_path) in self._registry:
                raise RouteConflictError(route.method, full_path)

        self._singleton.mount(plugin._singleton)
        for route, full_path in incoming:
            self._registry.add(self._define(route.method, full_path, route.handler, route.schema))
        self._startup_hooks.extend(plugin._startup_hooks)
        self._shutdown_hooks.extend(plugin._shutdown_hooks)
        self._mounted |= plugin._mounted
        if name:
            self._mounted.add(name)
        return self

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()

        assert self._matcher is not None

        await handle_request(
            scope,
            receive,
            send,
            matcher=self._matcher,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before the first HTTP request), then
        runs the registered startup/shutdown hooks.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    await self._run_hooks(self._startup_hooks)
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self._run_hooks(self._shutdown_hooks)
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _run_hooks(self, hooks: list[Callable[..., Any]]) -> None:
        for hook in hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Build the matcher and close setup.

        MUST only be called while holding _freeze_lock.
        """
        if self._matcher_factory is None:
            msg = (
                "No matcher configured. Pass matcher= to App(): a callable that "
                "receives the route definitions and returns a (method, path) matcher."
            )
            raise ConfigurationError(msg)
        self._matcher = self._matcher_factory(self._registry.routes)
        self._frozen = True
        logger.debug(
            "App %s frozen with %d route(s)", self.config.name or "<unnamed>", len(self._registry)
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register state, derive/resolve functions, and routes first."
            )
            raise RuntimeError(msg)
