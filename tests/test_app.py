"""Tests for wren.app — setup, registration, mounting, freezing, and ASGI entry."""

from collections.abc import Callable
from typing import Any

import pytest

from wren.app import App
from wren.config import AppConfig
from wren.context import Context
from wren.errors import ConfigurationError, RouteConflictError
from wren.schema import InputSchema
from wren.testing import TestClient

type AppFactory = Callable[..., App]


class TestSetup:
    def test_state_and_decorate_chain(self) -> None:
        app = App()
        assert app.state("counter", 0).state("sessions", {}).decorate("version", "1") is app
        assert app.store == {"counter": 0, "sessions": {}}
        assert app.singleton.decorator == {"version": "1"}

    def test_derive_and_resolve_return_function(self) -> None:
        app = App()

        def agent(ctx: Context) -> dict:
            return {}

        assert app.derive(agent) is agent
        assert app.resolve(agent) is agent
        assert app.singleton.derive == [agent]
        assert app.singleton.resolve == [agent]


class TestRegistration:
    def test_verb_decorators(self) -> None:
        app = App()

        for verb in ("get", "post", "put", "delete", "patch", "head", "options"):
            getattr(app, verb)("/thing")(lambda ctx: None)

        assert sorted(r.method for r in app.routes) == [
            "DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT",
        ]

    def test_route_with_methods(self) -> None:
        app = App()

        @app.route("/users", methods=["get", "POST"])
        def users(ctx: Context) -> str:
            return "users"

        assert [(r.method, r.full_path) for r in app.routes] == [("GET", "/users"), ("POST", "/users")]
        assert app.routes[0].handler is users

    def test_route_defaults_to_get(self) -> None:
        app = App()
        app.route("/")(lambda ctx: "home")
        assert app.routes[0].method == "GET"

    def test_prefix_applied(self) -> None:
        app = App(AppConfig(prefix="/api"))
        app.get("/users")(lambda ctx: [])
        app.get("/")(lambda ctx: "root")
        assert [r.full_path for r in app.routes] == ["/api/users", "/api"]

    def test_schema_stored(self) -> None:
        app = App()
        schema = InputSchema(query=dict)
        app.get("/search", schema=schema)(lambda ctx: None)
        assert app.routes[0].schema is schema

    def test_add_route(self) -> None:
        app = App()
        definition = app.add_route("patch", "/users/{id}", lambda ctx: None)
        assert definition.method == "PATCH"
        assert app.routes == [definition]

    def test_unsupported_method(self) -> None:
        app = App()
        with pytest.raises(ConfigurationError, match="Unsupported HTTP method"):
            app.add_route("TRACE", "/", lambda ctx: None)

    def test_duplicate_route_raises(self) -> None:
        app = App()
        app.get("/users")(lambda ctx: [])
        with pytest.raises(RouteConflictError):
            app.get("/users")(lambda ctx: [])

    def test_route_tree(self) -> None:
        app = App()
        app.get("/users/{id}")(lambda ctx: None)
        tree = app.route_tree()
        assert tree["users"][":id"]["GET"].full_path == "/users/{id}"


class TestMount:
    def test_store_union(self) -> None:
        host = App().state("counter", 0)
        plugin = App().state("sessions", {})

        host.use(plugin)

        assert host.store == {"counter": 0, "sessions": {}}

    def test_host_wins_on_collision(self) -> None:
        host = App().state("mode", "host").decorate("name", "host")
        plugin = App().state("mode", "plugin").decorate("name", "plugin")

        host.use(plugin)

        assert host.store["mode"] == "host"
        assert host.singleton.decorator["name"] == "host"

    def test_plugin_functions_run_after_host(self) -> None:
        host, plugin = App(), App()
        host_fn = host.derive(lambda ctx: {"a": 1})
        plugin_fn = plugin.derive(lambda ctx: {"b": 2})
        plugin_resolve = plugin.resolve(lambda ctx: None)

        host.use(plugin)

        assert host.singleton.derive == [host_fn, plugin_fn]
        assert host.singleton.resolve == [plugin_resolve]

    def test_plugin_routes_get_host_prefix(self) -> None:
        host = App(AppConfig(prefix="/api"))
        plugin = App(AppConfig(prefix="/auth"))
        plugin.post("/login")(lambda ctx: "ok")

        host.use(plugin)

        assert [(r.method, r.full_path) for r in host.routes] == [("POST", "/api/auth/login")]

    def test_same_path_other_method_is_union(self) -> None:
        host, plugin = App(), App()
        host.get("/users")(lambda ctx: [])
        plugin.post("/users")(lambda ctx: {})

        host.use(plugin)

        assert [r.method for r in host.routes] == ["GET", "POST"]

    def test_conflict_leaves_host_untouched(self) -> None:
        host, plugin = App(), App()
        host.get("/users")(lambda ctx: [])
        plugin.state("sessions", {})
        plugin.get("/other")(lambda ctx: None)
        plugin.get("/users")(lambda ctx: [])

        with pytest.raises(RouteConflictError):
            host.use(plugin)

        assert "sessions" not in host.store
        assert len(host.routes) == 1

    def test_named_plugin_mounted_once(self) -> None:
        host = App()
        plugin = App(AppConfig(name="auth"))
        plugin.derive(lambda ctx: {"user": None})
        plugin.get("/me")(lambda ctx: None)

        host.use(plugin).use(plugin)

        assert len(host.singleton.derive) == 1
        assert len(host.routes) == 1

    def test_unnamed_plugin_mounted_twice_conflicts(self) -> None:
        host, plugin = App(), App()
        plugin.get("/me")(lambda ctx: None)
        host.use(plugin)
        with pytest.raises(RouteConflictError):
            host.use(plugin)

    async def test_mounted_routes_run_host_pipeline(self, make_app: AppFactory) -> None:
        host = make_app()
        host.decorate("site", "wren")
        host.derive(lambda ctx: {"user": "ada"})
        plugin = App()
        plugin.get("/whoami")(lambda ctx: {"user": ctx.user, "site": ctx.site})
        host.use(plugin)

        async with TestClient(host) as client:
            response = await client.get("/whoami")

        assert response.json() == {"user": "ada", "site": "wren"}


class TestFreeze:
    async def test_setup_closed_after_first_request(self, make_app: AppFactory) -> None:
        app = make_app()
        app.get("/")(lambda ctx: "ok")

        async with TestClient(app) as client:
            await client.get("/")

        with pytest.raises(RuntimeError, match="Cannot modify the app"):
            app.state("late", 1)
        with pytest.raises(RuntimeError):
            app.get("/late")(lambda ctx: None)
        with pytest.raises(RuntimeError):
            app.use(App())

    async def test_missing_matcher(self) -> None:
        app = App()
        app.get("/")(lambda ctx: "ok")
        with pytest.raises(ConfigurationError, match="No matcher configured"):
            async with TestClient(app):
                pass

    def test_matcher_factory_receives_routes(self) -> None:
        received: list[Any] = []

        def factory(routes: Any) -> Any:
            received.extend(routes)
            return lambda method, path: None

        app = App(matcher=factory)
        app.get("/a")(lambda ctx: None)
        app._ensure_frozen()
        app._ensure_frozen()

        assert [r.full_path for r in received] == ["/a"]


class TestLifespan:
    async def test_startup_and_shutdown_hooks(self, make_app: AppFactory) -> None:
        app = make_app()
        events: list[str] = []

        @app.on_startup
        async def start() -> None:
            events.append("start")

        @app.on_shutdown
        def stop() -> None:
            events.append("stop")

        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict] = []

        async def receive() -> dict:
            return next(messages)

        async def send(message: dict) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert events == ["start", "stop"]
        assert [m["type"] for m in sent] == ["lifespan.startup.complete", "lifespan.shutdown.complete"]

    async def test_failing_startup_hook(self, make_app: AppFactory) -> None:
        app = make_app()

        @app.on_startup
        def broken() -> None:
            raise RuntimeError("no database")

        sent: list[dict] = []

        async def receive() -> dict:
            return {"type": "lifespan.startup"}

        async def send(message: dict) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]

    async def test_plugin_hooks_carried_over(self, make_app: AppFactory) -> None:
        host = make_app()
        plugin = App()
        events: list[str] = []
        plugin.on_startup(lambda: events.append("plugin"))
        host.use(plugin)

        async with TestClient(host):
            pass

        assert events == ["plugin"]
