"""Route registry — holds an app's route definitions.

Definitions are keyed by ``(method, full_path)``. Registering the same key
twice, directly or by mounting another app, raises ``RouteConflictError``;
different methods on the same path are a plain union.
"""

from collections.abc import Iterable, Iterator
from typing import Any

from wren.errors import RouteConflictError
from wren.routing.route import PathSegment, RouteDefinition


def join_path(prefix: str, path: str) -> str:
    """Prefix *path* with *prefix*.

    Examples::

        join_path("", "/users")      -> "/users"
        join_path("/api/", "/users") -> "/api/users"
        join_path("/api", "/")       -> "/api"
    """
    if not path.startswith("/"):
        path = f"/{path}"
    prefix = prefix.rstrip("/")
    if not prefix:
        return path
    if path == "/":
        return prefix
    return f"{prefix}{path}"


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Both parameter spellings are understood, and a ``:type`` suffix
    inside braces is ignored::

        "/users"           -> [PathSegment("users")]
        "/users/{id}"      -> [PathSegment("users"), PathSegment("{id}", True, "id")]
        "/users/:id"       -> [PathSegment("users"), PathSegment(":id", True, "id")]
        "/users/{id:int}"  -> [..., PathSegment("{id:int}", True, "id")]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            name = part[1:-1].split(":", 1)[0]
            segments.append(PathSegment(value=part, is_param=True, param_name=name))
        elif part.startswith(":") and len(part) > 1:
            segments.append(PathSegment(value=part, is_param=True, param_name=part[1:]))
        else:
            segments.append(PathSegment(value=part))
    return segments


class RouteRegistry:
    """Ordered collection of route definitions.

    Usage::

        registry = RouteRegistry()
        registry.add(definition)
        registry.get("GET", "/users")
        registry.tree()   # {"users": {"GET": definition}}
    """

    __slots__ = ("_routes",)

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], RouteDefinition] = {}

    def add(self, route: RouteDefinition) -> None:
        """Add *route*. Raises ``RouteConflictError`` on a duplicate."""
        key = (route.method, route.full_path)
        if key in self._routes:
            raise RouteConflictError(route.method, route.full_path)
        self._routes[key] = route

    def extend(self, routes: Iterable[RouteDefinition]) -> None:
        """Add several routes; stops at the first conflict."""
        for route in routes:
            self.add(route)

    def get(self, method: str, path: str) -> RouteDefinition | None:
        return self._routes.get((method.upper(), path))

    @property
    def routes(self) -> list[RouteDefinition]:
        """All definitions, in registration order."""
        return list(self._routes.values())

    def __iter__(self) -> Iterator[RouteDefinition]:
        return iter(list(self._routes.values()))

    def __len__(self) -> int:
        return len(self._routes)

    def __contains__(self, key: object) -> bool:
        return key in self._routes

    def tree(self) -> dict[str, Any]:
        """Nested route tree, the shape a client path chain walks.

        Static segments are keyed by name, parameters by ``:name``, and
        each path's methods by their upper-case name::

            {"users": {"GET": ..., ":id": {"GET": ..., "DELETE": ...}}}
        """
        root: dict[str, Any] = {}
        for route in self._routes.values():
            node = root
            for segment in parse_path(route.full_path):
                key = f":{segment.param_name}" if segment.is_param else segment.value
                node = node.setdefault(key, {})
            node[route.method] = route
        return root
