"""Shared fixtures: a minimal route matcher and app factories.

Matching is outside wren's scope, so tests bring their own: segment by
segment, static segments exact, ``{name}`` / ``:name`` segments capturing.
"""

from collections.abc import Callable, Sequence

import pytest

from wren.app import App
from wren.config import AppConfig
from wren.errors import MethodNotAllowed, NotFound
from wren.routing import RouteDefinition, RouteMatch, parse_path
from wren.routing.route import Matcher


def simple_matcher(routes: Sequence[RouteDefinition]) -> Matcher:
    compiled = [(route, parse_path(route.full_path)) for route in routes]

    def match(method: str, path: str) -> RouteMatch:
        parts = [part for part in path.strip("/").split("/") if part]
        allowed: set[str] = set()
        for route, segments in compiled:
            if len(segments) != len(parts):
                continue
            params: dict[str, str] = {}
            for segment, part in zip(segments, parts, strict=True):
                if segment.is_param:
                    params[segment.param_name or ""] = part
                elif segment.value != part:
                    break
            else:
                if route.method == method:
                    return RouteMatch(route=route, path_params=params)
                allowed.add(route.method)
        if allowed:
            raise MethodNotAllowed(frozenset(allowed))
        raise NotFound()

    return match


@pytest.fixture
def make_app() -> Callable[..., App]:
    """Build an App wired to the test matcher."""

    def factory(**config: object) -> App:
        return App(AppConfig(**config), matcher=simple_matcher)  # type: ignore[arg-type]

    return factory
