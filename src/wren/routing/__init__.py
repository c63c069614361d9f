"""Routing — route definitions and the registry that holds them.

Routes are registered during setup. Matching an inbound request to a
definition is the transport's job: the app hands its definitions to a
matcher factory when it freezes.
"""

from wren.routing.registry import RouteRegistry, join_path, parse_path
from wren.routing.route import Matcher, MatcherFactory, PathSegment, RouteDefinition, RouteMatch

__all__ = [
    "Matcher",
    "MatcherFactory",
    "PathSegment",
    "RouteDefinition",
    "RouteMatch",
    "RouteRegistry",
    "join_path",
    "parse_path",
]
