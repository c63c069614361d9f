"""Route definitions and the matcher contract."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wren._internal.types import Endpoint, Handler

if TYPE_CHECKING:
    from wren.schema import InputSchema


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``  (is_param=False)
    Param:   ``/{id}`` or ``/:id``  (is_param=True, param_name="id")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteDefinition:
    """A registered route. Immutable once created.

    ``handler`` is the user's function; ``endpoint`` is the wrapped
    version the transport calls, which runs the context pipeline first.
    """

    method: str
    full_path: str
    handler: Handler
    endpoint: Endpoint
    schema: InputSchema | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """What a matcher returns for an inbound request."""

    route: RouteDefinition
    path_params: dict[str, str]


# Maps (method, path) to a RouteMatch; raises NotFound / MethodNotAllowed.
type Matcher = Callable[[str, str], RouteMatch]

# Builds a Matcher from the app's route definitions when the app freezes.
type MatcherFactory = Callable[[Sequence[RouteDefinition]], Matcher]
