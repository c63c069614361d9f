"""Wren exception hierarchy.

Shared across the app, the ASGI bridge, schemas, and the client so every
module raises and catches the same types.
"""

from dataclasses import dataclass
from typing import Any


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when app configuration is invalid.

    Typically raised during setup or when the app first freezes.
    """


class RouteConflictError(ConfigurationError):
    """The same method and path were registered twice.

    Raised by direct registration and by ``App.use()`` when a mounted
    app declares a route the host already has.
    """

    def __init__(self, method: str, path: str) -> None:
        self.method = method
        self.path = path
        super().__init__(f"Route {method} {path!r} is already registered.")


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    Raised by matchers, schemas, or handlers. The ASGI bridge catches
    these and turns them into a response with the same status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class ValidationFailed(HTTPError):  # noqa: N818
    """422 — a route schema rejected part of the request.

    ``part`` names the request part (``body``, ``query``...) and
    ``errors`` carries the parser's message.
    """

    def __init__(self, part: str, errors: str) -> None:
        super().__init__(status=422, detail=f"Invalid {part}: {errors}")
        object.__setattr__(self, "part", part)
        object.__setattr__(self, "errors", errors)


class ClientError(WrenError):
    """Raised by ``Result.raise_for_error()`` for a non-2xx response."""

    def __init__(self, status: int, value: Any) -> None:
        self.status = status
        self.value = value
        super().__init__(f"Request failed with status {status}")
