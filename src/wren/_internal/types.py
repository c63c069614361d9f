"""Shared type aliases used across wren modules."""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeAlias

# Route handler: receives the composed Context
Handler: TypeAlias = Callable[..., Any]

# Derive / resolve function: receives the Context, returns values to merge
ContextFn: TypeAlias = Callable[..., Mapping[str, Any] | Awaitable[Mapping[str, Any] | None] | None]

# Wrapped route handler produced by the registry
Endpoint: TypeAlias = Callable[..., Awaitable[Any]]
