"""Route input schemas.

A schema declares how to parse each part of a request before resolve
functions and the handler see it. Parsing itself is delegated: a part is
either a dataclass type, populated by ``extract_dataclass``, or any
callable that takes the raw value and returns the parsed one (a pydantic
``Model.model_validate``, a hand-written function...).

Usage::

    @dataclass(frozen=True, slots=True)
    class NewUser:
        name: str
        age: int = 0

    @app.post("/users", schema=InputSchema(body=NewUser))
    def create(ctx):
        return {"name": ctx.body.name}   # ctx.body is a NewUser

A parser raising ``ValueError`` or ``TypeError`` becomes
``ValidationFailed`` (422).
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, get_type_hints

from wren.errors import ValidationFailed

if TYPE_CHECKING:
    from wren.context import Context

type Parser = type | Callable[[Any], Any]

# Parts in the order they are parsed
PARTS: tuple[str, ...] = ("params", "query", "headers", "cookie", "body")


@dataclass(frozen=True, slots=True)
class InputSchema:
    """Parsers for the parts of a request, all optional."""

    params: Parser | None = None
    query: Parser | None = None
    headers: Parser | None = None
    cookie: Parser | None = None
    body: Parser | None = None

    def declared(self) -> dict[str, Parser]:
        """Part name -> parser, for the parts this schema declares."""
        return {part: parser for part in PARTS if (parser := getattr(self, part)) is not None}


def apply_schema(schema: InputSchema, ctx: Context) -> dict[str, Any]:
    """Parse every declared part of *ctx*.

    Returns the parsed values keyed by part name, ready to merge onto
    the context.

    Raises:
        ValidationFailed: The first part whose parser rejected its input.
    """
    parsed: dict[str, Any] = {}
    for part, parser in schema.declared().items():
        raw = ctx[part]
        try:
            if isinstance(parser, type) and dataclasses.is_dataclass(parser):
                parsed[part] = extract_dataclass(parser, _as_mapping(raw))
            else:
                parsed[part] = parser(raw)
        except (ValueError, TypeError) as exc:
            raise ValidationFailed(part, str(exc)) from exc
    return parsed


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return raw
    msg = f"expected an object, got {type(raw).__name__}"
    raise TypeError(msg)


# -- Dataclass extraction --


def extract_dataclass[T](cls: type[T], data: Mapping[str, Any]) -> T:
    """Create a dataclass instance from a mapping (query, form, JSON...).

    Each field is looked up by name and converted to its annotated type
    (``str``, ``int``, ``float`` and ``bool`` are coerced; other types are
    passed through). Missing fields use their default.

    Raises:
        ValueError: A required field is missing or a value cannot be
            converted.
    """
    hints = get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    missing: list[str] = []

    for f in dataclasses.fields(cls):  # type: ignore[arg-type]
        if not f.init:
            continue
        if f.name not in data:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                missing.append(f.name)
            continue
        kwargs[f.name] = _convert(f.name, data[f.name], hints.get(f.name, Any))

    if missing:
        msg = f"missing required field(s): {', '.join(missing)}"
        raise ValueError(msg)

    return cls(**kwargs)


def _convert(name: str, value: Any, target_type: Any) -> Any:
    """Convert *value* to *target_type*."""
    if target_type is str:
        return value.strip() if isinstance(value, str) else str(value)

    if target_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return bool(value)

    if target_type in (int, float):
        if isinstance(value, bool):
            msg = f"{name}: expected {target_type.__name__}, got bool"
            raise ValueError(msg)
        try:
            return target_type(value)
        except (ValueError, TypeError):
            msg = f"{name}: expected {target_type.__name__}, got {value!r}"
            raise ValueError(msg) from None

    # Unknown type: pass through
    return value
