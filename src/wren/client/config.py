"""Client configuration.

ClientConfig is a frozen dataclass, created once per client and shared by
every call made through it.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

import httpx

# (url, init) -> response. ``init`` holds the keyword arguments for
# ``httpx.AsyncClient.request``: method, headers, body and any extras.
Fetch: TypeAlias = Callable[[str, dict[str, Any]], Awaitable[httpx.Response]]

# Static headers, or a sync/async zero-argument provider
HeaderSource: TypeAlias = (
    Mapping[str, str]
    | Callable[[], Mapping[str, str] | Awaitable[Mapping[str, str] | None] | None]
)

# (path, init) -> optional overrides merged over init
RequestHook: TypeAlias = Callable[[str, dict[str, Any]], Any]

# (copy of the response) -> optional replacement for the parsed data
ResponseHook: TypeAlias = Callable[[httpx.Response], Any]


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Client configuration. Immutable after creation.

    All fields are optional::

        config = ClientConfig(
            headers=lambda: {"authorization": f"Bearer {tokens.current()}"},
            request_options={"timeout": 10.0},
        )
    """

    # Replaces the default network call (a per-call httpx.AsyncClient)
    fetch: Fetch | None = None

    # Sent with every request; a provider is called once per request
    headers: HeaderSource | None = None

    on_request: RequestHook | None = None
    on_response: ResponseHook | None = None

    # Base keyword arguments for every request, e.g. {"timeout": 5.0}
    request_options: Mapping[str, Any] = field(default_factory=dict)
