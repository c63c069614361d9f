"""Typed HTTP client mirroring a wren app's route tree.

Usage::

    from wren.client import client

    api = client("localhost:3000")
    data, error = await api.users(id=7).get({"query": {"fields": ["name"]}})
"""

from wren.client.config import ClientConfig
from wren.client.executor import execute, normalize_domain
from wren.client.path import PathBuilder
from wren.client.result import ResponseError, Result


def client(domain: str, config: ClientConfig | None = None) -> PathBuilder:
    """Create the root path builder for *domain*.

    A domain without a scheme gets ``http://`` for local hosts and
    ``https://`` otherwise.
    """
    return PathBuilder(normalize_domain(domain), config or ClientConfig())


__all__ = [
    "ClientConfig",
    "PathBuilder",
    "ResponseError",
    "Result",
    "client",
    "execute",
    "normalize_domain",
]
