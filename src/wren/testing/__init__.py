"""Test utilities for wren applications.

Provides an in-process ASGI test client and helpers that point the
typed client at an app without a network::

    from wren.testing import TestClient, asgi_client
"""

from wren.testing.client import TestClient
from wren.testing.transport import asgi_client, asgi_fetch

__all__ = [
    "TestClient",
    "asgi_client",
    "asgi_fetch",
]
