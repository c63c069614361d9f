"""Result envelope returned by every client call."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import httpx

from wren.errors import ClientError


@dataclass(frozen=True, slots=True)
class ResponseError:
    """The error half of a non-2xx result: its status and parsed body."""

    status: int
    value: Any


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of one client call.

    ``error`` is set only for a non-2xx status, and ``data`` is then
    ``None``. Unpacks like a pair::

        data, error = await api.users.get()
        if error is not None:
            print(error.status, error.value)
    """

    data: Any
    error: ResponseError | None
    status: int
    response: httpx.Response
    headers: httpx.Headers

    @property
    def ok(self) -> bool:
        """True for a 2xx status."""
        return 200 <= self.status < 300

    def raise_for_error(self) -> Result:
        """Raise ``ClientError`` for an error result, else return self."""
        if self.error is not None:
            raise ClientError(self.error.status, self.error.value)
        return self

    def __iter__(self) -> Iterator[Any]:
        yield self.data
        yield self.error
