"""Request executor — turns one verb call into one HTTP request.

Builds the URL, headers and body from a path builder's segments and the
call's arguments, runs the configured hooks around the network call, and
classifies the response into a ``Result``.

Transport errors raised by httpx (connection refused, timeouts set
through request options...) are not caught here.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any
from urllib.parse import urlsplit

import httpx

from wren._internal.invoke import invoke
from wren.client.config import ClientConfig
from wren.client.encoding import EVENT_STREAM, encode_body, media_type, parse_response
from wren.client.result import ResponseError, Result
from wren.http.query import encode_query

logger = logging.getLogger("wren.client")

VERBS: tuple[str, ...] = ("get", "post", "put", "delete", "patch", "head", "options")

# Verbs whose first argument is the options, never a body
BODILESS_VERBS: frozenset[str] = frozenset({"get", "head"})

# httpx request arguments that carry a body
BODY_ARGS: frozenset[str] = frozenset({"content", "data", "files", "json"})

# httpx arguments taken by AsyncClient.send rather than build_request
SEND_ARGS: frozenset[str] = frozenset({"auth", "follow_redirects"})

LOCAL_HOSTS: frozenset[str] = frozenset({"localhost", "127.0.0.1", "0.0.0.0"})


def normalize_domain(domain: str) -> str:
    """Give *domain* a scheme and drop one trailing slash.

    Local hosts get ``http://``, everything else ``https://``::

        normalize_domain("localhost:3000")  -> "http://localhost:3000"
        normalize_domain("api.example.com/") -> "https://api.example.com"
    """
    if "://" not in domain:
        host = urlsplit(f"//{domain}").hostname or ""
        scheme = "http" if host in LOCAL_HOSTS else "https"
        domain = f"{scheme}://{domain}"
    if domain.endswith("/"):
        domain = domain[:-1]
    return domain


async def resolve_headers(config: ClientConfig) -> dict[str, str]:
    """The config's headers, calling the provider if there is one."""
    source = config.headers
    if source is None:
        return {}
    if callable(source):
        return dict(await invoke(source) or {})
    return dict(source)


def _merge_headers(*layers: Mapping[str, Any] | None) -> dict[str, str]:
    """Merge header mappings, later layers winning (case-insensitive)."""
    merged = httpx.Headers()
    for layer in layers:
        for name, value in (layer or {}).items():
            merged[name] = str(value)
    return dict(merged.items())


def _without_body(init: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in init.items() if k not in BODY_ARGS}


class _ClientClosingStream(httpx.AsyncByteStream):
    """Response stream that closes its owning client when closed."""

    def __init__(self, stream: httpx.AsyncByteStream, client: httpx.AsyncClient) -> None:
        self._stream = stream
        self._client = client

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._stream:
            yield chunk

    async def aclose(self) -> None:
        try:
            await self._stream.aclose()
        finally:
            await self._client.aclose()


async def stream_request(
    client: httpx.AsyncClient, url: str, init: Mapping[str, Any]
) -> httpx.Response:
    """Send a request through *client* without reading the body.

    *client* belongs to the returned response from here on: it is closed
    when the response is, which ``aread()`` does once the body is read.
    """
    build_args = {k: v for k, v in init.items() if k not in SEND_ARGS}
    send_args = {k: v for k, v in init.items() if k in SEND_ARGS}
    try:
        request = client.build_request(url=url, **build_args)
        response = await client.send(request, stream=True, **send_args)
    except BaseException:
        await client.aclose()
        raise
    response.stream = _ClientClosingStream(response.stream, client)
    return response


async def default_fetch(url: str, init: dict[str, Any]) -> httpx.Response:
    """Issue the request with a short-lived ``httpx.AsyncClient``.

    The body is left unread; event streams stay open for the caller.
    """
    return await stream_request(httpx.AsyncClient(), url, init)


async def _copy_response(response: httpx.Response, *, with_body: bool = True) -> httpx.Response:
    """An independent copy of *response*.

    The body is already decoded, so ``content-encoding`` is not copied.
    Without *with_body* the copy has status and headers only, which
    leaves a live event stream untouched.
    """
    content = await response.aread() if with_body else b""
    try:
        request = response.request
    except RuntimeError:
        request = None
    headers = [(k, v) for k, v in response.headers.multi_items() if k != "content-encoding"]
    return httpx.Response(
        response.status_code,
        headers=headers,
        content=content,
        request=request,
        extensions=response.extensions,
    )


async def execute(
    verb: str,
    domain: str,
    config: ClientConfig,
    segments: tuple[str, ...],
    body_or_options: Any = None,
    options: Mapping[str, Any] | None = None,
) -> Result:
    """Issue one request and wrap its outcome.

    For ``get`` and ``head``, *body_or_options* is the options mapping
    (anything else is ignored) and no body is ever sent. Every other verb
    takes it as the body and reads *options* instead. Options may carry
    ``query``, ``headers`` and ``fetch_overrides`` (extra httpx request
    arguments for this call).

    A ``text/event-stream`` response is returned unread as ``data``; the
    caller iterates it and closes it with ``aclose()``.
    """
    path = "/" + "/".join(segments)
    bodiless = verb in BODILESS_VERBS
    if bodiless:
        options = body_or_options
        body = None
    else:
        body = body_or_options
    if not isinstance(options, Mapping):
        options = {}

    url = domain + path
    query = options.get("query")
    if query:
        url += encode_query(query)

    overrides: Mapping[str, Any] = options.get("fetch_overrides") or {}
    base: Mapping[str, Any] = config.request_options or {}

    init: dict[str, Any] = {
        **{k: v for k, v in base.items() if k not in ("method", "headers")},
        **{k: v for k, v in overrides.items() if k not in ("method", "headers")},
    }
    init["method"] = verb.upper()
    init["headers"] = _merge_headers(
        base.get("headers"),
        await resolve_headers(config),
        overrides.get("headers"),
        options.get("headers"),
    )

    if body is not None:
        body_args, body_headers = encode_body(body)
        init.update(body_args)
        init["headers"] = _merge_headers(init["headers"], body_headers)

    if config.on_request is not None:
        modified = await invoke(config.on_request, path, init)
        if modified:
            init = {**init, **modified}

    if bodiless:
        init = _without_body(init)

    fetch = config.fetch or default_fetch
    logger.debug("%s %s", init["method"], url)
    response = await fetch(url, init)
    logger.debug("%d %s %s", response.status_code, init["method"], url)

    streaming = media_type(response) == EVENT_STREAM
    if not streaming:
        await response.aread()

    data: Any = None
    if config.on_response is not None:
        copy = await _copy_response(response, with_body=not streaming)
        data = await invoke(config.on_response, copy)
    if data is None:
        data = await parse_response(response)

    if 200 <= response.status_code < 300:
        error = None
    else:
        error = ResponseError(response.status_code, data)
        data = None

    return Result(
        data=data,
        error=error,
        status=response.status_code,
        response=response,
        headers=response.headers,
    )
