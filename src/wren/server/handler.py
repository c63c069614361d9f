"""ASGI handler — translates ASGI scope/messages to wren types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, asks the app's matcher for a route, awaits the
route's endpoint, and sends the Response back through ASGI send().
"""

from wren._internal.asgi import Receive, Scope, Send
from wren._internal.invoke import invoke
from wren.errors import HTTPError
from wren.http.request import Request
from wren.http.response import Response
from wren.routing.route import Matcher
from wren.server.errors import handle_http_error, handle_internal_error
from wren.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    matcher: Matcher,
    debug: bool,
    max_content_length: int,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    # Build Request from ASGI scope
    request = Request.from_asgi(scope, receive)

    try:
        await _check_content_length(request, max_content_length)
        match = await invoke(matcher, request.method, request.path)
        response: Response = await match.route.endpoint(request, match.path_params)
    except HTTPError as exc:
        response = handle_http_error(exc, request, debug)
    except Exception as exc:
        response = handle_internal_error(exc, request, debug)

    await send_response(response, send, head=request.method == "HEAD")


async def _check_content_length(request: Request, limit: int) -> None:
    """Reject bodies over *limit* bytes with 413.

    The declared Content-Length is checked first so an oversized upload
    is refused without reading it; the body itself is then read and
    measured, which also covers chunked uploads.
    """
    declared = request.content_length
    if declared is not None and declared > limit:
        raise HTTPError(status=413, detail="Request body too large")
    if request.method in ("GET", "HEAD"):
        return
    body = await request.body()
    if len(body) > limit:
        raise HTTPError(status=413, detail="Request body too large")
