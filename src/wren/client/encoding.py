"""Request body encoding and response parsing for the client.

Bodies become one of three encodings:

- multipart, when any top-level value (or element of a top-level list) is
  a binary attachment; httpx builds the body and its boundary
- JSON, for any other mapping or list
- plain text, for everything else

Responses are parsed by media type, parameters ignored.
"""

import io
import json
import os
from collections.abc import Mapping
from typing import Any

import httpx

from wren.http.forms import UploadFile, parse_form_data

BINARY_CONTENT_TYPE = "application/octet-stream"
EVENT_STREAM = "text/event-stream"

# (field name, (filename, content, content type)), as httpx takes them
type FilePart = tuple[str, tuple[str, Any, str]]


def is_file(value: Any) -> bool:
    """Whether *value* is sent as a binary attachment."""
    return isinstance(
        value,
        UploadFile | bytes | bytearray | memoryview | io.BufferedIOBase | io.RawIOBase,
    )


def has_files(body: Any) -> bool:
    """Whether *body* holds a binary attachment one level deep."""
    if not isinstance(body, Mapping):
        return False
    for value in body.values():
        if is_file(value):
            return True
        if isinstance(value, list | tuple) and any(is_file(item) for item in value):
            return True
    return False


def encode_body(body: Any) -> tuple[dict[str, Any], dict[str, str]]:
    """Encode *body* for the request.

    Returns the httpx request arguments carrying it and the headers to
    add (a content-type, except for multipart).
    """
    if has_files(body):
        data, files = _multipart(body)
        return {"data": data, "files": files}, {}
    if isinstance(body, Mapping | list | tuple):
        content = json.dumps(body, default=str)
        return {"content": content}, {"content-type": "application/json"}
    return {"content": str(body)}, {"content-type": "text/plain"}


def _multipart(body: Mapping[str, Any]) -> tuple[dict[str, list[str]], list[FilePart]]:
    data: dict[str, list[str]] = {}
    files: list[FilePart] = []
    for key, value in body.items():
        items = value if isinstance(value, list | tuple) else [value]
        for item in items:
            if is_file(item):
                files.append((key, _file_part(item)))
            elif item is not None:
                data.setdefault(key, []).append(_field_value(item))
    return data, files


def _file_part(value: Any) -> tuple[str, Any, str]:
    if isinstance(value, UploadFile):
        return value.filename, value.content, value.content_type
    if isinstance(value, bytes | bytearray | memoryview):
        return "blob", bytes(value), BINARY_CONTENT_TYPE
    name = getattr(value, "name", None)
    filename = os.path.basename(name) if isinstance(name, str) else "blob"
    return filename, value, BINARY_CONTENT_TYPE


def _field_value(value: Any) -> str:
    if isinstance(value, Mapping | list | tuple):
        return json.dumps(value, default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def media_type(response: httpx.Response) -> str:
    """The response's content type without parameters, lower-cased."""
    return response.headers.get("content-type", "").split(";")[0].strip().lower()


async def parse_response(response: httpx.Response) -> Any:
    """Parse *response* by media type.

    - ``application/json``         -> decoded JSON (``""`` for an empty body)
    - ``application/octet-stream`` -> ``bytes``
    - ``multipart/form-data``      -> ``dict``, files as ``UploadFile``
    - ``text/event-stream``        -> the unread ``httpx.Response`` itself
    - anything else                -> ``str``
    """
    match media_type(response):
        case "application/json":
            return response.json() if response.content else ""
        case "application/octet-stream":
            return response.content
        case "multipart/form-data":
            form = await parse_form_data(response.content, response.headers["content-type"])
            return form.to_dict()
        case "text/event-stream":
            return response
        case _:
            return response.text
