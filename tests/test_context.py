"""Tests for wren.context — immutable context snapshots and response adjustments."""

import pytest

from wren.context import Context, ResponseSet, ResponseWriter, context_var, get_context
from wren.http.headers import Headers
from wren.http.query import QueryParams
from wren.http.request import Request
from wren.http.response import JSON_CONTENT_TYPE, Response


async def _no_body() -> dict:
    return {"type": "http.request", "body": b"", "more_body": False}


def _request(path: str = "/users/1", query: bytes = b"", headers: dict[str, str] | None = None) -> Request:
    header_map = Headers.from_mapping(headers or {})
    return Request(
        method="GET",
        path=path,
        headers=header_map,
        query=QueryParams(query),
        path_params={"id": "1"},
        http_version="1.1",
        server=None,
        client=None,
        cookies={"session": "abc"},
        _receive=_no_body,
    )


class TestSeed:
    def test_fixed_fields(self) -> None:
        store: dict = {"counter": 0}
        ctx = Context.seed(
            _request(query=b"page=2", headers={"X-Agent": "test"}),
            store=store,
            route="/users/{id}",
            body={"a": 1},
        )

        assert ctx.path == "/users/1"
        assert ctx.route == "/users/{id}"
        assert ctx.params == {"id": "1"}
        assert ctx.query == {"page": "2"}
        assert ctx.headers == {"x-agent": "test"}
        assert ctx.cookie == {"session": "abc"}
        assert ctx.body == {"a": 1}
        assert ctx.store is store
        assert isinstance(ctx.set, ResponseSet)
        assert isinstance(ctx.res, ResponseWriter)
        assert ctx.request.path == "/users/1"

    def test_repeated_query_key_is_a_list(self) -> None:
        ctx = Context.seed(_request(query=b"tag=a&tag=b&page=2"), store={})
        assert ctx.query == {"tag": ["a", "b"], "page": "2"}


class TestMerge:
    def test_merge_returns_new_snapshot(self) -> None:
        ctx = Context.seed(_request(), store={})
        merged = ctx.merge({"user": "ada"})

        assert merged is not ctx
        assert merged.user == "ada"
        assert "user" not in ctx

    def test_merge_overwrites_on_collision(self) -> None:
        ctx = Context.seed(_request(), store={}).merge({"role": "guest"})
        assert ctx.merge({"role": "admin"}).role == "admin"

    def test_set_and_res_shared_across_snapshots(self) -> None:
        ctx = Context.seed(_request(), store={})
        merged = ctx.merge({"x": 1})
        assert merged.set is ctx.set
        assert merged.res is ctx.res

    def test_item_access(self) -> None:
        ctx = Context.seed(_request(), store={}).merge({"items": [1]})
        assert ctx["items"] == [1]

    def test_missing_attribute(self) -> None:
        ctx = Context.seed(_request(), store={})
        with pytest.raises(AttributeError, match="no value 'nope'"):
            ctx.nope  # noqa: B018

    def test_immutable(self) -> None:
        ctx = Context.seed(_request(), store={})
        with pytest.raises(AttributeError, match="immutable"):
            ctx.user = "x"

    def test_is_a_mapping(self) -> None:
        ctx = Context.seed(_request(), store={})
        assert "store" in ctx
        assert len(ctx) == len(list(ctx))


class TestResponse:
    def test_empty_when_nothing_written(self) -> None:
        ctx = Context.seed(_request(), store={})
        response = ctx.response()
        assert response.status == 200
        assert response.body == ""

    def test_written_response(self) -> None:
        ctx = Context.seed(_request(), store={})
        ctx.res.json({"a": 1})
        response = ctx.response()
        assert response.content_type == JSON_CONTENT_TYPE
        assert response.json() == {"a": 1}

    def test_set_status_and_headers(self) -> None:
        ctx = Context.seed(_request(), store={})
        ctx.res.send("made")
        ctx.set.status = 201
        ctx.set.headers["x-id"] = 7
        response = ctx.response()
        assert response.status == 201
        assert response.header("X-Id") == "7"
        assert response.text == "made"

    def test_set_content_type_replaces_default(self) -> None:
        ctx = Context.seed(_request(), store={})
        ctx.res.send("<p>hi</p>")
        ctx.set.headers["Content-Type"] = "text/html"
        ctx.set.headers["x-id"] = "1"
        response = ctx.response()
        assert response.content_type == "text/html"
        assert response.header("content-type") is None
        assert response.header("x-id") == "1"

    def test_set_redirect(self) -> None:
        ctx = Context.seed(_request(), store={})
        ctx.res.send("ignored")
        ctx.set.redirect = "/login"
        response = ctx.response()
        assert response.status == 302
        assert response.header("Location") == "/login"
        assert response.body == ""

    def test_set_redirect_with_status(self) -> None:
        response = ResponseSet(status=301, redirect="/new").apply(Response("x"))
        assert response.status == 301
        assert response.header("location") == "/new"


class TestWriter:
    def test_last_write_wins(self) -> None:
        writer = ResponseWriter()
        assert not writer.written
        writer.send("a")
        writer.send("b")
        assert writer.written
        assert writer.response is not None
        assert writer.response.text == "b"

    def test_redirect(self) -> None:
        writer = ResponseWriter()
        writer.redirect("/there", status=303)
        assert writer.response is not None
        assert writer.response.status == 303
        assert writer.response.header("Location") == "/there"


class TestContextVar:
    def test_get_context_outside_request(self) -> None:
        with pytest.raises(LookupError):
            get_context()

    def test_get_context_inside(self) -> None:
        ctx = Context.seed(_request(), store={})
        token = context_var.set(ctx)
        try:
            assert get_context() is ctx
        finally:
            context_var.reset(token)
