"""Tests for perch.http — Request, Headers and QueryParams."""

from typing import Any

import pytest

from perch.errors import BadRequest, UnsupportedMediaType
from perch.http.headers import Headers
from perch.http.query import QueryParams
from perch.http.request import Request


def _request(
    *,
    body: bytes = b"",
    content_type: str | None = None,
    query_string: bytes = b"",
) -> Request:
    headers: list[tuple[bytes, bytes]] = []
    if content_type is not None:
        headers.append((b"content-type", content_type.encode("latin-1")))
    scope: dict[str, Any] = {
        "type": "http",
        "method": "POST",
        "path": "/todos",
        "headers": headers,
        "query_string": query_string,
    }
    sent = False

    async def receive() -> dict[str, Any]:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request.from_asgi(scope, receive)


async def _unreachable() -> dict[str, Any]:
    raise AssertionError("body should not be read")


class TestHeadersAccepts:
    def test_missing_accept_accepts_everything(self) -> None:
        assert Headers().accepts("application/json")

    def test_exact_match(self) -> None:
        assert Headers(((b"accept", b"application/json"),)).accepts("application/json")

    def test_wildcards(self) -> None:
        assert Headers(((b"accept", b"*/*"),)).accepts("application/json")
        assert Headers(((b"accept", b"application/*"),)).accepts("application/json")

    def test_other_type_refused(self) -> None:
        assert not Headers(((b"accept", b"text/html"),)).accepts("application/json")

    def test_list_with_quality(self) -> None:
        headers = Headers(((b"Accept", b"text/html, application/json;q=0.9"),))
        assert headers.accepts("application/json")

    def test_zero_quality_refused(self) -> None:
        headers = Headers(((b"accept", b"application/json;q=0, text/html"),))
        assert not headers.accepts("application/json")

    def test_case_insensitive_lookup(self) -> None:
        headers = Headers(((b"Content-Type", b"application/json"),))
        assert headers["content-type"] == "application/json"
        assert "CONTENT-TYPE" in headers

    def test_repeated_accept_headers(self) -> None:
        headers = Headers(((b"accept", b"text/html"), (b"Accept", b"application/json")))
        assert headers.get_all("ACCEPT") == ["text/html", "application/json"]
        assert headers["accept"] == "text/html"
        assert headers.accepts("application/json")


class TestQueryParams:
    def test_to_dict_single_values(self) -> None:
        assert QueryParams(b"done=true&page=2").to_dict() == {"done": "true", "page": "2"}

    def test_to_dict_repeated_keys(self) -> None:
        assert QueryParams(b"tag=a&tag=b").to_dict() == {"tag": ["a", "b"]}

    def test_empty(self) -> None:
        assert QueryParams().to_dict() == {}

    def test_blank_values_kept(self) -> None:
        assert QueryParams(b"q=").get("q") == ""


class TestRequestData:
    async def test_json_body(self) -> None:
        request = _request(body=b'{"text": "milk"}', content_type="application/json")
        assert await request.data() == {"text": "milk"}

    async def test_json_without_content_type(self) -> None:
        assert await _request(body=b"[1, 2]").data() == [1, 2]

    async def test_empty_body_is_empty_dict(self) -> None:
        assert await _request(content_type="application/json").data() == {}

    async def test_form_body(self) -> None:
        request = _request(
            body=b"text=milk&done=",
            content_type="application/x-www-form-urlencoded",
        )
        assert await request.data() == {"text": "milk", "done": ""}

    async def test_malformed_json(self) -> None:
        request = _request(body=b"{nope", content_type="application/json")
        with pytest.raises(BadRequest):
            await request.data()

    async def test_unsupported_type(self) -> None:
        request = _request(body=b"<x/>", content_type="application/xml")
        with pytest.raises(UnsupportedMediaType):
            await request.data()

    async def test_data_is_cached(self) -> None:
        request = _request(body=b'{"a": 1}')
        first = await request.data()
        assert await request.data() is first


class TestRequestTransformations:
    def test_with_context_returns_new_request(self) -> None:
        request = _request()
        updated = request.with_context({"user": "ada"})
        assert updated.context == {"user": "ada"}
        assert request.context == {}

    def test_with_payload(self) -> None:
        updated = _request().with_payload({"id": 1}, 201)
        assert updated.payload is not None
        assert updated.payload.data == {"id": 1}
        assert updated.payload.status == 201

    def test_content_length(self) -> None:
        request = _request(body=b"{}")
        assert request.content_length is None
        sized = Request.from_asgi(
            {"method": "POST", "path": "/", "headers": [(b"content-length", b"12")]},
            _unreachable,
        )
        assert sized.content_length == 12

    async def test_body_shared_with_copies(self) -> None:
        request = _request(body=b'{"a": 1}')
        assert await request.with_context({"user": "ada"}).data() == {"a": 1}
        assert await request.body() == b'{"a": 1}'
