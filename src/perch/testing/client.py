"""In-process client that drives an app through its ASGI callable."""

from __future__ import annotations

import json as json_module
from typing import Any
from urllib.parse import urlencode

from perch.app import App
from perch.http.response import Response


def _scope(method: str, target: str, query: dict[str, Any] | None, headers: dict[str, str]) -> dict[str, Any]:
    path, _, query_string = target.partition("?")
    if query:
        query_string = "&".join(filter(None, (query_string, urlencode(query, doseq=True))))
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }


class _Capture:
    """Collects what the app sends and rebuilds a Response from it."""

    def __init__(self) -> None:
        self.status = 0
        self.headers: list[tuple[bytes, bytes]] = []
        self.chunks: list[bytes] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            self.headers = list(message.get("headers", ()))
        elif message["type"] == "http.response.body":
            self.chunks.append(message.get("body", b""))

    def response(self) -> Response:
        content_type = ""
        rest: list[tuple[str, str]] = []
        for raw_name, raw_value in self.headers:
            name, value = raw_name.decode("latin-1"), raw_value.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name != "content-length":
                rest.append((name, value))
        return Response(b"".join(self.chunks), status=self.status, content_type=content_type, headers=tuple(rest))


class TestClient:
    """Send requests to an app without a server.

    Entering the client freezes the app and runs its startup hooks, so
    an ``Application`` has set its services up before the first request;
    leaving runs the shutdown hooks::

        async with TestClient(app) as client:
            response = await client.post("/todos", json={"text": "milk"})
            assert response.status == 201
    """

    __test__ = False
    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __aenter__(self) -> TestClient:
        self.app._ensure_frozen()
        await self.app._run_hooks(self.app._startup_hooks)
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app._run_hooks(self.app._shutdown_hooks)

    async def get(self, path: str, **options: Any) -> Response:
        return await self.request("GET", path, **options)

    async def post(self, path: str, **options: Any) -> Response:
        return await self.request("POST", path, **options)

    async def put(self, path: str, **options: Any) -> Response:
        return await self.request("PUT", path, **options)

    async def patch(self, path: str, **options: Any) -> Response:
        return await self.request("PATCH", path, **options)

    async def delete(self, path: str, **options: Any) -> Response:
        return await self.request("DELETE", path, **options)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
        json: Any = None,
        query: dict[str, Any] | None = None,
    ) -> Response:
        """Send one request and return the app's answer.

        ``json=`` encodes the value as the body and sets ``content-type``.
        ``query=`` is added to any query string already in *path*.
        """
        sent = dict(headers or {})
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            sent.setdefault("content-type", "application/json")
        if body:
            sent.setdefault("content-length", str(len(body)))

        messages = [{"type": "http.request", "body": body, "more_body": False}]

        async def receive() -> dict[str, Any]:
            return messages.pop(0) if messages else {"type": "http.disconnect"}

        capture = _Capture()
        await self.app(_scope(method, path, query, sent), receive, capture)
        return capture.response()
