"""The request a handler chain works on.

A Request is frozen. What the pipeline learns along the way (the matched
path parameters, the ``context`` bag, the service result waiting to be
formatted) is attached with ``with_*`` copies.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import parse_qs

from perch._internal.asgi import Receive
from perch.errors import BadRequest, UnsupportedMediaType
from perch.http.headers import Headers
from perch.http.query import QueryParams
from perch.http.response import Payload

FORM_TYPE = "application/x-www-form-urlencoded"


def _is_json(mime: str) -> bool:
    return mime in ("", "application/json") or mime.endswith("+json")


@dataclass(frozen=True, slots=True)
class Request:
    """One HTTP request.

    ``context`` carries values other middleware hand to services (the
    current user, a tenant id); its entries end up in ``params``.
    Copies made with ``with_*`` share the body, so it is read once.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    _receive: Receive
    path_params: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)
    payload: Payload | None = None
    _read: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive, path_params: dict[str, Any] | None = None) -> Request:
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(scope.get("headers", ())),
            query=QueryParams(scope.get("query_string", b"")),
            _receive=receive,
            path_params=dict(path_params or {}),
        )

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """Declared body size, or None when absent or not a number."""
        declared = self.headers.get("content-length", "")
        return int(declared) if declared.isdigit() else None

    def with_path_params(self, path_params: dict[str, Any]) -> Request:
        return replace(self, path_params=path_params)

    def with_context(self, context: dict[str, Any]) -> Request:
        return replace(self, context=context)

    def with_payload(self, data: Any, status: int = 200) -> Request:
        return replace(self, payload=Payload(data=data, status=status))

    async def body(self) -> bytes:
        """The whole body; the ASGI messages are consumed on first call."""
        if "body" not in self._read:
            chunks: list[bytes] = []
            more = True
            while more:
                message = await self._receive()
                chunks.append(message.get("body", b""))
                more = message.get("more_body", False)
            self._read["body"] = b"".join(chunks)
        return self._read["body"]

    async def data(self) -> Any:
        """The body as the value handed to services.

        JSON, or a body with no Content-Type, is decoded as JSON. A
        url-encoded form becomes a dict of first values. An empty body
        is ``{}``.

        Raises:
            BadRequest: If the body is not valid JSON.
            UnsupportedMediaType: For any other content type.
        """
        if "data" in self._read:
            return self._read["data"]

        raw = await self.body()
        mime = (self.content_type or "").partition(";")[0].strip().lower()
        if not raw:
            value: Any = {}
        elif _is_json(mime):
            try:
                value = json.loads(raw)
            except ValueError as exc:
                raise BadRequest(f"Invalid JSON body: {exc}") from exc
        elif mime == FORM_TYPE:
            value = {key: values[0] for key, values in parse_qs(raw.decode("latin-1"), keep_blank_values=True).items()}
        else:
            raise UnsupportedMediaType(f"Cannot parse a {mime!r} request body")

        self._read["data"] = value
        return value
