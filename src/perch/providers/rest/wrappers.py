"""Method wrappers — route handlers that call one service method.

``WRAPPERS["create"](service)`` returns a handler for ``POST``. Each
handler reads the service's leading arguments from the request, builds
``params``, awaits the method and hands the result to the next handler
as the request's ``payload``. Serializing the payload is left to the
formatter mounted at the same path.

Leading arguments per method:

- ``get(params)`` and ``remove(params)``
- ``create(data, params)``
- ``update(id, data, params)`` and ``patch(id, data, params)``, where
  ``id`` is the ``{id}`` path parameter, or ``None`` on a path without
  one. Services written for the body-only ``update(data, params)`` form
  must take the extra leading ``id``.
"""

from collections.abc import Awaitable, Callable, Mapping
from functools import partial
from typing import Any

from perch._internal.invoke import invoke
from perch._internal.types import Params
from perch.errors import MethodNotAllowed
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next

Extractor = Callable[[Request], Awaitable[tuple[Any, ...]]]

# Service method -> HTTP verb it answers
VERBS: dict[str, str] = {
    "create": "POST",
    "get": "GET",
    "update": "PUT",
    "patch": "PATCH",
    "remove": "DELETE",
}

CREATED = 201
NO_CONTENT = 204


async def no_args(request: Request) -> tuple[Any, ...]:
    return ()


async def body_args(request: Request) -> tuple[Any, ...]:
    return (await request.data(),)


async def id_body_args(request: Request) -> tuple[Any, ...]:
    return (request.path_params.get("id"), await request.data())


def build_params(request: Request) -> Params:
    """``{"query": ..., **path params except id, **request.context}``."""
    path_params = {key: value for key, value in request.path_params.items() if key != "id"}
    return {"query": request.query.to_dict(), **path_params, **request.context}


def allowed_verbs(service: Any) -> frozenset[str]:
    return frozenset(verb for name, verb in VERBS.items() if callable(getattr(service, name, None)))


def finalize(method: str, data: Any) -> tuple[Any, int]:
    """Pick the status for a service result and strip its ``response`` key.

    The caller's data is never mutated; a copy is returned when the
    ``response`` key has to go.
    """
    status = 200
    if not data:
        status = NO_CONTENT
    elif method == "create":
        status = CREATED

    if isinstance(data, Mapping) and "response" in data:
        response = data["response"]
        if isinstance(response, Mapping) and response.get("status"):
            status = int(response["status"])
        data = {key: value for key, value in data.items() if key != "response"}

    if isinstance(data, Mapping) and status == 200:
        errors = data.get("errors")
        if errors and not isinstance(errors, (str, bytes)):
            status = 400

    return data, status


def method_wrapper(method: str, extract: Extractor, service: Any) -> Callable[[Request, Next], Awaitable[Response]]:
    """Build the route handler that calls ``service.<method>``."""

    async def handler(request: Request, next: Next) -> Response:
        func = getattr(service, method, None)
        if not callable(func):
            raise MethodNotAllowed(
                allowed_verbs(service),
                f"Method `{method}` is not supported by this endpoint.",
            )

        args = await extract(request)
        data = await invoke(func, *args, build_params(request))
        data, status = finalize(method, data)
        return await next(request.with_payload(data, status))

    handler.__name__ = f"rest_{method}"
    handler.__qualname__ = f"rest_{method}"
    return handler


WRAPPERS: dict[str, Callable[[Any], Callable[[Request, Next], Awaitable[Response]]]] = {
    "get": partial(method_wrapper, "get", no_args),
    "create": partial(method_wrapper, "create", body_args),
    "update": partial(method_wrapper, "update", id_body_args),
    "patch": partial(method_wrapper, "patch", id_body_args),
    "remove": partial(method_wrapper, "remove", no_args),
}
