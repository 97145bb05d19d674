"""REST provider — exposes every service over HTTP.

Usage::

    from perch import Application, rest

    app = Application().configure(rest())
    app.service("todos", TodoService())

Each service at path ``P`` answers::

    POST   /P  -> create(data, params)
    GET    /P  -> get(params)
    PUT    /P  -> update(id, data, params)
    PATCH  /P  -> patch(id, data, params)
    DELETE /P  -> remove(params)

The results are serialized by a formatter mounted at ``/P``. The
default one answers JSON; pass ``rest(my_formatter)`` or
``rest(RestConfig(handler=my_formatter))`` to replace it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from perch.errors import NotAcceptable
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Middleware, Next
from perch.providers.rest.wrappers import WRAPPERS

if TYPE_CHECKING:
    from perch.application import Application
    from perch.services.builder import BoundService

logger = logging.getLogger("perch.rest")

SETTING = "perch rest"


async def json_formatter(request: Request, next: Next) -> Response:
    """Serialize the pending payload as JSON.

    Raises:
        NotAcceptable: If the client does not accept ``application/json``.
    """
    payload = request.payload
    if payload is None:
        return await next(request)
    if not request.headers.accepts("application/json"):
        raise NotAcceptable("This endpoint only produces application/json.")
    return Response.from_json(payload.data, payload.status)


async def attach_context(request: Request, next: Next) -> Response:
    """Give every request a fresh ``context`` bag."""
    return await next(request.with_context({}))


@dataclass(frozen=True, slots=True)
class RestConfig:
    """REST provider options.

    Attributes:
        handler: Formatter mounted at every service path.
    """

    handler: Middleware = json_formatter


def rest(config: RestConfig | Middleware | None = None) -> Callable[["Application"], None]:
    """Build the installer for ``app.configure()``."""
    if config is None:
        formatter: Middleware = json_formatter
    elif isinstance(config, RestConfig):
        formatter = config.handler
    else:
        formatter = config

    def install(app: "Application") -> None:
        app.enable(SETTING)
        app.use(attach_context)
        app.rest = dict(WRAPPERS)

        def provider(path: str, service: "BoundService", options: dict[str, Any]) -> None:
            if app.disabled(SETTING):
                return

            wrappers = app.rest or WRAPPERS
            middleware = list(options.get("middleware") or ())
            uri = path if path.startswith("/") else f"/{path}"
            route = app.route(uri)
            route.post(*middleware, wrappers["create"](service))
            route.get(*middleware, wrappers["get"](service))
            route.put(*middleware, wrappers["update"](service))
            route.patch(*middleware, wrappers["patch"](service))
            route.delete(*middleware, wrappers["remove"](service))

            def mount(uri: str) -> None:
                app.use(uri, formatter)

            app.providers_router_use[uri] = mount
            logger.debug("REST routes for %r at %s", path, uri)

        app.providers.append(provider)

    return install
