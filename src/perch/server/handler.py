"""ASGI handler — translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, dispatches through global middleware, the
matched route's handler chain and the path mounts, and sends the
Response back through ASGI send().

Dispatch order for one request::

    global middleware -> route handlers -> mounts matching the path -> 404

A route handler that calls ``next`` falls through to the mounts, which
is how the REST formatter serializes a method wrapper's payload. When no
route matches, the mounts still run and the router's NotFound or
MethodNotAllowed is raised only if none of them answers.
"""

from collections.abc import Callable, Sequence
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.errors import HTTPError, MethodNotAllowed, NotFound, PayloadTooLarge
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Middleware, Next
from perch.routing import Mount, Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.negotiation import negotiate
from perch.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Middleware, ...],
    mounts: tuple[Mount, ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
    max_content_length: int,
    json_indent: int | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    try:
        length = request.content_length
        if length is not None and length > max_content_length:
            raise PayloadTooLarge(f"Body of {length} bytes exceeds {max_content_length}")

        async def route(req: Request) -> Response:
            return await dispatch(req, router, mounts, json_indent=json_indent)

        response = await run_chain(middleware, request, route, json_indent=json_indent)

    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)

    await send_response(response, send)


async def run_chain(
    handlers: Sequence[Middleware],
    request: Request,
    last: Next,
    *,
    json_indent: int | None = None,
) -> Response:
    """Run *handlers* in order, each with a ``next`` that continues the chain.

    ``last`` runs when every handler has called ``next``. Plain return
    values are negotiated into Responses at each step.
    """

    async def call(index: int, req: Request) -> Response:
        if index == len(handlers):
            return await last(req)

        async def next_(r: Request) -> Response:
            return await call(index + 1, r)

        result = await invoke(handlers[index], req, next_)
        return negotiate(result, json_indent=json_indent)

    return await call(0, request)


async def dispatch(
    request: Request,
    router: Router,
    mounts: tuple[Mount, ...],
    last: Next | None = None,
    *,
    json_indent: int | None = None,
) -> Response:
    """Route *request* and run the matched handlers, then the mounts.

    *last* runs when every handler and mount called ``next``; by default
    that is a 404. Mounted sub-apps pass their parent's ``next`` here.
    """
    matching = [mount.handler for mount in mounts if mount.matches(request.path)]

    try:
        match = router.match(request.method, request.path)
    except (NotFound, MethodNotAllowed) as exc:
        unmatched = exc

        async def give_up(req: Request) -> Response:
            if last is not None:
                return await last(req)
            raise unmatched

        return await run_chain(matching, request, give_up, json_indent=json_indent)

    async def not_found(req: Request) -> Response:
        if last is not None:
            return await last(req)
        raise NotFound(f"No handler answered {req.method} {req.path!r}")

    async def fall_through(req: Request) -> Response:
        return await run_chain(matching, req, not_found, json_indent=json_indent)

    request = request.with_path_params(match.path_params)
    return await run_chain(match.route.handlers, request, fall_through, json_indent=json_indent)
