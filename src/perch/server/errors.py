"""Turning exceptions raised while serving into responses.

Handlers registered with ``App.error()`` are looked up by exception
type first, then by status. Service errors arrive unwrapped.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import GeneralError, HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.server.negotiation import negotiate

logger = logging.getLogger("perch.server")

ErrorHandlers = dict[int | type, Callable[..., Any]]


def _lookup(handlers: ErrorHandlers, exc: Exception, status: int) -> Callable[..., Any] | None:
    return handlers.get(type(exc)) or handlers.get(status)


async def _run(handler: Callable[..., Any], request: Request, exc: Exception) -> Response:
    # handlers take (), (request) or (request, exc)
    arity = len(inspect.signature(handler).parameters)
    return negotiate(await invoke(handler, *(request, exc)[: min(arity, 2)]))


def error_response(error: HTTPError) -> Response:
    """The default JSON body for *error*, with its extra headers."""
    response = Response.from_json(error.to_dict(), error.status)
    for name, value in error.headers:
        response = response.with_header(name, value)
    return response


async def handle_http_error(exc: HTTPError, request: Request, handlers: ErrorHandlers) -> Response:
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    handler = _lookup(handlers, exc, exc.status)
    if handler is None:
        return error_response(exc)
    response = await _run(handler, request, exc)
    # a plain value from the handler keeps the error's status
    return response.with_status(exc.status) if response.status == 200 else response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    handlers: ErrorHandlers,
    debug: bool,
) -> Response:
    """Answer an unexpected exception with a 500.

    The traceback is logged on ``perch.server``. With ``debug`` the
    exception text is included in the message.
    """
    logger.exception("500 %s %s", request.method, request.path)
    handler = _lookup(handlers, exc, 500)
    if handler is not None:
        return await _run(handler, request, exc)
    return error_response(GeneralError(f"{type(exc).__name__}: {exc}") if debug else GeneralError())
