"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

The same shape is used for global middleware (``app.use(mw)``), for
per-route handlers (``app.route(path).post(mw, handler)``) and for
path mounts (``app.use("/todos", formatter)``).
"""

from perch.middleware.protocol import Middleware, Next

__all__ = ["Middleware", "Next"]
