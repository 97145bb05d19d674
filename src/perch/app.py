"""perch transport application.

The HTTP layer services are mounted onto: verb-specific route
registration, middleware and path mounts, runtime settings, error
handlers, lifespan hooks and the server. ``perch.application.Application``
builds the service registry on top of it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch._internal.types import ErrorHandler, Hook
from perch.config import AppConfig
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Middleware, Next
from perch.routing import Mount, Route, Router
from perch.server.handler import dispatch, handle_request, run_chain

if TYPE_CHECKING:
    import uvicorn


@dataclass(slots=True)
class _PendingRoute:
    """One verb on one path, recorded until the router is built."""

    path: str
    method: str
    handlers: tuple[Middleware, ...]


class RouteBuilder:
    """Verb-specific registration for one path, returned by ``app.route()``.

    Every verb method takes one or more handlers that run in order::

        app.route("/todos").post(authenticate, create_todo).get(list_todos)
    """

    __slots__ = ("_app", "path")

    def __init__(self, app: App, path: str) -> None:
        self._app = app
        self.path = path

    def _add(self, method: str, handlers: tuple[Middleware, ...]) -> RouteBuilder:
        if not handlers:
            msg = f"{method} {self.path!r} needs at least one handler."
            raise TypeError(msg)
        self._app._check_not_frozen()
        self._app._pending_routes.append(_PendingRoute(self.path, method, handlers))
        return self

    def get(self, *handlers: Middleware) -> RouteBuilder:
        return self._add("GET", handlers)

    def post(self, *handlers: Middleware) -> RouteBuilder:
        return self._add("POST", handlers)

    def put(self, *handlers: Middleware) -> RouteBuilder:
        return self._add("PUT", handlers)

    def patch(self, *handlers: Middleware) -> RouteBuilder:
        return self._add("PATCH", handlers)

    def delete(self, *handlers: Middleware) -> RouteBuilder:
        return self._add("DELETE", handlers)


class App:
    """The perch transport.

    Registration happens up front. The first request or lifespan event
    builds the router and seals the app; only ``settings`` may change
    after that. Sealing takes a lock, so concurrent first requests build
    the router once.
    """

    __slots__ = (
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_mount_list",
        "_mounts",
        "_pending_routes",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "settings",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self.settings: dict[str, Any] = {}
        self._pending_routes: list[_PendingRoute] = []
        self._middleware_list: list[Middleware] = []
        self._mount_list: list[Mount] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Hook] = []
        self._shutdown_hooks: list[Hook] = []
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # built by _freeze
        self._router: Router | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._mounts: tuple[Mount, ...] = ()

    # -- Settings --

    def set(self, name: str, value: Any) -> App:
        """Store a runtime setting. Settings stay mutable after freeze."""
        self.settings[name] = value
        return self

    def setting(self, name: str, default: Any = None) -> Any:
        """Read a runtime setting."""
        return self.settings.get(name, default)

    def enable(self, name: str) -> App:
        return self.set(name, True)

    def disable(self, name: str) -> App:
        return self.set(name, False)

    def enabled(self, name: str) -> bool:
        return bool(self.settings.get(name))

    def disabled(self, name: str) -> bool:
        return not self.settings.get(name)

    # -- Route registration --

    def route(self, path: str) -> RouteBuilder:
        """Start verb-specific registration for *path*.

        Args:
            path: URL path pattern. Use ``{param}`` or ``{param:int}``
                for path parameters.
        """
        return RouteBuilder(self, path)

    # -- Middleware and mounts --

    def use(self, *args: Any) -> App:
        """Add global middleware, or mount handlers under a path.

        ``app.use(mw, ...)`` adds middleware that wraps every request.
        ``app.use("/path", handler, ...)`` mounts handlers that run for
        the path and everything below it, after that path's route
        handlers have called ``next``. Another ``App`` can be mounted
        the same way; it sees paths relative to the mount point.
        """
        if not args:
            msg = "use() needs at least one middleware."
            raise TypeError(msg)
        self._check_not_frozen()

        if isinstance(args[0], str):
            path, handlers = args[0], args[1:]
            for handler in handlers:
                if isinstance(handler, App):
                    handler = _SubApp(path, handler)
                self._mount_list.append(Mount(path, handler))
            return self

        self._middleware_list.extend(args)
        return self

    # -- Error handlers and hooks --

    def error(self, key: int | type[Exception]) -> Callable[[ErrorHandler], ErrorHandler]:
        """Decorator answering a status code or exception type with *func*.

        The handler may take ``()``, ``(request)`` or ``(request, exc)``.
        """

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[key] = func
            return func

        return decorator

    def on_startup(self, func: Hook) -> Hook:
        """Run *func* when the server starts, before any request is served."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Hook) -> Hook:
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def listen(self, host: str | None = None, port: int | None = None) -> uvicorn.Server:
        """Build the server for this app and return its handle.

        The server does not accept connections until ``run()`` (or
        ``await serve()``) is called on the handle.
        """
        from perch.server.serve import create_server

        return create_server(
            self,
            host or self.config.host,
            port or self.config.port,
            log_level=self.config.log_level,
        )

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Listen and serve until interrupted."""
        self.listen(host, port).run()

    # -- Request handling --

    async def handle(self, request: Request, next: Next) -> Response:
        """Dispatch *request* through this app as middleware of another app.

        Requests nobody here answers continue with the parent's *next*.
        """
        self._ensure_frozen()
        assert self._router is not None
        router, mounts, indent = self._router, self._mounts, self.config.json_indent

        async def route(req: Request) -> Response:
            return await dispatch(req, router, mounts, next, json_indent=indent)

        return await run_chain(self._middleware, request, route, json_indent=indent)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None
        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            mounts=self._mounts,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
            json_indent=self.config.json_indent,
        )

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        """Answer the server's lifespan messages.

        A failing startup hook is reported as ``lifespan.startup.failed``
        and ends the conversation.
        """
        self._ensure_frozen()
        replies = {"lifespan.startup": self._startup_hooks, "lifespan.shutdown": self._shutdown_hooks}
        while True:
            kind = (await receive())["type"]
            hooks = replies.get(kind)
            if hooks is None:
                continue
            try:
                await self._run_hooks(hooks)
            except Exception as exc:
                if kind != "lifespan.startup":
                    raise
                await send({"type": "lifespan.startup.failed", "message": str(exc)})
                return
            await send({"type": f"{kind}.complete"})
            if kind == "lifespan.shutdown":
                return

    @staticmethod
    async def _run_hooks(hooks: list[Hook]) -> None:
        for hook in hooks:
            await invoke(hook)

    # -- Sealing --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if not self._frozen:
                self._freeze()

    def _freeze(self) -> None:
        """Build the router and snapshot middleware and mounts.

        Called with ``_freeze_lock`` held.
        """
        router = Router()
        for pending in self._pending_routes:
            router.add(Route(pending.path, pending.handlers, frozenset({pending.method})))
        router.compile()
        self._router = router
        self._middleware = tuple(self._middleware_list)
        self._mounts = tuple(self._mount_list)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "The app is already serving; register routes, services, "
                "middleware and mounts before the first request."
            )
            raise RuntimeError(msg)


class _SubApp:
    """Adapter that runs a mounted App with paths relative to its mount."""

    __slots__ = ("_app", "_prefix")

    def __init__(self, prefix: str, app: App) -> None:
        self._prefix = "/" + prefix.strip("/")
        self._app = app

    async def __call__(self, request: Request, next: Next) -> Response:
        path = request.path
        if self._prefix != "/" and path.startswith(self._prefix):
            path = path[len(self._prefix) :] or "/"
        inner = replace(request, path=path)

        async def resume(_req: Request) -> Response:
            return await next(request)

        return await self._app.handle(inner, resume)
