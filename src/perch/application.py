"""perch Application — the service registry on top of the transport.

Services are plain objects with some of ``get``, ``create``, ``update``,
``patch`` and ``remove``. Registering one binds it under a normalized
path, runs the mixin pipeline over it and hands it to every provider,
which wires it onto the transport::

    from perch import Application, rest

    app = Application().configure(rest())
    app.use("/todos", TodoService())
    app.run()

Two lifecycle phases: registration (services, mixins, providers, plain
middleware) and serving. ``setup()`` is the barrier between them; after
it has run, registering a service raises ``SetupAlreadyCompletedError``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from perch.app import App
from perch.config import AppConfig
from perch.errors import SetupAlreadyCompletedError
from perch.mixins import DEFAULT_MIXINS, Mixin
from perch.services.builder import BoundService, ServiceBuilder
from perch.services.flatten import flatten, is_branch
from perch.services.protocol import METHODS, is_service, normalize_path

if TYPE_CHECKING:
    import uvicorn

logger = logging.getLogger("perch.services")

# A provider wires one bound service onto the transport
Provider = Callable[[str, BoundService, dict[str, Any]], None]


class Application(App):
    """A perch app that serves services.

    Thread safety:
        Registration is single-threaded and happens before serving.
        ``_setup`` is not locked; never register services while
        ``setup()`` runs.
    """

    __slots__ = (
        "_mounted_uris",
        "_pending_setup",
        "_setup",
        "methods",
        "mixins",
        "providers",
        "providers_router_use",
        "rest",
        "services",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        super().__init__(config)
        self.methods: list[str] = list(METHODS)
        self.mixins: list[Mixin] = list(DEFAULT_MIXINS)
        self.services: dict[str, BoundService] = {}
        self.providers: list[Provider] = []
        self.providers_router_use: dict[str, Callable[[str], Any]] = {}
        self.rest: dict[str, Callable[..., Any]] | None = None
        self._setup: bool = False
        self._mounted_uris: set[str] = set()
        self._pending_setup: list[Awaitable[Any]] = []
        self.on_startup(self._startup)

    # -- Registration --

    def service(
        self,
        location: str,
        service: Any = None,
        options: dict[str, Any] | None = None,
    ) -> Any:
        """Look up, or bind, the service at *location*.

        ``app.service("todos")`` returns the bound service (or ``None``).
        ``app.service("todos", TodoService())`` binds it and returns the
        app. A ``Branch`` binds every leaf of the tree under *location*.

        Raises:
            SetupAlreadyCompletedError: If ``setup()`` has already run.
            ConfigurationError: If a router tree contains itself.
        """
        if service is None:
            return self.services.get(normalize_path(location))

        if is_branch(service):
            for path, leaf in flatten(location, service):
                self.service(path, leaf, options)
            return self

        if self._setup:
            msg = (
                f"Cannot register a service at {location!r} after app.setup() "
                "has been called."
            )
            raise SetupAlreadyCompletedError(msg)

        path = normalize_path(location)

        builder = ServiceBuilder(service)
        for mixin in self.mixins:
            mixin(builder, self)
        bound = builder.build()

        prepare = getattr(bound, "_setup", None)
        if callable(prepare):
            self._defer(prepare(self, path))

        for provider in self.providers:
            provider(path, bound, options or {})

        if path in self.services:
            logger.debug("Replacing service at %r", path)
        else:
            logger.debug("Registered service %s at %r", type(service).__name__, path)
        self.services[path] = bound
        return self

    def use(self, *args: Any) -> App:
        """Register a service, or fall back to transport middleware.

        ``app.use("/todos", auth, TodoService())`` registers the service
        with ``auth`` running before each of its REST handlers. Anything
        that is not a service (middleware, mounts, other apps) goes to
        ``App.use``.
        """
        if len(args) >= 2 and isinstance(args[0], str) and is_service(args[-1], tuple(self.methods)):
            location, *middleware, candidate = args
            return self.service(location, candidate, {"middleware": middleware})
        return super().use(*args)

    def register_service(self, location: str, service: Any, *middleware: Any) -> Application:
        """Register *service* without the service/middleware check of ``use``."""
        return self.service(location, service, {"middleware": list(middleware)})

    def register_middleware(self, *args: Any) -> Application:
        """Add transport middleware without the check ``use`` makes."""
        App.use(self, *args)
        return self

    def configure(self, fn: Callable[[Application], Any]) -> Application:
        """Run a plugin function against this app."""
        fn(self)
        return self

    def configure_router_use(self) -> Application:
        """Mount every provider's deferred handler not mounted yet.

        Safe to call repeatedly; each URI is mounted once.
        """
        for uri, mount in list(self.providers_router_use.items()):
            if uri in self._mounted_uris:
                continue
            mount(uri)
            self._mounted_uris.add(uri)
        return self

    # -- Lifecycle --

    def setup(self, server: Any = None) -> Application:
        """Run every service's ``setup(app, path)`` hook in registration order.

        Closes registration. Hooks that return awaitables finish during
        server startup, before the first request.
        """
        for path, service in self.services.items():
            hook = getattr(service, "setup", None)
            if callable(hook):
                self._defer(hook(self, path))
        self._setup = True
        logger.debug("Set up %d service(s)", len(self.services))
        return self

    def listen(self, host: str | None = None, port: int | None = None) -> uvicorn.Server:
        """Build the server, set up services, return the server handle."""
        server = super().listen(host, port)
        self.setup(server)
        return server

    async def _startup(self) -> None:
        if not self._setup:
            self.setup()
        pending, self._pending_setup = self._pending_setup, []
        for awaitable in pending:
            await awaitable

    def _defer(self, result: Any) -> None:
        if inspect.isawaitable(result):
            self._pending_setup.append(result)

    def _freeze(self) -> None:
        self.configure_router_use()
        super()._freeze()
