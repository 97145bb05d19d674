"""Service shape, path normalization and the service/middleware check.

A service is any object exposing one or more of the CRUD methods below.
All are optional; the REST provider answers 405 for the ones missing::

    class TodoService:
        async def get(self, params): ...
        async def create(self, data, params): ...
        async def update(self, id, data, params): ...
        async def patch(self, id, data, params): ...
        async def remove(self, params): ...

        def _setup(self, app, path): ...   # right after binding, before providers
        def setup(self, app, path): ...    # once, when the app starts

Methods may be ``def`` or ``async def``; the returned value is the
result, a raised exception is the failure.
"""

from typing import Any

# Recognized service methods, in registration order
METHODS: tuple[str, ...] = ("get", "create", "update", "patch", "remove")

# Capabilities that mark an object as transport middleware (an App, a router)
MIDDLEWARE_MARKERS: tuple[str, ...] = ("handle", "set")


def normalize_path(location: str) -> str:
    """Strip every leading and trailing ``/`` from a service location.

    Idempotent: ``normalize_path(normalize_path(p)) == normalize_path(p)``,
    and ``"/todos/"``, ``"todos"`` and ``"//todos"`` share one key.
    """
    return location.strip("/")


def has_method(obj: Any, *names: str) -> bool:
    """Whether *obj* exposes a callable attribute for any of *names*."""
    return any(callable(getattr(obj, name, None)) for name in names)


def is_service(obj: Any, methods: tuple[str, ...] = METHODS) -> bool:
    """Treat *obj* as a service iff it exposes at least one of *methods*
    and none of ``handle``/``set``.

    Everything else passed to ``Application.use`` is transport middleware.
    """
    if obj is None or has_method(obj, *MIDDLEWARE_MARKERS):
        return False
    return has_method(obj, *methods)
