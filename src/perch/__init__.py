"""perch — services over HTTP.

Register plain objects with ``get``, ``create``, ``update``, ``patch``
and ``remove`` methods; perch binds them to paths, runs them through a
mixin pipeline and serves them as JSON endpoints.

Basic usage::

    from perch import Application, rest

    class Todos:
        def __init__(self):
            self.items = []

        async def get(self, params):
            return {"items": self.items}

        async def create(self, data, params):
            self.items.append(data)
            return data

    app = Application().configure(rest())
    app.use("/todos", Todos())
    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "Application",
    "BadRequest",
    "Branch",
    "ConfigurationError",
    "HTTPError",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "PerchError",
    "Request",
    "Response",
    "RestConfig",
    "SetupAlreadyCompletedError",
    "TestClient",
    "rest",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "Application":
        from perch.application import Application

        return Application

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name in ("Middleware", "Next"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("rest", "RestConfig"):
        from perch.providers import rest as _rest

        return getattr(_rest, name)

    if name == "Branch":
        from perch.services.flatten import Branch

        return Branch

    if name == "TestClient":
        from perch.testing.client import TestClient

        return TestClient

    if name in (
        "BadRequest",
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "PerchError",
        "SetupAlreadyCompletedError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
