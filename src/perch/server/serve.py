"""Server construction.

``App.listen()`` needs a server handle it can return before traffic is
served, so the service registry can run its setup hooks in between.
uvicorn's ``Server`` is exactly that: built from a config, started with
``run()`` (blocking) or ``serve()`` (awaitable).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import uvicorn

    from perch._internal.asgi import ASGIApp


def create_server(
    app: ASGIApp,
    host: str,
    port: int,
    *,
    log_level: str = "info",
) -> uvicorn.Server:
    """Build an uvicorn server for *app* without starting it.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        log_level: uvicorn log level name.
    """
    import uvicorn

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level,
        lifespan="on",
    )
    return uvicorn.Server(config)
