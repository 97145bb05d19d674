"""perch exception hierarchy.

Shared across the transport, the service registry, the REST provider and
the error pipeline so every module raises and catches the same types.
"""

from dataclasses import dataclass
from typing import Any


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app or service configuration is invalid."""


class SetupAlreadyCompletedError(PerchError):
    """Raised when a service is registered after ``app.setup()`` ran.

    Registration after setup is never recovered; the caller must register
    every service before the app starts serving.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, the method wrappers or by services themselves.
    The request pipeline catches these and dispatches to the matching
    ``@app.error()`` handler, or renders them as a JSON error payload.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

    @property
    def name(self) -> str:
        """The error kind, e.g. ``"MethodNotAllowed"``."""
        if type(self) is HTTPError:
            return "HTTPError"
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        """JSON payload shape sent to clients."""
        return {
            "name": self.name,
            "message": self.detail,
            "code": self.status,
            "className": _class_name(self.name),
        }


def _class_name(name: str) -> str:
    out: list[str] = []
    for i, ch in enumerate(name):
        if ch.isupper() and i:
            out.append("-")
        out.append(ch.lower())
    return "".join(out)


class BadRequest(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """400 — the request body or parameters are malformed."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class NotAuthenticated(HTTPError):  # noqa: N818
    """401 — credentials are missing or invalid."""

    def __init__(self, detail: str = "Not Authenticated") -> None:
        super().__init__(status=401, detail=detail)


class PaymentError(HTTPError):
    """402 — payment required."""

    def __init__(self, detail: str = "Payment Required") -> None:
        super().__init__(status=402, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403 — authenticated but not permitted."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — the endpoint exists but does not support this method.

    When *allowed* is given, an ``Allow`` header lists the valid methods.
    """

    def __init__(self, allowed: frozenset[str] = frozenset(), detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        if not detail and allowed:
            detail = f"Method not allowed. Allowed methods: {allow_value}"
        elif not detail:
            detail = "Method not allowed."
        super().__init__(
            status=405,
            detail=detail,
            headers=(("Allow", allow_value),) if allowed else (),
        )


class NotAcceptable(HTTPError):  # noqa: N818
    """406 — no representation matches the ``Accept`` header."""

    def __init__(self, detail: str = "Not Acceptable") -> None:
        super().__init__(status=406, detail=detail)


class Timeout(HTTPError):  # noqa: N818
    """408 — the request took too long."""

    def __init__(self, detail: str = "Timeout") -> None:
        super().__init__(status=408, detail=detail)


class Conflict(HTTPError):  # noqa: N818
    """409 — the request conflicts with current state."""

    def __init__(self, detail: str = "Conflict") -> None:
        super().__init__(status=409, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413 — the request body exceeds ``AppConfig.max_content_length``."""

    def __init__(self, detail: str = "Payload Too Large") -> None:
        super().__init__(status=413, detail=detail)


class UnsupportedMediaType(HTTPError):  # noqa: N818
    """415 — the request body has a content type perch cannot parse."""

    def __init__(self, detail: str = "Unsupported Media Type") -> None:
        super().__init__(status=415, detail=detail)


class Unprocessable(HTTPError):  # noqa: N818
    """422 — well-formed but semantically invalid."""

    def __init__(self, detail: str = "Unprocessable") -> None:
        super().__init__(status=422, detail=detail)


class GeneralError(HTTPError):
    """500 — unexpected server-side failure."""

    def __init__(self, detail: str = "Internal Server Error") -> None:
        super().__init__(status=500, detail=detail)


class Unavailable(HTTPError):  # noqa: N818
    """503 — a downstream dependency is unavailable."""

    def __init__(self, detail: str = "Unavailable") -> None:
        super().__init__(status=503, detail=detail)
