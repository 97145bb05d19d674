"""Service wrapping for the mixin pipeline.

Mixins never touch the object the caller registered. Each registration
wraps it in a ``ServiceBuilder``; mixins define or wrap attributes on the
builder, and ``build()`` freezes the result into a ``BoundService``::

    def timestamps(builder, app):
        if builder.has("create"):
            builder.wrap("create", lambda create: stamp_created_at(create))

Attribute lookups on a ``BoundService`` check the mixin overrides first
and fall back to the original object.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from perch.services.protocol import METHODS


class ServiceBuilder:
    """Mutable staging area for one service registration.

    Thread safety:
        Used only during registration, by the single registering thread.
    """

    __slots__ = ("_overrides", "service")

    def __init__(self, service: Any) -> None:
        self.service = service
        self._overrides: dict[str, Any] = {}

    def has(self, name: str) -> bool:
        """Whether the service (or an earlier mixin) provides a callable *name*."""
        return callable(self.get(name))

    def get(self, name: str, default: Any = None) -> Any:
        """Current value of *name*: the latest override, else the original's."""
        if name in self._overrides:
            return self._overrides[name]
        return getattr(self.service, name, default)

    def define(self, name: str, value: Any) -> ServiceBuilder:
        """Add or replace attribute *name* on the bound service."""
        self._overrides[name] = value
        return self

    def wrap(self, name: str, wrapper: Callable[[Any], Any]) -> ServiceBuilder:
        """Replace *name* with ``wrapper(current)``.

        Raises:
            AttributeError: If the service has no callable *name*.
        """
        current = self.get(name)
        if not callable(current):
            msg = f"{type(self.service).__name__} has no method {name!r} to wrap."
            raise AttributeError(msg)
        self._overrides[name] = wrapper(current)
        return self

    def methods(self) -> tuple[str, ...]:
        """Service methods currently available, in canonical order."""
        return tuple(name for name in METHODS if self.has(name))

    def build(self) -> BoundService:
        return BoundService(self.service, dict(self._overrides))


class BoundService:
    """A registered service: the original object plus mixin overrides.

    Read-only. The registry stores these, providers route to them.
    """

    __slots__ = ("_overrides", "_service")

    def __init__(self, service: Any, overrides: dict[str, Any]) -> None:
        object.__setattr__(self, "_service", service)
        object.__setattr__(self, "_overrides", overrides)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not slots
        overrides = object.__getattribute__(self, "_overrides")
        if name in overrides:
            return overrides[name]
        return getattr(object.__getattribute__(self, "_service"), name)

    def __setattr__(self, name: str, value: Any) -> None:
        msg = f"Bound service {type(self._service).__name__} is read-only."
        raise AttributeError(msg)

    def __delattr__(self, name: str) -> None:
        msg = f"Bound service {type(self._service).__name__} is read-only."
        raise AttributeError(msg)

    def __dir__(self) -> list[str]:
        return sorted({*dir(self._service), *self._overrides})

    def __repr__(self) -> str:
        extra = ", ".join(sorted(self._overrides))
        return f"BoundService({self._service!r}, overrides=[{extra}])"


def unwrap(service: Any) -> Any:
    """The object originally registered behind a ``BoundService``."""
    if isinstance(service, BoundService):
        return object.__getattribute__(service, "_service")
    return service
