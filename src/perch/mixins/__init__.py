"""Mixins — functions that extend a service before it is bound.

A mixin is any callable ``mixin(builder, app)``. The registry applies
``app.mixins`` in order to every service it binds; adding a mixin later
does not touch services bound earlier.
"""

from collections.abc import Callable
from typing import Any

from perch.mixins.events import ServiceEvent, ServiceEvents, event_mixin
from perch.services.builder import ServiceBuilder

Mixin = Callable[[ServiceBuilder, Any], None]

DEFAULT_MIXINS: tuple[Mixin, ...] = (event_mixin,)

__all__ = ["DEFAULT_MIXINS", "Mixin", "ServiceEvent", "ServiceEvents", "event_mixin"]
