"""Service events — broadcast after every successful write.

The default mixin. Every service that implements ``create``, ``update``,
``patch`` or ``remove`` gains an event channel and announces each
successful call::

    todos = app.service("todos")
    todos.on("created", lambda event: print(event.data))

    async for event in todos.subscribe():
        ...

Events carry the service path, which is known only once the registry
binds the service, so the mixin hooks ``_setup`` to learn it.

Thread safety:
    - ServiceEvent is a frozen dataclass (immutable, safe to share)
    - ServiceEvents uses a Lock to protect listeners and subscribers
    - Each subscriber gets its own asyncio.Queue
"""

import asyncio
import threading
import time
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from functools import wraps
from typing import Any

from perch._internal.invoke import invoke
from perch.services.builder import ServiceBuilder

# Service method -> event announced after it succeeds
EVENTS: dict[str, str] = {
    "create": "created",
    "update": "updated",
    "patch": "patched",
    "remove": "removed",
}

Listener = Callable[["ServiceEvent"], Any]


@dataclass(frozen=True, slots=True)
class ServiceEvent:
    """One successful write on a service."""

    event: str
    path: str | None
    data: Any
    params: dict[str, Any]
    timestamp: float = field(default_factory=time.time)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


class ServiceEvents:
    """Event channel of one bound service.

    Listeners registered with ``on()`` are called in registration order;
    a listener that raises fails the emitting call. ``subscribe()``
    returns an async iterator backed by its own bounded queue.
    """

    __slots__ = ("_listeners", "_lock", "_subscribers", "path")

    def __init__(self, path: str | None = None) -> None:
        self.path = path
        self._listeners: dict[str, list[Listener]] = {}
        self._subscribers: set[asyncio.Queue[ServiceEvent | None]] = set()
        self._lock = threading.Lock()

    def on(self, event: str, listener: Listener) -> Listener:
        """Call *listener* (sync or async) for every *event*."""
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)
        return listener

    def off(self, event: str, listener: Listener | None = None) -> None:
        """Remove *listener*, or every listener of *event* when omitted."""
        with self._lock:
            if listener is None:
                self._listeners.pop(event, None)
                return
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

    async def emit(self, event: str, data: Any, params: dict[str, Any] | None = None) -> ServiceEvent:
        """Announce *event* to listeners and subscribers."""
        item = ServiceEvent(event=event, path=self.path, data=data, params=params or {})
        with self._lock:
            listeners = list(self._listeners.get(event, ()))
            subscribers = set(self._subscribers)

        for listener in listeners:
            await invoke(listener, item)
        for queue in subscribers:
            try:
                queue.put_nowait(item)
            except asyncio.QueueFull:
                # Drop event for slow consumers rather than blocking
                pass
        return item

    async def subscribe(self) -> AsyncIterator[ServiceEvent]:
        """Yield every event emitted from now on until ``close()``."""
        queue: asyncio.Queue[ServiceEvent | None] = asyncio.Queue(maxsize=256)
        with self._lock:
            self._subscribers.add(queue)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield item
        finally:
            with self._lock:
                self._subscribers.discard(queue)

    def close(self) -> None:
        """Stop every subscriber iterator."""
        with self._lock:
            for queue in self._subscribers:
                try:
                    queue.put_nowait(None)
                except asyncio.QueueFull:
                    pass
            self._subscribers.clear()


def _announce(method: Callable[..., Any], event: str, events: ServiceEvents) -> Callable[..., Any]:
    @wraps(method)
    async def announced(*args: Any) -> Any:
        result = await invoke(method, *args)
        params = args[-1] if args and isinstance(args[-1], dict) else {}
        await events.emit(event, result, params)
        return result

    return announced


def event_mixin(builder: ServiceBuilder, app: Any) -> None:
    """Give a writable service ``on``/``off``/``emit``/``subscribe``.

    Services that already have ``on`` or ``emit`` are left alone.
    """
    writes = [name for name in EVENTS if builder.has(name)]
    if not writes or builder.has("on") or builder.has("emit"):
        return

    events = ServiceEvents()
    for name in writes:
        builder.wrap(name, lambda method, name=name: _announce(method, EVENTS[name], events))

    previous = builder.get("_setup")

    def _setup(app: Any, path: str) -> Any:
        events.path = path
        if callable(previous):
            return previous(app, path)
        return None

    builder.define("_setup", _setup)
    builder.define("events", events)
    builder.define("on", events.on)
    builder.define("off", events.off)
    builder.define("emit", events.emit)
    builder.define("subscribe", events.subscribe)
