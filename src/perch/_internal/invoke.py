"""Invoke helpers — call sync or async callables uniformly.

Service methods, lifecycle hooks and error handlers can be ``def`` or
``async def``. Any code that calls one of them goes through ``invoke`` so
the sync/async check lives in exactly one place.

Usage::

    from perch._internal.invoke import invoke

    data = await invoke(service.get, params)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable.

    The awaited value is the single completion signal of the call: it is
    produced at most once, and an exception raised by *func* (or by the
    awaitable it returned) propagates unchanged.
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
