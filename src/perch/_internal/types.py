"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Error handler — receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]

# Lifecycle hook — sync or async, no arguments
Hook: TypeAlias = Callable[[], Any]

# Service params passed as the trailing positional argument of every
# service method: {"query": {...}, **path_params, **request.context}
Params: TypeAlias = dict[str, Any]
