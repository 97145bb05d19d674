"""Router trees: nested groups of services mounted under one location.

A ``Branch`` maps path segments to nodes. Each node is either another
``Branch`` or a concrete service::

    api = Branch({
        "todos": TodoService(),
        "admin": Branch({"users": UserService()}),
    })
    app.service("/api", api)   # binds api/todos and api/admin/users

A mapping with a single ``"router"`` key is accepted as a branch too.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from perch.errors import ConfigurationError

_LEGACY_KEY = "router"


@dataclass(frozen=True, slots=True)
class Branch:
    """A router node: segment label -> child node."""

    routes: Mapping[str, Any]


def is_branch(node: Any) -> bool:
    """Whether *node* is a router node rather than a concrete service."""
    if isinstance(node, Branch):
        return True
    return (
        isinstance(node, Mapping)
        and len(node) == 1
        and isinstance(node.get(_LEGACY_KEY), Mapping)
    )


def _children(node: Any) -> Mapping[str, Any]:
    if isinstance(node, Branch):
        return node.routes
    return node[_LEGACY_KEY]


def join_path(location: str, segment: str) -> str:
    """Join two path pieces with exactly one ``/`` between them."""
    head = location.rstrip("/")
    tail = segment.lstrip("/")
    if not head:
        return tail
    if not tail:
        return head
    return f"{head}/{tail}"


def flatten(location: str, node: Any) -> list[tuple[str, Any]]:
    """Walk a router tree depth-first and list ``(path, service)`` leaves.

    Leaves come out in the tree's iteration order. Paths are not
    normalized here; the registry does that when it binds each leaf.

    Raises:
        ConfigurationError: If a branch contains itself.
    """
    leaves: list[tuple[str, Any]] = []
    _walk(location, node, leaves, ())
    return leaves


def _walk(
    location: str,
    node: Any,
    leaves: list[tuple[str, Any]],
    trail: tuple[int, ...],
) -> None:
    if not is_branch(node):
        leaves.append((location, node))
        return

    if id(node) in trail:
        msg = f"Router under {location!r} contains itself."
        raise ConfigurationError(msg)

    trail = (*trail, id(node))
    for segment, child in _children(node).items():
        _walk(join_path(location, segment), child, leaves, trail)
