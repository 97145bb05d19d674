"""Path routing for services.

Service paths become route patterns such as ``/todos`` or
``/users/{user_id:int}/todos``. A ``{name}`` segment captures one path
piece; ``{name:int}`` and ``{name:float}`` convert it before it reaches
the service's ``params``.

``Router`` answers "which handlers run for this method and path", and
``Mount`` answers "does this prefix handler see this path". Both are
built during registration and only read while serving.
"""

import re
from dataclasses import dataclass
from typing import Any

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.middleware.protocol import Middleware

# converter name -> (pattern for one segment, conversion)
CONVERTERS: dict[str, tuple[re.Pattern[str], type]] = {
    "str": (re.compile(r"[^/]+"), str),
    "int": (re.compile(r"-?\d+"), int),
    "float": (re.compile(r"-?\d+(?:\.\d+)?"), float),
}


def split_path(path: str) -> list[str]:
    """Non-empty pieces of *path*; repeated and edge slashes vanish."""
    return [piece for piece in path.split("/") if piece]


@dataclass(frozen=True, slots=True)
class Segment:
    """One piece of a route pattern: literal text or a named capture."""

    text: str
    name: str | None = None
    kind: str = "str"

    @property
    def captures(self) -> bool:
        return self.name is not None

    def accepts(self, piece: str) -> bool:
        if self.name is None:
            return piece == self.text
        return CONVERTERS[self.kind][0].fullmatch(piece) is not None

    def convert(self, piece: str) -> Any:
        return CONVERTERS[self.kind][1](piece)


def parse_path(path: str) -> list[Segment]:
    """Split a route pattern into segments.

    Raises:
        ConfigurationError: For ``<name>`` captures or unknown converters.
    """
    segments: list[Segment] = []
    for piece in split_path(path):
        if piece.startswith("<") and piece.endswith(">"):
            msg = f"Route path {path!r} uses <param> syntax; write {{param}} instead."
            raise ConfigurationError(msg)
        if not (piece.startswith("{") and piece.endswith("}")):
            segments.append(Segment(piece))
            continue
        name, _, kind = piece[1:-1].partition(":")
        kind = kind or "str"
        if kind not in CONVERTERS:
            msg = f"Unknown converter {kind!r} in route path {path!r}."
            raise ConfigurationError(msg)
        segments.append(Segment(piece, name, kind))
    return segments


@dataclass(frozen=True, slots=True)
class Route:
    """Handlers that answer some methods on one path pattern.

    ``handlers`` run in order; each receives the request and a ``next``
    callable that continues with the following one.
    """

    path: str
    handlers: tuple[Middleware, ...]
    methods: frozenset[str]


@dataclass(frozen=True, slots=True)
class RouteMatch:
    route: Route
    path_params: dict[str, Any]


class _Node:
    __slots__ = ("capture", "literals", "routes")

    def __init__(self) -> None:
        self.literals: dict[str, _Node] = {}
        self.capture: tuple[Segment, _Node] | None = None
        self.routes: dict[str, Route] = {}


class Router:
    """Route table keyed by path segments.

    Literal segments take precedence over captures at the same depth.
    Adding the same path and method twice keeps the later route.
    """

    __slots__ = ("_root", "_sealed")

    def __init__(self) -> None:
        self._root = _Node()
        self._sealed = False

    def add(self, route: Route) -> None:
        if self._sealed:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for segment in parse_path(route.path):
            if not segment.captures:
                node = node.literals.setdefault(segment.text, _Node())
                continue
            if node.capture is None:
                node.capture = (segment, _Node())
            elif node.capture[0].name != segment.name:
                msg = (
                    f"Route {route.path!r} names parameter {segment.name!r} where "
                    f"another route already uses {node.capture[0].name!r}."
                )
                raise ConfigurationError(msg)
            node = node.capture[1]

        for method in route.methods:
            node.routes[method] = route

    def compile(self) -> None:
        """Seal the table; later ``add`` calls raise."""
        self._sealed = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Find the route for *method* on *path*.

        Raises:
            NotFound: If no pattern matches *path*.
            MethodNotAllowed: If patterns match but none answers *method*.
        """
        found = _walk(self._root, split_path(path), {})
        if found is None:
            raise NotFound(f"No route matches {method} {path!r}")
        node, params = found
        route = node.routes.get(method)
        if route is None:
            raise MethodNotAllowed(frozenset(node.routes))
        return RouteMatch(route, params)


def _walk(node: _Node, pieces: list[str], params: dict[str, Any]) -> tuple[_Node, dict[str, Any]] | None:
    if not pieces:
        return (node, params) if node.routes else None

    head, rest = pieces[0], pieces[1:]
    literal = node.literals.get(head)
    if literal is not None:
        found = _walk(literal, rest, params)
        if found is not None:
            return found

    if node.capture is not None:
        segment, child = node.capture
        if segment.accepts(head):
            return _walk(child, rest, {**params, segment.name: segment.convert(head)})
    return None


class Mount:
    """A handler mounted under a path prefix with ``app.use(path, handler)``.

    Sees the prefix itself and everything below it; captures in the
    prefix match like route captures. ``/`` sees every path.
    """

    __slots__ = ("_segments", "handler", "path")

    def __init__(self, path: str, handler: Any) -> None:
        self.path = path
        self.handler = handler
        self._segments = parse_path(path)

    def __repr__(self) -> str:
        return f"Mount({self.path!r}, {self.handler!r})"

    def matches(self, path: str) -> bool:
        pieces = split_path(path)
        if len(pieces) < len(self._segments):
            return False
        return all(segment.accepts(piece) for segment, piece in zip(self._segments, pieces))
