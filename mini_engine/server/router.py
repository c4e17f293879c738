"""
Request Routing.

Maps a request path onto ``(controller, action, params)``::

    /                     -> index / index / ()
    /user                 -> user  / index / ()
    /user/show/42/a%20b   -> user  / show  / ("42", "a b")

A custom matcher may claim a path first, e.g. to alias ``/robots.txt``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union
from urllib.parse import unquote_plus

from mini_engine.core.errors import MiniEngineError

DEFAULT_CONTROLLER = "index"
DEFAULT_ACTION = "index"


@dataclass(frozen=True)
class Route:
    controller: str
    action: str
    params: Tuple[str, ...] = ()


MatchResult = Union[Route, Sequence, None]
Matcher = Callable[[str], MatchResult]


class Router:
    """Resolve request paths, consulting an optional custom matcher first."""

    def __init__(self, matcher: Optional[Matcher] = None) -> None:
        self.matcher = matcher

    def route(self, uri: str) -> Route:
        path = uri.split("?", 1)[0]
        if self.matcher is not None:
            result = self.matcher(path)
            if result:
                return self._coerce(result)

        segments = path.lstrip("/").split("/")
        controller = segments[0].lower() or DEFAULT_CONTROLLER
        action = (segments[1].lower() if len(segments) > 1 else "") or DEFAULT_ACTION
        params = tuple(unquote_plus(segment) for segment in segments[2:])
        return Route(controller, action, params)

    @staticmethod
    def _coerce(result: MatchResult) -> Route:
        if isinstance(result, Route):
            return result
        if isinstance(result, (list, tuple)) and len(result) in (2, 3):
            params = tuple(result[2]) if len(result) == 3 else ()
            return Route(result[0], result[1], params)
        raise MiniEngineError(f"Custom matcher returned an unsupported route: {result!r}")
