"""
Controllers.

A controller is a class whose ``<action>_action`` methods handle requests.
Positional URL parameters are passed to ``init`` and to the action::

    class UserController(Controller):
        def show_action(self, user_id):
            self.view.user = self.tables["users"].find(int(user_id))

After the action returns, ``views/<controller>/<action>.html`` is rendered.
Helpers that produce their own output (``json``, ``redirect`` ...) raise
``NoView`` to skip that step.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, NoReturn, Optional, Type, Union

from jinja2 import Environment
from starlette.requests import Request
from starlette.responses import Response

from mini_engine.core.config import Settings
from mini_engine.core.errors import NoView
from mini_engine.database.table import TableRegistry

from .session import SessionStore
from .view import ViewObject

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass
class ResponseBuffer:
    """Status, headers and body accumulated while a request is handled."""

    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=lambda: {"Content-Type": HTML_CONTENT_TYPE})
    chunks: List[str] = field(default_factory=list)

    def write(self, text: str) -> None:
        self.chunks.append(str(text))

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    @property
    def body(self) -> str:
        return "".join(self.chunks)

    def reset(self) -> None:
        self.status_code = 200
        self.headers = {"Content-Type": HTML_CONTENT_TYPE}
        self.chunks = []

    def to_response(self) -> Response:
        return Response(content=self.body, status_code=self.status_code, headers=self.headers)


@dataclass
class RequestContext:
    """Everything a controller can reach while handling one request."""

    request: Request
    settings: Settings
    templates: Environment
    session: SessionStore
    tables: Optional[TableRegistry] = None
    body: bytes = b""
    response: ResponseBuffer = field(default_factory=ResponseBuffer)


class Controller:
    """Base class for application controllers."""

    def __init__(self, context: RequestContext) -> None:
        self.context = context
        self.request = context.request
        self.settings = context.settings
        self.session = context.session
        self.tables = context.tables
        self.view = ViewObject(context.templates)

    @property
    def response(self) -> ResponseBuffer:
        return self.context.response

    def init(self, *params: str) -> None:
        """Hook run before every action with the same parameters."""

    def echo(self, *parts: Any) -> None:
        for part in parts:
            self.response.write(part)

    def draw(self, template: str) -> str:
        """Render ``template`` with this controller's view variables."""
        return self.view.partial(template, self.view)

    def json(self, data: Any) -> NoReturn:
        self.response.set_header("Content-Type", "application/json")
        self.response.write(json.dumps(data, ensure_ascii=False))
        self.noview()

    def cors_json(self, data: Any) -> NoReturn:
        self.response.set_header("Access-Control-Allow-Origin", "*")
        self.response.set_header("Access-Control-Allow-Methods", "GET")
        self.json(data)

    def noview(self) -> NoReturn:
        raise NoView()

    def redirect(self, uri: str, code: int = 302) -> NoReturn:
        self.response.status_code = code
        self.response.set_header("Location", uri)
        self.noview()

    def alert(self, message: str, uri: Optional[str] = None) -> NoReturn:
        """Show a browser alert, then optionally navigate to ``uri``."""
        script = f"<script>alert({json.dumps(message)});"
        if uri:
            script += f"location.href={json.dumps(uri)}"
        script += "</script>"
        self.response.write(script)
        self.noview()


def controller_name(controller_cls: type) -> str:
    """``FooBarController`` -> ``foo_bar``."""
    name = controller_cls.__name__
    if name.endswith("Controller") and name != "Controller":
        name = name[: -len("Controller")]
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class ControllerRegistry:
    """Explicit mapping from route name to controller class.

    The ``error`` route is pre-registered with the framework's
    ``ErrorController`` and may be overridden.
    """

    def __init__(self) -> None:
        from .error_handler import ErrorController

        self._controllers: Dict[str, Type[Controller]] = {"error": ErrorController}

    def register(
        self, name_or_cls: Union[str, Type[Controller]], controller_cls: Optional[Type[Controller]] = None
    ) -> Any:
        """
        Register a controller.

        Usable as ``register("user", UserController)``, as ``register(UserController)``
        (name derived from the class) and as a decorator in both forms.
        """
        if isinstance(name_or_cls, str):
            name = name_or_cls.lower()
            if controller_cls is None:

                def decorator(cls: Type[Controller]) -> Type[Controller]:
                    self._controllers[name] = cls
                    return cls

                return decorator
            self._controllers[name] = controller_cls
            return controller_cls

        self._controllers[controller_name(name_or_cls)] = name_or_cls
        return name_or_cls

    def get(self, name: str) -> Optional[Type[Controller]]:
        return self._controllers.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._controllers

    def names(self) -> List[str]:
        return sorted(self._controllers)
