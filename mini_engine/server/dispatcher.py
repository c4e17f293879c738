"""
Request Dispatcher.

Turns one request into one response:

1. the router resolves ``(controller, action, params)``;
2. the controller is built, ``init(*params)`` and ``<action>_action(*params)``
   run;
3. ``views/<controller>/<action>.html`` is rendered unless the action raised
   ``NoView``.

Missing controllers or actions and any exception raised on the way are handed
to the ``error`` controller. If that one fails too, the failure is logged and
an empty 500 is returned.
"""

from __future__ import annotations

import threading
from typing import Optional, Sequence

from jinja2 import Environment
from starlette.requests import Request
from starlette.responses import Response

from mini_engine.core.config import Settings
from mini_engine.core.errors import NotFound, NoView
from mini_engine.core.logging_config import get_logger
from mini_engine.database.table import TableRegistry

from .controller import ControllerRegistry, RequestContext
from .router import Router
from .session import SessionStore

logger = get_logger(__name__)

ERROR_CONTROLLER = "error"
ERROR_ACTION = "error"


def request_path(request: Request) -> str:
    """The still percent-encoded request path."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return request.url.path


class Dispatcher:
    """Route requests to controllers, one request at a time."""

    def __init__(
        self,
        controllers: ControllerRegistry,
        router: Router,
        settings: Settings,
        templates: Environment,
        tables: Optional[TableRegistry] = None,
    ) -> None:
        self.controllers = controllers
        self.router = router
        self.settings = settings
        self.templates = templates
        self.tables = tables
        self._lock = threading.Lock()

    def build_context(self, request: Request, body: bytes = b"") -> RequestContext:
        return RequestContext(
            request=request,
            settings=self.settings,
            templates=self.templates,
            session=SessionStore.from_request(request, self.settings),
            tables=self.tables,
            body=body,
        )

    def dispatch(self, request: Request, body: bytes = b"") -> Response:
        """
        Handle one request.

        Args:
            request: The incoming request
            body: The already-read request body

        Returns:
            The finished response, session cookie included.
        """
        with self._lock:
            context = self.build_context(request, body)
            try:
                route = self.router.route(request_path(request))
                logger.debug(f"Dispatching {request.method} {request.url.path} to {route.controller}:{route.action}")
                self.run_controller_action(context, route.controller, route.action, route.params)
            except Exception as exc:
                self.run_error(context, exc)

            response = context.response.to_response()
            context.session.apply(response)
            return response

    def run_controller_action(
        self, context: RequestContext, controller: str, action: str, params: Sequence[object]
    ) -> None:
        controller_cls = self.controllers.get(controller)
        if controller_cls is None:
            self.run_error(context, NotFound(f"Controller not found: {controller}:{action}"))
            return

        method_name = f"{action}_action"
        if not action.isidentifier() or not callable(getattr(controller_cls, method_name, None)):
            self.run_error(context, NotFound(f"Action not found: {controller}:{action}"))
            return

        try:
            instance = controller_cls(context)
            instance.init(*params)
            getattr(instance, method_name)(*params)
            context.response.write(instance.draw(f"{controller}/{action}"))
        except NoView:
            pass
        except Exception as exc:
            self.run_error(context, exc)

    def run_error(self, context: RequestContext, error: BaseException) -> None:
        """Run the error controller; its own failures end in an empty 500."""
        context.response.reset()
        controller_cls = self.controllers.get(ERROR_CONTROLLER)
        try:
            if controller_cls is None:
                raise NotFound(f"Controller not found: {ERROR_CONTROLLER}:{ERROR_ACTION}") from error
            instance = controller_cls(context)
            instance.init(error)
            getattr(instance, f"{ERROR_ACTION}_action")(error)
            context.response.write(instance.draw(f"{ERROR_CONTROLLER}/{ERROR_ACTION}"))
        except NoView:
            pass
        except Exception:
            logger.error("Error controller failed while handling an error", exc_info=True)
            context.response.reset()
            context.response.status_code = 500
