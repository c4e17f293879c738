"""
Mini Engine Server Package.

This package contains the web side of the framework.

Modules:
    app: FastAPI application factory.
    router: URL to controller/action mapping.
    dispatcher: Runs controllers, renders views, routes failures to the error controller.
    controller: Controller base class, controller registry and response buffer.
    error_handler: Default error controller.
    view: Template variables and partial rendering.
    session: Signed cookie session.
"""

from .app import create_app
from .controller import Controller, ControllerRegistry, RequestContext, ResponseBuffer
from .dispatcher import Dispatcher
from .error_handler import ErrorController, default_error_handler
from .router import Route, Router
from .session import SessionStore
from .view import ViewObject, create_template_environment

__all__ = [
    "Controller",
    "ControllerRegistry",
    "Dispatcher",
    "ErrorController",
    "RequestContext",
    "ResponseBuffer",
    "Route",
    "Router",
    "SessionStore",
    "ViewObject",
    "create_app",
    "create_template_environment",
    "default_error_handler",
]
