"""
Application Entry Point.

This module builds the FastAPI application that serves a Mini Engine site:
logging, request logging middleware, the last-resort exception handler and a
catch-all route handing every request to the dispatcher.

Typical wiring::

    tables = TableRegistry(Database.from_settings(settings))
    tables.register(User)

    controllers = ControllerRegistry()
    controllers.register(IndexController)

    app = create_app(settings, controllers=controllers, tables=tables)

and run it with any ASGI server, e.g. ``uvicorn myapp:app``.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from mini_engine.core.config import Settings, get_settings
from mini_engine.core.logging_config import get_logger, setup_logging
from mini_engine.database.table import TableRegistry

from .controller import ControllerRegistry
from .dispatcher import Dispatcher
from .exception_handlers import setup_exception_handlers
from .middleware import RequestLoggingMiddleware
from .router import Matcher, Router
from .view import create_template_environment

logger = get_logger(__name__)

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def create_app(
    settings: Optional[Settings] = None,
    controllers: Optional[ControllerRegistry] = None,
    tables: Optional[TableRegistry] = None,
    matcher: Optional[Matcher] = None,
) -> FastAPI:
    """
    Build the ASGI application.

    Args:
        settings: Application settings; read from the environment when omitted
        controllers: Registered controllers
        tables: Registered tables, shared by every request
        matcher: Custom route matcher consulted before the default routing

    Returns:
        The FastAPI application
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, production=settings.is_production)

    dispatcher = Dispatcher(
        controllers or ControllerRegistry(),
        Router(matcher),
        settings,
        create_template_environment(settings.app_root),
        tables,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Close the database connection on shutdown."""
        logger.info(f"Starting up {settings.app_name}...")
        yield
        logger.info(f"Shutting down {settings.app_name}...")
        if tables is not None:
            try:
                tables.bulk_commit()
            finally:
                tables.database.close()

    app = FastAPI(
        title=settings.app_name,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.add_middleware(RequestLoggingMiddleware)
    setup_exception_handlers(app)

    @app.api_route("/{path:path}", methods=HTTP_METHODS, include_in_schema=False)
    async def handle(request: Request) -> Response:
        body = await request.body()
        return await run_in_threadpool(dispatcher.dispatch, request, body)

    return app
