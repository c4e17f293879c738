"""Mini Engine.

A small MVC web framework:

- ``mini_engine.server``: routing of ``/<controller>/<action>/<params...>``
  to controller classes, Jinja2 views with partials, a signed cookie session.
- ``mini_engine.database``: a lightweight table layer with an immutable query
  builder, typed columns, lazy relations and bulk insert.
- ``mini_engine.core``: settings, logging and the exception hierarchy.

Typical application
-------------------

1. Declare tables (``Table`` subclasses) and register them on a
   ``TableRegistry``.
2. Write controllers (``Controller`` subclasses with ``<action>_action``
   methods) and register them on a ``ControllerRegistry``.
3. Put templates under ``views/<controller>/<action>.html``.
4. Build the ASGI app with ``create_app`` and serve it.
"""

from .core import (
    ConfigurationError,
    DatabaseError,
    DuplicateKeyError,
    MiniEngineError,
    NotFound,
    NoView,
    QueryError,
    Settings,
    ViewNotFoundError,
    get_settings,
)
from .database import Column, Database, Index, Raw, Relation, Row, Rowset, Table, TableRegistry
from .http_client import http
from .server import Controller, ControllerRegistry, Route, Router, create_app

__version__ = "0.1.0"

__all__ = [
    "Column",
    "ConfigurationError",
    "Controller",
    "ControllerRegistry",
    "Database",
    "DatabaseError",
    "DuplicateKeyError",
    "Index",
    "MiniEngineError",
    "NoView",
    "NotFound",
    "QueryError",
    "Raw",
    "Relation",
    "Route",
    "Router",
    "Row",
    "Rowset",
    "Settings",
    "Table",
    "TableRegistry",
    "ViewNotFoundError",
    "create_app",
    "get_settings",
    "http",
]
