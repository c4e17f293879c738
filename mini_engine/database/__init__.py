"""
Database layer for Mini Engine.

Structure:
- connection.py: ``Database``, a lazily opened connection with ``::name``
  identifier escaping and statement logging
- schema.py: column, index and relation metadata, ``Raw`` SQL fragments
- table.py: ``Table`` definitions and the ``TableRegistry``
- row.py: ``Row``, one record with diffed updates and lazy relations
- rowset.py: ``Rowset``, the immutable query builder
"""

from .connection import Database, create_engine, normalize_url
from .row import Row
from .rowset import Rowset, RowsetCursor
from .schema import Column, Index, Raw, Relation
from .table import BULK_INSERT_THRESHOLD, Table, TableRegistry

__all__ = [
    "BULK_INSERT_THRESHOLD",
    "Column",
    "Database",
    "Index",
    "Raw",
    "Relation",
    "Row",
    "Rowset",
    "RowsetCursor",
    "Table",
    "TableRegistry",
    "create_engine",
    "normalize_url",
]
