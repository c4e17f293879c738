"""Table metadata types: columns, indexes, relations and raw SQL fragments."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from mini_engine.core.errors import QueryError

INTEGER_TYPES = ("serial", "integer", "int")
JSON_TYPES = ("json", "jsonb")
COLUMN_TYPES = INTEGER_TYPES + JSON_TYPES + ("text", "varchar", "boolean", "geometry")

RELATION_KINDS = ("has_one", "has_many")

_DDL_TYPES = {
    "serial": {"postgresql": "SERIAL", "mysql": "INTEGER AUTO_INCREMENT", "mariadb": "INTEGER AUTO_INCREMENT"},
    "integer": {},
    "int": {},
    "text": {},
    "boolean": {},
    "json": {"postgresql": "JSONB"},
    "jsonb": {"postgresql": "JSONB"},
    "geometry": {},
}
_DDL_DEFAULTS = {
    "serial": "INTEGER",
    "integer": "INTEGER",
    "int": "INTEGER",
    "text": "TEXT",
    "boolean": "BOOLEAN",
    "json": "JSON",
    "jsonb": "JSON",
    "geometry": "GEOMETRY",
}


@dataclass(frozen=True)
class Column:
    """A typed column.

    JSON columns are serialized on write and parsed on read. Geometry columns
    carry GeoJSON mappings and are wrapped in ``ST_GeomFromGeoJSON`` /
    ``ST_AsGeoJSON`` at the SQL boundary.
    """

    type: str
    length: Optional[int] = None

    def __post_init__(self) -> None:
        if self.type not in COLUMN_TYPES:
            raise QueryError(f"Unsupported column type: {self.type}")

    @property
    def is_json(self) -> bool:
        return self.type in JSON_TYPES

    @property
    def is_geometry(self) -> bool:
        return self.type == "geometry"

    def encode(self, value: Any) -> Any:
        """Convert a Python value into the value bound to the statement."""
        if value is None:
            return None
        if self.is_json:
            return json.dumps(value, ensure_ascii=False)
        if self.is_geometry:
            return value if isinstance(value, str) else json.dumps(value)
        if self.type == "boolean":
            return bool(value)
        return value

    def decode(self, value: Any) -> Any:
        """Convert a fetched value into its Python representation."""
        if value is None:
            return None
        if self.is_json or self.is_geometry:
            if isinstance(value, (bytes, bytearray)):
                value = value.decode("utf-8")
            return json.loads(value) if isinstance(value, str) else value
        if self.type == "boolean":
            return bool(value)
        if self.type in INTEGER_TYPES:
            return int(value)
        return value

    def write_expression(self, placeholder: str) -> str:
        if self.is_geometry:
            return f"ST_GeomFromGeoJSON({placeholder})"
        return placeholder

    def read_expression(self, identifier: str) -> str:
        if self.is_geometry:
            return f"ST_AsGeoJSON({identifier})"
        return identifier

    def ddl_type(self, driver: str) -> str:
        if self.type == "varchar":
            return f"VARCHAR({self.length or 255})"
        return _DDL_TYPES[self.type].get(driver, _DDL_DEFAULTS[self.type])


@dataclass(frozen=True)
class Index:
    columns: Tuple[str, ...]
    unique: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.columns, str):
            object.__setattr__(self, "columns", (self.columns,))
        if not self.columns:
            raise QueryError("Columns not defined for index.")


@dataclass(frozen=True)
class Relation:
    """A lazily resolved link to another registered table.

    ``has_one``: the related row whose primary key equals this row's
    ``foreign_key`` value. ``has_many``: the related rows whose
    ``foreign_key`` column equals this row's primary key.
    """

    kind: str
    table: str
    foreign_key: str

    def __post_init__(self) -> None:
        if self.kind not in RELATION_KINDS:
            raise QueryError(f"Unsupported relation type: {self.kind}")


@dataclass(frozen=True)
class Raw:
    """An explicit raw SQL fragment for ``Rowset.search``.

    The fragment is inserted verbatim; bind values through ``params`` and
    ``:name`` placeholders rather than string formatting.
    """

    sql: str
    params: Mapping[str, Any] = field(default_factory=dict)
