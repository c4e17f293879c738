"""Table definitions and the registry that binds them to a database.

A table is declared as a subclass of ``Table`` holding static metadata::

    class Post(Table):
        name = "posts"
        columns = {
            "id": Column("serial"),
            "user_id": Column("integer"),
            "title": Column("varchar", length=200),
            "meta": Column("jsonb"),
        }
        indexes = {"posts_user": Index(("user_id",))}
        relations = {"author": Relation("has_one", "users", "user_id")}

and registered once at startup::

    tables = TableRegistry(database)
    tables.register(Post)
    tables["posts"].search({"user_id": 3}).order("id DESC")

The registry owns one bound instance per table and the per-table bulk insert
buffers, so nothing is cached at class level.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from typing import (
    Any,
    ClassVar,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from mini_engine.core.errors import DatabaseError, QueryError
from mini_engine.core.logging_config import get_logger

from .connection import Database
from .row import Row, column_property, relation_property
from .rowset import Rowset, SearchTerms
from .schema import Column, Index, Relation

logger = get_logger(__name__)

BULK_INSERT_THRESHOLD = 1000

TableType = TypeVar("TableType", bound="Table")


def _as_column(name: str, config: Union[Column, Mapping[str, Any]]) -> Column:
    if isinstance(config, Column):
        return config
    if "type" not in config:
        raise QueryError(f"Type not defined for column: {name}")
    return Column(type=config["type"], length=config.get("length"))


def _as_index(config: Union[Index, Mapping[str, Any]]) -> Index:
    if isinstance(config, Index):
        return config
    if "columns" not in config:
        raise QueryError("Columns not defined for index.")
    return Index(columns=tuple(config["columns"]), unique=bool(config.get("unique", False)))


def _as_relation(config: Union[Relation, Mapping[str, Any]]) -> Relation:
    if isinstance(config, Relation):
        return config
    return Relation(kind=config["type"], table=config["table"], foreign_key=config["foreign_key"])


class Table:
    """Base class for table definitions.

    Class attributes describe the table; an instance is created by
    ``TableRegistry.register`` and carries the bound database.
    """

    name: ClassVar[Optional[str]] = None
    primary_keys: ClassVar[Union[str, Sequence[str], None]] = None
    columns: ClassVar[Optional[Mapping[str, Any]]] = None
    indexes: ClassVar[Optional[Mapping[str, Any]]] = None
    relations: ClassVar[Optional[Mapping[str, Any]]] = None
    row_class: ClassVar[Type[Row]] = Row
    rowset_class: ClassVar[Type[Rowset]] = Rowset

    def __init__(self, registry: "TableRegistry") -> None:
        self.registry = registry
        self.database: Database = registry.database
        self.init()

        self.table_name: str = self.name or type(self).__name__.lower()
        primary_keys = self.primary_keys or ["id"]
        if isinstance(primary_keys, str):
            primary_keys = [primary_keys]
        self.primary_key_columns: List[str] = list(primary_keys)
        self.column_map: Dict[str, Column] = {
            col: _as_column(col, config) for col, config in (self.columns or {}).items()
        }
        self.index_map: Dict[str, Index] = {name: _as_index(config) for name, config in (self.indexes or {}).items()}
        self.relation_map: Dict[str, Relation] = {
            name: _as_relation(config) for name, config in (self.relations or {}).items()
        }
        self.row_type: Type[Row] = self._build_row_type()

    def init(self) -> None:
        """Hook for subclasses, called before the metadata is read."""

    def _build_row_type(self) -> Type[Row]:
        namespace: Dict[str, Any] = {}
        for col in self.column_map:
            if not hasattr(self.row_class, col):
                namespace[col] = column_property(col)
        for name in self.relation_map:
            if not hasattr(self.row_class, name):
                namespace[name] = relation_property(name)
        return type(f"{type(self).__name__}Row", (self.row_class,), namespace)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} table={self.table_name!r}>"

    # -- Helpers -----------------------------------------------------------

    def _value(self, col: str, value: Any, key: str, params: Dict[str, Any]) -> str:
        """Bind ``value`` as ``:key`` and return its (possibly wrapped) placeholder."""
        column = self.column_map.get(col)
        if column is None:
            params[key] = value
            return f":{key}"
        params[key] = column.encode(value)
        return column.write_expression(f":{key}")

    def _primary_key_terms(self, values: Sequence[Any], params: Dict[str, Any], identifiers: Dict[str, str]) -> str:
        if len(values) != len(self.primary_key_columns):
            raise QueryError("Primary key count mismatch.")
        terms = []
        for idx, key in enumerate(self.primary_key_columns):
            identifiers[f"id_col_{idx}"] = key
            params[f"id_val_{idx}"] = values[idx]
            terms.append(f"::id_col_{idx} = :id_val_{idx}")
        return " AND ".join(terms)

    # -- Queries -----------------------------------------------------------

    def search(self, terms: SearchTerms) -> Rowset:
        return self.rowset_class(self).search(terms)

    def find(self, key: Any) -> Optional[Row]:
        """
        Fetch one row by primary key.

        Args:
            key: A scalar for single-column keys, otherwise a sequence in
                ``primary_key_columns`` order.

        Raises:
            QueryError: The number of values does not match the primary key.
        """
        if isinstance(key, (str, bytes)) or not isinstance(key, Sequence):
            key = [key]
        if len(key) != len(self.primary_key_columns):
            raise QueryError("Primary key count mismatch.")
        return self.search(dict(zip(self.primary_key_columns, key))).first()

    def find_by(self, **terms: Any) -> Optional[Row]:
        """First row matching all the given column values."""
        return self.search(terms).first()

    def create_row(self, data: Optional[Mapping[str, Any]] = None) -> Row:
        """A pending row, inserted on its first ``save()``."""
        return self.row_type(self, data or {}, persisted=False)

    # -- Writes ------------------------------------------------------------

    def insert(self, data: Mapping[str, Any]) -> Row:
        """
        Insert one record and return it as stored.

        Raises:
            DuplicateKeyError: A unique constraint was violated.
            DatabaseError: The new primary key could not be determined.
        """
        params: Dict[str, Any] = {}
        identifiers: Dict[str, str] = {"table": self.table_name}
        cols = []
        vals = []
        for idx, (col, val) in enumerate(data.items()):
            identifiers[f"col_{idx}"] = col
            cols.append(f"::col_{idx}")
            vals.append(self._value(col, val, f"val_{idx}", params))

        driver = self.database.driver
        if cols:
            sql = f"INSERT INTO ::table ({', '.join(cols)}) VALUES ({', '.join(vals)})"
        elif driver in ("mysql", "mariadb"):
            sql = "INSERT INTO ::table () VALUES ()"
        else:
            sql = "INSERT INTO ::table DEFAULT VALUES"

        returning = driver == "postgresql"
        if returning:
            for idx, key in enumerate(self.primary_key_columns):
                identifiers[f"ret_{idx}"] = key
            sql += " RETURNING " + ", ".join(f"::ret_{idx}" for idx in range(len(self.primary_key_columns)))

        result = self.database.execute(sql, params, identifiers)
        primary_key = self._inserted_primary_key(data, result, returning)
        row = self.find(primary_key)
        if row is None:
            raise DatabaseError(f"Unable to read back inserted row from {self.table_name}.")
        return row

    def _inserted_primary_key(self, data: Mapping[str, Any], result: Any, returning: bool) -> List[Any]:
        if all(data.get(key) is not None for key in self.primary_key_columns):
            return [data[key] for key in self.primary_key_columns]
        if returning:
            returned = result.first()
            if returned is not None:
                return list(returned)
        elif len(self.primary_key_columns) == 1:
            last_id = self.database.last_insert_id(result)
            if last_id is not None:
                return [last_id]
        raise DatabaseError("Unable to get last insert id.")

    def update_by_primary_key(self, primary_key: Sequence[Any], changes: Mapping[str, Any]) -> None:
        if not changes:
            return
        params: Dict[str, Any] = {}
        identifiers: Dict[str, str] = {"table": self.table_name}
        update_terms = []
        for idx, (col, val) in enumerate(changes.items()):
            identifiers[f"col_{idx}"] = col
            update_terms.append(f"::col_{idx} = {self._value(col, val, f'val_{idx}', params)}")
        where = self._primary_key_terms(primary_key, params, identifiers)
        sql = f"UPDATE ::table SET {', '.join(update_terms)} WHERE {where}"
        self.database.execute(sql, params, identifiers)

    def delete_by_primary_key(self, primary_key: Sequence[Any]) -> None:
        params: Dict[str, Any] = {}
        identifiers: Dict[str, str] = {"table": self.table_name}
        where = self._primary_key_terms(primary_key, params, identifiers)
        self.database.execute(f"DELETE FROM ::table WHERE {where}", params, identifiers)

    # -- Bulk insert -------------------------------------------------------

    def bulk_insert(self, data: Mapping[str, Any]) -> None:
        """Queue a record; the queue is flushed as one INSERT at the threshold."""
        self.registry.bulk_add(self, data)

    def bulk_commit(self) -> int:
        """Flush the queued records of this table, returning how many were written."""
        return self.registry.bulk_flush(self)

    def insert_many(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Write ``records`` with a single multi-row INSERT."""
        if not records:
            return
        columns: List[str] = []
        for record in records:
            for col in record:
                if col not in columns:
                    columns.append(col)

        params: Dict[str, Any] = {}
        identifiers: Dict[str, str] = {"table": self.table_name}
        for col_idx, col in enumerate(columns):
            identifiers[f"col_{col_idx}"] = col
        rows_sql = []
        for row_idx, record in enumerate(records):
            placeholders = [
                self._value(col, record.get(col), f"v{row_idx}_{col_idx}", params)
                for col_idx, col in enumerate(columns)
            ]
            rows_sql.append(f"({', '.join(placeholders)})")
        cols_sql = ", ".join(f"::col_{idx}" for idx in range(len(columns)))
        sql = f"INSERT INTO ::table ({cols_sql}) VALUES {', '.join(rows_sql)}"
        self.database.execute(sql, params, identifiers)

    # -- DDL ---------------------------------------------------------------

    def create_table(self) -> None:
        """Create the table, its primary key and its indexes."""
        if not self.column_map:
            raise QueryError("Columns not defined.")
        driver = self.database.driver
        identifiers: Dict[str, str] = {"table": self.table_name}
        definitions = []
        for idx, (col, column) in enumerate(self.column_map.items()):
            identifiers[f"col_{idx}"] = col
            definitions.append(f"::col_{idx} {column.ddl_type(driver)}")
        if all(key in self.column_map for key in self.primary_key_columns):
            for idx, key in enumerate(self.primary_key_columns):
                identifiers[f"pk_{idx}"] = key
            pk_cols = ", ".join(f"::pk_{idx}" for idx in range(len(self.primary_key_columns)))
            definitions.append(f"PRIMARY KEY ({pk_cols})")
        self.database.execute(f"CREATE TABLE ::table ({', '.join(definitions)})", identifiers=identifiers)

        for index_name, index in self.index_map.items():
            index_identifiers = {"table": self.table_name, "index_name": index_name}
            for idx, col in enumerate(index.columns):
                index_identifiers[f"index_col_{idx}"] = col
            index_cols = ", ".join(f"::index_col_{idx}" for idx in range(len(index.columns)))
            unique = "UNIQUE " if index.unique else ""
            sql = f"CREATE {unique}INDEX ::index_name ON ::table ({index_cols})"
            self.database.execute(sql, identifiers=index_identifiers)


class TableRegistry:
    """Bound table instances plus the bulk insert buffers of one application."""

    def __init__(self, database: Database, *, bulk_threshold: int = BULK_INSERT_THRESHOLD) -> None:
        self.database = database
        self.bulk_threshold = bulk_threshold
        self._tables: Dict[str, Table] = {}
        self._by_class: Dict[type, Table] = {}
        self._bulk_buffers: Dict[str, List[Dict[str, Any]]] = {}

    def register(self, table_cls: Type[TableType]) -> Type[TableType]:
        """Bind a table class; usable as a class decorator."""
        table = table_cls(self)
        if table.table_name in self._tables:
            raise QueryError(f"Table already registered: {table.table_name}")
        self._tables[table.table_name] = table
        self._by_class[table_cls] = table
        logger.debug(f"Registered table {table.table_name} ({table_cls.__name__})")
        return table_cls

    def get(self, key: Union[str, Type[Table]]) -> Table:
        if isinstance(key, str):
            table = self._tables.get(key)
        else:
            table = self._by_class.get(key)
        if table is None:
            raise QueryError(f"Table not registered: {key!r}")
        return table

    __getitem__ = get

    def __contains__(self, key: object) -> bool:
        return key in self._tables or key in self._by_class

    def __iter__(self):
        return iter(self._tables.values())

    def create_tables(self) -> None:
        for table in self._tables.values():
            table.create_table()

    def bulk_add(self, table: Table, data: Mapping[str, Any]) -> None:
        if not isinstance(data, MappingABC):
            raise QueryError("Bulk insert records must be mappings.")
        buffer = self._bulk_buffers.setdefault(table.table_name, [])
        buffer.append(dict(data))
        if len(buffer) >= self.bulk_threshold:
            self.bulk_flush(table)

    def pending(self, table: Union[str, Table]) -> int:
        name = table if isinstance(table, str) else table.table_name
        return len(self._bulk_buffers.get(name, []))

    def bulk_flush(self, table: Table) -> int:
        records = self._bulk_buffers.pop(table.table_name, [])
        if not records:
            return 0
        logger.debug(f"Flushing {len(records)} queued rows into {table.table_name}")
        try:
            table.insert_many(records)
        except Exception:
            # keep the batch queued ahead of anything added meanwhile
            self._bulk_buffers[table.table_name] = records + self._bulk_buffers.get(table.table_name, [])
            raise
        return len(records)

    def bulk_discard(self, table: Union[str, Table]) -> int:
        """Drop a table's queued records without writing them."""
        name = table if isinstance(table, str) else table.table_name
        return len(self._bulk_buffers.pop(name, []))

    def bulk_commit(self) -> int:
        """Flush every table's queue."""
        return sum(self.bulk_flush(self._tables[name]) for name in list(self._bulk_buffers))
