"""Rowset: a deferred, chainable query against one table.

Every modifier returns a new ``Rowset``; the receiver is never changed, so a
base query can be shared and refined freely::

    active = users.search({"active": True})
    newest = active.order("id DESC").limit(10)
    total = active.count()

No SQL runs until the rowset is consumed (iteration, ``first``, ``count``,
``to_array``). Iteration produces a ``RowsetCursor`` that fetches once and only
moves forward.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from sqlalchemy.engine import CursorResult, MappingResult

from mini_engine.core.errors import QueryError

from .row import Row
from .schema import Raw

if TYPE_CHECKING:  # pragma: no cover
    from .table import Table

SearchTerms = Union[Mapping[str, Any], Raw, int]

_ORDER_DIRECTIONS = ("ASC", "DESC")
# LIMIT needed before OFFSET on these drivers
_UNBOUNDED_LIMIT = {
    "sqlite": "-1",
    "mysql": "18446744073709551615",
    "mariadb": "18446744073709551615",
}


def _is_match_all(terms: Any) -> bool:
    return isinstance(terms, int) and terms == 1


class Rowset:
    """Immutable query builder over one table."""

    def __init__(self, table: "Table") -> None:
        self._table = table
        self._searches: Tuple[Union[Mapping[str, Any], Raw], ...] = ()
        self._order: Tuple[Tuple[str, str], ...] = ()
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def _copy(self, **changes: Any) -> "Rowset":
        rowset = copy.copy(self)
        for name, value in changes.items():
            setattr(rowset, f"_{name}", value)
        return rowset

    @property
    def table(self) -> "Table":
        return self._table

    # -- Modifiers ---------------------------------------------------------

    def search(self, terms: SearchTerms) -> "Rowset":
        """
        Narrow the query. Chained calls are combined with AND.

        Args:
            terms: A mapping of column to value (scalar for equality, ``None``
                for IS NULL, list/tuple/set for IN), a ``Raw`` fragment, or
                ``1`` to match every row.

        Raises:
            QueryError: For any other kind of ``terms``.
        """
        if _is_match_all(terms):
            return self._copy()
        if isinstance(terms, Raw):
            return self._copy(searches=self._searches + (terms,))
        if isinstance(terms, Mapping):
            return self._copy(searches=self._searches + (dict(terms),))
        raise QueryError(f"Unsupported search query: {terms!r}. Wrap raw SQL in Raw().")

    def order(self, *clauses: str) -> "Rowset":
        """Replace the ordering, e.g. ``order("name")`` or ``order("id DESC", "name")``."""
        order = []
        for clause in clauses:
            parts = clause.split()
            if len(parts) == 1:
                order.append((parts[0], "ASC"))
            elif len(parts) == 2 and parts[1].upper() in _ORDER_DIRECTIONS:
                order.append((parts[0], parts[1].upper()))
            else:
                raise QueryError(f"Unsupported order clause: {clause!r}")
        return self._copy(order=tuple(order))

    def limit(self, limit: int) -> "Rowset":
        if not isinstance(limit, int) or limit < 0:
            raise QueryError(f"Invalid limit: {limit!r}")
        return self._copy(limit=limit)

    def offset(self, offset: int) -> "Rowset":
        if not isinstance(offset, int) or offset < 0:
            raise QueryError(f"Invalid offset: {offset!r}")
        return self._copy(offset=offset)

    # -- SQL building ------------------------------------------------------

    def get_search_query(self, params: Dict[str, Any], identifiers: Dict[str, str]) -> str:
        """Build the WHERE expression, filling ``params`` and ``identifiers``."""
        terms: List[str] = []
        for search_idx, search in enumerate(self._searches):
            if isinstance(search, Raw):
                terms.append(f"({search.sql})")
                params.update(search.params)
                continue
            for term_idx, (col, value) in enumerate(search.items()):
                key = f"s{search_idx}_{term_idx}"
                identifiers[key] = col
                column = self._table.column_map.get(col)
                if value is None:
                    terms.append(f"::{key} IS NULL")
                elif isinstance(value, (list, tuple, set, frozenset)):
                    if not value:
                        terms.append("1 = 0")
                        continue
                    placeholders = []
                    for value_idx, item in enumerate(value):
                        value_key = f"{key}_{value_idx}"
                        params[value_key] = column.encode(item) if column else item
                        placeholders.append(column.write_expression(f":{value_key}") if column else f":{value_key}")
                    terms.append(f"::{key} IN ({', '.join(placeholders)})")
                else:
                    params[key] = column.encode(value) if column else value
                    placeholder = column.write_expression(f":{key}") if column else f":{key}"
                    terms.append(f"::{key} = {placeholder}")
        if not terms:
            return "1=1"
        return " AND ".join(terms)

    def _select_list(self, identifiers: Dict[str, str]) -> str:
        if not self._table.column_map:
            return "*"
        parts = []
        for idx, (name, column) in enumerate(self._table.column_map.items()):
            key = f"sel_{idx}"
            identifiers[key] = name
            if column.is_geometry:
                parts.append(f"{column.read_expression(f'::{key}')} AS ::{key}")
            else:
                parts.append(f"::{key}")
        return ", ".join(parts)

    def _order_clause(self, identifiers: Dict[str, str]) -> str:
        if not self._order:
            return ""
        parts = []
        for idx, (col, direction) in enumerate(self._order):
            key = f"ord_{idx}"
            identifiers[key] = col
            parts.append(f"::{key} {direction}")
        return " ORDER BY " + ", ".join(parts)

    def _limit_clause(self) -> str:
        clause = ""
        if self._limit is not None:
            clause += f" LIMIT {int(self._limit)}"
        if self._offset is not None:
            if self._limit is None and self._table.database.driver in _UNBOUNDED_LIMIT:
                clause += f" LIMIT {_UNBOUNDED_LIMIT[self._table.database.driver]}"
            clause += f" OFFSET {int(self._offset)}"
        return clause

    def get_select_query(self) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        params: Dict[str, Any] = {}
        identifiers: Dict[str, str] = {"table": self._table.table_name}
        select = self._select_list(identifiers)
        where = self.get_search_query(params, identifiers)
        sql = f"SELECT {select} FROM ::table WHERE {where}{self._order_clause(identifiers)}{self._limit_clause()}"
        return sql, params, identifiers

    # -- Execution ---------------------------------------------------------

    def execute(self) -> CursorResult:
        sql, params, identifiers = self.get_select_query()
        return self._table.database.execute(sql, params, identifiers)

    def hydrate(self, data: Mapping[str, Any]) -> Row:
        columns = self._table.column_map
        values = {key: (columns[key].decode(value) if key in columns else value) for key, value in data.items()}
        return self._table.row_type(self._table, values)

    def count(self) -> int:
        params: Dict[str, Any] = {}
        identifiers: Dict[str, str] = {"table": self._table.table_name}
        where = self.get_search_query(params, identifiers)
        if self._limit is None and self._offset is None:
            sql = f"SELECT COUNT(*) AS count FROM ::table WHERE {where}"
        else:
            sql = f"SELECT COUNT(*) AS count FROM (SELECT 1 AS one FROM ::table WHERE {where}{self._limit_clause()}) AS counted"
        return int(self._table.database.execute(sql, params, identifiers).scalar_one())

    def first(self) -> Optional[Row]:
        rowset = self if self._limit is not None and self._limit <= 1 else self.limit(1)
        data = rowset.execute().mappings().first()
        if data is None:
            return None
        return self.hydrate(data)

    def to_array(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self]

    def seek(self, position: int) -> None:
        raise QueryError("Seeking a rowset is not supported.")

    def __iter__(self) -> "RowsetCursor":
        return RowsetCursor(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._table.table_name}>"


class RowsetCursor(Iterator[Row]):
    """Forward-only iteration over one execution of a rowset.

    The SELECT runs on the first ``next()``; the cursor then only advances.
    """

    def __init__(self, rowset: Rowset) -> None:
        self._rowset = rowset
        self._result: Optional[MappingResult] = None
        self._position = 0

    @property
    def fetched(self) -> bool:
        return self._result is not None

    def key(self) -> int:
        return self._position

    def seek(self, position: int) -> None:
        raise QueryError("Seeking a rowset is not supported.")

    def __iter__(self) -> "RowsetCursor":
        return self

    def __next__(self) -> Row:
        if self._result is None:
            self._result = self._rowset.execute().mappings()
        data = self._result.fetchone()
        if data is None:
            raise StopIteration
        self._position += 1
        return self._rowset.hydrate(data)
