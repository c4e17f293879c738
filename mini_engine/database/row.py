"""Row: one hydrated or pending record of a table."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, MutableMapping

from mini_engine.core.errors import QueryError

if TYPE_CHECKING:  # pragma: no cover
    from .table import Table


class Row(MutableMapping[str, Any]):
    """An ordered field mapping that remembers the values it was loaded with.

    Item access reads and writes fields. Tables generate a subclass per table
    with one property per declared column and relation, so ``row.name`` and
    ``row["name"]`` are equivalent.

    A row is written back only by ``save()``: fetched rows issue an UPDATE
    holding just the changed columns, pending rows (see
    ``Table.create_row``) are inserted.
    """

    def __init__(self, table: "Table", data: Mapping[str, Any], *, persisted: bool = True) -> None:
        self._table = table
        self._data: Dict[str, Any] = dict(data)
        self._origin_data: Dict[str, Any] = copy.deepcopy(self._data) if persisted else {}
        self._persisted = persisted

    def __getitem__(self, key: str) -> Any:
        if key in self._data:
            return self._data[key]
        if key in self._table.relation_map:
            return self.related(key)
        raise KeyError(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._table.table_name} {self._data!r}>"

    @property
    def table(self) -> "Table":
        return self._table

    @property
    def is_persisted(self) -> bool:
        return self._persisted

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def changes(self) -> Dict[str, Any]:
        """Columns whose value differs from the loaded one, primary keys excluded."""
        primary_keys = self._table.primary_key_columns
        return {
            col: value
            for col, value in self._data.items()
            if col not in primary_keys and (col not in self._origin_data or self._origin_data[col] != value)
        }

    def primary_key(self) -> List[Any]:
        """Primary key values as loaded from the database."""
        source = self._origin_data if self._persisted else self._data
        return [source.get(key) for key in self._table.primary_key_columns]

    def save(self) -> None:
        if not self._persisted:
            stored = self._table.insert(self._data)
            self._data = stored.to_dict()
            self._origin_data = copy.deepcopy(self._data)
            self._persisted = True
            return

        changes = self.changes()
        if not changes:
            return
        self._table.update_by_primary_key(self.primary_key(), changes)
        self._origin_data = copy.deepcopy(self._data)

    def update(self, data: Mapping[str, Any] = (), **kwargs: Any) -> None:  # type: ignore[override]
        """Assign the given fields, then ``save()``."""
        super().update(data, **kwargs)
        self.save()

    def delete(self) -> None:
        if not self._persisted:
            raise QueryError("Cannot delete a row that was never saved.")
        self._table.delete_by_primary_key(self.primary_key())
        self._persisted = False

    def related(self, name: str) -> Any:
        """Resolve a declared relation with a fresh query."""
        relation = self._table.relation_map.get(name)
        if relation is None:
            raise KeyError(name)
        target = self._table.registry.get(relation.table)
        if relation.kind == "has_one":
            value = self._data.get(relation.foreign_key)
            if value is None:
                return None
            return target.find(value)

        primary_key = self.primary_key()
        if len(primary_key) != 1:
            raise QueryError("has_many relations need a single-column primary key.")
        return target.search({relation.foreign_key: primary_key[0]})


def column_property(name: str) -> property:
    def _get(row: Row) -> Any:
        return row._data.get(name)

    def _set(row: Row, value: Any) -> None:
        row[name] = value

    return property(_get, _set, doc=f"Value of column ``{name}``.")


def relation_property(name: str) -> property:
    def _get(row: Row) -> Any:
        return row.related(name)

    return property(_get, doc=f"Related rows of ``{name}``, queried on every access.")
