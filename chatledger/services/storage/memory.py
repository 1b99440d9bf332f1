"""
In-Memory Storage Implementation

Used for tests and for memory-only mode when no durable backend is
configured. Behaves like the Google Sheets backend: integer ids are
assigned on insert, rows come back as plain dicts, filters are AND-ed.
"""

from typing import Any, Optional

from chatledger.services.storage.interface import (
    TABLE_COLUMNS,
    RowFilter,
    RowStoreInterface,
    StorageError,
    check_table,
    comparable,
)


def _sort_key(column: str):
    def key(row: dict[str, Any]):
        value = comparable(column, row.get(column))
        return (value is None, value)
    return key


class InMemoryRowStore(RowStoreInterface):
    """Row store backed by Python lists. Not shared across processes."""

    def __init__(self):
        self._tables: dict[str, list[dict[str, Any]]] = {
            table: [] for table in TABLE_COLUMNS
        }
        self._next_ids: dict[str, int] = {table: 1 for table in TABLE_COLUMNS}

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        columns = check_table(table)
        stored = {column: row.get(column) for column in columns if column != "id"}
        stored["id"] = self._next_ids[table]
        self._next_ids[table] += 1
        self._tables[table].append(stored)
        return dict(stored)

    async def select(
        self,
        table: str,
        filters: Optional[list[RowFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        check_table(table)
        rows = [
            dict(row) for row in self._tables[table]
            if all(f.matches(row) for f in filters or [])
        ]
        if order_by:
            rows.sort(key=_sort_key(order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def delete(self, table: str, filters: list[RowFilter]) -> int:
        check_table(table)
        if not filters:
            raise StorageError("Refusing to delete without filters")
        kept = []
        removed = 0
        for row in self._tables[table]:
            if all(f.matches(row) for f in filters):
                removed += 1
            else:
                kept.append(row)
        self._tables[table] = kept
        return removed

    async def count(
        self,
        table: str,
        filters: Optional[list[RowFilter]] = None,
    ) -> int:
        check_table(table)
        return sum(
            1 for row in self._tables[table]
            if all(f.matches(row) for f in filters or [])
        )
