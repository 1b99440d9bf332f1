"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract, row-oriented interface.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and memory-only mode
3. Keep the ledger decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Insert, select, delete and count with equality and range filters.
No transactions, no joins: the ledger never relies on them.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from chatledger.models.audit import AuditEvent


TABLE_COLUMNS: dict[str, list[str]] = {
    "transactions": [
        "id",
        "user_id",
        "amount",
        "description",
        "type",
        "category",
        "account",
        "timestamp",
    ],
    "budgets": [
        "id",
        "user_id",
        "year",
        "month",
        "category",
        "amount",
        "type",
    ],
    "accounts": [
        "id",
        "user_id",
        "name",
    ],
}

# Columns not listed here hold text and compare as strings
NUMERIC_COLUMNS = frozenset({"id", "year", "month", "amount"})
DATETIME_COLUMNS = frozenset({"timestamp"})


class ColumnKind(str, Enum):
    NUMBER = "number"
    DATETIME = "datetime"
    TEXT = "text"


class FilterOp(str, Enum):
    EQ = "eq"
    GTE = "gte"
    LT = "lt"


class RowFilter(BaseModel):
    """A single column condition. Filters in a list are AND-ed."""

    column: str
    op: FilterOp = FilterOp.EQ
    value: Any = None

    @classmethod
    def eq(cls, column: str, value: Any) -> "RowFilter":
        return cls(column=column, op=FilterOp.EQ, value=value)

    @classmethod
    def gte(cls, column: str, value: Any) -> "RowFilter":
        return cls(column=column, op=FilterOp.GTE, value=value)

    @classmethod
    def lt(cls, column: str, value: Any) -> "RowFilter":
        return cls(column=column, op=FilterOp.LT, value=value)

    def matches(self, row: dict[str, Any]) -> bool:
        actual = comparable(self.column, row.get(self.column))
        expected = comparable(self.column, self.value)
        if self.op == FilterOp.EQ:
            return actual == expected
        if actual is None or expected is None:
            return False
        try:
            if self.op == FilterOp.GTE:
                return actual >= expected
            return actual < expected
        except TypeError:
            return False


def column_kind(column: str) -> ColumnKind:
    if column in NUMERIC_COLUMNS:
        return ColumnKind.NUMBER
    if column in DATETIME_COLUMNS:
        return ColumnKind.DATETIME
    return ColumnKind.TEXT


def comparable(column: str, value: Any) -> Any:
    """
    Normalize a stored value of column for comparison.

    Backends differ in what they hand back (Google Sheets returns every
    cell as a string), so filters compare by the column's declared kind:
    numeric columns as Decimal, timestamp columns as datetime, everything
    else as text. Blanks, and values that do not parse as their column's
    kind, become None.
    """
    if value is None or value == "":
        return None

    kind = column_kind(column)
    if kind == ColumnKind.TEXT:
        return str(value)

    if kind == ColumnKind.DATETIME:
        if isinstance(value, datetime):
            return value
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            return None

    if isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


class RowStoreInterface(ABC):
    """
    Abstract interface for the durable row store.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods. Tables are the keys of TABLE_COLUMNS.
    """

    @abstractmethod
    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a row.

        Args:
            table: Table name
            row: Column values (without `id`)

        Returns:
            The stored row including its assigned integer `id`

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[list[RowFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        Select rows matching all filters.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def delete(
        self,
        table: str,
        filters: list[RowFilter],
    ) -> int:
        """
        Delete rows matching all filters.

        An empty filter list is rejected so that a bug can never
        wipe a whole table.

        Returns:
            Number of rows deleted
        """
        pass

    @abstractmethod
    async def count(
        self,
        table: str,
        filters: Optional[list[RowFilter]] = None,
    ) -> int:
        """Count rows matching all filters."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


def check_table(table: str) -> list[str]:
    """Return the columns of a known table or raise StorageError."""
    try:
        return TABLE_COLUMNS[table]
    except KeyError:
        raise StorageError(f"Unknown table: {table}")


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """Could not connect to storage backend."""
    pass


