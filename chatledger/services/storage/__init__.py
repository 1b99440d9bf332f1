"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the durable backend; the in-memory store serves tests
and memory-only mode.
"""

from chatledger.services.storage.interface import (
    TABLE_COLUMNS,
    AuditStorageInterface,
    FilterOp,
    RowFilter,
    RowStoreInterface,
    StorageError,
    StorageUnavailableError,
)
from chatledger.services.storage.memory import InMemoryRowStore
from chatledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
)

__all__ = [
    # Interfaces
    "TABLE_COLUMNS",
    "AuditStorageInterface",
    "FilterOp",
    "RowFilter",
    "RowStoreInterface",
    # Exceptions
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "InMemoryRowStore",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRowStore",
]
