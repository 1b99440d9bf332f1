"""Services package."""

from chatledger.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
    InMemoryRowStore,
    RowFilter,
    RowStoreInterface,
    StorageError,
    StorageUnavailableError,
)

__all__ = [
    "AuditStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRowStore",
    "InMemoryRowStore",
    "RowFilter",
    "RowStoreInterface",
    "StorageError",
    "StorageUnavailableError",
]
