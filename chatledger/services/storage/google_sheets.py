"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the durable backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal ledgers)
- No transactions (the ledger never relies on them)
- Limited query capabilities (we filter in Python)

One worksheet per table, header row first, one row per record.
Every cell is stored as text; values are normalized on the way back.
Reads are retried on transient API errors, appends are not.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chatledger.config import GoogleSheetsSettings, get_settings
from chatledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from chatledger.services.storage.interface import (
    AuditStorageInterface,
    RowFilter,
    RowStoreInterface,
    StorageError,
    StorageUnavailableError,
    check_table,
)
from chatledger.services.storage.memory import _sort_key


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def to_cell(value: Any) -> str:
    """Serialize a Python value for a sheet cell."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_table_sheet(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a ledger table."""
        columns = check_table(table)
        return self._get_or_create(
            self._settings.sheet_name_for(table),
            columns,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsRowStore(RowStoreInterface):
    """
    Google Sheets implementation of the row store.

    Ids are assigned as (max existing id + 1) per worksheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_dict(self, columns: list[str], row: list) -> dict[str, Any]:
        """Convert a spreadsheet row to a dict, blanks become None."""
        def safe_get(index: int) -> Optional[str]:
            try:
                return row[index] if row[index] != "" else None
            except IndexError:
                return None

        values = {column: safe_get(index) for index, column in enumerate(columns)}
        if values.get("id") is not None:
            values["id"] = int(values["id"])
        return values

    @retry(
        retry=retry_if_not_exception_type(StorageError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read(self, table: str) -> tuple[gspread.Worksheet, list[tuple[int, dict[str, Any]]]]:
        """Return the sheet plus (sheet_row_number, row_dict) pairs."""
        columns = check_table(table)
        sheet = self._client.get_table_sheet(table)
        all_rows = sheet.get_all_values()[1:]  # Skip header

        rows = []
        for sheet_row, row in enumerate(all_rows, start=2):  # row 1 is header
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                rows.append((sheet_row, self._row_to_dict(columns, row)))
            except ValueError:
                continue  # Skip malformed rows
        return sheet, rows

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """
        Append one row with the next free id.

        Not retried: a timed-out append may still have landed, and a
        second attempt would store the row twice.
        """
        columns = check_table(table)
        try:
            sheet, existing = self._read(table)
            next_id = max((r["id"] for _, r in existing), default=0) + 1
            stored = {column: row.get(column) for column in columns}
            stored["id"] = next_id
            sheet.append_row(
                [to_cell(stored[column]) for column in columns],
                value_input_option="RAW",
            )
            return stored
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {table}: {e}")

    async def select(
        self,
        table: str,
        filters: Optional[list[RowFilter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        try:
            _, existing = self._read(table)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {table}: {e}")

        rows = [
            row for _, row in existing
            if all(f.matches(row) for f in filters or [])
        ]
        if order_by:
            rows.sort(key=_sort_key(order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def delete(self, table: str, filters: list[RowFilter]) -> int:
        if not filters:
            raise StorageError("Refusing to delete without filters")
        try:
            sheet, existing = self._read(table)
            matched = [
                sheet_row for sheet_row, row in existing
                if all(f.matches(row) for f in filters)
            ]
            # Bottom-up so earlier row numbers stay valid
            for sheet_row in sorted(matched, reverse=True):
                sheet.delete_rows(sheet_row)
            return len(matched)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {table}: {e}")

    async def count(
        self,
        table: str,
        filters: Optional[list[RowFilter]] = None,
    ) -> int:
        rows = await self.select(table, filters)
        return len(rows)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if not row or not row[0]:
                    continue
                if user_id is not None and (len(row) < 5 or row[4] != user_id):
                    continue
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, IndexError):
                    continue

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
