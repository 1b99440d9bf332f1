"""
Ledger Store

The per-user, in-memory projection of transactions and balance,
backed by the durable row store.

CRITICAL INVARIANT: balance == sum(income) - sum(expense) over the
transactions currently held, after every mutation.

DESIGN DECISIONS:
1. Row-store failures never break the projection. A transaction that
   could not be persisted gets a negative fallback id and stays in
   memory exactly once (degraded mode). The failure is audited.
2. Loading happens once per store. Concurrent callers wait for the
   in-flight load instead of starting another one.
3. Derived views (months, categories, stats, exports) are pure and
   never touch the row store.
"""

import asyncio
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from chatledger.audit import AuditLogger
from chatledger.ledger.export import transactions_to_csv
from chatledger.ledger.interface import AccountManager, TransactionLedger
from chatledger.models.audit import AuditEventBuilder
from chatledger.models.ledger import (
    DEFAULT_ACCOUNT,
    CategoryStats,
    DataCount,
    MonthRef,
    StoredTransaction,
    Transaction,
    TransactionType,
    ensure_utc,
    month_bounds,
    normalize_name,
)
from chatledger.services.storage import RowFilter, RowStoreInterface, StorageError


UNCATEGORIZED = "uncategorized"

MAX_DESCRIPTION_LENGTH = 500


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidAmountError(LedgerError):
    """Amount is not a finite number greater than zero."""
    pass


def parse_amount(value: Any) -> Decimal:
    """
    Coerce a value to a positive, finite Decimal.

    Raises:
        InvalidAmountError: If the value is not numeric, not finite or <= 0
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {value!r}")
    return amount


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


class LedgerStore(TransactionLedger, AccountManager):
    """
    Transactions, balance and accounts for a single user.

    Usage:
        store = LedgerStore("user-1", InMemoryRowStore())
        await store.ensure_loaded()
        await store.add_income(Decimal("500"), "salary")
    """

    def __init__(
        self,
        user_id: str,
        row_store: RowStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        default_account: str = DEFAULT_ACCOUNT,
        load_limit: int = 1000,
    ):
        self._user_id = user_id
        self._store = row_store
        self._audit_logger = audit_logger
        self._default_account = normalize_name(default_account) or DEFAULT_ACCOUNT
        self._load_limit = load_limit
        self._logger = structlog.get_logger(__name__).bind(user_id=user_id)

        self._items: list[StoredTransaction] = []
        self._balance = Decimal("0")
        self._current_account = self._default_account
        self._known_accounts: set[str] = set()
        self._next_fallback_id = -1

        self._loaded = False
        self._load_lock = asyncio.Lock()

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    # =========================================================================
    # LOADING
    # =========================================================================

    async def ensure_loaded(self) -> None:
        if self._loaded:
            return
        async with self._load_lock:
            # Another caller may have finished the load while we waited
            if self._loaded:
                return
            await self._load()

    async def _load(self) -> None:
        try:
            rows = await self._store.select(
                "transactions",
                [RowFilter.eq("user_id", self._user_id)],
                order_by="timestamp",
                descending=True,
                limit=self._load_limit,
            )
        except StorageError as e:
            # Projection stays as-is; the next call tries again
            self._logger.warning("ledger_load_failed", error=str(e))
            await self._audit_degraded("load", e)
            return

        loaded = []
        for row in reversed(rows):  # oldest first
            try:
                loaded.append(self._row_to_item(row))
            except (KeyError, ValueError, InvalidOperation, TypeError) as e:
                self._logger.warning("ledger_row_skipped", row_id=row.get("id"), error=str(e))

        # Keep transactions that only exist in memory (fallback ids)
        unsaved = [item for item in self._items if item.id < 0]
        self._items = loaded + unsaved
        self._balance = sum(
            (item.transaction.signed_amount for item in self._items),
            Decimal("0"),
        )
        self._loaded = True
        self._logger.info(
            "ledger_loaded",
            transactions=len(loaded),
            balance=str(self._balance),
        )

    def _row_to_item(self, row: dict[str, Any]) -> StoredTransaction:
        transaction = Transaction(
            amount=Decimal(str(row["amount"])),
            description=row.get("description") or "",
            type=TransactionType(row["type"]),
            category=row.get("category"),
            account=row.get("account"),
            timestamp=parse_timestamp(row["timestamp"]),
        )
        return StoredTransaction(id=int(row["id"]), transaction=transaction)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def add_income(
        self,
        amount: Decimal,
        description: str,
        category: Optional[str] = None,
        account: Optional[str] = None,
    ) -> StoredTransaction:
        return await self._add(TransactionType.INCOME, amount, description, category, account)

    async def add_expense(
        self,
        amount: Decimal,
        description: str,
        category: Optional[str] = None,
        account: Optional[str] = None,
    ) -> StoredTransaction:
        return await self._add(TransactionType.EXPENSE, amount, description, category, account)

    async def _add(
        self,
        transaction_type: TransactionType,
        amount: Any,
        description: str,
        category: Optional[str],
        account: Optional[str],
    ) -> StoredTransaction:
        value = parse_amount(amount)
        account_name = normalize_name(account) or self._current_account or DEFAULT_ACCOUNT

        transaction = Transaction(
            amount=value,
            description=(description or "")[:MAX_DESCRIPTION_LENGTH],
            type=transaction_type,
            category=category,
            account=account_name,
        )

        transaction_id = await self._persist(transaction)
        item = StoredTransaction(id=transaction_id, transaction=transaction)

        # Exactly one append and one balance update, whatever storage did
        self._items.append(item)
        self._balance += transaction.signed_amount

        await self.ensure_account_exists(account_name)

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.transaction_added(
                    user_id=self._user_id,
                    transaction_id=transaction_id,
                    transaction_type=transaction_type.value,
                    amount=str(value),
                    account=transaction.account,
                )
            )
        return item

    async def _persist(self, transaction: Transaction) -> int:
        row = {
            "user_id": self._user_id,
            "amount": str(transaction.amount),
            "description": transaction.description,
            "type": transaction.type.value,
            "category": transaction.category,
            "account": transaction.account,
            "timestamp": transaction.timestamp.isoformat(),
        }
        try:
            stored = await self._store.insert("transactions", row)
            return int(stored["id"])
        except StorageError as e:
            fallback_id = self._next_fallback_id
            self._next_fallback_id -= 1
            self._logger.warning(
                "transaction_save_failed",
                error=str(e),
                fallback_id=fallback_id,
            )
            await self._audit_degraded("insert", e, {"fallback_id": fallback_id})
            return fallback_id

    async def delete_transaction(self, transaction_id: int) -> bool:
        index = next(
            (i for i, item in enumerate(self._items) if item.id == transaction_id),
            None,
        )
        if index is None:
            return False

        item = self._items.pop(index)
        self._balance -= item.transaction.signed_amount

        # Fallback ids were never written
        if transaction_id > 0:
            try:
                await self._store.delete(
                    "transactions",
                    [
                        RowFilter.eq("id", transaction_id),
                        RowFilter.eq("user_id", self._user_id),
                    ],
                )
            except StorageError as e:
                self._logger.warning(
                    "transaction_delete_failed",
                    transaction_id=transaction_id,
                    error=str(e),
                )
                await self._audit_degraded("delete", e, {"transaction_id": transaction_id})

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.transaction_deleted(self._user_id, transaction_id)
            )
        return True

    async def clear_history(self) -> int:
        count = len(self._items)
        try:
            await self._store.delete(
                "transactions",
                [RowFilter.eq("user_id", self._user_id)],
            )
        except StorageError as e:
            self._logger.warning("history_clear_failed", error=str(e))
            await self._audit_degraded("clear_history", e)

        self._items = []
        self._balance = Decimal("0")

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.history_cleared(self._user_id, count)
            )
        return count

    async def clear_month(self, year: int, month: int) -> int:
        start, end = month_bounds(year, month)
        removed = [item for item in self._items if item.transaction.in_month(year, month)]

        try:
            await self._store.delete(
                "transactions",
                [
                    RowFilter.eq("user_id", self._user_id),
                    RowFilter.gte("timestamp", start),
                    RowFilter.lt("timestamp", end),
                ],
            )
        except StorageError as e:
            self._logger.warning("month_clear_failed", year=year, month=month, error=str(e))
            await self._audit_degraded("clear_month", e, {"year": year, "month": month})

        self._items = [
            item for item in self._items
            if not item.transaction.in_month(year, month)
        ]
        self._balance -= sum(
            (item.transaction.signed_amount for item in removed),
            Decimal("0"),
        )

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.month_cleared(self._user_id, year, month, len(removed))
            )
        return len(removed)

    async def count_all_data(self) -> DataCount:
        """Row counts per table, falling back to the projection on storage error."""
        user_filter = [RowFilter.eq("user_id", self._user_id)]
        try:
            return DataCount(
                transactions=await self._store.count("transactions", user_filter),
                budgets=await self._store.count("budgets", user_filter),
                accounts=await self._store.count("accounts", user_filter),
            )
        except StorageError as e:
            self._logger.warning("data_count_failed", error=str(e))
            return DataCount(
                transactions=len(self._items),
                accounts=len(self._known_accounts),
            )

    async def clear_all_data(self) -> DataCount:
        """Delete transactions, budgets and accounts; reset the session account."""
        counts = await self.count_all_data()
        user_filter = [RowFilter.eq("user_id", self._user_id)]

        for table in ("transactions", "budgets", "accounts"):
            try:
                await self._store.delete(table, user_filter)
            except StorageError as e:
                self._logger.warning("table_clear_failed", table=table, error=str(e))
                await self._audit_degraded("clear_all_data", e, {"table": table})

        self._items = []
        self._balance = Decimal("0")
        self._known_accounts = set()
        self._current_account = self._default_account

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.all_data_cleared(self._user_id, counts.model_dump())
            )
        return counts

    # =========================================================================
    # VIEWS (no I/O)
    # =========================================================================

    def get_balance(self) -> Decimal:
        return self._balance

    def count_transactions(self) -> int:
        return len(self._items)

    def get_account_balance(self, account: str) -> Decimal:
        """Derived per-account balance; the aggregate balance is unaffected."""
        name = normalize_name(account) or DEFAULT_ACCOUNT
        return sum(
            (
                item.transaction.signed_amount
                for item in self._items
                if item.transaction.account == name
            ),
            Decimal("0"),
        )

    def get_transaction(self, transaction_id: int) -> Optional[StoredTransaction]:
        return next((item for item in self._items if item.id == transaction_id), None)

    def get_recent_transactions(self, limit: int = 10) -> list[StoredTransaction]:
        # sorted() is stable, so equal timestamps keep insertion order
        ordered = sorted(
            self._items,
            key=lambda item: item.transaction.timestamp,
            reverse=True,
        )
        return ordered[:limit]

    def get_transactions_by_month(self, year: int, month: int) -> list[StoredTransaction]:
        return [item for item in self._items if item.transaction.in_month(year, month)]

    def get_transactions_by_category(self, category: str) -> list[StoredTransaction]:
        name = normalize_name(category)
        return [item for item in self._items if item.transaction.category == name]

    def get_all_categories(self) -> list[str]:
        return sorted({
            item.transaction.category
            for item in self._items
            if item.transaction.category
        })

    def get_all_months(self) -> list[MonthRef]:
        """Distinct year-months with transactions, most recent first."""
        pairs = {
            (item.transaction.timestamp.year, item.transaction.timestamp.month - 1)
            for item in self._items
        }
        return [
            MonthRef(year=year, month=month)
            for year, month in sorted(pairs, reverse=True)
        ]

    def get_category_stats_for_month(self, year: int, month: int) -> list[CategoryStats]:
        stats: dict[str, CategoryStats] = {}
        for item in self.get_transactions_by_month(year, month):
            t = item.transaction
            name = t.category or UNCATEGORIZED
            entry = stats.setdefault(name, CategoryStats(category=name))
            if t.type == TransactionType.INCOME:
                entry.income += t.amount
            else:
                entry.expense += t.amount
        return sorted(stats.values(), key=lambda s: abs(s.net), reverse=True)

    def export_to_csv(self) -> str:
        return transactions_to_csv(self._items)

    def export_month_to_csv(self, year: int, month: int) -> str:
        return transactions_to_csv(self.get_transactions_by_month(year, month))

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def get_current_account(self) -> str:
        return self._current_account

    async def set_current_account(self, name: str) -> str:
        account = normalize_name(name)
        if not account:
            raise LedgerError("Account name cannot be empty")
        self._current_account = account
        await self.ensure_account_exists(account)
        return account

    async def ensure_account_exists(self, name: str) -> None:
        """Idempotent and non-fatal: storage errors are logged only."""
        account = normalize_name(name)
        if not account or account in self._known_accounts:
            return
        try:
            existing = await self._store.select(
                "accounts",
                [
                    RowFilter.eq("user_id", self._user_id),
                    RowFilter.eq("name", account),
                ],
                limit=1,
            )
            if not existing:
                await self._store.insert(
                    "accounts",
                    {"user_id": self._user_id, "name": account},
                )
                if self._audit_logger:
                    await self._audit_logger.log(
                        AuditEventBuilder.account_created(self._user_id, account)
                    )
            self._known_accounts.add(account)
        except StorageError as e:
            self._logger.warning("account_ensure_failed", account=account, error=str(e))

    async def get_accounts(self) -> list[str]:
        """Stored accounts plus any referenced by a transaction; cash first."""
        names = {item.transaction.account for item in self._items}
        names.add(self._default_account)
        try:
            rows = await self._store.select(
                "accounts",
                [RowFilter.eq("user_id", self._user_id)],
            )
            names.update(
                normalize_name(row.get("name"))
                for row in rows
                if normalize_name(row.get("name"))
            )
        except StorageError as e:
            self._logger.warning("accounts_load_failed", error=str(e))

        names.discard(DEFAULT_ACCOUNT)
        return [DEFAULT_ACCOUNT] + sorted(names)

    async def _audit_degraded(
        self,
        operation: str,
        error: Exception,
        details: Optional[dict] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_degraded(
                user_id=self._user_id,
                operation=operation,
                error_message=str(error),
                details=details,
            )
