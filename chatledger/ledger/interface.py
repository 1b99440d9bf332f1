"""
Ledger Capability Interfaces

Command handlers depend on these capability sets, never on a concrete
ledger class. Each handler family only sees the methods it uses.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from chatledger.models.ledger import (
    Budget,
    BudgetStatus,
    CategoryStats,
    DataCount,
    MonthRef,
    StoredTransaction,
    TransactionType,
)


class TransactionLedger(ABC):
    """Transactions, balance and derived views for one user."""

    @abstractmethod
    async def ensure_loaded(self) -> None:
        """Load the user's transactions once; concurrent callers share the load."""
        pass

    @abstractmethod
    async def add_income(
        self,
        amount: Decimal,
        description: str,
        category: Optional[str] = None,
        account: Optional[str] = None,
    ) -> StoredTransaction:
        pass

    @abstractmethod
    async def add_expense(
        self,
        amount: Decimal,
        description: str,
        category: Optional[str] = None,
        account: Optional[str] = None,
    ) -> StoredTransaction:
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> bool:
        pass

    @abstractmethod
    async def clear_history(self) -> int:
        pass

    @abstractmethod
    async def clear_month(self, year: int, month: int) -> int:
        pass

    @abstractmethod
    async def clear_all_data(self) -> DataCount:
        pass

    @abstractmethod
    async def count_all_data(self) -> DataCount:
        pass

    @abstractmethod
    def get_balance(self) -> Decimal:
        pass

    @abstractmethod
    def count_transactions(self) -> int:
        pass

    @abstractmethod
    def get_account_balance(self, account: str) -> Decimal:
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[StoredTransaction]:
        pass

    @abstractmethod
    def get_recent_transactions(self, limit: int = 10) -> list[StoredTransaction]:
        pass

    @abstractmethod
    def get_transactions_by_month(self, year: int, month: int) -> list[StoredTransaction]:
        pass

    @abstractmethod
    def get_transactions_by_category(self, category: str) -> list[StoredTransaction]:
        pass

    @abstractmethod
    def get_all_categories(self) -> list[str]:
        pass

    @abstractmethod
    def get_all_months(self) -> list[MonthRef]:
        pass

    @abstractmethod
    def get_category_stats_for_month(self, year: int, month: int) -> list[CategoryStats]:
        pass

    @abstractmethod
    def export_to_csv(self) -> str:
        pass

    @abstractmethod
    def export_month_to_csv(self, year: int, month: int) -> str:
        pass


class AccountManager(ABC):
    """Account names and the session's current account."""

    @abstractmethod
    def get_current_account(self) -> str:
        pass

    @abstractmethod
    async def set_current_account(self, name: str) -> str:
        pass

    @abstractmethod
    async def get_accounts(self) -> list[str]:
        pass

    @abstractmethod
    async def ensure_account_exists(self, name: str) -> None:
        pass


class BudgetTracker(ABC):
    """Monthly budgets and their status against the ledger."""

    @abstractmethod
    async def create_budget(
        self,
        amount: Decimal,
        year: int,
        month: int,
        category: Optional[str] = None,
        budget_type: TransactionType = TransactionType.EXPENSE,
    ) -> int:
        pass

    @abstractmethod
    async def get_budgets(self, year: int, month: int) -> list[Budget]:
        pass

    @abstractmethod
    async def find_matching_budgets(
        self,
        year: int,
        month: int,
        category: Optional[str] = None,
        budget_type: TransactionType = TransactionType.EXPENSE,
    ) -> list[Budget]:
        pass

    @abstractmethod
    async def get_budget_status(self, year: int, month: int) -> list[BudgetStatus]:
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: int) -> bool:
        pass

    @abstractmethod
    async def delete_budgets_by_criteria(
        self,
        year: int,
        month: int,
        category: Optional[str] = None,
        budget_type: TransactionType = TransactionType.EXPENSE,
    ) -> int:
        pass
