"""
Budget Engine

Monthly budgets stored in the row store, with status derived from
the ledger projection.

UNIQUENESS: at most one budget per (user, year, month, category, type).
Creation deletes any matching budget before inserting the new one.
The pair is not atomic at storage level; the per-user session lock
keeps one user's messages from interleaving.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog

from chatledger.audit import AuditLogger
from chatledger.ledger.interface import BudgetTracker, TransactionLedger
from chatledger.ledger.store import parse_amount
from chatledger.models.audit import AuditEventBuilder
from chatledger.models.ledger import (
    Budget,
    BudgetStatus,
    TransactionType,
    normalize_name,
)
from chatledger.services.storage import RowFilter, RowStoreInterface, StorageError


class BudgetEngine(BudgetTracker):
    """Budgets for one user."""

    def __init__(
        self,
        user_id: str,
        row_store: RowStoreInterface,
        ledger: TransactionLedger,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._store = row_store
        self._ledger = ledger
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__).bind(user_id=user_id)

    def _criteria(
        self,
        year: int,
        month: int,
        category: Optional[str],
        budget_type: TransactionType,
    ) -> list[RowFilter]:
        return [
            RowFilter.eq("user_id", self._user_id),
            RowFilter.eq("year", year),
            RowFilter.eq("month", month),
            RowFilter.eq("category", normalize_name(category)),
            RowFilter.eq("type", budget_type.value),
        ]

    def _row_to_budget(self, row: dict[str, Any]) -> Budget:
        return Budget(
            id=int(row["id"]),
            user_id=str(row["user_id"]),
            year=int(row["year"]),
            month=int(row["month"]),
            category=row.get("category"),
            amount=Decimal(str(row["amount"])),
            type=TransactionType(row.get("type") or TransactionType.EXPENSE.value),
        )

    async def create_budget(
        self,
        amount: Decimal,
        year: int,
        month: int,
        category: Optional[str] = None,
        budget_type: TransactionType = TransactionType.EXPENSE,
    ) -> int:
        """
        Create (or replace) the budget for a month.

        Returns:
            The new budget id

        Raises:
            InvalidAmountError: If amount is not positive
            StorageError: If the insert fails
        """
        value = parse_amount(amount)
        budget = Budget(
            user_id=self._user_id,
            year=year,
            month=month,
            category=category,
            amount=value,
            type=budget_type,
        )

        replaced = await self.delete_budgets_by_criteria(
            year, month, budget.category, budget_type
        )
        stored = await self._store.insert(
            "budgets",
            {
                "user_id": self._user_id,
                "year": budget.year,
                "month": budget.month,
                "category": budget.category,
                "amount": str(budget.amount),
                "type": budget.type.value,
            },
        )
        budget_id = int(stored["id"])

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.budget_created(
                    user_id=self._user_id,
                    budget_id=budget_id,
                    year=year,
                    month=month,
                    category=budget.category,
                    amount=str(value),
                    replaced=replaced,
                )
            )
        return budget_id

    async def get_budgets(self, year: int, month: int) -> list[Budget]:
        try:
            rows = await self._store.select(
                "budgets",
                [
                    RowFilter.eq("user_id", self._user_id),
                    RowFilter.eq("year", year),
                    RowFilter.eq("month", month),
                ],
                order_by="id",
            )
        except StorageError as e:
            self._logger.warning("budgets_load_failed", year=year, month=month, error=str(e))
            return []
        return [self._row_to_budget(row) for row in rows]

    async def find_matching_budgets(
        self,
        year: int,
        month: int,
        category: Optional[str] = None,
        budget_type: TransactionType = TransactionType.EXPENSE,
    ) -> list[Budget]:
        """Budgets sharing the uniqueness key; a non-empty result means replace."""
        name = normalize_name(category)
        return [
            budget
            for budget in await self.get_budgets(year, month)
            if budget.type == budget_type and budget.category == name
        ]

    async def get_budget_status(self, year: int, month: int) -> list[BudgetStatus]:
        """
        Progress of each expense budget: overall first, then the budgets
        furthest from their limit (either direction).
        """
        expenses = [
            item.transaction
            for item in self._ledger.get_transactions_by_month(year, month)
            if item.transaction.type == TransactionType.EXPENSE
        ]

        statuses = []
        for budget in await self.get_budgets(year, month):
            if budget.type != TransactionType.EXPENSE:
                continue
            spent = sum(
                (
                    t.amount for t in expenses
                    if budget.is_overall or t.category == budget.category
                ),
                Decimal("0"),
            )
            if budget.amount == 0:
                percentage = 0.0
            else:
                percentage = float(spent / budget.amount * 100)
            statuses.append(
                BudgetStatus(
                    budget_id=budget.id,
                    category=budget.category,
                    budget_amount=budget.amount,
                    spent_amount=spent,
                    remaining=budget.amount - spent,
                    percentage=percentage,
                )
            )

        statuses.sort(key=lambda s: (s.category is not None, -abs(s.remaining)))
        return statuses

    async def delete_budget(self, budget_id: int) -> bool:
        try:
            deleted = await self._store.delete(
                "budgets",
                [
                    RowFilter.eq("id", budget_id),
                    RowFilter.eq("user_id", self._user_id),
                ],
            )
        except StorageError as e:
            self._logger.warning("budget_delete_failed", budget_id=budget_id, error=str(e))
            return False

        if deleted:
            await self._audit_deleted(deleted, budget_id=budget_id)
        return deleted > 0

    async def delete_budgets_by_criteria(
        self,
        year: int,
        month: int,
        category: Optional[str] = None,
        budget_type: TransactionType = TransactionType.EXPENSE,
    ) -> int:
        try:
            deleted = await self._store.delete(
                "budgets",
                self._criteria(year, month, category, budget_type),
            )
        except StorageError as e:
            self._logger.warning(
                "budget_delete_failed",
                year=year,
                month=month,
                category=category,
                error=str(e),
            )
            return 0

        if deleted:
            await self._audit_deleted(
                deleted,
                details={
                    "year": year,
                    "month": month,
                    "category": normalize_name(category),
                    "type": budget_type.value,
                },
            )
        return deleted

    async def _audit_deleted(
        self,
        count: int,
        budget_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.budget_deleted(
                    user_id=self._user_id,
                    count=count,
                    budget_id=budget_id,
                    details=details,
                )
            )
