"""
Core Ledger Models for Chat Ledger

These models define the strict schemas for ledger data:
1. Transactions are immutable once created
2. Amounts are Decimals, never floats
3. Timestamps are always timezone-aware UTC
4. Account and category names are case-normalized

DESIGN DECISION: Months are 0-indexed (January == 0) everywhere
inside the ledger, matching the stored budget rows. Only the chat
surface shows 1-based positions.
"""

import calendar
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


DEFAULT_ACCOUNT = "cash"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_name(value: Optional[str]) -> Optional[str]:
    """Trim and lower-case an account or category name; blank becomes None."""
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """
    Half-open UTC range [first_of_month, first_of_next_month).

    The same boundaries are used for in-memory filtering and for the
    range filter sent to the row store.
    """
    if not 0 <= month <= 11:
        raise ValueError(f"Month must be 0-11, got {month}")
    start = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    if month == 11:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 2, 1, tzinfo=timezone.utc)
    return start, end


def month_name(year: int, month: int) -> str:
    """Display name such as 'January 2024'."""
    return f"{calendar.month_name[month + 1]} {year}"


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction's balance effect."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense record.

    Immutable: the ledger never edits a transaction in place.
    Deleting and re-adding is the only way to "change" one.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount, currency-agnostic"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Free-text description"
    )
    type: TransactionType
    category: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Optional category label (lower-cased)"
    )
    account: str = Field(
        default=DEFAULT_ACCOUNT,
        description="Account name (lower-cased)"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="Creation instant (UTC)"
    )

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v: Optional[str]) -> Optional[str]:
        return normalize_name(v)

    @field_validator('account', mode='before')
    @classmethod
    def normalize_account(cls, v: Optional[str]) -> str:
        return normalize_name(v) or DEFAULT_ACCOUNT

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def signed_amount(self) -> Decimal:
        """Balance effect: positive for income, negative for expense."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount

    def in_month(self, year: int, month: int) -> bool:
        start, end = month_bounds(year, month)
        return start <= self.timestamp < end


class StoredTransaction(BaseModel):
    """A transaction together with its store-assigned identifier."""
    model_config = ConfigDict(frozen=True)

    id: int
    transaction: Transaction


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    A spending (or income) constraint for one month.

    No category means the overall budget for the month.
    At most one budget exists per (user, year, month, category, type).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    user_id: str
    year: int = Field(..., ge=1970, le=9999)
    month: int = Field(..., ge=0, le=11, description="0-indexed month")
    category: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    type: TransactionType = TransactionType.EXPENSE

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v: Optional[str]) -> Optional[str]:
        return normalize_name(v)

    @property
    def is_overall(self) -> bool:
        return self.category is None


class BudgetStatus(BaseModel):
    """Progress of one expense budget within its month."""

    budget_id: Optional[int] = None
    category: Optional[str] = None
    budget_amount: Decimal
    spent_amount: Decimal
    remaining: Decimal
    percentage: float = Field(
        ...,
        description="Spent as a percentage of the budget (0 when budget is 0)"
    )

    @property
    def is_over_budget(self) -> bool:
        return self.remaining < 0


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class CategoryStats(BaseModel):
    """Income, expense and net for one category within a month."""

    category: str
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class MonthRef(BaseModel):
    """A year-month pair present in the ledger."""
    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(..., ge=0, le=11)

    @property
    def name(self) -> str:
        return month_name(self.year, self.month)

    @property
    def file_suffix(self) -> str:
        return f"{self.year}-{self.month + 1:02d}"


class DataCount(BaseModel):
    """Row counts per table for one user."""

    transactions: int = Field(default=0, ge=0)
    budgets: int = Field(default=0, ge=0)
    accounts: int = Field(default=0, ge=0)

    @property
    def is_empty(self) -> bool:
        return self.transactions == 0 and self.budgets == 0 and self.accounts == 0
