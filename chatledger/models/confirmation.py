"""
Pending Confirmation Models

A destructive action is stored as one of these payloads until the user
replies. The payload carries exactly the data needed to finish the
action, captured at the moment the confirmation was requested.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from chatledger.models.ledger import DataCount, TransactionType, utc_now


class ConfirmationKind(str, Enum):
    BUDGET_REPLACE = "budget_replace"
    CLEAR_MONTH = "clear_month"
    CLEAR_HISTORY = "clear_history"
    CLEAR_ALL_DATA = "clear_all_data"


class ConfirmationOutcome(str, Enum):
    """What an incoming message did to the pending slot."""
    NOTHING_PENDING = "nothing_pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    UNRELATED = "unrelated"  # slot left pending, message routed normally


class BudgetReplaceConfirmation(BaseModel):
    kind: Literal["budget_replace"] = "budget_replace"
    requested_at: datetime = Field(default_factory=utc_now)

    amount: Decimal = Field(..., gt=0)
    year: int
    month: int = Field(..., ge=0, le=11)
    category: Optional[str] = None
    budget_type: TransactionType = TransactionType.EXPENSE
    existing_budget_ids: list[int] = Field(default_factory=list)
    existing_total: Decimal = Decimal("0")


class ClearMonthConfirmation(BaseModel):
    kind: Literal["clear_month"] = "clear_month"
    requested_at: datetime = Field(default_factory=utc_now)

    year: int
    month: int = Field(..., ge=0, le=11)
    count: int = Field(..., ge=0)
    month_name: str


class ClearHistoryConfirmation(BaseModel):
    kind: Literal["clear_history"] = "clear_history"
    requested_at: datetime = Field(default_factory=utc_now)

    count: int = Field(..., ge=0)
    balance: Decimal


class ClearAllDataConfirmation(BaseModel):
    kind: Literal["clear_all_data"] = "clear_all_data"
    requested_at: datetime = Field(default_factory=utc_now)

    counts: DataCount


PendingConfirmation = Annotated[
    Union[
        BudgetReplaceConfirmation,
        ClearMonthConfirmation,
        ClearHistoryConfirmation,
        ClearAllDataConfirmation,
    ],
    Field(discriminator="kind"),
]


class ConfirmationResolution(BaseModel):
    """Result of testing one message against the pending slot."""

    outcome: ConfirmationOutcome
    pending: Optional[PendingConfirmation] = None
