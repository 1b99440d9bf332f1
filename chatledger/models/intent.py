"""
Intent Models

What a chat message means, after validation.

CRITICAL: The language model only PROPOSES an intent.
The resolver turns that proposal into one of these typed intents,
and only these typed intents ever reach the command router.

The raw oracle payload models are deliberately lenient (extra fields
ignored, every field optional) so that a sloppy extraction degrades to
"nothing actionable" instead of crashing the flow.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatledger.models.ledger import TransactionType


class CommandName(str, Enum):
    """
    Non-destructive commands the language model may trigger.

    DESIGN DECISION: Destructive commands (delete, clear) are NOT here.
    They are only recognized from explicit text patterns.
    """
    BALANCE = "balance"
    HISTORY = "history"
    MONTHS = "months"
    MONTH = "month"
    CATEGORIES = "categories"
    CATSTATS = "catstats"
    BUDGETS = "budgets"
    BUDGET_STATUS = "budget_status"
    BUDGET_CREATE = "budget_create"
    ACCOUNTS = "accounts"
    ACCOUNT_ADD = "account_add"
    ACCOUNT_USE = "account_use"
    EXPORT = "export"
    EXPORT_MONTH = "export_month"


ALLOWED_COMMANDS = frozenset(command.value for command in CommandName)


class InvalidIntentReason(str, Enum):
    """Why an extracted transaction could not be accepted."""
    INVALID_AMOUNT = "invalid_amount"
    UNKNOWN_TRANSACTION_TYPE = "unknown_transaction_type"


# =============================================================================
# RAW ORACLE PAYLOADS (untrusted)
# =============================================================================

class OracleIntentPayload(BaseModel):
    """The `intent` object as the language model wrote it."""
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    command: Optional[str] = None
    args: Optional[dict[str, Any]] = None


class OracleTransactionPayload(BaseModel):
    """
    The `transaction` object (or the legacy flat payload).

    `amount` stays untyped: it may arrive as 20, 20.5, "20", "$1,200.00".
    Bare numbers in the text fields are read as their string form.
    """
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    amount: Any = None
    description: Optional[str] = None
    category: Optional[str] = None
    account: Optional[str] = None

    @field_validator('type', 'description', 'category', 'account', mode='before')
    @classmethod
    def stringify_scalars(cls, v: Any) -> Any:
        # Models sometimes answer "description": 42
        if isinstance(v, (int, float, Decimal)):
            return str(v)
        return v


# =============================================================================
# RESOLVED INTENTS (trusted)
# =============================================================================

class TransactionIntent(BaseModel):
    """A validated request to record a transaction."""

    intent_type: Literal["transaction"] = "transaction"
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    description: str
    category: Optional[str] = None
    account: str


class CommandIntent(BaseModel):
    """An allowlisted command with its (unvalidated) arguments."""

    intent_type: Literal["command"] = "command"
    command: CommandName
    args: dict[str, Any] = Field(default_factory=dict)


class NoIntent(BaseModel):
    """Nothing actionable was found in the message."""

    intent_type: Literal["none"] = "none"
    reason: Optional[str] = None


class InvalidIntent(BaseModel):
    """A transaction was attempted but failed validation."""

    intent_type: Literal["invalid"] = "invalid"
    reason: InvalidIntentReason
    message: str


ResolvedIntent = Annotated[
    Union[TransactionIntent, CommandIntent, NoIntent, InvalidIntent],
    Field(discriminator="intent_type"),
]
