"""
Data Models Package

This package contains all Pydantic models used in Chat Ledger.
All data flowing through the system must conform to these schemas.
"""

from chatledger.models.ledger import (
    DEFAULT_ACCOUNT,
    Budget,
    BudgetStatus,
    CategoryStats,
    DataCount,
    MonthRef,
    StoredTransaction,
    Transaction,
    TransactionType,
    month_bounds,
    month_name,
    normalize_name,
)
from chatledger.models.intent import (
    ALLOWED_COMMANDS,
    CommandIntent,
    CommandName,
    InvalidIntent,
    InvalidIntentReason,
    NoIntent,
    OracleIntentPayload,
    OracleTransactionPayload,
    ResolvedIntent,
    TransactionIntent,
)
from chatledger.models.confirmation import (
    BudgetReplaceConfirmation,
    ClearAllDataConfirmation,
    ClearHistoryConfirmation,
    ClearMonthConfirmation,
    ConfirmationKind,
    ConfirmationOutcome,
    ConfirmationResolution,
    PendingConfirmation,
)
from chatledger.models.command import (
    CommandContext,
    CommandResult,
    ExportAttachment,
)
from chatledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_ACCOUNT",
    "Budget",
    "BudgetStatus",
    "CategoryStats",
    "DataCount",
    "MonthRef",
    "StoredTransaction",
    "Transaction",
    "TransactionType",
    "month_bounds",
    "month_name",
    "normalize_name",
    # Intent models
    "ALLOWED_COMMANDS",
    "CommandIntent",
    "CommandName",
    "InvalidIntent",
    "InvalidIntentReason",
    "NoIntent",
    "OracleIntentPayload",
    "OracleTransactionPayload",
    "ResolvedIntent",
    "TransactionIntent",
    # Confirmation models
    "BudgetReplaceConfirmation",
    "ClearAllDataConfirmation",
    "ClearHistoryConfirmation",
    "ClearMonthConfirmation",
    "ConfirmationKind",
    "ConfirmationOutcome",
    "ConfirmationResolution",
    "PendingConfirmation",
    # Command models
    "CommandContext",
    "CommandResult",
    "ExportAttachment",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
