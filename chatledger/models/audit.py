"""
Audit Models for Chat Ledger

Every ledger mutation and every confirmation transition is logged.
This provides:
1. Complete traceability of destructive actions
2. Debugging information when the oracle misbehaves
3. A record of when the ledger ran in degraded (memory-only) mode

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Not even "clear all data" touches the audit log.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from chatledger.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Messages
    ORACLE_COMMAND_REJECTED = "oracle_command_rejected"
    ORACLE_MALFORMED = "oracle_malformed"

    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    HISTORY_CLEARED = "history_cleared"
    MONTH_CLEARED = "month_cleared"
    ALL_DATA_CLEARED = "all_data_cleared"

    # Budgets and accounts
    BUDGET_CREATED = "budget_created"
    BUDGET_DELETED = "budget_deleted"
    ACCOUNT_CREATED = "account_created"

    # Confirmation protocol
    CONFIRMATION_REQUESTED = "confirmation_requested"
    CONFIRMATION_ACCEPTED = "confirmation_accepted"
    CONFIRMATION_CANCELLED = "confirmation_cancelled"

    # System events
    STORAGE_DEGRADED = "storage_degraded"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Whose ledger
    user_id: Optional[str] = None

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events caused by one chat message
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered directly by a user reply?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(user_id, 42, "expense", "12.50")
        event = AuditEventBuilder.confirmation_accepted(user_id, "clear_month")
    """

    @staticmethod
    def transaction_added(
        user_id: str,
        transaction_id: int,
        transaction_type: str,
        amount: str,
        account: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Added {transaction_type} of {amount} to {account}",
            details={
                "type": transaction_type,
                "amount": amount,
                "account": account,
            },
        )

    @staticmethod
    def transaction_deleted(
        user_id: str,
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=str(transaction_id),
            correlation_id=correlation_id,
            description=f"Deleted transaction {transaction_id}",
            is_user_action=True,
        )

    @staticmethod
    def history_cleared(
        user_id: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_CLEARED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Cleared {count} transactions",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def month_cleared(
        user_id: str,
        year: int,
        month: int,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_CLEARED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Cleared {count} transactions from {year}-{month + 1:02d}",
            details={"year": year, "month": month, "count": count},
            is_user_action=True,
        )

    @staticmethod
    def all_data_cleared(
        user_id: str,
        counts: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALL_DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Cleared all transactions, budgets and accounts",
            details=counts,
            is_user_action=True,
        )

    @staticmethod
    def budget_created(
        user_id: str,
        budget_id: int,
        year: int,
        month: int,
        category: Optional[str],
        amount: str,
        replaced: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            user_id=user_id,
            entity_type="budget",
            entity_id=str(budget_id),
            correlation_id=correlation_id,
            description=f"Budget of {amount} set for {category or 'overall'} ({year}-{month + 1:02d})",
            details={
                "year": year,
                "month": month,
                "category": category,
                "amount": amount,
                "replaced": replaced,
            },
        )

    @staticmethod
    def budget_deleted(
        user_id: str,
        count: int,
        budget_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            user_id=user_id,
            entity_type="budget",
            entity_id=str(budget_id) if budget_id is not None else None,
            description=f"Deleted {count} budget(s)",
            details={"count": count, **(details or {})},
        )

    @staticmethod
    def account_created(
        user_id: str,
        name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            user_id=user_id,
            entity_type="account",
            entity_id=name,
            description=f"Account created: {name}",
        )

    @staticmethod
    def confirmation_requested(
        user_id: str,
        kind: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIRMATION_REQUESTED,
            user_id=user_id,
            entity_type="confirmation",
            entity_id=kind,
            correlation_id=correlation_id,
            description=f"Confirmation requested: {kind}",
            details=details or {},
        )

    @staticmethod
    def confirmation_accepted(
        user_id: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIRMATION_ACCEPTED,
            user_id=user_id,
            entity_type="confirmation",
            entity_id=kind,
            correlation_id=correlation_id,
            description=f"User confirmed: {kind}",
            is_user_action=True,
        )

    @staticmethod
    def confirmation_cancelled(
        user_id: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIRMATION_CANCELLED,
            user_id=user_id,
            entity_type="confirmation",
            entity_id=kind,
            correlation_id=correlation_id,
            description=f"User cancelled: {kind}",
            is_user_action=True,
        )

    @staticmethod
    def oracle_command_rejected(
        user_id: str,
        command: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORACLE_COMMAND_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="intent",
            correlation_id=correlation_id,
            description=f"Language model proposed a command outside the allowlist: {command[:100]}",
            details={"command": command[:100]},
        )

    @staticmethod
    def oracle_malformed(
        user_id: str,
        response: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORACLE_MALFORMED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="intent",
            correlation_id=correlation_id,
            description="Language model reply contained no JSON object",
            details={"response": response[:200]},
        )

    @staticmethod
    def storage_degraded(
        user_id: str,
        operation: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_DEGRADED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="storage",
            description=f"Storage unavailable during {operation}; continuing in memory",
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        user_id: Optional[str] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
