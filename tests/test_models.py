"""
Tests for Chat Ledger models

Test strategy:
1. Unit tests for individual components (models, stores, resolver)
2. Flow tests with an in-memory row store and a scripted oracle
3. No real API calls in tests
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pydantic import TypeAdapter, ValidationError

from chatledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from chatledger.models.command import CommandResult
from chatledger.models.confirmation import (
    BudgetReplaceConfirmation,
    ClearAllDataConfirmation,
    ClearMonthConfirmation,
    PendingConfirmation,
)
from chatledger.models.intent import (
    ALLOWED_COMMANDS,
    CommandIntent,
    InvalidIntent,
    NoIntent,
    ResolvedIntent,
    TransactionIntent,
)
from chatledger.models.ledger import (
    Budget,
    DataCount,
    MonthRef,
    Transaction,
    TransactionType,
    month_bounds,
    normalize_name,
)


class TestTransactionModel:
    """Tests for the immutable Transaction model."""

    def test_transaction_creation(self):
        """Test Transaction model creation with defaults."""
        t = Transaction(amount=Decimal("12.50"), description="lunch", type=TransactionType.EXPENSE)
        assert t.amount == Decimal("12.50")
        assert t.account == "cash"
        assert t.category is None
        assert t.timestamp.tzinfo is not None

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in (Decimal("0"), Decimal("-5")):
            with pytest.raises(ValidationError):
                Transaction(amount=amount, type=TransactionType.INCOME)

    def test_transaction_is_frozen(self):
        """Test that a transaction cannot be edited in place."""
        t = Transaction(amount=Decimal("1"), type=TransactionType.INCOME)
        with pytest.raises(ValidationError):
            t.amount = Decimal("2")

    def test_names_are_normalized(self):
        """Test that category and account are trimmed and lower-cased."""
        t = Transaction(
            amount=Decimal("3"),
            type=TransactionType.EXPENSE,
            category="  Food ",
            account=" BANK",
        )
        assert t.category == "food"
        assert t.account == "bank"

    def test_blank_account_falls_back_to_cash(self):
        t = Transaction(amount=Decimal("3"), type=TransactionType.EXPENSE, account="   ")
        assert t.account == "cash"

    def test_naive_timestamp_is_treated_as_utc(self):
        t = Transaction(
            amount=Decimal("3"),
            type=TransactionType.EXPENSE,
            timestamp=datetime(2024, 1, 31, 23, 0),
        )
        assert t.timestamp == datetime(2024, 1, 31, 23, 0, tzinfo=timezone.utc)

    def test_aware_timestamp_is_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        t = Transaction(
            amount=Decimal("3"),
            type=TransactionType.EXPENSE,
            timestamp=datetime(2024, 2, 1, 1, 0, tzinfo=plus_two),
        )
        assert t.timestamp.month == 1
        assert t.in_month(2024, 0)

    def test_signed_amount(self):
        income = Transaction(amount=Decimal("10"), type=TransactionType.INCOME)
        expense = Transaction(amount=Decimal("4"), type=TransactionType.EXPENSE)
        assert income.signed_amount == Decimal("10")
        assert expense.signed_amount == Decimal("-4")


class TestMonthHelpers:
    """Tests for month boundaries and references."""

    def test_month_bounds_half_open(self):
        start, end = month_bounds(2024, 0)
        assert start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 2, 1, tzinfo=timezone.utc)

    def test_december_rolls_into_next_year(self):
        _, end = month_bounds(2023, 11)
        assert end == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_month_out_of_range(self):
        with pytest.raises(ValueError):
            month_bounds(2024, 12)

    def test_month_ref_names(self):
        ref = MonthRef(year=2024, month=2)
        assert ref.name == "March 2024"
        assert ref.file_suffix == "2024-03"

    def test_normalize_name(self):
        assert normalize_name("  Groceries ") == "groceries"
        assert normalize_name("   ") is None
        assert normalize_name(None) is None


class TestBudgetAndCounts:
    """Tests for Budget and DataCount."""

    def test_budget_overall_when_no_category(self):
        budget = Budget(user_id="u", year=2024, month=0, amount=Decimal("500"))
        assert budget.is_overall
        assert budget.type == TransactionType.EXPENSE

    def test_budget_category_normalized(self):
        budget = Budget(user_id="u", year=2024, month=0, amount=Decimal("50"), category=" Food")
        assert budget.category == "food"
        assert not budget.is_overall

    def test_budget_month_is_zero_indexed(self):
        with pytest.raises(ValidationError):
            Budget(user_id="u", year=2024, month=12, amount=Decimal("1"))

    def test_data_count_is_empty(self):
        assert DataCount().is_empty
        assert not DataCount(budgets=1).is_empty


class TestIntentModels:
    """Tests for resolved intents."""

    def test_discriminated_union(self):
        adapter = TypeAdapter(ResolvedIntent)
        intent = adapter.validate_python({"intent_type": "command", "command": "balance"})
        assert isinstance(intent, CommandIntent)
        assert isinstance(adapter.validate_python({"intent_type": "none"}), NoIntent)

    def test_allowlist_has_no_destructive_commands(self):
        """Test that delete and clear can never be reached from model output."""
        for name in ("delete", "clear", "clear_history", "clear_month", "clear_all_data"):
            assert name not in ALLOWED_COMMANDS

    def test_unknown_command_rejected(self):
        with pytest.raises(ValidationError):
            CommandIntent(command="clear_all_data")

    def test_transaction_intent_requires_positive_amount(self):
        with pytest.raises(ValidationError):
            TransactionIntent(
                type=TransactionType.EXPENSE,
                amount=Decimal("0"),
                description="x",
                account="cash",
            )

    def test_invalid_intent_carries_message(self):
        intent = InvalidIntent(reason="invalid_amount", message="bad")
        assert intent.reason.value == "invalid_amount"


class TestConfirmationModels:
    """Tests for pending confirmation payloads."""

    def test_pending_discriminated_by_kind(self):
        adapter = TypeAdapter(PendingConfirmation)
        pending = adapter.validate_python(
            {"kind": "clear_month", "year": 2024, "month": 0, "count": 3, "month_name": "January 2024"}
        )
        assert isinstance(pending, ClearMonthConfirmation)

    def test_budget_replace_defaults(self):
        pending = BudgetReplaceConfirmation(amount=Decimal("100"), year=2024, month=5)
        assert pending.kind == "budget_replace"
        assert pending.budget_type == TransactionType.EXPENSE
        assert pending.existing_budget_ids == []

    def test_clear_all_data_holds_counts(self):
        pending = ClearAllDataConfirmation(counts=DataCount(transactions=2))
        assert pending.counts.transactions == 2


class TestCommandResult:
    def test_failure_helper(self):
        result = CommandResult.failure("nope", id=3)
        assert not result.success
        assert result.data == {"id": 3}
        assert result.attachment is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Added expense",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_sheets_row(self):
        """Test AuditEvent conversion to a worksheet row."""
        event = AuditEventBuilder.history_cleared("u1", 4)
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "history_cleared"
        assert row[3] == "warning"
        assert row[4] == "u1"
        assert row[11] == "True"

    def test_month_cleared_description_is_one_based(self):
        event = AuditEventBuilder.month_cleared("u1", 2024, 0, 2)
        assert "2024-01" in event.description
        assert event.details["month"] == 0

    def test_oracle_command_rejected_truncates(self):
        event = AuditEventBuilder.oracle_command_rejected("u1", "x" * 300)
        assert len(event.details["command"]) == 100
        assert event.severity == AuditSeverity.WARNING
