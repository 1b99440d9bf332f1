"""Tests for the command router and its handlers."""

import csv
import io
from decimal import Decimal

import pytest

from conftest import USER_ID

from chatledger.commands import NO_INTENT_MESSAGE, match_destructive
from chatledger.ledger import BudgetEngine
from chatledger.models.command import CommandContext
from chatledger.models.intent import (
    CommandIntent,
    CommandName,
    InvalidIntent,
    InvalidIntentReason,
    NoIntent,
    TransactionIntent,
)
from chatledger.models.ledger import TransactionType


def context(message: str = "") -> CommandContext:
    return CommandContext(user_id=USER_ID, message=message)


def command(name: CommandName, /, **args) -> CommandIntent:
    return CommandIntent(command=name, args=args)


class TestMatchDestructive:
    """Explicit destructive patterns."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("delete 12", ("delete", {"id": 12})),
            ("DELETE   -3", ("delete", {"id": -3})),
            ("clear", ("clear_history", {})),
            ("clearall", ("clear_history", {})),
            ("Clear All", ("clear_history", {})),
            ("clear month 2", ("clear_month", {"index": 2})),
            ("clear all data", ("clear_all_data", {})),
            ("wipe all", ("clear_all_data", {})),
            ("reset all", ("clear_all_data", {})),
            ("delete all data", ("clear_all_data", {})),
        ],
    )
    def test_patterns(self, text, expected):
        assert match_destructive(text) == expected

    @pytest.mark.parametrize("text", ["delete", "delete lunch", "please clear", "clear month", "spent 5"])
    def test_non_matches(self, text):
        assert match_destructive(text) is None


class TestViewCommands:
    """Tests for read-only commands."""

    @pytest.mark.asyncio
    async def test_balance(self, router, caps, ledger):
        await ledger.add_income(Decimal("10"), "tip")
        result = await router.route_intent(command(CommandName.BALANCE), context(), caps)
        assert result.success
        assert "$10.00" in result.message

    @pytest.mark.asyncio
    async def test_history_shows_ids(self, router, caps, ledger):
        item = await ledger.add_expense(Decimal("4"), "a very long description that gets cut")
        result = await router.route_intent(command(CommandName.HISTORY), context(), caps)
        assert f"[ID: {item.id}]" in result.message
        assert "..." in result.message
        assert result.data["ids"] == [item.id]

    @pytest.mark.asyncio
    async def test_empty_history(self, router, caps):
        result = await router.route_intent(command(CommandName.HISTORY), context(), caps)
        assert result.message == "📜 No transactions yet."

    @pytest.mark.asyncio
    async def test_month_views(self, router, caps, ledger):
        await ledger.add_income(Decimal("10"), "tip", category="gifts")
        await ledger.add_expense(Decimal("4"), "tea", category="food")

        months = await router.route_intent(command(CommandName.MONTHS), context(), caps)
        month = await router.route_intent(command(CommandName.MONTH, index=1), context(), caps)
        stats = await router.route_intent(command(CommandName.CATSTATS), context(), caps)
        categories = await router.route_intent(command(CommandName.CATEGORIES), context(), caps)

        assert months.message.startswith("📅 Available months:")
        assert "💰 Net: $6.00" in month.message
        assert "1. gifts:" in stats.message
        assert "1. food" in categories.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index", [0, 2, "abc", 1.5])
    async def test_invalid_month_index(self, router, caps, ledger, index):
        await ledger.add_income(Decimal("10"), "tip")
        result = await router.route_intent(command(CommandName.MONTH, index=index), context(), caps)
        assert not result.success
        assert "Invalid month number" in result.message


class TestBudgetCommands:
    """Tests for budget creation and the replace confirmation."""

    @pytest.mark.asyncio
    async def test_create_then_replace(self, router, caps, audit_storage):
        created = await router.route_intent(
            command(CommandName.BUDGET_CREATE, amount=500), context(), caps
        )
        assert created.success
        assert not created.requires_confirmation

        again = await router.route_intent(
            command(CommandName.BUDGET_CREATE, amount="750"), context(), caps
        )
        assert again.requires_confirmation
        pending = caps.confirmations.get_pending(USER_ID)
        assert pending.kind == "budget_replace"
        assert pending.existing_total == Decimal("500")

        caps.confirmations.cancel(USER_ID)
        done = await router.execute_confirmed(pending, context("yes"), caps)

        assert done.success
        assert "updated" in done.message
        budgets = await caps.budgets.get_budgets(pending.year, pending.month)
        assert [b.amount for b in budgets] == [Decimal("750")]
        assert "confirmation_requested" in audit_storage.types()
        assert "confirmation_accepted" in audit_storage.types()

    @pytest.mark.asyncio
    async def test_invalid_budget_amount(self, router, caps):
        result = await router.route_intent(
            command(CommandName.BUDGET_CREATE, amount="lots"), context(), caps
        )
        assert not result.success

    @pytest.mark.asyncio
    async def test_budget_status(self, router, caps, ledger):
        await router.route_intent(command(CommandName.BUDGET_CREATE, amount=10), context(), caps)
        await ledger.add_expense(Decimal("15"), "dinner")
        result = await router.route_intent(command(CommandName.BUDGET_STATUS), context(), caps)
        assert "⚠️ Overall" in result.message
        assert result.data["over_budget"] == ["overall"]

    @pytest.mark.asyncio
    async def test_budgets_list_empty(self, router, caps):
        result = await router.route_intent(command(CommandName.BUDGETS), context(), caps)
        assert result.message == "💰 No budgets set for this month."


class TestAccountCommands:
    @pytest.mark.asyncio
    async def test_add_use_and_list(self, router, caps):
        await router.route_intent(command(CommandName.ACCOUNT_ADD, name="Savings"), context(), caps)
        await router.route_intent(command(CommandName.ACCOUNT_USE, name="bank"), context(), caps)
        result = await router.route_intent(command(CommandName.ACCOUNTS), context(), caps)

        assert result.data["accounts"] == ["cash", "bank", "savings"]
        assert "bank (current)" in result.message

    @pytest.mark.asyncio
    async def test_missing_name(self, router, caps):
        result = await router.route_intent(command(CommandName.ACCOUNT_USE), context(), caps)
        assert not result.success


class TestExportCommands:
    @pytest.mark.asyncio
    async def test_nothing_to_export(self, router, caps):
        result = await router.route_intent(command(CommandName.EXPORT), context(), caps)
        assert not result.success
        assert result.attachment is None

    @pytest.mark.asyncio
    async def test_export_attachment(self, router, caps, ledger):
        await ledger.add_expense(Decimal("4"), 'the "best" tea', category="food")
        result = await router.route_intent(command(CommandName.EXPORT), context(), caps)

        assert result.success
        attachment = result.attachment
        assert attachment.filename.startswith("chatledger-export-")
        assert attachment.filename.endswith(".csv")
        text = attachment.content.decode("utf-8")
        assert text.startswith('"ID","Date","Type","Amount","Description","Category","Account"\n')
        assert '"the ""best"" tea"' in text
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[1][3] == "4.00"

    @pytest.mark.asyncio
    async def test_export_month(self, router, caps, ledger):
        await ledger.add_income(Decimal("10"), "tip")
        result = await router.route_intent(command(CommandName.EXPORT_MONTH, index=1), context(), caps)
        month = caps.ledger.get_all_months()[0]
        assert result.attachment.filename == f"chatledger-export-{month.file_suffix}.csv"


class TestDestructiveCommands:
    """Destructive commands only run from explicit text."""

    @pytest.mark.asyncio
    async def test_delete_by_id(self, router, caps, ledger):
        item = await ledger.add_expense(Decimal("4"), "tea")
        result = await router.route_destructive(f"delete {item.id}", context(), caps)
        assert result.success
        assert ledger.count_transactions() == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, router, caps):
        result = await router.route_destructive("delete 404", context(), caps)
        assert not result.success
        assert "not found" in result.message

    @pytest.mark.asyncio
    async def test_clear_requires_confirmation(self, router, caps, ledger):
        await ledger.add_expense(Decimal("4"), "tea")
        result = await router.route_destructive("clear", context(), caps)

        assert result.requires_confirmation
        assert ledger.count_transactions() == 1

        pending = caps.confirmations.cancel(USER_ID)
        done = await router.execute_confirmed(pending, context(), caps)
        assert done.success
        assert ledger.count_transactions() == 0

    @pytest.mark.asyncio
    async def test_clear_with_nothing_to_clear(self, router, caps):
        result = await router.route_destructive("clear", context(), caps)
        assert not result.requires_confirmation
        assert not caps.confirmations.has_pending(USER_ID)

    @pytest.mark.asyncio
    async def test_clear_month(self, router, caps, ledger):
        await ledger.add_expense(Decimal("4"), "tea")
        result = await router.route_destructive("clear month 1", context(), caps)
        pending = caps.confirmations.get_pending(USER_ID)
        assert result.requires_confirmation
        assert pending.kind == "clear_month"
        assert pending.count == 1

    @pytest.mark.asyncio
    async def test_clear_month_bad_index(self, router, caps):
        result = await router.route_destructive("clear month 3", context(), caps)
        assert not result.success
        assert not caps.confirmations.has_pending(USER_ID)

    @pytest.mark.asyncio
    async def test_clear_all_data(self, router, caps, ledger):
        await ledger.add_expense(Decimal("4"), "tea")
        result = await router.route_destructive("clear all data", context(), caps)
        assert result.requires_confirmation
        assert caps.confirmations.get_pending(USER_ID).kind == "clear_all_data"

    @pytest.mark.asyncio
    async def test_cancel_message(self, router, caps, ledger, audit_storage):
        await ledger.add_expense(Decimal("4"), "tea")
        await router.route_destructive("clear", context(), caps)
        pending = caps.confirmations.cancel(USER_ID)

        result = await router.cancel_confirmed(pending, context("no"))

        assert result.message == "❌ Clear history cancelled."
        assert "confirmation_cancelled" in audit_storage.types()

    @pytest.mark.asyncio
    async def test_not_destructive(self, router, caps):
        assert await router.route_destructive("show balance", context(), caps) is None


class TestIntentRouting:
    """Tests for non-command intents and handler failures."""

    @pytest.mark.asyncio
    async def test_transaction_intent(self, router, caps, ledger):
        intent = TransactionIntent(
            type=TransactionType.INCOME,
            amount=Decimal("25"),
            description="freelance",
            account="bank",
        )
        result = await router.route_intent(intent, context(), caps)

        assert result.success
        assert "Added income of $25.00 for freelance in bank" in result.message
        assert ledger.get_balance() == Decimal("25")

    @pytest.mark.asyncio
    async def test_invalid_intent(self, router, caps):
        intent = InvalidIntent(reason=InvalidIntentReason.INVALID_AMOUNT, message="Invalid amount.")
        result = await router.route_intent(intent, context(), caps)
        assert not result.success
        assert result.message == "❌ Invalid amount."

    @pytest.mark.asyncio
    async def test_no_intent(self, router, caps):
        result = await router.route_intent(NoIntent(), context(), caps)
        assert result.message == NO_INTENT_MESSAGE

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failure(self, router, caps, row_store, ledger, audit_storage):
        class BrokenBudgets(BudgetEngine):
            async def get_budgets(self, year, month):
                raise RuntimeError("boom")

        caps.budgets = BrokenBudgets(USER_ID, row_store, ledger)
        result = await router.route_intent(command(CommandName.BUDGETS), context(), caps)

        assert not result.success
        assert result.message == "❌ Error: boom"
        assert "system_error" in audit_storage.types()

    def test_registry_is_allowlist(self, router):
        assert sorted(router.command_names) == sorted(c.value for c in CommandName)
