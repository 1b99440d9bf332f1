"""
Flow tests: chat text in, CommandResult out.

The row store is in memory and the language model is scripted, so these
exercise every layer between the transport and storage.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from conftest import USER_ID, command_reply, transaction_reply

from chatledger.agents import OracleError
from chatledger.commands import NO_INTENT_MESSAGE
from chatledger.config import get_settings
from chatledger.ledger import BudgetEngine, LedgerStore
from chatledger.orchestrator import (
    HELP_MESSAGE,
    ORACLE_UNAVAILABLE_MESSAGE,
    WELCOME_MESSAGE,
    ConversationFlow,
    create_app_components,
    is_greeting,
)
from chatledger.sessions import SessionStore


class TestStaticReplies:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["hi", "Hello", "/start", "/start now"])
    async def test_greeting(self, flow, oracle, text):
        result = await flow.handle_message(USER_ID, text)
        assert result.message == WELCOME_MESSAGE
        assert oracle.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["help", "HELP", "commands"])
    async def test_help(self, flow, text):
        result = await flow.handle_message(USER_ID, text)
        assert result.message == HELP_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_message(self, flow):
        result = await flow.handle_message(USER_ID, "   ")
        assert not result.success

    def test_greeting_is_exact(self):
        assert not is_greeting("hi there, spent 5 on tea")
        assert not is_greeting("this")


class TestTransactionsThroughChat:
    """Messages that the oracle turns into transactions."""

    @pytest.mark.asyncio
    async def test_expense_recorded(self, flow, oracle, sessions):
        oracle.script("spent $20 on lunch", transaction_reply("expense", 20, "lunch", "food"))

        result = await flow.handle_message(USER_ID, "spent $20 on lunch")

        assert result.success
        ledger = sessions.get(USER_ID).ledger
        assert ledger.get_balance() == Decimal("-20")
        assert ledger.get_all_categories() == ["food"]

    @pytest.mark.asyncio
    async def test_transaction_uses_current_account(self, flow, oracle, sessions):
        oracle.script("use bank", command_reply("account_use", name="bank"))
        oracle.script("got 100", transaction_reply("income", "100", "gift"))

        await flow.handle_message(USER_ID, "use bank")
        result = await flow.handle_message(USER_ID, "got 100")

        assert "in bank" in result.message
        assert sessions.get(USER_ID).ledger.get_account_balance("bank") == Decimal("100")

    @pytest.mark.asyncio
    async def test_invalid_amount(self, flow, oracle, sessions):
        oracle.script("spent nothing", transaction_reply("expense", 0, "x"))
        result = await flow.handle_message(USER_ID, "spent nothing")
        assert not result.success
        assert sessions.get(USER_ID).ledger.count_transactions() == 0

    @pytest.mark.asyncio
    async def test_nothing_extracted(self, flow):
        result = await flow.handle_message(USER_ID, "what a nice day")
        assert not result.success
        assert result.message == NO_INTENT_MESSAGE

    @pytest.mark.asyncio
    async def test_oracle_failure(self, flow, oracle):
        oracle.script("spent 5", OracleError("quota exceeded"))
        result = await flow.handle_message(USER_ID, "spent 5")
        assert not result.success
        assert result.message == ORACLE_UNAVAILABLE_MESSAGE

    @pytest.mark.asyncio
    async def test_messages_for_one_user_are_serialized(self, flow, oracle, sessions):
        """Test that concurrent messages for one user all land exactly once."""
        for n in range(1, 6):
            oracle.script(f"got {n}", transaction_reply("income", n, f"gift {n}"))

        await asyncio.gather(*(flow.handle_message(USER_ID, f"got {n}") for n in range(1, 6)))

        ledger = sessions.get(USER_ID).ledger
        assert ledger.count_transactions() == 5
        assert ledger.get_balance() == Decimal("15")

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, flow, oracle, sessions):
        oracle.script("got 10", transaction_reply("income", 10, "gift"))
        await flow.handle_message("alice", "got 10")
        await flow.handle_message("bob", "got 10")
        await flow.handle_message("bob", "clear")
        await flow.handle_message("bob", "yes")

        assert sessions.get("alice").ledger.get_balance() == Decimal("10")
        assert sessions.get("bob").ledger.get_balance() == Decimal("0")


class TestDestructiveFlow:
    """Explicit destructive text, confirmed over two messages."""

    @pytest.mark.asyncio
    async def test_destructive_text_bypasses_oracle(self, flow, oracle):
        await flow.handle_message(USER_ID, "clear")
        await flow.handle_message(USER_ID, "delete 3")
        assert oracle.calls == []

    @pytest.mark.asyncio
    async def test_clear_all_data_gate(self, flow, oracle, sessions, row_store):
        """Test that clear all data only runs after its explicit phrase."""
        oracle.script("got 10", transaction_reply("income", 10, "gift"))
        await flow.handle_message(USER_ID, "got 10")

        prompt = await flow.handle_message(USER_ID, "clear all data")
        assert prompt.requires_confirmation

        # A plain yes is not enough; the message is routed normally
        await flow.handle_message(USER_ID, "yes")
        assert await row_store.count("transactions") == 1
        assert sessions.get(USER_ID).confirmations.has_pending(USER_ID)

        done = await flow.handle_message(USER_ID, "yes delete everything")
        assert done.success
        assert "All Data Cleared" in done.message
        assert await row_store.count("transactions") == 0
        assert not sessions.get(USER_ID).confirmations.has_pending(USER_ID)

    @pytest.mark.asyncio
    async def test_cancel(self, flow, oracle, sessions):
        oracle.script("got 10", transaction_reply("income", 10, "gift"))
        await flow.handle_message(USER_ID, "got 10")
        await flow.handle_message(USER_ID, "clear month 1")

        result = await flow.handle_message(USER_ID, "cancel")

        assert result.message == "❌ Clear month cancelled."
        assert sessions.get(USER_ID).ledger.get_balance() == Decimal("10")

    @pytest.mark.asyncio
    async def test_unrelated_message_keeps_pending(self, flow, oracle, sessions):
        oracle.script("got 10", transaction_reply("income", 10, "gift"))
        await flow.handle_message(USER_ID, "got 10")
        await flow.handle_message(USER_ID, "clear")

        result = await flow.handle_message(USER_ID, "got 10")
        assert result.success
        assert sessions.get(USER_ID).ledger.get_balance() == Decimal("20")

        confirmed = await flow.handle_message(USER_ID, "confirm clear")
        assert confirmed.data["count"] == 2
        assert sessions.get(USER_ID).ledger.get_balance() == Decimal("0")

    @pytest.mark.asyncio
    async def test_budget_replace_over_chat(self, flow, oracle, sessions):
        oracle.script("budget 500", command_reply("budget_create", amount=500, category="groceries"))
        oracle.script("budget 300", command_reply("budget_create", amount=300, category="groceries"))

        await flow.handle_message(USER_ID, "budget 500")
        prompt = await flow.handle_message(USER_ID, "budget 300")
        assert prompt.requires_confirmation

        await flow.handle_message(USER_ID, "replace")

        session = sessions.get(USER_ID)
        assert not session.confirmations.has_pending(USER_ID)
        budgets = await session.budgets.find_matching_budgets(
            *_current_month(), "groceries"
        )
        assert [b.amount for b in budgets] == [Decimal("300")]


class TestScenarios:
    """End-to-end scenarios for the ledger core."""

    @pytest.mark.asyncio
    async def test_scenario_a_income_then_expense(self, ledger):
        await ledger.ensure_loaded()
        await ledger.add_income(500, "salary")
        await ledger.add_expense(45, "groceries")
        assert ledger.get_balance() == Decimal("455.00")

    @pytest.mark.asyncio
    async def test_scenario_b_clear_one_month(self, row_store):
        for amount, type_, month in (("100", "income", 1), ("40", "expense", 1), ("7", "income", 2)):
            await row_store.insert(
                "transactions",
                {
                    "user_id": USER_ID,
                    "amount": amount,
                    "description": "seeded",
                    "type": type_,
                    "account": "cash",
                    "timestamp": datetime(2024, month, 10, tzinfo=timezone.utc).isoformat(),
                },
            )
        ledger = LedgerStore(USER_ID, row_store)
        await ledger.ensure_loaded()

        assert await ledger.clear_month(2024, 0) == 2
        assert ledger.get_balance() == Decimal("7")
        assert len(ledger.get_transactions_by_month(2024, 1)) == 1

    @pytest.mark.asyncio
    async def test_scenario_c_unlisted_command_never_deletes(self, flow, oracle, sessions):
        oracle.script("got 10", transaction_reply("income", 10, "gift"))
        oracle.script("delete everything please", command_reply("delete_all"))
        await flow.handle_message(USER_ID, "got 10")

        result = await flow.handle_message(USER_ID, "delete everything please")

        assert not result.success
        assert not result.requires_confirmation
        assert sessions.get(USER_ID).ledger.count_transactions() == 1

    @pytest.mark.asyncio
    async def test_scenario_d_budget_second_amount_wins(self, row_store):
        engine = BudgetEngine(USER_ID, row_store, LedgerStore(USER_ID, row_store))
        await engine.create_budget(500, 2024, 0, "groceries")
        await engine.create_budget(300, 2024, 0, "groceries")

        budgets = await engine.find_matching_budgets(2024, 0, "groceries")
        assert len(budgets) == 1
        assert budgets[0].amount == Decimal("300.00")


class TestFlowResilience:
    @pytest.mark.asyncio
    async def test_loads_existing_rows_for_new_session(self, flow, row_store, sessions):
        await row_store.insert(
            "transactions",
            {
                "user_id": USER_ID,
                "amount": "42",
                "description": "old",
                "type": "income",
                "account": "cash",
                "timestamp": "2024-01-01T00:00:00+00:00",
            },
        )
        await flow.handle_message(USER_ID, "clear")
        assert sessions.get(USER_ID).ledger.get_balance() == Decimal("42")

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failure(self, oracle, audit_logger, audit_storage):
        def broken_factory(user_id):
            raise RuntimeError("no session for you")

        flow = ConversationFlow(
            sessions=SessionStore(broken_factory),
            oracle=oracle,
            audit_logger=audit_logger,
        )
        result = await flow.handle_message(USER_ID, "spent 5")

        assert not result.success
        assert result.message == "❌ Error: no session for you"
        assert "system_error" in audit_storage.types()


def _current_month():
    now = datetime.now(timezone.utc)
    return now.year, now.month - 1


class TestCreateAppComponents:
    @pytest.mark.asyncio
    async def test_memory_backend(self, monkeypatch, oracle):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        get_settings.cache_clear()
        oracle.script("got 10", transaction_reply("income", 10, "gift"))

        flow, sheets_client = create_app_components(oracle=oracle)
        result = await flow.handle_message(USER_ID, "got 10")

        assert sheets_client is None
        assert result.success
        assert flow.sessions.get(USER_ID).ledger.get_balance() == Decimal("10")
        get_settings.cache_clear()
