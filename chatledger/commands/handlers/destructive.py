"""
Destructive commands.

CRITICAL: These are reachable only from explicit text patterns matched
by the router, never from language-model output.

- delete <id> names exactly one transaction and runs directly.
- clear, clear month <n> and clear all data store a pending
  confirmation; the action runs from confirm() once the user agrees.
"""

from chatledger.commands.base import (
    BaseCommandHandler,
    ConfirmableHandler,
    LedgerCapabilities,
    parse_index,
    select_month,
)
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.confirmation import (
    ClearAllDataConfirmation,
    ClearHistoryConfirmation,
    ClearMonthConfirmation,
    PendingConfirmation,
)
from chatledger.models.ledger import MonthRef


class DeleteTransactionHandler(BaseCommandHandler):
    name = "delete"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        transaction_id = parse_index(context.args.get("id"), default=None)
        if transaction_id is None:
            return CommandResult.failure("❌ Invalid transaction ID.")

        if not await caps.ledger.delete_transaction(transaction_id):
            return CommandResult.failure(
                f'❌ Transaction {transaction_id} not found. Send "history" to see transaction ids.',
                id=transaction_id,
            )

        balance = caps.ledger.get_balance()
        return CommandResult(
            success=True,
            message=(
                f"✅ Transaction {transaction_id} deleted. "
                f"New balance: {self.formatter.money(balance)}"
            ),
            data={"id": transaction_id, "balance": str(balance)},
        )


class ClearHistoryHandler(ConfirmableHandler):
    name = "clear_history"
    cancelled_message = "❌ Clear history cancelled."

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        count = caps.ledger.count_transactions()
        if count == 0:
            return CommandResult(success=True, message="📜 No transactions to clear.")

        balance = caps.ledger.get_balance()
        return self.request_confirmation(
            context,
            caps,
            ClearHistoryConfirmation(count=count, balance=balance),
            self.formatter.clear_history_prompt(count, balance),
        )

    async def confirm(
        self,
        pending: PendingConfirmation,
        context: CommandContext,
        caps: LedgerCapabilities,
    ) -> CommandResult:
        count = await caps.ledger.clear_history()
        if count == 0:
            return CommandResult(success=True, message="📜 No transactions to clear.")
        balance = caps.ledger.get_balance()
        return CommandResult(
            success=True,
            message=(
                f"✅ Cleared {count} transaction(s).\n"
                f"💰 Balance reset to {self.formatter.money(balance)}"
            ),
            data={"count": count},
        )


class ClearMonthHandler(ConfirmableHandler):
    name = "clear_month"
    cancelled_message = "❌ Clear month cancelled."

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        month = select_month(caps, context.args.get("index"))
        if not isinstance(month, MonthRef):
            return month

        count = len(caps.ledger.get_transactions_by_month(month.year, month.month))
        if count == 0:
            return CommandResult(
                success=True,
                message=f"📜 No transactions to clear for {month.name}.",
            )

        return self.request_confirmation(
            context,
            caps,
            ClearMonthConfirmation(
                year=month.year,
                month=month.month,
                count=count,
                month_name=month.name,
            ),
            self.formatter.clear_month_prompt(count, month.name),
        )

    async def confirm(
        self,
        pending: PendingConfirmation,
        context: CommandContext,
        caps: LedgerCapabilities,
    ) -> CommandResult:
        count = await caps.ledger.clear_month(pending.year, pending.month)
        if count == 0:
            return CommandResult(success=True, message="📜 No transactions to clear.")
        balance = caps.ledger.get_balance()
        return CommandResult(
            success=True,
            message=(
                f"✅ Cleared {count} transaction(s) from {pending.month_name}.\n"
                f"💰 New balance: {self.formatter.money(balance)}"
            ),
            data={"count": count},
        )


class ClearAllDataHandler(ConfirmableHandler):
    name = "clear_all_data"
    cancelled_message = "❌ Clear all data cancelled."

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        counts = await caps.ledger.count_all_data()
        if counts.is_empty:
            return CommandResult(success=True, message="📜 No data to clear.")

        return self.request_confirmation(
            context,
            caps,
            ClearAllDataConfirmation(counts=counts),
            self.formatter.clear_all_data_prompt(counts),
        )

    async def confirm(
        self,
        pending: PendingConfirmation,
        context: CommandContext,
        caps: LedgerCapabilities,
    ) -> CommandResult:
        counts = await caps.ledger.clear_all_data()
        return CommandResult(
            success=True,
            message=self.formatter.all_data_cleared(counts, caps.ledger.get_balance()),
            data=counts.model_dump(),
        )
