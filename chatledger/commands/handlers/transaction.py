"""Recording a validated transaction intent."""

from chatledger.commands.base import BaseCommandHandler, LedgerCapabilities
from chatledger.ledger.store import InvalidAmountError
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.intent import TransactionIntent
from chatledger.models.ledger import TransactionType


class RecordTransactionHandler(BaseCommandHandler):
    """Adds the income or expense carried in context.args."""

    name = "record_transaction"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        intent = TransactionIntent.model_validate(context.args)

        if intent.type == TransactionType.INCOME:
            add = caps.ledger.add_income
        else:
            add = caps.ledger.add_expense

        try:
            item = await add(
                intent.amount,
                intent.description,
                category=intent.category,
                account=intent.account,
            )
        except InvalidAmountError:
            return CommandResult.failure("❌ Invalid amount. Please provide a valid number.")

        balance = caps.ledger.get_balance()
        return CommandResult(
            success=True,
            message=self.formatter.transaction_added(item, balance),
            data={
                "id": item.id,
                "type": intent.type.value,
                "amount": str(item.transaction.amount),
                "balance": str(balance),
            },
        )
