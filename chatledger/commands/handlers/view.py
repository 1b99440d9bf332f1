"""Read-only view commands."""

from chatledger.commands.base import BaseCommandHandler, LedgerCapabilities, select_month
from chatledger.commands.formatter import MessageFormatter
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.ledger import MonthRef


class BalanceHandler(BaseCommandHandler):
    name = "balance"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        balance = caps.ledger.get_balance()
        return CommandResult(
            success=True,
            message=self.formatter.balance(balance),
            data={"balance": str(balance)},
        )


class HistoryHandler(BaseCommandHandler):
    name = "history"

    def __init__(self, formatter: MessageFormatter, limit: int = 10):
        super().__init__(formatter)
        self.limit = limit

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        items = caps.ledger.get_recent_transactions(self.limit)
        return CommandResult(
            success=True,
            message=self.formatter.history(items),
            data={"ids": [item.id for item in items]},
        )


class MonthsHandler(BaseCommandHandler):
    name = "months"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        months = caps.ledger.get_all_months()
        return CommandResult(success=True, message=self.formatter.months(months))


class MonthHandler(BaseCommandHandler):
    """Transactions of the month at a 1-based position in the months list."""

    name = "month"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        month = select_month(caps, context.args.get("index"))
        if not isinstance(month, MonthRef):
            return month
        items = caps.ledger.get_transactions_by_month(month.year, month.month)
        return CommandResult(
            success=True,
            message=self.formatter.month_transactions(month, items),
        )


class CategoriesHandler(BaseCommandHandler):
    name = "categories"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        categories = caps.ledger.get_all_categories()
        return CommandResult(success=True, message=self.formatter.categories(categories))


class CategoryStatsHandler(BaseCommandHandler):
    name = "catstats"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        month = select_month(caps, context.args.get("index"))
        if not isinstance(month, MonthRef):
            return month
        stats = caps.ledger.get_category_stats_for_month(month.year, month.month)
        return CommandResult(
            success=True,
            message=self.formatter.category_stats(month, stats),
        )
