"""
Budget commands.

All budget commands work on the current (UTC) month. Creating a budget
where one already exists for the same category asks for confirmation
before replacing it.
"""

from decimal import Decimal

from chatledger.commands.base import ConfirmableHandler, BaseCommandHandler, LedgerCapabilities
from chatledger.ledger.store import InvalidAmountError, parse_amount
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.confirmation import BudgetReplaceConfirmation, PendingConfirmation
from chatledger.models.ledger import TransactionType, month_name, normalize_name, utc_now


def current_month() -> tuple[int, int]:
    """(year, 0-indexed month) of now in UTC."""
    now = utc_now()
    return now.year, now.month - 1


class BudgetsHandler(BaseCommandHandler):
    name = "budgets"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        year, month = current_month()
        budgets = await caps.budgets.get_budgets(year, month)
        return CommandResult(
            success=True,
            message=self.formatter.budgets(month_name(year, month), budgets),
        )


class BudgetStatusHandler(BaseCommandHandler):
    name = "budget_status"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        year, month = current_month()
        statuses = await caps.budgets.get_budget_status(year, month)
        return CommandResult(
            success=True,
            message=self.formatter.budget_status(statuses),
            data={"over_budget": [s.category or "overall" for s in statuses if s.is_over_budget]},
        )


class BudgetCreateHandler(ConfirmableHandler):
    """Sets this month's expense budget, overall or for one category."""

    name = "budget_create"
    cancelled_message = "❌ Budget update cancelled."

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        try:
            amount = parse_amount(context.args.get("amount"))
        except InvalidAmountError:
            return CommandResult.failure("❌ Invalid budget amount.")

        category = normalize_name(context.args.get("category"))
        year, month = current_month()

        existing = await caps.budgets.find_matching_budgets(
            year, month, category, TransactionType.EXPENSE
        )
        if existing:
            existing_total = sum((b.amount for b in existing), Decimal("0"))
            pending = BudgetReplaceConfirmation(
                amount=amount,
                year=year,
                month=month,
                category=category,
                existing_budget_ids=[b.id for b in existing if b.id is not None],
                existing_total=existing_total,
            )
            return self.request_confirmation(
                context,
                caps,
                pending,
                self.formatter.budget_replace_prompt(existing_total, amount, category),
            )

        budget_id = await caps.budgets.create_budget(amount, year, month, category)
        return CommandResult(
            success=True,
            message=self.formatter.budget_set(amount, category, month_name(year, month)),
            data={"budget_id": budget_id},
        )

    async def confirm(
        self,
        pending: PendingConfirmation,
        context: CommandContext,
        caps: LedgerCapabilities,
    ) -> CommandResult:
        for budget_id in pending.existing_budget_ids:
            await caps.budgets.delete_budget(budget_id)

        budget_id = await caps.budgets.create_budget(
            pending.amount,
            pending.year,
            pending.month,
            pending.category,
            pending.budget_type,
        )
        return CommandResult(
            success=True,
            message=self.formatter.budget_set(
                pending.amount,
                pending.category,
                month_name(pending.year, pending.month),
                replaced=True,
            ),
            data={"budget_id": budget_id},
        )
