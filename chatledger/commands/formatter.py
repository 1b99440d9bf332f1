"""
Message Formatter

All chat-facing text for ledger views lives here so handlers stay
free of presentation details.
"""

from decimal import Decimal
from typing import Optional

from chatledger.models.ledger import (
    Budget,
    BudgetStatus,
    CategoryStats,
    DataCount,
    MonthRef,
    StoredTransaction,
    TransactionType,
)


def truncate(text: str, limit: int = 25) -> str:
    """Shorten text longer than limit to limit-3 characters plus '...'."""
    if len(text) > limit:
        return text[:limit - 3] + "..."
    return text


class MessageFormatter:
    """Formats ledger data as chat messages."""

    def __init__(self, currency_symbol: str = "$"):
        self.currency = currency_symbol

    def money(self, amount: Decimal) -> str:
        if amount < 0:
            return f"-{self.currency}{abs(amount):.2f}"
        return f"{self.currency}{amount:.2f}"

    def signed_money(self, amount: Decimal) -> str:
        return f"+{self.money(amount)}" if amount >= 0 else self.money(amount)

    def _transaction_line(self, position: int, item: StoredTransaction, suffix: str) -> str:
        t = item.transaction
        if t.type == TransactionType.INCOME:
            sign, emoji = "+", "📥"
        else:
            sign, emoji = "-", "📤"
        return f"{position}. {emoji} {sign}{self.money(t.amount)} - {truncate(t.description)} {suffix}".rstrip()

    # =========================================================================
    # VIEWS
    # =========================================================================

    def balance(self, balance: Decimal) -> str:
        return f"💰 Current balance: {self.money(balance)}"

    def history(self, items: list[StoredTransaction]) -> str:
        if not items:
            return "📜 No transactions yet."
        lines = [
            self._transaction_line(i, item, f"[ID: {item.id}]")
            for i, item in enumerate(items, start=1)
        ]
        return f"📋 Last {len(items)} transactions:\n\n" + "\n".join(lines)

    def months(self, months: list[MonthRef]) -> str:
        if not months:
            return "📅 No transactions found."
        lines = [f"{i}. {month.name}" for i, month in enumerate(months, start=1)]
        return "📅 Available months:\n\n" + "\n".join(lines)

    def month_transactions(self, month: MonthRef, items: list[StoredTransaction]) -> str:
        if not items:
            return f"📅 No transactions for {month.name}"

        lines = [
            self._transaction_line(
                i, item, f"({item.transaction.timestamp.strftime('%Y-%m-%d')})"
            )
            for i, item in enumerate(items, start=1)
        ]
        income = sum(
            (i.transaction.amount for i in items if i.transaction.type == TransactionType.INCOME),
            Decimal("0"),
        )
        expense = sum(
            (i.transaction.amount for i in items if i.transaction.type == TransactionType.EXPENSE),
            Decimal("0"),
        )
        return (
            f"📅 {month.name}:\n\n" + "\n".join(lines) + "\n\n"
            "📊 Summary:\n"
            f"📥 Income: {self.money(income)}\n"
            f"📤 Expenses: {self.money(expense)}\n"
            f"💰 Net: {self.money(income - expense)}"
        )

    def categories(self, categories: list[str]) -> str:
        if not categories:
            return "📂 No categories found. Transactions will be uncategorized."
        lines = [f"{i}. {name}" for i, name in enumerate(categories, start=1)]
        return "📂 Your categories:\n\n" + "\n".join(lines)

    def category_stats(self, month: MonthRef, stats: list[CategoryStats]) -> str:
        if not stats:
            return f"📊 No transactions for {month.name}"
        blocks = [
            f"{i}. {s.category}:\n"
            f"   📥 Income: {self.money(s.income)}\n"
            f"   📤 Expenses: {self.money(s.expense)}\n"
            f"   💰 Net: {self.signed_money(s.net)}"
            for i, s in enumerate(stats, start=1)
        ]
        return f"📊 Category Stats for {month.name}:\n\n" + "\n\n".join(blocks)

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def budgets(self, month_label: str, budgets: list[Budget]) -> str:
        if not budgets:
            return "💰 No budgets set for this month."
        lines = [
            f"• {b.category or 'Overall Budget'}: {self.money(b.amount)} ({b.type.value})"
            for b in budgets
        ]
        return f"💰 Budgets for {month_label}:\n\n" + "\n".join(lines)

    def budget_status(self, statuses: list[BudgetStatus]) -> str:
        if not statuses:
            return "💰 No budgets set for this month."
        blocks = []
        for s in statuses:
            emoji = "⚠️" if s.is_over_budget else "✅"
            progress = f"{s.percentage:.1f}% spent" if s.percentage > 0 else "No spending yet"
            blocks.append(
                f"{emoji} {s.category or 'Overall'}:\n"
                f"   Budget: {self.money(s.budget_amount)}\n"
                f"   Spent: {self.money(s.spent_amount)}\n"
                f"   Remaining: {self.money(s.remaining)}\n"
                f"   {progress}"
            )
        return "📊 Budget Status:\n\n" + "\n\n".join(blocks)

    def budget_set(self, amount: Decimal, category: Optional[str], month_label: str, replaced: bool = False) -> str:
        target = f'"{category}"' if category else "overall spending"
        verb = "updated" if replaced else "set"
        return f"✅ Budget {verb}: {self.money(amount)} for {target} ({month_label})."

    def budget_replace_prompt(self, existing_total: Decimal, amount: Decimal, category: Optional[str]) -> str:
        return (
            "⚠️ Budget Already Exists\n\n"
            f'You already have a {self.money(existing_total)} budget for "{category or "overall"}" this month.\n\n'
            f'To replace it with {self.money(amount)}, reply: "yes" or "replace"\n'
            'To cancel, reply "no" or just carry on.'
        )

    # =========================================================================
    # ACCOUNTS & TRANSACTIONS
    # =========================================================================

    def accounts(self, accounts: list[str], current: str) -> str:
        lines = [
            f"{i}. {name} (current)" if name == current else f"{i}. {name}"
            for i, name in enumerate(accounts, start=1)
        ]
        return "🏦 Your accounts:\n\n" + "\n".join(lines)

    def transaction_added(self, item: StoredTransaction, balance: Decimal) -> str:
        t = item.transaction
        action = "Added income" if t.type == TransactionType.INCOME else "Added expense"
        return (
            f"✅ {action} of {self.money(t.amount)} for {t.description} in {t.account}. "
            f"Current balance: {self.money(balance)} [ID: {item.id}]"
        )

    # =========================================================================
    # DESTRUCTIVE
    # =========================================================================

    def clear_history_prompt(self, count: int, balance: Decimal) -> str:
        return (
            "⚠️ WARNING: Clear All Transactions?\n\n"
            f"This will delete {count} transaction(s) permanently!\n\n"
            f"Balance: {self.money(balance)}\n\n"
            'To confirm, reply: "yes clear all" or "confirm clear"\n'
            'To cancel, reply "no" or just carry on.'
        )

    def clear_month_prompt(self, count: int, month_label: str) -> str:
        return (
            "⚠️ WARNING: Clear Month?\n\n"
            f"This will delete {count} transaction(s) from {month_label} permanently!\n\n"
            'To confirm, reply: "yes" or "confirm"\n'
            'To cancel, reply "no" or just carry on.'
        )

    def clear_all_data_prompt(self, counts: DataCount) -> str:
        return (
            "⚠️ CRITICAL WARNING: Clear ALL Data?\n\n"
            "This will PERMANENTLY delete:\n"
            f"• {counts.transactions} transaction(s)\n"
            f"• {counts.budgets} budget(s)\n"
            f"• {counts.accounts} account(s)\n\n"
            "This action CANNOT be undone!\n\n"
            'To confirm, reply: "yes delete everything" or "confirm delete all"\n'
            'To cancel, reply "no" or just carry on.'
        )

    def all_data_cleared(self, counts: DataCount, balance: Decimal) -> str:
        return (
            "✅ All Data Cleared\n\n"
            "Deleted:\n"
            f"• {counts.transactions} transaction(s)\n"
            f"• {counts.budgets} budget(s)\n"
            f"• {counts.accounts} account(s)\n\n"
            f"💰 Balance reset to {self.money(balance)}\n\n"
            "Your ledger has been reset to a fresh start."
        )
