"""Command handlers grouped by family."""

from chatledger.commands.handlers.account import (
    AccountAddHandler,
    AccountsHandler,
    AccountUseHandler,
)
from chatledger.commands.handlers.budget import (
    BudgetCreateHandler,
    BudgetsHandler,
    BudgetStatusHandler,
)
from chatledger.commands.handlers.destructive import (
    ClearAllDataHandler,
    ClearHistoryHandler,
    ClearMonthHandler,
    DeleteTransactionHandler,
)
from chatledger.commands.handlers.export import ExportHandler, ExportMonthHandler
from chatledger.commands.handlers.transaction import RecordTransactionHandler
from chatledger.commands.handlers.view import (
    BalanceHandler,
    CategoriesHandler,
    CategoryStatsHandler,
    HistoryHandler,
    MonthHandler,
    MonthsHandler,
)

__all__ = [
    "AccountAddHandler",
    "AccountsHandler",
    "AccountUseHandler",
    "BalanceHandler",
    "BudgetCreateHandler",
    "BudgetsHandler",
    "BudgetStatusHandler",
    "CategoriesHandler",
    "CategoryStatsHandler",
    "ClearAllDataHandler",
    "ClearHistoryHandler",
    "ClearMonthHandler",
    "DeleteTransactionHandler",
    "ExportHandler",
    "ExportMonthHandler",
    "HistoryHandler",
    "MonthHandler",
    "MonthsHandler",
    "RecordTransactionHandler",
]
