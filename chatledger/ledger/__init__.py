"""Ledger package: per-user transaction projection, budgets and CSV export."""

from chatledger.ledger.budget import BudgetEngine
from chatledger.ledger.export import (
    CSV_HEADER,
    export_filename,
    transactions_from_csv,
    transactions_to_csv,
)
from chatledger.ledger.interface import AccountManager, BudgetTracker, TransactionLedger
from chatledger.ledger.store import (
    InvalidAmountError,
    LedgerError,
    LedgerStore,
    parse_amount,
)

__all__ = [
    "AccountManager",
    "BudgetEngine",
    "BudgetTracker",
    "CSV_HEADER",
    "InvalidAmountError",
    "LedgerError",
    "LedgerStore",
    "TransactionLedger",
    "export_filename",
    "parse_amount",
    "transactions_from_csv",
    "transactions_to_csv",
]
