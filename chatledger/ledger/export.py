"""
CSV Export

Deterministic CSV for a set of transactions:
- every field quoted, embedded quotes doubled
- dates as YYYY-MM-DD (UTC), amounts with exactly two decimals
- rows oldest first, insertion order kept for equal timestamps

An empty input yields the header row only.
"""

import csv
import io
from datetime import datetime, timezone
from decimal import Decimal, localcontext
from typing import Iterable

from chatledger.models.ledger import StoredTransaction, Transaction, TransactionType


CSV_HEADER = ["ID", "Date", "Type", "Amount", "Description", "Category", "Account"]

EXPORT_FILENAME_PREFIX = "chatledger-export"

TWO_PLACES = Decimal("0.01")


def format_amount(amount: Decimal) -> str:
    with localcontext() as ctx:
        # quantize needs every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return str(amount.quantize(TWO_PLACES))


def transactions_to_csv(items: Iterable[StoredTransaction]) -> str:
    """Render transactions as CSV text, oldest first."""
    ordered = sorted(items, key=lambda item: item.transaction.timestamp)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for item in ordered:
        t = item.transaction
        writer.writerow([
            item.id,
            t.timestamp.strftime("%Y-%m-%d"),
            t.type.value,
            format_amount(t.amount),
            t.description,
            t.category or "",
            t.account,
        ])
    return buffer.getvalue()


def transactions_from_csv(text: str) -> list[Transaction]:
    """
    Parse CSV produced by transactions_to_csv back into transactions.

    Timestamps come back at day precision (midnight UTC).
    Ids are not restored; the importing ledger assigns its own.
    """
    reader = csv.DictReader(io.StringIO(text))
    transactions = []
    for row in reader:
        date = datetime.strptime(row["Date"], "%Y-%m-%d").replace(tzinfo=timezone.utc)
        transactions.append(
            Transaction(
                amount=Decimal(row["Amount"]),
                description=row["Description"],
                type=TransactionType(row["Type"]),
                category=row.get("Category") or None,
                account=row.get("Account") or None,
                timestamp=date,
            )
        )
    return transactions


def export_filename(suffix: str) -> str:
    """e.g. chatledger-export-2024-01-31.csv or chatledger-export-2024-01.csv"""
    return f"{EXPORT_FILENAME_PREFIX}-{suffix}.csv"
