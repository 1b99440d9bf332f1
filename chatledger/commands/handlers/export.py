"""
Export commands.

The CSV travels on the result as an ExportAttachment; the transport
decides how to deliver it.
"""

from chatledger.commands.base import BaseCommandHandler, LedgerCapabilities, select_month
from chatledger.ledger.export import export_filename
from chatledger.models.command import CommandContext, CommandResult, ExportAttachment
from chatledger.models.ledger import MonthRef, utc_now


class ExportHandler(BaseCommandHandler):
    name = "export"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        count = caps.ledger.count_transactions()
        if count == 0:
            return CommandResult.failure("📜 No transactions to export.")

        balance = caps.ledger.get_balance()
        caption = (
            f"📊 Exported {count} transaction(s)\n"
            f"💰 Current balance: {self.formatter.money(balance)}"
        )
        return CommandResult(
            success=True,
            message=caption,
            data={"count": count},
            attachment=ExportAttachment(
                filename=export_filename(utc_now().strftime("%Y-%m-%d")),
                content=caps.ledger.export_to_csv().encode("utf-8"),
                caption=caption,
            ),
        )


class ExportMonthHandler(BaseCommandHandler):
    name = "export_month"

    async def execute(self, context: CommandContext, caps: LedgerCapabilities) -> CommandResult:
        month = select_month(caps, context.args.get("index"))
        if not isinstance(month, MonthRef):
            return month

        count = len(caps.ledger.get_transactions_by_month(month.year, month.month))
        if count == 0:
            return CommandResult.failure(f"📜 No transactions to export for {month.name}.")

        caption = f"📊 Exported {count} transaction(s) from {month.name}"
        return CommandResult(
            success=True,
            message=caption,
            data={"count": count, "year": month.year, "month": month.month},
            attachment=ExportAttachment(
                filename=export_filename(month.file_suffix),
                content=caps.ledger.export_month_to_csv(month.year, month.month).encode("utf-8"),
                caption=caption,
            ),
        )
