"""
Command Handler Base

Handlers are stateless. Everything user-specific reaches them through
the CommandContext (what was asked) and the LedgerCapabilities (what
they may touch). Handlers never call each other; the router composes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union

from chatledger.commands.formatter import MessageFormatter
from chatledger.confirmation import ConfirmationManager
from chatledger.ledger.interface import AccountManager, BudgetTracker, TransactionLedger
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.confirmation import PendingConfirmation
from chatledger.models.ledger import MonthRef


INVALID_MONTH_MESSAGE = '❌ Invalid month number. Send "months" to see available months.'


@dataclass
class LedgerCapabilities:
    """The per-user services a handler may use."""

    ledger: TransactionLedger
    accounts: AccountManager
    budgets: BudgetTracker
    confirmations: ConfirmationManager


def parse_index(value: Any, default: int = 1) -> Optional[int]:
    """Parse a 1-based position argument; None when it is not an integer."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def select_month(caps: LedgerCapabilities, index_arg: Any) -> Union[MonthRef, CommandResult]:
    """
    Resolve a 1-based month position from the months list.

    Returns the MonthRef, or a failure result with guidance.
    """
    index = parse_index(index_arg)
    months = caps.ledger.get_all_months()
    if index is None or not 1 <= index <= len(months):
        return CommandResult.failure(INVALID_MONTH_MESSAGE, index=index_arg)
    return months[index - 1]


class BaseCommandHandler(ABC):
    """One command. Invoked only by the CommandRouter."""

    name: str = ""

    def __init__(self, formatter: MessageFormatter):
        self.formatter = formatter

    @abstractmethod
    async def execute(
        self,
        context: CommandContext,
        caps: LedgerCapabilities,
    ) -> CommandResult:
        pass


class ConfirmableHandler(BaseCommandHandler):
    """A command whose action runs only after the user confirms it."""

    cancelled_message: str = "❌ Cancelled."

    @abstractmethod
    async def confirm(
        self,
        pending: PendingConfirmation,
        context: CommandContext,
        caps: LedgerCapabilities,
    ) -> CommandResult:
        """Execute a confirmed pending payload."""
        pass

    def request_confirmation(
        self,
        context: CommandContext,
        caps: LedgerCapabilities,
        pending: PendingConfirmation,
        message: str,
    ) -> CommandResult:
        caps.confirmations.request(context.user_id, pending)
        return CommandResult(
            success=True,
            message=message,
            data={"kind": pending.kind},
            requires_confirmation=True,
        )
