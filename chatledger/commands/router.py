"""
Command Router

The single composition point between intents and handlers.

CRITICAL BOUNDARIES:
- Language-model intents can only reach the allowlisted, non-destructive
  registry. Destructive handlers live in a separate registry that is
  reachable only from explicit text patterns.
- Confirmed payloads are executed here, by dispatching on their kind.
- Every handler call is wrapped: an unexpected exception becomes a
  failure result carrying its description. The transport always gets
  a CommandResult.
"""

import re
from typing import Awaitable, Callable, Optional
from uuid import UUID

import structlog

from chatledger.audit import AuditLogger
from chatledger.commands.base import (
    BaseCommandHandler,
    ConfirmableHandler,
    LedgerCapabilities,
)
from chatledger.commands.formatter import MessageFormatter
from chatledger.commands.handlers import (
    AccountAddHandler,
    AccountsHandler,
    AccountUseHandler,
    BalanceHandler,
    BudgetCreateHandler,
    BudgetsHandler,
    BudgetStatusHandler,
    CategoriesHandler,
    CategoryStatsHandler,
    ClearAllDataHandler,
    ClearHistoryHandler,
    ClearMonthHandler,
    DeleteTransactionHandler,
    ExportHandler,
    ExportMonthHandler,
    HistoryHandler,
    MonthHandler,
    MonthsHandler,
    RecordTransactionHandler,
)
from chatledger.models.audit import AuditEventBuilder
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.confirmation import ConfirmationKind, PendingConfirmation
from chatledger.models.intent import (
    CommandIntent,
    CommandName,
    InvalidIntent,
    NoIntent,
    ResolvedIntent,
    TransactionIntent,
)


NO_INTENT_MESSAGE = (
    "🤔 I couldn't find a transaction or command in that message. "
    'Try something like "spent $20 on lunch" or type "help".'
)

# (pattern, destructive command, name of the captured argument)
DESTRUCTIVE_PATTERNS: list[tuple[re.Pattern, str, Optional[str]]] = [
    (re.compile(r"^delete\s+(-?\d+)$", re.IGNORECASE), "delete", "id"),
    (re.compile(r"^(?:clear|clearall|clear all)$", re.IGNORECASE), "clear_history", None),
    (re.compile(r"^clear month\s+(\d+)$", re.IGNORECASE), "clear_month", "index"),
    (
        re.compile(r"^(?:clear all data|delete all data|reset all|wipe all)$", re.IGNORECASE),
        "clear_all_data",
        None,
    ),
]


def match_destructive(text: str) -> Optional[tuple[str, dict]]:
    """
    Recognize an explicit destructive command.

    Returns (command, args) or None. Whitespace is collapsed first.
    """
    normalized = " ".join(text.split())
    for pattern, command, arg_name in DESTRUCTIVE_PATTERNS:
        match = pattern.match(normalized)
        if match:
            args = {arg_name: int(match.group(1))} if arg_name else {}
            return command, args
    return None


class CommandRouter:
    """
    Dispatches resolved intents and destructive text to handlers.

    Stateless: all user state arrives through LedgerCapabilities.
    """

    def __init__(
        self,
        formatter: Optional[MessageFormatter] = None,
        history_limit: int = 10,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.formatter = formatter or MessageFormatter()
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

        f = self.formatter
        self._budget_create = BudgetCreateHandler(f)

        # Reachable from language-model intents
        self._commands: dict[CommandName, BaseCommandHandler] = {
            CommandName.BALANCE: BalanceHandler(f),
            CommandName.HISTORY: HistoryHandler(f, limit=history_limit),
            CommandName.MONTHS: MonthsHandler(f),
            CommandName.MONTH: MonthHandler(f),
            CommandName.CATEGORIES: CategoriesHandler(f),
            CommandName.CATSTATS: CategoryStatsHandler(f),
            CommandName.BUDGETS: BudgetsHandler(f),
            CommandName.BUDGET_STATUS: BudgetStatusHandler(f),
            CommandName.BUDGET_CREATE: self._budget_create,
            CommandName.ACCOUNTS: AccountsHandler(f),
            CommandName.ACCOUNT_ADD: AccountAddHandler(f),
            CommandName.ACCOUNT_USE: AccountUseHandler(f),
            CommandName.EXPORT: ExportHandler(f),
            CommandName.EXPORT_MONTH: ExportMonthHandler(f),
        }

        # Reachable from explicit text patterns only
        self._clear_history = ClearHistoryHandler(f)
        self._clear_month = ClearMonthHandler(f)
        self._clear_all_data = ClearAllDataHandler(f)
        self._destructive: dict[str, BaseCommandHandler] = {
            "delete": DeleteTransactionHandler(f),
            "clear_history": self._clear_history,
            "clear_month": self._clear_month,
            "clear_all_data": self._clear_all_data,
        }

        # Executors for confirmed payloads
        self._confirmable: dict[ConfirmationKind, ConfirmableHandler] = {
            ConfirmationKind.BUDGET_REPLACE: self._budget_create,
            ConfirmationKind.CLEAR_HISTORY: self._clear_history,
            ConfirmationKind.CLEAR_MONTH: self._clear_month,
            ConfirmationKind.CLEAR_ALL_DATA: self._clear_all_data,
        }

        self._record_transaction = RecordTransactionHandler(f)

    @property
    def command_names(self) -> list[str]:
        return [command.value for command in self._commands]

    async def _invoke(
        self,
        name: str,
        context: CommandContext,
        call: Callable[[], Awaitable[CommandResult]],
    ) -> CommandResult:
        try:
            return await call()
        except Exception as e:
            self._logger.error(
                "command_failed",
                command=name,
                user_id=context.user_id,
                error=str(e),
                exc_info=True,
            )
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    user_id=context.user_id,
                    details={"command": name},
                )
            return CommandResult.failure(f"❌ Error: {e}")

    async def _run(
        self,
        handler: BaseCommandHandler,
        context: CommandContext,
        caps: LedgerCapabilities,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        context = context.model_copy(update={"command": handler.name})
        result = await self._invoke(
            handler.name,
            context,
            lambda: handler.execute(context, caps),
        )
        if result.requires_confirmation and self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.confirmation_requested(
                    user_id=context.user_id,
                    kind=result.data.get("kind", handler.name),
                    details={k: v for k, v in result.data.items() if k != "kind"},
                    correlation_id=correlation_id,
                )
            )
        return result

    async def route_intent(
        self,
        intent: ResolvedIntent,
        context: CommandContext,
        caps: LedgerCapabilities,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Dispatch a validated intent from the language model."""
        if isinstance(intent, CommandIntent):
            handler = self._commands[intent.command]
            context = context.model_copy(update={"args": dict(intent.args)})
            return await self._run(handler, context, caps, correlation_id)

        if isinstance(intent, TransactionIntent):
            context = context.model_copy(
                update={"args": intent.model_dump(exclude={"intent_type"})}
            )
            return await self._run(self._record_transaction, context, caps, correlation_id)

        if isinstance(intent, InvalidIntent):
            return CommandResult.failure(f"❌ {intent.message}", reason=intent.reason.value)

        reason = intent.reason if isinstance(intent, NoIntent) else None
        return CommandResult.failure(NO_INTENT_MESSAGE, reason=reason)

    async def route_destructive(
        self,
        text: str,
        context: CommandContext,
        caps: LedgerCapabilities,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[CommandResult]:
        """Run an explicit destructive command, or return None if text is not one."""
        matched = match_destructive(text)
        if matched is None:
            return None
        command, args = matched
        context = context.model_copy(update={"args": args})
        return await self._run(self._destructive[command], context, caps, correlation_id)

    async def execute_confirmed(
        self,
        pending: PendingConfirmation,
        context: CommandContext,
        caps: LedgerCapabilities,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Execute a payload the user has just confirmed."""
        kind = ConfirmationKind(pending.kind)
        handler = self._confirmable[kind]

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.confirmation_accepted(
                    context.user_id, kind.value, correlation_id=correlation_id
                )
            )
        return await self._invoke(
            kind.value,
            context,
            lambda: handler.confirm(pending, context, caps),
        )

    async def cancel_confirmed(
        self,
        pending: PendingConfirmation,
        context: CommandContext,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Acknowledge a pending payload the user has just declined."""
        kind = ConfirmationKind(pending.kind)
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.confirmation_cancelled(
                    context.user_id, kind.value, correlation_id=correlation_id
                )
            )
        return CommandResult(
            success=True,
            message=self._confirmable[kind].cancelled_message,
            data={"kind": kind.value},
        )
