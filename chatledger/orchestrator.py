"""
Conversation Flow for Chat Ledger

This module ties together all the components and defines the
end-to-end flow for one chat message:

    text → greeting/help → session → pending confirmation
         → explicit destructive command → oracle → resolver → router

DESIGN DECISION: The flow enforces the boundaries:
- Nothing destructive happens without an explicit pattern AND a confirmation
- The language model only proposes; the resolver validates; the router acts
- Messages for one user are processed one at a time
- Every message gets a CommandResult, whatever fails underneath
"""

import re
from typing import Optional
from uuid import UUID

import structlog

from chatledger.agents import ExtractionOracle, GeminiExtractionOracle, OracleError
from chatledger.audit import AuditLogger, configure_logging, create_correlation_id
from chatledger.commands import CommandRouter, MessageFormatter
from chatledger.config import get_settings
from chatledger.confirmation import ConfirmationManager
from chatledger.ledger import BudgetEngine, LedgerStore
from chatledger.models.command import CommandContext, CommandResult
from chatledger.models.confirmation import ConfirmationOutcome
from chatledger.models.intent import NoIntent
from chatledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
    InMemoryRowStore,
    RowStoreInterface,
)
from chatledger.sessions import SessionStore, UserSession
from chatledger.validation import IntentResolver


WELCOME_MESSAGE = (
    "👋 Welcome to Chat Ledger!\n\n"
    "I can help you track your money:\n"
    '• "I spent $50 on groceries"\n'
    '• "Received $200 salary"\n'
    '• "Paid $30 for lunch"\n\n'
    'Type "help" to see all commands!'
)

HELP_MESSAGE = (
    "📚 **Chat Ledger Commands**\n\n"
    "💬 **Transactions** (just say it):\n"
    '• "Received $500 salary"\n'
    '• "Spent $50 on groceries"\n\n'
    "📊 **Views:**\n"
    '• "show balance", "show history"\n'
    '• "show months", "show month 1"\n'
    '• "show categories", "category stats for month 1"\n\n'
    "💰 **Budgets:**\n"
    '• "set budget $500" or "budget $200 for groceries"\n'
    '• "show budgets", "budget status"\n\n'
    "🏦 **Accounts:**\n"
    '• "show accounts", "add account bank", "use bank"\n\n'
    "💾 **Export:**\n"
    '• "export data", "export month 1"\n\n'
    "🗑️ **Delete (exact commands only):**\n"
    "• `delete 12` removes transaction #12\n"
    "• `clear month 1` removes every transaction in month #1\n"
    "• `clear` removes all transactions\n"
    "• `clear all data` removes transactions, budgets and accounts"
)

ORACLE_UNAVAILABLE_MESSAGE = (
    "😕 Sorry, I couldn't understand that right now. "
    'Please try again, or type "help" to see what I can do.'
)

HELP_PATTERN = re.compile(r"^(help|commands)$", re.IGNORECASE)
GREETINGS = frozenset({"hi", "hello"})


def is_greeting(text: str) -> bool:
    lowered = text.strip().lower()
    return lowered in GREETINGS or lowered.startswith("/start")


class ConversationFlow:
    """
    Orchestrates the handling of one chat message.

    Flow:
    1. Greeting / help → static reply
    2. Session → lock, then ensure the ledger is loaded
    3. Pending confirmation → confirm, cancel, or fall through
    4. Destructive pattern → router (bypasses the oracle)
    5. Oracle → resolver → router
    """

    def __init__(
        self,
        sessions: SessionStore,
        oracle: ExtractionOracle,
        resolver: Optional[IntentResolver] = None,
        router: Optional[CommandRouter] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._sessions = sessions
        self._oracle = oracle
        self._resolver = resolver or IntentResolver(audit_logger)
        self._router = router or CommandRouter(audit_logger=audit_logger)
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    async def handle_message(self, user_id: str, text: str) -> CommandResult:
        """
        Process one inbound message for one user.

        Never raises: any failure becomes a failure CommandResult.
        """
        text = (text or "").strip()
        if not text:
            return CommandResult.failure("❌ Empty message.")

        if is_greeting(text):
            return CommandResult(success=True, message=WELCOME_MESSAGE)
        if HELP_PATTERN.match(text):
            return CommandResult(success=True, message=HELP_MESSAGE)

        correlation_id = create_correlation_id()
        log = self._logger.bind(user_id=user_id, correlation_id=str(correlation_id))

        try:
            session = self._sessions.get_or_create(user_id)
            async with session.lock:
                await session.ledger.ensure_loaded()
                return await self._handle_in_session(session, text, correlation_id)
        except Exception as e:
            log.error("message_failed", error=str(e), exc_info=True)
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    user_id=user_id,
                    correlation_id=correlation_id,
                )
            return CommandResult.failure(f"❌ Error: {e}")

    async def _handle_in_session(
        self,
        session: UserSession,
        text: str,
        correlation_id: UUID,
    ) -> CommandResult:
        user_id = session.user_id
        caps = session.capabilities
        context = CommandContext(user_id=user_id, message=text)

        resolution = session.confirmations.resolve(user_id, text)
        if resolution.outcome == ConfirmationOutcome.CONFIRMED:
            return await self._router.execute_confirmed(
                resolution.pending, context, caps, correlation_id
            )
        if resolution.outcome == ConfirmationOutcome.CANCELLED:
            return await self._router.cancel_confirmed(
                resolution.pending, context, correlation_id
            )

        destructive = await self._router.route_destructive(text, context, caps, correlation_id)
        if destructive is not None:
            return destructive

        try:
            oracle_text = await self._oracle.extract(text)
        except OracleError as e:
            self._logger.warning("oracle_unavailable", user_id=user_id, error=str(e))
            return CommandResult.failure(ORACLE_UNAVAILABLE_MESSAGE, reason="oracle_unavailable")

        intent = await self._resolver.resolve(
            text,
            oracle_text,
            current_account=session.ledger.get_current_account(),
            user_id=user_id,
            correlation_id=correlation_id,
        )
        if isinstance(intent, NoIntent):
            self._logger.info("no_intent", user_id=user_id, reason=intent.reason)

        return await self._router.route_intent(intent, context, caps, correlation_id)


def create_session_factory(
    row_store: RowStoreInterface,
    audit_logger: Optional[AuditLogger] = None,
    default_account: str = "cash",
    load_limit: int = 1000,
):
    """Build the callable the SessionStore uses to open a new user session."""

    def factory(user_id: str) -> UserSession:
        ledger = LedgerStore(
            user_id,
            row_store,
            audit_logger=audit_logger,
            default_account=default_account,
            load_limit=load_limit,
        )
        budgets = BudgetEngine(user_id, row_store, ledger, audit_logger=audit_logger)
        return UserSession(
            user_id=user_id,
            ledger=ledger,
            budgets=budgets,
            confirmations=ConfirmationManager(),
        )

    return factory


def create_app_components(
    oracle: Optional[ExtractionOracle] = None,
    row_store: Optional[RowStoreInterface] = None,
) -> tuple[ConversationFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        oracle: Extraction oracle to use. Defaults to Gemini.
        row_store: Row store to use. Defaults to the configured backend;
                   falls back to memory-only if Google Sheets is not usable.

    Returns:
        (conversation_flow, sheets_client)
    """
    settings = get_settings()
    ledger_settings = settings.ledger
    configure_logging(settings.app.log_level)
    logger = structlog.get_logger(__name__)

    sheets_client = None
    audit_logger = AuditLogger()  # Local-only logging

    if row_store is None and ledger_settings.uses_google_sheets:
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            sheets_client.get_spreadsheet()
            row_store = GoogleSheetsRowStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            row_store = None

    if row_store is None:
        row_store = InMemoryRowStore()

    sessions = SessionStore(
        create_session_factory(
            row_store,
            audit_logger=audit_logger,
            default_account=ledger_settings.default_account,
            load_limit=ledger_settings.load_limit,
        ),
        ttl_seconds=ledger_settings.session_ttl_seconds,
        max_sessions=ledger_settings.max_sessions,
    )

    formatter = MessageFormatter(currency_symbol=ledger_settings.currency_symbol)
    flow = ConversationFlow(
        sessions=sessions,
        oracle=oracle or GeminiExtractionOracle(settings.gemini),
        resolver=IntentResolver(audit_logger),
        router=CommandRouter(
            formatter=formatter,
            history_limit=ledger_settings.history_limit,
            audit_logger=audit_logger,
        ),
        audit_logger=audit_logger,
    )

    return flow, sheets_client
