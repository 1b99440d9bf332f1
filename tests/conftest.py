"""
Shared fixtures for the Chat Ledger test suite.

No network: the row store is in memory, the language model is scripted.
"""

import asyncio
import json
from typing import Any, Optional

import pytest

from chatledger.agents import ExtractionOracle, OracleError
from chatledger.audit import AuditLogger
from chatledger.commands import CommandRouter, LedgerCapabilities
from chatledger.confirmation import ConfirmationManager
from chatledger.ledger import BudgetEngine, LedgerStore
from chatledger.models.audit import AuditEvent
from chatledger.orchestrator import ConversationFlow, create_session_factory
from chatledger.services.storage import (
    AuditStorageInterface,
    InMemoryRowStore,
    RowFilter,
    StorageUnavailableError,
)
from chatledger.sessions import SessionStore


USER_ID = "user-1"


class FakeExtractionOracle(ExtractionOracle):
    """
    Scripted oracle.

    Replies are looked up by exact message; anything else gets the
    default reply. A reply that is an Exception is raised instead.
    """

    def __init__(self, replies: Optional[dict[str, Any]] = None, default: Any = None):
        self.replies = dict(replies or {})
        self.default = default if default is not None else json.dumps({"intent": {"type": "none"}})
        self.calls: list[str] = []

    def script(self, message: str, reply: Any) -> None:
        self.replies[message] = reply

    async def extract(self, message: str) -> str:
        self.calls.append(message)
        reply = self.replies.get(message, self.default)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


class FailingRowStore(InMemoryRowStore):
    """In-memory store whose operations can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.failing: set[str] = set()

    def fail(self, *operations: str) -> None:
        self.failing.update(operations or ("insert", "select", "delete", "count"))

    def recover(self) -> None:
        self.failing.clear()

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise StorageUnavailableError(f"{operation} unavailable")

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        self._check("insert")
        return await super().insert(table, row)

    async def select(self, table: str, filters: Optional[list[RowFilter]] = None, **kwargs) -> list[dict[str, Any]]:
        self._check("select")
        return await super().select(table, filters, **kwargs)

    async def delete(self, table: str, filters: list[RowFilter]) -> int:
        self._check("delete")
        return await super().delete(table, filters)

    async def count(self, table: str, filters: Optional[list[RowFilter]] = None) -> int:
        self._check("count")
        return await super().count(table, filters)


class CountingRowStore(InMemoryRowStore):
    """Counts transaction loads and yields to the loop while loading."""

    def __init__(self):
        super().__init__()
        self.transaction_selects = 0

    async def select(self, table: str, filters: Optional[list[RowFilter]] = None, **kwargs) -> list[dict[str, Any]]:
        if table == "transactions":
            self.transaction_selects += 1
            await asyncio.sleep(0.01)
        return await super().select(table, filters, **kwargs)


class RecordingAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100, user_id: Optional[str] = None) -> list[AuditEvent]:
        events = [e for e in reversed(self.events) if user_id is None or e.user_id == user_id]
        return events[:limit]

    def types(self) -> list[str]:
        return [event.event_type.value for event in self.events]


@pytest.fixture
def row_store():
    return InMemoryRowStore()


@pytest.fixture
def failing_store():
    return FailingRowStore()


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def ledger(row_store, audit_logger):
    return LedgerStore(USER_ID, row_store, audit_logger=audit_logger)


@pytest.fixture
def budgets(row_store, ledger, audit_logger):
    return BudgetEngine(USER_ID, row_store, ledger, audit_logger=audit_logger)


@pytest.fixture
def caps(ledger, budgets):
    return LedgerCapabilities(
        ledger=ledger,
        accounts=ledger,
        budgets=budgets,
        confirmations=ConfirmationManager(),
    )


@pytest.fixture
def router(audit_logger):
    return CommandRouter(audit_logger=audit_logger)


@pytest.fixture
def oracle():
    return FakeExtractionOracle()


@pytest.fixture
def sessions(row_store, audit_logger):
    return SessionStore(create_session_factory(row_store, audit_logger=audit_logger))


@pytest.fixture
def flow(sessions, oracle, router, audit_logger):
    return ConversationFlow(
        sessions=sessions,
        oracle=oracle,
        router=router,
        audit_logger=audit_logger,
    )


def transaction_reply(type_: str, amount: Any, description: str, category: Optional[str] = None) -> dict:
    """The nested JSON the extraction prompt asks for."""
    transaction = {"type": type_, "amount": amount, "description": description}
    if category:
        transaction["category"] = category
    return {"intent": {"type": "transaction"}, "transaction": transaction}


def command_reply(command: str, **args: Any) -> dict:
    return {"intent": {"type": "command", "command": command, "args": args}}
