"""
Session Store

Holds one UserSession per chat user: the ledger projection, the budget
engine, the pending-confirmation slot and a per-user lock.

Sessions are evicted when idle for longer than the TTL, and the least
recently used idle session is evicted when the store is full. A session
whose lock is held by an in-flight message is never evicted. An evicted
user simply gets a fresh session that reloads from the row store; any
pending confirmation is dropped with it.
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from chatledger.commands.base import LedgerCapabilities
from chatledger.confirmation import ConfirmationManager
from chatledger.ledger import BudgetEngine, LedgerStore


@dataclass
class UserSession:
    """Everything held in memory for one user."""

    user_id: str
    ledger: LedgerStore
    budgets: BudgetEngine
    confirmations: ConfirmationManager = field(default_factory=ConfirmationManager)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_seen: float = field(default_factory=time.monotonic)

    @property
    def capabilities(self) -> LedgerCapabilities:
        return LedgerCapabilities(
            ledger=self.ledger,
            accounts=self.ledger,
            budgets=self.budgets,
            confirmations=self.confirmations,
        )


SessionFactory = Callable[[str], UserSession]


class SessionStore:
    """
    Bounded map of user id to UserSession.

    Usage:
        sessions = SessionStore(factory, ttl_seconds=3600, max_sessions=100)
        session = sessions.get_or_create("42")
    """

    def __init__(
        self,
        factory: SessionFactory,
        ttl_seconds: float = 86400,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._factory = factory
        self._ttl = ttl_seconds
        self._max = max_sessions
        self._clock = clock
        self._sessions: OrderedDict[str, UserSession] = OrderedDict()
        self._logger = structlog.get_logger(__name__)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def get_or_create(self, user_id: str) -> UserSession:
        now = self._clock()
        self._evict_expired(now)

        session = self._sessions.get(user_id)
        if session is not None:
            session.last_seen = now
            self._sessions.move_to_end(user_id)
            return session

        self._evict_for_capacity()

        session = self._factory(user_id)
        session.last_seen = now
        self._sessions[user_id] = session
        self._logger.debug("session_created", user_id=user_id, sessions=len(self._sessions))
        return session

    def get(self, user_id: str) -> Optional[UserSession]:
        return self._sessions.get(user_id)

    def evict(self, user_id: str) -> bool:
        return self._sessions.pop(user_id, None) is not None

    def _evict_for_capacity(self) -> None:
        # Least recently used first; if every session is busy the store
        # grows past max_sessions until one is released
        while len(self._sessions) >= self._max:
            idle_id = next(
                (uid for uid, s in self._sessions.items() if not s.lock.locked()),
                None,
            )
            if idle_id is None:
                self._logger.warning("session_capacity_exceeded", sessions=len(self._sessions))
                return
            del self._sessions[idle_id]
            self._logger.info("session_evicted", user_id=idle_id, reason="capacity")

    def _evict_expired(self, now: float) -> None:
        # Oldest first, so stop at the first session still within its TTL
        expired = []
        for user_id, session in self._sessions.items():
            if now - session.last_seen <= self._ttl:
                break
            # A session busy with a message is never evicted
            if not session.lock.locked():
                expired.append(user_id)
        for user_id in expired:
            del self._sessions[user_id]
            self._logger.info("session_evicted", user_id=user_id, reason="ttl")
