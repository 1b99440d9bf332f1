"""Per-user sessions."""

from chatledger.sessions.store import SessionFactory, SessionStore, UserSession

__all__ = [
    "SessionFactory",
    "SessionStore",
    "UserSession",
]
