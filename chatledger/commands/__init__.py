"""Command handling: formatter, handlers and router."""

from chatledger.commands.base import (
    BaseCommandHandler,
    ConfirmableHandler,
    LedgerCapabilities,
)
from chatledger.commands.formatter import MessageFormatter
from chatledger.commands.router import (
    DESTRUCTIVE_PATTERNS,
    NO_INTENT_MESSAGE,
    CommandRouter,
    match_destructive,
)

__all__ = [
    "BaseCommandHandler",
    "CommandRouter",
    "ConfirmableHandler",
    "DESTRUCTIVE_PATTERNS",
    "LedgerCapabilities",
    "MessageFormatter",
    "NO_INTENT_MESSAGE",
    "match_destructive",
]
