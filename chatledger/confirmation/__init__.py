"""Confirmation state machine for destructive actions."""

from chatledger.confirmation.manager import (
    AFFIRMATIVE_PATTERNS,
    NEGATIVE_PATTERN,
    ConfirmationManager,
)

__all__ = ["AFFIRMATIVE_PATTERNS", "NEGATIVE_PATTERN", "ConfirmationManager"]
