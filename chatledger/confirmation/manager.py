"""
Confirmation State Machine

NONE -> PENDING -> (CONFIRMED | CANCELLED | ABANDONED) -> NONE

CRITICAL: Destructive actions are never executed on the first message.
They are stored here and only run after an explicit affirmative reply.

- One slot per user holding a tagged payload; a new request replaces
  the old one (last-write-wins, no queue).
- A reply that is neither affirmative nor negative leaves the slot
  pending, and the message is routed normally.
- The manager never executes anything. The router does, via the
  destructive handlers.
"""

import re
from typing import Optional

import structlog

from chatledger.models.confirmation import (
    ConfirmationKind,
    ConfirmationOutcome,
    ConfirmationResolution,
    PendingConfirmation,
)


_GENERIC_YES = r"yes|confirm|y"

AFFIRMATIVE_PATTERNS: dict[ConfirmationKind, re.Pattern] = {
    ConfirmationKind.BUDGET_REPLACE: re.compile(
        rf"^({_GENERIC_YES}|replace)$", re.IGNORECASE
    ),
    ConfirmationKind.CLEAR_MONTH: re.compile(
        rf"^({_GENERIC_YES})$", re.IGNORECASE
    ),
    ConfirmationKind.CLEAR_HISTORY: re.compile(
        rf"^({_GENERIC_YES}|yes clear all|confirm clear)$", re.IGNORECASE
    ),
    # Wiping everything needs a phrase that cannot be typed by accident
    ConfirmationKind.CLEAR_ALL_DATA: re.compile(
        r"^(yes delete everything|confirm delete all|yes wipe all)$", re.IGNORECASE
    ),
}

NEGATIVE_PATTERN = re.compile(r"^(no|cancel|skip|ignore)$", re.IGNORECASE)


def normalize_reply(text: str) -> str:
    """Trim and collapse inner whitespace."""
    return " ".join(text.split())


class ConfirmationManager:
    """
    Holds at most one pending confirmation per user.

    Usage:
        manager.request(user_id, ClearMonthConfirmation(...))
        resolution = manager.resolve(user_id, "yes")
        if resolution.outcome == ConfirmationOutcome.CONFIRMED:
            ...execute resolution.pending...
    """

    def __init__(self):
        self._pending: dict[str, PendingConfirmation] = {}
        self._logger = structlog.get_logger(__name__)

    def request(self, user_id: str, pending: PendingConfirmation) -> None:
        replaced = self._pending.get(user_id)
        self._pending[user_id] = pending
        self._logger.info(
            "confirmation_requested",
            user_id=user_id,
            kind=pending.kind,
            replaced=replaced.kind if replaced else None,
        )

    def get_pending(self, user_id: str) -> Optional[PendingConfirmation]:
        return self._pending.get(user_id)

    def has_pending(self, user_id: str) -> bool:
        return user_id in self._pending

    def cancel(self, user_id: str) -> Optional[PendingConfirmation]:
        """Drop the pending payload, if any, and return it."""
        return self._pending.pop(user_id, None)

    def resolve(self, user_id: str, text: str) -> ConfirmationResolution:
        """
        Test a message against the pending slot.

        Affirmative pattern of the pending kind first, then the negative
        pattern. Only a match consumes the slot.
        """
        pending = self._pending.get(user_id)
        if pending is None:
            return ConfirmationResolution(outcome=ConfirmationOutcome.NOTHING_PENDING)

        reply = normalize_reply(text)
        kind = ConfirmationKind(pending.kind)

        if AFFIRMATIVE_PATTERNS[kind].match(reply):
            del self._pending[user_id]
            self._logger.info("confirmation_accepted", user_id=user_id, kind=kind.value)
            return ConfirmationResolution(
                outcome=ConfirmationOutcome.CONFIRMED,
                pending=pending,
            )

        if NEGATIVE_PATTERN.match(reply):
            del self._pending[user_id]
            self._logger.info("confirmation_cancelled", user_id=user_id, kind=kind.value)
            return ConfirmationResolution(
                outcome=ConfirmationOutcome.CANCELLED,
                pending=pending,
            )

        return ConfirmationResolution(
            outcome=ConfirmationOutcome.UNRELATED,
            pending=pending,
        )
