"""
Intent Resolver

Turns the language model's free-text answer into a typed intent.

IMPORTANT: The model's output is untrusted input. Nothing it says is
executed until it has been validated here:

1. EXTRACTION: find the first balanced {...} block (the model may wrap
   JSON in prose or code fences). No block -> NoIntent.
2. COMMAND CHECK: a command is accepted only if its NAME is on the
   non-destructive allowlist. Arguments are never trusted to widen that;
   handlers validate them. A rejected command falls through to the
   transaction attempt on the same payload.
3. TRANSACTION CHECK: type must be income or expense, amount must be a
   finite number greater than zero. Failures become InvalidIntent with a
   user-facing message, never an exception.

Both payload shapes are accepted:
- nested: {"intent": {...}, "transaction": {...}}
- legacy flat: {"type": ..., "amount": ..., "description": ...}
"""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from chatledger.audit import AuditLogger
from chatledger.models.audit import AuditEventBuilder
from chatledger.models.intent import (
    ALLOWED_COMMANDS,
    CommandIntent,
    CommandName,
    InvalidIntent,
    InvalidIntentReason,
    NoIntent,
    OracleIntentPayload,
    OracleTransactionPayload,
    ResolvedIntent,
    TransactionIntent,
)
from chatledger.models.ledger import DEFAULT_ACCOUNT, TransactionType, normalize_name


INVALID_AMOUNT_MESSAGE = "Invalid amount. Please provide a valid number greater than zero."
UNKNOWN_TYPE_MESSAGE = "Unknown transaction type. Say whether you received or spent the money."

# Currency symbols, spaces and thousands separators; anything else must parse
_AMOUNT_NOISE = re.compile(r"[\s,$€£¥₹]")


def extract_json_block(text: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Return the first balanced {...} block in text that parses as a JSON object.

    Braces inside JSON strings are ignored while matching.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    try:
                        data = json.loads(text[start:index + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(data, dict):
                        return data
                    break
        start = text.find("{", start + 1)
    return None


def coerce_amount(value: Any) -> Optional[Decimal]:
    """
    Coerce a model-supplied amount to a positive, finite Decimal.

    Accepts numbers and numeric strings such as "$1,200.50" or "1e5".
    Only currency symbols, spaces and thousands separators are dropped
    from strings, so "20 dollars 50" is rejected rather than read as 2050.
    Returns None when the value is unusable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    elif isinstance(value, str):
        text = _AMOUNT_NOISE.sub("", value)
    else:
        return None

    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


class IntentResolver:
    """
    Validates language-model output into a ResolvedIntent.

    Stateless apart from the optional audit logger.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

    async def resolve(
        self,
        message: str,
        oracle_text: Optional[str],
        current_account: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ResolvedIntent:
        data = extract_json_block(oracle_text)
        if data is None:
            self._logger.warning(
                "oracle_malformed",
                user_id=user_id,
                response=(oracle_text or "")[:200],
            )
            if self._audit_logger and user_id:
                await self._audit_logger.log(
                    AuditEventBuilder.oracle_malformed(
                        user_id=user_id,
                        response=oracle_text or "",
                        correlation_id=correlation_id,
                    )
                )
            return NoIntent(reason="oracle_malformed")

        intent = self._parse_intent(data.get("intent"))

        if intent is not None and intent.type == "command":
            command = (intent.command or "").strip().lower()
            if command in ALLOWED_COMMANDS:
                return CommandIntent(
                    command=CommandName(command),
                    args=intent.args or {},
                )
            self._logger.warning("oracle_command_rejected", user_id=user_id, command=command[:100])
            if self._audit_logger and user_id:
                await self._audit_logger.log_oracle_command_rejected(
                    user_id=user_id,
                    command=command,
                    correlation_id=correlation_id,
                )
            # Fall through: the same payload may still describe a transaction

        elif intent is not None and intent.type == "none":
            return NoIntent(reason="nothing_extracted")

        raw_transaction = data.get("transaction")
        if raw_transaction is None and "intent" not in data:
            raw_transaction = data  # legacy flat shape

        if not isinstance(raw_transaction, dict):
            return NoIntent(reason="no_transaction")

        return self._resolve_transaction(raw_transaction, message, current_account)

    def _parse_intent(self, raw: Any) -> Optional[OracleIntentPayload]:
        if not isinstance(raw, dict):
            return None
        try:
            payload = OracleIntentPayload.model_validate(raw)
        except ValidationError:
            return None
        if payload.type:
            payload.type = payload.type.strip().lower()
        return payload

    def _resolve_transaction(
        self,
        raw: dict[str, Any],
        message: str,
        current_account: Optional[str],
    ) -> ResolvedIntent:
        try:
            payload = OracleTransactionPayload.model_validate(raw)
        except ValidationError:
            return NoIntent(reason="oracle_malformed")

        kind = (payload.type or "").strip().lower()
        if kind == "none" or (not kind and payload.amount is None):
            return NoIntent(reason="no_transaction")

        amount = coerce_amount(payload.amount)
        if amount is None:
            return InvalidIntent(
                reason=InvalidIntentReason.INVALID_AMOUNT,
                message=INVALID_AMOUNT_MESSAGE,
            )

        try:
            transaction_type = TransactionType(kind)
        except ValueError:
            return InvalidIntent(
                reason=InvalidIntentReason.UNKNOWN_TRANSACTION_TYPE,
                message=UNKNOWN_TYPE_MESSAGE,
            )

        description = (payload.description or "").strip() or message.strip()
        account = (
            normalize_name(payload.account)
            or normalize_name(current_account)
            or DEFAULT_ACCOUNT
        )

        return TransactionIntent(
            type=transaction_type,
            amount=amount,
            description=description,
            category=normalize_name(payload.category),
            account=account,
        )
