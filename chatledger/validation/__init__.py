"""Validation package: untrusted model output to typed intents."""

from chatledger.validation.intent_resolver import (
    IntentResolver,
    coerce_amount,
    extract_json_block,
)

__all__ = ["IntentResolver", "coerce_amount", "extract_json_block"]
