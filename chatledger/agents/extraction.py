"""
Language Extraction Oracle

CRITICAL BOUNDARIES:
- CAN: Propose a transaction or a non-destructive command for a message
- CANNOT: Execute anything. Its output is free text that the intent
  resolver validates before anything reaches the router.
- CANNOT: Trigger delete or clear. Those exist only as explicit text
  patterns the router recognizes without asking the model.

The LLM is a TRANSLATOR, not an ORACLE of truth.
It converts human language into a proposal; code decides.
"""

from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import structlog

from chatledger.config import GeminiSettings, get_settings
from chatledger.models.intent import CommandName


_COMMAND_LIST = "\n".join(
    f"- {name}" for name in (
        "balance",
        "history",
        "months",
        "month {index}",
        "categories",
        "catstats {index}",
        "budgets",
        "budget_status",
        "budget_create {amount, category?}",
        "accounts",
        "account_add {name}",
        "account_use {name}",
        "export",
        "export_month {index}",
    )
)

_COMMAND_NAMES = " | ".join(f'"{command.value}"' for command in CommandName)


EXTRACTION_PROMPT = f"""You are a helpful accounting assistant for a finance chat bot. Your job is to either:
1) extract financial transaction information, or
2) infer a NON-DESTRUCTIVE bot command intent from natural language.

Extract the following information from the message:
1. Transaction type: "income" (money received, got paid, salary, etc.) or "expense" (money spent, paid for, bought, etc.)
2. Amount: The numerical amount (as a NUMBER, not string). Extract even if written as plain numbers like "20"
3. Description: What the transaction was for
4. Category (optional): Such as groceries, salary, dining, etc.
5. Account (optional): Which account this transaction belongs to (e.g., cash, bank, card)

EXAMPLES:
- "i got paid 20" -> {{"intent":{{"type":"transaction"}},"transaction":{{"type":"income","amount":20,"description":"got paid"}}}}
- "spent 50 on groceries" -> {{"intent":{{"type":"transaction"}},"transaction":{{"type":"expense","amount":50,"description":"groceries","category":"groceries"}}}}
- "paid $30 for lunch with the bank card" -> {{"intent":{{"type":"transaction"}},"transaction":{{"type":"expense","amount":30,"description":"lunch","category":"dining","account":"bank"}}}}

ALLOWED COMMANDS (non-destructive only):
{_COMMAND_LIST}

For budget_create, extract:
- amount: the budget amount as a number
- category: optional category name (null for an overall budget)

For month, catstats and export_month, "index" is the position in the months list (1 = most recent).

NEVER infer destructive commands like delete, clear, reset or override.

Respond ONLY with valid JSON in this format:
{{
  "intent": {{
    "type": "transaction" | "command" | "none",
    "command"?: {_COMMAND_NAMES},
    "args"?: {{"index"?: number, "name"?: string, "amount"?: number, "category"?: string}}
  }},
  "transaction"?: {{
    "type": "income" | "expense",
    "amount": number,
    "description"?: string,
    "category"?: string,
    "account"?: string
  }}
}}

EXAMPLES:
- "show balance" -> {{"intent":{{"type":"command","command":"balance"}}}}
- "set budget $500 for groceries" -> {{"intent":{{"type":"command","command":"budget_create","args":{{"amount":500,"category":"groceries"}}}}}}
- "set budget $1000" -> {{"intent":{{"type":"command","command":"budget_create","args":{{"amount":1000}}}}}}
- "switch to bank account" -> {{"intent":{{"type":"command","command":"account_use","args":{{"name":"bank"}}}}}}
- "export last month" -> {{"intent":{{"type":"command","command":"export_month","args":{{"index":2}}}}}}

If you cannot infer anything, respond with: {{"intent":{{"type":"none"}}}}"""


class OracleError(Exception):
    """The language model could not be reached or returned nothing."""
    pass


class ExtractionOracle(ABC):
    """Message in, free text (expected to contain one JSON object) out."""

    @abstractmethod
    async def extract(self, message: str) -> str:
        """
        Raises:
            OracleError: If no response could be obtained
        """
        pass


class GeminiExtractionOracle(ExtractionOracle):
    """Extraction oracle backed by Google Gemini."""

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._logger = structlog.get_logger(__name__)
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=EXTRACTION_PROMPT,
            generation_config={
                "temperature": self._settings.temperature,  # Low temperature for consistency
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def extract(self, message: str) -> str:
        try:
            response = await self._model.generate_content_async(message)
            text = response.text.strip()
        except Exception as e:
            self._logger.warning("oracle_request_failed", error=str(e))
            raise OracleError(f"Language model request failed: {e}")

        if not text:
            raise OracleError("Language model returned an empty response")

        self._logger.debug("oracle_response", response=text[:500])
        return text
