"""Language extraction agents."""

from chatledger.agents.extraction import (
    EXTRACTION_PROMPT,
    ExtractionOracle,
    GeminiExtractionOracle,
    OracleError,
)

__all__ = [
    "EXTRACTION_PROMPT",
    "ExtractionOracle",
    "GeminiExtractionOracle",
    "OracleError",
]
