"""
Configuration Management for Chat Ledger

Uses pydantic-settings for type-safe configuration from environment variables.
Each external collaborator (Gemini, Google Sheets) has its own settings
class with its own env prefix, so a memory-only deployment never needs
Google credentials and tests never need a Gemini key.

Sub-settings are built on access, not at import time.
"""

import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


STORAGE_BACKENDS = ("memory", "google_sheets")


class GoogleSheetsSettings(BaseSettings):
    """Where the durable row store lives."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account JSON used by gspread"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Spreadsheet holding one worksheet per table"
    )
    transactions_sheet_name: str = Field(default="Transactions")
    budgets_sheet_name: str = Field(default="Budgets")
    accounts_sheet_name: str = Field(default="Accounts")
    audit_sheet_name: str = Field(default="AuditLog")

    @field_validator('credentials_path')
    @classmethod
    def warn_missing_credentials(cls, v: str) -> str:
        # The file may be mounted after the settings are read
        if not Path(v).exists():
            warnings.warn(f"Google credentials file not found at {v}")
        return v

    def sheet_name_for(self, table: str) -> str:
        """Worksheet title for a row store table."""
        names = {
            "transactions": self.transactions_sheet_name,
            "budgets": self.budgets_sheet_name,
            "accounts": self.accounts_sheet_name,
        }
        if table not in names:
            raise ValueError(f"Unknown table: {table}")
        return names[table]


class GeminiSettings(BaseSettings):
    """Extraction model configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(..., description="Gemini API key")
    model_name: str = Field(default="gemini-1.5-flash")
    # Replies are a single small JSON object
    max_tokens: int = Field(default=512, ge=100, le=8192)
    temperature: float = Field(default=0.1, ge=0.0, le=1.0)


class LedgerSettings(BaseSettings):
    """Ledger behaviour and session lifecycle."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_backend: str = Field(
        default="memory",
        description="Row store backend, one of STORAGE_BACKENDS"
    )
    default_account: str = Field(default="cash", min_length=1)
    currency_symbol: str = Field(default="$")
    history_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Transactions shown by the history command"
    )
    load_limit: int = Field(
        default=1000,
        ge=1,
        description="Most recent transactions loaded into a user's projection"
    )
    session_ttl_seconds: int = Field(
        default=86400,
        ge=60,
        description="Idle seconds before a user session is evicted"
    )
    max_sessions: int = Field(default=1000, ge=1)

    @field_validator('storage_backend')
    @classmethod
    def check_backend(cls, v: str) -> str:
        backend = v.strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"storage_backend must be one of {', '.join(STORAGE_BACKENDS)}, got {v!r}"
            )
        return backend

    @field_validator('default_account')
    @classmethod
    def normalize_default_account(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def uses_google_sheets(self) -> bool:
        return self.storage_backend == "google_sheets"


class AppSettings(BaseSettings):
    """Process-wide settings (no env prefix)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(default="development")
    debug_mode: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Properties build each sub-settings object on access, so a missing
    GEMINI_API_KEY only fails the code path that needs Gemini.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool | str]:
    """
    Check which parts of the configuration load.

    Google Sheets is only checked when it is the configured backend.
    Returns {name: ok}, plus "<name>_error" entries with the reason for
    each failure. Used by the app's startup status panel.
    """
    settings = get_settings()
    results = {}

    sections = ["ledger", "app", "gemini"]
    try:
        if settings.ledger.uses_google_sheets:
            sections.append("google_sheets")
    except ValueError:
        pass  # reported by the "ledger" check below

    for name in sections:
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
