"""
Expense Tracker Settings

Everything configurable lives in this module and is read with
pydantic-settings from the environment or a local .env file.

DESIGN DECISION: Storage settings are optional at startup. When the
Google Sheets variables are missing the app still runs, backed by
in-memory storage, and the Settings page reports what is missing.
"""

from functools import lru_cache
from pathlib import Path
import warnings

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class GoogleSheetsSettings(BaseSettings):
    """Where expenses are persisted (GOOGLE_SHEETS_* variables)."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file used to authorize gspread"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Key of the spreadsheet holding the expenses sheet"
    )
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Worksheet title; created with a header row if absent"
    )

    @field_validator('credentials_path')
    @classmethod
    def check_credentials_file(cls, v: str) -> str:
        # A missing key file is only fatal when the sheet is first opened
        if not Path(v).exists():
            warnings.warn(f"Service account key file not found: {v}")
        return v


class AppSettings(BaseSettings):
    """
    General application behaviour.

    Read from unprefixed variables, e.g. LOG_LEVEL=DEBUG or MAX_BULK_ROWS=200.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Deployment name, e.g. development or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Show extra diagnostics in the UI"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Bulk import limits
    max_bulk_rows: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Maximum number of rows accepted in one bulk import"
    )
    csv_encoding: str = Field(
        default="utf-8",
        description="Encoding used to decode uploaded CSV files"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Entry point for all configuration.

    Each section is built on access, so a missing storage section does
    not stop the app section from loading.
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
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide Settings instance. Tests reset it with get_settings.cache_clear()."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load every settings section.

    Returns {section: loaded_ok}, plus a '<section>_error' message for
    each section that failed. Never raises.
    """
    settings = get_settings()
    status = {}

    for section in ("google_sheets", "app"):
        try:
            getattr(settings, section)
            status[section] = True
        except Exception as e:
            status[section] = False
            status[f"{section}_error"] = str(e)

    return status
