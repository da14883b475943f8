"""
Centralized configuration for CAKE Earnings Sync.
Loads from .env file or environment variables.

Settings are built once by load_settings() at process start and handed to
every component explicitly; nothing reads the environment after that.
"""

import re
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Pattern

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cake_sync.config import sync_windows
from cake_sync.earnings_normalizer import compile_id_pattern
from cake_sync.exceptions import ConfigError

REQUIRED_SECRETS = ("CAKE_API_KEY", "SUPABASE_DB_URL", "SUPABASE_DB_PASSWORD")

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


class SyncMode(str, Enum):
    """Run strategy selecting windowing, dating and failure policy."""

    SNAPSHOT = "snapshot"        # lifetime totals under SNAPSHOT_DATE, one flush
    BACKFILL = "backfill"        # every day since SYNC_START_DATE, per-window writes
    INCREMENTAL = "incremental"  # SNAPSHOT_DATE .. as-of, per-window writes

    @property
    def aggregates(self) -> bool:
        return self is SyncMode.SNAPSHOT

    @property
    def tolerates_fetch_errors(self) -> bool:
        return self is SyncMode.BACKFILL


class Settings(BaseSettings):
    """
    Centralized configuration for the sync job.
    The three secrets have no defaults; everything else does.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Secrets
    CAKE_API_KEY: str
    SUPABASE_DB_URL: str
    SUPABASE_DB_PASSWORD: str

    # CAKE
    CAKE_BASE_URL: str = sync_windows.CAKE_BASE_URL
    CAKE_AFFILIATE_ID: str = sync_windows.CAKE_AFFILIATE_ID
    CAKE_REQUEST_TIMEOUT: Optional[float] = None

    # Sync strategy
    SYNC_MODE: SyncMode = SyncMode.SNAPSHOT
    SYNC_START_DATE: date = sync_windows.SYNC_START_DATE
    SNAPSHOT_DATE: date = sync_windows.SNAPSHOT_DATE
    SYNC_WINDOW_DAYS: int = sync_windows.WINDOW_DAYS

    # Partner identifiers
    SPARK_ID_PATTERN: str = sync_windows.SPARK_ID_PATTERN
    SPARK_ID_IGNORE_CASE: bool = sync_windows.SPARK_ID_IGNORE_CASE

    # Destination
    EARNINGS_TABLE: str = sync_windows.EARNINGS_TABLE
    UPSERT_BATCH_SIZE: int = sync_windows.UPSERT_BATCH_SIZE

    @field_validator(*REQUIRED_SECRETS)
    @classmethod
    def _secret_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("SYNC_MODE", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("SYNC_WINDOW_DAYS", "UPSERT_BATCH_SIZE")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("SPARK_ID_PATTERN")
    @classmethod
    def _valid_regex(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression: {e}")
        return value

    @field_validator("EARNINGS_TABLE")
    @classmethod
    def _valid_table(cls, value: str) -> str:
        if not _TABLE_NAME_RE.match(value):
            raise ValueError("must be a plain SQL identifier, optionally schema-qualified")
        return value

    @field_validator("CAKE_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def spark_id_regex(self) -> Pattern[str]:
        """Compiled partner-ID filter"""
        return compile_id_pattern(self.SPARK_ID_PATTERN, self.SPARK_ID_IGNORE_CASE)


def load_settings(env_file: Optional[str] = ".env", **overrides: Any) -> Settings:
    """
    Build the Settings object once at process start.

    Args:
        env_file: Optional dotenv file; None reads the process environment only
        overrides: Field values that take precedence over the environment

    Raises:
        ConfigError: a required secret is missing or a value is invalid
    """
    try:
        return Settings(_env_file=env_file, **overrides)
    except ValidationError as e:
        raise ConfigError(_describe_validation_error(e)) from e


def _describe_validation_error(error: ValidationError) -> str:
    missing = []
    invalid: Dict[str, str] = {}

    for item in error.errors():
        field = str(item["loc"][0]) if item.get("loc") else "?"
        if item.get("type") == "missing":
            missing.append(field)
        else:
            invalid[field] = item.get("msg", "invalid value")

    parts = []
    if missing:
        parts.append(f"Missing environment variables: {', '.join(missing)}")
    if invalid:
        details = "; ".join(f"{field} {msg}" for field, msg in invalid.items())
        parts.append(f"Invalid configuration: {details}")
    return ". ".join(parts) or str(error)
