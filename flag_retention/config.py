# flag_retention/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate environment variables at startup.
These values are process-level fallbacks; the per-site global defaults that
admins edit at runtime live in the flag_retention_config table (see
flag_retention.services.settings_service).
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flag_retention.constants import RetentionDefaults


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(
        ...,
        description="Database connection URL (PostgreSQL in production, SQLite for tests)",
    )

    # Authentication
    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key for admin endpoints",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs. Disable for human-readable local output.",
    )

    # Retention fallbacks (used when the config table has no value)
    DEFAULT_RETENTION_DAYS: int = Field(
        default=RetentionDefaults.GLOBAL_RETENTION_DAYS,
        ge=0,
        description="Days to keep flags that have no per-type policy. 0 keeps forever.",
    )
    CRON_BATCH_SIZE: int = Field(
        default=RetentionDefaults.CRON_BATCH_SIZE,
        ge=1,
        description="Max flaggings deleted per cleanup tick across all flag types",
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Hosted Postgres often hands out postgresql:// but SQLAlchemy needs postgresql+psycopg2://"""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+psycopg2://", 1)
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
