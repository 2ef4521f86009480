"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``triage`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    Batch pacing knobs default to a strictly sequential run with a 200ms
    pause between items and no retries.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    http_port: int = 8000
    timezone: str = "UTC"

    # -- Storage ---------------------------------------------------------------
    database_path: Path = Path("data/triage.db")
    session_ttl_seconds: int = Field(default=3600, ge=0)
    session_purge_interval_seconds: int = Field(default=300, gt=0)

    # -- LLM / Anthropic -------------------------------------------------------
    anthropic_api_key: SecretStr = SecretStr("")
    classification_model: str = "claude-haiku-4-5-20251001"
    classification_max_tokens: int = Field(default=1024, gt=0)
    classification_timeout_seconds: float = Field(default=30.0, gt=0)
    classification_retries: int = Field(default=0, ge=0, le=5)
    classification_concurrency: int = Field(default=1, ge=1, le=10)

    # -- Batch -----------------------------------------------------------------
    max_batch_size: int = Field(default=50, ge=1)
    inter_item_delay_ms: int = Field(default=200, ge=0)

    # -- Google Calendar -------------------------------------------------------
    google_token_path: Path = Path("token.json")
    google_credentials_path: Path = Path("credentials.json")
    google_calendar_id: str = "primary"

    # -- Observability ---------------------------------------------------------
    sentry_dsn: SecretStr = SecretStr("")


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode (``settings.production is True``), the application
    exits with a clear error block if any required credential is missing.
    The Google Calendar token is optional everywhere: without it slot
    suggestions are simply unavailable.

    In **development** mode, each missing credential is logged as a warning
    but the application continues to start.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.anthropic_api_key.get_secret_value():
        errors.append("ANTHROPIC_API_KEY is empty or not set")

    if not settings.google_token_path.exists():
        logger.info(
            "calendar_token_missing",
            detail=f"Google token file not found: {settings.google_token_path}",
        )

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
