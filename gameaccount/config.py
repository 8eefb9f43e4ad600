"""
Account store configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from gameaccount.config import settings
    print(settings.COINS_MAX)
"""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the account store."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Game Account Store"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for development; swap to a PostgreSQL URL (asyncpg driver) for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/accounts.db"

    # --- Coins ---
    # Largest representable balance (unsigned 32-bit). Additions past it are rejected.
    COINS_MAX: int = 4_294_967_295

    # --- Account fields ---
    EMAIL_MAX_LENGTH: int = 255
    PASSWORD_MAX_LENGTH: int = 255

    # --- Write scheduler ---
    # None keeps retrying a failed write until it lands
    WRITE_MAX_ATTEMPTS: int | None = None
    WRITE_RETRY_DELAY_SECONDS: float = 0.5
    WRITE_RETRY_MAX_DELAY_SECONDS: float = 30.0


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts embedding the account store."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
