"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode connection strings in code.
"""

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Ledger Book"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database. Any SQLAlchemy URL works; PostgreSQL needs the
    # "postgres" extra for the driver.
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./ledger_book.db"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    The Settings object is created once and reused for all
    subsequent calls.
    """
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Set up root logging once for the process."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
