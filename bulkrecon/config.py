"""bulkrecon configuration management.

Loads configuration from environment variables with sensible defaults.
Import thresholds are turned into an explicit ImportSettings value and passed
to the classifier; nothing downstream reads the environment directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from bulkrecon.models import ImportSettings

# Load .env file if present
load_dotenv()


@dataclass
class DBConfig:
    """Database connection configuration."""

    url: str
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False  # SQL logging


@dataclass
class ImportConfig:
    """Bulk import thresholds, limits and commit tuning."""

    min_similarity_threshold: int = 70
    auto_match_threshold: int = 90
    chunk_size: int = 50
    default_period_days: int = 365
    expiry_warning_days: int = 30
    max_file_size_mb: int = 5
    max_rows: int = 50000
    created_by: str = "system"

    def settings(self) -> ImportSettings:
        """Build the validated matching settings passed to the classifier.

        Raises:
            pydantic.ValidationError: If thresholds violate 0 <= min <= auto <= 100
        """
        return ImportSettings(
            min_similarity_threshold=self.min_similarity_threshold,
            auto_match_threshold=self.auto_match_threshold,
        )


@dataclass
class AppConfig:
    """Root application configuration.

    Loads from environment variables with fail-fast on missing required values.
    """

    db: DBConfig
    log_level: str = "INFO"
    log_format: str = "text"  # json or text

    importing: ImportConfig = field(default_factory=ImportConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Required environment variables:
        - DATABASE_URL: SQLAlchemy async connection string

        Optional (with defaults):
        - LOG_LEVEL: Logging verbosity (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")
        - IMPORT_*: thresholds and limits for the bulk import engine

        Raises:
            KeyError: If required environment variables are missing
        """
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise KeyError(
                "DATABASE_URL environment variable is required. "
                "Example: sqlite+aiosqlite:///./bulkrecon.db"
            )

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            db=DBConfig(
                url=database_url,
                pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
                pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            importing=ImportConfig(
                min_similarity_threshold=int(os.getenv("IMPORT_MIN_SIMILARITY", "70")),
                auto_match_threshold=int(os.getenv("IMPORT_AUTO_MATCH", "90")),
                chunk_size=int(os.getenv("IMPORT_CHUNK_SIZE", "50")),
                default_period_days=int(os.getenv("IMPORT_DEFAULT_PERIOD_DAYS", "365")),
                expiry_warning_days=int(os.getenv("IMPORT_EXPIRY_WARNING_DAYS", "30")),
                max_file_size_mb=int(os.getenv("IMPORT_MAX_FILE_SIZE_MB", "5")),
                max_rows=int(os.getenv("IMPORT_MAX_ROWS", "50000")),
                created_by=os.getenv("IMPORT_CREATED_BY", "system"),
            ),
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached singleton (used by tests and the CLI after env changes)."""
    global _config
    _config = None
