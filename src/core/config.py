"""Configuration management for tankkeeper."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="data/tankkeeper.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name reported to Logfire")

    # Calendar Configuration
    week_starts_on: int = Field(
        default=0,
        ge=0,
        le=6,
        description="First day of the calendar week (0=Sunday, 1=Monday, ..., 6=Saturday)",
    )
    upcoming_days_ahead: int = Field(default=7, ge=0, description="Default look-ahead window for upcoming tasks")

    # Scheduler Configuration
    clock_tick_seconds: float = Field(default=60.0, gt=0, description="Interval of the display clock tick")
    background_refresh_delay_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Delay before reconciling the task cache after a successful mutation",
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Recurrence
    RECURRENCE_DAYS: dict[str, int] = {  # noqa: RUF012
        "daily": 1,
        "weekly": 7,
        "biweekly": 14,
        "monthly": 30,
    }

    # Equipment maintenance interval bounds (days)
    MIN_MAINTENANCE_INTERVAL_DAYS: int = 1
    MAX_MAINTENANCE_INTERVAL_DAYS: int = 365

    # Date proximity
    TOMORROW_DAYS: int = 1
    THIS_WEEK_DAYS: int = 7

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Page size used when draining list queries

    # Scheduler job names
    CLOCK_TICK_JOB: str = "clock_tick"
    BACKGROUND_REFRESH_JOB_PREFIX: str = "refresh"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
