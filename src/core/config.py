"""Configuration management for taskgen."""

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

    # Store Configuration
    sqlite_db_path: str = Field(default="data/taskgen.db", description="Path to the SQLite database file")

    # Cron Endpoint Authentication
    cron_secret: str | None = Field(
        default=None, description="Bearer token expected on the task generation endpoint"
    )

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    environment: str = Field(default="production", description="Deployment environment name")

    # In-process scheduler (the external cron is the primary trigger)
    enable_scheduler: bool = Field(
        default=False, description="Run the generation job from the in-process scheduler"
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

    # Store
    DB_TIMEOUT_SECONDS: float = 10.0
    DB_BUSY_TIMEOUT_SECONDS: float = 5.0
    DEFAULT_PER_PAGE_LIMIT: int = 200

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_UNAUTHORIZED: int = 401
    HTTP_SERVER_ERROR: int = 500

    # Instance expiry windows (hours)
    DAILY_EXPIRY_HOURS: int = 24
    WEEKLY_EXPIRY_HOURS: int = 24 * 7
    MONTHLY_EXPIRY_HOURS: int = 24 * 30

    # Expansion defaults
    DEFAULT_DUE_TIME: str = "09:00"
    DEFAULT_DAILY_DAYPART: str = "before_open"
    DEFAULT_CYCLE_DAYPART: str = "anytime"
    DEFAULT_WEEKLY_DAYS: tuple[int, ...] = (1,)  # Monday (Sunday=0)
    DEFAULT_DATE_OF_MONTH: int = 1

    # Triggered maintenance
    MAINTENANCE_THRESHOLD_MONTHS: int = 6

    # Scheduler Configuration
    TASK_GENERATION_HOUR: int = 2  # 2am UTC
    JOB_MAX_RETRIES: int = 3
    JOB_RETRY_BASE_DELAY_SECONDS: float = 2.0
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100
    TRACKER_CONSECUTIVE_FAILURE_THRESHOLD: int = 3

    # Run log
    MAX_ERROR_DETAIL_LENGTH: int = 500


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
