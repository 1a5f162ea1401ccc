"""
Client configuration using Pydantic Settings.
Loads from SPROUTY_* environment variables / .env file.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for the reminder poller and local history."""

    API_URL: str = "http://localhost:8000/api/v1"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Polling
    POLL_INTERVAL_SECONDS: float = 180.0
    ERROR_POLL_INTERVAL_SECONDS: float = 120.0
    RETRY_DELAY_SECONDS: float = 30.0
    FEEDBACK_TTL_SECONDS: float = 5.0

    # Notifications
    OVERDUE_THRESHOLD_MINUTES: int = 30
    DEFAULT_SNOOZE_MINUTES: int = 30
    OVERDUE_SNOOZE_MINUTES: int = 60

    # History
    HISTORY_PATH: str = "~/.sprouty/reminder_history.json"
    HISTORY_MAX_ENTRIES: int = Field(default=100, ge=1, le=200)
    HISTORY_RETENTION_DAYS: int = Field(default=30, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="SPROUTY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_client_settings() -> ClientSettings:
    """Cached client settings instance."""
    return ClientSettings()
