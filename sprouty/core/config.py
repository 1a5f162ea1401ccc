"""
Application configuration using Pydantic Settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Sprouty API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "sprouty"

    # JWT
    JWT_SECRET_KEY: str = "your-super-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # AWS / SES
    AWS_REGION: str = "ap-south-1"
    AWS_SES_REGION: str = "ap-south-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    EMAIL_FROM_NAME: str = "Sprouty"
    EMAIL_FROM_ADDRESS: str = "no-reply@sprouty.app"
    WEB_APP_URL: str = "http://localhost:5173"

    # Celery
    CELERY_BROKER_URL: str = "sqs://"
    CELERY_QUEUE_PREFIX: str = "sprouty-"
    SQS_DEFAULT_QUEUE_URL: str = ""
    CELERY_VISIBILITY_TIMEOUT: int = 3600
    CELERY_POLLING_INTERVAL: float = 1.0
    CELERY_WAIT_TIME_SECONDS: int = 20

    # Reminders
    REMINDER_SCAN_INTERVAL_MINUTES: int = 60
    REMINDER_SCAN_LOCK_TTL_SECONDS: int = 900
    REMINDER_SCAN_CONCURRENCY: int = 5
    REMINDER_DELIVERY_TIMEOUT_SECONDS: float = 10.0
    REMINDER_DEFAULT_FREQUENCY_DAYS: int = 7
    REMINDER_UPCOMING_DAYS: int = 7
    REMINDER_MAX_SNOOZE_MINUTES: int = 60 * 24

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
