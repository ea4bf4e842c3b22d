# app/core/config.py
from functools import lru_cache

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables at runtime.

    These settings are used for:
    - DB connection
    - Service API key
    - Note command defaults
    - Calendar API client
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Meeting Series Engine"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./meeting_series.db",
        description="SQLAlchemy-compatible database URL",
    )

    API_KEY: str | None = Field(
        default=None,
        description="API key required in the X-Api-Key header for series/session endpoints.",
    )

    DEFAULT_DUE_IN_DAYS: int = Field(
        default=3,
        description="Days from today used as due date when a task line has no usable due: token.",
    )

    # --- Calendar configuration ---
    CALENDAR_BASE_URL: AnyHttpUrl | None = Field(
        default=None,
        description="Base URL of the calendar API (defaults to Google Calendar v3).",
    )
    CALENDAR_ID: str = Field(
        default="primary",
        description="Calendar that holds the series' linked events.",
    )
    CALENDAR_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="HTTP timeout for calendar API calls.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
