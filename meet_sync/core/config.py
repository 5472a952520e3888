# meet_sync/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables at runtime. Only the wiring
    layer (``meet_sync.services.factory``) reads these; individual components
    receive explicit constructor arguments.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Meet Attendance Sync"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level.")

    # --- Google (Admin SDK Reports + Calendar) ---
    GOOGLE_ACCESS_TOKEN: str | None = Field(
        default=None,
        description=(
            "Pre-issued OAuth bearer token with the reports audit and calendar "
            "read-only scopes (domain-wide delegation is set up outside this service)."
        ),
    )
    GOOGLE_API_BASE_URL: str = Field(
        "https://www.googleapis.com",
        description="Base URL for Google REST APIs.",
    )
    GOOGLE_API_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Per-request timeout for Google API calls.",
    )
    CALENDAR_MAX_CONCURRENCY: int = Field(
        default=5,
        description="Maximum number of calendar lookups in flight at once.",
    )
    CALENDAR_LOOKUP_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="Upper bound for one calendar lookup, fallback included.",
    )

    # --- Tinybird ---
    TINYBIRD_TOKEN: str | None = Field(
        default=None,
        description="Tinybird token with append rights on the target data source.",
    )
    TINYBIRD_DATA_SOURCE: str | None = Field(
        default=None,
        description="Name of the Tinybird data source receiving meeting activity rows.",
    )
    TINYBIRD_URL: str = Field(
        "https://api.tinybird.co/v0/events",
        description="Tinybird Events API endpoint.",
    )
    TINYBIRD_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Timeout for a single NDJSON push.",
    )

    BACKFILL_DEFAULT_DAYS: int = Field(
        default=180,
        description="Days processed by /internal/fetch-range when `days` is missing or invalid.",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
