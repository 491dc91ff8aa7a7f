"""
Application configuration settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Project Submission Portal API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:8080",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./portal.db"
    DB_ECHO: bool = False
    # Create missing tables at startup; production runs `alembic upgrade head` instead
    DB_AUTO_CREATE: bool = True

    # Assessment
    # Fallback used when the mcq_passing_percentage config row is missing or unreadable
    DEFAULT_PASSING_PERCENTAGE: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="Passing threshold (percent) used when settings are unavailable",
    )
    QUESTIONS_PER_ASSESSMENT: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Default number of questions served per category",
    )

    # Client-side mirror replication
    CLIENT_DEBOUNCE_SECONDS: float = Field(
        default=0.5,
        ge=0.0,
        description="Debounce window for replicating progress saves to the API",
    )

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level


settings = Settings()
