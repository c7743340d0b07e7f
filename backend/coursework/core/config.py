"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Coursework Assessment API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    # SQLite keeps local development dependency-free; production points this
    # at PostgreSQL so the row locks in the attempt store are enforced.
    DATABASE_URL: str = "sqlite:///./coursework.db"
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30  # seconds to wait for a pooled connection
    DB_POOL_RECYCLE: int = 3600
    DB_ECHO: bool = False

    # Grading policy
    # TEXT_INPUT answers are compared against the question's canonical answers.
    # Defaults: case-insensitive, trimmed, inner whitespace collapsed.
    TEXT_MATCH_CASE_SENSITIVE: bool = False
    TEXT_MATCH_COLLAPSE_WHITESPACE: bool = True
    MAX_ANSWER_LENGTH: int = Field(
        default=10000,
        ge=1,
        description="Maximum accepted length of a raw student answer",
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

    @model_validator(mode="after")
    def validate_production_database(self) -> Self:
        """SQLite cannot serialize concurrent finalize calls; refuse it in production."""
        if self.ENV == "production" and self.DATABASE_URL.startswith("sqlite"):
            raise ValueError(
                "DATABASE_URL must point at PostgreSQL when ENV=production, "
                f"got {self.DATABASE_URL.split(':', 1)[0]}"
            )
        return self


settings = Settings()
