"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Assessment API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Security
    # IMPORTANT: JWT_SECRET_KEY MUST be set in .env - no default for security
    JWT_SECRET_KEY: str = Field(..., description="JWT signing secret key (required)")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 8
    ADMIN_TOKEN: str = Field(
        default="",
        description="Admin API token for scoring and analytics endpoints",
    )

    # Attempt lifecycle
    TIME_WARNING_THRESHOLD_SECONDS: int = Field(
        default=300,
        ge=1,
        description="Remaining time at or below which an attempt is nearly expired",
    )
    ATTEMPT_NUMBER_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Retries when concurrent starts collide on attempt_number",
    )

    # Scoring
    DEFAULT_PASSING_SCORE: float = Field(
        default=60.0,
        ge=0.0,
        le=100.0,
        description="Passing score used when a test defines none",
    )

    # Trait analytics
    TRAIT_ANALYTICS_MAX_RESULTS: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of results aggregated per analytics request",
    )
    TRAIT_ANALYTICS_MAX_TREND_POINTS: int = Field(
        default=30,
        ge=1,
        description="Maximum number of buckets in a trait trend series",
    )
    TRAIT_CORRELATION_MIN_SAMPLE: int = Field(
        default=5,
        ge=2,
        description="Minimum paired observations before a correlation is reported",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_log_level(self) -> Self:
        """Reject log levels the logging module does not know."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.LOG_LEVEL.upper() not in allowed:
            raise ValueError(
                f"LOG_LEVEL must be one of {sorted(allowed)}, got {self.LOG_LEVEL!r}"
            )
        return self

    @model_validator(mode="after")
    def validate_production_secrets(self) -> Self:
        """Require an admin token outside development."""
        if self.ENV == "production" and not self.ADMIN_TOKEN:
            raise ValueError("ADMIN_TOKEN must be set when ENV=production")
        return self


# mypy doesn't understand that pydantic_settings loads required fields from env vars
settings = Settings()  # type: ignore[call-arg]
