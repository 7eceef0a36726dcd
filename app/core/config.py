"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (backend URL, timeouts, session backend, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal

from utils.phone_rules import PHONE_RULES


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Backend API
    API_BASE_URL: str = Field(
        default="http://localhost:8080/api/v1",
        description="Investment platform backend base URL"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Timeout for regular backend requests in seconds"
    )
    REFRESH_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for token refresh requests in seconds"
    )

    # Token lifecycle
    TOKEN_REFRESH_BUFFER_SECONDS: int = Field(
        default=300,
        description="Refresh the access token this many seconds before it expires"
    )
    TOKEN_REFRESH_NETWORK_RETRIES: int = Field(
        default=1,
        description="Retries for a token refresh that failed on the network"
    )

    # Onboarding
    ONBOARDING_SETTLE_SECONDS: float = Field(
        default=2.0,
        description="Delay between trial activation and the completion callback"
    )
    ONBOARDING_AUTO_START_TRIAL: bool = Field(
        default=True,
        description="Start the free trial right after the profile is saved"
    )
    DEFAULT_COUNTRY: str = Field(
        default="KE",
        description="Country preselected for phone input"
    )

    # Session persistence
    SESSION_BACKEND: Literal["memory", "file", "mongo"] = Field(
        default="file",
        description="Durable key-value store for the session"
    )
    SESSION_FILE_PATH: str = Field(
        default=".capitalized/session.json",
        description="Session file used by the 'file' backend"
    )
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (used by the 'mongo' backend)"
    )
    MONGODB_DB_NAME: str = Field(
        default="capitalized",
        description="MongoDB database name"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="Local API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("API_BASE_URL")
    def validate_api_base_url(cls, v, values):
        """Production must use TLS."""
        if values.get("ENVIRONMENT") == "production" and not v.startswith("https://"):
            raise ValueError("API_BASE_URL must use https in production environment")
        return v.rstrip("/")

    @validator("ONBOARDING_SETTLE_SECONDS")
    def validate_settle_delay(cls, v):
        if v < 0:
            raise ValueError("ONBOARDING_SETTLE_SECONDS cannot be negative")
        return v

    @validator("TOKEN_REFRESH_NETWORK_RETRIES")
    def validate_refresh_retries(cls, v):
        if v < 0:
            raise ValueError("TOKEN_REFRESH_NETWORK_RETRIES cannot be negative")
        return v

    @validator("DEFAULT_COUNTRY")
    def validate_default_country(cls, v):
        code = v.strip().upper()
        if code not in PHONE_RULES:
            raise ValueError(f"DEFAULT_COUNTRY {v!r} has no phone rule")
        return code

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if not config.API_BASE_URL:
        errors.append("API_BASE_URL is required")

    if config.SESSION_BACKEND == "file" and not config.SESSION_FILE_PATH:
        errors.append("SESSION_FILE_PATH is required for the file session backend")

    if config.SESSION_BACKEND == "mongo" and not config.MONGODB_URL:
        errors.append("MONGODB_URL is required for the mongo session backend")

    # Production-specific validations
    if config.is_production:
        if config.SESSION_BACKEND == "memory":
            errors.append("SESSION_BACKEND 'memory' is not durable; not allowed in production")
        if config.DEBUG:
            errors.append("DEBUG must be disabled in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
