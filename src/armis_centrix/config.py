"""
Configuration management for the Armis Centrix client.

Settings are loaded from environment variables (and an optional ``.env``
file) through pydantic-settings, with explicit validation and clear error
messages for missing or invalid values.

Environment Variables:
    ARMIS_API_KEY: Armis secret key exchanged for access tokens (required)
    ARMIS_API_URL: Armis API base URL (default: https://api.armis.com)
    ARMIS_API_VERSION: API version path segment (default: v1)
    ARMIS_TIMEOUT_SECONDS: Per-request timeout in seconds (default: 30)
    ARMIS_MAX_RETRIES: Attempts for retryable failures (default: 3)
    LOG_LEVEL: Logging level (default: INFO)

Usage:
    from armis_centrix.config import get_settings

    settings = get_settings()
    print(settings.armis_api_url)
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from armis_centrix.errors import ConfigurationError


class Settings(BaseSettings):
    """
    Armis client configuration settings.

    Attributes:
        armis_api_key: Armis secret key (required)
        armis_api_url: Armis API base URL
        armis_api_version: API version path segment
        armis_timeout_seconds: Per-request timeout in seconds
        armis_max_retries: Maximum attempts for retryable failures
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    armis_api_key: str = Field(
        ...,
        description="Armis secret key exchanged for access tokens",
    )
    armis_api_url: str = Field(
        default="https://api.armis.com",
        description="Armis API base URL",
    )
    armis_api_version: str = Field(
        default="v1",
        description="Armis API version path segment",
    )
    armis_timeout_seconds: float = Field(
        default=30.0,
        ge=1,
        le=300,
        description="Per-request timeout in seconds",
    )
    armis_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for retryable failures",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("armis_api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Reject a blank secret key and strip surrounding whitespace."""
        if not v or not v.strip():
            raise ConfigurationError(
                "ARMIS_API_KEY is required but not set",
                config_key="ARMIS_API_KEY",
                reason="Key is empty or missing",
            )
        return v.strip()

    @field_validator("armis_api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """
        Validate the base URL is an http(s) URL and drop any trailing slash.

        Raises:
            ConfigurationError: If the URL has no http or https scheme
        """
        v = v.strip()
        if not v.startswith(("https://", "http://")):
            raise ConfigurationError(
                f"ARMIS_API_URL '{v}' must start with https:// or http://",
                config_key="ARMIS_API_URL",
                reason="Missing URL scheme",
            )
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the level name to upper case, rejecting unknown names."""
        levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in levels:
            raise ConfigurationError(
                f"LOG_LEVEL '{v}' is not valid. Must be one of: {', '.join(sorted(levels))}",
                config_key="LOG_LEVEL",
                reason=f"Invalid log level: {v}",
            )
        return level


@lru_cache
def get_settings() -> Settings:
    """
    Load settings once per process.

    Any failure other than a ConfigurationError raised by a validator
    (for example a missing ARMIS_API_KEY) is wrapped in one.

    Raises:
        ConfigurationError: If the environment does not yield valid settings
    """
    try:
        return Settings()  # pyright: ignore[reportCallIssue]
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load configuration: {e}",
            reason=str(e),
        ) from e
