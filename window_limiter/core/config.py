"""Library configuration using Pydantic Settings.

Configuration is environment-aware:
- LIMITER_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
LIMITER_ENV = os.getenv("LIMITER_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(LIMITER_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


def _build_store_settings() -> "StoreSettings":
    """Build store settings from environment."""

    return StoreSettings()


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings from environment."""

    return LimiterSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class StoreSettings(BaseSettings):
    """Backing store connection configuration.

    The URL scheme selects the store implementation (see
    ``window_limiter.adapters.store.factory``).
    """

    url: str = Field(
        "redis://localhost:6379/0",
        description="Store URL (redis://, rediss://, unix:// or memory://)",
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Timeout for a single store round-trip in seconds",
        gt=0,
    )
    connect_timeout_seconds: float = Field(
        2.0,
        description="Timeout for establishing a store connection in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LimiterSettings(BaseSettings):
    """Rate limiting quota configuration."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting in the HTTP dependency",
    )
    key_prefix: str = Field(
        "rate_limit",
        description="Prefix for counter keys, stored as '{prefix}:{identifier}'",
        min_length=1,
    )
    max_requests: int = Field(
        60,
        description="Maximum number of requests allowed per window (per identifier)",
        ge=1,
    )
    window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers in responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{LIMITER_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    limiter_env: str = LIMITER_ENV
    store: StoreSettings = Field(default_factory=_build_store_settings)
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
