"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Static type checkers treat fields as constructor arguments, which is not
    how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


def parse_paths(paths: str | None) -> set[str]:
    """Parse a comma-separated list of URL paths into a set.

    Examples:
        >>> sorted(parse_paths("/api/health, /api/ping"))
        ['/api/health', '/api/ping']
        >>> parse_paths(None)
        set()
    """
    if not paths:
        return set()
    return {path.strip().rstrip("/") or "/" for path in paths.split(",") if path.strip()}


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and propagate the request id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the global per-client rate limit on API routes",
    )
    rate_limit_window_ms: int = Field(
        60_000,
        description="Global rate limit window size in milliseconds",
        ge=1,
    )
    rate_limit_max_requests: int = Field(
        100,
        description="Maximum requests per window per client (global limit)",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_path_prefix: str = Field(
        "/api/",
        description="Only paths starting with this prefix count against the global limit",
    )
    rate_limit_sweep_interval_seconds: float = Field(
        60.0,
        description="Interval between sweeps of expired rate limit entries",
        gt=0,
    )
    status_rate_limit_window_ms: int = Field(
        60_000,
        description="Window of the per-route limit on the status endpoint",
        ge=1,
    )
    status_rate_limit_requests: int = Field(
        30,
        description="Maximum status endpoint requests per window per client",
        ge=1,
    )
    public_paths: str = Field(
        "/api/health",
        description="Comma-separated paths exempt from the global rate limit",
    )
    trust_proxy_headers: bool = Field(
        False,
        description=(
            "Derive the client IP from X-Forwarded-For / X-Real-IP / CF-Connecting-IP. "
            "Enable only behind a proxy that overwrites these headers: otherwise clients "
            "can rotate them to evade the global limit"
        ),
    )
    security_headers_enabled: bool = Field(
        True,
        description="Add security headers (X-Frame-Options, HSTS, ...) to every response",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
