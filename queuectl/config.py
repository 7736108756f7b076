"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.

Queue policy parameters (max_retries, backoff_base) are not settings: they
live in the config table so operators can change them at runtime.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./queuectl.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20
    sqlite_busy_timeout_ms: int = 30000

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Worker Configuration
    worker_count: int = 1
    worker_poll_interval_seconds: float = 0.5
    worker_error_backoff_seconds: float = 1.0
    worker_heartbeat_interval_seconds: float = 10.0
    job_timeout_seconds: float | None = None

    # Reaper Configuration
    reaper_interval_seconds: int = 30
    reaper_stale_after_seconds: int = 300

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "queuectl"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
