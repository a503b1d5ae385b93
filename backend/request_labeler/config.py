"""Centralised settings — reads .env / env vars via pydantic-settings."""
from __future__ import annotations

import tempfile

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All configuration for the request labeler, sourced from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Redis (shared store) ──
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CLIENT_NAME: str = "request-labeler"
    REDIS_CONNECT_TIMEOUT_S: float = 5.0
    REDIS_SOCKET_TIMEOUT_S: float = 5.0

    # ── Labeling ──
    LABELER_ENABLED: bool = True
    LABELER_TABLE_TTL_S: int = 100800  # 28 hours
    LABELER_REQUEST_TABLE: str = "request_logs"
    LABELER_DEPENDENCY_TABLE: str = "included_files"
    LABELER_MAX_FIELD_BYTES: int = 1024
    LABELER_RECORD_DEPENDENCIES: bool = False
    LABELER_PROFILER: str = "otel"  # otel | none

    # ── Archival ──
    ARCHIVE_DIR: str = tempfile.gettempdir()
    ARCHIVE_STRUCTURED_SIBLING: bool = False
    ARCHIVE_NOISE_FILTER_PATH: str | None = None

    # ── Celery (maintenance triggers) ──
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    ARCHIVE_CRON: str = "5 0 * * *"

    # ── App ──
    APP_ENV: str = "development"
    APP_LOG_LEVEL: str = "INFO"


settings = Settings()
