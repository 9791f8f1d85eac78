from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for bearer token validation.")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the library reconciliation service."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Librarian API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")
    log_format: Literal["json", "console"] = Field(default="json", description="structlog renderer.")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./librarian.db",
        description="SQLAlchemy compatible DSN.",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for background jobs and distributed path locks.",
    )

    job_queue_backend: Literal["immediate", "inline", "rq"] = Field(
        default="immediate",
        description="Backend for library jobs (inline executes in a worker thread; rq schedules via Redis).",
    )
    job_queue_name: str = Field(default="librarian-library", description="RQ queue consumed by library workers.")
    downstream_queue_name: str = Field(
        default="librarian-downstream",
        description="RQ queue receiving metadata extraction and video conversion jobs.",
    )
    downstream_task_module: str = Field(
        default="media_processing.tasks",
        description="Module exposing metadata_extraction/video_conversion callables on downstream workers.",
    )
    job_max_retries: int = Field(default=3, ge=0, description="Maximum retry attempts for transient job failures.")
    job_retry_backoff_base: float = Field(default=2.0, description="Backoff multiplier between retries.")
    job_retry_initial_delay_s: float = Field(default=1.0, description="Initial delay before the first retry.")

    path_lock_backend: Optional[Literal["local", "redis"]] = Field(
        default=None,
        description="Scope for per-path ingest locks (process-local or shared through Redis). "
        "Unset means redis for the rq job backend and local otherwise.",
    )
    path_lock_timeout_s: float = Field(default=30.0, gt=0, description="Seconds to wait for a per-path lock.")

    checksum_chunk_size: int = Field(default=1024 * 1024, gt=0, description="Read size used while hashing files.")
    crawl_follow_symlinks: bool = Field(default=False, description="Descend into symlinked directories while crawling.")

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def normalized_job_backend(self) -> str:
        if self.job_queue_backend == "inline":
            return "immediate"
        return self.job_queue_backend

    @property
    def retry_intervals(self) -> list[int]:
        return [
            max(1, round(self.job_retry_initial_delay_s * self.job_retry_backoff_base**attempt))
            for attempt in range(self.job_max_retries)
        ]


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "LIBRARIAN_ENV": "LIBRARIAN_ENVIRONMENT",
        "LIBRARIAN_DB_URL": "LIBRARIAN_DATABASE_URL",
        "LIBRARIAN_JOB_BACKEND": "LIBRARIAN_JOB_QUEUE_BACKEND",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()
    secrets = Secrets.from_settings(settings)

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")

    if settings.path_lock_backend is None:
        settings.path_lock_backend = "redis" if settings.normalized_job_backend == "rq" else "local"
    elif settings.normalized_job_backend == "rq" and settings.path_lock_backend == "local":
        # Local locks do not span RQ worker processes.
        raise ValueError("The rq job backend requires the redis path lock backend.")

    settings.secrets = secrets
    return settings


__all__ = ["Settings", "Secrets", "get_settings"]
