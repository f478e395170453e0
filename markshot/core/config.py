"""
Configuration for markshot.

Provides environment-based configuration with Pydantic settings. Top-level
fields read flat environment variables (``LOG_LEVEL``); nested sections are
set through the ``__`` delimiter (``GCS__BUCKET``, ``RETRY__MAX_RETRIES``).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseModel):
    """Redis connection settings (Celery broker and result backend)."""

    model_config = ConfigDict(populate_by_name=True)

    host: str = Field(
        default="localhost",
        validation_alias=AliasChoices("REDIS_HOST", "REDIS__HOST"),
    )
    port: int = Field(
        default=6379,
        validation_alias=AliasChoices("REDIS_PORT", "REDIS__PORT"),
    )
    db: int = Field(
        default=0,
        validation_alias=AliasChoices("REDIS_DB", "REDIS__DB"),
    )
    password: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("REDIS_PASSWORD", "REDIS__PASSWORD"),
    )

    def url(self) -> str:
        """Build Redis URL."""
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class GCSSettings(BaseModel):
    """Google Cloud Storage settings for screenshot objects."""

    model_config = ConfigDict(populate_by_name=True)

    bucket: str = Field(
        default="markshot.firebasestorage.app",
        validation_alias=AliasChoices("GCS_BUCKET", "GCS__BUCKET"),
    )
    project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GCS_PROJECT_ID", "GOOGLE_CLOUD_PROJECT"),
    )
    public_base_url: str = Field(
        default="https://firebasestorage.googleapis.com",
        validation_alias=AliasChoices("GCS_PUBLIC_BASE_URL", "GCS__PUBLIC_BASE_URL"),
    )
    emulator_host: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "FIREBASE_STORAGE_EMULATOR_HOST", "GCS__EMULATOR_HOST"
        ),
        description="host:port of the Storage emulator; public URLs point there when set",
    )

    @field_validator("public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class FirestoreSettings(BaseModel):
    """Firestore settings."""

    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "FIRESTORE_PROJECT_ID", "GOOGLE_CLOUD_PROJECT", "GCS_PROJECT_ID"
        ),
    )
    bookmarks_collection: str = Field(
        default="bookmarks",
        validation_alias=AliasChoices(
            "FIRESTORE_BOOKMARKS_COLLECTION", "FIRESTORE__BOOKMARKS_COLLECTION"
        ),
    )
    tags_collection: str = Field(
        default="tags",
        validation_alias=AliasChoices(
            "FIRESTORE_TAGS_COLLECTION", "FIRESTORE__TAGS_COLLECTION"
        ),
    )


class CaptureSettings(BaseModel):
    """Headless browser capture parameters."""

    model_config = ConfigDict(populate_by_name=True)

    timeout_ms: int = Field(
        default=30000,
        validation_alias=AliasChoices("CAPTURE_TIMEOUT_MS", "CAPTURE__TIMEOUT_MS"),
    )
    viewport_width: int = Field(
        default=1280,
        validation_alias=AliasChoices("CAPTURE_VIEWPORT_WIDTH", "CAPTURE__VIEWPORT_WIDTH"),
    )
    viewport_height: int = Field(
        default=720,
        validation_alias=AliasChoices("CAPTURE_VIEWPORT_HEIGHT", "CAPTURE__VIEWPORT_HEIGHT"),
    )
    settle_ms: int = Field(
        default=2000,
        validation_alias=AliasChoices("CAPTURE_SETTLE_MS", "CAPTURE__SETTLE_MS"),
        description="Extra wait after DOMContentLoaded for client-side rendering",
    )
    thumbnail_width: int = Field(
        default=350,
        validation_alias=AliasChoices("THUMBNAIL_WIDTH", "CAPTURE__THUMBNAIL_WIDTH"),
    )
    jpeg_quality: int = Field(
        default=80,
        ge=1,
        le=95,
        validation_alias=AliasChoices("THUMBNAIL_JPEG_QUALITY", "CAPTURE__JPEG_QUALITY"),
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        validation_alias=AliasChoices("CAPTURE_USER_AGENT", "CAPTURE__USER_AGENT"),
    )


class RetrySettings(BaseModel):
    """Screenshot retry policy."""

    model_config = ConfigDict(populate_by_name=True)

    max_retries: int = Field(
        default=3,
        ge=0,
        validation_alias=AliasChoices("SCREENSHOT_MAX_RETRIES", "RETRY__MAX_RETRIES"),
    )
    base_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        validation_alias=AliasChoices("SCREENSHOT_RETRY_BASE_DELAY", "RETRY__BASE_DELAY_SECONDS"),
    )
    max_delay_seconds: float = Field(
        default=600.0,
        ge=0,
        validation_alias=AliasChoices("SCREENSHOT_RETRY_MAX_DELAY", "RETRY__MAX_DELAY_SECONDS"),
    )
    sweep_batch_size: int = Field(
        default=50,
        validation_alias=AliasChoices("SCREENSHOT_SWEEP_BATCH_SIZE", "RETRY__SWEEP_BATCH_SIZE"),
    )
    sweep_interval_seconds: float = Field(
        default=86400.0,
        validation_alias=AliasChoices("SCREENSHOT_SWEEP_INTERVAL", "RETRY__SWEEP_INTERVAL_SECONDS"),
    )
    stalled_after_seconds: float = Field(
        default=3600.0,
        ge=0,
        validation_alias=AliasChoices("SCREENSHOT_STALLED_AFTER", "RETRY__STALLED_AFTER_SECONDS"),
        description="Pending records untouched for this long are re-enqueued by the sweep",
    )


class MetadataSettings(BaseModel):
    """Page metadata lookup used to prefill new bookmarks."""

    model_config = ConfigDict(populate_by_name=True)

    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias=AliasChoices("METADATA_TIMEOUT_SECONDS", "METADATA__TIMEOUT_SECONDS"),
    )
    max_bytes: int = Field(
        default=1_000_000,
        gt=0,
        validation_alias=AliasChoices("METADATA_MAX_BYTES", "METADATA__MAX_BYTES"),
        description="Stop reading a page body after this many bytes",
    )


class AppSettings(BaseSettings):
    """Application configuration loaded from environment variables.

    Uses pydantic-settings to support .env and environment overrides.
    """

    service_name: str = Field(
        default="markshot",
        validation_alias=AliasChoices("SERVICE_NAME"),
    )
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "ENV"),
    )
    data_dir: Path = Field(
        default=Path("/data"),
        validation_alias=AliasChoices("DATA_DIR"),
    )

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL"),
    )
    log_format: str = Field(
        default="json",
        validation_alias=AliasChoices("LOG_FORMAT"),
        description="Log format: 'json' or 'text'",
    )

    storage_backend: str = Field(
        default="gcs",
        validation_alias=AliasChoices("STORAGE_BACKEND", "STORAGE__BACKEND"),
        description="File storage backend: 'gcs' or 'local'",
    )

    redis: RedisSettings = Field(default_factory=RedisSettings)
    gcs: GCSSettings = Field(default_factory=GCSSettings)
    firestore: FirestoreSettings = Field(default_factory=FirestoreSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    metadata: MetadataSettings = Field(default_factory=MetadataSettings)

    celery_broker_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CELERY_BROKER_URL"),
    )
    celery_result_backend: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CELERY_RESULT_BACKEND"),
    )
    celery_task_always_eager: bool = Field(
        default=False,
        validation_alias=AliasChoices("CELERY_TASK_ALWAYS_EAGER"),
    )
    celery_concurrency: int = Field(
        default=2,
        validation_alias=AliasChoices("CELERY_CONCURRENCY"),
        description="Upper bound on concurrent headless browsers per worker",
    )

    @field_validator("storage_backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value):
        if value is None:
            return "gcs"
        backend = str(value).strip().lower()
        return backend or "gcs"

    @property
    def effective_celery_broker_url(self) -> str:
        """Get Celery broker URL, defaulting to Redis."""
        return self.celery_broker_url or self.redis.url()

    @property
    def effective_celery_result_backend(self) -> str:
        """Get Celery result backend URL, defaulting to Redis."""
        return self.celery_result_backend or self.redis.url()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> AppSettings:
    """Get cached settings instance."""
    return AppSettings()
