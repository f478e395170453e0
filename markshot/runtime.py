from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .capture.base import BaseCapturer
from .capture.playwright_capturer import PlaywrightCapturer
from .core.config import AppSettings, get_settings
from .core.logging import setup_logging
from .screenshots.job import ScreenshotJob
from .screenshots.retry_policy import RetryPolicy
from .services.bookmark_service import BookmarkService
from .services.metadata import PageMetadataFetcher
from .storage.database_storage import DatabaseStorageProvider
from .storage.file_storage import FileStorageProvider
from .storage.firestore_storage import FirestoreStorage
from .storage.gcs_file_storage import GCSFileStorage
from .storage.local_file_storage import LocalFileStorage

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: AppSettings
    db_storage: DatabaseStorageProvider
    file_storage: FileStorageProvider
    capturer: BaseCapturer
    retry_policy: RetryPolicy
    screenshot_job: ScreenshotJob
    bookmark_service: BookmarkService


_runtime: Optional[Runtime] = None


def _build_file_storage(settings: AppSettings) -> FileStorageProvider:
    if settings.storage_backend == "gcs":
        storage = GCSFileStorage(
            bucket_name=settings.gcs.bucket,
            project_id=settings.gcs.project_id,
            public_base_url=settings.gcs.public_base_url,
            emulator_host=settings.gcs.emulator_host,
        )
        logger.info("Initialized GCS storage", extra={"bucket": settings.gcs.bucket})
        return storage

    if settings.storage_backend == "local":
        root_dir = settings.data_dir / "objects"
        logger.info("Initialized local storage", extra={"path": str(root_dir)})
        return LocalFileStorage(root_dir=root_dir)

    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


def _schedule_capture(bookmark_id: str, url: str) -> None:
    # Imported here: the tasks module imports this one
    from .screenshots.tasks import on_bookmark_created

    on_bookmark_created(bookmark_id, url)


def build_runtime(settings: AppSettings) -> Runtime:
    db_storage = FirestoreStorage(
        project_id=settings.firestore.project_id,
        bookmarks_collection=settings.firestore.bookmarks_collection,
        tags_collection=settings.firestore.tags_collection,
    )
    logger.info(
        "Initialized Firestore storage",
        extra={"project_id": settings.firestore.project_id},
    )
    file_storage = _build_file_storage(settings)

    capturer = PlaywrightCapturer(settings.capture)
    retry_policy = RetryPolicy.from_settings(settings.retry)
    screenshot_job = ScreenshotJob(
        db_storage=db_storage,
        file_storage=file_storage,
        capturer=capturer,
        retry_policy=retry_policy,
        capture_settings=settings.capture,
    )
    bookmark_service = BookmarkService(
        db_storage=db_storage,
        file_storage=file_storage,
        schedule_capture=_schedule_capture,
        metadata_fetcher=PageMetadataFetcher(
            timeout=settings.metadata.timeout_seconds,
            max_bytes=settings.metadata.max_bytes,
            user_agent=settings.capture.user_agent,
        ),
    )

    return Runtime(
        settings=settings,
        db_storage=db_storage,
        file_storage=file_storage,
        capturer=capturer,
        retry_policy=retry_policy,
        screenshot_job=screenshot_job,
        bookmark_service=bookmark_service,
    )


def get_runtime() -> Runtime:
    """Build the process-wide runtime on first use."""
    global _runtime
    if _runtime is not None:
        return _runtime

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format, settings.service_name)

    _runtime = build_runtime(settings)
    return _runtime
