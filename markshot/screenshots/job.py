"""
Screenshot capture job.

One call to ``ScreenshotJob.run_attempt`` is one capture attempt: render the
page, encode the thumbnail, upload it, then write the outcome back onto the
bookmark. The attempt is the retry unit; any failure in any step is recorded
on the record and either schedules another attempt or, once the retry budget
is spent, marks the screenshot failed.

``capturing`` is never persisted. A record stays ``pending`` while an attempt
runs and moves straight to ``completed`` or ``failed``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..capture.base import BaseCapturer, Viewport
from ..capture.thumbnail import (
    THUMBNAIL_CONTENT_TYPE,
    THUMBNAIL_EXTENSION,
    make_thumbnail,
)
from ..core.config import CaptureSettings
from ..core.utils import sanitize_path_segment, utc_now
from ..status import AttemptOutcome, CaptureAttemptResult, ScreenshotStatus
from ..storage.database_storage import BookmarkRecord, DatabaseStorageProvider
from ..storage.file_storage import FileStorageProvider
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000
SCREENSHOT_PREFIX = "screenshots"


class ScreenshotUploadError(Exception):
    """The object store rejected a thumbnail upload."""


def screenshot_path(user_id: str, bookmark_id: str, extension: str = THUMBNAIL_EXTENSION) -> str:
    """Object path for a bookmark's thumbnail, scoped by owner."""
    return (
        f"{SCREENSHOT_PREFIX}/{sanitize_path_segment(user_id)}/"
        f"{sanitize_path_segment(bookmark_id)}.{extension}"
    )


def completed_fields(url: str, path: str) -> Dict[str, Any]:
    return {
        "screenshotStatus": ScreenshotStatus.COMPLETED.value,
        "screenshotUrl": url,
        "screenshotPath": path,
        "screenshotError": None,
        "updatedAt": utc_now(),
    }


def reset_fields() -> Dict[str, Any]:
    """Fields that put a screenshot back to a fresh ``pending`` state."""
    return {
        "screenshotStatus": ScreenshotStatus.PENDING.value,
        "screenshotUrl": None,
        "screenshotPath": None,
        "screenshotRetries": 0,
        "screenshotError": None,
        "updatedAt": utc_now(),
    }


def _error_message(exc: BaseException) -> str:
    message = str(exc).strip() or type(exc).__name__
    return message[:MAX_ERROR_LENGTH]


class ScreenshotJob:
    def __init__(
        self,
        db_storage: DatabaseStorageProvider,
        file_storage: FileStorageProvider,
        capturer: BaseCapturer,
        retry_policy: Optional[RetryPolicy] = None,
        capture_settings: Optional[CaptureSettings] = None,
    ):
        self.db_storage = db_storage
        self.file_storage = file_storage
        self.capturer = capturer
        self.retry_policy = retry_policy or RetryPolicy()
        self.capture_settings = capture_settings or CaptureSettings()

    @property
    def viewport(self) -> Viewport:
        return Viewport(
            width=self.capture_settings.viewport_width,
            height=self.capture_settings.viewport_height,
        )

    def run_attempt(self, bookmark_id: str) -> CaptureAttemptResult:
        """Run one capture attempt for a pending bookmark."""
        record = self.db_storage.get_bookmark(bookmark_id)
        if record is None:
            logger.info("Bookmark deleted before capture", extra={"bookmark_id": bookmark_id})
            return CaptureAttemptResult(bookmark_id=bookmark_id, outcome=AttemptOutcome.SKIPPED)

        if record.screenshot.status is not ScreenshotStatus.PENDING:
            logger.info(
                "Screenshot no longer pending; skipping",
                extra={"bookmark_id": bookmark_id, "status": record.screenshot.status.value},
            )
            return CaptureAttemptResult(
                bookmark_id=bookmark_id,
                outcome=AttemptOutcome.SKIPPED,
                retries=record.screenshot.retries,
            )

        logger.info(
            "Starting screenshot capture",
            extra={
                "bookmark_id": bookmark_id,
                "url": record.url,
                "attempt": record.screenshot.retries + 1,
            },
        )

        path = screenshot_path(record.user_id, bookmark_id)
        try:
            image = self.capturer.capture(
                record.url,
                timeout_ms=self.capture_settings.timeout_ms,
                viewport=self.viewport,
            )
            thumbnail = make_thumbnail(
                image,
                width=self.capture_settings.thumbnail_width,
                quality=self.capture_settings.jpeg_quality,
            )

            upload = self.file_storage.upload_bytes(
                thumbnail, path, content_type=THUMBNAIL_CONTENT_TYPE
            )
            if not upload.success or not upload.public_url:
                raise ScreenshotUploadError(upload.error or "Upload returned no address")

            written = self.db_storage.update_fields(
                bookmark_id, completed_fields(upload.public_url, path)
            )
        except Exception as exc:
            return self._record_failure(record, exc)

        if not written:
            logger.info(
                "Bookmark deleted during capture; removing uploaded screenshot",
                extra={"bookmark_id": bookmark_id, "path": path},
            )
            self._discard_upload(path)
            return CaptureAttemptResult(bookmark_id=bookmark_id, outcome=AttemptOutcome.SKIPPED)

        logger.info(
            "Screenshot captured",
            extra={"bookmark_id": bookmark_id, "path": path, "bytes": len(thumbnail)},
        )
        return CaptureAttemptResult(
            bookmark_id=bookmark_id,
            outcome=AttemptOutcome.COMPLETED,
            retries=record.screenshot.retries,
            screenshot_url=upload.public_url,
            screenshot_path=path,
        )

    def _record_failure(self, record: BookmarkRecord, exc: Exception) -> CaptureAttemptResult:
        bookmark_id = record.id or ""
        error = _error_message(exc)
        previous = record.screenshot.retries
        retries = min(previous + 1, self.retry_policy.max_retries)
        exhausted = not self.retry_policy.can_retry(retries)
        status = ScreenshotStatus.FAILED if exhausted else ScreenshotStatus.PENDING

        # Write failures here propagate: the record stays pending and the
        # sweep picks it up again.
        written = self.db_storage.update_fields(
            bookmark_id,
            {
                "screenshotStatus": status.value,
                "screenshotUrl": None,
                "screenshotPath": None,
                "screenshotRetries": retries,
                "screenshotError": error,
                "updatedAt": utc_now(),
            },
        )
        if not written:
            logger.info("Bookmark deleted during capture", extra={"bookmark_id": bookmark_id})
            return CaptureAttemptResult(bookmark_id=bookmark_id, outcome=AttemptOutcome.SKIPPED)

        if exhausted:
            logger.warning(
                "Screenshot failed; retries exhausted",
                extra={"bookmark_id": bookmark_id, "retries": retries, "error": error},
            )
            return CaptureAttemptResult(
                bookmark_id=bookmark_id,
                outcome=AttemptOutcome.FAILED,
                retries=retries,
                error=error,
            )

        delay = self.retry_policy.delay_for(previous)
        logger.warning(
            "Screenshot attempt failed; retry scheduled",
            extra={
                "bookmark_id": bookmark_id,
                "retries": retries,
                "retry_delay": delay,
                "error": error,
            },
        )
        return CaptureAttemptResult(
            bookmark_id=bookmark_id,
            outcome=AttemptOutcome.RETRY_SCHEDULED,
            retries=retries,
            retry_delay=delay,
            error=error,
        )

    def _discard_upload(self, path: str) -> None:
        try:
            self.file_storage.delete_file(path)
        except Exception as exc:
            logger.warning(
                "Could not remove orphaned screenshot",
                extra={"path": path, "error": str(exc)},
            )
