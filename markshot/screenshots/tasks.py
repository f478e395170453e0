"""
Screenshot Celery tasks.

``on_bookmark_created`` is the trigger for new bookmarks; each
``capture_screenshot`` run is one attempt and re-enqueues itself with a
countdown while the retry budget lasts.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from celery import Task
from celery.utils.log import get_task_logger

from ..celery_app import CAPTURE_TASK, SWEEP_TASK, celery_app
from ..core.utils import utc_now
from ..runtime import get_runtime
from ..status import ScreenshotStatus

logger = get_task_logger(__name__)

EXHAUSTED_ERROR = "Retry budget exhausted"


class ScreenshotTask(Task):
    """Base class for screenshot tasks.

    Capture failures are handled inside the job; anything reaching
    ``on_failure`` is an infrastructure error (usually the document store).
    The record stays pending and the sweep re-enqueues it later.
    """

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(
            f"Screenshot task failed: {exc}",
            exc_info=True,
            extra={"task_id": task_id, "task_args": args, "task_kwargs": kwargs},
        )


def enqueue_capture(bookmark_id: str, url: Optional[str] = None, countdown: Optional[float] = None):
    """Queue one capture attempt for a bookmark."""
    return capture_screenshot.apply_async(
        args=[bookmark_id],
        kwargs={"url": url},
        countdown=countdown,
    )


def on_bookmark_created(bookmark_id: str, url: str) -> None:
    """Trigger the screenshot job for a newly created bookmark."""
    enqueue_capture(bookmark_id, url)
    logger.info("Screenshot capture enqueued", extra={"bookmark_id": bookmark_id, "url": url})


@celery_app.task(base=ScreenshotTask, bind=True, name=CAPTURE_TASK)
def capture_screenshot(self, bookmark_id: str, url: Optional[str] = None) -> dict:
    """
    Run one screenshot capture attempt.

    Args:
        bookmark_id: Bookmark document id
        url: URL at enqueue time (informational; the record's URL is used)

    Returns:
        Attempt result dictionary
    """
    logger.info(
        "Starting screenshot attempt",
        extra={"task_id": self.request.id, "bookmark_id": bookmark_id, "url": url},
    )

    runtime = get_runtime()
    result = runtime.screenshot_job.run_attempt(bookmark_id)

    if result.should_reschedule:
        enqueue_capture(bookmark_id, url, countdown=result.retry_delay)

    logger.info(
        "Screenshot attempt finished",
        extra={
            "task_id": self.request.id,
            "bookmark_id": bookmark_id,
            "outcome": result.outcome.value,
            "retries": result.retries,
        },
    )
    return result.to_dict()


@celery_app.task(bind=True, name=SWEEP_TASK)
def sweep_stalled_screenshots(self) -> dict:
    """Re-enqueue pending screenshots whose retry chain was lost.

    Only records untouched for ``stalled_after_seconds`` are read, oldest
    first, since an attempt or a backoff countdown may still be in flight for
    the rest. Pending records with no retry budget left are closed out as
    failed so they leave the pending set. Failed records are only revived by
    a manual retry.
    """
    runtime = get_runtime()
    retry_settings = runtime.settings.retry
    cutoff = utc_now() - timedelta(seconds=retry_settings.stalled_after_seconds)

    candidates = runtime.db_storage.find_pending_screenshots(
        retry_settings.sweep_batch_size, stalled_before=cutoff
    )
    enqueued = []
    exhausted = []
    for record in candidates:
        if not runtime.retry_policy.can_retry(record.screenshot.retries):
            runtime.db_storage.update_fields(
                record.id,
                {
                    "screenshotStatus": ScreenshotStatus.FAILED.value,
                    "screenshotUrl": None,
                    "screenshotPath": None,
                    "screenshotError": record.screenshot.error or EXHAUSTED_ERROR,
                    "updatedAt": utc_now(),
                },
            )
            exhausted.append(record.id)
            continue
        enqueue_capture(record.id, record.url)
        enqueued.append(record.id)

    logger.info(
        "Swept stalled screenshots",
        extra={
            "task_id": self.request.id,
            "candidates": len(candidates),
            "enqueued": len(enqueued),
            "exhausted": len(exhausted),
        },
    )
    return {"candidates": len(candidates), "enqueued": enqueued, "exhausted": exhausted}
