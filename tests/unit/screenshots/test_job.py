"""
Tests for ScreenshotJob.

Drives the capture state machine with in-memory storage and fake capturers.
"""

import io

import pytest
from PIL import Image

from markshot.capture.base import Viewport
from markshot.screenshots.job import ScreenshotJob, screenshot_path
from markshot.screenshots.retry_policy import RetryPolicy
from markshot.status import AttemptOutcome, ScreenshotStatus
from markshot.storage.database_storage import SCREENSHOT_FIELDS, BookmarkRecord, ScreenshotState
from tests.fakes import (
    FailingCapturer,
    FakeCapturer,
    FlakyCapturer,
    InMemoryFileStorage,
    make_png,
)


def _create(db_storage, user_id="user-1", url="https://example.com", **screenshot):
    record = BookmarkRecord(
        user_id=user_id,
        url=url,
        title="Example",
        screenshot=ScreenshotState(**screenshot),
    )
    return db_storage.create_bookmark(record)


def _run_until_settled(job, bookmark_id, limit=10):
    results = []
    for _ in range(limit):
        result = job.run_attempt(bookmark_id)
        results.append(result)
        if not result.should_reschedule:
            break
    return results


class TestSuccessfulCapture:
    """Scenario A: a URL that loads immediately."""

    def test_pending_to_completed(self, db_storage, file_storage, make_job):
        record = _create(db_storage)
        job = make_job(FakeCapturer())

        result = job.run_attempt(record.id)

        assert result.outcome is AttemptOutcome.COMPLETED
        doc = db_storage.document(record.id)
        assert doc["screenshotStatus"] == "completed"
        assert doc["screenshotUrl"] == file_storage.public_url(doc["screenshotPath"])
        assert doc["screenshotError"] is None
        assert doc["screenshotRetries"] == 0

    def test_object_path_scoped_by_owner_and_record(self, db_storage, file_storage, make_job):
        record = _create(db_storage, user_id="user-42")

        make_job(FakeCapturer()).run_attempt(record.id)

        expected = f"screenshots/user-42/{record.id}.jpg"
        assert db_storage.document(record.id)["screenshotPath"] == expected
        assert file_storage.exists(expected)
        assert file_storage.content_types[expected] == "image/jpeg"

    def test_uploads_scaled_thumbnail(self, db_storage, file_storage, make_job):
        record = _create(db_storage)

        make_job(FakeCapturer(make_png(1280, 720))).run_attempt(record.id)

        stored = file_storage.files[screenshot_path("user-1", record.id)]
        with Image.open(io.BytesIO(stored)) as img:
            assert img.format == "JPEG"
            assert img.size == (350, 197)

    def test_capture_uses_configured_timeout_and_viewport(self, db_storage, make_job):
        record = _create(db_storage, url="https://example.org/page")
        capturer = FakeCapturer()

        make_job(capturer).run_attempt(record.id)

        assert capturer.calls == [
            {
                "url": "https://example.org/page",
                "timeout_ms": 30000,
                "viewport": Viewport(1280, 720),
            }
        ]

    def test_writes_only_screenshot_fields(self, db_storage, make_job):
        record = _create(db_storage)

        make_job(FakeCapturer()).run_attempt(record.id)

        _, fields = db_storage.updates[-1]
        assert set(fields) <= SCREENSHOT_FIELDS

    def test_failure_writes_only_screenshot_fields(self, db_storage, make_job):
        record = _create(db_storage)

        make_job(FailingCapturer()).run_attempt(record.id)

        _, fields = db_storage.updates[-1]
        assert set(fields) <= SCREENSHOT_FIELDS


class TestFailureAndRetry:
    """Scenario B and the retry-with-backoff transitions."""

    def test_first_failure_schedules_retry(self, db_storage, make_job):
        record = _create(db_storage)

        result = make_job(FailingCapturer("Timeout 30000ms exceeded")).run_attempt(record.id)

        assert result.outcome is AttemptOutcome.RETRY_SCHEDULED
        assert result.retry_delay == 30.0
        doc = db_storage.document(record.id)
        assert doc["screenshotStatus"] == "pending"
        assert doc["screenshotRetries"] == 1
        assert doc["screenshotError"] == "Timeout 30000ms exceeded"
        assert doc["screenshotUrl"] is None
        assert doc["screenshotPath"] is None

    def test_always_timing_out_ends_failed(self, db_storage, make_job):
        record = _create(db_storage)
        capturer = FailingCapturer()

        results = _run_until_settled(make_job(capturer), record.id)

        assert [r.outcome for r in results] == [
            AttemptOutcome.RETRY_SCHEDULED,
            AttemptOutcome.RETRY_SCHEDULED,
            AttemptOutcome.FAILED,
        ]
        assert [r.retry_delay for r in results[:2]] == [30.0, 60.0]
        doc = db_storage.document(record.id)
        assert doc["screenshotStatus"] == "failed"
        assert doc["screenshotRetries"] == 3
        assert doc["screenshotError"]
        assert len(capturer.calls) == 3

    def test_no_automatic_attempt_after_failed(self, db_storage, make_job):
        record = _create(db_storage)
        capturer = FailingCapturer()
        job = make_job(capturer)
        _run_until_settled(job, record.id)

        result = job.run_attempt(record.id)

        assert result.outcome is AttemptOutcome.SKIPPED
        assert len(capturer.calls) == 3

    def test_recovers_after_transient_failure(self, db_storage, make_job):
        record = _create(db_storage)

        results = _run_until_settled(make_job(FlakyCapturer(failures=2)), record.id)

        assert results[-1].outcome is AttemptOutcome.COMPLETED
        doc = db_storage.document(record.id)
        assert doc["screenshotStatus"] == "completed"
        assert doc["screenshotRetries"] == 2
        assert doc["screenshotError"] is None

    def test_retries_monotonic_and_bounded(self, db_storage, make_job, retry_policy):
        record = _create(db_storage)

        _run_until_settled(make_job(FailingCapturer()), record.id)

        seen = [
            fields["screenshotRetries"]
            for bookmark_id, fields in db_storage.updates
            if bookmark_id == record.id and "screenshotRetries" in fields
        ]
        assert seen == sorted(seen)
        assert max(seen) <= retry_policy.max_retries

    def test_upload_failure_counts_as_attempt(self, db_storage, make_job):
        record = _create(db_storage)
        job = make_job(FakeCapturer())
        job.file_storage = InMemoryFileStorage(fail_uploads=True)

        result = job.run_attempt(record.id)

        assert result.outcome is AttemptOutcome.RETRY_SCHEDULED
        assert "Configured to fail" in db_storage.document(record.id)["screenshotError"]

    def test_unreadable_image_counts_as_attempt(self, db_storage, make_job):
        record = _create(db_storage)

        result = make_job(FakeCapturer(image=b"not an image")).run_attempt(record.id)

        assert result.outcome is AttemptOutcome.RETRY_SCHEDULED
        assert "thumbnail" in db_storage.document(record.id)["screenshotError"]

    def test_zero_retry_budget_fails_immediately(
        self, db_storage, file_storage, capture_settings
    ):
        record = _create(db_storage)
        job = ScreenshotJob(
            db_storage=db_storage,
            file_storage=file_storage,
            capturer=FailingCapturer(),
            retry_policy=RetryPolicy(max_retries=0),
            capture_settings=capture_settings,
        )

        result = job.run_attempt(record.id)

        assert result.outcome is AttemptOutcome.FAILED
        assert db_storage.document(record.id)["screenshotRetries"] == 0

    def test_long_errors_truncated(self, db_storage, make_job):
        record = _create(db_storage)

        make_job(FailingCapturer("x" * 5000)).run_attempt(record.id)

        assert len(db_storage.document(record.id)["screenshotError"]) == 1000


class TestWriteBack:
    """Upload-then-write ordering and write-back failures."""

    def test_write_back_failure_is_retried(self, db_storage, file_storage, make_job):
        record = _create(db_storage)
        db_storage.fail_next_updates(RuntimeError("firestore unavailable"), times=1)

        result = make_job(FakeCapturer()).run_attempt(record.id)

        assert result.outcome is AttemptOutcome.RETRY_SCHEDULED
        doc = db_storage.document(record.id)
        assert doc["screenshotStatus"] == "pending"
        assert doc["screenshotRetries"] == 1
        assert doc["screenshotError"] == "firestore unavailable"
        # The uploaded object is left for the next attempt to overwrite
        assert file_storage.exists(screenshot_path("user-1", record.id))

    def test_store_outage_propagates(self, db_storage, make_job):
        record = _create(db_storage)
        db_storage.fail_next_updates(RuntimeError("firestore unavailable"), times=2)

        with pytest.raises(RuntimeError):
            make_job(FakeCapturer()).run_attempt(record.id)

        assert db_storage.document(record.id)["screenshotStatus"] == "pending"

    def test_completed_never_written_before_upload(self, db_storage, make_job):
        record = _create(db_storage)
        job = make_job(FakeCapturer())
        job.file_storage = InMemoryFileStorage(fail_uploads=True)

        _run_until_settled(job, record.id)

        statuses = [fields.get("screenshotStatus") for _, fields in db_storage.updates]
        assert "completed" not in statuses


class TestCancellation:
    def test_missing_record_is_skipped(self, make_job):
        capturer = FakeCapturer()

        result = make_job(capturer).run_attempt("does-not-exist")

        assert result.outcome is AttemptOutcome.SKIPPED
        assert capturer.calls == []

    def test_record_deleted_mid_capture(self, db_storage, file_storage, make_job):
        record = _create(db_storage)
        db_storage.delete_before_next_update = True

        result = make_job(FakeCapturer()).run_attempt(record.id)

        assert result.outcome is AttemptOutcome.SKIPPED
        assert record.id not in db_storage.documents
        path = screenshot_path("user-1", record.id)
        assert not file_storage.exists(path)
        assert path in file_storage.deleted

    def test_completed_record_is_skipped(self, db_storage, make_job):
        record = _create(
            db_storage,
            status=ScreenshotStatus.COMPLETED,
            url="https://storage.test/a.jpg",
            path="screenshots/user-1/a.jpg",
        )
        capturer = FakeCapturer()

        result = make_job(capturer).run_attempt(record.id)

        assert result.outcome is AttemptOutcome.SKIPPED
        assert capturer.calls == []
