"""
Tests for BookmarkService.

Uses the in-memory storage fakes and a recording capture scheduler.
"""

from datetime import datetime, timedelta, timezone

import pytest

from markshot.screenshots.job import screenshot_path
from markshot.services.bookmark_service import BookmarkService, matches_search
from markshot.services.exceptions import (
    BookmarkNotFoundError,
    InvalidBookmarkError,
    PermissionDeniedError,
    ScreenshotRetryNotAllowedError,
)
from markshot.status import AttemptOutcome
from markshot.storage.database_storage import SCREENSHOT_FIELDS, BookmarkFilters, BookmarkRecord
from tests.fakes import FailingCapturer, FakeCapturer, RecordingScheduler


class TestCreateBookmark:
    def test_creates_pending_record_and_enqueues(self, bookmark_service, db_storage, scheduler):
        record = bookmark_service.create_bookmark(
            "user-1", " https://example.com ", "Example", tags=["python"]
        )

        doc = db_storage.document(record.id)
        assert doc["url"] == "https://example.com"
        assert doc["screenshotStatus"] == "pending"
        assert doc["screenshotRetries"] == 0
        assert doc["screenshotUrl"] is None
        assert scheduler.calls == [(record.id, "https://example.com")]

    def test_increments_tag_counts(self, bookmark_service, db_storage):
        bookmark_service.create_bookmark("user-1", "https://a.com", "A", tags=["python", "web"])
        bookmark_service.create_bookmark("user-2", "https://b.com", "B", tags=["Python"])

        assert db_storage.tag_count("python") == 2
        assert db_storage.tag_count("web") == 1

    def test_duplicate_tags_counted_once(self, bookmark_service, db_storage):
        record = bookmark_service.create_bookmark(
            "user-1", "https://a.com", "A", tags=["python", "Python"]
        )

        assert record.tags == ["python"]
        assert db_storage.tag_count("python") == 1

    def test_invalid_url_rejected_without_side_effects(self, bookmark_service, db_storage, scheduler):
        with pytest.raises(InvalidBookmarkError):
            bookmark_service.create_bookmark("user-1", "not a url", "Example")

        assert db_storage.documents == {}
        assert scheduler.calls == []

    def test_enqueue_failure_keeps_bookmark(self, db_storage, file_storage):
        service = BookmarkService(
            db_storage, file_storage, schedule_capture=RecordingScheduler(RuntimeError("broker down"))
        )

        record = service.create_bookmark("user-1", "https://example.com", "Example")

        assert db_storage.document(record.id)["screenshotStatus"] == "pending"

    def test_keeps_supplied_created_at(self, bookmark_service):
        created = datetime(2020, 5, 1, tzinfo=timezone.utc)

        record = bookmark_service.create_bookmark(
            "user-1", "https://example.com", "Example", created_at=created
        )

        assert record.created_at == created


class TestOwnership:
    def test_get_missing(self, bookmark_service):
        with pytest.raises(BookmarkNotFoundError):
            bookmark_service.get_bookmark("user-1", "bm-404")

    def test_other_users_bookmark(self, bookmark_service):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")

        with pytest.raises(PermissionDeniedError):
            bookmark_service.get_bookmark("user-2", record.id)
        with pytest.raises(PermissionDeniedError):
            bookmark_service.delete_bookmark("user-2", record.id)


class TestUpdateBookmark:
    def test_updates_only_given_fields(self, bookmark_service, db_storage):
        record = bookmark_service.create_bookmark(
            "user-1", "https://example.com", "Old", description="keep", folder_id="f1"
        )

        updated = bookmark_service.update_bookmark("user-1", record.id, {"title": "New"})

        doc = db_storage.document(record.id)
        assert updated.title == doc["title"] == "New"
        assert doc["description"] == "keep"
        assert doc["folderId"] == "f1"

    def test_tag_diff_adjusts_counts(self, bookmark_service, db_storage):
        record = bookmark_service.create_bookmark(
            "user-1", "https://example.com", "Example", tags=["python", "web"]
        )

        bookmark_service.update_bookmark("user-1", record.id, {"tags": ["python", "ml"]})

        assert db_storage.tag_count("python") == 1
        assert db_storage.tag_count("web") == 0
        assert "web" not in db_storage.tags
        assert db_storage.tag_count("ml") == 1

    def test_clear_folder(self, bookmark_service, db_storage):
        record = bookmark_service.create_bookmark(
            "user-1", "https://example.com", "Example", folder_id="f1"
        )

        bookmark_service.update_bookmark("user-1", record.id, {"folder_id": None})

        assert db_storage.document(record.id)["folderId"] is None

    def test_url_not_updatable(self, bookmark_service):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")

        with pytest.raises(InvalidBookmarkError, match="url"):
            bookmark_service.update_bookmark("user-1", record.id, {"url": "https://other.com"})

    def test_does_not_touch_screenshot(self, bookmark_service, db_storage):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")

        bookmark_service.update_bookmark("user-1", record.id, {"title": "New"})

        _, fields = db_storage.updates[-1]
        assert not (set(fields) & SCREENSHOT_FIELDS) - {"updatedAt"}


class TestDeleteBookmark:
    """Scenario D: deleting a bookmark with a completed screenshot."""

    def test_deletes_screenshot_then_record(self, bookmark_service, db_storage, file_storage, make_job):
        record = bookmark_service.create_bookmark(
            "user-1", "https://example.com", "Example", tags=["python"]
        )
        make_job(FakeCapturer()).run_attempt(record.id)
        path = db_storage.document(record.id)["screenshotPath"]
        assert file_storage.exists(path)

        bookmark_service.delete_bookmark("user-1", record.id)

        assert not file_storage.exists(path)
        assert record.id not in db_storage.documents
        assert db_storage.tag_count("python") == 0
        # A second delete of the same object is harmless
        assert file_storage.delete_file(path) is False

    def test_delete_without_screenshot(self, bookmark_service, db_storage):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")

        bookmark_service.delete_bookmark("user-1", record.id)

        assert record.id not in db_storage.documents

    def test_removes_object_uploaded_after_read(self, bookmark_service, db_storage, file_storage):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")
        path = screenshot_path("user-1", record.id)
        file_storage.upload_bytes(b"jpeg", path)

        bookmark_service.delete_bookmark("user-1", record.id)

        assert not file_storage.exists(path)

    def test_storage_error_keeps_record(self, bookmark_service, db_storage, file_storage):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")

        def broken_delete(path):
            raise RuntimeError("storage unavailable")

        file_storage.delete_file = broken_delete

        with pytest.raises(RuntimeError):
            bookmark_service.delete_bookmark("user-1", record.id)

        assert record.id in db_storage.documents


class TestRetryScreenshot:
    """Scenario C: manual retry of a failed screenshot."""

    def test_failed_to_completed(self, bookmark_service, db_storage, make_job, scheduler):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")
        failing = make_job(FailingCapturer())
        while failing.run_attempt(record.id).should_reschedule:
            pass
        assert db_storage.document(record.id)["screenshotStatus"] == "failed"

        bookmark_service.retry_screenshot("user-1", record.id)

        doc = db_storage.document(record.id)
        assert doc["screenshotStatus"] == "pending"
        assert doc["screenshotRetries"] == 0
        assert doc["screenshotError"] is None
        assert scheduler.calls[-1] == (record.id, "https://example.com")

        result = make_job(FakeCapturer()).run_attempt(record.id)

        assert result.outcome is AttemptOutcome.COMPLETED
        doc = db_storage.document(record.id)
        assert doc["screenshotStatus"] == "completed"
        assert doc["screenshotRetries"] == 0

    def test_completed_can_be_recaptured(self, bookmark_service, db_storage, make_job):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")
        make_job(FakeCapturer()).run_attempt(record.id)

        updated = bookmark_service.retry_screenshot("user-1", record.id)

        assert updated.screenshot.url is None
        assert db_storage.document(record.id)["screenshotUrl"] is None
        assert db_storage.document(record.id)["screenshotPath"] is None

    def test_pending_rejected(self, bookmark_service):
        record = bookmark_service.create_bookmark("user-1", "https://example.com", "Example")

        with pytest.raises(ScreenshotRetryNotAllowedError):
            bookmark_service.retry_screenshot("user-1", record.id)


class TestListing:
    def _seed(self, service, count, user_id="user-1", **kwargs):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        return [
            service.create_bookmark(
                user_id,
                f"https://example.com/{i}",
                f"Bookmark {i}",
                created_at=base + timedelta(minutes=i),
                **kwargs,
            )
            for i in range(count)
        ]

    def test_pages_newest_first(self, bookmark_service):
        records = self._seed(bookmark_service, 5)

        first = bookmark_service.list_bookmarks("user-1", BookmarkFilters(limit=2))
        second = bookmark_service.list_bookmarks(
            "user-1", BookmarkFilters(limit=2, cursor=first.next_cursor)
        )

        assert [r.id for r in first.items] == [records[4].id, records[3].id]
        assert first.has_more is True
        assert [r.id for r in second.items] == [records[2].id, records[1].id]

    def test_only_own_bookmarks(self, bookmark_service):
        self._seed(bookmark_service, 2)
        self._seed(bookmark_service, 3, user_id="user-2")

        page = bookmark_service.list_bookmarks("user-1")

        assert len(page.items) == 2
        assert bookmark_service.count_bookmarks("user-2") == 3

    def test_limit_clamped(self, bookmark_service):
        filters = BookmarkFilters(limit=1000)

        bookmark_service.list_bookmarks("user-1", filters)

        assert filters.limit == 100

    def test_search_keeps_cursor(self, bookmark_service):
        self._seed(bookmark_service, 4)

        page = bookmark_service.list_bookmarks(
            "user-1", BookmarkFilters(limit=2), search="bookmark 3"
        )

        assert [r.title for r in page.items] == ["Bookmark 3"]
        assert page.next_cursor is not None

    def test_list_tags(self, bookmark_service):
        self._seed(bookmark_service, 3, tags=["python"])
        bookmark_service.create_bookmark("user-1", "https://x.com", "X", tags=["web"])

        tags = bookmark_service.list_tags()

        assert [(t.tag_id, t.count) for t in tags] == [("python", 3), ("web", 1)]


def test_matches_search():
    record = BookmarkRecord(
        user_id="u1",
        url="https://docs.python.org",
        title="Docs",
        description="Reference",
        tags=["Language"],
    )

    assert matches_search(record, "PYTHON")
    assert matches_search(record, "language")
    assert matches_search(record, "  ")
    assert not matches_search(record, "rust")
