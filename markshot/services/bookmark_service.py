"""
Bookmark service.

Owns the user-facing operations on bookmarks: ownership checks, validation,
tag aggregate maintenance, deleting stored screenshots alongside their
bookmarks, and handing new bookmarks to the screenshot job.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..core.utils import utc_now
from ..screenshots.job import reset_fields, screenshot_path
from ..status import ScreenshotStatus
from ..storage.database_storage import (
    BookmarkFilters,
    BookmarkPage,
    BookmarkRecord,
    DatabaseStorageProvider,
    ScreenshotState,
    TagAggregate,
)
from ..storage.file_storage import FileStorageProvider
from .exceptions import (
    BookmarkNotFoundError,
    InvalidBookmarkError,
    PermissionDeniedError,
    ScreenshotRetryNotAllowedError,
)
from .metadata import PageMetadata, PageMetadataFetcher
from .validation import (
    validate_description,
    validate_folder_id,
    validate_tags,
    validate_title,
    validate_url,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_TAG_LIMIT = 100

# Fields a user may change on an existing bookmark
UPDATABLE_FIELDS = ("title", "description", "tags", "folder_id")

CaptureScheduler = Callable[[str, str], None]


def matches_search(record: BookmarkRecord, search: str) -> bool:
    """Case-insensitive substring match on title, description, URL and tags."""
    needle = search.strip().lower()
    if not needle:
        return True
    haystacks = [record.title, record.description, record.url, *record.tags]
    return any(needle in (value or "").lower() for value in haystacks)


class BookmarkService:
    def __init__(
        self,
        db_storage: DatabaseStorageProvider,
        file_storage: FileStorageProvider,
        schedule_capture: Optional[CaptureScheduler] = None,
        metadata_fetcher: Optional[PageMetadataFetcher] = None,
    ):
        self.db_storage = db_storage
        self.file_storage = file_storage
        self.schedule_capture = schedule_capture
        self.metadata_fetcher = metadata_fetcher or PageMetadataFetcher()

    # ==================== Helpers ====================

    def _get_owned(self, user_id: str, bookmark_id: str) -> BookmarkRecord:
        record = self.db_storage.get_bookmark(bookmark_id)
        if record is None:
            raise BookmarkNotFoundError(bookmark_id)
        if record.user_id != user_id:
            raise PermissionDeniedError(bookmark_id)
        return record

    def _enqueue_capture(self, bookmark_id: str, url: str) -> None:
        """Hand a bookmark to the screenshot job without failing the caller.

        A failed enqueue leaves the bookmark pending; the periodic sweep
        picks it up.
        """
        if self.schedule_capture is None:
            return
        try:
            self.schedule_capture(bookmark_id, url)
        except Exception:
            logger.exception(
                "Failed to enqueue screenshot capture",
                extra={"bookmark_id": bookmark_id},
            )

    # ==================== Bookmark Operations ====================

    def create_bookmark(
        self,
        user_id: str,
        url: str,
        title: str,
        description: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        folder_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> BookmarkRecord:
        """Create a bookmark with a pending screenshot and enqueue its capture."""
        now = utc_now()
        record = BookmarkRecord(
            user_id=user_id,
            url=validate_url(url),
            title=validate_title(title, required=True),
            description=validate_description(description),
            tags=validate_tags(tags),
            folder_id=validate_folder_id(folder_id),
            screenshot=ScreenshotState(),
            created_at=created_at or now,
            updated_at=now,
        )

        record = self.db_storage.create_bookmark(record)
        if record.tags:
            self.db_storage.apply_tag_changes(added=record.tags)

        logger.info(
            "Bookmark created",
            extra={"bookmark_id": record.id, "user_id": user_id, "tags": len(record.tags)},
        )
        self._enqueue_capture(record.id, record.url)
        return record

    def get_bookmark(self, user_id: str, bookmark_id: str) -> BookmarkRecord:
        return self._get_owned(user_id, bookmark_id)

    def update_bookmark(
        self,
        user_id: str,
        bookmark_id: str,
        changes: Dict[str, Any],
    ) -> BookmarkRecord:
        """Apply user edits. Only keys present in ``changes`` are touched.

        ``folder_id=None`` moves the bookmark out of its folder.
        """
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise InvalidBookmarkError(f"Fields cannot be updated: {', '.join(unknown)}")

        record = self._get_owned(user_id, bookmark_id)
        fields: Dict[str, Any] = {}
        added: List[str] = []
        removed: List[str] = []

        if "title" in changes:
            record.title = validate_title(changes["title"], required=True)
            fields["title"] = record.title

        if "description" in changes:
            record.description = validate_description(changes["description"])
            fields["description"] = record.description

        if "tags" in changes:
            new_tags = validate_tags(changes["tags"])
            added = [tag for tag in new_tags if tag not in record.tags]
            removed = [tag for tag in record.tags if tag not in new_tags]
            record.tags = new_tags
            fields["tags"] = new_tags

        if "folder_id" in changes:
            record.folder_id = validate_folder_id(changes["folder_id"])
            fields["folderId"] = record.folder_id

        if not fields:
            return record

        record.updated_at = utc_now()
        fields["updatedAt"] = record.updated_at
        if not self.db_storage.update_fields(bookmark_id, fields):
            raise BookmarkNotFoundError(bookmark_id)

        if added or removed:
            self.db_storage.apply_tag_changes(added=added, removed=removed)

        logger.info(
            "Bookmark updated",
            extra={"bookmark_id": bookmark_id, "fields": sorted(fields)},
        )
        return record

    def delete_bookmark(self, user_id: str, bookmark_id: str) -> None:
        """Delete a bookmark and its stored screenshot.

        The image goes first so no bookmark-less objects are left behind;
        a missing image is fine. The owner-scoped default path is always
        tried too, in case a capture finished after the record was read.
        """
        record = self._get_owned(user_id, bookmark_id)

        paths = {screenshot_path(record.user_id, bookmark_id)}
        if record.screenshot.path:
            paths.add(record.screenshot.path)
        for path in sorted(paths):
            if self.file_storage.delete_file(path):
                logger.info(
                    "Deleted screenshot",
                    extra={"bookmark_id": bookmark_id, "path": path},
                )

        if record.tags:
            self.db_storage.apply_tag_changes(removed=record.tags)

        self.db_storage.delete_bookmark(bookmark_id)
        logger.info("Bookmark deleted", extra={"bookmark_id": bookmark_id, "user_id": user_id})

    def list_bookmarks(
        self,
        user_id: str,
        filters: Optional[BookmarkFilters] = None,
        search: Optional[str] = None,
    ) -> BookmarkPage:
        """Get one page of a user's bookmarks, newest first.

        ``search`` filters the fetched page in memory. The cursor still
        points at the last fetched document, so later pages are not skipped.
        """
        filters = filters or BookmarkFilters()
        filters.limit = max(1, min(filters.limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))

        page = self.db_storage.list_bookmarks(user_id, filters)
        if search and search.strip():
            page = BookmarkPage(
                items=[record for record in page.items if matches_search(record, search)],
                next_cursor=page.next_cursor,
                has_more=page.has_more,
            )
        return page

    def count_bookmarks(self, user_id: str) -> int:
        return self.db_storage.count_bookmarks(user_id)

    def list_tags(self, limit: int = DEFAULT_TAG_LIMIT) -> List[TagAggregate]:
        return self.db_storage.list_tags(limit=max(1, min(limit, DEFAULT_TAG_LIMIT)))

    def get_page_metadata(self, url: str) -> PageMetadata:
        """Fetch title and description for a URL the user is about to save."""
        return self.metadata_fetcher.fetch(validate_url(url))

    # ==================== Screenshots ====================

    def retry_screenshot(self, user_id: str, bookmark_id: str) -> BookmarkRecord:
        """Reset a failed or completed screenshot and enqueue a fresh capture."""
        record = self._get_owned(user_id, bookmark_id)
        if record.screenshot.status is ScreenshotStatus.PENDING:
            raise ScreenshotRetryNotAllowedError(
                f"Screenshot capture already pending for bookmark {bookmark_id}"
            )

        previous_status = record.screenshot.status
        fields = reset_fields()
        if not self.db_storage.update_fields(bookmark_id, fields):
            raise BookmarkNotFoundError(bookmark_id)

        record.screenshot = ScreenshotState()
        record.updated_at = fields["updatedAt"]
        logger.info(
            "Manual screenshot retry",
            extra={"bookmark_id": bookmark_id, "previous_status": previous_status.value},
        )
        self._enqueue_capture(bookmark_id, record.url)
        return record
