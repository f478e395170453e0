"""Bookmark service errors."""


class BookmarkError(Exception):
    """Base class for bookmark service errors."""


class BookmarkNotFoundError(BookmarkError):
    def __init__(self, bookmark_id: str):
        super().__init__(f"Bookmark not found: {bookmark_id}")
        self.bookmark_id = bookmark_id


class PermissionDeniedError(BookmarkError):
    def __init__(self, bookmark_id: str):
        super().__init__(f"Bookmark belongs to another user: {bookmark_id}")
        self.bookmark_id = bookmark_id


class InvalidBookmarkError(BookmarkError):
    """Bookmark data failed validation."""


class ScreenshotRetryNotAllowedError(BookmarkError):
    """Manual retry requested while a capture is still pending."""


class PageFetchError(BookmarkError):
    """A page could not be fetched for metadata."""


class PageFetchTimeoutError(PageFetchError):
    """The page did not respond within the metadata timeout."""
