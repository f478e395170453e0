from .bookmark_service import BookmarkService
from .exceptions import (
    BookmarkError,
    BookmarkNotFoundError,
    InvalidBookmarkError,
    PermissionDeniedError,
    ScreenshotRetryNotAllowedError,
)

__all__ = [
    "BookmarkError",
    "BookmarkNotFoundError",
    "BookmarkService",
    "InvalidBookmarkError",
    "PermissionDeniedError",
    "ScreenshotRetryNotAllowedError",
]
