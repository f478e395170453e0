"""
Storage providers for markshot.

Bookmark documents and tag aggregates live in Firestore; screenshot
thumbnails live in Cloud Storage (or on local disk in development).
"""

from .database_storage import (
    BookmarkFilters,
    BookmarkPage,
    BookmarkRecord,
    DatabaseStorageProvider,
    ScreenshotState,
    TagAggregate,
)
from .file_storage import FileStorageProvider, UploadResult

__all__ = [
    "BookmarkFilters",
    "BookmarkPage",
    "BookmarkRecord",
    "DatabaseStorageProvider",
    "FileStorageProvider",
    "ScreenshotState",
    "TagAggregate",
    "UploadResult",
]
