"""
Database Storage Abstraction Layer

Provides a unified interface for storing and retrieving bookmark records and
tag aggregates. Implementations: FirestoreStorage (production) and the
in-memory fake used by the test suite.

Documents keep the camelCase field names the web client reads
(``userId``, ``screenshotStatus`` ...); ``BookmarkRecord`` is the snake_case
view used in Python code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..status import ScreenshotStatus

# Firestore batches accept at most 500 writes
MAX_BATCH_WRITES = 500

# The only fields the screenshot job ever writes
SCREENSHOT_FIELDS = frozenset(
    {
        "screenshotStatus",
        "screenshotUrl",
        "screenshotPath",
        "screenshotRetries",
        "screenshotError",
        "updatedAt",
    }
)


@dataclass
class ScreenshotState:
    """Screenshot sub-state of a bookmark."""

    status: ScreenshotStatus = ScreenshotStatus.PENDING
    url: Optional[str] = None
    path: Optional[str] = None
    retries: int = 0
    error: Optional[str] = None

    def to_fields(self) -> Dict[str, Any]:
        """Render as a partial document update."""
        return {
            "screenshotStatus": self.status.value,
            "screenshotUrl": self.url,
            "screenshotPath": self.path,
            "screenshotRetries": self.retries,
            "screenshotError": self.error,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "ScreenshotState":
        """Read the screenshot fields of a stored bookmark.

        Documents written before the status field existed count as completed
        when they carry both pointers. Any record read as pending has its
        pointers dropped.
        """
        url = data.get("screenshotUrl")
        path = data.get("screenshotPath")
        raw_status = data.get("screenshotStatus")
        if raw_status is None and url and path:
            status = ScreenshotStatus.COMPLETED
        else:
            status = ScreenshotStatus.parse(raw_status)
        if status is ScreenshotStatus.PENDING:
            url = path = None

        return cls(
            status=status,
            url=url,
            path=path,
            retries=int(data.get("screenshotRetries") or 0),
            error=data.get("screenshotError"),
        )

    def is_consistent(self) -> bool:
        """Check the completed/pending pointer invariant."""
        if self.status is ScreenshotStatus.COMPLETED:
            return self.url is not None and self.path is not None
        if self.status is ScreenshotStatus.PENDING:
            return self.url is None and self.path is None
        return True


@dataclass
class BookmarkRecord:
    """One saved URL and its metadata."""

    user_id: str
    url: str
    title: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    folder_id: Optional[str] = None
    screenshot: ScreenshotState = field(default_factory=ScreenshotState)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """Render as a Firestore document body (the id is the document key)."""
        doc = {
            "userId": self.user_id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "folderId": self.folder_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        doc.update(self.screenshot.to_fields())
        return doc

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "BookmarkRecord":
        """Build a record from a stored document, tolerating older documents."""
        return cls(
            id=doc_id,
            user_id=data.get("userId", ""),
            url=data.get("url", ""),
            title=data.get("title", ""),
            description=data.get("description") or "",
            tags=list(data.get("tags") or []),
            folder_id=data.get("folderId") or None,
            screenshot=ScreenshotState.from_document(data),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class TagAggregate:
    """Usage count for one normalized tag."""

    tag_id: str
    name: str
    count: int
    updated_at: Optional[datetime] = None


@dataclass
class BookmarkFilters:
    """Listing parameters for one page of a user's bookmarks."""

    limit: int = 20
    cursor: Optional[str] = None  # id of the last bookmark on the previous page
    tags: Optional[List[str]] = None
    folder_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


@dataclass
class BookmarkPage:
    """A page of bookmarks, newest first."""

    items: List[BookmarkRecord]
    next_cursor: Optional[str]
    has_more: bool


class DatabaseStorageProvider(ABC):
    """
    Abstract base class for database storage providers.

    All implementations must provide:
    - Bookmark record storage, retrieval and partial updates
    - Cursor-based listing
    - Incremental tag aggregates

    ``update_fields`` reports a missing record by returning False; any other
    backend failure propagates to the caller.
    """

    # ==================== Bookmark Operations ====================

    @abstractmethod
    def create_bookmark(self, record: BookmarkRecord) -> BookmarkRecord:
        """Store a new bookmark and return it with its assigned id."""
        pass

    @abstractmethod
    def get_bookmark(self, bookmark_id: str) -> Optional[BookmarkRecord]:
        """Get a bookmark by id."""
        pass

    @abstractmethod
    def update_fields(self, bookmark_id: str, fields: Dict[str, Any]) -> bool:
        """Atomically update document fields. False if the bookmark does not exist."""
        pass

    @abstractmethod
    def delete_bookmark(self, bookmark_id: str) -> bool:
        """Delete a bookmark. False if it did not exist."""
        pass

    @abstractmethod
    def list_bookmarks(self, user_id: str, filters: BookmarkFilters) -> BookmarkPage:
        """List one page of a user's bookmarks, newest first."""
        pass

    @abstractmethod
    def count_bookmarks(self, user_id: str) -> int:
        """Count a user's bookmarks."""
        pass

    @abstractmethod
    def find_pending_screenshots(
        self, limit: int, stalled_before: Optional[datetime] = None
    ) -> List[BookmarkRecord]:
        """Get up to ``limit`` bookmarks whose screenshot status is pending.

        With ``stalled_before`` only records last updated before that instant
        are returned, oldest first.
        """
        pass

    @abstractmethod
    def iter_bookmarks(self) -> Iterator[BookmarkRecord]:
        """Iterate over every stored bookmark (maintenance scripts)."""
        pass

    @abstractmethod
    def batch_update(self, updates: Dict[str, Dict[str, Any]]) -> int:
        """Apply many partial updates, committing in chunks. Returns the number applied."""
        pass

    # ==================== Tag Operations ====================

    @abstractmethod
    def apply_tag_changes(
        self,
        added: Iterable[str] = (),
        removed: Iterable[str] = (),
    ) -> None:
        """Increment aggregates for added tags and decrement for removed ones.

        Aggregates whose count drops to zero are deleted.
        """
        pass

    @abstractmethod
    def list_tags(self, limit: int = 100) -> List[TagAggregate]:
        """Get tag aggregates with a positive count, most used first."""
        pass

    # ==================== Provider Info ====================

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name (e.g., 'firestore', 'memory')."""
        pass
