"""
Firestore Database Storage Implementation

Stores bookmark records and tag aggregates in Google Cloud Firestore, in the
same documents the web client reads in real time.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from google.api_core.exceptions import NotFound
from google.cloud import firestore

from ..core.utils import normalize_tag_id, utc_now
from .database_storage import (
    MAX_BATCH_WRITES,
    BookmarkFilters,
    BookmarkPage,
    BookmarkRecord,
    DatabaseStorageProvider,
    TagAggregate,
)

logger = logging.getLogger(__name__)

# Firestore limits array-contains-any to 10 values
MAX_TAG_FILTER_VALUES = 10


class FirestoreStorage(DatabaseStorageProvider):
    """
    Firestore database implementation.

    Structure:
    - bookmarks/{auto_id}
        - userId, url, title, description, tags (array), folderId
        - screenshotStatus, screenshotUrl, screenshotPath,
          screenshotRetries, screenshotError
        - createdAt, updatedAt
    - tags/{normalized_tag}
        - name, count, updatedAt
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        bookmarks_collection: str = "bookmarks",
        tags_collection: str = "tags",
    ):
        """
        Initialize Firestore storage.

        Args:
            project_id: GCP project ID (None uses the ambient credentials' project)
            bookmarks_collection: Collection holding bookmark documents
            tags_collection: Collection holding tag aggregates
        """
        self.client = firestore.Client(project=project_id)
        self.bookmarks_ref = self.client.collection(bookmarks_collection)
        self.tags_ref = self.client.collection(tags_collection)

    # ==================== Bookmark Operations ====================

    def create_bookmark(self, record: BookmarkRecord) -> BookmarkRecord:
        """Create a bookmark document with an auto-generated id."""
        doc_ref = self.bookmarks_ref.document()
        now = utc_now()
        record.created_at = record.created_at or now
        record.updated_at = record.updated_at or now
        doc_ref.set(record.to_document())
        record.id = doc_ref.id
        return record

    def get_bookmark(self, bookmark_id: str) -> Optional[BookmarkRecord]:
        """Get bookmark by id."""
        doc = self.bookmarks_ref.document(bookmark_id).get()
        if not doc.exists:
            return None
        return BookmarkRecord.from_document(doc.id, doc.to_dict() or {})

    def update_fields(self, bookmark_id: str, fields: Dict[str, Any]) -> bool:
        """Update fields in place; ``update`` fails on missing documents."""
        doc_ref = self.bookmarks_ref.document(bookmark_id)
        try:
            doc_ref.update(dict(fields))
        except NotFound:
            logger.info("Bookmark vanished before update", extra={"bookmark_id": bookmark_id})
            return False
        return True

    def delete_bookmark(self, bookmark_id: str) -> bool:
        """Delete bookmark document."""
        doc_ref = self.bookmarks_ref.document(bookmark_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def list_bookmarks(self, user_id: str, filters: BookmarkFilters) -> BookmarkPage:
        """List bookmarks with cursor pagination.

        Fetches one extra document to learn whether another page exists.
        """
        query = self.bookmarks_ref.where("userId", "==", user_id).order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        )

        if filters.folder_id is not None:
            query = query.where("folderId", "==", filters.folder_id or None)

        if filters.tags:
            query = query.where(
                "tags", "array_contains_any", list(filters.tags)[:MAX_TAG_FILTER_VALUES]
            )

        if filters.date_from:
            query = query.where("createdAt", ">=", filters.date_from)

        if filters.date_to:
            query = query.where("createdAt", "<=", filters.date_to)

        if filters.cursor:
            cursor_doc = self.bookmarks_ref.document(filters.cursor).get()
            if cursor_doc.exists:
                query = query.start_after(cursor_doc)

        docs = list(query.limit(filters.limit + 1).stream())
        has_more = len(docs) > filters.limit
        docs = docs[: filters.limit]

        items = [BookmarkRecord.from_document(doc.id, doc.to_dict() or {}) for doc in docs]
        next_cursor = items[-1].id if has_more and items else None
        return BookmarkPage(items=items, next_cursor=next_cursor, has_more=has_more)

    def count_bookmarks(self, user_id: str) -> int:
        """Count bookmarks with a server-side aggregation query."""
        results = self.bookmarks_ref.where("userId", "==", user_id).count().get()
        return int(results[0][0].value)

    def find_pending_screenshots(
        self, limit: int, stalled_before: Optional[datetime] = None
    ) -> List[BookmarkRecord]:
        """Get bookmarks whose screenshot never left pending.

        Filtering on ``updatedAt`` needs the composite index
        (screenshotStatus ASC, updatedAt ASC).
        """
        query = self.bookmarks_ref.where("screenshotStatus", "==", "pending")
        if stalled_before is not None:
            query = query.where("updatedAt", "<", stalled_before).order_by("updatedAt")
        query = query.limit(limit)
        return [
            BookmarkRecord.from_document(doc.id, doc.to_dict() or {})
            for doc in query.stream()
        ]

    def iter_bookmarks(self) -> Iterator[BookmarkRecord]:
        """Stream every bookmark document."""
        for doc in self.bookmarks_ref.stream():
            yield BookmarkRecord.from_document(doc.id, doc.to_dict() or {})

    def batch_update(self, updates: Dict[str, Dict[str, Any]]) -> int:
        """Apply updates in batches of at most 500 writes."""
        batch = self.client.batch()
        pending = 0
        applied = 0

        for bookmark_id, fields in updates.items():
            batch.update(self.bookmarks_ref.document(bookmark_id), fields)
            pending += 1

            if pending >= MAX_BATCH_WRITES:
                batch.commit()
                applied += pending
                logger.info("Committed update batch", extra={"writes": pending})
                batch = self.client.batch()
                pending = 0

        if pending:
            batch.commit()
            applied += pending
            logger.info("Committed final update batch", extra={"writes": pending})

        return applied

    # ==================== Tag Operations ====================

    def apply_tag_changes(
        self,
        added: Iterable[str] = (),
        removed: Iterable[str] = (),
    ) -> None:
        """Adjust tag aggregates inside one transaction.

        Reads every affected aggregate first (Firestore requires reads before
        writes in a transaction), then sets new counts or deletes the
        aggregate once nothing uses the tag.
        """
        deltas: Counter[str] = Counter()
        names: Dict[str, str] = {}

        for tag in added:
            tag_id = normalize_tag_id(tag or "")
            if not tag_id:
                continue
            deltas[tag_id] += 1
            names.setdefault(tag_id, tag.strip())

        for tag in removed:
            tag_id = normalize_tag_id(tag or "")
            if not tag_id:
                continue
            deltas[tag_id] -= 1

        changed = {tag_id: delta for tag_id, delta in deltas.items() if delta}
        if not changed:
            return

        tags_ref = self.tags_ref

        @firestore.transactional
        def _apply(transaction) -> None:
            refs = {tag_id: tags_ref.document(tag_id) for tag_id in changed}
            snapshots = {
                tag_id: ref.get(transaction=transaction) for tag_id, ref in refs.items()
            }
            now = utc_now()

            for tag_id, delta in changed.items():
                snapshot = snapshots[tag_id]
                current = 0
                stored_name = None
                if snapshot.exists:
                    data = snapshot.to_dict() or {}
                    current = int(data.get("count") or 0)
                    stored_name = data.get("name")

                new_count = current + delta
                if new_count <= 0:
                    if snapshot.exists:
                        transaction.delete(refs[tag_id])
                    continue

                transaction.set(
                    refs[tag_id],
                    {
                        "name": names.get(tag_id) or stored_name or tag_id,
                        "count": new_count,
                        "updatedAt": now,
                    },
                )

        _apply(self.client.transaction())

    def list_tags(self, limit: int = 100) -> List[TagAggregate]:
        """Get most used tags."""
        query = self.tags_ref.order_by("count", direction=firestore.Query.DESCENDING).limit(limit)

        tags = []
        for doc in query.stream():
            data = doc.to_dict() or {}
            count = int(data.get("count") or 0)
            if count <= 0:
                continue
            tags.append(
                TagAggregate(
                    tag_id=doc.id,
                    name=data.get("name") or doc.id,
                    count=count,
                    updated_at=data.get("updatedAt"),
                )
            )
        return tags

    # ==================== Provider Info ====================

    @property
    def provider_name(self) -> str:
        """Provider name."""
        return "firestore"
