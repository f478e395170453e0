"""Request and response models for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .storage.database_storage import BookmarkPage, BookmarkRecord, TagAggregate


class BookmarkCreateRequest(BaseModel):
    """Request model for creating a bookmark."""
    url: str = Field(..., description="URL to save")
    title: str = Field(..., description="Bookmark title")
    description: Optional[str] = Field(None, description="Optional description")
    tags: List[str] = Field(default_factory=list, description="Tag names")
    folder_id: Optional[str] = Field(None, description="Parent folder id")


class BookmarkUpdateRequest(BaseModel):
    """Request model for editing a bookmark. Omitted fields are left unchanged."""
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    folder_id: Optional[str] = Field(None, description="null moves the bookmark out of its folder")


class ScreenshotResponse(BaseModel):
    status: str
    url: Optional[str] = None
    path: Optional[str] = None
    retries: int = 0
    error: Optional[str] = None


class BookmarkResponse(BaseModel):
    id: str
    user_id: str
    url: str
    title: str
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    folder_id: Optional[str] = None
    screenshot: ScreenshotResponse
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: BookmarkRecord) -> "BookmarkResponse":
        return cls(
            id=record.id or "",
            user_id=record.user_id,
            url=record.url,
            title=record.title,
            description=record.description,
            tags=list(record.tags),
            folder_id=record.folder_id,
            screenshot=ScreenshotResponse(
                status=record.screenshot.status.value,
                url=record.screenshot.url,
                path=record.screenshot.path,
                retries=record.screenshot.retries,
                error=record.screenshot.error,
            ),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class BookmarkPageResponse(BaseModel):
    items: List[BookmarkResponse]
    next_cursor: Optional[str] = Field(None, description="Pass as `cursor` to fetch the next page")
    has_more: bool = False

    @classmethod
    def from_page(cls, page: BookmarkPage) -> "BookmarkPageResponse":
        return cls(
            items=[BookmarkResponse.from_record(record) for record in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )


class BookmarkCountResponse(BaseModel):
    count: int


class PageMetadataResponse(BaseModel):
    title: str = ""
    description: str = ""
    success: bool = True


class TagResponse(BaseModel):
    id: str
    name: str
    count: int
    updated_at: Optional[datetime] = None

    @classmethod
    def from_aggregate(cls, tag: TagAggregate) -> "TagResponse":
        return cls(id=tag.tag_id, name=tag.name, count=tag.count, updated_at=tag.updated_at)


class HealthResponse(BaseModel):
    status: str
    service: str
    database: Optional[str] = None
    file_storage: Optional[str] = None
