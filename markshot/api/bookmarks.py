"""
Bookmarks API Module

CRUD endpoints for the caller's bookmarks, the manual screenshot retry and
the page metadata lookup used to prefill new bookmarks.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..models import (
    BookmarkCountResponse,
    BookmarkCreateRequest,
    BookmarkPageResponse,
    BookmarkResponse,
    BookmarkUpdateRequest,
    PageMetadataResponse,
)
from ..services.bookmark_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, BookmarkService
from ..services.exceptions import BookmarkError
from ..services.validation import parse_tag_list
from ..storage.database_storage import BookmarkFilters
from .dependencies import get_bookmark_service, get_user_id
from .errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("", response_model=BookmarkResponse, status_code=201)
def create_bookmark(
    data: BookmarkCreateRequest,
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkResponse:
    """
    Save a URL.

    The bookmark is returned with a pending screenshot; the capture runs in
    the background and its outcome shows up on later reads.
    """
    try:
        record = service.create_bookmark(
            user_id,
            url=data.url,
            title=data.title,
            description=data.description,
            tags=data.tags,
            folder_id=data.folder_id,
        )
    except BookmarkError as exc:
        raise to_http_exception(exc) from exc
    return BookmarkResponse.from_record(record)


@router.get("", response_model=BookmarkPageResponse)
def list_bookmarks(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    cursor: Optional[str] = Query(None, description="Id of the last bookmark of the previous page"),
    tags: Optional[List[str]] = Query(None, description="Repeat or comma-separate; matches any"),
    folder_id: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = Query(None, max_length=200),
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkPageResponse:
    """List the caller's bookmarks, newest first."""
    tag_list = [tag for raw in tags or [] for tag in parse_tag_list(raw)]
    filters = BookmarkFilters(
        limit=limit,
        cursor=cursor or None,
        tags=tag_list or None,
        folder_id=folder_id or None,
        date_from=date_from,
        date_to=date_to,
    )
    page = service.list_bookmarks(user_id, filters, search=search)
    return BookmarkPageResponse.from_page(page)


@router.get("/count", response_model=BookmarkCountResponse)
def count_bookmarks(
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkCountResponse:
    return BookmarkCountResponse(count=service.count_bookmarks(user_id))


@router.get("/metadata", response_model=PageMetadataResponse)
def get_page_metadata(
    url: str = Query(..., description="Page to read title and description from"),
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> PageMetadataResponse:
    """Prefill title and description for a URL before it is saved."""
    try:
        metadata = service.get_page_metadata(url)
    except BookmarkError as exc:
        raise to_http_exception(exc) from exc
    return PageMetadataResponse(title=metadata.title, description=metadata.description)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
def get_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkResponse:
    try:
        record = service.get_bookmark(user_id, bookmark_id)
    except BookmarkError as exc:
        raise to_http_exception(exc) from exc
    return BookmarkResponse.from_record(record)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
def update_bookmark(
    bookmark_id: str,
    data: BookmarkUpdateRequest,
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkResponse:
    """Edit title, description, tags or folder. Omitted fields are left alone."""
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    try:
        record = service.update_bookmark(user_id, bookmark_id, changes)
    except BookmarkError as exc:
        raise to_http_exception(exc) from exc
    return BookmarkResponse.from_record(record)


@router.delete("/{bookmark_id}", status_code=204)
def delete_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> Response:
    """Delete a bookmark together with its stored screenshot."""
    try:
        service.delete_bookmark(user_id, bookmark_id)
    except BookmarkError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)


@router.post("/{bookmark_id}/screenshot/retry", response_model=BookmarkResponse, status_code=202)
def retry_screenshot(
    bookmark_id: str,
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkResponse:
    """
    Capture the screenshot again.

    Allowed for failed or completed screenshots; returns 409 while a capture
    is still pending.
    """
    try:
        record = service.retry_screenshot(user_id, bookmark_id)
    except BookmarkError as exc:
        raise to_http_exception(exc) from exc
    return BookmarkResponse.from_record(record)
