from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from ..models import TagResponse
from ..services.bookmark_service import DEFAULT_TAG_LIMIT, BookmarkService
from .dependencies import get_bookmark_service, get_user_id

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=List[TagResponse])
def list_tags(
    limit: int = Query(DEFAULT_TAG_LIMIT, ge=1, le=DEFAULT_TAG_LIMIT),
    user_id: str = Depends(get_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> List[TagResponse]:
    """Most used tags first, for autocomplete."""
    return [TagResponse.from_aggregate(tag) for tag in service.list_tags(limit=limit)]
