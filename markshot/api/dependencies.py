from __future__ import annotations

from fastapi import Header, HTTPException, Request

from ..services.bookmark_service import BookmarkService


def get_user_id(x_user_id: str = Header(default="", alias="X-User-Id")) -> str:
    """Caller identity, set by the authenticating gateway in front of the API."""
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id


def get_bookmark_service(request: Request) -> BookmarkService:
    service = getattr(request.app.state, "bookmark_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Bookmark service not initialized")
    return service
