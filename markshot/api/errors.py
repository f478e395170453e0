from __future__ import annotations

from fastapi import HTTPException

from ..services.exceptions import (
    BookmarkError,
    BookmarkNotFoundError,
    InvalidBookmarkError,
    PageFetchError,
    PageFetchTimeoutError,
    PermissionDeniedError,
    ScreenshotRetryNotAllowedError,
)

# Subclasses before their bases: the first match wins
STATUS_CODES = {
    PageFetchTimeoutError: 504,
    PageFetchError: 502,
    BookmarkNotFoundError: 404,
    PermissionDeniedError: 403,
    InvalidBookmarkError: 400,
    ScreenshotRetryNotAllowedError: 409,
}


def to_http_exception(exc: BookmarkError) -> HTTPException:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
