from fastapi import APIRouter

from .bookmarks import router as bookmarks_router
from .health import router as health_router
from .tags import router as tags_router

router = APIRouter()
router.include_router(bookmarks_router)
router.include_router(tags_router)
router.include_router(health_router)

__all__ = ["router"]
