from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from .api import router as api_router
from .runtime import get_runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan_context(app: FastAPI):
    # Tests install their own service before starting the app
    if getattr(app.state, "bookmark_service", None) is None:
        runtime = get_runtime()
        app.state.settings = runtime.settings
        app.state.db_storage = runtime.db_storage
        app.state.file_storage = runtime.file_storage
        app.state.bookmark_service = runtime.bookmark_service
        logger.info(
            "Bookmark service ready",
            extra={
                "database": runtime.db_storage.provider_name,
                "file_storage": runtime.file_storage.provider_name,
            },
        )
    yield


app = FastAPI(title="markshot", version="0.1.0", lifespan=lifespan_context)
app.include_router(api_router)
