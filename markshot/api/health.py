from __future__ import annotations

from fastapi import APIRouter, Request

from ..core.config import get_settings
from ..models import HealthResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    service = getattr(request.app.state, "bookmark_service", None)
    if service is None:
        return HealthResponse(status="starting", service=get_settings().service_name)

    return HealthResponse(
        status="ok",
        service=get_settings().service_name,
        database=service.db_storage.provider_name,
        file_storage=service.file_storage.provider_name,
    )
