from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Depends

from app.api.dependencies import get_app_settings
from app.config import Settings
from app.models.schemas import HealthResponse
from app.observability.tracing import current_trace_id

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(settings: Settings = Depends(get_app_settings)) -> dict:
    trace_id = current_trace_id(settings.fallback_trace_id)
    structlog.get_logger("health").info("health_check", trace_id=trace_id)
    return HealthResponse(
        timestamp=int(time.time()),
        service=settings.service_name,
        version=settings.service_version,
        trace_id=trace_id,
    ).model_dump(by_alias=True)
