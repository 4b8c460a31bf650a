from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from app.api.dependencies import get_metric_registry
from app.observability.metrics import MetricRegistry


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics(registry: MetricRegistry = Depends(get_metric_registry)) -> Response:
    log = structlog.get_logger("metrics")
    try:
        families = registry.gather()
    except Exception as exc:  # noqa: BLE001
        log.exception("metrics_render_failed", stage="gather")
        return PlainTextResponse(f"Error gathering metrics: {exc}", status_code=500)

    try:
        payload = registry.render(families)
    except Exception as exc:  # noqa: BLE001
        log.exception("metrics_render_failed", stage="format")
        return PlainTextResponse(f"Error formatting metrics: {exc}", status_code=500)

    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
