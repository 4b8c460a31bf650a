from __future__ import annotations

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.dependencies import get_app_settings, get_simulator
from app.config import Settings
from app.models.schemas import ExternalData, ExternalErrorResponse, ExternalSuccessResponse
from app.observability.tracing import current_trace_id
from app.simulator.simulator import Outcome, OutcomeSimulator

router = APIRouter(prefix="/api", tags=["external"])


def outcome_response(outcome: Outcome, trace_id: str) -> JSONResponse:
    shape = outcome.shape
    if shape.error_code is None:
        body = ExternalSuccessResponse(
            trace_id=trace_id,
            data=ExternalData(
                timestamp=int(time.time()),
                delay_ms=outcome.delay_ms,
                random_id=outcome.random_id or 0,
            ),
        )
    else:
        body = ExternalErrorResponse(trace_id=trace_id, error=shape.error_message or "", code=shape.error_code)
    return JSONResponse(status_code=shape.status_code, content=body.model_dump(by_alias=True))


@router.get("/external")
async def simulate_external_call(
    settings: Settings = Depends(get_app_settings),
    simulator: OutcomeSimulator = Depends(get_simulator),
) -> JSONResponse:
    outcome = await simulator.run()
    return outcome_response(outcome, current_trace_id(settings.fallback_trace_id))
