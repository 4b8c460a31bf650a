from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _TracedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trace_id: str = Field(alias="traceId", min_length=1)


class HealthResponse(_TracedModel):
    status: Literal["healthy"] = "healthy"
    timestamp: int
    service: str
    version: str


class ExternalData(BaseModel):
    timestamp: int
    delay_ms: int
    random_id: int


class ExternalSuccessResponse(_TracedModel):
    message: str = "External API call successful"
    data: ExternalData


class ExternalErrorResponse(_TracedModel):
    error: str
    code: Literal["UNAUTHORIZED", "INTERNAL_ERROR", "TIMEOUT"]
