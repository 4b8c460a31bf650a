from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from app.api.external import router as external_router
from app.api.health import router as health_router
from app.api.metrics import router as metrics_router
from app.config import Settings, get_settings
from app.lifecycle import Lifecycle, LifecycleState
from app.observability.logging import configure_logging
from app.observability.metrics import MetricRegistry
from app.observability.middleware import RecoverMiddleware, RequestContextMiddleware
from app.observability.tracing import Tracing, TracingMiddleware
from app.simulator.simulator import OutcomeSimulator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    lifecycle: Lifecycle = app.state.lifecycle
    lifecycle.transition(LifecycleState.LISTENING)
    try:
        yield
    finally:
        # The server has stopped accepting and drained in-flight requests by now.
        lifecycle.transition(LifecycleState.SHUTTING_DOWN)
        try:
            app.state.tracing.shutdown()
        except Exception:  # noqa: BLE001
            structlog.get_logger("lifecycle").exception("tracer_shutdown_failed")
        lifecycle.transition(LifecycleState.STOPPED)


def create_app(
    settings: Settings | None = None,
    *,
    metrics: MetricRegistry | None = None,
    tracing: Tracing | None = None,
    simulator: OutcomeSimulator | None = None,
) -> FastAPI:
    """Initializing phase: build the registry, tracer and simulator once and wire them in."""

    settings = settings or get_settings()
    configure_logging(settings.log_level, service=settings.service_name)

    lifecycle = Lifecycle()
    metrics = metrics or MetricRegistry()
    if tracing is None:
        try:
            tracing = Tracing.from_settings(settings)
        except Exception:
            lifecycle.transition(LifecycleState.STOPPED)
            raise
    simulator = simulator or OutcomeSimulator(metrics=metrics, tracing=tracing)

    app = FastAPI(title="Platform API", version=settings.service_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.lifecycle = lifecycle
    app.state.metrics = metrics
    app.state.tracing = tracing
    app.state.simulator = simulator

    # add_middleware prepends: the last one added runs outermost.
    app.add_middleware(RecoverMiddleware, fallback_trace_id=settings.fallback_trace_id)
    app.add_middleware(TracingMiddleware, tracing=tracing)
    app.add_middleware(RequestContextMiddleware, metrics=metrics)

    app.include_router(health_router)
    app.include_router(external_router)
    app.include_router(metrics_router)
    return app
