from __future__ import annotations

from typing import Any, Callable

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace import SpanKind, Status, StatusCode, format_trace_id
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from app.config import Settings


class Tracing:
    """Owns the tracer provider for one app instance.

    The provider is injected into the middleware and the simulator instead of
    being installed as the OpenTelemetry global, so tests can run several
    independent pipelines side by side.
    """

    def __init__(self, provider: TracerProvider) -> None:
        self.provider = provider
        self.propagator = TraceContextTextMapPropagator()

    @classmethod
    def from_settings(cls, settings: Settings, exporter: SpanExporter | None = None) -> "Tracing":
        """Build the provider; exporter construction errors propagate (startup is fatal)."""

        resource = Resource.create(
            {
                SERVICE_NAME: settings.service_name,
                SERVICE_VERSION: settings.service_version,
            }
        )
        provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

        if exporter is None and settings.otlp_enabled:
            exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=settings.otlp_insecure)
        if exporter is not None:
            provider.add_span_processor(BatchSpanProcessor(exporter))
            structlog.get_logger("tracing").info(
                "tracer_initialized",
                endpoint=settings.otlp_endpoint if settings.otlp_enabled else None,
            )

        return cls(provider)

    def get_tracer(self, name: str) -> trace.Tracer:
        return self.provider.get_tracer(name)

    def shutdown(self) -> None:
        # Flushes the batch processor before closing the exporter.
        self.provider.shutdown()


def current_trace_id(fallback: str) -> str:
    """Hex trace id of the active span, or ``fallback`` outside any valid span."""

    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        return format_trace_id(span_context.trace_id)
    structlog.get_logger("tracing").debug("no_valid_span_context")
    return fallback


class TracingMiddleware:
    """Continues an inbound W3C trace (or starts one) around each HTTP request."""

    def __init__(self, app: Callable[..., Any], tracing: Tracing) -> None:
        self.app = app
        self.tracing = tracing
        self._tracer = tracing.get_tracer("http-server")

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "")
        carrier = {key.decode("latin-1"): value.decode("latin-1") for key, value in scope.get("headers") or []}
        parent = self.tracing.propagator.extract(carrier=carrier)

        with self._tracer.start_as_current_span(
            method,
            context=parent,
            kind=SpanKind.SERVER,
            attributes={"http.method": method, "http.target": path},
        ) as span:
            structlog.contextvars.bind_contextvars(trace_id=format_trace_id(span.get_span_context().trace_id))

            async def send_wrapper(message: dict[str, Any]) -> None:
                if message.get("type") == "http.response.start":
                    status_code = int(message.get("status", 500))
                    span.set_attribute("http.status_code", status_code)
                    if status_code >= 500:
                        span.set_status(Status(StatusCode.ERROR))
                await send(message)

            try:
                await self.app(scope, receive, send_wrapper)
            finally:
                route_path = getattr(scope.get("route"), "path", None)
                if route_path:
                    span.set_attribute("http.route", route_path)
                    span.update_name(f"{method} {route_path}")
