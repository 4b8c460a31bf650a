from __future__ import annotations

import json
import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from starlette.datastructures import Headers, MutableHeaders

from app.observability.metrics import UNMATCHED_PATH, MetricRegistry
from app.observability.tracing import current_trace_id


def route_path(scope: dict[str, Any]) -> str:
    """Matched route template (``/items/{id}``), or one shared label when nothing matched."""

    route = scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    return UNMATCHED_PATH


class RequestContextMiddleware:
    """Adds request_id context, access logs, and HTTP request metrics.

    Every request is measured exactly once, on every exit path.
    """

    def __init__(self, app: Callable[..., Any], metrics: MetricRegistry) -> None:
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        method = scope.get("method", "GET")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=scope.get("path"),
            method=method,
        )

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed = perf_counter() - start

            # Update metrics first so they update even if logging misbehaves.
            self.metrics.observe_http_request(
                method=method,
                path=route_path(scope),
                status_code=status_code,
                elapsed_seconds=elapsed,
            )

            client = scope.get("client")
            structlog.get_logger("access").info(
                "http_request",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000.0, 2),
                client_ip=client[0] if client else None,
                user_agent=Headers(scope=scope).get("user-agent"),
            )

            structlog.contextvars.clear_contextvars()


class RecoverMiddleware:
    """Turns an unhandled handler exception into a generic 500 JSON response."""

    def __init__(self, app: Callable[..., Any], fallback_trace_id: str) -> None:
        self.app = app
        self.fallback_trace_id = fallback_trace_id

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal response_started

            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            span = trace.get_current_span()
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))

            structlog.get_logger("recover").exception("unhandled_exception", response_started=response_started)
            if response_started:
                return

            body = json.dumps(
                {
                    "error": "Internal server error",
                    "code": "INTERNAL_ERROR",
                    "traceId": current_trace_id(self.fallback_trace_id),
                }
            ).encode("utf-8")
            await send(
                {
                    "type": "http.response.start",
                    "status": 500,
                    "headers": [
                        (b"content-type", b"application/json"),
                        (b"content-length", str(len(body)).encode("latin-1")),
                    ],
                }
            )
            await send({"type": "http.response.body", "body": body})
