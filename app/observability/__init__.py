"""Observability pipeline for the platform API.

Prometheus instruments held in an explicitly constructed registry, OpenTelemetry
spans correlated per request, and structlog JSON logs with request-scoped context.
"""
