from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.metrics_core import Metric


HTTP_LABELS = ("method", "path", "status")

# Path label for requests no route matched; keeps 404 scans from adding series.
UNMATCHED_PATH = "<unmatched>"


class _GatheredFamilies:
    """Registry-shaped view over families that were already collected."""

    def __init__(self, families: Iterable[Metric]) -> None:
        self._families = list(families)

    def collect(self) -> Iterable[Metric]:
        return iter(self._families)


class MetricRegistry:
    """Process-wide request and external-call instruments.

    Owns its own ``CollectorRegistry`` so several instances (one per app, or one
    per test) never collide on metric names. prometheus-client guards every
    child value with a lock, so increments and observations are atomic without
    any locking here.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            HTTP_LABELS,
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            HTTP_LABELS,
            registry=self.registry,
        )
        self.external_api_requests_total = Counter(
            "external_api_requests_total",
            "Total number of external API requests",
            ("outcome",),
            registry=self.registry,
        )

    def observe_http_request(self, *, method: str, path: str, status_code: int, elapsed_seconds: float) -> None:
        labels = {"method": method, "path": path, "status": str(status_code)}
        self.http_requests_total.labels(**labels).inc()
        self.http_request_duration_seconds.labels(**labels).observe(elapsed_seconds)

    def observe_external_call(self, outcome: str) -> None:
        self.external_api_requests_total.labels(outcome=outcome).inc()

    def gather(self) -> list[Metric]:
        return list(self.registry.collect())

    def render(self, families: Iterable[Metric] | None = None) -> bytes:
        """Serialize ``families`` (or a fresh gather) in the text exposition format."""

        if families is None:
            families = self.gather()
        return generate_latest(_GatheredFamilies(families))  # type: ignore[arg-type]

    def sample_value(self, name: str, labels: dict[str, Any] | None = None) -> float:
        value = self.registry.get_sample_value(name, {k: str(v) for k, v in (labels or {}).items()})
        return float(value) if value is not None else 0.0

    def total(self, name: str, **match: Any) -> float:
        """Sum every sample called ``name`` whose labels include ``match``."""

        wanted = {k: str(v) for k, v in match.items()}
        total = 0.0
        for family in self.registry.collect():
            for sample in family.samples:
                if sample.name != name:
                    continue
                if all(sample.labels.get(k) == v for k, v in wanted.items()):
                    total += sample.value
        return total
