from __future__ import annotations

import random
from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from app.config import get_settings
from app.main import create_app
from app.observability.metrics import MetricRegistry
from app.observability.tracing import Tracing
from app.simulator.scenarios import DEFAULT_SCENARIOS, Scenario
from app.simulator.simulator import OutcomeSimulator


class RecordingSpanExporter(InMemorySpanExporter):
    def __init__(self) -> None:
        super().__init__()
        self.shutdown_calls = 0

    def shutdown(self) -> None:
        self.shutdown_calls += 1
        super().shutdown()


class FakeClock:
    """Stands in for both perf_counter and asyncio.sleep: sleeping advances time."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def perf_counter(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OTLP_ENABLED", "false")
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def span_exporter() -> RecordingSpanExporter:
    return RecordingSpanExporter()


@pytest.fixture
def tracing(span_exporter: RecordingSpanExporter) -> Tracing:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return Tracing(provider)


@pytest.fixture
def metrics() -> MetricRegistry:
    return MetricRegistry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scenarios() -> tuple[Scenario, ...]:
    return DEFAULT_SCENARIOS


@pytest.fixture
def simulator(
    metrics: MetricRegistry,
    tracing: Tracing,
    clock: FakeClock,
    scenarios: tuple[Scenario, ...],
) -> OutcomeSimulator:
    return OutcomeSimulator(
        metrics=metrics,
        tracing=tracing,
        scenarios=scenarios,
        rng=random.Random(1234),
        sleep=clock.sleep,
    )


@pytest.fixture
def app(metrics: MetricRegistry, tracing: Tracing, simulator: OutcomeSimulator) -> FastAPI:
    return create_app(get_settings(), metrics=metrics, tracing=tracing, simulator=simulator)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
