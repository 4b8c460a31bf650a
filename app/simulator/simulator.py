from __future__ import annotations

import asyncio
import random
import threading
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import structlog

from app.observability.metrics import MetricRegistry
from app.observability.tracing import Tracing
from app.simulator.scenarios import (
    DEFAULT_SCENARIOS,
    RANDOM_ID_LIMIT,
    RESPONSE_SHAPES,
    SUCCESS_DELAY_MS,
    TIMEOUT_DELAY_MS,
    OutcomeCode,
    ResponseShape,
    Scenario,
    select_scenario,
    total_weight,
    upstream_url,
    validate_scenarios,
)


Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Outcome:
    scenario: Scenario
    delay_ms: int = 0
    random_id: int | None = None

    @property
    def code(self) -> OutcomeCode:
        return self.scenario.code

    @property
    def shape(self) -> ResponseShape:
        return RESPONSE_SHAPES[self.scenario.code]


class OutcomeSimulator:
    """Emulates a flaky downstream dependency.

    One ``random.Random`` is shared by all concurrent requests; every draw for a
    call (scenario, delay, correlation id) happens under one lock so calls never
    interleave their draws. The delay is then awaited for real, which ties up the
    request for its whole duration.
    """

    def __init__(
        self,
        *,
        metrics: MetricRegistry,
        tracing: Tracing,
        scenarios: Sequence[Scenario] = DEFAULT_SCENARIOS,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.metrics = metrics
        self.scenarios = validate_scenarios(scenarios)
        self._total_weight = total_weight(self.scenarios)
        self._rng = rng if rng is not None else random.Random()
        self._lock = threading.Lock()
        self._sleep = sleep
        self._tracer = tracing.get_tracer("external-api")

    def draw(self) -> Outcome:
        with self._lock:
            scenario = select_scenario(self.scenarios, self._rng.randrange(self._total_weight))
            if scenario.code is OutcomeCode.SUCCESS:
                return Outcome(
                    scenario=scenario,
                    delay_ms=self._rng.randrange(*SUCCESS_DELAY_MS),
                    random_id=self._rng.randrange(RANDOM_ID_LIMIT),
                )
        if scenario.code is OutcomeCode.TIMEOUT:
            return Outcome(scenario=scenario, delay_ms=TIMEOUT_DELAY_MS)
        return Outcome(scenario=scenario)

    async def run(self) -> Outcome:
        with self._tracer.start_as_current_span("external_api_call") as span:
            outcome = self.draw()
            span.set_attribute("external.api.scenario", outcome.code.value)
            span.set_attribute("external.api.url", upstream_url(outcome.code))

            try:
                if outcome.delay_ms:
                    await self._sleep(outcome.delay_ms / 1000.0)
            finally:
                # Counted even when the delay is cancelled mid-flight.
                self.metrics.observe_external_call(outcome.code.value)

            if outcome.shape.span_error:
                span.set_attribute("error", outcome.shape.span_error)
            else:
                span.set_attribute("response.delay_ms", outcome.delay_ms)

        structlog.get_logger("simulator").info(
            "external_call_simulated",
            outcome=outcome.code.value,
            delay_ms=outcome.delay_ms,
        )
        return outcome
