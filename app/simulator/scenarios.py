from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum


class OutcomeCode(str, Enum):
    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Scenario:
    code: OutcomeCode
    weight: int

    def __post_init__(self) -> None:
        if isinstance(self.weight, bool) or not isinstance(self.weight, int) or self.weight <= 0:
            raise ValueError(f"scenario weight must be a positive integer, got {self.weight!r}")


@dataclass(frozen=True)
class ResponseShape:
    """How an outcome surfaces to the caller and on the span."""

    status_code: int
    error_code: str | None
    error_message: str | None
    span_error: str | None
    upstream_status: int


RESPONSE_SHAPES: dict[OutcomeCode, ResponseShape] = {
    OutcomeCode.SUCCESS: ResponseShape(200, None, None, None, 200),
    OutcomeCode.UNAUTHORIZED: ResponseShape(
        401, "UNAUTHORIZED", "External API unauthorized", "unauthorized", 401
    ),
    OutcomeCode.SERVER_ERROR: ResponseShape(
        500, "INTERNAL_ERROR", "External API internal server error", "internal_server_error", 500
    ),
    # The upstream never answers; 0 marks "no status" in the simulated URL.
    OutcomeCode.TIMEOUT: ResponseShape(408, "TIMEOUT", "External API timeout", "timeout", 0),
}


DEFAULT_SCENARIOS: tuple[Scenario, ...] = (
    Scenario(OutcomeCode.SUCCESS, 60),
    Scenario(OutcomeCode.UNAUTHORIZED, 15),
    Scenario(OutcomeCode.SERVER_ERROR, 20),
    Scenario(OutcomeCode.TIMEOUT, 5),
)

SUCCESS_DELAY_MS = (100, 3100)
TIMEOUT_DELAY_MS = 6000
RANDOM_ID_LIMIT = 10000


def validate_scenarios(scenarios: Sequence[Scenario]) -> tuple[Scenario, ...]:
    table = tuple(scenarios)
    if not table:
        raise ValueError("scenario table must not be empty")
    for scenario in table:
        if not isinstance(scenario, Scenario):
            raise ValueError(f"expected Scenario, got {type(scenario).__name__}")
    return table


def total_weight(scenarios: Sequence[Scenario]) -> int:
    return sum(s.weight for s in scenarios)


def select_scenario(scenarios: Sequence[Scenario], r: int) -> Scenario:
    """Pick the first scenario whose cumulative weight exceeds ``r``.

    ``r`` must lie in ``[0, total_weight)``; a uniform ``r`` makes each scenario
    win with probability ``weight / total_weight``.
    """

    total = total_weight(scenarios)
    if not 0 <= r < total:
        raise ValueError(f"draw {r} outside [0, {total})")

    cumulative = 0
    for scenario in scenarios:
        cumulative += scenario.weight
        if r < cumulative:
            return scenario
    raise AssertionError("unreachable: r < total weight")


def upstream_url(code: OutcomeCode) -> str:
    return f"https://httpbin.org/status/{RESPONSE_SHAPES[code].upstream_status}"
