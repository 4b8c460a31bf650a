import pytest

from app.simulator.scenarios import (
    DEFAULT_SCENARIOS,
    OutcomeCode,
    Scenario,
    select_scenario,
    total_weight,
    upstream_url,
    validate_scenarios,
)


def test_default_table_weights() -> None:
    weights = {s.code: s.weight for s in DEFAULT_SCENARIOS}
    assert weights == {
        OutcomeCode.SUCCESS: 60,
        OutcomeCode.UNAUTHORIZED: 15,
        OutcomeCode.SERVER_ERROR: 20,
        OutcomeCode.TIMEOUT: 5,
    }
    assert total_weight(DEFAULT_SCENARIOS) == 100


@pytest.mark.parametrize(
    ("r", "expected"),
    [
        (0, OutcomeCode.SUCCESS),
        (59, OutcomeCode.SUCCESS),
        (60, OutcomeCode.UNAUTHORIZED),
        (74, OutcomeCode.UNAUTHORIZED),
        (75, OutcomeCode.SERVER_ERROR),
        (94, OutcomeCode.SERVER_ERROR),
        (95, OutcomeCode.TIMEOUT),
        (99, OutcomeCode.TIMEOUT),
    ],
)
def test_select_scenario_walks_cumulative_weights(r: int, expected: OutcomeCode) -> None:
    assert select_scenario(DEFAULT_SCENARIOS, r).code is expected


def test_select_scenario_prefers_table_order_for_duplicate_codes() -> None:
    table = (Scenario(OutcomeCode.TIMEOUT, 1), Scenario(OutcomeCode.TIMEOUT, 1))
    assert select_scenario(table, 0) is table[0]
    assert select_scenario(table, 1) is table[1]


def test_select_scenario_rejects_out_of_range_draw() -> None:
    with pytest.raises(ValueError):
        select_scenario(DEFAULT_SCENARIOS, 100)
    with pytest.raises(ValueError):
        select_scenario(DEFAULT_SCENARIOS, -1)


@pytest.mark.parametrize("weight", [0, -5, 1.5, True])
def test_scenario_rejects_non_positive_integer_weights(weight) -> None:
    with pytest.raises(ValueError):
        Scenario(OutcomeCode.SUCCESS, weight)


def test_validate_scenarios_rejects_empty_table() -> None:
    with pytest.raises(ValueError):
        validate_scenarios([])


def test_upstream_url_uses_status_per_outcome() -> None:
    assert upstream_url(OutcomeCode.SUCCESS).endswith("/status/200")
    assert upstream_url(OutcomeCode.UNAUTHORIZED).endswith("/status/401")
    assert upstream_url(OutcomeCode.TIMEOUT).endswith("/status/0")
