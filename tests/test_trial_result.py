import random
from datetime import timedelta
from decimal import Decimal

import pytest

from trial_result import TrialResult, median, median_of_results


def result(fragmentation, insert_ms, success_ms, fail_ms):
    return TrialResult(
        Decimal(str(fragmentation)),
        timedelta(milliseconds=insert_ms),
        timedelta(milliseconds=success_ms),
        timedelta(milliseconds=fail_ms),
    )


def test_median_odd_count():
    assert median([3, 1, 2]) == 2


def test_median_even_count():
    assert median([4, 1, 3, 2]) == 2.5


def test_median_single_value():
    assert median([7]) == 7


def test_median_empty_raises():
    with pytest.raises(ValueError):
        median([])


def test_median_decimal_stays_decimal():
    value = median([Decimal("10.5"), Decimal("20.5"), Decimal("1"), Decimal("99")])
    assert value == Decimal("15.5")
    assert isinstance(value, Decimal)


def test_median_timedelta_uses_milliseconds():
    values = [timedelta(milliseconds=10), timedelta(seconds=1), timedelta(milliseconds=30),
              timedelta(milliseconds=20)]
    assert median(values) == timedelta(milliseconds=25)


@pytest.mark.parametrize("seed", range(20))
def test_median_within_bounds(seed):
    rng = random.Random(seed)
    values = [rng.uniform(-1000, 1000) for _ in range(rng.randint(1, 31))]
    ordered = sorted(values)
    value = median(values)

    assert min(values) <= value <= max(values)
    middle = len(ordered) // 2
    if len(ordered) % 2:
        assert value == ordered[middle]
    else:
        assert value == pytest.approx((ordered[middle - 1] + ordered[middle]) / 2)


def test_median_of_results_is_field_wise():
    # fragmentation rises while durations fall: the median record mixes trials
    results = [
        result(10, 500, 50, 5),
        result(20, 400, 40, 4),
        result(30, 300, 30, 3),
        result(40, 200, 20, 2),
        result(90, 100, 10, 1),
    ]
    aggregated = median_of_results(results)

    assert aggregated.fragmentation == median(r.fragmentation for r in results) == 30
    assert aggregated.insert_duration == timedelta(milliseconds=300)
    assert aggregated.select_success_duration == timedelta(milliseconds=30)
    assert aggregated.select_fail_duration == timedelta(milliseconds=3)


def test_median_of_results_anticorrelated_fields_come_from_different_trials():
    results = [result(0, 900, 1, 1), result(100, 1, 900, 1), result(50, 5, 5, 900)]
    aggregated = median_of_results(results)

    assert aggregated.fragmentation == 50
    assert aggregated.insert_duration == timedelta(milliseconds=5)
    assert aggregated.select_success_duration == timedelta(milliseconds=5)
    assert aggregated.select_fail_duration == timedelta(milliseconds=1)
    assert aggregated not in results


def test_median_of_results_even_count():
    aggregated = median_of_results([result(10, 100, 10, 10), result(20, 300, 30, 30)])
    assert aggregated.fragmentation == Decimal(15)
    assert aggregated.insert_duration == timedelta(milliseconds=200)


def test_trial_result_rejects_negative_duration():
    with pytest.raises(ValueError):
        result(10, -1, 0, 0)


def test_trial_result_rejects_fragmentation_out_of_range():
    with pytest.raises(ValueError):
        result(101, 1, 1, 1)


def test_trial_result_is_immutable():
    trial = result(1, 1, 1, 1)
    with pytest.raises(AttributeError):
        trial.fragmentation = Decimal(2)


def test_to_dict_in_milliseconds():
    assert result("12.5", 1500, 2, 3).to_dict() == {
        "fragmentation_percent": 12.5,
        "insert_ms": 1500.0,
        "select_success_ms": 2.0,
        "select_fail_ms": 3.0,
    }
