from datetime import timedelta
from types import SimpleNamespace

import pytest

import timer as timer_module
from timer import BenchmarkTimer


@pytest.fixture
def fake_clock(monkeypatch):
    ticks = iter([1.0, 1.5, 10.0, 10.25, 20.0, 21.0])
    monkeypatch.setattr(
        timer_module, "time", SimpleNamespace(perf_counter=lambda: next(ticks))
    )


def test_unused_timer_is_zero():
    timer = BenchmarkTimer("idle")
    assert timer.total_elapsed == 0.0
    assert timer.as_timedelta() == timedelta(0)


def test_laps_accumulate(fake_clock):
    timer = BenchmarkTimer("insert")
    for _ in range(3):
        with timer:
            pass

    assert timer.times == [0.5, 0.25, 1.0]
    assert timer.total_elapsed == 1.75
    assert timer.as_timedelta() == timedelta(seconds=1.75)


def test_start_twice_raises():
    timer = BenchmarkTimer("lookup")
    timer.start()
    with pytest.raises(RuntimeError):
        timer.start()


def test_stop_without_start_raises():
    with pytest.raises(RuntimeError):
        BenchmarkTimer("lookup").stop()
