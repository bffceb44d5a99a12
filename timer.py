import time
from datetime import timedelta
from typing import List, Optional


class BenchmarkTimer:
    """Context manager for timing operations, accumulating across laps.

    Every ``with timer:`` block (or start/stop pair) records one lap, so a
    single timer can cover many separate statement executions while leaving
    the work done between them out of the measurement.
    """

    def __init__(self, name: str):
        self.name = name
        self.start_time: Optional[float] = None
        self.times: List[float] = []

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    def start(self):
        if self.start_time is not None:
            raise RuntimeError(f"Timer {self.name!r} is already running")
        self.start_time = time.perf_counter()

    def stop(self) -> float:
        if self.start_time is None:
            raise RuntimeError(f"Timer {self.name!r} was not started")
        lap = time.perf_counter() - self.start_time
        self.start_time = None
        self.times.append(lap)
        return lap

    @property
    def total_elapsed(self) -> float:
        """Return the sum of all recorded laps"""
        return sum(self.times)

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.total_elapsed)
