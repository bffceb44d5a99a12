from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Sequence, Tuple

_ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class TrialResult:
    """Measurements of a single create/insert/lookup/drop cycle."""

    fragmentation: Decimal
    insert_duration: timedelta
    select_success_duration: timedelta
    select_fail_duration: timedelta

    def __post_init__(self):
        if not 0 <= self.fragmentation <= 100:
            raise ValueError(
                f"fragmentation must be a percentage, got {self.fragmentation}"
            )
        for name in (
            "insert_duration",
            "select_success_duration",
            "select_fail_duration",
        ):
            if getattr(self, name) < timedelta(0):
                raise ValueError(f"{name} must not be negative")

    def to_dict(self) -> dict:
        """Convert to a flat dictionary (durations in milliseconds)."""
        return {
            "fragmentation_percent": float(self.fragmentation),
            "insert_ms": self.insert_duration / _ONE_MS,
            "select_success_ms": self.select_success_duration / _ONE_MS,
            "select_fail_ms": self.select_fail_duration / _ONE_MS,
        }


@dataclass(frozen=True)
class VariantReport:
    """Median result of all trials run for one key generator."""

    name: str
    result: TrialResult
    trials: Tuple[TrialResult, ...] = field(default_factory=tuple)

    @property
    def run_count(self) -> int:
        return len(self.trials)


@dataclass(frozen=True)
class SessionReport:
    insert_count: int
    run_count: int
    profile: str
    insert_strategy: str
    variants: Tuple[VariantReport, ...]
    duration: timedelta


def median(values):
    """Return the median of ``values``.

    Odd counts return the middle element of the sorted values, even counts
    the mean of the two middle elements. ``timedelta`` values are averaged
    through their millisecond representation.
    """
    ordered = sorted(values)
    if not ordered:
        raise ValueError("median() requires at least one value")

    if isinstance(ordered[0], timedelta):
        return timedelta(milliseconds=median([v / _ONE_MS for v in ordered]))

    middle = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return ordered[middle]
    return (ordered[middle - 1] + ordered[middle]) / 2


def median_of_results(results: Sequence[TrialResult]) -> TrialResult:
    """Aggregate trials field by field; fields are never ranked jointly."""
    if not results:
        raise ValueError("median_of_results() requires at least one result")
    return TrialResult(
        fragmentation=median(r.fragmentation for r in results),
        insert_duration=median(r.insert_duration for r in results),
        select_success_duration=median(r.select_success_duration for r in results),
        select_fail_duration=median(r.select_fail_duration for r in results),
    )
