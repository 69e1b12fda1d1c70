"""
Intervals - From Stability to a Scheduled Day Count

Turns a stability estimate into the number of days until the next review,
optionally jittered ("fuzzed") so that cards learned together do not stay
clustered on the same due date forever.
"""

from __future__ import annotations
import math
import random
from datetime import datetime
from typing import Optional

from flashbag.fsrs.constants import DECAY, FACTOR, FUZZ_MIN_INTERVAL, FUZZ_RANGES
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.timeutils import to_epoch_ms


def next_interval(
    stability: float,
    request_retention: float,
    maximum_interval: int
) -> int:
    """
    Days until retrievability falls to request_retention.

    Formula: I = S / FACTOR * (r^(1/DECAY) - 1)

    With r = 0.9 this is simply I = S.

    Returns:
        Whole days, clamped to [1, maximum_interval]
    """
    raw = stability / FACTOR * (math.pow(request_retention, 1 / DECAY) - 1)
    return min(max(round(raw), 1), maximum_interval)


def fuzz_seed(review_instant: datetime, reps: int, difficulty: float, stability: float) -> str:
    """Seed string so identical reviews draw the same jitter."""
    return f"{to_epoch_ms(review_instant)}_{reps}_{difficulty * stability}"


def fuzz_fraction(seed: str) -> float:
    """Uniform draw in [0, 1) determined entirely by the seed."""
    return random.Random(seed).random()


def fuzz_range(
    interval: float,
    elapsed_days: int,
    maximum_interval: int
) -> tuple[int, int]:
    """
    Inclusive [min, max] window an interval may be fuzzed into.

    The half-width grows by band: 15% of the part of the interval between
    2.5 and 7 days, 10% between 7 and 20, 5% beyond 20, plus one day.

    Args:
        interval: Unfuzzed interval in days
        elapsed_days: Days since the previous review
        maximum_interval: Upper bound on intervals

    Returns:
        (min_ivl, max_ivl)
    """
    delta = 1.0
    for start, end, factor in FUZZ_RANGES:
        delta += factor * max(min(interval, end) - start, 0.0)

    interval = min(interval, maximum_interval)
    min_ivl = max(2, round(interval - delta))
    max_ivl = min(round(interval + delta), maximum_interval)
    if interval > elapsed_days:
        min_ivl = max(min_ivl, elapsed_days + 1)
    min_ivl = min(min_ivl, max_ivl)
    return min_ivl, max_ivl


def apply_fuzz(
    interval: int,
    elapsed_days: int,
    maximum_interval: int,
    fraction: float
) -> int:
    """
    Jitter an interval inside its fuzz window.

    Intervals shorter than 2.5 days are returned unchanged.

    Args:
        interval: Unfuzzed interval in days
        elapsed_days: Days since the previous review
        maximum_interval: Upper bound on intervals
        fraction: Uniform draw in [0, 1)

    Returns:
        Fuzzed interval in days
    """
    if interval < FUZZ_MIN_INTERVAL:
        return interval
    min_ivl, max_ivl = fuzz_range(interval, elapsed_days, maximum_interval)
    return int(math.floor(fraction * (max_ivl - min_ivl + 1) + min_ivl))


def scheduled_interval(
    stability: float,
    parameters: SchedulingParameters,
    elapsed_days: int,
    fraction: Optional[float] = None
) -> int:
    """
    Interval for a stability under the user's parameters.

    Fuzz applies only when parameters.enable_fuzz is set and a fraction is
    supplied.
    """
    interval = next_interval(stability, parameters.request_retention, parameters.maximum_interval)
    if parameters.enable_fuzz and fraction is not None:
        interval = apply_fuzz(interval, elapsed_days, parameters.maximum_interval, fraction)
    return interval


def order_review_intervals(
    hard: int,
    good: int,
    easy: int,
    maximum_interval: int
) -> tuple[int, int, int]:
    """
    Enforce hard <= good < easy between the three review outcomes.

    The maximum interval still wins, so at the cap good and easy can be equal.
    """
    hard = min(hard, good)
    good = max(good, hard + 1)
    easy = max(easy, good + 1)
    return (
        min(hard, maximum_interval),
        min(good, maximum_interval),
        min(easy, maximum_interval),
    )
