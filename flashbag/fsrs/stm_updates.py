"""
Short-Term Memory (STM) Updates

Handles same-day reviews of cards in the Learning and Relearning states.

STM exists to:
- Repair fresh failures before the card goes back onto a day interval
- Walk new material through the configured learning steps

Key principle:
STM stability changes are small and rating-driven. They do not depend on
retrievability, because the card was seen minutes ago.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from flashbag.fsrs.constants import Rating
from flashbag.fsrs.ltm_updates import clamp_stability


@dataclass(frozen=True)
class StepOutcome:
    """Where a card lands inside its step list after a same-day review."""
    step_index: int
    delay_minutes: float


def short_term_stability(
    w: Sequence[float],
    stability: float,
    rating: Rating
) -> float:
    """
    Stability after a same-day review.

    Formula:
        S' = S * e^(w17 * (G - 3 + w18))

    Interpretation:
    - Again/Hard shrink or barely move stability
    - Good/Easy never shrink it (factor floored at 1)

    Args:
        w: Model weights
        stability: Current stability
        rating: Learner rating

    Returns:
        New stability value
    """
    growth = math.exp(w[17] * (int(rating) - 3 + w[18]))
    if rating >= Rating.GOOD:
        growth = max(growth, 1.0)
    return clamp_stability(stability * growth)


def hard_step_delay(steps: Sequence[float]) -> float:
    """
    Delay for a Hard rating, in minutes.

    With a single step: 1.5x that step. Otherwise the mean of the first two.
    """
    if len(steps) == 1:
        return steps[0] * 1.5
    return (steps[0] + steps[1]) / 2


def plan_learning_step(
    steps: Sequence[float],
    current_step: int,
    rating: Rating
) -> Optional[StepOutcome]:
    """
    Decide the next learning step for a card in Learning/Relearning.

    Rules:
    - Again: back to step 0
    - Hard: repeat the current step with the hard delay
    - Good: advance one step, or graduate after the last one
    - Easy: graduate

    A current_step beyond the configured list (the steps were shortened since
    the card entered them) restarts at 0 on Again and graduates otherwise.

    Args:
        steps: Step lengths in minutes (must be non-empty)
        current_step: Current learning_step_index
        rating: Learner rating

    Returns:
        StepOutcome, or None when the card graduates to Review
    """
    if not steps:
        raise ValueError("plan_learning_step needs at least one step")

    if rating == Rating.AGAIN:
        return StepOutcome(step_index=0, delay_minutes=steps[0])

    if current_step >= len(steps) or rating == Rating.EASY:
        return None

    if rating == Rating.HARD:
        return StepOutcome(step_index=current_step, delay_minutes=hard_step_delay(steps))

    next_step = current_step + 1
    if next_step >= len(steps):
        return None
    return StepOutcome(step_index=next_step, delay_minutes=steps[next_step])
