"""
Memory State - FSRS Card State, Review Log and Retrievability

Defines the core memory state variables and derived quantities for FSRS.

Key concepts:
- Stability (S): Days until recall probability decays to 90%
- Difficulty (D): How hard the card is to learn (1-10 scale)
- Retrievability (R): Probability of successful recall at time t
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from flashbag.fsrs.constants import DECAY, FACTOR, Rating, ReviewType, State
from flashbag.timeutils import ensure_utc, truncate_to_ms


ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class CardMemoryState:
    """
    Scheduling state for a single card.

    elapsed_days and last_review are both set once the card has been
    reviewed, and both None before that.
    """
    due: datetime
    stability: float  # S, in days
    difficulty: float  # D, range 1-10 (0 before the first review)

    elapsed_days: Optional[int]  # Days between the two most recent reviews
    scheduled_days: int  # Interval chosen at the most recent review
    learning_step_index: int  # Position within (re)learning steps

    # Review tracking
    reps: int
    lapses: int
    state: State
    last_review: Optional[datetime]

    suspended: bool = False


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    Append-only record of a single review.

    Scheduling fields hold the card's values going into the review.
    card_id, user_id, duration_ms, session_id and review_type are filled in
    by the review orchestrator, not the engine.
    """
    rating: Rating
    state: State
    due: datetime
    stability: float
    difficulty: float
    scheduled_days: int
    learning_step_index: int
    review: datetime
    elapsed_days: Optional[int]
    last_elapsed_days: Optional[int]

    card_id: Optional[str] = None
    user_id: Optional[str] = None
    duration_ms: Optional[int] = None
    session_id: Optional[str] = None
    review_type: Optional[ReviewType] = None
    id: Optional[str] = None


def calculate_retrievability(
    stability: float,
    elapsed_days: float
) -> float:
    """
    Calculate retrievability using the FSRS power forgetting curve.

    Formula: R = (1 + FACTOR * t / S) ^ DECAY

    Where:
    - t = days since the last review
    - S = stability (in days)

    Interpretation:
    - Immediately after review: R = 1.0
    - At t = S: R = 0.9 by construction of FACTOR
    - As time passes R decays, more slowly than an exponential would

    Args:
        stability: Current stability in days
        elapsed_days: Time since last review in days

    Returns:
        Retrievability between 0 and 1
    """
    if stability <= 0:
        return 0.0
    if elapsed_days <= 0:
        return 1.0
    return (1.0 + FACTOR * elapsed_days / stability) ** DECAY


def elapsed_days_between(
    last_review: Optional[datetime],
    review_instant: datetime
) -> int:
    """
    Whole days elapsed since the previous review.

    Args:
        last_review: Instant of the previous review, or None for new cards
        review_instant: Instant of the current review

    Returns:
        floor((review_instant - last_review) / 1 day), never negative;
        0 if the card was never reviewed
    """
    if last_review is None:
        return 0

    delta = ensure_utc(review_instant) - ensure_utc(last_review)
    return max(0, delta // ONE_DAY)


def initialize_new_card(now: datetime) -> CardMemoryState:
    """
    Initialize state for a freshly authored card.

    Args:
        now: Creation instant; the card is due immediately

    Returns:
        CardMemoryState in NEW state with zero stability/difficulty
    """
    return CardMemoryState(
        due=truncate_to_ms(now),
        stability=0.0,
        difficulty=0.0,
        elapsed_days=None,
        scheduled_days=0,
        learning_step_index=0,
        reps=0,
        lapses=0,
        state=State.NEW,
        last_review=None,
        suspended=False,
    )
