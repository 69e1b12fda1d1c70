"""
Long-Term Memory (LTM) Updates

Implements the FSRS-5 stability and difficulty formulas for reviews that
happen on a day-scale interval.

Key principles:
- Spaced, effortful success produces the largest stability gains
- Already-stable and difficult cards gain less per review
- Forgetting resets stability to a post-lapse value, never above the old one
- Difficulty moves with the rating and drifts back towards a mean
"""

from __future__ import annotations
import math
from typing import Sequence

from flashbag.fsrs.constants import (
    D_MAX,
    D_MIN,
    INITIAL_S_MIN,
    S_MAX,
    S_MIN,
    Rating,
)


def clamp_difficulty(difficulty: float) -> float:
    """Clip difficulty to [D_MIN, D_MAX]."""
    return max(D_MIN, min(D_MAX, difficulty))


def clamp_stability(stability: float) -> float:
    """Clip stability to [S_MIN, S_MAX]."""
    return max(S_MIN, min(S_MAX, stability))


def initial_stability(w: Sequence[float], rating: Rating) -> float:
    """
    Stability after the very first review.

    Uses weights w0-w3 for Again, Hard, Good, Easy respectively.
    """
    return clamp_stability(max(w[int(rating) - 1], INITIAL_S_MIN))


def raw_initial_difficulty(w: Sequence[float], rating: Rating) -> float:
    """
    Unclamped initial difficulty.

    Formula: D0(G) = w4 - e^(w5 * (G - 1)) + 1
    """
    return w[4] - math.exp(w[5] * (int(rating) - 1)) + 1


def initial_difficulty(w: Sequence[float], rating: Rating) -> float:
    """Difficulty after the very first review, clipped to [1, 10]."""
    return clamp_difficulty(raw_initial_difficulty(w, rating))


def next_difficulty(
    w: Sequence[float],
    difficulty: float,
    rating: Rating
) -> float:
    """
    Update difficulty based on the rating.

    Formula:
        delta = -w6 * (G - 3)
        D' = D + delta * (10 - D) / 9          (linear damping)
        D'' = w7 * D0(Easy) + (1 - w7) * D'    (mean reversion)

    Conceptually:
    - Again/Hard push difficulty up, Easy pulls it down, Good leaves it
    - The damping term makes D approach 10 asymptotically
    - Mean reversion uses the unclamped D0(Easy)

    Args:
        w: Model weights
        difficulty: Current difficulty
        rating: Learner rating

    Returns:
        New difficulty value (clipped to [1, 10])
    """
    delta = -w[6] * (int(rating) - 3)
    damped = difficulty + delta * (D_MAX - difficulty) / 9
    reverted = w[7] * raw_initial_difficulty(w, Rating.EASY) + (1 - w[7]) * damped
    return clamp_difficulty(reverted)


def recall_stability(
    w: Sequence[float],
    stability: float,
    difficulty: float,
    retrievability: float,
    rating: Rating
) -> float:
    """
    Update stability after a successful recall (Hard/Good/Easy).

    Formula:
        S' = S * (1 + e^w8 * (11 - D) * S^-w9 * (e^(w10 * (1 - R)) - 1) * penalty * bonus)

    Where:
        - (11 - D): difficult cards grow more slowly
        - S^-w9: already-stable cards grow more slowly
        - e^(w10 * (1 - R)) - 1: lower R at review time (longer spacing) grows more
        - penalty = w15 for Hard, bonus = w16 for Easy

    Args:
        w: Model weights
        stability: Current stability (S)
        difficulty: Current difficulty (D)
        retrievability: Retrievability at review time (R)
        rating: Learner rating (HARD, GOOD or EASY)

    Returns:
        New stability value
    """
    if rating == Rating.AGAIN:
        raise ValueError("Use forget_stability for AGAIN ratings")

    if stability <= 0:
        raise ValueError(f"Recall stability needs a seeded card, got stability {stability}")

    hard_penalty = w[15] if rating == Rating.HARD else 1.0
    easy_bonus = w[16] if rating == Rating.EASY else 1.0

    growth = (
        math.exp(w[8])
        * (11 - clamp_difficulty(difficulty))
        * math.pow(stability, -w[9])
        * (math.exp(w[10] * (1 - retrievability)) - 1)
        * hard_penalty
        * easy_bonus
    )
    return clamp_stability(stability * (1 + growth))


def forget_stability(
    w: Sequence[float],
    stability: float,
    difficulty: float,
    retrievability: float,
    short_term: bool = False
) -> float:
    """
    Post-lapse stability after a failed recall (Again).

    Formula:
        S_f = w11 * D^-w12 * ((S + 1)^w13 - 1) * e^(w14 * (1 - R))

    Difficulty outside [1, 10] is clipped before use. The result never
    exceeds the current stability. With short-term
    scheduling enabled it is also capped at S / e^(w17 * w18), the stability
    a same-day Again would leave behind.

    Args:
        w: Model weights
        stability: Current stability
        difficulty: Current difficulty
        retrievability: Retrievability at review time
        short_term: Whether short-term scheduling is enabled

    Returns:
        New stability value (reduced)
    """
    post_lapse = (
        w[11]
        * math.pow(clamp_difficulty(difficulty), -w[12])
        * (math.pow(stability + 1, w[13]) - 1)
        * math.exp(w[14] * (1 - retrievability))
    )
    post_lapse = min(post_lapse, stability)

    if short_term:
        post_lapse = min(post_lapse, stability / math.exp(w[17] * w[18]))

    return clamp_stability(post_lapse)


def apply_ltm_update(
    w: Sequence[float],
    stability: float,
    difficulty: float,
    retrievability: float,
    rating: Rating,
    short_term: bool = False
) -> tuple[float, float]:
    """
    Apply LTM update rules to get new S and D.

    This is the main entry point for day-scale updates.

    Args:
        w: Model weights
        stability: Current stability
        difficulty: Current difficulty
        retrievability: Retrievability at review time
        rating: Learner rating
        short_term: Whether short-term scheduling is enabled

    Returns:
        (new_stability, new_difficulty)
    """
    if rating == Rating.AGAIN:
        new_stability = forget_stability(w, stability, difficulty, retrievability, short_term)
    else:
        new_stability = recall_stability(w, stability, difficulty, retrievability, rating)

    new_difficulty = next_difficulty(w, difficulty, rating)

    return new_stability, new_difficulty
