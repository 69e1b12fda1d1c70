"""
Types for session and bag statistics.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import pandas as pd


@dataclass(frozen=True)
class SessionSummary:
    """
    Statistics written onto a study session when it ends.

    Counts are per rating given; averages are over the session's reviews.
    """
    cards_reviewed: int
    manual_count: int
    again_count: int
    hard_count: int
    good_count: int
    easy_count: int
    average_duration: float
    average_difficulty: float

    def to_fields(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BagCardStats:
    """
    Snapshot of every card in one bag.
    """
    total_cards: int
    new_cards: int
    learning_cards: int
    review_cards: int
    relearning_cards: int
    suspended_cards: int
    due_cards: int
    difficulty_distribution: dict[str, int]
    stability_distribution: dict[str, int]
    reps_distribution: dict[str, int]
    lapses_distribution: dict[str, int]


@dataclass(frozen=True)
class ReviewHistory:
    """
    Per-day review activity for a user.
    """
    total_reviews: int
    daily_reviews: pd.Series
    daily_retention: pd.Series
