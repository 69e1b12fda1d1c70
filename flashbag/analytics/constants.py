"""
Bucket edges and labels for card statistics.

Each bucket is right-inclusive: a card with difficulty exactly 2 is
"very_easy", one with 2.01 is "easy".
"""

from __future__ import annotations

from typing import Final

INF = float("inf")

DIFFICULTY_BINS: Final[list[float]] = [-INF, 2, 4, 6, 8, INF]
DIFFICULTY_LABELS: Final[list[str]] = ["very_easy", "easy", "medium", "hard", "very_hard"]

# Stability, in days
STABILITY_BINS: Final[list[float]] = [-INF, 1, 7, 30, 90, INF]
STABILITY_LABELS: Final[list[str]] = ["very_low", "low", "medium", "high", "very_high"]

REPS_BINS: Final[list[float]] = [-INF, 0, 3, 10, 20, INF]
REPS_LABELS: Final[list[str]] = ["new", "beginner", "intermediate", "advanced", "expert"]

LAPSES_BINS: Final[list[float]] = [-INF, 0, 2, 5, INF]
LAPSES_LABELS: Final[list[str]] = ["perfect", "occasional", "frequent", "problematic"]

CARD_COLUMNS: Final[list[str]] = [
    "card_id", "state", "difficulty", "stability", "reps", "lapses", "due", "suspended",
]
LOG_COLUMNS: Final[list[str]] = [
    "card_id", "rating", "difficulty", "duration", "review", "day_utc",
]
