"""
Service layer to assemble session, bag and history statistics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flashbag.analytics.constants import (
    DIFFICULTY_BINS,
    DIFFICULTY_LABELS,
    LAPSES_BINS,
    LAPSES_LABELS,
    REPS_BINS,
    REPS_LABELS,
    STABILITY_BINS,
    STABILITY_LABELS,
)
from flashbag.analytics.metrics import (
    build_day_index,
    compute_daily_retention,
    compute_daily_reviews,
    compute_distribution,
    compute_due_count,
    compute_session_summary,
    compute_state_counts,
)
from flashbag.analytics.queries import load_cards_df, load_review_logs_df
from flashbag.analytics.types import BagCardStats, ReviewHistory, SessionSummary
from flashbag.fsrs.constants import State
from flashbag.storage.base import ReviewStore
from flashbag.timeutils import utc_now


def build_session_summary(store: ReviewStore, session_id: str) -> SessionSummary:
    """
    Summarize every review logged under a session.
    """
    logs_df = load_review_logs_df(store, session_id=session_id)
    return compute_session_summary(logs_df)


def build_bag_stats(
    store: ReviewStore,
    user_id: str,
    bag_id: str,
    now: Optional[datetime] = None
) -> BagCardStats:
    """
    Build state counts and distributions for all cards in a bag.
    """
    cards_df = load_cards_df(store, user_id, bag_id=bag_id)
    state_counts = compute_state_counts(cards_df)
    suspended = int(cards_df["suspended"].astype(bool).sum()) if not cards_df.empty else 0

    return BagCardStats(
        total_cards=int(len(cards_df)),
        new_cards=state_counts[State.NEW],
        learning_cards=state_counts[State.LEARNING],
        review_cards=state_counts[State.REVIEW],
        relearning_cards=state_counts[State.RELEARNING],
        suspended_cards=suspended,
        due_cards=compute_due_count(cards_df, now or utc_now()),
        difficulty_distribution=compute_distribution(
            cards_df["difficulty"], DIFFICULTY_BINS, DIFFICULTY_LABELS
        ),
        stability_distribution=compute_distribution(
            cards_df["stability"], STABILITY_BINS, STABILITY_LABELS
        ),
        reps_distribution=compute_distribution(cards_df["reps"], REPS_BINS, REPS_LABELS),
        lapses_distribution=compute_distribution(cards_df["lapses"], LAPSES_BINS, LAPSES_LABELS),
    )


def build_review_history(store: ReviewStore, user_id: str) -> ReviewHistory:
    """
    Per-day review counts and retention for a user.
    """
    logs_df = load_review_logs_df(store, user_id=user_id)
    day_index = build_day_index(logs_df)

    return ReviewHistory(
        total_reviews=int(len(logs_df)),
        daily_reviews=compute_daily_reviews(logs_df, day_index),
        daily_retention=compute_daily_retention(logs_df, day_index),
    )
