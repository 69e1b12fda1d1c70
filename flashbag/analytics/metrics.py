"""
Metric computations for session and bag statistics.
"""

from __future__ import annotations

from datetime import datetime

import pandas as pd

from flashbag.analytics.types import SessionSummary
from flashbag.fsrs.constants import Rating, State


def build_day_index(logs_df: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Build a dense UTC day index spanning the review range.
    """
    if logs_df.empty:
        return pd.DatetimeIndex([], tz="UTC")
    start = logs_df["day_utc"].min()
    end = logs_df["day_utc"].max()
    return pd.date_range(start=start, end=end, freq="D")


def _mean_or_zero(series: pd.Series) -> float:
    value = pd.to_numeric(series, errors="coerce").mean()
    return 0.0 if pd.isna(value) else float(value)


def compute_session_summary(logs_df: pd.DataFrame) -> SessionSummary:
    """
    Rating counts and averages over one session's review logs.

    average_difficulty uses the pre-review difficulty stored on each log.
    """
    if logs_df.empty:
        return SessionSummary(
            cards_reviewed=0,
            manual_count=0,
            again_count=0,
            hard_count=0,
            good_count=0,
            easy_count=0,
            average_duration=0.0,
            average_difficulty=0.0,
        )

    counts = logs_df["rating"].astype(int).value_counts()
    return SessionSummary(
        cards_reviewed=int(len(logs_df)),
        manual_count=int(counts.get(int(Rating.MANUAL), 0)),
        again_count=int(counts.get(int(Rating.AGAIN), 0)),
        hard_count=int(counts.get(int(Rating.HARD), 0)),
        good_count=int(counts.get(int(Rating.GOOD), 0)),
        easy_count=int(counts.get(int(Rating.EASY), 0)),
        average_duration=_mean_or_zero(logs_df["duration"]),
        average_difficulty=_mean_or_zero(logs_df["difficulty"]),
    )


def compute_state_counts(cards_df: pd.DataFrame) -> dict[State, int]:
    """
    Number of cards in each state (every state present, zero if none).
    """
    if cards_df.empty:
        return {state: 0 for state in State}
    counts = cards_df["state"].astype(int).value_counts()
    return {state: int(counts.get(int(state), 0)) for state in State}


def compute_due_count(cards_df: pd.DataFrame, now: datetime) -> int:
    """
    Unsuspended cards with due <= now (uncapped).
    """
    if cards_df.empty:
        return 0
    due = cards_df["due"] <= pd.Timestamp(now)
    return int((due & ~cards_df["suspended"].astype(bool)).sum())


def compute_distribution(
    values: pd.Series,
    bins: list[float],
    labels: list[str]
) -> dict[str, int]:
    """
    Count values per right-inclusive bucket, every label present.
    """
    buckets = pd.cut(values.astype(float), bins=bins, labels=labels, right=True)
    counts = buckets.value_counts().reindex(labels, fill_value=0)
    return {label: int(counts[label]) for label in labels}


def compute_daily_reviews(logs_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.Series:
    """
    Number of reviews per UTC day.
    """
    if logs_df.empty or len(day_index) == 0:
        return pd.Series(dtype="int64")
    daily = logs_df.groupby("day_utc").size()
    return daily.reindex(day_index, fill_value=0).astype("int64")


def compute_daily_retention(logs_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.Series:
    """
    Share of graded reviews per day that were not Again.

    Days without graded reviews are NaN.
    """
    if logs_df.empty or len(day_index) == 0:
        return pd.Series(dtype="float64")

    graded = logs_df[logs_df["rating"].astype(int) != int(Rating.MANUAL)].copy()
    if graded.empty:
        return pd.Series(float("nan"), index=day_index, dtype="float64")

    graded["recalled"] = (graded["rating"].astype(int) != int(Rating.AGAIN)).astype(float)
    daily = graded.groupby("day_utc")["recalled"].mean()
    return daily.reindex(day_index).astype("float64")
