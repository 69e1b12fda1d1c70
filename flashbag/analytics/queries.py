"""
Data-loading helpers for statistics.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from flashbag.analytics.constants import CARD_COLUMNS, LOG_COLUMNS
from flashbag.storage.base import ReviewStore


def load_cards_df(store: ReviewStore, user_id: str, bag_id: Optional[str] = None) -> pd.DataFrame:
    """
    Load a user's cards (optionally one bag) into a dataframe.
    """
    cards = store.list_cards(user_id, bag_id=bag_id)
    if not cards:
        return pd.DataFrame(columns=CARD_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "card_id": card.id,
                "state": int(card.memory.state),
                "difficulty": card.memory.difficulty,
                "stability": card.memory.stability,
                "reps": card.memory.reps,
                "lapses": card.memory.lapses,
                "due": card.memory.due,
                "suspended": card.memory.suspended,
            }
            for card in cards
        ]
    )
    df["due"] = pd.to_datetime(df["due"], utc=True)
    return df


def load_review_logs_df(
    store: ReviewStore,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None
) -> pd.DataFrame:
    """
    Load review logs for a user and/or session into a dataframe.
    """
    logs = store.list_review_logs(user_id=user_id, session_id=session_id)
    if not logs:
        return pd.DataFrame(columns=LOG_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "card_id": log.card_id,
                "rating": int(log.rating),
                "difficulty": log.difficulty,
                "duration": log.duration_ms,
                "review": log.review,
            }
            for log in logs
        ]
    )
    df["review"] = pd.to_datetime(df["review"], utc=True)
    df["day_utc"] = df["review"].dt.floor("D")
    df = df.sort_values("review").reset_index(drop=True)
    return df
