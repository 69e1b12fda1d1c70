"""
Card selector for choosing what to review next.

Due cards come first, earliest due first (ties by creation order, then id).
New cards are offered once nothing is due. Suspended cards are never
selected.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flashbag.storage.base import ReviewStore
from flashbag.storage.records import StoredCard
from flashbag.timeutils import utc_now

# Counts above this are shown as "100+"; an exact figure is not useful
MANY_THRESHOLD = 100


def get_due_card(
    store: ReviewStore,
    user_id: str,
    bag_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Optional[StoredCard]:
    """
    Get the single most urgent due card.

    Args:
        store: Review store
        user_id: Owner of the cards
        bag_id: Restrict to one bag (optional)
        now: Reference instant (defaults to now)

    Returns:
        Earliest-due unsuspended card with due <= now, or None
    """
    cards = get_due_cards(store, user_id, bag_id=bag_id, now=now, limit=1)
    return cards[0] if cards else None


def get_due_cards(
    store: ReviewStore,
    user_id: str,
    bag_id: Optional[str] = None,
    now: Optional[datetime] = None,
    limit: int = 10
) -> list[StoredCard]:
    """Due cards in review order, at most limit of them."""
    return store.find_due_cards(user_id, now or utc_now(), bag_id=bag_id, limit=limit)


def count_due_cards(
    store: ReviewStore,
    user_id: str,
    bag_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> int:
    """
    Count due cards, stopping just past MANY_THRESHOLD.

    Returns:
        Exact count up to MANY_THRESHOLD; MANY_THRESHOLD + 1 means "many"
    """
    return store.count_due_cards(
        user_id, now or utc_now(), bag_id=bag_id, limit=MANY_THRESHOLD + 1
    )


def format_due_count(count: int) -> str:
    """Render a due count for display ("100+" beyond the threshold)."""
    if count > MANY_THRESHOLD:
        return f"{MANY_THRESHOLD}+"
    return str(count)


def get_new_cards(
    store: ReviewStore,
    user_id: str,
    bag_id: Optional[str] = None,
    limit: int = 10
) -> list[StoredCard]:
    """Never-reviewed cards, oldest first."""
    return store.find_new_cards(user_id, bag_id=bag_id, limit=limit)


def select_next_card(
    store: ReviewStore,
    user_id: str,
    bag_id: Optional[str] = None,
    now: Optional[datetime] = None,
    include_new: bool = True
) -> Optional[StoredCard]:
    """
    Select the next card to review.

    Priority order:
    1. Due cards - earliest due first
    2. New cards - oldest first, if include_new
    3. Nothing available: None (study session complete)
    """
    card = get_due_card(store, user_id, bag_id=bag_id, now=now)
    if card is not None:
        return card

    if include_new:
        new_cards = get_new_cards(store, user_id, bag_id=bag_id, limit=1)
        if new_cards:
            return new_cards[0]

    return None
