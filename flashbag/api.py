"""
Caller-facing operations.

Thin wrappers over the review orchestrator, card selector, sessions and
statistics that speak plain dictionaries, integers and epoch milliseconds.
Every function takes an optional store and falls back to the configured one.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from flashbag.analytics.service import build_bag_stats, build_review_history
from flashbag.analytics.types import BagCardStats, ReviewHistory, SessionSummary
from flashbag.card_selector import count_due_cards, format_due_count, get_due_card as select_due_card
from flashbag.fsrs.constants import SessionType
from flashbag.review import ReviewOrchestrator
from flashbag.sessions import end_session as close_session, start_session as open_session
from flashbag.storage import get_store
from flashbag.storage.base import ReviewStore
from flashbag.storage.records import StoredCard
from flashbag.timeutils import optional_to_epoch_ms, to_epoch_ms

NO_CARD_AVAILABLE = "NO_CARD_AVAILABLE"


def _card_to_dict(card: StoredCard) -> dict[str, Any]:
    memory = card.memory
    return {
        "id": card.id,
        "user_id": card.user_id,
        "bag_id": card.bag_id,
        "question": card.question,
        "answer": card.answer,
        "hint": card.hint,
        "due": to_epoch_ms(memory.due),
        "stability": memory.stability,
        "difficulty": memory.difficulty,
        "elapsed_days": memory.elapsed_days,
        "scheduled_days": memory.scheduled_days,
        "learning_steps": memory.learning_step_index,
        "reps": memory.reps,
        "lapses": memory.lapses,
        "state": int(memory.state),
        "last_review": optional_to_epoch_ms(memory.last_review),
        "suspended": memory.suspended,
        "created_at": to_epoch_ms(card.created_at),
    }


def submit_review(
    user_id: str,
    card_id: str,
    rating: int,
    duration_ms: int,
    session_id: Optional[str] = None,
    store: Optional[ReviewStore] = None
) -> dict[str, Any]:
    """
    Record a review.

    Returns:
        next_review_date (ISO string), next_review_timestamp (epoch ms),
        new_state (int), new_stability, new_difficulty
    """
    summary = ReviewOrchestrator(store or get_store()).submit_review(
        user_id, card_id, rating, duration_ms, session_id=session_id
    )
    return {
        "next_review_date": summary.next_review.isoformat(),
        "next_review_timestamp": summary.next_review_timestamp,
        "new_state": int(summary.new_state),
        "new_stability": summary.new_stability,
        "new_difficulty": summary.new_difficulty,
    }


def get_due_card(
    user_id: str,
    bag_id: Optional[str] = None,
    store: Optional[ReviewStore] = None
) -> Union[dict[str, Any], str]:
    """The most urgent due card, or NO_CARD_AVAILABLE."""
    card = select_due_card(store or get_store(), user_id, bag_id=bag_id)
    if card is None:
        return NO_CARD_AVAILABLE
    return _card_to_dict(card)


def get_due_card_count(
    user_id: str,
    bag_id: Optional[str] = None,
    store: Optional[ReviewStore] = None
) -> int:
    """Due card count, capped at 101 ("many"); render with format_due_count."""
    return count_due_cards(store or get_store(), user_id, bag_id=bag_id)


def get_due_card_count_label(
    user_id: str,
    bag_id: Optional[str] = None,
    store: Optional[ReviewStore] = None
) -> str:
    return format_due_count(get_due_card_count(user_id, bag_id=bag_id, store=store))


def start_session(
    user_id: str,
    session_type: SessionType = SessionType.DAILY,
    store: Optional[ReviewStore] = None
) -> str:
    return open_session(store or get_store(), user_id, session_type)


def end_session(
    session_id: str,
    store: Optional[ReviewStore] = None
) -> Optional[SessionSummary]:
    return close_session(store or get_store(), session_id)


def get_bag_stats(
    user_id: str,
    bag_id: str,
    store: Optional[ReviewStore] = None
) -> BagCardStats:
    return build_bag_stats(store or get_store(), user_id, bag_id)


def get_review_history(
    user_id: str,
    store: Optional[ReviewStore] = None
) -> ReviewHistory:
    return build_review_history(store or get_store(), user_id)
