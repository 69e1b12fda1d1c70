"""
Document mapping for cards, review logs, study sessions.

Documents keep the stored field names (due, elapsed_days, scheduled_days,
learning_steps, last_review, ...) and carry instants as epoch milliseconds.
The SQL backend uses the same names for its columns, so the card patch built
by memory_to_fields applies to either backend unchanged.
"""

from __future__ import annotations

from typing import Any, Optional

from flashbag.fsrs.constants import Rating, ReviewType, SessionType, State
from flashbag.fsrs.memory_state import CardMemoryState, ReviewLogEntry
from flashbag.storage.records import StoredCard, StudySession
from flashbag.timeutils import (
    from_epoch_ms,
    optional_from_epoch_ms,
    optional_to_epoch_ms,
    to_epoch_ms,
)

# Scheduling fields written by a review (suspension is toggled elsewhere)
MEMORY_FIELDS = (
    "due",
    "stability",
    "difficulty",
    "elapsed_days",
    "scheduled_days",
    "learning_steps",
    "reps",
    "lapses",
    "state",
    "last_review",
)


# ---- Cards ----

def memory_to_fields(memory: CardMemoryState) -> dict[str, Any]:
    """Scheduling fields of a card, ready for a patch."""
    return {
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
    }


def memory_from_document(doc: dict[str, Any]) -> CardMemoryState:
    """Rebuild a memory state from a card document or row mapping."""
    return CardMemoryState(
        due=from_epoch_ms(doc["due"]),
        stability=float(doc["stability"]),
        difficulty=float(doc["difficulty"]),
        elapsed_days=doc.get("elapsed_days"),
        scheduled_days=int(doc.get("scheduled_days") or 0),
        learning_step_index=int(doc.get("learning_steps") or 0),
        reps=int(doc.get("reps") or 0),
        lapses=int(doc.get("lapses") or 0),
        state=State(doc["state"]),
        last_review=optional_from_epoch_ms(doc.get("last_review")),
        suspended=bool(doc.get("suspended", False)),
    )


def card_to_document(card: StoredCard) -> dict[str, Any]:
    doc = {
        "_id": card.id,
        "user_id": card.user_id,
        "bag_id": card.bag_id,
        "question": card.question,
        "answer": card.answer,
        "hint": card.hint,
        "created_at": to_epoch_ms(card.created_at),
        "suspended": card.memory.suspended,
    }
    doc.update(memory_to_fields(card.memory))
    return doc


def card_from_document(doc: dict[str, Any]) -> StoredCard:
    return StoredCard(
        id=str(doc["_id"]),
        user_id=doc["user_id"],
        bag_id=doc["bag_id"],
        memory=memory_from_document(doc),
        created_at=from_epoch_ms(doc["created_at"]),
        question=doc.get("question"),
        answer=doc.get("answer"),
        hint=doc.get("hint"),
    )


# ---- Review logs ----

def review_log_to_document(entry: ReviewLogEntry) -> dict[str, Any]:
    """
    Serialize a review log entry.

    The id is left to the backend; elapsed-day fields are written as given,
    the orchestrator has already checked that they are present.
    """
    return {
        "card_id": entry.card_id,
        "user_id": entry.user_id,
        "rating": int(entry.rating),
        "state": int(entry.state),
        "due": to_epoch_ms(entry.due),
        "stability": entry.stability,
        "difficulty": entry.difficulty,
        "elapsed_days": entry.elapsed_days,
        "last_elapsed_days": entry.last_elapsed_days,
        "scheduled_days": entry.scheduled_days,
        "learning_steps": entry.learning_step_index,
        "review": to_epoch_ms(entry.review),
        "duration": entry.duration_ms,
        "session_id": entry.session_id,
        "review_type": entry.review_type.value if entry.review_type is not None else None,
    }


def review_log_from_document(doc: dict[str, Any]) -> ReviewLogEntry:
    review_type: Optional[str] = doc.get("review_type")
    log_id = doc.get("_id", doc.get("id"))
    return ReviewLogEntry(
        rating=Rating(doc["rating"]),
        state=State(doc["state"]),
        due=from_epoch_ms(doc["due"]),
        stability=float(doc["stability"]),
        difficulty=float(doc["difficulty"]),
        scheduled_days=int(doc.get("scheduled_days") or 0),
        learning_step_index=int(doc.get("learning_steps") or 0),
        review=from_epoch_ms(doc["review"]),
        elapsed_days=doc.get("elapsed_days"),
        last_elapsed_days=doc.get("last_elapsed_days"),
        card_id=doc.get("card_id"),
        user_id=doc.get("user_id"),
        duration_ms=doc.get("duration"),
        session_id=doc.get("session_id"),
        review_type=ReviewType(review_type) if review_type else None,
        id=str(log_id) if log_id is not None else None,
    )


# ---- Study sessions ----

SESSION_STAT_FIELDS = (
    "cards_reviewed",
    "manual_count",
    "again_count",
    "hard_count",
    "good_count",
    "easy_count",
    "average_duration",
    "average_difficulty",
)


def session_to_document(session: StudySession) -> dict[str, Any]:
    doc = {
        "_id": session.id,
        "user_id": session.user_id,
        "session_type": session.session_type.value,
        "start_time": to_epoch_ms(session.start_time),
        "end_time": optional_to_epoch_ms(session.end_time),
    }
    for field in SESSION_STAT_FIELDS:
        doc[field] = getattr(session, field)
    return doc


def session_from_document(doc: dict[str, Any]) -> StudySession:
    return StudySession(
        id=str(doc["_id"]),
        user_id=doc["user_id"],
        session_type=SessionType(doc["session_type"]),
        start_time=from_epoch_ms(doc["start_time"]),
        end_time=optional_from_epoch_ms(doc.get("end_time")),
        **{field: doc.get(field) for field in SESSION_STAT_FIELDS},
    )
