"""
Typed records the storage backends read and write.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flashbag.fsrs.constants import SessionType
from flashbag.fsrs.memory_state import CardMemoryState, initialize_new_card
from flashbag.timeutils import truncate_to_ms


@dataclass(frozen=True)
class StoredCard:
    """A flashcard as persisted: identity, content and memory state."""
    id: str
    user_id: str
    bag_id: str
    memory: CardMemoryState
    created_at: datetime
    question: Optional[str] = None
    answer: Optional[str] = None
    hint: Optional[str] = None

    @property
    def suspended(self) -> bool:
        return self.memory.suspended


def create_card(
    user_id: str,
    bag_id: str,
    now: datetime,
    question: Optional[str] = None,
    answer: Optional[str] = None,
    hint: Optional[str] = None,
    card_id: Optional[str] = None
) -> StoredCard:
    """Author a new card, due immediately."""
    return StoredCard(
        id=card_id or uuid.uuid4().hex,
        user_id=user_id,
        bag_id=bag_id,
        memory=initialize_new_card(now),
        created_at=truncate_to_ms(now),
        question=question,
        answer=answer,
        hint=hint,
    )


@dataclass(frozen=True)
class StudySession:
    """
    One study session.

    Statistics are None until the session is ended.
    """
    id: str
    user_id: str
    session_type: SessionType
    start_time: datetime
    end_time: Optional[datetime] = None

    # Session statistics
    cards_reviewed: Optional[int] = None
    manual_count: Optional[int] = None
    again_count: Optional[int] = None
    hard_count: Optional[int] = None
    good_count: Optional[int] = None
    easy_count: Optional[int] = None
    average_duration: Optional[float] = None
    average_difficulty: Optional[float] = None
