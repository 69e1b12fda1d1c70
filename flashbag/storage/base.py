"""
Abstract Review Store

Defines the storage interface the review orchestrator, card selector and
sessions depend on. Backends: SqlReviewStore (SQLAlchemy) and
MongoReviewStore (pymongo).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Optional

from flashbag.fsrs.memory_state import ReviewLogEntry
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.storage.records import StoredCard, StudySession


class ReviewStore(ABC):
    """
    Storage collaborator for review scheduling.

    Subclasses should implement card lookup and patching, due/new card
    queries, the user-settings parameters record, the append-only review log,
    study sessions, and transaction().

    Writes issued inside `with store.transaction():` land together or not at
    all. Reads and writes outside a transaction commit individually.
    """

    # ---- Schema ----

    @abstractmethod
    def reset_db(self) -> None:
        """Delete every card, log, setting and session; recreate the schema."""
        pass

    # ---- Transactions ----

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Any]:
        """Context manager grouping writes into one atomic unit."""
        pass

    # ---- Cards ----

    @abstractmethod
    def get_card(self, card_id: str) -> Optional[StoredCard]:
        """Point lookup by id; None if absent."""
        pass

    @abstractmethod
    def insert_card(self, card: StoredCard) -> str:
        """Insert a card and return its id."""
        pass

    @abstractmethod
    def patch_card(
        self,
        card_id: str,
        fields: dict[str, Any],
        expected_reps: Optional[int] = None
    ) -> bool:
        """
        Update scheduling fields of a card.

        With expected_reps, the update only applies if the stored reps still
        equals it (compare-and-set).

        Returns:
            True if a card was updated, False on a missing card or CAS conflict
        """
        pass

    @abstractmethod
    def list_cards(self, user_id: str, bag_id: Optional[str] = None) -> list[StoredCard]:
        """All cards of a user, optionally scoped to a bag, in creation order."""
        pass

    @abstractmethod
    def find_due_cards(
        self,
        user_id: str,
        now: datetime,
        bag_id: Optional[str] = None,
        limit: int = 10
    ) -> list[StoredCard]:
        """
        Unsuspended cards with due <= now.

        Ordered by due, then created_at, then id.
        """
        pass

    @abstractmethod
    def count_due_cards(
        self,
        user_id: str,
        now: datetime,
        bag_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> int:
        """Count unsuspended due cards, stopping at limit when given."""
        pass

    @abstractmethod
    def find_new_cards(
        self,
        user_id: str,
        bag_id: Optional[str] = None,
        limit: int = 10
    ) -> list[StoredCard]:
        """Unsuspended cards in NEW state, in creation order."""
        pass

    # ---- User settings ----

    @abstractmethod
    def get_scheduling_parameters(self, user_id: str) -> Optional[dict[str, Any]]:
        """Raw stored parameters document for a user; None if absent."""
        pass

    @abstractmethod
    def save_scheduling_parameters(self, user_id: str, parameters: SchedulingParameters) -> None:
        """Insert or replace a user's parameters."""
        pass

    # ---- Review logs ----

    @abstractmethod
    def insert_review_log(self, entry: ReviewLogEntry) -> str:
        """Append a review log entry and return its id."""
        pass

    @abstractmethod
    def list_review_logs(
        self,
        user_id: Optional[str] = None,
        card_id: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> list[ReviewLogEntry]:
        """Review logs matching every given filter, oldest review first."""
        pass

    # ---- Study sessions ----

    @abstractmethod
    def insert_study_session(self, session: StudySession) -> str:
        pass

    @abstractmethod
    def get_study_session(self, session_id: str) -> Optional[StudySession]:
        pass

    @abstractmethod
    def update_study_session(self, session_id: str, fields: dict[str, Any]) -> None:
        """Patch a session's end time and statistics (document field names)."""
        pass
