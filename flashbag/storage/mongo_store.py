"""
MongoDB Review Store

Provides card, review log, user settings and study session access on
MongoDB. Multi-document transactions need a replica set.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.errors import PyMongoError

from flashbag.config import get_mongo_db_name, get_mongo_uri
from flashbag.errors import WriteConflictError
from flashbag.fsrs.constants import State
from flashbag.fsrs.memory_state import ReviewLogEntry
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.storage.base import ReviewStore
from flashbag.storage.documents import (
    card_from_document,
    card_to_document,
    review_log_from_document,
    review_log_to_document,
    session_from_document,
    session_to_document,
)
from flashbag.storage.records import StoredCard, StudySession
from flashbag.timeutils import to_epoch_ms

logger = logging.getLogger(__name__)

# Collections
CARDS = "cards"
REVIEW_LOGS = "review_logs"
USER_SETTINGS = "user_settings"
STUDY_SESSIONS = "study_sessions"

DUE_ORDER = [("due", ASCENDING), ("created_at", ASCENDING), ("_id", ASCENDING)]
CREATION_ORDER = [("created_at", ASCENDING), ("_id", ASCENDING)]

TRANSIENT_TRANSACTION_ERROR = "TransientTransactionError"


def get_client(mongo_uri: Optional[str] = None) -> MongoClient:
    """
    Create a pooled MongoDB client.

    Returns:
        MongoClient instance
    """
    return MongoClient(
        mongo_uri or get_mongo_uri(),
        maxPoolSize=10,  # Connection pool size
        minPoolSize=1,   # Keep at least 1 connection alive
        maxIdleTimeMS=60000  # Keep connections alive for 60 seconds
    )


class MongoReviewStore(ReviewStore):
    """ReviewStore backed by MongoDB collections."""

    def __init__(self, db: Optional[Database] = None, client: Optional[MongoClient] = None):
        if db is None:
            client = client if client is not None else get_client()
            db = client[get_mongo_db_name()]
        self.client = client if client is not None else db.client
        self.db = db
        self._local = threading.local()

    # ---- Schema ----

    def ensure_indexes(self) -> None:
        """Create the lookup indexes (idempotent)."""
        self.db[CARDS].create_index([("user_id", ASCENDING), ("due", ASCENDING)])
        self.db[CARDS].create_index([("user_id", ASCENDING), ("state", ASCENDING)])
        self.db[CARDS].create_index([("bag_id", ASCENDING)])
        self.db[REVIEW_LOGS].create_index([("card_id", ASCENDING)])
        self.db[REVIEW_LOGS].create_index([("session_id", ASCENDING)])
        self.db[REVIEW_LOGS].create_index([("user_id", ASCENDING), ("review", ASCENDING)])
        self.db[STUDY_SESSIONS].create_index([("user_id", ASCENDING), ("start_time", ASCENDING)])
        logger.info("Ensured review indexes")

    def reset_db(self) -> None:
        """
        DANGEROUS: Drop all review collections and recreate indexes.

        All cards, review history and settings will be lost!
        """
        for name in (CARDS, REVIEW_LOGS, USER_SETTINGS, STUDY_SESSIONS):
            self.db.drop_collection(name)
        logger.warning("All review collections dropped")
        self.ensure_indexes()

    # ---- Transactions ----

    @property
    def _session(self) -> Optional[ClientSession]:
        return getattr(self._local, "session", None)

    @contextmanager
    def transaction(self) -> Iterator[ClientSession]:
        active = self._session
        if active is not None:
            yield active
            return

        try:
            with self.client.start_session() as session:
                with session.start_transaction():
                    self._local.session = session
                    try:
                        yield session
                    finally:
                        self._local.session = None
        except PyMongoError as exc:
            # WriteConflict and friends; the whole transaction may be retried
            if exc.has_error_label(TRANSIENT_TRANSACTION_ERROR):
                logger.warning(f"Transaction aborted by a concurrent write: {exc}")
                raise WriteConflictError(str(exc)) from exc
            raise

    # ---- Cards ----

    def get_card(self, card_id: str) -> Optional[StoredCard]:
        doc = self.db[CARDS].find_one({"_id": card_id}, session=self._session)
        return card_from_document(doc) if doc is not None else None

    def insert_card(self, card: StoredCard) -> str:
        self.db[CARDS].insert_one(card_to_document(card), session=self._session)
        return card.id

    def patch_card(
        self,
        card_id: str,
        fields: dict[str, Any],
        expected_reps: Optional[int] = None
    ) -> bool:
        query: dict[str, Any] = {"_id": card_id}
        if expected_reps is not None:
            query["reps"] = expected_reps
        result = self.db[CARDS].update_one(query, {"$set": dict(fields)}, session=self._session)
        return result.matched_count == 1

    def list_cards(self, user_id: str, bag_id: Optional[str] = None) -> list[StoredCard]:
        query: dict[str, Any] = {"user_id": user_id}
        if bag_id is not None:
            query["bag_id"] = bag_id
        cursor = self.db[CARDS].find(query, session=self._session).sort(CREATION_ORDER)
        return [card_from_document(doc) for doc in cursor]

    def _due_query(self, user_id: str, now: datetime, bag_id: Optional[str]) -> dict[str, Any]:
        query: dict[str, Any] = {
            "user_id": user_id,
            "due": {"$lte": to_epoch_ms(now)},
            "suspended": {"$ne": True},
        }
        if bag_id is not None:
            query["bag_id"] = bag_id
        return query

    def find_due_cards(
        self,
        user_id: str,
        now: datetime,
        bag_id: Optional[str] = None,
        limit: int = 10
    ) -> list[StoredCard]:
        cursor = (
            self.db[CARDS]
            .find(self._due_query(user_id, now, bag_id), session=self._session)
            .sort(DUE_ORDER)
            .limit(limit)
        )
        return [card_from_document(doc) for doc in cursor]

    def count_due_cards(
        self,
        user_id: str,
        now: datetime,
        bag_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> int:
        options: dict[str, Any] = {}
        if limit is not None:
            options["limit"] = limit
        return self.db[CARDS].count_documents(
            self._due_query(user_id, now, bag_id), session=self._session, **options
        )

    def find_new_cards(
        self,
        user_id: str,
        bag_id: Optional[str] = None,
        limit: int = 10
    ) -> list[StoredCard]:
        query: dict[str, Any] = {
            "user_id": user_id,
            "state": int(State.NEW),
            "suspended": {"$ne": True},
        }
        if bag_id is not None:
            query["bag_id"] = bag_id
        cursor = self.db[CARDS].find(query, session=self._session).sort(CREATION_ORDER).limit(limit)
        return [card_from_document(doc) for doc in cursor]

    # ---- User settings ----

    def get_scheduling_parameters(self, user_id: str) -> Optional[dict[str, Any]]:
        doc = self.db[USER_SETTINGS].find_one({"user_id": user_id}, session=self._session)
        if doc is None:
            return None
        return doc.get("fsrs_parameters")

    def save_scheduling_parameters(self, user_id: str, parameters: SchedulingParameters) -> None:
        self.db[USER_SETTINGS].update_one(
            {"user_id": user_id},
            {"$set": {"fsrs_parameters": parameters.to_document()}},
            upsert=True,
            session=self._session,
        )

    # ---- Review logs ----

    def insert_review_log(self, entry: ReviewLogEntry) -> str:
        doc = review_log_to_document(entry)
        doc["_id"] = uuid.uuid4().hex
        self.db[REVIEW_LOGS].insert_one(doc, session=self._session)
        return doc["_id"]

    def list_review_logs(
        self,
        user_id: Optional[str] = None,
        card_id: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> list[ReviewLogEntry]:
        query: dict[str, Any] = {}
        if user_id is not None:
            query["user_id"] = user_id
        if card_id is not None:
            query["card_id"] = card_id
        if session_id is not None:
            query["session_id"] = session_id
        cursor = (
            self.db[REVIEW_LOGS]
            .find(query, session=self._session)
            .sort([("review", ASCENDING), ("_id", ASCENDING)])
        )
        return [review_log_from_document(doc) for doc in cursor]

    # ---- Study sessions ----

    def insert_study_session(self, session: StudySession) -> str:
        self.db[STUDY_SESSIONS].insert_one(session_to_document(session), session=self._session)
        return session.id

    def get_study_session(self, session_id: str) -> Optional[StudySession]:
        doc = self.db[STUDY_SESSIONS].find_one({"_id": session_id}, session=self._session)
        return session_from_document(doc) if doc is not None else None

    def update_study_session(self, session_id: str, fields: dict[str, Any]) -> None:
        self.db[STUDY_SESSIONS].update_one(
            {"_id": session_id}, {"$set": dict(fields)}, session=self._session
        )
