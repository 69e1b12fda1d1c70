"""
SQL Review Store - Database I/O via SQLAlchemy

Handles all SQL operations for cards, review logs, user settings and study
sessions. Postgres in production, SQLite in tests.

This module handles ONLY database I/O.
Algorithm logic is handled by the fsrs package.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from flashbag.config import get_database_url
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
from flashbag.storage.models import Base, Card, ReviewLog, StudySessionRow, UserSettings
from flashbag.storage.records import StoredCard, StudySession
from flashbag.timeutils import to_epoch_ms

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ('cards', 'review_logs', 'user_settings', 'study_sessions')


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Get SQLAlchemy engine for database connection.

    Uses connection pooling for server databases.

    Args:
        database_url: Explicit URL; defaults to the configured DATABASE_URL

    Returns:
        SQLAlchemy Engine instance
    """
    db_url = database_url or get_database_url()
    if db_url.startswith("sqlite"):
        return create_engine(db_url, echo=False)
    return create_engine(
        db_url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=False
    )


def _columns(row: Any) -> dict[str, Any]:
    """ORM row -> document dict (primary key as _id)."""
    doc = {column.name: getattr(row, column.name) for column in row.__table__.columns}
    doc["_id"] = doc.pop("id")
    return doc


def _row_values(doc: dict[str, Any]) -> dict[str, Any]:
    """Document dict -> ORM constructor kwargs."""
    values = dict(doc)
    values["id"] = values.pop("_id")
    return values


class SqlReviewStore(ReviewStore):
    """
    ReviewStore backed by a SQL database.

    The active transaction's session is kept per thread, so one store can
    serve concurrent callers.
    """

    def __init__(self, engine: Optional[Engine] = None, database_url: Optional[str] = None):
        self.engine = engine if engine is not None else get_engine(database_url)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._local = threading.local()

    # ---- Schema ----

    def init_db(self) -> None:
        """
        Initialize database schema if tables don't exist.

        Safe to call multiple times - only creates missing tables.
        """
        existing_tables = set(inspect(self.engine).get_table_names())
        if not set(REQUIRED_TABLES) <= existing_tables:
            Base.metadata.create_all(self.engine)
            logger.info("Created review tables")

    def reset_db(self) -> None:
        """
        DANGEROUS: Delete all data and recreate tables.

        All cards, review history and settings will be lost!
        """
        Base.metadata.drop_all(self.engine)
        logger.warning("All review tables dropped")
        Base.metadata.create_all(self.engine)

    # ---- Transactions ----

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        active = getattr(self._local, "session", None)
        if active is not None:
            # Nested: join the outer transaction
            yield active
            return

        session = self._session_factory()
        self._local.session = session
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            self._local.session = None
            session.close()

    # ---- Cards ----

    def get_card(self, card_id: str) -> Optional[StoredCard]:
        with self.transaction() as session:
            row = session.get(Card, card_id)
            return card_from_document(_columns(row)) if row is not None else None

    def insert_card(self, card: StoredCard) -> str:
        with self.transaction() as session:
            session.add(Card(**_row_values(card_to_document(card))))
        return card.id

    def patch_card(
        self,
        card_id: str,
        fields: dict[str, Any],
        expected_reps: Optional[int] = None
    ) -> bool:
        with self.transaction() as session:
            query = session.query(Card).filter(Card.id == card_id)
            if expected_reps is not None:
                query = query.filter(Card.reps == expected_reps)
            updated = query.update(dict(fields), synchronize_session=False)
        return updated == 1

    def list_cards(self, user_id: str, bag_id: Optional[str] = None) -> list[StoredCard]:
        with self.transaction() as session:
            query = session.query(Card).filter(Card.user_id == user_id)
            if bag_id is not None:
                query = query.filter(Card.bag_id == bag_id)
            rows = query.order_by(Card.created_at, Card.id).all()
            return [card_from_document(_columns(row)) for row in rows]

    def _due_query(self, session: Session, user_id: str, now: datetime, bag_id: Optional[str]):
        query = session.query(Card).filter(
            Card.user_id == user_id,
            Card.due <= to_epoch_ms(now),
            Card.suspended.is_(False),
        )
        if bag_id is not None:
            query = query.filter(Card.bag_id == bag_id)
        return query

    def find_due_cards(
        self,
        user_id: str,
        now: datetime,
        bag_id: Optional[str] = None,
        limit: int = 10
    ) -> list[StoredCard]:
        with self.transaction() as session:
            rows = (
                self._due_query(session, user_id, now, bag_id)
                .order_by(Card.due, Card.created_at, Card.id)
                .limit(limit)
                .all()
            )
            return [card_from_document(_columns(row)) for row in rows]

    def count_due_cards(
        self,
        user_id: str,
        now: datetime,
        bag_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> int:
        with self.transaction() as session:
            query = self._due_query(session, user_id, now, bag_id).with_entities(Card.id)
            if limit is not None:
                query = query.limit(limit)
            return query.count()

    def find_new_cards(
        self,
        user_id: str,
        bag_id: Optional[str] = None,
        limit: int = 10
    ) -> list[StoredCard]:
        with self.transaction() as session:
            query = session.query(Card).filter(
                Card.user_id == user_id,
                Card.state == int(State.NEW),
                Card.suspended.is_(False),
            )
            if bag_id is not None:
                query = query.filter(Card.bag_id == bag_id)
            rows = query.order_by(Card.created_at, Card.id).limit(limit).all()
            return [card_from_document(_columns(row)) for row in rows]

    # ---- User settings ----

    def get_scheduling_parameters(self, user_id: str) -> Optional[dict[str, Any]]:
        with self.transaction() as session:
            row = session.get(UserSettings, user_id)
            return dict(row.fsrs_parameters) if row is not None else None

    def save_scheduling_parameters(self, user_id: str, parameters: SchedulingParameters) -> None:
        with self.transaction() as session:
            session.merge(UserSettings(user_id=user_id, fsrs_parameters=parameters.to_document()))

    # ---- Review logs ----

    def insert_review_log(self, entry: ReviewLogEntry) -> str:
        log_id = uuid.uuid4().hex
        with self.transaction() as session:
            session.add(ReviewLog(id=log_id, **review_log_to_document(entry)))
        return log_id

    def list_review_logs(
        self,
        user_id: Optional[str] = None,
        card_id: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> list[ReviewLogEntry]:
        with self.transaction() as session:
            query = session.query(ReviewLog)
            if user_id is not None:
                query = query.filter(ReviewLog.user_id == user_id)
            if card_id is not None:
                query = query.filter(ReviewLog.card_id == card_id)
            if session_id is not None:
                query = query.filter(ReviewLog.session_id == session_id)
            rows = query.order_by(ReviewLog.review, ReviewLog.id).all()
            return [review_log_from_document(_columns(row)) for row in rows]

    # ---- Study sessions ----

    def insert_study_session(self, session_record: StudySession) -> str:
        with self.transaction() as session:
            session.add(StudySessionRow(**_row_values(session_to_document(session_record))))
        return session_record.id

    def get_study_session(self, session_id: str) -> Optional[StudySession]:
        with self.transaction() as session:
            row = session.get(StudySessionRow, session_id)
            return session_from_document(_columns(row)) if row is not None else None

    def update_study_session(self, session_id: str, fields: dict[str, Any]) -> None:
        with self.transaction() as session:
            session.query(StudySessionRow).filter(
                StudySessionRow.id == session_id
            ).update(dict(fields), synchronize_session=False)
