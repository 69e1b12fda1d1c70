"""
Shared fixtures: parameters, a fixed clock, cards and an in-memory SQL store.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from flashbag.fsrs.constants import State
from flashbag.fsrs.memory_state import CardMemoryState
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.storage.records import StoredCard
from flashbag.storage.sql_store import SqlReviewStore

NOW = datetime(2024, 1, 7, tzinfo=timezone.utc)
LAST_REVIEW = datetime(2024, 1, 1, tzinfo=timezone.utc)
USER_ID = "user_1"
BAG_ID = "bag_1"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def parameters():
    return SchedulingParameters()


@pytest.fixture
def review_state():
    """Review-state card last seen six days before NOW, previous gap five days."""
    return CardMemoryState(
        due=LAST_REVIEW,
        stability=3.0,
        difficulty=3.0,
        elapsed_days=5,
        scheduled_days=0,
        learning_step_index=0,
        reps=5,
        lapses=1,
        state=State.REVIEW,
        last_review=LAST_REVIEW,
    )


@pytest.fixture
def review_card(review_state):
    return StoredCard(
        id="card_1",
        user_id=USER_ID,
        bag_id=BAG_ID,
        memory=review_state,
        created_at=LAST_REVIEW - timedelta(days=30),
        question="Q",
        answer="A",
    )


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlReviewStore(engine=engine)
    store.init_db()
    return store
