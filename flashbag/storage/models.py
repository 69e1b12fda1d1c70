"""
SQLAlchemy ORM Models for the Review Database

Defines Card, ReviewLog, UserSettings and StudySessionRow models.
Instants are stored as epoch milliseconds (BigInteger) so a reloaded card
compares equal to the one that was saved.
"""

from sqlalchemy import JSON, BigInteger, Boolean, Column, Float, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Card(Base):
    """
    A flashcard and its FSRS memory state.

    Column names match the stored document field names.
    """
    __tablename__ = 'cards'
    __table_args__ = (
        Index('ix_cards_user_due', 'user_id', 'due'),
        Index('ix_cards_user_state', 'user_id', 'state'),
        Index('ix_cards_bag', 'bag_id'),
    )

    id = Column(String(64), primary_key=True)

    # Ownership
    user_id = Column(String(255), nullable=False)
    bag_id = Column(String(255), nullable=False)

    # Content
    question = Column(Text, nullable=True)
    answer = Column(Text, nullable=True)
    hint = Column(Text, nullable=True)

    # FSRS scheduling data
    due = Column(BigInteger, nullable=False)
    stability = Column(Float, nullable=False, default=0.0)
    difficulty = Column(Float, nullable=False, default=0.0)
    elapsed_days = Column(Integer, nullable=True)  # NULL until the first review
    scheduled_days = Column(Integer, nullable=False, default=0)
    learning_steps = Column(Integer, nullable=False, default=0)  # Current step index
    reps = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)
    state = Column(Integer, nullable=False, default=0)  # 0=New, 1=Learning, 2=Review, 3=Relearning
    last_review = Column(BigInteger, nullable=True)

    # Metadata
    created_at = Column(BigInteger, nullable=False)
    suspended = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Card({self.id}, user={self.user_id}, state={self.state}, due={self.due})>"


class ReviewLog(Base):
    """
    Append-only log entry for a single review.

    Scheduling columns hold the card's values going into the review.
    """
    __tablename__ = 'review_logs'
    __table_args__ = (
        Index('ix_review_logs_card', 'card_id'),
        Index('ix_review_logs_session', 'session_id'),
        Index('ix_review_logs_user_review', 'user_id', 'review'),
    )

    id = Column(String(64), primary_key=True)

    user_id = Column(String(255), nullable=False)
    card_id = Column(String(64), nullable=False)

    # Review info
    rating = Column(Integer, nullable=False)  # 0=Manual, 1=Again, 2=Hard, 3=Good, 4=Easy
    state = Column(Integer, nullable=False)
    due = Column(BigInteger, nullable=False)
    stability = Column(Float, nullable=False)
    difficulty = Column(Float, nullable=False)
    elapsed_days = Column(Integer, nullable=False)
    last_elapsed_days = Column(Integer, nullable=False)
    scheduled_days = Column(Integer, nullable=False)
    learning_steps = Column(Integer, nullable=False)
    review = Column(BigInteger, nullable=False)

    # Session context
    duration = Column(Integer, nullable=True)  # Response time in ms
    session_id = Column(String(64), nullable=True)
    review_type = Column(String(20), nullable=True)  # "manual", "scheduled", "cramming"

    def __repr__(self):
        return f"<ReviewLog(id={self.id}, card={self.card_id}, rating={self.rating})>"


class UserSettings(Base):
    """Per-user scheduling parameters, stored as the parameters document."""
    __tablename__ = 'user_settings'

    user_id = Column(String(255), primary_key=True)
    fsrs_parameters = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<UserSettings({self.user_id})>"


class StudySessionRow(Base):
    """A study session and, once ended, its statistics."""
    __tablename__ = 'study_sessions'
    __table_args__ = (
        Index('ix_study_sessions_user_start', 'user_id', 'start_time'),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(255), nullable=False)
    session_type = Column(String(20), nullable=False)  # "daily", "custom", "cramming"
    start_time = Column(BigInteger, nullable=False)
    end_time = Column(BigInteger, nullable=True)

    # Session statistics
    cards_reviewed = Column(Integer, nullable=True)
    manual_count = Column(Integer, nullable=True)
    again_count = Column(Integer, nullable=True)
    hard_count = Column(Integer, nullable=True)
    good_count = Column(Integer, nullable=True)
    easy_count = Column(Integer, nullable=True)
    average_duration = Column(Float, nullable=True)
    average_difficulty = Column(Float, nullable=True)

    def __repr__(self):
        return f"<StudySessionRow({self.id}, user={self.user_id}, type={self.session_type})>"
