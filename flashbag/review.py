"""
Review - Transactional Review Workflow

Ties the scheduler engine to storage: the main entry point for recording a
review and updating the card.

Main workflow:
1. Validate the rating
2. Load the card (owned by the user) and the user's parameters
3. Run the scheduler engine and check its result is complete
4. Patch the card and append the review log in one transaction
5. Return a summary for the caller to render

Nothing is written if any step fails. A card changed by a concurrent review
between read and write is detected with compare-and-set on reps, and the
whole sequence is retried. A transaction the store aborts with a write
conflict is retried the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from flashbag.errors import (
    ConcurrentReviewError,
    ConfigurationMissingError,
    NotFoundError,
    WriteConflictError,
)
from flashbag.fsrs.constants import Rating, ReviewType, State
from flashbag.fsrs.memory_state import CardMemoryState
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.fsrs.scheduler import (
    SchedulingResult,
    coerce_rating,
    compute_next_state,
    ensure_complete_result,
)
from flashbag.storage.base import ReviewStore
from flashbag.storage.documents import memory_to_fields
from flashbag.timeutils import to_epoch_ms, truncate_to_ms, utc_now

DEFAULT_MAX_ATTEMPTS = 3

Scheduler = Callable[[CardMemoryState, SchedulingParameters, Rating, datetime], SchedulingResult]


@dataclass(frozen=True)
class ReviewSummary:
    """What the caller needs to render after a review."""
    next_review: datetime
    new_state: State
    new_stability: float
    new_difficulty: float
    log_id: str

    @property
    def next_review_timestamp(self) -> int:
        return to_epoch_ms(self.next_review)


class _CardChanged(Exception):
    """The card's reps moved between read and write."""


def resolve_review_type(
    due: datetime,
    review_instant: datetime,
    review_type: Optional[ReviewType] = None
) -> ReviewType:
    """
    Explicit review type wins; otherwise SCHEDULED when the card was due
    and CRAMMING when it was reviewed ahead of schedule.
    """
    if review_type is not None:
        return ReviewType(review_type)
    return ReviewType.SCHEDULED if due <= review_instant else ReviewType.CRAMMING


class ReviewOrchestrator:
    """
    Records reviews against a ReviewStore.

    Args:
        store: Storage collaborator
        logger: Receives diagnostics; defaults to this module's logger
        clock: Returns the current instant; defaults to UTC now
        scheduler: Scheduler engine; defaults to compute_next_state
        max_attempts: Read-compute-write attempts before giving up on a
            contended card
    """

    def __init__(
        self,
        store: ReviewStore,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        scheduler: Optional[Scheduler] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.clock = clock if clock is not None else utc_now
        self.scheduler = scheduler if scheduler is not None else compute_next_state
        self.max_attempts = max_attempts

    def submit_review(
        self,
        user_id: str,
        card_id: str,
        rating: int,
        duration_ms: int,
        session_id: Optional[str] = None,
        review_type: Optional[ReviewType] = None
    ) -> ReviewSummary:
        """
        Record a review and reschedule the card.

        Args:
            user_id: Reviewing user; must own the card
            card_id: Card being reviewed
            rating: 1 (Again) to 4 (Easy)
            duration_ms: Response time in milliseconds
            session_id: Study session the review belongs to (optional)
            review_type: Overrides the scheduled/cramming inference

        Returns:
            ReviewSummary

        Raises:
            InvalidRatingError: rating is Manual or out of range
            NotFoundError: card missing or owned by another user
            ConfigurationMissingError: user has no usable parameters
            IncompleteResultError: scheduler output lacks elapsed-day fields
            ConcurrentReviewError: card kept changing for max_attempts attempts
        """
        self.logger.info(f"Review started: card={card_id} user={user_id} rating={rating}")

        try:
            grade = coerce_rating(rating)

            for attempt in range(1, self.max_attempts + 1):
                summary = self._attempt(
                    user_id, card_id, grade, duration_ms, session_id, review_type
                )
                if summary is not None:
                    self.logger.info(
                        f"Review completed: card={card_id} state={summary.new_state.name} "
                        f"next_review={summary.next_review.isoformat()}"
                    )
                    return summary
                self.logger.warning(
                    f"Card {card_id} changed during review (attempt {attempt}/{self.max_attempts})"
                )

            raise ConcurrentReviewError(card_id, self.max_attempts)
        except Exception as exc:
            self.logger.error(f"Review failed: card={card_id} user={user_id}: {exc}")
            raise

    # ---- Internals ----

    def _load_parameters(self, user_id: str) -> SchedulingParameters:
        document = self.store.get_scheduling_parameters(user_id)
        if document is None:
            raise ConfigurationMissingError(user_id)
        try:
            return SchedulingParameters.from_document(document)
        except ValidationError as exc:
            raise ConfigurationMissingError(user_id, "stored parameters are invalid") from exc

    def _attempt(
        self,
        user_id: str,
        card_id: str,
        rating: Rating,
        duration_ms: int,
        session_id: Optional[str],
        review_type: Optional[ReviewType]
    ) -> Optional[ReviewSummary]:
        """One read-compute-write pass; None when the card changed underneath."""
        card = self.store.get_card(card_id)
        if card is None or card.user_id != user_id:
            raise NotFoundError(card_id)

        parameters = self._load_parameters(user_id)
        now = truncate_to_ms(self.clock())
        before = card.memory

        self.logger.debug(
            f"Card before review: state={before.state.name} stability={before.stability} "
            f"difficulty={before.difficulty} reps={before.reps} lapses={before.lapses}"
        )

        result = ensure_complete_result(self.scheduler(before, parameters, rating, now))
        after = result.next_state

        self.logger.debug(
            f"Scheduling result: state={after.state.name} stability={after.stability} "
            f"difficulty={after.difficulty} due={after.due.isoformat()} "
            f"elapsed_days={after.elapsed_days}"
        )
        if after.lapses > before.lapses:
            self.logger.info(f"Lapses increased: card={card_id} {before.lapses} -> {after.lapses}")
        if after.reps > before.reps:
            self.logger.debug(f"Reps increased: card={card_id} {before.reps} -> {after.reps}")

        entry = replace(
            result.log_entry,
            card_id=card_id,
            user_id=user_id,
            duration_ms=duration_ms,
            session_id=session_id,
            review_type=resolve_review_type(before.due, now, review_type),
        )

        try:
            with self.store.transaction():
                if not self.store.patch_card(card_id, memory_to_fields(after), expected_reps=before.reps):
                    raise _CardChanged()
                log_id = self.store.insert_review_log(entry)
        except (_CardChanged, WriteConflictError):
            return None

        self.logger.debug(
            f"Review log written: id={log_id} elapsed_days={entry.elapsed_days} "
            f"last_elapsed_days={entry.last_elapsed_days} type={entry.review_type.value}"
        )

        return ReviewSummary(
            next_review=after.due,
            new_state=after.state,
            new_stability=after.stability,
            new_difficulty=after.difficulty,
            log_id=log_id,
        )
