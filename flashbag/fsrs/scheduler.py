"""
Scheduler - FSRS Algorithm Logic

Pure FSRS scheduling and state updates (no database calls).

Main workflow:
1. Load card state and parameters (caller's responsibility)
2. Compute elapsed days since the previous review
3. Dispatch on the card's state (New, Learning/Relearning, Review)
4. Apply the STM or LTM update rules and pick the next due instant
5. Return the next state + review log entry, checked for completeness

This module handles ONLY the algorithm logic.
Storage I/O is handled by the review orchestrator.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Optional

from flashbag.errors import IncompleteResultError, InvalidRatingError
from flashbag.fsrs import intervals, ltm_updates, stm_updates
from flashbag.fsrs.constants import GRADES, MINUTES_PER_DAY, Rating, State
from flashbag.fsrs.memory_state import (
    CardMemoryState,
    ReviewLogEntry,
    calculate_retrievability,
    elapsed_days_between,
)
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.timeutils import truncate_to_ms


@dataclass(frozen=True)
class SchedulingResult:
    """Output of one review: the card's next state and the log to append."""
    next_state: CardMemoryState
    log_entry: ReviewLogEntry


def coerce_rating(rating: Any) -> Rating:
    """
    Validate a live review rating.

    Raises:
        InvalidRatingError: for MANUAL, out-of-range values and non-integers
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)
    try:
        value = Rating(rating)
    except ValueError:
        raise InvalidRatingError(rating) from None
    if value not in GRADES:
        raise InvalidRatingError(rating)
    return value


def ensure_complete_result(result: Any) -> SchedulingResult:
    """
    Check that every elapsed-day field of a scheduling result is set.

    Missing values are never defaulted to zero here.

    Raises:
        IncompleteResultError: naming each missing field
    """
    next_state = getattr(result, "next_state", None)
    log_entry = getattr(result, "log_entry", None)

    missing = []
    if getattr(next_state, "elapsed_days", None) is None:
        missing.append("next_state.elapsed_days")
    if getattr(log_entry, "elapsed_days", None) is None:
        missing.append("log_entry.elapsed_days")
    if getattr(log_entry, "last_elapsed_days", None) is None:
        missing.append("log_entry.last_elapsed_days")

    if missing:
        raise IncompleteResultError(missing)
    return result


def compute_next_state(
    current: CardMemoryState,
    parameters: SchedulingParameters,
    rating: Rating,
    review_instant: datetime
) -> SchedulingResult:
    """
    Process a review and return the updated card state + log entry.

    This is the core FSRS algorithm. No I/O, no logging: identical inputs
    always give identical outputs.

    Args:
        current: Card state going into the review
        parameters: Validated scheduling parameters of the card's owner
        rating: AGAIN, HARD, GOOD or EASY
        review_instant: When the review happened

    Returns:
        SchedulingResult

    Raises:
        InvalidRatingError: rating is MANUAL or out of range
        IncompleteResultError: an elapsed-day field could not be produced
    """
    rating = coerce_rating(rating)
    now = truncate_to_ms(review_instant)
    elapsed_days = elapsed_days_between(current.last_review, now)

    if current.state == State.NEW:
        next_state = _schedule_new(current, parameters, rating, now, elapsed_days)
    elif current.state in (State.LEARNING, State.RELEARNING):
        next_state = _schedule_learning(current, parameters, rating, now, elapsed_days)
    else:
        next_state = _schedule_review(current, parameters, rating, now, elapsed_days)

    # Log keeps the pre-review snapshot
    log_entry = ReviewLogEntry(
        rating=rating,
        state=current.state,
        due=current.due,
        stability=current.stability,
        difficulty=current.difficulty,
        scheduled_days=current.scheduled_days,
        learning_step_index=current.learning_step_index,
        review=now,
        elapsed_days=elapsed_days,
        last_elapsed_days=_previous_elapsed_days(current),
    )

    return ensure_complete_result(SchedulingResult(next_state=next_state, log_entry=log_entry))


# ---- State handlers ----

def _schedule_new(
    current: CardMemoryState,
    parameters: SchedulingParameters,
    rating: Rating,
    now: datetime,
    elapsed_days: int
) -> CardMemoryState:
    w = parameters.weights
    stability = ltm_updates.initial_stability(w, rating)
    difficulty = ltm_updates.initial_difficulty(w, rating)

    steps = parameters.learning_step_minutes if parameters.enable_short_term else ()
    if steps:
        outcome = stm_updates.plan_learning_step(steps, 0, rating)
        if outcome is not None:
            return _step(current, now, elapsed_days, State.LEARNING, stability, difficulty, outcome)

    return _graduate(current, parameters, now, elapsed_days, stability, difficulty)


def _schedule_learning(
    current: CardMemoryState,
    parameters: SchedulingParameters,
    rating: Rating,
    now: datetime,
    elapsed_days: int
) -> CardMemoryState:
    w = parameters.weights
    if current.state == State.LEARNING:
        steps = parameters.learning_step_minutes
    else:
        steps = parameters.relearning_step_minutes
    use_steps = parameters.enable_short_term and bool(steps)

    if current.stability <= 0:
        # Never seeded (e.g. reset by hand); start from first-review values
        stability = ltm_updates.initial_stability(w, rating)
        difficulty = ltm_updates.initial_difficulty(w, rating)
    elif use_steps:
        stability = stm_updates.short_term_stability(w, current.stability, rating)
        difficulty = ltm_updates.next_difficulty(w, current.difficulty, rating)
    else:
        retrievability = calculate_retrievability(current.stability, elapsed_days)
        stability, difficulty = ltm_updates.apply_ltm_update(
            w,
            current.stability,
            current.difficulty,
            retrievability,
            rating,
            short_term=parameters.enable_short_term,
        )

    if use_steps:
        outcome = stm_updates.plan_learning_step(steps, current.learning_step_index, rating)
        if outcome is not None:
            return _step(current, now, elapsed_days, current.state, stability, difficulty, outcome)
    elif rating == Rating.AGAIN:
        interval = intervals.scheduled_interval(
            stability, parameters, elapsed_days, _fuzz_fraction(current, parameters, now)
        )
        return _advance(
            current, now, elapsed_days,
            state=current.state,
            stability=stability,
            difficulty=difficulty,
            scheduled_days=interval,
            learning_step_index=0,
            due=now + timedelta(days=interval),
        )

    return _graduate(current, parameters, now, elapsed_days, stability, difficulty)


def _schedule_review(
    current: CardMemoryState,
    parameters: SchedulingParameters,
    rating: Rating,
    now: datetime,
    elapsed_days: int
) -> CardMemoryState:
    w = parameters.weights
    fraction = _fuzz_fraction(current, parameters, now)

    if current.stability <= 0:
        # Never seeded (e.g. reset by hand); start from first-review values
        stabilities = {grade: ltm_updates.initial_stability(w, grade) for grade in GRADES}
        difficulty = ltm_updates.initial_difficulty(w, rating)
    else:
        prior_difficulty = ltm_updates.clamp_difficulty(current.difficulty)
        retrievability = calculate_retrievability(current.stability, elapsed_days)
        difficulty = ltm_updates.next_difficulty(w, prior_difficulty, rating)
        stabilities = {
            grade: ltm_updates.recall_stability(
                w, current.stability, prior_difficulty, retrievability, grade
            )
            for grade in (Rating.HARD, Rating.GOOD, Rating.EASY)
        }
        stabilities[Rating.AGAIN] = ltm_updates.forget_stability(
            w,
            current.stability,
            prior_difficulty,
            retrievability,
            short_term=parameters.enable_short_term,
        )

    if rating == Rating.AGAIN:
        stability = stabilities[Rating.AGAIN]
        lapses = current.lapses + 1

        steps = parameters.relearning_step_minutes if parameters.enable_short_term else ()
        if steps:
            outcome = stm_updates.plan_learning_step(steps, 0, rating)
            return _step(
                current, now, elapsed_days, State.RELEARNING, stability, difficulty, outcome,
                lapses=lapses,
            )

        interval = intervals.scheduled_interval(stability, parameters, elapsed_days, fraction)
        return _advance(
            current, now, elapsed_days,
            state=State.RELEARNING,
            stability=stability,
            difficulty=difficulty,
            scheduled_days=interval,
            learning_step_index=0,
            due=now + timedelta(days=interval),
            lapses=lapses,
        )

    # Successful recall: schedule all three outcomes so their order holds
    hard, good, easy = intervals.order_review_intervals(
        *(
            intervals.scheduled_interval(stabilities[grade], parameters, elapsed_days, fraction)
            for grade in (Rating.HARD, Rating.GOOD, Rating.EASY)
        ),
        maximum_interval=parameters.maximum_interval,
    )
    interval = {Rating.HARD: hard, Rating.GOOD: good, Rating.EASY: easy}[rating]

    return _advance(
        current, now, elapsed_days,
        state=State.REVIEW,
        stability=stabilities[rating],
        difficulty=difficulty,
        scheduled_days=interval,
        learning_step_index=0,
        due=now + timedelta(days=interval),
    )


# ---- Helpers ----

def _previous_elapsed_days(current: CardMemoryState) -> Optional[int]:
    """Elapsed days recorded at the previous review; 0 only for a never-reviewed card."""
    if current.last_review is None:
        return current.elapsed_days if current.elapsed_days is not None else 0
    # A reviewed card without elapsed days is corrupt; left unset so the result is rejected
    return current.elapsed_days


def _fuzz_fraction(
    current: CardMemoryState,
    parameters: SchedulingParameters,
    now: datetime
) -> Optional[float]:
    if not parameters.enable_fuzz:
        return None
    seed = intervals.fuzz_seed(now, current.reps, current.difficulty, current.stability)
    return intervals.fuzz_fraction(seed)


def _step(
    current: CardMemoryState,
    now: datetime,
    elapsed_days: int,
    state: State,
    stability: float,
    difficulty: float,
    outcome: stm_updates.StepOutcome,
    **changes: Any
) -> CardMemoryState:
    """Keep the card on a sub-day learning step."""
    return _advance(
        current, now, elapsed_days,
        state=state,
        stability=stability,
        difficulty=difficulty,
        scheduled_days=int(outcome.delay_minutes // MINUTES_PER_DAY),
        learning_step_index=outcome.step_index,
        due=truncate_to_ms(now + timedelta(minutes=outcome.delay_minutes)),
        **changes,
    )


def _graduate(
    current: CardMemoryState,
    parameters: SchedulingParameters,
    now: datetime,
    elapsed_days: int,
    stability: float,
    difficulty: float
) -> CardMemoryState:
    """Move the card onto day-scale Review scheduling."""
    interval = intervals.scheduled_interval(
        stability, parameters, elapsed_days, _fuzz_fraction(current, parameters, now)
    )
    return _advance(
        current, now, elapsed_days,
        state=State.REVIEW,
        stability=stability,
        difficulty=difficulty,
        scheduled_days=interval,
        learning_step_index=0,
        due=now + timedelta(days=interval),
    )


def _advance(
    current: CardMemoryState,
    now: datetime,
    elapsed_days: int,
    **changes: Any
) -> CardMemoryState:
    """Apply the fields every review changes, plus the state-specific ones."""
    return replace(
        current,
        reps=current.reps + 1,
        last_review=now,
        elapsed_days=elapsed_days,
        **changes,
    )
