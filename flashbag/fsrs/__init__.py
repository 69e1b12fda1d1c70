"""
FSRS - Free Spaced Repetition Scheduler

Pure scheduling engine for flashbag cards.

This package implements FSRS-5:
- Long-Term Memory (LTM) updates for day-scale reviews
- Short-Term Memory (STM) updates while stepping through learning steps
- Power forgetting curve: R = (1 + FACTOR * t / S) ^ DECAY
- Interpretable memory state (Stability, Difficulty, Retrievability)

Quick start:
    from flashbag import fsrs

    card = fsrs.initialize_new_card(now)
    result = fsrs.compute_next_state(card, fsrs.default_parameters(), fsrs.Rating.GOOD, now)
    result.next_state, result.log_entry
"""

# Core scheduler API (algorithm logic)
from flashbag.fsrs.scheduler import (
    SchedulingResult,
    coerce_rating,
    compute_next_state,
    ensure_complete_result,
)

# Parameters
from flashbag.fsrs.parameters import (
    SchedulingParameters,
    default_parameters,
    migrate_weights,
    parse_step,
)

# Constants
from flashbag.fsrs.constants import (
    DECAY,
    DEFAULT_WEIGHTS,
    D_MAX,
    D_MIN,
    FACTOR,
    S_MAX,
    S_MIN,
    Rating,
    ReviewType,
    SessionType,
    State,
)

# Memory state
from flashbag.fsrs.memory_state import (
    CardMemoryState,
    ReviewLogEntry,
    calculate_retrievability,
    elapsed_days_between,
    initialize_new_card,
)


__all__ = [
    # Core algorithm
    "SchedulingResult",
    "coerce_rating",
    "compute_next_state",
    "ensure_complete_result",

    # Parameters
    "SchedulingParameters",
    "default_parameters",
    "migrate_weights",
    "parse_step",

    # Enums
    "Rating",
    "ReviewType",
    "SessionType",
    "State",

    # Memory state
    "CardMemoryState",
    "ReviewLogEntry",
    "calculate_retrievability",
    "elapsed_days_between",
    "initialize_new_card",

    # Constants
    "DECAY",
    "DEFAULT_WEIGHTS",
    "D_MAX",
    "D_MIN",
    "FACTOR",
    "S_MAX",
    "S_MIN",
]
