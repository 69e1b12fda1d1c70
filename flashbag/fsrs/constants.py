"""
FSRS Constants and Parameters

All fixed constants of the FSRS-5 memory model in one place.
Per-user tunables (weights, retention, steps) live in parameters.py.
"""

from enum import Enum, IntEnum


# ---- Ratings ----

class Rating(IntEnum):
    """Learner feedback on a retrieval attempt."""
    MANUAL = 0  # Log classification only, never a live review input
    AGAIN = 1   # Retrieval failed
    HARD = 2    # Retrieved with high effort
    GOOD = 3    # Retrieved normally
    EASY = 4    # Retrieved fluently


GRADES = (Rating.AGAIN, Rating.HARD, Rating.GOOD, Rating.EASY)


# ---- Card States ----

class State(IntEnum):
    """Position of a card in the spaced-repetition lifecycle."""
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class ReviewType(str, Enum):
    """How a review came about (stored on the review log)."""
    MANUAL = "manual"
    SCHEDULED = "scheduled"   # Card was due
    CRAMMING = "cramming"     # Reviewed ahead of schedule


class SessionType(str, Enum):
    """Kind of study session."""
    DAILY = "daily"
    CUSTOM = "custom"
    CRAMMING = "cramming"


# ---- Forgetting Curve ----

DECAY = -0.5
FACTOR = 0.9 ** (1 / DECAY) - 1  # 19/81, so that R = 0.9 when t = S


# ---- Bounds ----

S_MIN = 0.01         # Minimum stability (days)
S_MAX = 36500.0      # Maximum stability (days)
INITIAL_S_MIN = 0.1  # Floor for first-review stability
D_MIN = 1.0          # Minimum difficulty
D_MAX = 10.0         # Maximum difficulty


# ---- Weights ----
# FSRS-5 defaults. w0-w3 initial stability, w4-w7 difficulty,
# w8-w10 recall stability, w11-w14 forget stability, w15 hard penalty,
# w16 easy bonus, w17-w18 short-term stability.

DEFAULT_WEIGHTS = (
    0.40255, 1.18385, 3.173, 15.69105,
    7.1949, 0.5345, 1.4604, 0.0046,
    1.54575, 0.1192, 1.01925,
    1.9395, 0.11, 0.29605, 2.2698,
    0.2315, 2.9898,
    0.51655, 0.6621,
)

FSRS5_WEIGHT_COUNT = 19
FSRS45_WEIGHT_COUNT = 17
SUPPORTED_WEIGHT_COUNTS = (FSRS45_WEIGHT_COUNT, FSRS5_WEIGHT_COUNT)


# ---- Policy Defaults ----

DEFAULT_REQUEST_RETENTION = 0.9
DEFAULT_MAXIMUM_INTERVAL = 36500
DEFAULT_LEARNING_STEPS = ("1m", "10m")
DEFAULT_RELEARNING_STEPS = ("10m",)


# ---- Fuzz Bands ----
# (start_days, end_days, factor): each band widens the fuzz window by
# factor * (portion of the interval falling inside the band).

FUZZ_MIN_INTERVAL = 2.5
FUZZ_RANGES = (
    (2.5, 7.0, 0.15),
    (7.0, 20.0, 0.10),
    (20.0, float("inf"), 0.05),
)


# ---- Time Units ----

MINUTES_PER_DAY = 1440
STEP_UNIT_MINUTES = {
    "s": 1 / 60,
    "m": 1.0,
    "h": 60.0,
    "d": float(MINUTES_PER_DAY),
}
