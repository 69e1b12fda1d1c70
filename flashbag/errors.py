"""
Error taxonomy for review scheduling.

NotFoundError and ConfigurationMissingError are surfaced to the caller as-is.
SchedulingError covers faults in the engine itself and is never retried.
"""

from __future__ import annotations

from typing import Iterable


class FlashbagError(Exception):
    """Base class for all flashbag errors."""


class NotFoundError(FlashbagError):
    """Card does not exist or does not belong to the requesting user."""

    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class ConfigurationMissingError(FlashbagError):
    """User has no usable scheduling parameters record."""

    def __init__(self, user_id: str, detail: str | None = None):
        message = f"Scheduling parameters not found for user: {user_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.user_id = user_id


class ConcurrentReviewError(FlashbagError):
    """The card kept changing underneath the review; every attempt lost the race."""

    def __init__(self, card_id: str, attempts: int):
        super().__init__(
            f"Card {card_id} was modified concurrently; gave up after {attempts} attempts"
        )
        self.card_id = card_id
        self.attempts = attempts


class WriteConflictError(FlashbagError):
    """The store aborted a transaction because another one wrote the same record."""


class SchedulingError(FlashbagError):
    """The scheduler engine could not produce a valid result."""


class IncompleteResultError(SchedulingError):
    """
    The engine output is missing required elapsed-day fields.

    Treated as a data-integrity fault: a defaulted elapsed-day value would
    corrupt every later interval computed from it.
    """

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields = tuple(missing_fields)
        super().__init__(
            "Scheduling result is incomplete, missing: " + ", ".join(self.missing_fields)
        )


class InvalidRatingError(SchedulingError):
    """A Manual or out-of-range rating was supplied to a live review."""

    def __init__(self, rating: object):
        super().__init__(
            f"Invalid rating {rating!r}: expected 1 (Again), 2 (Hard), 3 (Good) or 4 (Easy)"
        )
        self.rating = rating
