"""
Pydantic model for per-user scheduling parameters.

The stored user-settings document uses short field names (w,
request_retention, ...), so the model accepts those as aliases.
"""

from __future__ import annotations

import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flashbag.fsrs.constants import (
    DEFAULT_LEARNING_STEPS,
    DEFAULT_MAXIMUM_INTERVAL,
    DEFAULT_RELEARNING_STEPS,
    DEFAULT_REQUEST_RETENTION,
    DEFAULT_WEIGHTS,
    FSRS45_WEIGHT_COUNT,
    FSRS5_WEIGHT_COUNT,
    STEP_UNIT_MINUTES,
)


STEP_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smhd])\s*$")


def parse_step(step: str) -> float:
    """
    Parse a learning step string into minutes.

    Examples: "30s" -> 0.5, "1m" -> 1.0, "10m" -> 10.0, "1h" -> 60.0, "1d" -> 1440.0

    Raises:
        ValueError: if the string is not a positive number with a s/m/h/d unit
    """
    match = STEP_PATTERN.match(step)
    if not match:
        raise ValueError(f"Invalid learning step {step!r}; expected e.g. '1m', '10m', '1h', '1d'")
    value = float(match.group(1)) * STEP_UNIT_MINUTES[match.group(2)]
    if value <= 0:
        raise ValueError(f"Learning step {step!r} must be positive")
    return value


def migrate_weights(weights: tuple[float, ...]) -> tuple[float, ...]:
    """
    Convert FSRS-4.5 weights (17) to the FSRS-5 layout (19).

    FSRS-5 changed the initial-difficulty curve from linear to exponential and
    added two short-term stability weights. The conversion keeps the
    initial difficulty of Good and Easy close to the 4.5 fit and disables the
    short-term terms (w17 = w18 = 0).
    """
    if len(weights) == FSRS5_WEIGHT_COUNT:
        return tuple(weights)
    if len(weights) != FSRS45_WEIGHT_COUNT:
        raise ValueError(f"Cannot migrate {len(weights)} weights")

    w = list(weights)
    w[4] = round(w[5] * 2 + w[4], 8)
    w[5] = round(math.log(w[5] * 3 + 1) / 3, 8)
    w[6] = round(w[6] + 0.5, 8)
    return tuple(w + [0.0, 0.0])


class SchedulingParameters(BaseModel):
    """Validated, read-only scheduling configuration for one user."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    weights: tuple[float, ...] = Field(
        default=DEFAULT_WEIGHTS,
        alias="w",
        description="17 (FSRS-4.5, migrated) or 19 (FSRS-5) model weights",
    )
    request_retention: float = Field(
        default=DEFAULT_REQUEST_RETENTION,
        gt=0.0,
        lt=1.0,
        description="Target recall probability at the next review",
    )
    maximum_interval: int = Field(
        default=DEFAULT_MAXIMUM_INTERVAL,
        ge=1,
        description="Upper bound on scheduled intervals, in days",
    )
    enable_fuzz: bool = False
    enable_short_term: bool = True
    learning_steps: tuple[str, ...] = DEFAULT_LEARNING_STEPS
    relearning_steps: tuple[str, ...] = DEFAULT_RELEARNING_STEPS

    @field_validator("weights")
    @classmethod
    def _check_weights(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if len(value) not in (FSRS45_WEIGHT_COUNT, FSRS5_WEIGHT_COUNT):
            raise ValueError(
                f"Expected {FSRS45_WEIGHT_COUNT} (FSRS-4.5) or {FSRS5_WEIGHT_COUNT} (FSRS-5) weights, "
                f"got {len(value)}; no FSRS version uses {FSRS45_WEIGHT_COUNT + 1}"
            )
        if not all(math.isfinite(w) for w in value):
            raise ValueError("Weights must be finite numbers")
        return migrate_weights(value)

    @field_validator("learning_steps", "relearning_steps")
    @classmethod
    def _check_steps(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for step in value:
            parse_step(step)
        return tuple(step.strip() for step in value)

    # ---- Derived values ----

    @property
    def learning_step_minutes(self) -> tuple[float, ...]:
        return tuple(parse_step(step) for step in self.learning_steps)

    @property
    def relearning_step_minutes(self) -> tuple[float, ...]:
        return tuple(parse_step(step) for step in self.relearning_steps)

    # ---- Documents ----

    def to_document(self) -> dict[str, Any]:
        """Serialize using the stored field names."""
        doc = self.model_dump(by_alias=True)
        doc["w"] = list(doc["w"])
        doc["learning_steps"] = list(doc["learning_steps"])
        doc["relearning_steps"] = list(doc["relearning_steps"])
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "SchedulingParameters":
        """Validate a stored user-settings parameters document."""
        return cls.model_validate(doc)


def default_parameters() -> SchedulingParameters:
    """Parameters new users are provisioned with."""
    return SchedulingParameters()
