"""
Conversions between aware UTC datetimes and epoch-millisecond instants.

Storage and the caller-facing API speak epoch milliseconds; the engine works
on aware UTC datetimes truncated to millisecond precision so that a stored
and reloaded instant compares equal to the original.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MS = timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_to_ms(value: datetime) -> datetime:
    """Drop sub-millisecond precision."""
    value = ensure_utc(value)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds."""
    return (ensure_utc(value) - EPOCH) // ONE_MS


def from_epoch_ms(value: int) -> datetime:
    """Convert integer epoch milliseconds to an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=int(value))


def optional_to_epoch_ms(value: Optional[datetime]) -> Optional[int]:
    return to_epoch_ms(value) if value is not None else None


def optional_from_epoch_ms(value: Optional[int]) -> Optional[datetime]:
    return from_epoch_ms(value) if value is not None else None
