"""
Analytics package exports.
"""

from flashbag.analytics.service import (
    build_bag_stats,
    build_review_history,
    build_session_summary,
)
from flashbag.analytics.types import BagCardStats, ReviewHistory, SessionSummary

__all__ = [
    "build_bag_stats",
    "build_review_history",
    "build_session_summary",
    "BagCardStats",
    "ReviewHistory",
    "SessionSummary",
]
