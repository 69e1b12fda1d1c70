"""
Storage backends for cards, review logs, settings and sessions.

Quick start:
    from flashbag.storage import get_store

    store = get_store()  # backend chosen by STORAGE_BACKEND
"""

from __future__ import annotations

from typing import Optional

from flashbag.config import get_storage_backend
from flashbag.storage.base import ReviewStore
from flashbag.storage.records import StoredCard, StudySession

# Global store (reused across requests)
_store: Optional[ReviewStore] = None


def get_store() -> ReviewStore:
    """
    Get the configured review store.

    The first call connects (and creates SQL tables if needed); later calls
    reuse the same store.
    """
    global _store

    if _store is not None:
        return _store

    if get_storage_backend() == "mongo":
        from flashbag.storage.mongo_store import MongoReviewStore
        mongo_store = MongoReviewStore()
        mongo_store.ensure_indexes()
        _store = mongo_store
    else:
        from flashbag.storage.sql_store import SqlReviewStore
        sql_store = SqlReviewStore()
        sql_store.init_db()
        _store = sql_store

    return _store


def set_store(store: Optional[ReviewStore]) -> None:
    """Replace (or clear, with None) the global store."""
    global _store
    _store = store


__all__ = [
    "ReviewStore",
    "StoredCard",
    "StudySession",
    "get_store",
    "set_store",
]
