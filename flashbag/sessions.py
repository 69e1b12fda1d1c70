"""
Study session lifecycle.

A session is opened before reviewing and closed afterwards; closing it
writes the statistics of every review logged under its id.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from flashbag.analytics.service import build_session_summary
from flashbag.analytics.types import SessionSummary
from flashbag.fsrs.constants import SessionType
from flashbag.storage.base import ReviewStore
from flashbag.storage.records import StudySession
from flashbag.timeutils import to_epoch_ms, truncate_to_ms, utc_now

logger = logging.getLogger(__name__)


def start_session(
    store: ReviewStore,
    user_id: str,
    session_type: SessionType = SessionType.DAILY,
    now: Optional[datetime] = None
) -> str:
    """
    Open a study session.

    Returns:
        The new session id, to pass along with each review
    """
    session = StudySession(
        id=uuid.uuid4().hex,
        user_id=user_id,
        session_type=SessionType(session_type),
        start_time=truncate_to_ms(now or utc_now()),
    )
    store.insert_study_session(session)
    logger.info(f"Study session started: id={session.id} user={user_id} type={session.session_type.value}")
    return session.id


def end_session(
    store: ReviewStore,
    session_id: str,
    now: Optional[datetime] = None
) -> Optional[SessionSummary]:
    """
    Close a study session and store its statistics.

    Returns:
        The session summary, or None if the session does not exist
    """
    session = store.get_study_session(session_id)
    if session is None:
        logger.warning(f"Study session not found: {session_id}")
        return None

    summary = build_session_summary(store, session_id)
    fields = summary.to_fields()
    fields["end_time"] = to_epoch_ms(now or utc_now())
    store.update_study_session(session_id, fields)

    logger.info(
        f"Study session ended: id={session_id} reviewed={summary.cards_reviewed} "
        f"again={summary.again_count}"
    )
    return summary
