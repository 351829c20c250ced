# ABOUTME: Exposes the 0-100 engagement rubric and builds engagement records for attended sessions.
# ABOUTME: The rubric itself lives beside EngagementRecord, which derives its score on construction.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from src.common.schemas import (
    EngagementActivities,
    EngagementRecord,
    EngagementWeights,
    compute_engagement_score,
)

__all__ = ["EngagementWeights", "compute_engagement_score", "engagement_from_session"]

DEFAULT_SESSION_MINUTES = 60


def engagement_from_session(
    tutor_id: str,
    learner_id: str,
    scheduled_at: datetime,
    duration_minutes: Optional[float] = None,
    session_id: Optional[str] = None,
    skill_id: Optional[str] = None,
) -> EngagementRecord:
    """Engagement record for an attended session; duration defaults to one hour."""
    return EngagementRecord(
        subject_id=learner_id,
        counterpart_id=tutor_id,
        activity_at=scheduled_at,
        activities=EngagementActivities(session_attended=True),
        duration_minutes=duration_minutes or DEFAULT_SESSION_MINUTES,
        session_id=session_id,
        skill_id=skill_id,
    )
