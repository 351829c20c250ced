# ABOUTME: Groups the activity analytics aggregators and the service that runs them.
# ABOUTME: Re-exports the heatmap, distribution, consistency, and leaderboard entrypoints.

from .engagement import compute_engagement_score, engagement_from_session
from .heatmap import build_activity_heatmap
from .distribution import analyze_score_distribution
from .consistency import record_assignment_submission, record_session_attendance, track_consistency
from .leaderboard import build_leaderboard
from .service import AnalyticsService

__all__ = [
    "compute_engagement_score",
    "engagement_from_session",
    "build_activity_heatmap",
    "analyze_score_distribution",
    "track_consistency",
    "record_session_attendance",
    "record_assignment_submission",
    "build_leaderboard",
    "AnalyticsService",
]
