# ABOUTME: Exposes the tutor/learner matching scorers and ranking service.
# ABOUTME: Groups pure scorers, profile snapshots, and candidate ranking.

from .scoring import learner_fit_score, skill_recommendation_score, tutor_fit_score
from .profiles import InMemoryProfileDirectory, load_profile_directory
from .ranking import MatchingService

__all__ = [
    "tutor_fit_score",
    "learner_fit_score",
    "skill_recommendation_score",
    "InMemoryProfileDirectory",
    "load_profile_directory",
    "MatchingService",
]
