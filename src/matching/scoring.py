# ABOUTME: Pure weighted scorers for tutor fit, learner fit, and skill recommendations.
# ABOUTME: Every score is bounded to [0, 100]; missing profile data zeroes a term instead of raising.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from src.common.schemas import round_half_up


class MatchWeights:
    # Tutor fit
    TUTOR_HOURS = 30
    TUTOR_RATING = 40
    TUTOR_LEVEL_MATCH = 20
    SAME_COUNTRY = 10
    SAME_CITY = 5
    HOURS_SATURATION = 100
    MAX_RATING = 5
    LEVEL_SPAN = 10

    # Learner fit
    LEARNER_MOTIVATION = 40
    LEARNER_ACTIVITY = 30
    LEARNER_LEVEL_REACHABLE = 20
    SESSIONS_SCALE = 50

    # Skill recommendation
    INDUSTRY_DEMAND = 40
    LEARNER_DEMAND = 30
    TRENDING = 20
    DIFFICULTY_FIT = 10
    LEARNERS_SCALE = 1000
    DIFFICULTY_TOLERANCE = 2


@dataclass(frozen=True)
class TeachingProfile:
    level: float = 0
    hours_taught: float = 0
    rating: float = 0


@dataclass(frozen=True)
class LearningProfile:
    current_level: float = 0
    target_level: float = 0
    total_sessions: int = 0


@dataclass(frozen=True)
class Location:
    country: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class SkillSnapshot:
    skill_id: str
    industry_demand: float = 0
    total_learners: int = 0
    trending_score: float = 0
    difficulty: float = 0


@dataclass
class MatchCandidate:
    user_id: str
    skill_id: str
    score: int
    reason: str


def bounded_score(raw: float) -> int:
    return int(max(0, min(100, round_half_up(raw))))


def _same(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a.strip().casefold() == b.strip().casefold()


def location_bonus(a: Optional[Location], b: Optional[Location], include_city: bool = True) -> float:
    """Country match earns the base bonus; a city match on top of it earns the extra tier."""
    if a is None or b is None or not _same(a.country, b.country):
        return 0.0
    bonus = MatchWeights.SAME_COUNTRY
    if include_city and _same(a.city, b.city):
        bonus += MatchWeights.SAME_CITY
    return float(bonus)


def tutor_fit_score(
    teaching: Optional[TeachingProfile],
    learning: Optional[LearningProfile],
    tutor_location: Optional[Location] = None,
    learner_location: Optional[Location] = None,
) -> int:
    """
    How well a tutor suits a learner for one skill.

    A tutor who does not teach the skill scores 0. Teaching hours stop
    counting after 100; the level term compares the tutor's level with the
    learner's target and is skipped when the learner has no entry for the skill.
    """

    if teaching is None:
        return 0
    w = MatchWeights
    score = min(teaching.hours_taught / w.HOURS_SATURATION, 1.0) * w.TUTOR_HOURS
    score += teaching.rating / w.MAX_RATING * w.TUTOR_RATING
    if learning is not None:
        gap = abs(teaching.level - learning.target_level)
        score += max(0.0, (w.LEVEL_SPAN - gap) / w.LEVEL_SPAN) * w.TUTOR_LEVEL_MATCH
    score += location_bonus(tutor_location, learner_location)
    return bounded_score(score)


def learner_fit_score(
    learning: Optional[LearningProfile],
    teaching: Optional[TeachingProfile],
    learner_location: Optional[Location] = None,
    tutor_location: Optional[Location] = None,
) -> int:
    """How promising a learner is for a tutor on one skill; 0 if they are not learning it."""

    if learning is None:
        return 0
    w = MatchWeights
    score = (learning.target_level - learning.current_level) / w.LEVEL_SPAN * w.LEARNER_MOTIVATION
    score += learning.total_sessions / w.SESSIONS_SCALE * w.LEARNER_ACTIVITY
    if teaching is not None and teaching.level >= learning.target_level:
        score += w.LEARNER_LEVEL_REACHABLE
    score += location_bonus(learner_location, tutor_location, include_city=False)
    return bounded_score(score)


def average_level(current_levels: Sequence[float]) -> float:
    return sum(current_levels) / len(current_levels) if current_levels else 0.0


def skill_recommendation_score(skill: SkillSnapshot, current_levels: Sequence[float] = ()) -> int:
    w = MatchWeights
    score = skill.industry_demand / 100 * w.INDUSTRY_DEMAND
    score += skill.total_learners / w.LEARNERS_SCALE * w.LEARNER_DEMAND
    score += skill.trending_score / 100 * w.TRENDING
    if abs(skill.difficulty - average_level(current_levels)) <= w.DIFFICULTY_TOLERANCE:
        score += w.DIFFICULTY_FIT
    return bounded_score(score)


def match_reason(teaching: Optional[TeachingProfile], learning: Optional[LearningProfile], score: int) -> str:
    if teaching is None:
        return "Does not teach this skill"
    parts = [f"rating {teaching.rating:.1f}/5", f"{teaching.hours_taught:g}h taught", f"level {teaching.level:g}"]
    if learning is not None:
        parts.append(f"learner target {learning.target_level:g}")
    return f"Match {score}/100: " + ", ".join(parts)
