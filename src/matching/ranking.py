# ABOUTME: Ranks tutors, learners, and skills for one user by combining profile lookups with the scorers.
# ABOUTME: Results are ordered by score descending, ties broken by id ascending.

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from .profiles import InMemoryProfileDirectory
from .scoring import (
    MatchCandidate,
    SkillSnapshot,
    learner_fit_score,
    match_reason,
    skill_recommendation_score,
    tutor_fit_score,
)

logger = logging.getLogger(__name__)


def _ranked(candidates: Iterable[MatchCandidate], limit: Optional[int]) -> List[MatchCandidate]:
    ordered = sorted(candidates, key=lambda c: (-c.score, c.user_id))
    return ordered if limit is None else ordered[:limit]


class MatchingService:
    def __init__(self, profiles: InMemoryProfileDirectory):
        self.profiles = profiles

    def match_scores(self, tutor_id: str, learner_id: str, skill_id: str) -> Tuple[int, int]:
        """(tutor fit, learner fit) for one tutor/learner pair on one skill."""
        teaching = self.profiles.get_teaching_profile(tutor_id, skill_id)
        learning = self.profiles.get_learning_profile(learner_id, skill_id)
        tutor_loc = self.profiles.get_location(tutor_id)
        learner_loc = self.profiles.get_location(learner_id)
        return (
            tutor_fit_score(teaching, learning, tutor_loc, learner_loc),
            learner_fit_score(learning, teaching, learner_loc, tutor_loc),
        )

    def build_candidate(self, tutor_id: str, learner_id: str, skill_id: str) -> MatchCandidate:
        teaching = self.profiles.get_teaching_profile(tutor_id, skill_id)
        learning = self.profiles.get_learning_profile(learner_id, skill_id)
        score, _ = self.match_scores(tutor_id, learner_id, skill_id)
        return MatchCandidate(
            user_id=tutor_id, skill_id=skill_id, score=score, reason=match_reason(teaching, learning, score)
        )

    def rank_tutors(self, learner_id: str, skill_id: str, limit: Optional[int] = None) -> List[MatchCandidate]:
        tutors = [t for t in self.profiles.tutors_for(skill_id) if t != learner_id]
        logger.info("Scoring %d tutors for learner %s on skill %s", len(tutors), learner_id, skill_id)
        return _ranked((self.build_candidate(t, learner_id, skill_id) for t in tutors), limit)

    def rank_learners(self, tutor_id: str, skill_id: str, limit: Optional[int] = None) -> List[MatchCandidate]:
        if self.profiles.get_teaching_profile(tutor_id, skill_id) is None:
            logger.warning("Tutor %s does not teach skill %s", tutor_id, skill_id)
        learners = [u for u in self.profiles.learners_for(skill_id) if u != tutor_id]
        candidates = []
        for learner_id in learners:
            _, score = self.match_scores(tutor_id, learner_id, skill_id)
            learning = self.profiles.get_learning_profile(learner_id, skill_id)
            candidates.append(
                MatchCandidate(
                    user_id=learner_id,
                    skill_id=skill_id,
                    score=score,
                    reason=f"Wants to reach level {learning.target_level:g} from {learning.current_level:g}",
                )
            )
        return _ranked(candidates, limit)

    def recommend_skills(
        self, user_id: str, skills: Optional[Iterable[SkillSnapshot]] = None, limit: Optional[int] = None
    ) -> List[MatchCandidate]:
        """Score skills the user is not already learning against their average current level."""
        learning = self.profiles.learning_profiles(user_id)
        levels = [p.current_level for p in learning.values()]
        pool = list(skills) if skills is not None else self.profiles.skills()
        candidates = []
        for skill in pool:
            if skill.skill_id in learning:
                continue
            score = skill_recommendation_score(skill, levels)
            candidates.append(
                MatchCandidate(
                    user_id=user_id,
                    skill_id=skill.skill_id,
                    score=score,
                    reason=f"Demand {skill.industry_demand:g}, trending {skill.trending_score:g}",
                )
            )
        ordered = sorted(candidates, key=lambda c: (-c.score, c.skill_id))
        return ordered if limit is None else ordered[:limit]
