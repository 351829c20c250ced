# ABOUTME: Tests the tutor/learner fit scorers, skill recommendations, and candidate ranking.
# ABOUTME: Checks bounds, missing-profile degradation, and JSON profile loading.

import json

import pytest

from src.matching.profiles import InMemoryProfileDirectory, load_profile_directory
from src.matching.ranking import MatchingService
from src.matching.scoring import (
    LearningProfile,
    Location,
    SkillSnapshot,
    TeachingProfile,
    learner_fit_score,
    location_bonus,
    skill_recommendation_score,
    tutor_fit_score,
)

NAIROBI = Location(country="Kenya", city="Nairobi")


def test_tutor_fit_combines_terms_and_location_tiers():
    teaching = TeachingProfile(level=8, hours_taught=50, rating=4.5)
    learning = LearningProfile(current_level=3, target_level=8)
    # 15 hours + 36 rating + 20 level match
    assert tutor_fit_score(teaching, learning) == 71
    assert tutor_fit_score(teaching, learning, NAIROBI, Location("Kenya", "Mombasa")) == 81
    assert tutor_fit_score(teaching, learning, NAIROBI, NAIROBI) == 86


def test_tutor_fit_hours_saturate_and_score_is_capped():
    teaching = TeachingProfile(level=8, hours_taught=250, rating=5)
    learning = LearningProfile(target_level=8)
    assert tutor_fit_score(teaching, learning, NAIROBI, NAIROBI) == 100


def test_tutor_fit_without_teaching_entry_is_zero():
    assert tutor_fit_score(None, LearningProfile(target_level=5)) == 0


def test_tutor_fit_without_learning_entry_skips_level_term():
    assert tutor_fit_score(TeachingProfile(level=5, hours_taught=100, rating=5), None) == 70


def test_learner_fit_combines_terms():
    learning = LearningProfile(current_level=2, target_level=7, total_sessions=25)
    teaching = TeachingProfile(level=8)
    # 20 motivation + 15 activity + 20 reachable + 10 country
    assert learner_fit_score(learning, teaching, NAIROBI, Location("kenya", "Kisumu")) == 65
    assert learner_fit_score(learning, TeachingProfile(level=6)) == 35


def test_learner_fit_is_bounded_below_and_zero_without_entry():
    regressing = LearningProfile(current_level=9, target_level=1)
    assert learner_fit_score(regressing, None) == 0
    assert learner_fit_score(None, TeachingProfile(level=9)) == 0


def test_location_needs_both_countries():
    assert location_bonus(Location(), Location()) == 0
    assert location_bonus(NAIROBI, None) == 0
    assert location_bonus(Location("KENYA", "nairobi "), NAIROBI) == 15


def test_skill_recommendation_score():
    skill = SkillSnapshot(skill_id="py", industry_demand=80, total_learners=500, trending_score=50, difficulty=3)
    # 32 + 15 + 10 + 10
    assert skill_recommendation_score(skill, [2, 4]) == 67
    assert skill_recommendation_score(skill, [8, 9]) == 57


def test_skill_recommendation_without_learning_skills_uses_level_zero():
    easy = SkillSnapshot(skill_id="easy", difficulty=2)
    hard = SkillSnapshot(skill_id="hard", difficulty=7)
    assert skill_recommendation_score(easy) == 10
    assert skill_recommendation_score(hard) == 0


def test_skill_recommendation_is_capped():
    hot = SkillSnapshot(skill_id="ai", industry_demand=100, total_learners=5000, trending_score=100)
    assert skill_recommendation_score(hot) == 100


@pytest.fixture
def directory():
    d = InMemoryProfileDirectory()
    d.add_teaching("tutor-b", "py", TeachingProfile(level=7, hours_taught=40, rating=4))
    d.add_teaching("tutor-a", "py", TeachingProfile(level=7, hours_taught=40, rating=4))
    d.add_teaching("tutor-c", "py", TeachingProfile(level=9, hours_taught=120, rating=5))
    d.add_teaching("tutor-d", "js", TeachingProfile(level=9, hours_taught=120, rating=5))
    d.add_learning("learner", "py", LearningProfile(current_level=2, target_level=7, total_sessions=10))
    d.add_learning("learner-2", "py", LearningProfile(current_level=6, target_level=7))
    d.set_location("learner", NAIROBI)
    d.set_location("tutor-b", NAIROBI)
    d.add_skill(SkillSnapshot(skill_id="py", industry_demand=90))
    d.add_skill(SkillSnapshot(skill_id="go", industry_demand=60, difficulty=3))
    d.add_skill(SkillSnapshot(skill_id="rust", industry_demand=60, difficulty=3))
    return d


def test_rank_tutors_only_includes_tutors_of_the_skill(directory):
    ranked = MatchingService(directory).rank_tutors("learner", "py")
    assert [c.user_id for c in ranked] == ["tutor-c", "tutor-b", "tutor-a"]
    assert all(0 <= c.score <= 100 for c in ranked)
    assert ranked[0].reason.startswith("Match ")


def test_rank_tutors_breaks_ties_by_id(directory):
    directory.set_location("tutor-b", Location())
    ranked = MatchingService(directory).rank_tutors("learner", "py", limit=3)
    assert [c.user_id for c in ranked][1:] == ["tutor-a", "tutor-b"]
    assert ranked[1].score == ranked[2].score


def test_rank_learners_for_tutor(directory):
    ranked = MatchingService(directory).rank_learners("tutor-c", "py")
    assert [c.user_id for c in ranked] == ["learner", "learner-2"]


def test_match_scores_for_unrelated_skill_are_zero(directory):
    assert MatchingService(directory).match_scores("tutor-a", "learner", "js") == (0, 0)


def test_recommend_skills_excludes_learned_skills(directory):
    recs = MatchingService(directory).recommend_skills("learner")
    assert [r.skill_id for r in recs] == ["go", "rust"]
    assert recs[0].score == recs[1].score


def test_load_profile_directory_from_json(tmp_path):
    doc = {
        "teaching": {"tutor-1": {"py": {"level": 6, "hours_taught": 20, "rating": 4.0}}},
        "learning": {"learner-1": {"py": {"current_level": 1, "target_level": 6, "total_sessions": 5}}},
        "locations": {"tutor-1": {"country": "Ghana", "city": "Accra"}},
        "skills": [{"skill_id": "py", "industry_demand": 70}],
    }
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps(doc))

    directory = load_profile_directory(path)
    assert directory.get_teaching_profile("tutor-1", "py").rating == 4.0
    assert directory.get_learning_profile("learner-1", "py").target_level == 6
    assert directory.get_location("tutor-1").city == "Accra"
    assert directory.get_location("learner-1") is None
    assert [s.skill_id for s in directory.skills()] == ["py"]
