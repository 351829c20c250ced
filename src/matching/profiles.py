# ABOUTME: Entity snapshot contract used by the matcher plus an in-memory, JSON-loadable directory.
# ABOUTME: Lookups return None for unknown users or skills so scorers can degrade to zero.

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from .scoring import LearningProfile, Location, SkillSnapshot, TeachingProfile


class ProfileDirectory(Protocol):
    def get_teaching_profile(self, user_id: str, skill_id: str) -> Optional[TeachingProfile]:
        ...

    def get_learning_profile(self, user_id: str, skill_id: str) -> Optional[LearningProfile]:
        ...

    def get_location(self, user_id: str) -> Optional[Location]:
        ...


class InMemoryProfileDirectory:
    """Teaching and learning skill entries keyed by (user, skill), plus user locations and skills."""

    def __init__(self) -> None:
        self._teaching: Dict[Tuple[str, str], TeachingProfile] = {}
        self._learning: Dict[Tuple[str, str], LearningProfile] = {}
        self._locations: Dict[str, Location] = {}
        self._skills: Dict[str, SkillSnapshot] = {}

    def add_teaching(self, user_id: str, skill_id: str, profile: TeachingProfile) -> None:
        self._teaching[(user_id, skill_id)] = profile

    def add_learning(self, user_id: str, skill_id: str, profile: LearningProfile) -> None:
        self._learning[(user_id, skill_id)] = profile

    def set_location(self, user_id: str, location: Location) -> None:
        self._locations[user_id] = location

    def add_skill(self, skill: SkillSnapshot) -> None:
        self._skills[skill.skill_id] = skill

    def get_teaching_profile(self, user_id: str, skill_id: str) -> Optional[TeachingProfile]:
        return self._teaching.get((user_id, skill_id))

    def get_learning_profile(self, user_id: str, skill_id: str) -> Optional[LearningProfile]:
        return self._learning.get((user_id, skill_id))

    def get_location(self, user_id: str) -> Optional[Location]:
        return self._locations.get(user_id)

    def tutors_for(self, skill_id: str) -> List[str]:
        return sorted(uid for uid, sid in self._teaching if sid == skill_id)

    def learners_for(self, skill_id: str) -> List[str]:
        return sorted(uid for uid, sid in self._learning if sid == skill_id)

    def learning_profiles(self, user_id: str) -> Dict[str, LearningProfile]:
        return {sid: p for (uid, sid), p in self._learning.items() if uid == user_id}

    def skills(self) -> List[SkillSnapshot]:
        return [self._skills[k] for k in sorted(self._skills)]


def _section(doc: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = doc.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Profiles section '{name}' must be an object keyed by user id.")
    return section


def build_profile_directory(doc: Mapping[str, Any]) -> InMemoryProfileDirectory:
    directory = InMemoryProfileDirectory()
    for user_id, skills in _section(doc, "teaching").items():
        for skill_id, values in skills.items():
            directory.add_teaching(user_id, skill_id, TeachingProfile(**values))
    for user_id, skills in _section(doc, "learning").items():
        for skill_id, values in skills.items():
            directory.add_learning(user_id, skill_id, LearningProfile(**values))
    for user_id, values in _section(doc, "locations").items():
        directory.set_location(user_id, Location(**values))
    for values in doc.get("skills") or []:
        directory.add_skill(SkillSnapshot(**values))
    return directory


def load_profile_directory(path: Path) -> InMemoryProfileDirectory:
    """Read a JSON profiles document with ``teaching``, ``learning``, ``locations`` and optional ``skills``."""
    with open(path) as f:
        doc = json.load(f)
    return build_profile_directory(doc)
