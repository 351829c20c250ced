# ABOUTME: Ranks learners on a weighted activity score and locates one user among their peers.
# ABOUTME: Honors leaderboard opt-outs and supports narrowing to learners of one skill category.

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from src.common.schemas import round_half_up

DEFAULT_LIMIT = 20
NEARBY_WINDOW = 5


class LeaderboardWeights:
    POINTS = 1
    HOURS = 2
    SKILLS_COMPLETED = 50
    AVERAGE_PROGRESS = 100
    LEVEL = 30
    BADGES = 20


@dataclass(frozen=True)
class LearnerStanding:
    user_id: str
    total_points: float = 0
    total_hours: float = 0
    skills_completed: int = 0
    average_progress: float = 0.0
    current_level: int = 0
    badges_earned: int = 0
    categories: FrozenSet[str] = field(default_factory=frozenset)
    show_in_leaderboard: bool = True


def leaderboard_score(standing: LearnerStanding) -> int:
    w = LeaderboardWeights
    score = (
        standing.total_points * w.POINTS
        + standing.total_hours * w.HOURS
        + standing.skills_completed * w.SKILLS_COMPLETED
        + standing.average_progress * w.AVERAGE_PROGRESS
        + standing.current_level * w.LEVEL
        + standing.badges_earned * w.BADGES
    )
    return int(round_half_up(score))


def display_name(user_id: str) -> str:
    return f"Learner #{user_id[-4:]}"


@dataclass
class LeaderboardEntry:
    rank: int
    user_id: str
    display_name: str
    score: int
    is_current_user: bool


@dataclass
class Leaderboard:
    user_rank: int
    total_users: int
    percentile: int
    top: List[LeaderboardEntry]
    nearby: List[LeaderboardEntry]
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_leaderboard(
    standings: Iterable[LearnerStanding],
    user_id: str,
    limit: int = DEFAULT_LIMIT,
    category: Optional[str] = None,
) -> Leaderboard:
    """
    Rank visible learners by score, highest first, ties broken by user id.

    A user who is not on the board (opted out or filtered away) is reported
    at rank ``total + 1`` with no neighbours.
    """

    visible = [
        s for s in standings if s.show_in_leaderboard and (category is None or category in s.categories)
    ]
    scored = sorted(((leaderboard_score(s), s.user_id) for s in visible), key=lambda pair: (-pair[0], pair[1]))
    entries = [
        LeaderboardEntry(
            rank=index + 1,
            user_id=uid,
            display_name=display_name(uid),
            score=score,
            is_current_user=uid == user_id,
        )
        for index, (score, uid) in enumerate(scored)
    ]

    total = len(entries)
    mine = next((e for e in entries if e.is_current_user), None)
    user_rank = mine.rank if mine is not None else total + 1
    percentile = int(round_half_up((total - user_rank + 1) / total * 100)) if total else 0

    nearby: List[LeaderboardEntry] = []
    if mine is not None:
        first = max(0, user_rank - 1 - NEARBY_WINDOW)
        nearby = entries[first : user_rank + NEARBY_WINDOW]

    return Leaderboard(
        user_rank=user_rank,
        total_users=total,
        percentile=percentile,
        top=entries[:limit],
        nearby=nearby,
        category=category,
    )
