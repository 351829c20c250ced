# ABOUTME: Defines the activity fact records shared by every analytics component.
# ABOUTME: Derived fields are computed on construction and can never be supplied by callers.

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from .ranges import ensure_utc

PERFORMANCE_CATEGORIES = ("quiz", "test", "assignment", "project", "overall")
ACADEMIC_PERIODS = ("weekly", "monthly", "quarterly", "semester", "yearly")
DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced", "expert")
PUNCTUALITY_VALUES = ("on_time", "late", "very_late")
ASSIGNMENT_STATUSES = ("submitted", "late", "missing", "pending")
SUBMITTED_STATUSES = frozenset({"submitted", "late"})

# Day 0 is Sunday.
DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

GRADE_CUTOFFS = (
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (60, "D"),
)
TREND_THRESHOLD_PCT = 5.0


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for non-negative values, unlike banker's round()."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def day_of_week(instant: datetime) -> int:
    return (ensure_utc(instant).weekday() + 1) % 7


def letter_grade(score: float) -> str:
    for cutoff, grade in GRADE_CUTOFFS:
        if score >= cutoff:
            return grade
    return "F"


@dataclass(frozen=True)
class ScoreTrend:
    previous_score: float
    improvement: float
    direction: str


def score_trend(score: float, previous_score: Optional[float]) -> Optional[ScoreTrend]:
    """Classify the change against a previous score using a +/-5% band."""
    if previous_score is None:
        return None
    if previous_score == 0:
        improvement = 0.0
    else:
        improvement = (score - previous_score) / previous_score * 100
    if improvement > TREND_THRESHOLD_PCT:
        direction = "improving"
    elif improvement < -TREND_THRESHOLD_PCT:
        direction = "declining"
    else:
        direction = "stable"
    return ScoreTrend(
        previous_score=float(previous_score),
        improvement=round(improvement, 1),
        direction=direction,
    )


@dataclass(frozen=True)
class EngagementActivities:
    session_attended: bool = False
    assignment_submitted: bool = False
    messages_sent: int = 0
    material_viewed: bool = False
    assessment_taken: bool = False


class EngagementWeights:
    SESSION_ATTENDED = 30
    ASSIGNMENT_SUBMITTED = 25
    PER_MESSAGE = 5
    MESSAGES_CAP = 15
    MATERIAL_VIEWED = 15
    ASSESSMENT_TAKEN = 15
    DURATION_BONUS = 10
    FULL_DURATION_MINUTES = 60
    MAX_SCORE = 100


def compute_engagement_score(activities: Optional[EngagementActivities], duration_minutes: float = 0) -> int:
    """
    Weighted engagement score for one observation.

    Messages saturate at three and the duration bonus is linear up to an hour,
    so the raw total never needs more than a final cap at 100.
    """

    activities = activities or EngagementActivities()
    w = EngagementWeights
    score = 0.0
    if activities.session_attended:
        score += w.SESSION_ATTENDED
    if activities.assignment_submitted:
        score += w.ASSIGNMENT_SUBMITTED
    score += min(max(activities.messages_sent or 0, 0) * w.PER_MESSAGE, w.MESSAGES_CAP)
    if activities.material_viewed:
        score += w.MATERIAL_VIEWED
    if activities.assessment_taken:
        score += w.ASSESSMENT_TAKEN
    if duration_minutes and duration_minutes > 0:
        score += w.DURATION_BONUS * min(duration_minutes / w.FULL_DURATION_MINUTES, 1.0)
    return int(round_half_up(min(score, w.MAX_SCORE)))


@dataclass(frozen=True)
class EngagementRecord:
    """One observation of activity between a student and a tutor at an instant."""

    subject_id: str
    counterpart_id: str
    activity_at: datetime
    activities: EngagementActivities = field(default_factory=EngagementActivities)
    duration_minutes: float = 0
    session_id: Optional[str] = None
    skill_id: Optional[str] = None
    day_of_week: int = field(init=False)
    hour_of_day: int = field(init=False)
    engagement_score: int = field(init=False)

    def __post_init__(self) -> None:
        instant = ensure_utc(self.activity_at)
        object.__setattr__(self, "activity_at", instant)
        object.__setattr__(self, "day_of_week", day_of_week(instant))
        object.__setattr__(self, "hour_of_day", instant.hour)
        object.__setattr__(
            self,
            "engagement_score",
            compute_engagement_score(self.activities, self.duration_minutes),
        )


@dataclass(frozen=True)
class PerformanceMetrics:
    attempt_number: int = 1
    time_spent: Optional[float] = None
    completion_rate: Optional[float] = None
    difficulty: Optional[str] = None

    def __post_init__(self) -> None:
        if self.difficulty is not None and self.difficulty not in DIFFICULTY_LEVELS:
            raise ValueError(f"Unsupported difficulty '{self.difficulty}'.")


@dataclass(frozen=True)
class PerformanceRecord:
    """One graded outcome for a student; grade and trend derive from the score."""

    subject_id: str
    counterpart_id: str
    record_date: datetime
    category: str
    score: float
    previous_score: Optional[float] = None
    academic_period: str = "monthly"
    skill_id: Optional[str] = None
    session_id: Optional[str] = None
    assessment_id: Optional[str] = None
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    grade: str = field(init=False)
    trend: Optional[ScoreTrend] = field(init=False)

    def __post_init__(self) -> None:
        if self.category not in PERFORMANCE_CATEGORIES:
            raise ValueError(
                f"Unsupported category '{self.category}'. Expected one of: {', '.join(PERFORMANCE_CATEGORIES)}."
            )
        if self.academic_period not in ACADEMIC_PERIODS:
            raise ValueError(f"Unsupported academic period '{self.academic_period}'.")
        if not 0 <= self.score <= 100:
            raise ValueError(f"Score {self.score} is outside [0, 100].")
        object.__setattr__(self, "record_date", ensure_utc(self.record_date))
        object.__setattr__(self, "grade", letter_grade(self.score))
        object.__setattr__(self, "trend", score_trend(self.score, self.previous_score))


@dataclass(frozen=True)
class AttendanceEntry:
    present: bool = False
    punctuality: Optional[str] = None
    minutes_late: int = 0
    participation_score: Optional[float] = None
    session_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.punctuality is not None:
            if self.punctuality not in PUNCTUALITY_VALUES:
                raise ValueError(f"{self.punctuality} is not a valid punctuality status")
            if not self.present:
                raise ValueError("Punctuality can only be recorded for a present student.")
        if self.participation_score is not None and not 0 <= self.participation_score <= 10:
            raise ValueError(f"Participation score {self.participation_score} is outside [0, 10].")


@dataclass(frozen=True)
class AssignmentEntry:
    assignment_id: Optional[str] = None
    title: Optional[str] = None
    due_date: Optional[date] = None
    submitted_date: Optional[date] = None
    status: str = "pending"
    score: Optional[float] = None
    submitted_on_time: Optional[bool] = None
    days_late: int = 0

    def __post_init__(self) -> None:
        if self.status not in ASSIGNMENT_STATUSES:
            raise ValueError(f"Unsupported assignment status '{self.status}'.")

    @property
    def is_submitted(self) -> bool:
        return self.status in SUBMITTED_STATUSES


@dataclass(frozen=True)
class DailyMetrics:
    total_activities: int
    attendance_status: str
    assignments_submitted: int
    assignments_due: int
    completion_rate: float
    consistency_score: int


def compute_daily_metrics(attendance: AttendanceEntry, assignments: Tuple[AssignmentEntry, ...]) -> DailyMetrics:
    """
    Derive the daily summary for one attendance record.

    Consistency weighs attendance at 60% and assignment completion at 40%.
    A day with nothing due counts as fully complete when the student attended.
    """

    due = len(assignments)
    submitted = sum(1 for a in assignments if a.is_submitted)
    if attendance.present:
        status = "present"
    elif due:
        status = "partial"
    else:
        status = "absent"

    if due:
        completion_rate = submitted / due * 100
    else:
        completion_rate = 100.0 if attendance.present else 0.0

    attendance_points = 100 if attendance.present else 0
    consistency = round_half_up(0.6 * attendance_points + 0.4 * completion_rate)
    return DailyMetrics(
        total_activities=(1 if attendance.present else 0) + due,
        attendance_status=status,
        assignments_submitted=submitted,
        assignments_due=due,
        completion_rate=completion_rate,
        consistency_score=int(consistency),
    )


@dataclass(frozen=True)
class AttendanceRecord:
    """One calendar day of attendance and assignments for a (student, tutor) pair."""

    subject_id: str
    counterpart_id: str
    date: date
    attendance: AttendanceEntry = field(default_factory=AttendanceEntry)
    assignments: Tuple[AssignmentEntry, ...] = ()
    skill_id: Optional[str] = None
    daily_metrics: DailyMetrics = field(init=False)

    def __post_init__(self) -> None:
        day = self.date
        if isinstance(day, datetime):
            day = ensure_utc(day).date()
        object.__setattr__(self, "date", day)
        object.__setattr__(self, "assignments", tuple(self.assignments))
        object.__setattr__(self, "daily_metrics", compute_daily_metrics(self.attendance, self.assignments))

    @property
    def key(self) -> Tuple[str, str, date]:
        return (self.subject_id, self.counterpart_id, self.date)

    @property
    def consistency_score(self) -> int:
        return self.daily_metrics.consistency_score

    @property
    def iso_week(self) -> Tuple[int, int]:
        iso = self.date.isocalendar()
        return (iso[0], iso[1])


def grade_counts(grades) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for grade in grades:
        counts[grade] = counts.get(grade, 0) + 1
    return counts
