# ABOUTME: Aggregates daily attendance/assignment facts into streaks, weekly and monthly rollups.
# ABOUTME: Also provides the write helpers that record session attendance and assignment submissions.

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from src.common.config import EngineConfig
from src.common.ranges import check_range, ensure_utc
from src.common.schemas import AttendanceRecord, round_half_up
from src.common.store import InMemoryFactStore

from .insights import Insight, calendar_rules, generate_insights

SESSION_PARTICIPATION_SCORE = 8


@dataclass
class CalendarDay:
    date: date
    subject_id: str
    year: int
    month: int
    day: int
    day_of_week: int
    week_of_year: int
    present: bool
    punctuality: Optional[str]
    participation_score: Optional[float]
    assignments_submitted: int
    assignments_due: int
    completion_rate: float
    consistency_score: int
    total_activities: int
    is_streak_day: bool


@dataclass
class StreakSummary:
    current_streak: int
    longest_streak: int


@dataclass
class ConsistencyStatistics:
    total_days: int = 0
    days_present: int = 0
    attendance_rate: int = 0
    assignments_submitted: int = 0
    assignments_due: int = 0
    submission_rate: int = 0
    average_consistency: int = 0
    current_streak: int = 0
    longest_streak: int = 0


@dataclass
class WeeklyConsistency:
    year: int
    week: int
    avg_consistency: int
    days_tracked: int
    attendance_rate: int
    low_consistency: bool


@dataclass
class MonthlyConsistency:
    year: int
    month: int
    avg_consistency: float
    total_days: int
    attendance_rate: float
    submission_rate: float


@dataclass
class ConsistencyReport:
    counterpart_id: str
    subject_id: Optional[str]
    start: datetime
    end: datetime
    days: List[CalendarDay]
    statistics: ConsistencyStatistics
    weekly: List[WeeklyConsistency]
    monthly: List[MonthlyConsistency]
    insights: List[Insight]

    @property
    def low_consistency_weeks(self) -> List[WeeklyConsistency]:
        return [w for w in self.weekly if w.low_consistency]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start"] = self.start.isoformat()
        data["end"] = self.end.isoformat()
        for day in data["days"]:
            day["date"] = day["date"].isoformat()
        data["insights"] = [i.to_dict() for i in self.insights]
        return data


def streak_counters(scores: Sequence[float], threshold: float = 70) -> List[int]:
    """Running streak length after each day; a day under the threshold resets it to zero."""
    counters = []
    running = 0
    for score in scores:
        running = running + 1 if score >= threshold else 0
        counters.append(running)
    return counters


def detect_streaks(scores: Sequence[float], threshold: float = 70) -> StreakSummary:
    counters = streak_counters(scores, threshold)
    if not counters:
        return StreakSummary(current_streak=0, longest_streak=0)
    return StreakSummary(current_streak=counters[-1], longest_streak=max(counters))


def _rate(numerator: float, denominator: float) -> int:
    return int(round_half_up(numerator / denominator * 100)) if denominator else 0


def _calendar_frame(records: List[AttendanceRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "year": [r.date.year for r in records],
            "month": [r.date.month for r in records],
            "iso_year": [r.iso_week[0] for r in records],
            "iso_week": [r.iso_week[1] for r in records],
            "consistency": [r.consistency_score for r in records],
            "present": [100 if r.attendance.present else 0 for r in records],
            "submitted": [r.daily_metrics.assignments_submitted for r in records],
            "due": [r.daily_metrics.assignments_due for r in records],
        }
    )


def weekly_rollup(records: List[AttendanceRecord], low_week_threshold: float = 50) -> List[WeeklyConsistency]:
    """Average consistency and attendance per ISO-8601 week, oldest week first."""
    if not records:
        return []
    grouped = (
        _calendar_frame(records)
        .groupby(["iso_year", "iso_week"])
        .agg(avg_consistency=("consistency", "mean"), days_tracked=("consistency", "size"), attendance=("present", "mean"))
        .sort_index()
    )
    weeks = []
    for (iso_year, iso_week), row in grouped.iterrows():
        weeks.append(
            WeeklyConsistency(
                year=int(iso_year),
                week=int(iso_week),
                avg_consistency=int(round_half_up(row["avg_consistency"])),
                days_tracked=int(row["days_tracked"]),
                attendance_rate=int(round_half_up(row["attendance"])),
                low_consistency=bool(row["avg_consistency"] < low_week_threshold),
            )
        )
    return weeks


def monthly_rollup(records: List[AttendanceRecord]) -> List[MonthlyConsistency]:
    if not records:
        return []
    grouped = (
        _calendar_frame(records)
        .groupby(["year", "month"])
        .agg(
            avg_consistency=("consistency", "mean"),
            total_days=("consistency", "size"),
            attendance=("present", "mean"),
            submitted=("submitted", "sum"),
            due=("due", "sum"),
        )
        .sort_index()
    )
    months = []
    for (year, month), row in grouped.iterrows():
        due = int(row["due"])
        months.append(
            MonthlyConsistency(
                year=int(year),
                month=int(month),
                avg_consistency=round_half_up(row["avg_consistency"], 1),
                total_days=int(row["total_days"]),
                attendance_rate=round_half_up(row["attendance"], 1),
                submission_rate=round_half_up(row["submitted"] / due * 100, 1) if due else 0.0,
            )
        )
    return months


def _calendar_day(record: AttendanceRecord, streak_day: bool) -> CalendarDay:
    metrics = record.daily_metrics
    return CalendarDay(
        date=record.date,
        subject_id=record.subject_id,
        year=record.date.year,
        month=record.date.month,
        day=record.date.day,
        day_of_week=(record.date.weekday() + 1) % 7,
        week_of_year=record.iso_week[1],
        present=record.attendance.present,
        punctuality=record.attendance.punctuality,
        participation_score=record.attendance.participation_score,
        assignments_submitted=metrics.assignments_submitted,
        assignments_due=metrics.assignments_due,
        completion_rate=metrics.completion_rate,
        consistency_score=metrics.consistency_score,
        total_activities=metrics.total_activities,
        is_streak_day=streak_day,
    )


def track_consistency(
    records: Iterable[AttendanceRecord],
    counterpart_id: str,
    start: datetime,
    end: datetime,
    subject_id: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> ConsistencyReport:
    """
    Calendar view of attendance and assignment consistency for one tutor.

    Consistency scores are read as stored on each record. Days are walked in
    date order; the streak counter at the last day is the current streak and
    its maximum is the longest streak.
    """

    start, end = ensure_utc(start), ensure_utc(end)
    check_range(start, end)
    config = config or EngineConfig()
    cons_cfg = config.consistency
    first, last = start.date(), end.date()

    scoped = sorted(
        (
            r
            for r in records
            if r.counterpart_id == counterpart_id
            and first <= r.date <= last
            and (subject_id is None or r.subject_id == subject_id)
        ),
        key=lambda r: (r.date, r.subject_id),
    )

    scores = [r.consistency_score for r in scoped]
    streaks = detect_streaks(scores, cons_cfg.streak_threshold)
    days = [_calendar_day(r, s >= cons_cfg.streak_threshold) for r, s in zip(scoped, scores)]

    total_days = len(scoped)
    days_present = sum(1 for r in scoped if r.attendance.present)
    submitted = sum(r.daily_metrics.assignments_submitted for r in scoped)
    due = sum(r.daily_metrics.assignments_due for r in scoped)
    statistics = ConsistencyStatistics(
        total_days=total_days,
        days_present=days_present,
        attendance_rate=_rate(days_present, total_days),
        assignments_submitted=submitted,
        assignments_due=due,
        submission_rate=_rate(submitted, due),
        average_consistency=int(round_half_up(sum(scores) / total_days)) if total_days else 0,
        current_streak=streaks.current_streak,
        longest_streak=streaks.longest_streak,
    )

    weekly = weekly_rollup(scoped, cons_cfg.low_week_threshold)
    low_weeks = [asdict(w) for w in weekly if w.low_consistency]
    insights = generate_insights(
        calendar_rules(config.insights, cons_cfg.max_low_weeks_shown),
        {**asdict(statistics), "low_weeks": low_weeks},
    )

    return ConsistencyReport(
        counterpart_id=counterpart_id,
        subject_id=subject_id,
        start=start,
        end=end,
        days=days,
        statistics=statistics,
        weekly=weekly,
        monthly=monthly_rollup(scoped),
        insights=insights,
    )


def _existing_payload(record: Optional[AttendanceRecord]) -> Dict[str, Any]:
    if record is None:
        return {"attendance": {}, "assignments": []}
    return {
        "attendance": asdict(record.attendance),
        "assignments": list(record.assignments),
        "skill_id": record.skill_id,
    }


def record_session_attendance(
    store: InMemoryFactStore,
    tutor_id: str,
    learner_id: str,
    scheduled_at: datetime,
    status: str,
    session_id: Optional[str] = None,
    skill_id: Optional[str] = None,
) -> AttendanceRecord:
    """
    Upsert the day's attendance from a session outcome.

    The learner counts as present only for a completed session. Assignments
    already recorded for that day are kept.
    """

    day = ensure_utc(scheduled_at).date()
    payload = _existing_payload(store.get_attendance(learner_id, tutor_id, day))
    present = status == "completed"
    payload["attendance"] = {
        "present": present,
        "punctuality": "on_time" if present else None,
        "minutes_late": 0,
        "participation_score": SESSION_PARTICIPATION_SCORE if present else 0,
        "session_id": session_id,
    }
    if skill_id is not None:
        payload["skill_id"] = skill_id
    return store.upsert_attendance(learner_id, tutor_id, day, payload)


def record_assignment_submission(
    store: InMemoryFactStore,
    tutor_id: str,
    learner_id: str,
    submitted_at: datetime,
    assignment_id: str,
    title: Optional[str] = None,
    due_date: Optional[date] = None,
    score: Optional[float] = None,
    skill_id: Optional[str] = None,
) -> AttendanceRecord:
    """
    Add a submitted assignment to the learner's day, creating the day if needed.

    Submissions after the due date are marked late with the number of days overdue.
    An assignment already on that day is not added twice.
    """

    submitted_day = ensure_utc(submitted_at).date()
    due = due_date or submitted_day
    on_time = submitted_day <= due
    days_late = 0 if on_time else (submitted_day - due).days

    existing = store.get_attendance(learner_id, tutor_id, submitted_day)
    payload = _existing_payload(existing)
    if any(a.assignment_id == assignment_id for a in payload["assignments"]):
        return existing
    payload["assignments"].append(
        {
            "assignment_id": assignment_id,
            "title": title,
            "due_date": due,
            "submitted_date": submitted_day,
            "status": "submitted" if on_time else "late",
            "score": score,
            "submitted_on_time": on_time,
            "days_late": days_late,
        }
    )
    if existing is None and skill_id is not None:
        payload["skill_id"] = skill_id
    return store.upsert_attendance(learner_id, tutor_id, submitted_day, payload)
