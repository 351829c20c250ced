# ABOUTME: Aggregates engagement records into a complete 7x24 day/hour activity grid.
# ABOUTME: Adds a peak-slot summary, insights, and optional per-student detail.

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from src.common.config import EngineConfig
from src.common.ranges import check_range, ensure_utc
from src.common.schemas import DAY_NAMES, EngagementRecord, round_half_up

from .insights import Insight, generate_insights, heatmap_rules

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7

_FRAME_COLUMNS = [
    "subject_id",
    "activity_at",
    "day_of_week",
    "hour_of_day",
    "engagement_score",
    "duration_minutes",
    "session_attended",
    "assignment_submitted",
]


@dataclass
class HeatmapCell:
    day: int
    day_name: str
    hour: int
    hour_label: str
    total_activities: int = 0
    average_engagement: float = 0.0
    total_duration: float = 0.0
    unique_students: int = 0
    session_count: int = 0
    assignment_count: int = 0


@dataclass
class PeakSlot:
    day: int
    day_name: str
    hour: int
    hour_label: str
    activities: int


@dataclass
class HeatmapSummary:
    total_activities: int
    average_engagement: float
    peak_time: Optional[PeakSlot]
    active_slots: int


@dataclass
class StudentEngagementDetail:
    subject_id: str
    total_activities: int
    average_engagement: float
    recent_activities: List[Dict[str, Any]]


@dataclass
class ActivityHeatmap:
    counterpart_id: str
    start: datetime
    end: datetime
    cells: List[HeatmapCell]
    summary: HeatmapSummary
    insights: List[Insight]
    student_detail: Optional[StudentEngagementDetail] = None

    def cell(self, day: int, hour: int) -> HeatmapCell:
        return self.cells[day * HOURS_PER_DAY + hour]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start"] = self.start.isoformat()
        data["end"] = self.end.isoformat()
        data["insights"] = [i.to_dict() for i in self.insights]
        if self.student_detail is not None:
            for activity in data["student_detail"]["recent_activities"]:
                activity["date"] = activity["date"].isoformat()
        return data


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def engagement_frame(records: Iterable[EngagementRecord]) -> pd.DataFrame:
    rows = [
        {
            "subject_id": r.subject_id,
            "activity_at": r.activity_at,
            "day_of_week": r.day_of_week,
            "hour_of_day": r.hour_of_day,
            "engagement_score": r.engagement_score,
            "duration_minutes": r.duration_minutes,
            "session_attended": bool(r.activities.session_attended),
            "assignment_submitted": bool(r.activities.assignment_submitted),
        }
        for r in records
    ]
    if not rows:
        return pd.DataFrame(columns=_FRAME_COLUMNS)
    return pd.DataFrame(rows)


def _slot_aggregates(frame: pd.DataFrame) -> Dict[tuple, Dict[str, Any]]:
    if frame.empty:
        return {}
    grouped = (
        frame.groupby(["day_of_week", "hour_of_day"])
        .agg(
            total_activities=("subject_id", "size"),
            average_engagement=("engagement_score", "mean"),
            total_duration=("duration_minutes", "sum"),
            unique_students=("subject_id", "nunique"),
            session_count=("session_attended", "sum"),
            assignment_count=("assignment_submitted", "sum"),
        )
    )
    return grouped.to_dict("index")


def build_cells(frame: pd.DataFrame) -> List[HeatmapCell]:
    """Emit all 168 cells in (day, hour) order; slots without records stay zeroed."""

    slots = _slot_aggregates(frame)
    cells = []
    for day in range(DAYS_PER_WEEK):
        for hour in range(HOURS_PER_DAY):
            cell = HeatmapCell(day=day, day_name=DAY_NAMES[day], hour=hour, hour_label=hour_label(hour))
            slot = slots.get((day, hour))
            if slot is not None:
                cell.total_activities = int(slot["total_activities"])
                cell.average_engagement = round_half_up(float(slot["average_engagement"]), 1)
                cell.total_duration = float(slot["total_duration"])
                cell.unique_students = int(slot["unique_students"])
                cell.session_count = int(slot["session_count"])
                cell.assignment_count = int(slot["assignment_count"])
            cells.append(cell)
    return cells


def summarize_cells(cells: List[HeatmapCell]) -> HeatmapSummary:
    """
    Totals over the grid.

    The average is the plain mean of per-cell averages for non-empty cells,
    and the peak is the first cell in (day, hour) order with the highest count.
    """

    active = [c for c in cells if c.total_activities > 0]
    total = sum(c.total_activities for c in active)
    average = sum(c.average_engagement for c in active) / len(active) if active else 0.0

    peak_cell = None
    for cell in active:
        if peak_cell is None or cell.total_activities > peak_cell.total_activities:
            peak_cell = cell
    peak = None
    if peak_cell is not None:
        peak = PeakSlot(
            day=peak_cell.day,
            day_name=peak_cell.day_name,
            hour=peak_cell.hour,
            hour_label=peak_cell.hour_label,
            activities=peak_cell.total_activities,
        )
    return HeatmapSummary(
        total_activities=total,
        average_engagement=round_half_up(average, 1),
        peak_time=peak,
        active_slots=len(active),
    )


def summarize_student(
    records: Iterable[EngagementRecord], subject_id: str, recent_limit: int = 10
) -> StudentEngagementDetail:
    rows = sorted((r for r in records if r.subject_id == subject_id), key=lambda r: r.activity_at, reverse=True)
    average = sum(r.engagement_score for r in rows) / len(rows) if rows else 0.0
    recent = [
        {
            "date": r.activity_at,
            "day_of_week": r.day_of_week,
            "hour": r.hour_of_day,
            "engagement_score": r.engagement_score,
            "activities": asdict(r.activities),
            "duration": r.duration_minutes,
        }
        for r in rows[:recent_limit]
    ]
    return StudentEngagementDetail(
        subject_id=subject_id,
        total_activities=len(rows),
        average_engagement=round_half_up(average, 1),
        recent_activities=recent,
    )


def build_activity_heatmap(
    records: Iterable[EngagementRecord],
    counterpart_id: str,
    start: datetime,
    end: datetime,
    subject_id: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> ActivityHeatmap:
    """
    Build the day-of-week x hour-of-day engagement heatmap for one tutor.

    Records outside [start, end] or belonging to other tutors are ignored.
    """

    start, end = ensure_utc(start), ensure_utc(end)
    check_range(start, end)
    config = config or EngineConfig()
    scoped = [r for r in records if r.counterpart_id == counterpart_id and start <= r.activity_at <= end]

    cells = build_cells(engagement_frame(scoped))
    summary = summarize_cells(cells)
    insights = generate_insights(
        heatmap_rules(config.insights),
        {
            "total_activities": summary.total_activities,
            "average_engagement": summary.average_engagement,
            "peak": summary.peak_time,
        },
    )
    detail = None
    if subject_id is not None:
        detail = summarize_student(scoped, subject_id, config.heatmap.recent_activity_limit)

    return ActivityHeatmap(
        counterpart_id=counterpart_id,
        start=start,
        end=end,
        cells=cells,
        summary=summary,
        insights=insights,
        student_detail=detail,
    )
