# ABOUTME: Declares the fact read/write contracts and an in-memory fact store.
# ABOUTME: Write paths rebuild records from raw payloads so derived fields are always recomputed.

from __future__ import annotations

import threading
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple, Union

from .errors import DerivedFieldError
from .ranges import ensure_utc, to_instant
from .schemas import (
    AssignmentEntry,
    AttendanceEntry,
    AttendanceRecord,
    EngagementActivities,
    EngagementRecord,
    PerformanceMetrics,
    PerformanceRecord,
)

ENGAGEMENT_FIELDS = {"subject_id", "counterpart_id", "activity_at", "activities", "duration_minutes", "session_id", "skill_id"}
ENGAGEMENT_DERIVED = {"engagement_score", "day_of_week", "hour_of_day"}

PERFORMANCE_FIELDS = {
    "subject_id",
    "counterpart_id",
    "record_date",
    "category",
    "score",
    "previous_score",
    "academic_period",
    "skill_id",
    "session_id",
    "assessment_id",
    "metrics",
}
PERFORMANCE_DERIVED = {"grade", "trend", "improvement", "direction"}

ATTENDANCE_FIELDS = {"attendance", "assignments", "skill_id"}
ATTENDANCE_DERIVED = {
    "daily_metrics",
    "consistency_score",
    "completion_rate",
    "total_activities",
    "attendance_status",
    "assignments_submitted",
    "assignments_due",
    "year",
    "month",
    "day",
    "day_of_week",
    "week_of_year",
}


class FactReader(Protocol):
    def list_engagement(self, counterpart_id: str, start: datetime, end: datetime) -> List[EngagementRecord]:
        ...

    def list_performance(
        self, counterpart_id: str, start: datetime, end: datetime, category: str
    ) -> List[PerformanceRecord]:
        ...

    def list_attendance(
        self, counterpart_id: str, start: datetime, end: datetime, subject_id: Optional[str] = None
    ) -> List[AttendanceRecord]:
        ...


class FactWriter(Protocol):
    def record_engagement(self, payload: Mapping[str, Any]) -> EngagementRecord:
        ...

    def upsert_attendance(
        self, subject_id: str, counterpart_id: str, day: date, payload: Mapping[str, Any]
    ) -> AttendanceRecord:
        ...

    def record_performance(self, payload: Mapping[str, Any]) -> PerformanceRecord:
        ...


def _check_payload(record_type: str, payload: Mapping[str, Any], allowed: set, derived: set) -> None:
    supplied = set(payload)
    rejected = supplied & derived
    if rejected:
        raise DerivedFieldError(record_type, rejected)
    unknown = supplied - allowed
    if unknown:
        raise ValueError(f"Unknown {record_type} fields: {', '.join(sorted(unknown))}.")


def _to_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    return to_instant(value).date()


def engagement_from_payload(payload: Mapping[str, Any]) -> EngagementRecord:
    _check_payload("EngagementRecord", payload, ENGAGEMENT_FIELDS, ENGAGEMENT_DERIVED)
    activities = payload.get("activities") or {}
    if isinstance(activities, Mapping):
        derived = set(activities) & ENGAGEMENT_DERIVED
        if derived:
            raise DerivedFieldError("EngagementRecord", derived)
        activities = EngagementActivities(**activities)
    values = dict(payload)
    values["activities"] = activities
    values["activity_at"] = to_instant(payload["activity_at"])
    values["duration_minutes"] = payload.get("duration_minutes") or 0
    return EngagementRecord(**values)


def performance_from_payload(payload: Mapping[str, Any]) -> PerformanceRecord:
    _check_payload("PerformanceRecord", payload, PERFORMANCE_FIELDS, PERFORMANCE_DERIVED)
    values = dict(payload)
    metrics = values.get("metrics")
    if metrics is None:
        values["metrics"] = PerformanceMetrics()
    elif isinstance(metrics, Mapping):
        values["metrics"] = PerformanceMetrics(**metrics)
    values["record_date"] = to_instant(payload["record_date"])
    return PerformanceRecord(**values)


def assignment_from_payload(payload: Union[AssignmentEntry, Mapping[str, Any]]) -> AssignmentEntry:
    if isinstance(payload, AssignmentEntry):
        return payload
    values = dict(payload)
    values["due_date"] = _to_date(values.get("due_date"))
    values["submitted_date"] = _to_date(values.get("submitted_date"))
    return AssignmentEntry(**values)


def attendance_from_payload(
    subject_id: str, counterpart_id: str, day: Union[date, datetime, str], payload: Mapping[str, Any]
) -> AttendanceRecord:
    _check_payload("AttendanceRecord", payload, ATTENDANCE_FIELDS, ATTENDANCE_DERIVED)
    attendance = payload.get("attendance") or {}
    if isinstance(attendance, Mapping):
        attendance = AttendanceEntry(**attendance)
    assignments = tuple(assignment_from_payload(a) for a in payload.get("assignments") or ())
    return AttendanceRecord(
        subject_id=subject_id,
        counterpart_id=counterpart_id,
        date=_to_date(day),
        attendance=attendance,
        assignments=assignments,
        skill_id=payload.get("skill_id"),
    )


class InMemoryFactStore:
    """
    Fact store holding every record in process memory.

    Engagement and performance facts are append-only; attendance is keyed by
    (subject, counterpart, date) and each upsert replaces the whole record.
    """

    def __init__(self) -> None:
        self._engagement: List[EngagementRecord] = []
        self._performance: List[PerformanceRecord] = []
        self._attendance: Dict[Tuple[str, str, date], AttendanceRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._engagement) + len(self._performance) + len(self._attendance)

    # Reads

    def list_engagement(self, counterpart_id: str, start: datetime, end: datetime) -> List[EngagementRecord]:
        start, end = ensure_utc(start), ensure_utc(end)
        rows = [
            r for r in self._engagement if r.counterpart_id == counterpart_id and start <= r.activity_at <= end
        ]
        return sorted(rows, key=lambda r: r.activity_at)

    def list_performance(
        self, counterpart_id: str, start: datetime, end: datetime, category: str = "all"
    ) -> List[PerformanceRecord]:
        start, end = ensure_utc(start), ensure_utc(end)
        rows = [
            r
            for r in self._performance
            if r.counterpart_id == counterpart_id
            and start <= r.record_date <= end
            and (category == "all" or r.category == category)
        ]
        return sorted(rows, key=lambda r: r.record_date)

    def list_attendance(
        self, counterpart_id: str, start: datetime, end: datetime, subject_id: Optional[str] = None
    ) -> List[AttendanceRecord]:
        first, last = ensure_utc(start).date(), ensure_utc(end).date()
        with self._lock:
            records = list(self._attendance.values())
        rows = [
            r
            for r in records
            if r.counterpart_id == counterpart_id
            and first <= r.date <= last
            and (subject_id is None or r.subject_id == subject_id)
        ]
        return sorted(rows, key=lambda r: (r.date, r.subject_id))

    def get_attendance(self, subject_id: str, counterpart_id: str, day: date) -> Optional[AttendanceRecord]:
        return self._attendance.get((subject_id, counterpart_id, _to_date(day)))

    # Writes

    def record_engagement(self, payload: Union[EngagementRecord, Mapping[str, Any]]) -> EngagementRecord:
        record = payload if isinstance(payload, EngagementRecord) else engagement_from_payload(payload)
        self._engagement.append(record)
        return record

    def record_performance(self, payload: Union[PerformanceRecord, Mapping[str, Any]]) -> PerformanceRecord:
        record = payload if isinstance(payload, PerformanceRecord) else performance_from_payload(payload)
        self._performance.append(record)
        return record

    def upsert_attendance(
        self, subject_id: str, counterpart_id: str, day: Union[date, datetime, str], payload: Mapping[str, Any]
    ) -> AttendanceRecord:
        record = attendance_from_payload(subject_id, counterpart_id, day, payload)
        with self._lock:
            self._attendance[record.key] = record
        return record

    def extend(self, records: Iterable[Union[EngagementRecord, PerformanceRecord, AttendanceRecord]]) -> None:
        for record in records:
            if isinstance(record, EngagementRecord):
                self._engagement.append(record)
            elif isinstance(record, PerformanceRecord):
                self._performance.append(record)
            elif isinstance(record, AttendanceRecord):
                with self._lock:
                    self._attendance[record.key] = record
            else:
                raise TypeError(f"Unsupported record type {type(record).__name__}.")
