# ABOUTME: Tests fact record derivations and the in-memory fact store contracts.
# ABOUTME: Covers derived-field rejection, attendance upserts, grades, and trends.

import sys
from datetime import date, datetime, timezone

import pytest

from src.common.errors import DerivedFieldError
from src.common.schemas import (
    AssignmentEntry,
    AttendanceEntry,
    AttendanceRecord,
    EngagementActivities,
    EngagementRecord,
    PerformanceRecord,
    compute_daily_metrics,
    letter_grade,
    round_half_up,
    score_trend,
)
from src.common.store import InMemoryFactStore, engagement_from_payload, performance_from_payload

UTC = timezone.utc


def test_engagement_record_derives_day_hour_and_score():
    record = EngagementRecord(
        subject_id="s1",
        counterpart_id="t1",
        activity_at=datetime(2024, 3, 3, 14, 30, tzinfo=UTC),
        activities=EngagementActivities(session_attended=True, messages_sent=4),
        duration_minutes=90,
    )
    # 2024-03-03 is a Sunday.
    assert record.day_of_week == 0
    assert record.hour_of_day == 14
    assert record.engagement_score == 55


def test_naive_activity_time_is_treated_as_utc():
    record = EngagementRecord(subject_id="s1", counterpart_id="t1", activity_at=datetime(2024, 3, 4, 23, 0))
    assert record.activity_at.tzinfo == UTC
    assert record.day_of_week == 1
    assert record.hour_of_day == 23


def test_derived_fields_cannot_be_passed_to_constructor():
    with pytest.raises(TypeError):
        EngagementRecord(
            subject_id="s1",
            counterpart_id="t1",
            activity_at=datetime(2024, 3, 4, tzinfo=UTC),
            engagement_score=99,
        )


def test_engagement_payload_rejects_derived_score():
    with pytest.raises(DerivedFieldError) as excinfo:
        engagement_from_payload(
            {"subject_id": "s1", "counterpart_id": "t1", "activity_at": "2024-03-04T10:00:00", "engagement_score": 90}
        )
    assert "engagement_score" in str(excinfo.value)


def test_engagement_payload_rejects_unknown_field():
    with pytest.raises(ValueError):
        engagement_from_payload(
            {"subject_id": "s1", "counterpart_id": "t1", "activity_at": "2024-03-04T10:00:00", "mood": "happy"}
        )


def test_performance_record_derives_grade_and_trend():
    record = performance_from_payload(
        {
            "subject_id": "s1",
            "counterpart_id": "t1",
            "record_date": "2024-03-04T09:00:00+00:00",
            "category": "quiz",
            "score": 80,
            "previous_score": 70,
        }
    )
    assert record.grade == "B-"
    assert record.trend.direction == "improving"
    assert record.trend.improvement == 14.3


def test_performance_payload_rejects_grade():
    with pytest.raises(DerivedFieldError):
        performance_from_payload(
            {
                "subject_id": "s1",
                "counterpart_id": "t1",
                "record_date": "2024-03-04",
                "category": "quiz",
                "score": 80,
                "grade": "A+",
            }
        )


def test_performance_record_validates_category_and_score():
    when = datetime(2024, 3, 4, tzinfo=UTC)
    with pytest.raises(ValueError):
        PerformanceRecord(subject_id="s1", counterpart_id="t1", record_date=when, category="exam", score=50)
    with pytest.raises(ValueError):
        PerformanceRecord(subject_id="s1", counterpart_id="t1", record_date=when, category="quiz", score=101)


@pytest.mark.parametrize(
    "score,grade",
    [(100, "A+"), (97, "A+"), (93.5, "A"), (90, "A-"), (85, "B"), (72, "C-"), (60, "D"), (59.9, "F")],
)
def test_letter_grade_cutoffs(score, grade):
    assert letter_grade(score) == grade


def test_trend_against_zero_previous_score_is_stable():
    trend = score_trend(50, 0)
    assert trend.improvement == 0.0
    assert trend.direction == "stable"
    assert score_trend(50, None) is None


def test_round_half_up_differs_from_bankers_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.45, 1) == 0.5


def test_daily_metrics_for_present_day_without_assignments():
    metrics = compute_daily_metrics(AttendanceEntry(present=True), ())
    assert metrics.completion_rate == 100.0
    assert metrics.consistency_score == 100
    assert metrics.attendance_status == "present"


def test_daily_metrics_for_absent_day_with_partial_submissions():
    assignments = (AssignmentEntry(assignment_id="a1", status="submitted"), AssignmentEntry(assignment_id="a2"))
    metrics = compute_daily_metrics(AttendanceEntry(present=False), assignments)
    assert metrics.attendance_status == "partial"
    assert metrics.completion_rate == 50.0
    assert metrics.consistency_score == 20
    assert metrics.total_activities == 2


def test_punctuality_requires_presence():
    with pytest.raises(ValueError):
        AttendanceEntry(present=False, punctuality="late")
    with pytest.raises(ValueError):
        AttendanceEntry(present=True, participation_score=11)


def test_attendance_upsert_replaces_whole_record():
    store = InMemoryFactStore()
    day = date(2024, 3, 4)
    store.upsert_attendance(
        "s1", "t1", day, {"attendance": {"present": True}, "assignments": [{"assignment_id": "a1", "status": "submitted"}]}
    )
    replaced = store.upsert_attendance("s1", "t1", day, {"attendance": {"present": False}})

    assert len(store) == 1
    assert store.get_attendance("s1", "t1", day) is replaced
    assert replaced.assignments == ()
    assert replaced.consistency_score == 0


def test_attendance_payload_rejects_consistency_score():
    store = InMemoryFactStore()
    with pytest.raises(DerivedFieldError):
        store.upsert_attendance("s1", "t1", "2024-03-04", {"attendance": {"present": True}, "consistency_score": 100})


def test_store_lists_are_scoped_and_sorted():
    store = InMemoryFactStore()
    later = datetime(2024, 3, 5, 10, tzinfo=UTC)
    earlier = datetime(2024, 3, 4, 10, tzinfo=UTC)
    store.record_engagement({"subject_id": "s1", "counterpart_id": "t1", "activity_at": later})
    store.record_engagement({"subject_id": "s2", "counterpart_id": "t1", "activity_at": earlier})
    store.record_engagement({"subject_id": "s3", "counterpart_id": "t2", "activity_at": earlier})

    rows = store.list_engagement("t1", datetime(2024, 3, 1, tzinfo=UTC), datetime(2024, 3, 31, tzinfo=UTC))
    assert [r.subject_id for r in rows] == ["s2", "s1"]


def test_store_extend_rejects_unknown_records():
    store = InMemoryFactStore()
    store.extend([AttendanceRecord(subject_id="s1", counterpart_id="t1", date=date(2024, 3, 4))])
    assert len(store) == 1
    with pytest.raises(TypeError):
        store.extend(["not a record"])


def test_store_lists_accept_naive_bounds():
    store = InMemoryFactStore()
    store.record_engagement({"subject_id": "s1", "counterpart_id": "t1", "activity_at": datetime(2024, 3, 5, 10, tzinfo=UTC)})
    store.record_performance(
        {"subject_id": "s1", "counterpart_id": "t1", "record_date": datetime(2024, 3, 5, tzinfo=UTC), "category": "quiz", "score": 80}
    )

    first, last = datetime(2024, 3, 1), datetime(2024, 3, 31)
    assert len(store.list_engagement("t1", first, last)) == 1
    assert len(store.list_performance("t1", first, last, "quiz")) == 1


def test_engagement_record_does_not_load_analytics_package(monkeypatch):
    for name in [m for m in sys.modules if m == "src.analytics" or m.startswith("src.analytics.")]:
        monkeypatch.delitem(sys.modules, name)

    record = EngagementRecord(
        subject_id="s1",
        counterpart_id="t1",
        activity_at=datetime(2024, 3, 3, 14, tzinfo=UTC),
        activities=EngagementActivities(session_attended=True),
    )
    assert record.engagement_score == 30
    assert "src.analytics.engagement" not in sys.modules
