# ABOUTME: Tests the 7x24 activity heatmap aggregation.
# ABOUTME: Verifies full-grid output, per-slot counts, peak tie-breaks, and learner detail.

from datetime import datetime, timedelta, timezone

import pytest

from src.analytics.heatmap import build_activity_heatmap, hour_label
from src.common.errors import InvalidRangeError
from src.common.schemas import EngagementActivities, EngagementRecord

UTC = timezone.utc
START = datetime(2024, 3, 1, tzinfo=UTC)
END = datetime(2024, 3, 31, 23, 59, tzinfo=UTC)


def _mk_record(subject_id, when, counterpart_id="t1", session=True, duration=0, submitted=False):
    return EngagementRecord(
        subject_id=subject_id,
        counterpart_id=counterpart_id,
        activity_at=when,
        activities=EngagementActivities(session_attended=session, assignment_submitted=submitted),
        duration_minutes=duration,
    )


def test_empty_population_still_emits_full_grid():
    heatmap = build_activity_heatmap([], "t1", START, END)
    assert len(heatmap.cells) == 168
    assert all(c.total_activities == 0 for c in heatmap.cells)
    assert heatmap.summary.total_activities == 0
    assert heatmap.summary.average_engagement == 0.0
    assert heatmap.summary.peak_time is None
    assert [i.type for i in heatmap.insights] == ["info"]


def test_cells_are_ordered_by_day_then_hour():
    heatmap = build_activity_heatmap([], "t1", START, END)
    assert (heatmap.cells[0].day, heatmap.cells[0].hour) == (0, 0)
    assert (heatmap.cells[25].day, heatmap.cells[25].hour) == (1, 1)
    assert heatmap.cells[-1].day_name == "Sat"
    assert heatmap.cells[-1].hour_label == "23:00"


def test_slot_aggregates_count_students_sessions_and_duration():
    sunday_ten = datetime(2024, 3, 3, 10, tzinfo=UTC)
    records = [
        _mk_record("s1", sunday_ten, duration=60),
        _mk_record("s2", sunday_ten + timedelta(minutes=30), session=False, submitted=True),
        _mk_record("s1", datetime(2024, 3, 4, 9, tzinfo=UTC)),
        _mk_record("s9", sunday_ten, counterpart_id="t2"),
        _mk_record("s1", datetime(2024, 4, 7, 10, tzinfo=UTC)),
    ]
    heatmap = build_activity_heatmap(records, "t1", START, END)

    cell = heatmap.cell(0, 10)
    assert cell.total_activities == 2
    assert cell.unique_students == 2
    assert cell.session_count == 1
    assert cell.assignment_count == 1
    assert cell.total_duration == 60
    # (40 + 25) / 2
    assert cell.average_engagement == 32.5

    assert heatmap.cell(1, 9).total_activities == 1
    assert heatmap.summary.total_activities == 3
    assert heatmap.summary.active_slots == 2
    # mean of per-cell averages: (32.5 + 30) / 2
    assert heatmap.summary.average_engagement == 31.3


def test_peak_prefers_earliest_slot_on_tie():
    records = [
        _mk_record("s1", datetime(2024, 3, 4, 5, tzinfo=UTC)),
        _mk_record("s2", datetime(2024, 3, 3, 20, tzinfo=UTC)),
    ]
    peak = build_activity_heatmap(records, "t1", START, END).summary.peak_time
    assert (peak.day, peak.hour) == (0, 20)
    assert peak.day_name == "Sun"
    assert peak.hour_label == "20:00"


def test_peak_and_engagement_insights():
    records = [_mk_record("s1", datetime(2024, 3, 6, 18, tzinfo=UTC)) for _ in range(3)]
    heatmap = build_activity_heatmap(records, "t1", START, END)
    messages = [i.message for i in heatmap.insights]
    assert heatmap.insights[0].type == "warning"
    assert any("Wed at 18:00" in m for m in messages)


def test_learner_detail_lists_most_recent_first():
    records = [_mk_record("s1", datetime(2024, 3, day, 12, tzinfo=UTC)) for day in range(1, 16)]
    records.append(_mk_record("s2", datetime(2024, 3, 20, 12, tzinfo=UTC)))
    heatmap = build_activity_heatmap(records, "t1", START, END, subject_id="s1")

    detail = heatmap.student_detail
    assert detail.total_activities == 15
    assert len(detail.recent_activities) == 10
    assert detail.recent_activities[0]["date"].day == 15
    assert heatmap.to_dict()["student_detail"]["recent_activities"][0]["date"].startswith("2024-03-15")


def test_inverted_range_is_rejected():
    with pytest.raises(InvalidRangeError):
        build_activity_heatmap([], "t1", END, START)


def test_hour_label_is_zero_padded():
    assert hour_label(7) == "07:00"


def test_naive_window_is_read_as_utc():
    records = [_mk_record("s1", datetime(2024, 3, 31, 23, 30, tzinfo=UTC))]
    heatmap = build_activity_heatmap(records, "t1", datetime(2024, 3, 1), datetime(2024, 3, 31, 23, 59))
    assert heatmap.summary.total_activities == 1
    assert heatmap.cell(0, 23).total_activities == 1
