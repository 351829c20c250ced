# ABOUTME: Rebuilds an in-memory fact store from parquet or JSON-lines exports.
# ABOUTME: Rows pass through the payload builders, so derived columns are rejected, not trusted.

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .store import InMemoryFactStore

ACTIVITY_COLUMNS = ("session_attended", "assignment_submitted", "messages_sent", "material_viewed", "assessment_taken")
ATTENDANCE_COLUMNS = ("present", "punctuality", "minutes_late", "participation_score", "session_id")
METRIC_COLUMNS = ("attempt_number", "time_spent", "completion_rate", "difficulty")
FACT_SUFFIXES = (".parquet", ".jsonl", ".json")


def read_fact_frame(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix in (".jsonl", ".json"):
        return pd.read_json(path, lines=path.suffix == ".jsonl", dtype=False, convert_dates=False)
    raise ValueError(f"Unsupported fact file '{path.name}'. Expected parquet or JSON lines.")


def _find_fact_file(facts_dir: Path, stem: str) -> Optional[Path]:
    for suffix in FACT_SUFFIXES:
        candidate = facts_dir / f"{stem}{suffix}"
        if candidate.exists():
            return candidate
    return None


def _clean_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Drop missing values so payload defaults apply."""
    cleaned = {}
    for key, value in row.items():
        if value is None or value is pd.NaT:
            continue
        if isinstance(value, pd.Timestamp):
            value = value.to_pydatetime()
        elif hasattr(value, "tolist"):
            value = value.tolist()
        if isinstance(value, float) and pd.isna(value):
            continue
        cleaned[key] = value
    return cleaned


def _nest(row: Dict[str, Any], columns, key: str) -> Dict[str, Any]:
    nested = dict(row.pop(key, None) or {})
    for column in columns:
        if column in row:
            nested[column] = row.pop(column)
    row[key] = nested
    return row


def engagement_payloads(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    payloads = []
    for row in frame.to_dict("records"):
        row = _nest(_clean_row(row), ACTIVITY_COLUMNS, "activities")
        activities = row["activities"]
        for flag in ("session_attended", "assignment_submitted", "material_viewed", "assessment_taken"):
            if flag in activities:
                activities[flag] = bool(activities[flag])
        if "messages_sent" in activities:
            activities["messages_sent"] = int(activities["messages_sent"])
        payloads.append(row)
    return payloads


def performance_payloads(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    payloads = []
    for row in frame.to_dict("records"):
        row = _nest(_clean_row(row), METRIC_COLUMNS, "metrics")
        row["score"] = float(row["score"])
        payloads.append(row)
    return payloads


def attendance_payloads(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    payloads = []
    for row in frame.to_dict("records"):
        row = _nest(_clean_row(row), ATTENDANCE_COLUMNS, "attendance")
        if "present" in row["attendance"]:
            row["attendance"]["present"] = bool(row["attendance"]["present"])
        row["assignments"] = [_clean_row(dict(a)) for a in row.get("assignments") or []]
        payloads.append(row)
    return payloads


def load_fact_store(facts_dir: Path) -> InMemoryFactStore:
    """
    Load engagement, performance, and attendance facts from ``facts_dir``.

    Each kind lives in ``<kind>.parquet`` or ``<kind>.jsonl``; a missing file is an empty population.
    """

    store = InMemoryFactStore()

    path = _find_fact_file(facts_dir, "engagement")
    if path is not None:
        for payload in engagement_payloads(read_fact_frame(path)):
            store.record_engagement(payload)

    path = _find_fact_file(facts_dir, "performance")
    if path is not None:
        for payload in performance_payloads(read_fact_frame(path)):
            store.record_performance(payload)

    path = _find_fact_file(facts_dir, "attendance")
    if path is not None:
        for payload in attendance_payloads(read_fact_frame(path)):
            subject_id = payload.pop("subject_id")
            counterpart_id = payload.pop("counterpart_id")
            day = payload.pop("date")
            store.upsert_attendance(subject_id, counterpart_id, day, payload)

    return store
