# ABOUTME: Resolves and validates the date windows every aggregator is scoped to.
# ABOUTME: Normalizes dates, strings, and naive datetimes to UTC instants.

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union

from .errors import InvalidRangeError

DateLike = Union[datetime, date, str]


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_instant(value: DateLike, end_of_day: bool = False) -> datetime:
    """
    Convert a date-like value into a UTC datetime.

    Bare calendar dates expand to the first or last instant of that day so
    an inclusive [start, end] window covers the whole end date.
    """

    if isinstance(value, str):
        text = value.strip()
        # "2024-03-01" is a calendar date, anything longer carries a time.
        value = date.fromisoformat(text) if len(text) == 10 else datetime.fromisoformat(text)
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min, tzinfo=timezone.utc)
    raise TypeError(f"Unsupported date value {value!r}.")


def check_range(start: datetime, end: datetime) -> None:
    if start > end:
        raise InvalidRangeError(
            f"Start of range {start.isoformat()} is after end of range {end.isoformat()}."
        )


def resolve_range(
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    default_days: int = 30,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Return an inclusive UTC window, defaulting to the trailing ``default_days``.

    Raises InvalidRangeError when start falls after end.
    """

    if end is None:
        end_dt = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    else:
        end_dt = to_instant(end, end_of_day=True)
    if start is None:
        start_dt = end_dt - timedelta(days=default_days)
    else:
        start_dt = to_instant(start)
    check_range(start_dt, end_dt)
    return start_dt, end_dt
