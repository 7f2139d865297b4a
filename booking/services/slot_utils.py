"""
slot_utils.py
-------------
Helpers for parsing dates/times and generating candidate timeslots.

Overlap uses half-open intervals: [10:00, 11:00) and [11:00, 12:00) touch but
do not overlap.
"""

from datetime import date, datetime, time, timedelta

from ..exceptions import ValidationError


def parse_hhmm(value) -> time:
    """Accept a time, 'HH:MM' or 'HH:MM:SS'."""
    if isinstance(value, time):
        return value
    try:
        parts = [int(p) for p in str(value).strip().split(":")]
        if len(parts) not in (2, 3):
            raise ValueError(value)
        return time(*parts)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM.")


def parse_date(value) -> date:
    """Accept a date or 'YYYY-MM-DD'."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD.")


def intervals_overlap(a_start, a_end, b_start, b_end) -> bool:
    return a_start < b_end and a_end > b_start


def daterange(start: date, end: date):
    """Every calendar day in [start, end]."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def generate_day_candidates(daily_start: time, duration_minutes: int, count: int):
    """
    Candidate (start, end) pairs for one day, stepping by the slot duration.
    Slots may not run past midnight.
    """
    if duration_minutes * count >= 24 * 60:
        raise ValidationError("Timeslots must end before midnight.")
    slot = timedelta(minutes=duration_minutes)
    anchor = datetime.combine(date.min, daily_start)
    day_end = datetime.combine(date.min + timedelta(days=1), time(0, 0))

    candidates = []
    current = anchor
    for _ in range(count):
        end = current + slot
        if end >= day_end:
            raise ValidationError("Timeslots must end before midnight.")
        candidates.append((current.time(), end.time()))
        current = end
    return candidates
