"""Helpers for the "HH:MM" / "YYYY-MM-DD" strings used across the clinic records.

No timezone is modelled: every value is clinic-local wall-clock time.
"""
from __future__ import annotations
from datetime import date, timedelta

MINUTES_PER_DAY = 24 * 60


def parse_minutes(time_hm: str) -> int:
    """Convert "HH:MM" into minutes since midnight. Raises ValueError on junk."""
    hours, minutes = time_hm.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


def add_minutes(time_hm: str, delta: int) -> str:
    """Shift a time forward, clamped at 24:00 so it never wraps into the next day."""
    return format_minutes(min(parse_minutes(time_hm) + delta, MINUTES_PER_DAY))


def overlaps(start1: str, end1: str, start2: str, end2: str) -> bool:
    """True if [start1, end1) and [start2, end2) share at least one minute.

    Intervals that only touch (one ends exactly when the other starts) do not overlap.
    """
    return parse_minutes(start1) < parse_minutes(end2) and parse_minutes(end1) > parse_minutes(start2)


def next_available_time(end_time: str) -> str:
    """First minute after a booked appointment ends."""
    return add_minutes(end_time, 1)


def hourly_slots(start_hour: int = 8, end_hour: int = 18) -> list[tuple[str, str]]:
    """One-hour slots covering the working day; the last one ends at end_hour."""
    return [
        (format_minutes(hour * 60), format_minutes((hour + 1) * 60))
        for hour in range(start_hour, end_hour)
    ]


def adjacent_dates(date_iso: str, days: int, today: date) -> list[str]:
    """Dates within +/- `days` of `date_iso`, skipping past days before `today`.

    Returned in ascending order.
    """
    origin = date.fromisoformat(date_iso)
    found = []
    for offset in range(1, days + 1):
        found.append(origin + timedelta(days=offset))
        previous = origin - timedelta(days=offset)
        if previous >= today:
            found.append(previous)
    return [d.isoformat() for d in sorted(found)]


def format_date_label(date_iso: str) -> str:
    """Human label such as "Friday, March 15, 2024"."""
    d = date.fromisoformat(date_iso)
    return f"{d:%A, %B} {d.day}, {d.year}"


def describe_gap(minutes: int) -> str:
    if minutes == 0:
        return "same time"
    if minutes < 60:
        return f"{minutes} min apart"
    return f"{round(minutes / 60)} h apart"
