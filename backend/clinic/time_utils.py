from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.utcnow()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


# =============================================================================
# TENANT-LOCAL CIVIL TIME
# =============================================================================
#
# Every location carries an IANA timezone name. All "which day is it",
# "which weekday" and "is this in the past" decisions go through these helpers
# so the convention is applied the same way everywhere.


def get_timezone(tz_name: str | None):
    """Resolve a timezone name, raising pytz.UnknownTimeZoneError if invalid."""
    return pytz.timezone(tz_name or "UTC")


def is_valid_timezone(tz_name: str) -> bool:
    try:
        pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def local_to_utc(local_dt: datetime, tz_name: str) -> datetime:
    """
    Convert a naive tenant-local datetime to UTC-naive.

    Aware inputs are converted directly.
    """
    tz = get_timezone(tz_name)
    if local_dt.tzinfo is None:
        local_dt = tz.localize(local_dt)
    return local_dt.astimezone(pytz.UTC).replace(tzinfo=None)


def utc_to_local(utc_dt: datetime, tz_name: str) -> datetime:
    """Convert a UTC-naive datetime to a naive tenant-local datetime."""
    tz = get_timezone(tz_name)
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=pytz.UTC)
    return utc_dt.astimezone(tz).replace(tzinfo=None)


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Tenant-local calendar date for a UTC-naive 'now'."""
    return utc_to_local(now or utcnow(), tz_name).date()


def local_day_bounds_utc(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """UTC-naive [start, end) covering one tenant-local calendar day."""
    start = local_to_utc(datetime.combine(day, time.min), tz_name)
    end = local_to_utc(datetime.combine(day + timedelta(days=1), time.min), tz_name)
    return start, end


def day_of_week(day: date) -> int:
    """Day-of-week index with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def parse_calendar_date(value: str | None, tz_name: str = "UTC") -> date:
    """
    Parse a calendar date from either "YYYY-MM-DD" or a full ISO datetime.

    Full datetimes carrying an offset are converted to the tenant-local date;
    naive datetimes keep their own calendar date.
    """
    if value is None:
        raise ValueError("date is required")
    s = value.strip()
    if not s:
        raise ValueError("date is required")

    if "T" not in s and " " not in s:
        return date.fromisoformat(s)

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt.date()
    return dt.astimezone(get_timezone(tz_name)).date()


def parse_time_of_day(value: str | None) -> time:
    """Parse "HH:MM" (seconds tolerated) into a time."""
    if value is None:
        raise ValueError("time is required")
    s = value.strip()
    parts = s.split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(hour, minute)


def format_hhmm(value: time | datetime | None) -> str | None:
    if value is None:
        return None
    return f"{value.hour:02d}:{value.minute:02d}"


def format_display_time(value: time | datetime) -> str:
    """12-hour clock, e.g. 9:30 AM / 2:00 PM."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def intervals_overlap(a_start, a_end, b_start, b_end) -> bool:
    """
    Half-open interval overlap: [a_start, a_end) and [b_start, b_end).

    Back-to-back intervals (a_end == b_start) do not overlap.
    """
    return a_start < b_end and b_start < a_end
