# Overview: Service-layer operations for business hours; resolves a location's operating window for a date.

"""
Business Hours Service

Resolution order for a calendar date:
1. SpecialHours row for that exact date (holiday, early close...)
2. BusinessHours row for the date's day of week (0 = Sunday)

No row, or a row with is_open=False, means a non-working day. Nothing here is
cached: every call reads the current rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time

from flask import current_app

from ..extensions import db
from ..models import BusinessHours, SpecialHours
from ..time_utils import day_of_week, format_hhmm, minutes_since_midnight, parse_time_of_day
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_int

MIN_SLOT_DURATION = 5
MAX_SLOT_DURATION = 240


@dataclass(frozen=True)
class OperatingWindow:
    """Resolved, open operating window for one calendar day (tenant-local times)."""
    open_time: time
    close_time: time
    break_start: time | None
    break_end: time | None
    slot_duration: int
    source: str  # "special" or "weekly"

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    def to_dict(self) -> dict:
        return {
            "open": format_hhmm(self.open_time),
            "close": format_hhmm(self.close_time),
            "break_start": format_hhmm(self.break_start),
            "break_end": format_hhmm(self.break_end),
        }


def _default_slot_duration() -> int:
    return int(current_app.config.get("DEFAULT_SLOT_DURATION", 30))


def resolve_operating_window(location_id: int, day: date) -> OperatingWindow | None:
    """
    Resolve the operating window for a location on a tenant-local date.

    Returns None for non-working days.
    """
    weekly = db.session.query(BusinessHours).filter_by(
        location_id=location_id,
        day_of_week=day_of_week(day),
    ).first()

    special = db.session.query(SpecialHours).filter_by(
        location_id=location_id,
        date=day,
    ).first()

    if special is not None:
        if not special.is_open or special.open_time is None or special.close_time is None:
            return None
        slot_duration = special.slot_duration or (weekly.slot_duration if weekly else None) or _default_slot_duration()
        return OperatingWindow(
            open_time=special.open_time,
            close_time=special.close_time,
            break_start=special.break_start,
            break_end=special.break_end,
            slot_duration=slot_duration,
            source="special",
        )

    if weekly is None or not weekly.is_open or weekly.open_time is None or weekly.close_time is None:
        return None

    return OperatingWindow(
        open_time=weekly.open_time,
        close_time=weekly.close_time,
        break_start=weekly.break_start,
        break_end=weekly.break_end,
        slot_duration=weekly.slot_duration or _default_slot_duration(),
        source="weekly",
    )


# =============================================================================
# CONFIGURATION
# =============================================================================

def _parse_optional_time(value, field: str) -> time | None:
    if value is None or value == "":
        return None
    try:
        return parse_time_of_day(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be HH:MM")


def _validated_window(data: dict, *, label: str, slot_required: bool) -> dict:
    """
    Validate one day's hours payload and return normalized column values.

    When is_open is false every time field is forced to NULL.
    """
    is_open = data.get("is_open", True)
    if not isinstance(is_open, bool):
        raise ValidationError(f"{label}: is_open must be a boolean")

    slot_raw = data.get("slot_duration")
    slot_duration = None
    if slot_raw is not None:
        slot_duration = coerce_int(slot_raw, f"{label}: slot_duration")
        if not (MIN_SLOT_DURATION <= slot_duration <= MAX_SLOT_DURATION):
            raise ValidationError(
                f"{label}: slot_duration must be between {MIN_SLOT_DURATION} and {MAX_SLOT_DURATION}"
            )
    elif slot_required:
        slot_duration = _default_slot_duration()

    if not is_open:
        return {
            "is_open": False,
            "open_time": None,
            "close_time": None,
            "break_start": None,
            "break_end": None,
            "slot_duration": slot_duration,
        }

    open_time = _parse_optional_time(data.get("open_time"), f"{label}: open_time")
    close_time = _parse_optional_time(data.get("close_time"), f"{label}: close_time")
    break_start = _parse_optional_time(data.get("break_start"), f"{label}: break_start")
    break_end = _parse_optional_time(data.get("break_end"), f"{label}: break_end")

    if open_time is None or close_time is None:
        raise ValidationError(f"{label}: open_time and close_time required for an open day")
    if open_time >= close_time:
        raise ValidationError(f"{label}: open_time must be before close_time")

    if (break_start is None) != (break_end is None):
        raise ValidationError(f"{label}: break_start and break_end must be given together")
    if break_start is not None:
        if break_start >= break_end:
            raise ValidationError(f"{label}: break_start must be before break_end")
        if break_start < open_time or break_end > close_time:
            raise ValidationError(f"{label}: break must fall inside opening hours")

    effective_slot = slot_duration or _default_slot_duration()
    if minutes_since_midnight(close_time) - minutes_since_midnight(open_time) < effective_slot:
        raise ValidationError(f"{label}: opening window is shorter than one slot")

    return {
        "is_open": True,
        "open_time": open_time,
        "close_time": close_time,
        "break_start": break_start,
        "break_end": break_end,
        "slot_duration": slot_duration,
    }


def get_weekly_schedule(location_id: int) -> list[BusinessHours]:
    return db.session.query(BusinessHours).filter_by(
        location_id=location_id,
    ).order_by(BusinessHours.day_of_week.asc()).all()


def replace_weekly_schedule(*, tenant_id: int, location_id: int, days: list[dict]) -> list[BusinessHours]:
    """
    Upsert the weekly schedule for a location.

    Each entry needs day_of_week (0-6, 0 = Sunday). Days not listed keep
    their current configuration. All entries are validated before anything
    is written.
    """
    if not isinstance(days, list) or not days:
        raise ValidationError("days must be a non-empty list")

    normalized: dict[int, dict] = {}
    for entry in days:
        if not isinstance(entry, dict):
            raise ValidationError("each day must be an object")
        if entry.get("day_of_week") is None:
            raise ValidationError("day_of_week required")
        dow = coerce_int(entry["day_of_week"], "day_of_week")
        if not 0 <= dow <= 6:
            raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        if dow in normalized:
            raise ValidationError(f"day_of_week {dow} listed twice")
        normalized[dow] = _validated_window(entry, label=f"day {dow}", slot_required=True)

    existing = {row.day_of_week: row for row in get_weekly_schedule(location_id)}
    for dow, values in normalized.items():
        row = existing.get(dow)
        if row is None:
            row = BusinessHours(tenant_id=tenant_id, location_id=location_id, day_of_week=dow)
            db.session.add(row)
        for key, value in values.items():
            setattr(row, key, value)

    db.session.commit()
    current_app.logger.info("Business hours updated for location %s (%d days)", location_id, len(normalized))
    return get_weekly_schedule(location_id)


def add_special_hours(*, tenant_id: int, location_id: int, data: dict) -> SpecialHours:
    raw_date = data.get("date")
    if not raw_date:
        raise ValidationError("date required")
    try:
        override_date = date.fromisoformat(str(raw_date))
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD")

    values = _validated_window(data, label=str(override_date), slot_required=False)

    existing = db.session.query(SpecialHours).filter_by(location_id=location_id, date=override_date).first()
    if existing:
        raise ConflictError(
            f"Special hours already defined for {override_date.isoformat()}",
            "SPECIAL_HOURS_EXISTS",
        )

    reason = data.get("reason")
    special = SpecialHours(
        tenant_id=tenant_id,
        location_id=location_id,
        date=override_date,
        reason=str(reason).strip()[:255] if reason else None,
        **values,
    )
    db.session.add(special)
    db.session.commit()
    return special


def delete_special_hours(*, tenant_id: int, special_hours_id: int) -> None:
    special = db.session.query(SpecialHours).filter_by(id=special_hours_id, tenant_id=tenant_id).first()
    if not special:
        raise NotFoundError("Special hours not found")
    db.session.delete(special)
    db.session.commit()


def list_special_hours(location_id: int, *, from_date: date | None = None) -> list[SpecialHours]:
    query = db.session.query(SpecialHours).filter_by(location_id=location_id)
    if from_date is not None:
        query = query.filter(SpecialHours.date >= from_date)
    return query.order_by(SpecialHours.date.asc()).all()
