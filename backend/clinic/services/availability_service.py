# Overview: Service-layer operations for appointment availability; slot generation and conflict detection.

"""
Availability Engine

Computes bookable slots for a location on a tenant-local calendar date and
checks a single requested slot for conflicts before a booking is committed.

RULES:
- Slots start at the opening time and step by the configured slot duration
  (independent of the requested duration).
- A slot [T, T + duration) is never offered if it overlaps the break or runs
  past closing time, even partially.
- Appointments conflict by half-open interval overlap; back-to-back
  appointments do not conflict. Cancelled and no-show appointments release
  their slot.
- CONFIRMED booking requests conflict only by exact (date, HH:MM) equality,
  since requests carry no confirmed duration.
- On the current tenant-local day, slots that do not start strictly after
  "now" are dropped.

Everything here is a pure read. The race between listing slots and booking
one is resolved at commit time: booking paths call require_slot_available,
which re-runs the same check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from flask import current_app
from sqlalchemy import exists, or_

from ..extensions import db
from ..models import Appointment, AppointmentRequest, AppointmentStatus, Location, RequestStatus
from ..time_utils import (
    format_display_time,
    format_hhmm,
    intervals_overlap,
    local_day_bounds_utc,
    local_to_utc,
    local_today,
    minutes_since_midnight,
    parse_calendar_date,
    parse_time_of_day,
    time_from_minutes,
    to_utc_z,
    utcnow,
)
from ..validation import ConflictError, ValidationError, positive_int
from .business_hours_service import OperatingWindow, resolve_operating_window

PERIOD_MORNING = "morning"
PERIOD_AFTERNOON = "afternoon"
NOON_MINUTES = 12 * 60

CONFLICT_APPOINTMENT = "appointment"
CONFLICT_REQUEST = "request"

MESSAGE_PAST_DATE = "Appointments cannot be booked in the past"
MESSAGE_NON_WORKING_DAY = "Non-working day"


class SlotConflictError(ConflictError):
    """Requested slot is taken by an appointment or a confirmed request."""

    def __init__(self, conflict_type: str, message: str):
        super().__init__(message, "SLOT_CONFLICT", conflict_type=conflict_type)
        self.conflict_type = conflict_type


@dataclass(frozen=True)
class Slot:
    """Candidate start time. Derived only; never persisted."""
    starts_at_local: datetime
    starts_at_utc: datetime
    period: str

    @property
    def time(self) -> str:
        return format_hhmm(self.starts_at_local)

    def to_dict(self) -> dict:
        return {
            "date_time": to_utc_z(self.starts_at_utc),
            "time": self.time,
            "display_time": format_display_time(self.starts_at_local),
            "period": self.period,
        }


@dataclass
class AvailabilityResult:
    date: date
    duration: int | None
    working_day: bool
    business_hours: OperatingWindow | None = None
    slots: list[Slot] = field(default_factory=list)
    total_slots: int = 0
    message: str | None = None

    @property
    def available_count(self) -> int:
        return len(self.slots)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "duration": self.duration,
            "working_day": self.working_day,
            "business_hours": self.business_hours.to_dict() if self.business_hours else None,
            "available_slots": [slot.to_dict() for slot in self.slots],
            "total_slots": self.total_slots,
            "available_count": self.available_count,
            "message": self.message,
        }


@dataclass(frozen=True)
class SlotCheck:
    available: bool
    conflict_type: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "conflict_type": self.conflict_type,
            "reason": self.reason,
        }


# =============================================================================
# SLOT GENERATION (pure)
# =============================================================================

def generate_day_slots(day: date, window: OperatingWindow, duration: int) -> list[tuple[datetime, str]]:
    """
    Candidate (local start, period) pairs for one day before conflict filtering.

    Candidates step by window.slot_duration from the opening time. A candidate
    is skipped when [T, T + duration) overlaps the break or ends after close.
    """
    open_m = minutes_since_midnight(window.open_time)
    close_m = minutes_since_midnight(window.close_time)
    break_start_m = minutes_since_midnight(window.break_start) if window.has_break else None
    break_end_m = minutes_since_midnight(window.break_end) if window.has_break else None
    period_split = break_start_m if break_start_m is not None else NOON_MINUTES

    candidates = []
    start_m = open_m
    while start_m < close_m:
        end_m = start_m + duration
        if end_m > close_m:
            break
        if break_start_m is None or not intervals_overlap(start_m, end_m, break_start_m, break_end_m):
            period = PERIOD_MORNING if start_m < period_split else PERIOD_AFTERNOON
            candidates.append((datetime.combine(day, time_from_minutes(start_m)), period))
        start_m += window.slot_duration
    return candidates


# =============================================================================
# EXISTING COMMITMENTS
# =============================================================================

def _max_duration() -> int:
    return int(current_app.config.get("MAX_APPOINTMENT_DURATION", 480))


def _blocking_appointments(
    *,
    tenant_id: int,
    location_id: int,
    window_start: datetime,
    window_end: datetime,
    staff_id: int | None = None,
    exclude_appointment_id: int | None = None,
) -> list[Appointment]:
    """
    Appointments that still occupy time and overlap [window_start, window_end) (UTC-naive).

    The SQL range is widened by the longest allowed appointment so that an
    appointment starting before the window but running into it is included;
    the exact overlap test happens in Python.
    """
    query = db.session.query(Appointment).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.location_id == location_id,
        Appointment.status.notin_(AppointmentStatus.NON_BLOCKING),
        Appointment.starts_at < window_end,
        Appointment.starts_at >= window_start - timedelta(minutes=_max_duration()),
    )
    if staff_id is not None:
        query = query.filter(Appointment.staff_id == staff_id)
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return [
        appt for appt in query.order_by(Appointment.starts_at.asc()).all()
        if intervals_overlap(appt.starts_at, appt.ends_at, window_start, window_end)
    ]


def _confirmed_request_times(*, tenant_id: int, location_id: int, day: date) -> set[str]:
    """
    HH:MM start times of CONFIRMED requests for a date (requests without a location apply to all).

    A request that was turned into an appointment is skipped; the appointment
    holds the slot from then on.
    """
    rows = db.session.query(AppointmentRequest.preferred_time).filter(
        AppointmentRequest.tenant_id == tenant_id,
        AppointmentRequest.status == RequestStatus.CONFIRMED,
        AppointmentRequest.preferred_date == day,
        AppointmentRequest.preferred_time.isnot(None),
        or_(
            AppointmentRequest.location_id == location_id,
            AppointmentRequest.location_id.is_(None),
        ),
        ~exists().where(Appointment.appointment_request_id == AppointmentRequest.id),
    ).all()
    return {row.preferred_time for row in rows}


def _parse_duration(duration, default: int | None = None) -> int | None:
    if duration is None or duration == "":
        return default
    return positive_int(duration, "duration", maximum=_max_duration())


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def compute_available_slots(
    *,
    tenant_id: int,
    location: Location,
    day: date | str,
    duration: int | str | None = None,
    staff_id: int | None = None,
    exclude_appointment_id: int | None = None,
    now: datetime | None = None,
) -> AvailabilityResult:
    """
    Bookable slots for a location on a tenant-local calendar date.

    Args:
        tenant_id: Tenant scope (precondition filter on every query)
        location: Location whose timezone and hours apply
        day: date, "YYYY-MM-DD", or a full ISO datetime
        duration: Requested length in minutes; defaults to the slot duration
        staff_id: Only this staff member's appointments count as conflicts
        exclude_appointment_id: Appointment being rescheduled (never conflicts with itself)
        now: UTC-naive "now" (defaults to the current time)

    Past dates and non-working days produce an empty result with a message,
    not an error.
    """
    now = now or utcnow()
    tz_name = location.timezone

    if isinstance(day, str):
        try:
            day = parse_calendar_date(day, tz_name)
        except ValueError:
            raise ValidationError("Invalid date format", "INVALID_DATE")

    requested = _parse_duration(duration)
    today = local_today(tz_name, now)

    if day < today:
        return AvailabilityResult(date=day, duration=requested, working_day=False, message=MESSAGE_PAST_DATE)

    window = resolve_operating_window(location.id, day)
    if window is None:
        return AvailabilityResult(date=day, duration=requested, working_day=False, message=MESSAGE_NON_WORKING_DAY)

    duration_minutes = requested or window.slot_duration
    candidates = generate_day_slots(day, window, duration_minutes)

    day_start, day_end = local_day_bounds_utc(day, tz_name)
    appointments = _blocking_appointments(
        tenant_id=tenant_id,
        location_id=location.id,
        window_start=day_start,
        window_end=day_end,
        staff_id=staff_id,
        exclude_appointment_id=exclude_appointment_id,
    )
    request_times = _confirmed_request_times(tenant_id=tenant_id, location_id=location.id, day=day)
    is_today = day == today

    slots = []
    for local_start, period in candidates:
        start_utc = local_to_utc(local_start, tz_name)
        end_utc = start_utc + timedelta(minutes=duration_minutes)

        if is_today and start_utc <= now:
            continue
        if any(intervals_overlap(start_utc, end_utc, appt.starts_at, appt.ends_at) for appt in appointments):
            continue
        if format_hhmm(local_start) in request_times:
            continue
        slots.append(Slot(starts_at_local=local_start, starts_at_utc=start_utc, period=period))

    return AvailabilityResult(
        date=day,
        duration=duration_minutes,
        working_day=True,
        business_hours=window,
        slots=slots,
        total_slots=len(candidates),
    )


def resolve_slot_start(location: Location, day: date | str, start_time: time | str) -> tuple[date, time, datetime]:
    """
    Compose a tenant-local date and time into (date, time, UTC-naive start).

    Raises ValidationError when either part cannot be parsed.
    """
    try:
        if isinstance(day, str):
            day = parse_calendar_date(day, location.timezone)
        if isinstance(start_time, str):
            start_time = parse_time_of_day(start_time)
    except (TypeError, ValueError):
        raise ValidationError("Invalid date or time", "INVALID_DATETIME")
    if day is None or start_time is None:
        raise ValidationError("date and time required", "INVALID_DATETIME")
    return day, start_time, local_to_utc(datetime.combine(day, start_time), location.timezone)


def check_slot_conflict(
    *,
    tenant_id: int,
    location: Location,
    day: date | str,
    start_time: time | str,
    duration: int | str,
    staff_id: int | None = None,
    exclude_appointment_id: int | None = None,
    now: datetime | None = None,
) -> SlotCheck:
    """
    Check one candidate slot against appointments and confirmed requests.

    Raises ValidationError if the date/time is unparseable or the start is
    strictly before the current time.
    """
    now = now or utcnow()
    duration_minutes = _parse_duration(duration)
    if duration_minutes is None:
        raise ValidationError("duration required")

    day, start_time, start_utc = resolve_slot_start(location, day, start_time)
    if start_utc < now:
        raise ValidationError("Appointments cannot be booked in the past", "PAST_SLOT")

    end_utc = start_utc + timedelta(minutes=duration_minutes)
    if _blocking_appointments(
        tenant_id=tenant_id,
        location_id=location.id,
        window_start=start_utc,
        window_end=end_utc,
        staff_id=staff_id,
        exclude_appointment_id=exclude_appointment_id,
    ):
        return SlotCheck(
            available=False,
            conflict_type=CONFLICT_APPOINTMENT,
            reason="The selected time overlaps an existing appointment",
        )

    if format_hhmm(start_time) in _confirmed_request_times(tenant_id=tenant_id, location_id=location.id, day=day):
        return SlotCheck(
            available=False,
            conflict_type=CONFLICT_REQUEST,
            reason="The selected time is already reserved by a confirmed booking request",
        )

    return SlotCheck(available=True)


def require_slot_available(**kwargs) -> SlotCheck:
    """check_slot_conflict, raising SlotConflictError when the slot is taken."""
    result = check_slot_conflict(**kwargs)
    if not result.available:
        current_app.logger.info("Slot rejected (%s): %s", result.conflict_type, result.reason)
        raise SlotConflictError(result.conflict_type, result.reason)
    return result
