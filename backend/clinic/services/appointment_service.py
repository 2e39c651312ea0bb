# Overview: Service-layer operations for appointments and public booking requests.

"""
Appointment Service

Every write that places something on the calendar re-runs the availability
conflict check at commit time; slot listings are advisory only.
"""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app

from ..extensions import db
from ..models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    Location,
    RequestStatus,
    Tenant,
)
from ..time_utils import format_hhmm, local_day_bounds_utc, local_today, utc_to_local, utcnow
from ..validation import ConflictError, ForbiddenError, NotFoundError, ValidationError, positive_int
from . import availability_service
from .tenant_service import require_location, require_pet, require_staff

# Appointments in these states can no longer be moved
FINAL_STATUSES = AppointmentStatus.NON_BLOCKING + (AppointmentStatus.COMPLETED,)


def get_appointment(tenant_id: int, appointment_id: int) -> Appointment:
    appointment = db.session.query(Appointment).filter_by(id=appointment_id, tenant_id=tenant_id).first()
    if not appointment:
        raise NotFoundError("Appointment not found")
    return appointment


def create_appointment(
    *,
    tenant_id: int,
    location_id: int,
    pet_id: int,
    day: date | str,
    start_time: str,
    duration_minutes,
    staff_id: int | None = None,
    reason: str | None = None,
    notes: str | None = None,
    created_by_id: int | None = None,
    appointment_request_id: int | None = None,
    commit: bool = True,
    now: datetime | None = None,
) -> Appointment:
    """
    Book an appointment after re-checking the slot.

    Raises:
        NotFoundError: location, pet or staff not in this tenant
        ValidationError: bad date/time/duration or a start in the past
        SlotConflictError: slot taken by an appointment or confirmed request
    """
    location = require_location(tenant_id, location_id)
    require_pet(tenant_id, pet_id)
    if staff_id is not None:
        require_staff(tenant_id, staff_id)

    duration = positive_int(duration_minutes, "duration_minutes")
    day, _, starts_at = availability_service.resolve_slot_start(location, day, start_time)

    availability_service.require_slot_available(
        tenant_id=tenant_id,
        location=location,
        day=day,
        start_time=start_time,
        duration=duration,
        staff_id=staff_id,
        now=now,
    )

    appointment = Appointment(
        tenant_id=tenant_id,
        location_id=location.id,
        staff_id=staff_id,
        pet_id=pet_id,
        appointment_request_id=appointment_request_id,
        starts_at=starts_at,
        duration_minutes=duration,
        status=AppointmentStatus.SCHEDULED,
        reason=reason,
        notes=notes,
        created_by_id=created_by_id,
    )
    db.session.add(appointment)
    if commit:
        db.session.commit()
        current_app.logger.info("Appointment %s booked at %s", appointment.id, starts_at)
    else:
        db.session.flush()
    return appointment


def reschedule_appointment(
    *,
    tenant_id: int,
    appointment_id: int,
    day: date | str,
    start_time: str,
    duration_minutes=None,
    staff_id: int | None = None,
    now: datetime | None = None,
) -> Appointment:
    """
    Move an appointment, excluding itself from the conflict set.

    staff_id None keeps the current assignee.
    """
    appointment = get_appointment(tenant_id, appointment_id)
    if appointment.status in FINAL_STATUSES:
        raise ConflictError(
            f"Cannot reschedule an appointment with status {appointment.status}",
            "APPOINTMENT_NOT_RESCHEDULABLE",
        )

    location = require_location(tenant_id, appointment.location_id)
    if staff_id is not None:
        require_staff(tenant_id, staff_id)
    else:
        staff_id = appointment.staff_id

    duration = appointment.duration_minutes
    if duration_minutes is not None:
        duration = positive_int(duration_minutes, "duration_minutes")

    day, _, starts_at = availability_service.resolve_slot_start(location, day, start_time)
    availability_service.require_slot_available(
        tenant_id=tenant_id,
        location=location,
        day=day,
        start_time=start_time,
        duration=duration,
        staff_id=staff_id,
        exclude_appointment_id=appointment.id,
        now=now,
    )

    appointment.starts_at = starts_at
    appointment.duration_minutes = duration
    appointment.staff_id = staff_id
    db.session.commit()
    current_app.logger.info("Appointment %s rescheduled to %s", appointment.id, starts_at)
    return appointment


def update_appointment_status(
    *,
    tenant_id: int,
    appointment_id: int,
    status: str,
    now: datetime | None = None,
) -> Appointment:
    """
    Soft state change; appointments are never deleted.

    Reviving a cancelled or no-show appointment puts it back on the calendar,
    so its slot is checked again as if it were being booked.
    """
    if status not in AppointmentStatus.ALL:
        raise ValidationError(f"status must be one of: {', '.join(AppointmentStatus.ALL)}")

    appointment = get_appointment(tenant_id, appointment_id)
    if appointment.status in AppointmentStatus.NON_BLOCKING and status not in AppointmentStatus.NON_BLOCKING:
        location = require_location(tenant_id, appointment.location_id)
        local_start = utc_to_local(appointment.starts_at, location.timezone)
        availability_service.require_slot_available(
            tenant_id=tenant_id,
            location=location,
            day=local_start.date(),
            start_time=local_start.time(),
            duration=appointment.duration_minutes,
            staff_id=appointment.staff_id,
            exclude_appointment_id=appointment.id,
            now=now,
        )

    appointment.status = status
    db.session.commit()
    return appointment


def list_appointments_for_day(*, tenant_id: int, location: Location, day: date) -> list[Appointment]:
    start, end = local_day_bounds_utc(day, location.timezone)
    return db.session.query(Appointment).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.location_id == location.id,
        Appointment.starts_at >= start,
        Appointment.starts_at < end,
    ).order_by(Appointment.starts_at.asc()).all()


# =============================================================================
# PUBLIC BOOKING REQUESTS
# =============================================================================

def submit_booking_request(
    *,
    tenant: Tenant,
    location: Location,
    day: date | str,
    start_time: str,
    duration_minutes,
    customer_name: str,
    pet_name: str,
    customer_phone: str | None = None,
    customer_email: str | None = None,
    pet_species: str | None = None,
    reason: str | None = None,
    now: datetime | None = None,
) -> AppointmentRequest:
    """
    Store a PENDING request from the public booking page.

    The requested slot must be free right now; it is checked again when a
    staff member confirms the request.
    """
    if not tenant.accepts_public_bookings:
        raise ForbiddenError("Public booking is not enabled for this clinic", "BOOKING_DISABLED")

    duration = positive_int(duration_minutes, "duration_minutes")
    day, parsed_time, _ = availability_service.resolve_slot_start(location, day, start_time)

    availability_service.require_slot_available(
        tenant_id=tenant.id,
        location=location,
        day=day,
        start_time=parsed_time,
        duration=duration,
        now=now,
    )

    request = AppointmentRequest(
        tenant_id=tenant.id,
        location_id=location.id,
        preferred_date=day,
        preferred_time=format_hhmm(parsed_time),
        duration_minutes=duration,
        status=RequestStatus.PENDING,
        customer_name=customer_name,
        customer_phone=customer_phone,
        customer_email=customer_email,
        pet_name=pet_name,
        pet_species=pet_species,
        reason=reason,
    )
    db.session.add(request)
    db.session.commit()
    current_app.logger.info("Booking request %s received for %s %s", request.id, day, request.preferred_time)
    return request


def _get_pending_request(tenant_id: int, request_id: int) -> AppointmentRequest:
    request = db.session.query(AppointmentRequest).filter_by(id=request_id, tenant_id=tenant_id).first()
    if not request:
        raise NotFoundError("Booking request not found")
    if request.status != RequestStatus.PENDING:
        raise ConflictError(f"Booking request is already {request.status}", "REQUEST_NOT_PENDING")
    return request


def confirm_request(
    *,
    tenant_id: int,
    request_id: int,
    reviewed_by_id: int,
    pet_id: int | None = None,
    staff_id: int | None = None,
    now: datetime | None = None,
) -> tuple[AppointmentRequest, Appointment | None]:
    """
    Confirm a PENDING request after re-checking its slot.

    With pet_id, the matching Appointment is created in the same transaction.
    """
    now = now or utcnow()
    request = _get_pending_request(tenant_id, request_id)
    if request.preferred_time is None:
        raise ValidationError("Request has no preferred time; reschedule it before confirming")

    location_id = request.location_id
    if location_id is None:
        raise ValidationError("Request has no location")
    location = require_location(tenant_id, location_id)
    duration = request.duration_minutes or current_app.config.get("DEFAULT_SLOT_DURATION", 30)

    appointment = None
    if pet_id is not None:
        appointment = create_appointment(
            tenant_id=tenant_id,
            location_id=location.id,
            pet_id=pet_id,
            day=request.preferred_date,
            start_time=request.preferred_time,
            duration_minutes=duration,
            staff_id=staff_id,
            reason=request.reason,
            created_by_id=reviewed_by_id,
            appointment_request_id=request.id,
            commit=False,
            now=now,
        )
    else:
        availability_service.require_slot_available(
            tenant_id=tenant_id,
            location=location,
            day=request.preferred_date,
            start_time=request.preferred_time,
            duration=duration,
            staff_id=staff_id,
            now=now,
        )

    request.status = RequestStatus.CONFIRMED
    request.reviewed_by_id = reviewed_by_id
    request.reviewed_at = now
    db.session.commit()
    current_app.logger.info("Booking request %s confirmed", request.id)
    return request, appointment


def reject_request(*, tenant_id: int, request_id: int, reviewed_by_id: int, now: datetime | None = None) -> AppointmentRequest:
    request = _get_pending_request(tenant_id, request_id)
    request.status = RequestStatus.REJECTED
    request.reviewed_by_id = reviewed_by_id
    request.reviewed_at = now or utcnow()
    db.session.commit()
    return request


def expire_stale_requests(*, now: datetime | None = None) -> int:
    """
    Mark PENDING requests whose preferred date has passed as EXPIRED.

    "Passed" uses the request location's tenant-local date (UTC for requests
    without a location).
    """
    now = now or utcnow()
    pending = db.session.query(AppointmentRequest).filter_by(status=RequestStatus.PENDING).all()

    timezones: dict[int, str] = {}
    expired = 0
    for request in pending:
        tz_name = "UTC"
        if request.location_id is not None:
            if request.location_id not in timezones:
                location = db.session.get(Location, request.location_id)
                timezones[request.location_id] = location.timezone if location else "UTC"
            tz_name = timezones[request.location_id]
        if request.preferred_date < local_today(tz_name, now):
            request.status = RequestStatus.EXPIRED
            expired += 1

    db.session.commit()
    return expired


def appointment_local_view(appointment: Appointment, location: Location) -> dict:
    """to_dict plus tenant-local date/time for display."""
    local_start = utc_to_local(appointment.starts_at, location.timezone)
    data = appointment.to_dict()
    data["local_date"] = local_start.date().isoformat()
    data["local_time"] = format_hhmm(local_start)
    return data


def list_requests(tenant_id: int, *, status: str | None = None, limit: int = 100) -> list[AppointmentRequest]:
    query = db.session.query(AppointmentRequest).filter_by(tenant_id=tenant_id)
    if status:
        if status not in RequestStatus.ALL:
            raise ValidationError(f"status must be one of: {', '.join(RequestStatus.ALL)}")
        query = query.filter_by(status=status)
    return query.order_by(
        AppointmentRequest.preferred_date.asc(),
        AppointmentRequest.preferred_time.asc(),
        AppointmentRequest.id.asc(),
    ).limit(limit).all()
