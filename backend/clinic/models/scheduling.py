from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..time_utils import format_hhmm, to_utc_z


class AppointmentStatus:
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED_CLIENT = "CANCELLED_CLIENT"
    CANCELLED_CLINIC = "CANCELLED_CLINIC"
    NO_SHOW = "NO_SHOW"

    ALL = (SCHEDULED, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED_CLIENT, CANCELLED_CLINIC, NO_SHOW)
    # Statuses that no longer occupy their time slot
    NON_BLOCKING = (CANCELLED_CLIENT, CANCELLED_CLINIC, NO_SHOW)


class RequestStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"

    ALL = (PENDING, CONFIRMED, REJECTED, EXPIRED)


class BusinessHours(db.Model):
    """
    Weekly operating window for a location.

    One row per (location, day_of_week). day_of_week uses 0 = Sunday.

    INVARIANT: when is_open is False every time field is NULL and the engine
    produces zero slots for that day.
    """
    __tablename__ = "business_hours"
    __table_args__ = (
        db.UniqueConstraint("location_id", "day_of_week", name="uq_business_hours_location_day"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False)

    is_open = db.Column(db.Boolean, nullable=False, default=True)
    open_time = db.Column(db.Time, nullable=True)
    close_time = db.Column(db.Time, nullable=True)
    break_start = db.Column(db.Time, nullable=True)
    break_end = db.Column(db.Time, nullable=True)
    slot_duration = db.Column(db.Integer, nullable=False, default=30)  # minutes

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "day_of_week": self.day_of_week,
            "is_open": self.is_open,
            "open_time": format_hhmm(self.open_time),
            "close_time": format_hhmm(self.close_time),
            "break_start": format_hhmm(self.break_start),
            "break_end": format_hhmm(self.break_end),
            "slot_duration": self.slot_duration,
        }


class SpecialHours(db.Model):
    """
    Date-specific override (holiday closure, early close...).

    Supersedes the day-of-week BusinessHours row for its calendar date.
    slot_duration may be NULL, in which case the weekly row's value applies.
    """
    __tablename__ = "special_hours"
    __table_args__ = (
        db.UniqueConstraint("location_id", "date", name="uq_special_hours_location_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)

    is_open = db.Column(db.Boolean, nullable=False, default=False)
    open_time = db.Column(db.Time, nullable=True)
    close_time = db.Column(db.Time, nullable=True)
    break_start = db.Column(db.Time, nullable=True)
    break_end = db.Column(db.Time, nullable=True)
    slot_duration = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "date": self.date.isoformat(),
            "is_open": self.is_open,
            "open_time": format_hhmm(self.open_time),
            "close_time": format_hhmm(self.close_time),
            "break_start": format_hhmm(self.break_start),
            "break_end": format_hhmm(self.break_end),
            "slot_duration": self.slot_duration,
            "reason": self.reason,
        }


class Appointment(db.Model):
    """
    Booked visit occupying [starts_at, starts_at + duration_minutes).

    Never deleted: cancellations and no-shows are status changes, and only
    those statuses release the slot (AppointmentStatus.NON_BLOCKING).
    """
    __tablename__ = "appointments"
    __table_args__ = (
        db.Index("ix_appointments_location_starts", "tenant_id", "location_id", "starts_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True, index=True)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.id"), nullable=False, index=True)
    appointment_request_id = db.Column(db.Integer, db.ForeignKey("appointment_requests.id"), nullable=True)

    # UTC-naive
    starts_at = db.Column(db.DateTime(timezone=True), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)

    status = db.Column(db.String(32), nullable=False, default=AppointmentStatus.SCHEDULED, index=True)
    reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    staff = db.relationship("Staff", foreign_keys=[staff_id])
    pet = db.relationship("Pet", backref=db.backref("appointments", lazy=True))

    @property
    def ends_at(self):
        return self.starts_at + timedelta(minutes=self.duration_minutes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "location_id": self.location_id,
            "staff_id": self.staff_id,
            "pet_id": self.pet_id,
            "appointment_request_id": self.appointment_request_id,
            "starts_at": to_utc_z(self.starts_at),
            "ends_at": to_utc_z(self.ends_at),
            "duration_minutes": self.duration_minutes,
            "status": self.status,
            "reason": self.reason,
            "notes": self.notes,
        }


class AppointmentRequest(db.Model):
    """
    Unconfirmed booking submitted through the public page.

    preferred_time is a tenant-local "HH:MM" string. Once CONFIRMED, the
    request blocks new bookings whose start time equals preferred_time on
    preferred_date (exact match, no duration is tracked).
    """
    __tablename__ = "appointment_requests"
    __table_args__ = (
        db.Index("ix_appointment_requests_date_status", "tenant_id", "preferred_date", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)

    preferred_date = db.Column(db.Date, nullable=False)
    preferred_time = db.Column(db.String(5), nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=RequestStatus.PENDING, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    pet_name = db.Column(db.String(128), nullable=False)
    pet_species = db.Column(db.String(64), nullable=True)
    reason = db.Column(db.String(255), nullable=True)

    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "location_id": self.location_id,
            "preferred_date": self.preferred_date.isoformat(),
            "preferred_time": self.preferred_time,
            "duration_minutes": self.duration_minutes,
            "status": self.status,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "pet_name": self.pet_name,
            "pet_species": self.pet_species,
            "reason": self.reason,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "created_at": to_utc_z(self.created_at),
        }
