# Overview: Pytest coverage for appointment booking, rescheduling and booking request review.

from datetime import date, datetime

import pytest

from clinic.models import Appointment, AppointmentRequest, AppointmentStatus, Location, Pet, RequestStatus
from clinic.services import appointment_service, availability_service
from clinic.services.availability_service import CONFLICT_APPOINTMENT, CONFLICT_REQUEST, SlotConflictError
from clinic.validation import ConflictError, ForbiddenError, NotFoundError, ValidationError

MONDAY = "2030-01-07"
NOW = datetime(2030, 1, 1, 12, 0)


def _create(tenant, location, pet, hhmm, duration=30, **kwargs):
    kwargs.setdefault("now", NOW)
    return appointment_service.create_appointment(
        tenant_id=tenant.id,
        location_id=location.id,
        pet_id=pet.id,
        day=MONDAY,
        start_time=hhmm,
        duration_minutes=duration,
        **kwargs,
    )


def _submit(tenant, location, hhmm, duration=30, **kwargs):
    kwargs.setdefault("now", NOW)
    return appointment_service.submit_booking_request(
        tenant=tenant,
        location=location,
        day=MONDAY,
        start_time=hhmm,
        duration_minutes=duration,
        customer_name="Ana Ruiz",
        pet_name="Luna",
        **kwargs,
    )


class TestCreateAppointment:
    def test_books_free_slot(self, db_session, tenant, location, pet, vet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00", 45, staff_id=vet.id, reason="Vaccination")

        assert appointment.id is not None
        assert appointment.starts_at == datetime(2030, 1, 7, 10, 0)
        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.to_dict()["ends_at"] == "2030-01-07T10:45:00Z"

    def test_overlap_rejected(self, db_session, tenant, location, pet, weekly_hours):
        _create(tenant, location, pet, "10:00", 60)

        with pytest.raises(SlotConflictError) as exc:
            _create(tenant, location, pet, "10:30", 30)
        assert exc.value.conflict_type == CONFLICT_APPOINTMENT
        assert db_session.query(Appointment).count() == 1

    def test_back_to_back_allowed(self, db_session, tenant, location, pet, weekly_hours):
        _create(tenant, location, pet, "10:00", 60)
        _create(tenant, location, pet, "11:00", 30)
        assert db_session.query(Appointment).count() == 2

    def test_confirmed_request_blocks_exact_start(self, db_session, tenant, location, pet, weekly_hours):
        db_session.add(AppointmentRequest(
            tenant_id=tenant.id, location_id=location.id, preferred_date=date(2030, 1, 7),
            preferred_time="15:00", status=RequestStatus.CONFIRMED, customer_name="X", pet_name="Y",
        ))
        db_session.commit()

        with pytest.raises(SlotConflictError) as exc:
            _create(tenant, location, pet, "15:00")
        assert exc.value.conflict_type == CONFLICT_REQUEST

    def test_past_start_rejected(self, db_session, tenant, location, pet, weekly_hours):
        with pytest.raises(ValidationError):
            _create(tenant, location, pet, "10:00", now=datetime(2030, 1, 8, 0, 0))

    def test_other_tenant_pet_is_not_found(self, db_session, tenant, location, other_tenant, weekly_hours):
        foreign = Pet(tenant_id=other_tenant.id, name="Rex")
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(NotFoundError):
            _create(tenant, location, foreign, "10:00")

    def test_other_tenant_location_is_not_found(self, db_session, tenant, pet, other_location, weekly_hours):
        with pytest.raises(NotFoundError):
            _create(tenant, other_location, pet, "10:00")

    def test_invalid_duration(self, db_session, tenant, location, pet, weekly_hours):
        with pytest.raises(ValidationError):
            _create(tenant, location, pet, "10:00", 0)


class TestReschedule:
    def test_move_into_own_range(self, db_session, tenant, location, pet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00", 60)

        moved = appointment_service.reschedule_appointment(
            tenant_id=tenant.id, appointment_id=appointment.id, day=MONDAY, start_time="10:30", now=NOW,
        )
        assert moved.starts_at == datetime(2030, 1, 7, 10, 30)
        assert moved.duration_minutes == 60

    def test_conflict_with_other_appointment(self, db_session, tenant, location, pet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00")
        _create(tenant, location, pet, "11:00")

        with pytest.raises(SlotConflictError):
            appointment_service.reschedule_appointment(
                tenant_id=tenant.id, appointment_id=appointment.id, day=MONDAY, start_time="11:00", now=NOW,
            )
        db_session.refresh(appointment)
        assert appointment.starts_at == datetime(2030, 1, 7, 10, 0)

    def test_keeps_assignee_when_staff_omitted(self, db_session, tenant, location, pet, vet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00", staff_id=vet.id)
        moved = appointment_service.reschedule_appointment(
            tenant_id=tenant.id, appointment_id=appointment.id, day=MONDAY, start_time="15:00", now=NOW,
        )
        assert moved.staff_id == vet.id

    def test_cancelled_cannot_move(self, db_session, tenant, location, pet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00")
        appointment_service.update_appointment_status(
            tenant_id=tenant.id, appointment_id=appointment.id, status=AppointmentStatus.CANCELLED_CLINIC,
        )

        with pytest.raises(ConflictError) as exc:
            appointment_service.reschedule_appointment(
                tenant_id=tenant.id, appointment_id=appointment.id, day=MONDAY, start_time="11:00", now=NOW,
            )
        assert exc.value.code == "APPOINTMENT_NOT_RESCHEDULABLE"


class TestStatus:
    def test_cancel_releases_slot(self, db_session, tenant, location, pet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00")
        appointment_service.update_appointment_status(
            tenant_id=tenant.id, appointment_id=appointment.id, status=AppointmentStatus.CANCELLED_CLIENT,
        )
        _create(tenant, location, pet, "10:00")
        assert db_session.query(Appointment).count() == 2

    def test_revive_rechecks_slot(self, db_session, tenant, location, pet, weekly_hours):
        cancelled = _create(tenant, location, pet, "10:00")
        appointment_service.update_appointment_status(
            tenant_id=tenant.id, appointment_id=cancelled.id, status=AppointmentStatus.CANCELLED_CLIENT,
        )
        _create(tenant, location, pet, "10:00")

        with pytest.raises(SlotConflictError) as exc:
            appointment_service.update_appointment_status(
                tenant_id=tenant.id, appointment_id=cancelled.id, status=AppointmentStatus.SCHEDULED, now=NOW,
            )
        assert exc.value.conflict_type == CONFLICT_APPOINTMENT
        db_session.refresh(cancelled)
        assert cancelled.status == AppointmentStatus.CANCELLED_CLIENT

    def test_revive_into_free_slot(self, db_session, tenant, location, pet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00")
        appointment_service.update_appointment_status(
            tenant_id=tenant.id, appointment_id=appointment.id, status=AppointmentStatus.NO_SHOW,
        )

        revived = appointment_service.update_appointment_status(
            tenant_id=tenant.id, appointment_id=appointment.id, status=AppointmentStatus.CONFIRMED, now=NOW,
        )
        assert revived.status == AppointmentStatus.CONFIRMED

    def test_revive_past_appointment_rejected(self, db_session, tenant, location, pet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00")
        appointment_service.update_appointment_status(
            tenant_id=tenant.id, appointment_id=appointment.id, status=AppointmentStatus.NO_SHOW,
        )

        with pytest.raises(ValidationError) as exc:
            appointment_service.update_appointment_status(
                tenant_id=tenant.id, appointment_id=appointment.id, status=AppointmentStatus.SCHEDULED,
                now=datetime(2030, 1, 8, 9, 0),
            )
        assert exc.value.code == "PAST_SLOT"

    def test_unknown_status(self, db_session, tenant, location, pet, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00")
        with pytest.raises(ValidationError):
            appointment_service.update_appointment_status(
                tenant_id=tenant.id, appointment_id=appointment.id, status="DELETED",
            )

    def test_other_tenant_cannot_touch(self, db_session, tenant, location, pet, other_tenant, weekly_hours):
        appointment = _create(tenant, location, pet, "10:00")
        with pytest.raises(NotFoundError):
            appointment_service.update_appointment_status(
                tenant_id=other_tenant.id, appointment_id=appointment.id, status=AppointmentStatus.NO_SHOW,
            )


class TestListing:
    def test_day_listing_uses_local_day(self, db_session, tenant, pet):
        tokyo = Location(tenant_id=tenant.id, name="Tokyo", timezone="Asia/Tokyo")
        db_session.add(tokyo)
        db_session.commit()
        # 2030-01-06 16:00 UTC is 2030-01-07 01:00 JST
        inside = Appointment(tenant_id=tenant.id, location_id=tokyo.id, pet_id=pet.id,
                             starts_at=datetime(2030, 1, 6, 16, 0), duration_minutes=30)
        outside = Appointment(tenant_id=tenant.id, location_id=tokyo.id, pet_id=pet.id,
                              starts_at=datetime(2030, 1, 7, 16, 0), duration_minutes=30)
        db_session.add_all([inside, outside])
        db_session.commit()

        listed = appointment_service.list_appointments_for_day(
            tenant_id=tenant.id, location=tokyo, day=date(2030, 1, 7),
        )
        assert [a.id for a in listed] == [inside.id]

        view = appointment_service.appointment_local_view(inside, tokyo)
        assert view["local_date"] == "2030-01-07"
        assert view["local_time"] == "01:00"


class TestBookingRequests:
    def test_submit_stores_pending_hhmm(self, db_session, tenant, location, weekly_hours):
        request = _submit(tenant, location, "9:30", customer_email="ana@example.com")

        assert request.status == RequestStatus.PENDING
        assert request.preferred_time == "09:30"
        assert request.preferred_date == date(2030, 1, 7)

    def test_submit_requires_free_slot(self, db_session, tenant, location, pet, weekly_hours):
        _create(tenant, location, pet, "10:00", 60)
        with pytest.raises(SlotConflictError):
            _submit(tenant, location, "10:30")

    def test_submit_disabled_for_tenant(self, db_session, tenant, location, weekly_hours):
        tenant.public_booking_enabled = False
        db_session.commit()

        with pytest.raises(ForbiddenError) as exc:
            _submit(tenant, location, "10:00")
        assert exc.value.code == "BOOKING_DISABLED"

    def test_pending_requests_do_not_block(self, db_session, tenant, location, weekly_hours):
        _submit(tenant, location, "10:00")
        second = _submit(tenant, location, "10:00")
        assert second.status == RequestStatus.PENDING

    def test_confirm_without_pet(self, db_session, tenant, location, receptionist, weekly_hours):
        request = _submit(tenant, location, "10:00")

        confirmed, appointment = appointment_service.confirm_request(
            tenant_id=tenant.id, request_id=request.id, reviewed_by_id=receptionist.id, now=NOW,
        )
        assert confirmed.status == RequestStatus.CONFIRMED
        assert confirmed.reviewed_by_id == receptionist.id
        assert confirmed.reviewed_at == NOW
        assert appointment is None

    def test_confirm_with_pet_creates_appointment(self, db_session, tenant, location, pet, receptionist, weekly_hours):
        request = _submit(tenant, location, "10:00", duration=45)

        confirmed, appointment = appointment_service.confirm_request(
            tenant_id=tenant.id, request_id=request.id, reviewed_by_id=receptionist.id, pet_id=pet.id, now=NOW,
        )
        assert confirmed.status == RequestStatus.CONFIRMED
        assert appointment.appointment_request_id == request.id
        assert appointment.duration_minutes == 45
        assert appointment.starts_at == datetime(2030, 1, 7, 10, 0)

    def test_appointment_from_request_can_be_extended(
        self, db_session, tenant, location, pet, receptionist, weekly_hours
    ):
        request = _submit(tenant, location, "10:00")
        _, appointment = appointment_service.confirm_request(
            tenant_id=tenant.id, request_id=request.id, reviewed_by_id=receptionist.id, pet_id=pet.id, now=NOW,
        )

        moved = appointment_service.reschedule_appointment(
            tenant_id=tenant.id, appointment_id=appointment.id, day=MONDAY, start_time="10:00",
            duration_minutes=60, now=NOW,
        )
        assert moved.duration_minutes == 60

    def test_cancelling_appointment_from_request_frees_slot(
        self, db_session, tenant, location, pet, receptionist, weekly_hours
    ):
        request = _submit(tenant, location, "10:00")
        _, appointment = appointment_service.confirm_request(
            tenant_id=tenant.id, request_id=request.id, reviewed_by_id=receptionist.id, pet_id=pet.id, now=NOW,
        )
        appointment_service.update_appointment_status(
            tenant_id=tenant.id, appointment_id=appointment.id, status=AppointmentStatus.CANCELLED_CLINIC,
        )

        result = availability_service.check_slot_conflict(
            tenant_id=tenant.id, location=location, day=MONDAY, start_time="10:00", duration=30, now=NOW,
        )
        assert result.available is True

    def test_confirm_rechecks_slot(self, db_session, tenant, location, pet, receptionist, weekly_hours):
        request = _submit(tenant, location, "10:00")
        _create(tenant, location, pet, "10:00")

        with pytest.raises(SlotConflictError):
            appointment_service.confirm_request(
                tenant_id=tenant.id, request_id=request.id, reviewed_by_id=receptionist.id, now=NOW,
            )
        db_session.refresh(request)
        assert request.status == RequestStatus.PENDING

    def test_second_confirmation_at_same_time_conflicts(self, db_session, tenant, location, receptionist, weekly_hours):
        first = _submit(tenant, location, "10:00")
        second = _submit(tenant, location, "10:00")
        appointment_service.confirm_request(
            tenant_id=tenant.id, request_id=first.id, reviewed_by_id=receptionist.id, now=NOW,
        )

        with pytest.raises(SlotConflictError) as exc:
            appointment_service.confirm_request(
                tenant_id=tenant.id, request_id=second.id, reviewed_by_id=receptionist.id, now=NOW,
            )
        assert exc.value.conflict_type == CONFLICT_REQUEST

    def test_reject_then_review_again(self, db_session, tenant, location, receptionist, weekly_hours):
        request = _submit(tenant, location, "10:00")
        rejected = appointment_service.reject_request(
            tenant_id=tenant.id, request_id=request.id, reviewed_by_id=receptionist.id, now=NOW,
        )
        assert rejected.status == RequestStatus.REJECTED

        with pytest.raises(ConflictError) as exc:
            appointment_service.confirm_request(
                tenant_id=tenant.id, request_id=request.id, reviewed_by_id=receptionist.id, now=NOW,
            )
        assert exc.value.code == "REQUEST_NOT_PENDING"

    def test_expire_stale_requests(self, db_session, tenant, location, weekly_hours):
        stale = _submit(tenant, location, "10:00")
        fresh = AppointmentRequest(
            tenant_id=tenant.id, location_id=location.id, preferred_date=date(2030, 1, 9),
            preferred_time="10:00", customer_name="B", pet_name="C",
        )
        db_session.add(fresh)
        db_session.commit()

        count = appointment_service.expire_stale_requests(now=datetime(2030, 1, 8, 9, 0))

        assert count == 1
        db_session.refresh(stale)
        db_session.refresh(fresh)
        assert stale.status == RequestStatus.EXPIRED
        assert fresh.status == RequestStatus.PENDING

    def test_list_requests_filters_by_status(self, db_session, tenant, location, receptionist, weekly_hours):
        first = _submit(tenant, location, "10:00")
        _submit(tenant, location, "11:00")
        appointment_service.reject_request(tenant_id=tenant.id, request_id=first.id, reviewed_by_id=receptionist.id)

        pending = appointment_service.list_requests(tenant.id, status=RequestStatus.PENDING)
        assert [r.preferred_time for r in pending] == ["11:00"]
        with pytest.raises(ValidationError):
            appointment_service.list_requests(tenant.id, status="MAYBE")
