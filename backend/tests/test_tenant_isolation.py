# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

These tests create two clinics with their own locations and staff, then
verify that:
1. Staff of clinic B cannot read or write records of clinic A
2. Passing a foreign location_id is rejected like a missing one (404)
3. Listings and reports of clinic B never include clinic A's rows
4. One clinic's bookings never occupy the other clinic's slots

Test Coverage:
- Tenant service lookups
- Appointments and booking requests
- Business hours
- Cash drawers, shifts and reports
"""

from datetime import date, time

import pytest

from clinic.models import Appointment, AppointmentRequest, BusinessHours, CashDrawer, RequestStatus
from clinic.services import appointment_service, cash_drawer_service, tenant_service
from clinic.validation import NotFoundError

MONDAY = "2030-01-07"


@pytest.fixture
def clinic_a_drawer(db_session, tenant, location, owner):
    return cash_drawer_service.open_drawer(
        tenant_id=tenant.id, location_id=location.id, opened_by_id=owner.id, initial_amount_cents=10000,
    )


@pytest.fixture
def clinic_a_appointment(db_session, tenant, location, pet, weekly_hours):
    return appointment_service.create_appointment(
        tenant_id=tenant.id, location_id=location.id, pet_id=pet.id, day=MONDAY, start_time="10:00",
        duration_minutes=60,
    )


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_require_location_in_tenant(self, db_session, tenant, location):
        assert tenant_service.require_location(tenant.id, location.id).id == location.id

    def test_require_location_cross_tenant(self, db_session, tenant, other_location):
        """Location of another tenant is indistinguishable from a missing one."""
        with pytest.raises(NotFoundError):
            tenant_service.require_location(tenant.id, other_location.id)

    def test_require_location_nonexistent(self, db_session, tenant):
        with pytest.raises(NotFoundError):
            tenant_service.require_location(tenant.id, 99999)

    def test_inactive_location(self, db_session, tenant, location):
        location.is_active = False
        db_session.commit()
        with pytest.raises(NotFoundError):
            tenant_service.require_location(tenant.id, location.id)

    def test_default_location(self, db_session, tenant, location, other_location):
        assert tenant_service.default_location(tenant.id).id == location.id

    def test_inactive_tenant(self, db_session, tenant):
        tenant.is_active = False
        db_session.commit()
        with pytest.raises(NotFoundError):
            tenant_service.get_tenant(tenant.id)
        with pytest.raises(NotFoundError):
            tenant_service.get_tenant_by_slug("happy-paws")

    def test_cross_tenant_staff_and_pet(self, db_session, tenant, other_tenant, owner, pet):
        with pytest.raises(NotFoundError):
            tenant_service.require_staff(other_tenant.id, owner.id)
        with pytest.raises(NotFoundError):
            tenant_service.require_pet(other_tenant.id, pet.id)


class TestAppointmentIsolation:
    def test_cannot_book_into_foreign_location(self, client, db_session, other_owner, location, weekly_hours,
                                               auth_headers):
        resp = client.post("/api/appointments", json={
            "location_id": location.id, "pet_id": 1, "date": MONDAY, "time": "10:00",
        }, headers=auth_headers(other_owner))
        assert resp.status_code == 404

    def test_cannot_read_foreign_availability(self, client, db_session, other_owner, location, weekly_hours,
                                              auth_headers):
        resp = client.get("/api/appointments/availability",
                          query_string={"location_id": location.id, "date": MONDAY},
                          headers=auth_headers(other_owner))
        assert resp.status_code == 404

    def test_cannot_cancel_foreign_appointment(self, client, db_session, other_owner, clinic_a_appointment,
                                               auth_headers):
        resp = client.post(f"/api/appointments/{clinic_a_appointment.id}/status",
                           json={"status": "CANCELLED_CLINIC"}, headers=auth_headers(other_owner))
        assert resp.status_code == 404
        assert db_session.get(Appointment, clinic_a_appointment.id).status == "SCHEDULED"

    def test_foreign_bookings_do_not_occupy_slots(self, client, db_session, clinic_a_appointment, other_tenant,
                                                  other_location):
        db_session.add(BusinessHours(
            tenant_id=other_tenant.id, location_id=other_location.id, day_of_week=1,
            open_time=time(9, 0), close_time=time(12, 0), slot_duration=60,
        ))
        db_session.commit()

        resp = client.get("/api/public/availability", query_string={"tenant_slug": "beta-vets", "date": MONDAY})
        assert [s["time"] for s in resp.get_json()["available_slots"]] == ["09:00", "10:00", "11:00"]

    def test_cannot_review_foreign_request(self, client, db_session, tenant, location, other_owner, weekly_hours,
                                           auth_headers):
        booking = AppointmentRequest(tenant_id=tenant.id, location_id=location.id,
                                     preferred_date=date(2030, 1, 7),
                                     preferred_time="10:00", customer_name="Ana", pet_name="Luna")
        db_session.add(booking)
        db_session.commit()

        resp = client.post(f"/api/appointment-requests/{booking.id}/confirm", json={},
                           headers=auth_headers(other_owner))
        assert resp.status_code == 404
        assert client.get("/api/appointment-requests", headers=auth_headers(other_owner)).get_json() == {
            "requests": [],
        }
        db_session.refresh(booking)
        assert booking.status == RequestStatus.PENDING


class TestSettingsIsolation:
    def test_cannot_edit_foreign_hours(self, client, db_session, location, other_owner, weekly_hours, auth_headers):
        resp = client.put("/api/settings/business-hours", query_string={"location_id": location.id},
                          json={"days": [{"day_of_week": 1, "is_open": False}]},
                          headers=auth_headers(other_owner))
        assert resp.status_code == 404


class TestCashIsolation:
    def test_cannot_read_foreign_drawer(self, client, db_session, other_owner, clinic_a_drawer, auth_headers):
        resp = client.get(f"/api/cash/drawers/{clinic_a_drawer.id}", headers=auth_headers(other_owner))
        assert resp.status_code == 404

    def test_cannot_close_foreign_drawer(self, client, db_session, other_owner, clinic_a_drawer, auth_headers):
        resp = client.post(f"/api/cash/drawers/{clinic_a_drawer.id}/close", json={"final_amount_cents": 0},
                           headers=auth_headers(other_owner))
        assert resp.status_code == 404
        assert db_session.get(CashDrawer, clinic_a_drawer.id).status == "OPEN"

    def test_cannot_record_into_foreign_drawer(self, client, db_session, other_owner, clinic_a_drawer, auth_headers):
        resp = client.post(f"/api/cash/drawers/{clinic_a_drawer.id}/transactions",
                           json={"type": "WITHDRAWAL", "amount_cents": 5000}, headers=auth_headers(other_owner))
        assert resp.status_code == 404

    def test_cannot_start_shift_on_foreign_drawer(self, client, db_session, other_owner, clinic_a_drawer,
                                                  auth_headers):
        resp = client.post("/api/cash/shifts", json={"drawer_id": clinic_a_drawer.id, "starting_balance_cents": 0},
                           headers=auth_headers(other_owner))
        assert resp.status_code == 404

    def test_listings_are_scoped(self, client, db_session, other_owner, other_location, clinic_a_drawer,
                                 auth_headers):
        headers = auth_headers(other_owner)
        assert client.get("/api/cash/drawers", headers=headers).get_json() == {"drawers": []}
        report = client.get("/api/cash/reports", headers=headers).get_json()
        assert report["summary"]["transaction_count"] == 0
        assert report["by_drawer"] == []

    def test_same_location_ids_do_not_collide(self, client, db_session, other_owner, other_location, clinic_a_drawer,
                                              auth_headers):
        """Clinic B can open its own drawer while clinic A's is open."""
        resp = client.post("/api/cash/drawers", json={"location_id": other_location.id, "initial_amount_cents": 0},
                           headers=auth_headers(other_owner))
        assert resp.status_code == 201
