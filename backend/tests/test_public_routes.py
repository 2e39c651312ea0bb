# Overview: Pytest coverage for the public booking page endpoints.

"""
Public Booking Route Tests

End-to-end flow: a visitor reads availability by clinic slug, submits a
request, staff confirm it, and the confirmed time disappears from the page.
"""

MONDAY = "2030-01-07"


def _availability(client, **params):
    params.setdefault("tenant_slug", "happy-paws")
    params.setdefault("date", MONDAY)
    return client.get("/api/public/availability", query_string=params)


def _request_body(**overrides):
    body = {
        "tenant_slug": "happy-paws",
        "date": MONDAY,
        "time": "10:00",
        "duration": 30,
        "customer_name": "Ana Ruiz",
        "customer_phone": "555-0100",
        "pet_name": "Luna",
        "pet_species": "dog",
        "reason": "Vaccination",
    }
    body.update(overrides)
    return body


class TestPublicAvailability:
    def test_lists_slots(self, client, db_session, location, weekly_hours):
        resp = _availability(client)

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["working_day"] is True
        assert data["total_slots"] == 16
        assert data["available_count"] == 16
        assert data["available_slots"][0]["time"] == "09:00"
        assert data["business_hours"]["break_start"] == "13:00"

    def test_closed_day(self, client, db_session, location, weekly_hours):
        data = _availability(client, date="2030-01-06").get_json()
        assert data["working_day"] is False
        assert data["available_slots"] == []
        assert data["message"] == "Non-working day"

    def test_missing_slug(self, client, db_session, location, weekly_hours):
        resp = client.get("/api/public/availability", query_string={"date": MONDAY})
        assert resp.status_code == 400

    def test_unknown_slug(self, client, db_session, location, weekly_hours):
        assert _availability(client, tenant_slug="nobody").status_code == 404

    def test_booking_disabled(self, client, db_session, tenant, location, weekly_hours):
        tenant.public_booking_enabled = False
        db_session.commit()

        resp = _availability(client)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "BOOKING_DISABLED"

    def test_invalid_date(self, client, db_session, location, weekly_hours):
        resp = _availability(client, date="next monday")
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "INVALID_DATE"

    def test_invalid_duration(self, client, db_session, location, weekly_hours):
        assert _availability(client, duration="-30").status_code == 400

    def test_check_slot(self, client, db_session, location, weekly_hours):
        resp = client.post("/api/public/availability/check", json={
            "tenant_slug": "happy-paws", "date": MONDAY, "time": "10:00", "duration": 30,
        })
        assert resp.status_code == 200
        assert resp.get_json() == {"available": True, "conflict_type": None, "reason": None}


class TestPublicBookingFlow:
    def test_zero_duration_rejected(self, client, db_session, location, weekly_hours):
        resp = client.post("/api/public/availability/check", json={
            "tenant_slug": "happy-paws", "date": MONDAY, "time": "10:00", "duration": 0,
        })
        assert resp.status_code == 400

        resp = client.post("/api/public/appointment-requests", json=_request_body(duration=0))
        assert resp.status_code == 400

    def test_omitted_duration_uses_slot_length(self, client, db_session, location, weekly_hours):
        body = _request_body()
        del body["duration"]
        resp = client.post("/api/public/appointment-requests", json=body)
        assert resp.status_code == 201
        assert resp.get_json()["request"]["duration_minutes"] == 30

    def test_submit_request(self, client, db_session, location, weekly_hours):
        resp = client.post("/api/public/appointment-requests", json=_request_body())

        assert resp.status_code == 201
        booking = resp.get_json()["request"]
        assert booking["status"] == "PENDING"
        assert booking["preferred_time"] == "10:00"
        assert booking["location_id"] == location.id

    def test_missing_fields(self, client, db_session, location, weekly_hours):
        resp = client.post("/api/public/appointment-requests", json=_request_body(customer_name=""))
        assert resp.status_code == 400

        resp = client.post("/api/public/appointment-requests", data="not json", content_type="text/plain")
        assert resp.status_code == 400

    def test_confirmed_request_blocks_public_page(
        self, client, db_session, location, receptionist, weekly_hours, auth_headers
    ):
        booking = client.post("/api/public/appointment-requests", json=_request_body()).get_json()["request"]

        resp = client.post(
            f"/api/appointment-requests/{booking['id']}/confirm",
            json={},
            headers=auth_headers(receptionist),
        )
        assert resp.status_code == 200
        assert resp.get_json()["request"]["status"] == "CONFIRMED"

        times = [s["time"] for s in _availability(client).get_json()["available_slots"]]
        assert "10:00" not in times
        assert "10:30" in times

        resp = client.post("/api/public/appointment-requests", json=_request_body())
        assert resp.status_code == 409
        assert resp.get_json()["conflict_type"] == "request"

    def test_booked_appointment_blocks_request(
        self, client, db_session, location, pet, receptionist, weekly_hours, auth_headers
    ):
        resp = client.post("/api/appointments", json={
            "location_id": location.id, "pet_id": pet.id, "date": MONDAY, "time": "10:00", "duration": 60,
        }, headers=auth_headers(receptionist))
        assert resp.status_code == 201

        resp = client.post("/api/public/appointment-requests", json=_request_body(time="10:30"))
        assert resp.status_code == 409
        assert resp.get_json()["conflict_type"] == "appointment"
        assert resp.get_json()["code"] == "SLOT_CONFLICT"

    def test_disabled_clinic_rejects_request(self, client, db_session, tenant, location, weekly_hours):
        tenant.public_booking_enabled = False
        db_session.commit()

        resp = client.post("/api/public/appointment-requests", json=_request_body())
        assert resp.status_code == 403


class TestSystemRoutes:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"

    def test_version(self, client, db_session):
        assert client.get("/api/version").get_json()["api_version"] == "1.0.0"
