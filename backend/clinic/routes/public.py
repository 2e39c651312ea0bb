# Overview: Flask API routes for the public booking page; parses input and returns JSON responses.

# backend/clinic/routes/public.py
"""
Public Booking API Routes

Unauthenticated endpoints used by a clinic's public booking page. The clinic
is addressed by its slug; every endpoint answers 403 when the clinic has not
enabled public booking.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import appointment_service, availability_service
from ..services.tenant_service import default_location, get_tenant_by_slug, require_location
from ..validation import (
    ClinicError,
    ForbiddenError,
    ValidationError,
    error_response,
    field_or_default,
    optional_int,
    optional_str,
    require_json,
    required_str,
)

public_bp = Blueprint("public", __name__, url_prefix="/api/public")


def _resolve_clinic(slug, location_id):
    """(tenant, location) for a public caller; location defaults to the first active one."""
    if not slug:
        raise ValidationError("tenant_slug required")
    tenant = get_tenant_by_slug(slug)
    if not tenant.accepts_public_bookings:
        raise ForbiddenError("Online booking is not available for this clinic", "BOOKING_DISABLED")

    location_id = optional_int(location_id, "location_id")
    if location_id is None:
        return tenant, default_location(tenant.id)
    return tenant, require_location(tenant.id, location_id)


@public_bp.get("/availability")
def public_availability_route():
    """
    Bookable slots for a clinic on a date.

    Query params: tenant_slug, date (YYYY-MM-DD or ISO datetime),
    location_id, staff_id, duration (minutes) - last three optional
    """
    try:
        tenant, location = _resolve_clinic(request.args.get("tenant_slug"), request.args.get("location_id"))
        if not request.args.get("date"):
            raise ValidationError("date required", "INVALID_DATE")

        result = availability_service.compute_available_slots(
            tenant_id=tenant.id,
            location=location,
            day=request.args["date"],
            duration=request.args.get("duration"),
            staff_id=optional_int(request.args.get("staff_id"), "staff_id"),
        )
        return jsonify(result.to_dict()), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute public availability")
        return jsonify({"error": "Internal server error"}), 500


@public_bp.post("/availability/check")
def public_check_slot_route():
    """
    Check one slot before submitting a request.

    Request body:
    {
        "tenant_slug": "happy-paws",
        "date": "2030-01-07",
        "time": "10:00",
        "duration": 30,
        "location_id": 1,   (optional)
        "staff_id": 3       (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        tenant, location = _resolve_clinic(data.get("tenant_slug"), data.get("location_id"))

        result = availability_service.check_slot_conflict(
            tenant_id=tenant.id,
            location=location,
            day=required_str(data, "date"),
            start_time=required_str(data, "time"),
            duration=field_or_default(data, "duration", current_app.config["DEFAULT_SLOT_DURATION"]),
            staff_id=optional_int(data.get("staff_id"), "staff_id"),
        )
        return jsonify(result.to_dict()), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check public slot")
        return jsonify({"error": "Internal server error"}), 500


@public_bp.post("/appointment-requests")
def submit_appointment_request_route():
    """
    Submit a booking request from the public page.

    Request body:
    {
        "tenant_slug": "happy-paws",
        "date": "2030-01-07",
        "time": "10:00",
        "duration": 30,              (optional, defaults to slot duration)
        "customer_name": "Ana Ruiz",
        "customer_phone": "555-0100", (optional)
        "customer_email": "...",      (optional)
        "pet_name": "Luna",
        "pet_species": "dog",         (optional)
        "reason": "Vaccination"       (optional)
    }

    Returns 201 with the PENDING request, or 409 with conflict_type when the
    slot was taken in the meantime.
    """
    try:
        data = require_json(request.get_json(silent=True))
        tenant, location = _resolve_clinic(data.get("tenant_slug"), data.get("location_id"))

        booking_request = appointment_service.submit_booking_request(
            tenant=tenant,
            location=location,
            day=required_str(data, "date"),
            start_time=required_str(data, "time"),
            duration_minutes=field_or_default(data, "duration", current_app.config["DEFAULT_SLOT_DURATION"]),
            customer_name=required_str(data, "customer_name", max_length=128),
            pet_name=required_str(data, "pet_name", max_length=128),
            customer_phone=optional_str(data, "customer_phone", max_length=32),
            customer_email=optional_str(data, "customer_email", max_length=255),
            pet_species=optional_str(data, "pet_species", max_length=64),
            reason=optional_str(data, "reason", max_length=255),
        )
        return jsonify({"request": booking_request.to_dict()}), 201

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit appointment request")
        return jsonify({"error": "Internal server error"}), 500
