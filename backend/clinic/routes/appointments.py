# Overview: Flask API routes for appointments and booking requests; parses input and returns JSON responses.

# backend/clinic/routes/appointments.py
"""
Appointment API Routes

Staff-facing availability, booking and booking-request review.

SECURITY:
- VIEW_APPOINTMENTS for availability reads and listings
- MANAGE_APPOINTMENTS to book, reschedule or change status
- REVIEW_BOOKING_REQUESTS to confirm or reject public requests
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import appointment_service, availability_service
from ..services.tenant_service import require_location
from ..time_utils import parse_calendar_date
from ..validation import (
    ClinicError,
    ValidationError,
    error_response,
    field_or_default,
    optional_int,
    optional_str,
    require_json,
    required_int,
    required_str,
)

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")
appointment_requests_bp = Blueprint("appointment_requests", __name__, url_prefix="/api/appointment-requests")


# =============================================================================
# AVAILABILITY
# =============================================================================

@appointments_bp.get("/availability")
@require_auth
@require_permission("VIEW_APPOINTMENTS")
def availability_route():
    """
    Bookable slots for a location on a date.

    Query params: location_id, date, staff_id (optional), duration (optional),
    exclude_appointment_id (optional, for rescheduling)
    """
    try:
        location_id = optional_int(request.args.get("location_id"), "location_id")
        if location_id is None:
            raise ValidationError("location_id required")
        if not request.args.get("date"):
            raise ValidationError("date required", "INVALID_DATE")
        location = require_location(g.tenant_id, location_id)

        result = availability_service.compute_available_slots(
            tenant_id=g.tenant_id,
            location=location,
            day=request.args["date"],
            duration=request.args.get("duration"),
            staff_id=optional_int(request.args.get("staff_id"), "staff_id"),
            exclude_appointment_id=optional_int(request.args.get("exclude_appointment_id"), "exclude_appointment_id"),
        )
        return jsonify(result.to_dict()), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute availability")
        return jsonify({"error": "Internal server error"}), 500


@appointments_bp.post("/availability/check")
@require_auth
@require_permission("VIEW_APPOINTMENTS")
def check_slot_route():
    """
    Check one slot for conflicts.

    Request body:
    {
        "location_id": 1,
        "date": "2030-01-07",
        "time": "10:00",
        "duration": 30,
        "staff_id": 3,                  (optional)
        "exclude_appointment_id": 12    (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        location = require_location(g.tenant_id, required_int(data, "location_id"))

        result = availability_service.check_slot_conflict(
            tenant_id=g.tenant_id,
            location=location,
            day=required_str(data, "date"),
            start_time=required_str(data, "time"),
            duration=field_or_default(data, "duration", current_app.config["DEFAULT_SLOT_DURATION"]),
            staff_id=optional_int(data.get("staff_id"), "staff_id"),
            exclude_appointment_id=optional_int(data.get("exclude_appointment_id"), "exclude_appointment_id"),
        )
        return jsonify(result.to_dict()), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check slot")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# APPOINTMENTS
# =============================================================================

@appointments_bp.get("")
@appointments_bp.get("/")
@require_auth
@require_permission("VIEW_APPOINTMENTS")
def list_appointments_route():
    """Appointments of one location on one tenant-local date."""
    try:
        location_id = optional_int(request.args.get("location_id"), "location_id")
        if location_id is None:
            raise ValidationError("location_id required")
        location = require_location(g.tenant_id, location_id)
        try:
            day = parse_calendar_date(request.args.get("date"), location.timezone)
        except ValueError:
            raise ValidationError("Invalid date format", "INVALID_DATE")

        appointments = appointment_service.list_appointments_for_day(
            tenant_id=g.tenant_id,
            location=location,
            day=day,
        )
        return jsonify({
            "appointments": [appointment_service.appointment_local_view(a, location) for a in appointments],
        }), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list appointments")
        return jsonify({"error": "Internal server error"}), 500


@appointments_bp.post("")
@appointments_bp.post("/")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def create_appointment_route():
    """
    Book an appointment.

    Request body:
    {
        "location_id": 1,
        "pet_id": 7,
        "date": "2030-01-07",
        "time": "10:00",
        "duration": 30,
        "staff_id": 3,          (optional)
        "reason": "Checkup",    (optional)
        "notes": "..."          (optional)
    }

    Returns 409 with conflict_type when the slot is no longer free.
    """
    try:
        data = require_json(request.get_json(silent=True))

        appointment = appointment_service.create_appointment(
            tenant_id=g.tenant_id,
            location_id=required_int(data, "location_id"),
            pet_id=required_int(data, "pet_id"),
            day=required_str(data, "date"),
            start_time=required_str(data, "time"),
            duration_minutes=field_or_default(data, "duration", current_app.config["DEFAULT_SLOT_DURATION"]),
            staff_id=optional_int(data.get("staff_id"), "staff_id"),
            reason=optional_str(data, "reason", max_length=255),
            notes=optional_str(data, "notes"),
            created_by_id=g.current_staff.id,
        )
        return jsonify({"appointment": appointment.to_dict()}), 201

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create appointment")
        return jsonify({"error": "Internal server error"}), 500


@appointments_bp.post("/<int:appointment_id>/reschedule")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def reschedule_appointment_route(appointment_id: int):
    """
    Move an appointment to a new slot.

    Request body: {"date": "...", "time": "HH:MM", "duration": 45, "staff_id": 3}
    (duration and staff_id optional)
    """
    try:
        data = require_json(request.get_json(silent=True))

        appointment = appointment_service.reschedule_appointment(
            tenant_id=g.tenant_id,
            appointment_id=appointment_id,
            day=required_str(data, "date"),
            start_time=required_str(data, "time"),
            duration_minutes=data.get("duration"),
            staff_id=optional_int(data.get("staff_id"), "staff_id"),
        )
        return jsonify({"appointment": appointment.to_dict()}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reschedule appointment")
        return jsonify({"error": "Internal server error"}), 500


@appointments_bp.post("/<int:appointment_id>/status")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def update_appointment_status_route(appointment_id: int):
    """Request body: {"status": "CANCELLED_CLIENT"}"""
    try:
        data = require_json(request.get_json(silent=True))

        appointment = appointment_service.update_appointment_status(
            tenant_id=g.tenant_id,
            appointment_id=appointment_id,
            status=required_str(data, "status"),
        )
        return jsonify({"appointment": appointment.to_dict()}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update appointment status")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# BOOKING REQUESTS
# =============================================================================

@appointment_requests_bp.get("")
@appointment_requests_bp.get("/")
@require_auth
@require_permission("VIEW_APPOINTMENTS")
def list_requests_route():
    try:
        requests = appointment_service.list_requests(g.tenant_id, status=request.args.get("status"))
        return jsonify({"requests": [r.to_dict() for r in requests]}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list appointment requests")
        return jsonify({"error": "Internal server error"}), 500


@appointment_requests_bp.post("/<int:request_id>/confirm")
@require_auth
@require_permission("REVIEW_BOOKING_REQUESTS")
def confirm_request_route(request_id: int):
    """
    Confirm a PENDING request.

    Request body (optional):
    {
        "pet_id": 7,     (creates the linked appointment)
        "staff_id": 3
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        data = require_json(data)

        booking_request, appointment = appointment_service.confirm_request(
            tenant_id=g.tenant_id,
            request_id=request_id,
            reviewed_by_id=g.current_staff.id,
            pet_id=optional_int(data.get("pet_id"), "pet_id"),
            staff_id=optional_int(data.get("staff_id"), "staff_id"),
        )
        return jsonify({
            "request": booking_request.to_dict(),
            "appointment": appointment.to_dict() if appointment else None,
        }), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to confirm appointment request")
        return jsonify({"error": "Internal server error"}), 500


@appointment_requests_bp.post("/<int:request_id>/reject")
@require_auth
@require_permission("REVIEW_BOOKING_REQUESTS")
def reject_request_route(request_id: int):
    try:
        booking_request = appointment_service.reject_request(
            tenant_id=g.tenant_id,
            request_id=request_id,
            reviewed_by_id=g.current_staff.id,
        )
        return jsonify({"request": booking_request.to_dict()}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject appointment request")
        return jsonify({"error": "Internal server error"}), 500
