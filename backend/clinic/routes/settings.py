# Overview: Flask API routes for clinic settings (business hours); parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import business_hours_service
from ..services.tenant_service import require_location
from ..validation import ClinicError, ValidationError, error_response, optional_int, require_json, required_int

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _location_from_args():
    location_id = optional_int(request.args.get("location_id"), "location_id")
    if location_id is None:
        raise ValidationError("location_id required")
    return require_location(g.tenant_id, location_id)


@settings_bp.get("/business-hours")
@require_auth
@require_permission("VIEW_APPOINTMENTS")
def get_business_hours_route():
    """Weekly schedule plus upcoming special-date overrides for a location."""
    try:
        location = _location_from_args()
        weekly = business_hours_service.get_weekly_schedule(location.id)
        special = business_hours_service.list_special_hours(location.id)
        return jsonify({
            "location_id": location.id,
            "timezone": location.timezone,
            "days": [row.to_dict() for row in weekly],
            "special_hours": [row.to_dict() for row in special],
        }), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load business hours")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.put("/business-hours")
@require_auth
@require_permission("MANAGE_BUSINESS_HOURS")
def update_business_hours_route():
    """
    Replace the weekly schedule (days not listed are left unchanged).

    Request body:
    {
        "days": [
            {"day_of_week": 1, "is_open": true, "open_time": "09:00", "close_time": "18:00",
             "break_start": "13:00", "break_end": "14:00", "slot_duration": 30},
            {"day_of_week": 0, "is_open": false}
        ]
    }
    """
    try:
        location = _location_from_args()
        data = require_json(request.get_json(silent=True))

        rows = business_hours_service.replace_weekly_schedule(
            tenant_id=g.tenant_id,
            location_id=location.id,
            days=data.get("days"),
        )
        return jsonify({"days": [row.to_dict() for row in rows]}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update business hours")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/special-hours")
@require_auth
@require_permission("MANAGE_BUSINESS_HOURS")
def add_special_hours_route():
    """
    Add a special-date override.

    Request body:
    {
        "location_id": 1,
        "date": "2030-12-24",
        "is_open": true,
        "open_time": "09:00",
        "close_time": "13:00",
        "reason": "Christmas Eve"
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        location = require_location(g.tenant_id, required_int(data, "location_id"))

        special = business_hours_service.add_special_hours(
            tenant_id=g.tenant_id,
            location_id=location.id,
            data=data,
        )
        return jsonify({"special_hours": special.to_dict()}), 201

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add special hours")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.delete("/special-hours/<int:special_hours_id>")
@require_auth
@require_permission("MANAGE_BUSINESS_HOURS")
def delete_special_hours_route(special_hours_id: int):
    try:
        business_hours_service.delete_special_hours(tenant_id=g.tenant_id, special_hours_id=special_hours_id)
        return jsonify({"deleted": True}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete special hours")
        return jsonify({"error": "Internal server error"}), 500
