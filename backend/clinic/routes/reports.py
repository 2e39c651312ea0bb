# Overview: Flask API routes for cash reports; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import cash_report_service
from ..services.tenant_service import default_location, require_location
from ..validation import ClinicError, error_response, optional_int

reports_bp = Blueprint("reports", __name__, url_prefix="/api/cash")


@reports_bp.get("/reports")
@require_auth
@require_permission("VIEW_CASH_REPORTS")
def cash_report_route():
    """
    Cash report for a period.

    Query params:
        period: day | week | month | lastMonth | custom (default day)
        start_date, end_date: YYYY-MM-DD, required for custom
        drawer_id, cashier_id: optional filters
        group_by: drawer | cashier | day | hour | type (optional)
        location_id: whose timezone defines the period (optional)
    """
    try:
        location_id = optional_int(request.args.get("location_id"), "location_id")
        if location_id is not None:
            location = require_location(g.tenant_id, location_id)
        else:
            location = default_location(g.tenant_id)

        report = cash_report_service.cash_report(
            tenant_id=g.tenant_id,
            tz_name=location.timezone,
            period=request.args.get("period", "day"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            drawer_id=optional_int(request.args.get("drawer_id"), "drawer_id"),
            cashier_id=optional_int(request.args.get("cashier_id"), "cashier_id"),
            group_by=request.args.get("group_by") or None,
        )
        return jsonify(report), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build cash report")
        return jsonify({"error": "Internal server error"}), 500
