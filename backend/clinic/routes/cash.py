# Overview: Flask API routes for cash drawers, shifts and transactions; parses input and returns JSON responses.

# backend/clinic/routes/cash.py
"""
Cash Drawer API Routes

DESIGN:
- Drawer lifecycle: open -> close (immutable once closed)
- Shift lifecycle: start -> end | handoff (successor shift created atomically)
- Transactions are append-only

SECURITY:
- MANAGE_CASH_DRAWER to open/close drawers and act on other cashiers' shifts
- OPERATE_CASH_DRAWER to record transactions and run one's own shift

Amounts are accepted either as "<field>_cents" integers or "<field>" decimals.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..money_utils import read_amount
from ..services import cash_drawer_service, shift_service
from ..validation import (
    ClinicError,
    ForbiddenError,
    error_response,
    optional_int,
    optional_str,
    require_json,
    required_int,
    required_str,
)

cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


def _require_self_or_manager(cashier_id: int) -> None:
    if cashier_id != g.current_staff.id and "MANAGE_CASH_DRAWER" not in g.permissions:
        raise ForbiddenError("Only a cash manager can act on another cashier's shift", "PERMISSION_DENIED")


# =============================================================================
# DRAWERS
# =============================================================================

@cash_bp.post("/drawers")
@require_auth
@require_permission("MANAGE_CASH_DRAWER")
def open_drawer_route():
    """
    Open a cash drawer.

    Request body:
    {
        "location_id": 1,
        "initial_amount": "150.00",   (or "initial_amount_cents": 15000)
        "notes": "..."                (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))

        drawer = cash_drawer_service.open_drawer(
            tenant_id=g.tenant_id,
            location_id=required_int(data, "location_id"),
            opened_by_id=g.current_staff.id,
            initial_amount_cents=read_amount(data, "initial_amount"),
            notes=optional_str(data, "notes"),
        )
        return jsonify({"drawer": drawer.to_dict()}), 201

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open cash drawer")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/drawers")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def list_drawers_route():
    """Query params: location_id, status (OPEN/CLOSED) - both optional"""
    try:
        drawers = cash_drawer_service.list_drawers(
            g.tenant_id,
            location_id=optional_int(request.args.get("location_id"), "location_id"),
            status=request.args.get("status"),
        )
        return jsonify({"drawers": [d.to_dict() for d in drawers]}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list cash drawers")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/drawers/<int:drawer_id>")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def get_drawer_route(drawer_id: int):
    """Drawer details with running balance and current active shift."""
    try:
        drawer = cash_drawer_service.get_drawer(g.tenant_id, drawer_id)
        active_shift = cash_drawer_service.get_active_shift_for_drawer(drawer.id)

        result = drawer.to_dict()
        result["balance"] = cash_drawer_service.get_drawer_balance(g.tenant_id, drawer.id)
        result["active_shift"] = active_shift.to_dict() if active_shift else None
        return jsonify(result), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load cash drawer")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/drawers/<int:drawer_id>/close")
@require_auth
@require_permission("MANAGE_CASH_DRAWER")
def close_drawer_route(drawer_id: int):
    """
    Close a drawer with the counted amount.

    Request body:
    {
        "final_amount": "420.50",   (or "final_amount_cents": 42050)
        "notes": "..."              (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))

        drawer = cash_drawer_service.close_drawer(
            tenant_id=g.tenant_id,
            drawer_id=drawer_id,
            closed_by_id=g.current_staff.id,
            final_amount_cents=read_amount(data, "final_amount"),
            notes=optional_str(data, "notes"),
        )
        return jsonify({"drawer": drawer.to_dict()}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close cash drawer")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/drawers/<int:drawer_id>/transactions")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def record_transaction_route(drawer_id: int):
    """
    Record a cash movement.

    Request body:
    {
        "type": "DEPOSIT",
        "amount": "25.00",          (or "amount_cents": 2500)
        "description": "..."        (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))

        transaction = cash_drawer_service.record_transaction(
            tenant_id=g.tenant_id,
            drawer_id=drawer_id,
            type=required_str(data, "type"),
            amount_cents=read_amount(data, "amount", allow_zero=False),
            recorded_by_id=g.current_staff.id,
            description=optional_str(data, "description", max_length=255),
        )
        return jsonify({"transaction": transaction.to_dict()}), 201

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record cash transaction")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/drawers/<int:drawer_id>/transactions")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def list_transactions_route(drawer_id: int):
    try:
        transactions = cash_drawer_service.list_transactions(g.tenant_id, drawer_id)
        return jsonify({
            "transactions": [t.to_dict() for t in transactions],
            "balance": cash_drawer_service.get_drawer_balance(g.tenant_id, drawer_id),
        }), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list cash transactions")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# SHIFTS
# =============================================================================

@cash_bp.post("/shifts")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def start_shift_route():
    """
    Start a shift.

    Request body:
    {
        "drawer_id": 4,
        "cashier_id": 9,              (optional, defaults to the caller)
        "starting_balance": "150.00", (or "starting_balance_cents": 15000)
        "notes": "..."                (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        cashier_id = optional_int(data.get("cashier_id"), "cashier_id") or g.current_staff.id
        _require_self_or_manager(cashier_id)

        shift = shift_service.start_shift(
            tenant_id=g.tenant_id,
            drawer_id=required_int(data, "drawer_id"),
            cashier_id=cashier_id,
            starting_balance_cents=read_amount(data, "starting_balance"),
            notes=optional_str(data, "notes"),
        )
        return jsonify({"shift": shift.to_dict()}), 201

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to start shift")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/shifts")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def list_shifts_route():
    """Query params: drawer_id, cashier_id, status - all optional"""
    try:
        shifts = shift_service.list_shifts(
            g.tenant_id,
            drawer_id=optional_int(request.args.get("drawer_id"), "drawer_id"),
            cashier_id=optional_int(request.args.get("cashier_id"), "cashier_id"),
            status=request.args.get("status"),
        )
        return jsonify({"shifts": [s.to_dict() for s in shifts]}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list shifts")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/shifts/<int:shift_id>")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def get_shift_route(shift_id: int):
    try:
        shift = shift_service.get_shift(g.tenant_id, shift_id)
        result = shift.to_dict()
        result["balance"] = shift_service.get_shift_balance(g.tenant_id, shift.id)
        return jsonify(result), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load shift")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/shifts/<int:shift_id>/end")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def end_shift_route(shift_id: int):
    """
    End a shift with the counted balance.

    Request body:
    {
        "ending_balance": "180.00",   (or "ending_balance_cents": 18000)
        "notes": "..."                (optional)
    }
    """
    try:
        data = require_json(request.get_json(silent=True))
        shift = shift_service.get_shift(g.tenant_id, shift_id)
        _require_self_or_manager(shift.cashier_id)

        shift = shift_service.end_shift(
            tenant_id=g.tenant_id,
            shift_id=shift.id,
            ending_balance_cents=read_amount(data, "ending_balance"),
            notes=optional_str(data, "notes"),
        )
        return jsonify({"shift": shift.to_dict()}), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to end shift")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/shifts/<int:shift_id>/handoff")
@require_auth
@require_permission("OPERATE_CASH_DRAWER")
def handoff_shift_route(shift_id: int):
    """
    Hand a shift to another cashier.

    Request body:
    {
        "new_cashier_id": 11,
        "verified_amount": "180.00",  (or "verified_amount_cents": 18000)
        "notes": "..."                (optional)
    }

    Returns both the handed-off shift and the successor shift.
    """
    try:
        data = require_json(request.get_json(silent=True))
        shift = shift_service.get_shift(g.tenant_id, shift_id)
        _require_self_or_manager(shift.cashier_id)

        previous, successor = shift_service.handoff_shift(
            tenant_id=g.tenant_id,
            shift_id=shift.id,
            new_cashier_id=required_int(data, "new_cashier_id"),
            verified_amount_cents=read_amount(data, "verified_amount"),
            notes=optional_str(data, "notes"),
        )
        return jsonify({
            "previous_shift": previous.to_dict(),
            "shift": successor.to_dict(),
        }), 200

    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to hand off shift")
        return jsonify({"error": "Internal server error"}), 500
