"""
Cash Shift Service

A shift is one cashier's period of accountability against an OPEN drawer.

STATE MACHINE:
    ACTIVE --end-->     ENDED       (terminal)
    ACTIVE --handoff--> HANDED_OFF  (terminal; spawns an ACTIVE successor)

INVARIANTS (enforced by partial unique indexes, checked here first):
- At most one ACTIVE shift per drawer
- At most one ACTIVE shift per cashier, across all drawers

expected = starting balance + income - expenses of the shift's transactions
difference = counted - expected (surplus positive, shortage negative)
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import CashShift, CashTransaction, DrawerStatus, ShiftStatus, TransactionType
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError
from .cash_drawer_service import get_active_shift_for_drawer, get_drawer, net_transactions
from .concurrency import commit_or_conflict, flush_or_conflict, lock_for_update
from .tenant_service import require_staff


def get_shift(tenant_id: int, shift_id: int) -> CashShift:
    shift = db.session.query(CashShift).filter_by(id=shift_id, tenant_id=tenant_id).first()
    if not shift:
        raise NotFoundError("Cash shift not found")
    return shift


def get_active_shift_for_cashier(cashier_id: int) -> CashShift | None:
    return db.session.query(CashShift).filter_by(
        cashier_id=cashier_id,
        status=ShiftStatus.ACTIVE,
    ).first()


def list_shifts(
    tenant_id: int,
    *,
    drawer_id: int | None = None,
    cashier_id: int | None = None,
    status: str | None = None,
    limit: int = 50,
) -> list[CashShift]:
    query = db.session.query(CashShift).filter_by(tenant_id=tenant_id)
    if drawer_id is not None:
        query = query.filter_by(drawer_id=drawer_id)
    if cashier_id is not None:
        query = query.filter_by(cashier_id=cashier_id)
    if status:
        if status not in (ShiftStatus.ACTIVE,) + ShiftStatus.TERMINAL:
            raise ValidationError("status must be ACTIVE, ENDED or HANDED_OFF")
        query = query.filter_by(status=status)
    return query.order_by(CashShift.started_at.desc(), CashShift.id.desc()).limit(limit).all()


def _active_shift_conflict(drawer_id: int, cashier_id: int):
    """(code, message) for whichever ACTIVE-shift invariant is currently violated."""
    if get_active_shift_for_drawer(drawer_id):
        return "DRAWER_HAS_ACTIVE_SHIFT", "Cash drawer already has an active shift"
    if get_active_shift_for_cashier(cashier_id):
        return "CASHIER_HAS_ACTIVE_SHIFT", "Cashier already has an active shift"
    return None


def start_shift(
    *,
    tenant_id: int,
    drawer_id: int,
    cashier_id: int,
    starting_balance_cents: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> CashShift:
    """
    Start a shift for a cashier on an OPEN drawer.

    Raises:
        ValidationError: negative starting balance
        NotFoundError: drawer or cashier not in this tenant
        ConflictError: DRAWER_NOT_OPEN, DRAWER_HAS_ACTIVE_SHIFT or
            CASHIER_HAS_ACTIVE_SHIFT
    """
    if starting_balance_cents < 0:
        raise ValidationError("starting_balance cannot be negative")

    drawer = get_drawer(tenant_id, drawer_id)
    require_staff(tenant_id, cashier_id)

    if drawer.status != DrawerStatus.OPEN:
        raise ConflictError("Cash drawer is not open", "DRAWER_NOT_OPEN")

    existing = get_active_shift_for_drawer(drawer.id)
    if existing:
        raise ConflictError(
            f"Cash drawer already has an active shift (shift {existing.id})",
            "DRAWER_HAS_ACTIVE_SHIFT",
            shift_id=existing.id,
        )

    # System-wide: a cashier cannot run two drawers at once
    own = get_active_shift_for_cashier(cashier_id)
    if own:
        raise ConflictError(
            f"Cashier already has an active shift (shift {own.id})",
            "CASHIER_HAS_ACTIVE_SHIFT",
            shift_id=own.id,
        )

    shift = CashShift(
        tenant_id=tenant_id,
        drawer_id=drawer.id,
        cashier_id=cashier_id,
        status=ShiftStatus.ACTIVE,
        starting_balance_cents=starting_balance_cents,
        started_at=now or utcnow(),
        notes=notes,
    )
    db.session.add(shift)
    commit_or_conflict(
        "DRAWER_HAS_ACTIVE_SHIFT",
        "Cash drawer already has an active shift",
        resolve=lambda: _active_shift_conflict(drawer.id, cashier_id),
    )

    current_app.logger.info("Shift %s started on drawer %s by staff %s", shift.id, drawer.id, cashier_id)
    return shift


def compute_expected_balance(shift: CashShift) -> int:
    """Starting balance plus the net of transactions recorded against this shift."""
    transactions = db.session.query(CashTransaction).filter_by(shift_id=shift.id).all()
    return shift.starting_balance_cents + net_transactions(transactions)


def _lock_active_shift(tenant_id: int, shift_id: int) -> CashShift:
    shift = lock_for_update(
        db.session.query(CashShift).filter_by(id=shift_id, tenant_id=tenant_id)
    ).first()
    if not shift:
        raise NotFoundError("Cash shift not found")
    if shift.status != ShiftStatus.ACTIVE:
        raise ConflictError(f"Shift is already {shift.status}", "SHIFT_NOT_ACTIVE")
    return shift


def end_shift(
    *,
    tenant_id: int,
    shift_id: int,
    ending_balance_cents: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> CashShift:
    """
    End an ACTIVE shift with the counted balance.

    A surplus, a shortage and an exact match are all valid outcomes.
    """
    if ending_balance_cents < 0:
        raise ValidationError("ending_balance cannot be negative")

    shift = _lock_active_shift(tenant_id, shift_id)
    expected = compute_expected_balance(shift)

    shift.status = ShiftStatus.ENDED
    shift.ending_balance_cents = ending_balance_cents
    shift.expected_balance_cents = expected
    shift.difference_cents = ending_balance_cents - expected
    shift.ended_at = now or utcnow()
    if notes:
        shift.notes = notes

    commit_or_conflict("SHIFT_NOT_ACTIVE", "Shift was changed by another request")

    current_app.logger.info(
        "Shift %s ended: expected=%s counted=%s difference=%s",
        shift.id, expected, ending_balance_cents, shift.difference_cents,
    )
    return shift


def handoff_shift(
    *,
    tenant_id: int,
    shift_id: int,
    new_cashier_id: int,
    verified_amount_cents: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> tuple[CashShift, CashShift]:
    """
    Hand an ACTIVE shift to another cashier without closing the drawer.

    The outgoing shift records verified - expected as its difference. The
    successor starts at the verified amount; the discrepancy is not carried
    forward.

    Returns:
        (handed_off_shift, new_shift)
    """
    if verified_amount_cents < 0:
        raise ValidationError("verified_amount cannot be negative")

    shift = get_shift(tenant_id, shift_id)
    if shift.cashier_id == new_cashier_id:
        raise ValidationError("Cannot hand off a shift to the same cashier", "SELF_HANDOFF")

    shift = _lock_active_shift(tenant_id, shift_id)
    require_staff(tenant_id, new_cashier_id)

    receiving = get_active_shift_for_cashier(new_cashier_id)
    if receiving:
        raise ConflictError(
            f"Receiving cashier already has an active shift (shift {receiving.id})",
            "CASHIER_HAS_ACTIVE_SHIFT",
            shift_id=receiving.id,
        )

    now = now or utcnow()
    expected = compute_expected_balance(shift)

    shift.status = ShiftStatus.HANDED_OFF
    shift.handed_off_to_id = new_cashier_id
    shift.ending_balance_cents = verified_amount_cents
    shift.expected_balance_cents = expected
    shift.difference_cents = verified_amount_cents - expected
    shift.ended_at = now
    if notes:
        shift.notes = notes
    # The drawer's ACTIVE slot must be released before the successor is inserted
    flush_or_conflict("SHIFT_NOT_ACTIVE", "Shift was changed by another request")

    successor = CashShift(
        tenant_id=tenant_id,
        drawer_id=shift.drawer_id,
        cashier_id=new_cashier_id,
        status=ShiftStatus.ACTIVE,
        starting_balance_cents=verified_amount_cents,
        previous_shift_id=shift.id,
        started_at=now,
    )
    db.session.add(successor)
    commit_or_conflict("CASHIER_HAS_ACTIVE_SHIFT", "Receiving cashier already has an active shift")

    current_app.logger.info(
        "Shift %s handed off to staff %s as shift %s (difference=%s)",
        shift.id, new_cashier_id, successor.id, shift.difference_cents,
    )
    return shift, successor


def get_shift_balance(tenant_id: int, shift_id: int) -> dict:
    """Running balance of a shift: starting balance plus net of its transactions."""
    shift = get_shift(tenant_id, shift_id)
    transactions = db.session.query(CashTransaction).filter_by(shift_id=shift.id).all()

    income = sum(tx.amount_cents for tx in transactions if tx.type in TransactionType.INCOME)
    expenses = sum(tx.amount_cents for tx in transactions if tx.type in TransactionType.EXPENSE)
    return {
        "shift_id": shift.id,
        "starting_balance_cents": shift.starting_balance_cents,
        "income_cents": income,
        "expenses_cents": expenses,
        "balance_cents": shift.starting_balance_cents + net_transactions(transactions),
        "transaction_count": len(transactions),
    }
