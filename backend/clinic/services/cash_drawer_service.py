"""
Cash Drawer Service

Lifecycle of a location's cash drawer ("caja") and the append-only
transactions recorded against it.

DESIGN PRINCIPLES:
- One OPEN drawer per (tenant, location); backed by a partial unique index
- A CLOSED drawer is immutable; reopening means opening a new drawer
- The expected amount at close comes from cash payments of completed sales
- Money is integer cents throughout
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    CashDrawer,
    CashShift,
    CashTransaction,
    DrawerStatus,
    PaymentMethod,
    Sale,
    SalePayment,
    SaleStatus,
    ShiftStatus,
    TransactionType,
)
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import commit_or_conflict, lock_for_update
from .tenant_service import require_location


# =============================================================================
# LOOKUPS
# =============================================================================

def get_drawer(tenant_id: int, drawer_id: int) -> CashDrawer:
    drawer = db.session.query(CashDrawer).filter_by(id=drawer_id, tenant_id=tenant_id).first()
    if not drawer:
        raise NotFoundError("Cash drawer not found")
    return drawer


def get_open_drawer(tenant_id: int, location_id: int) -> CashDrawer | None:
    return db.session.query(CashDrawer).filter_by(
        tenant_id=tenant_id,
        location_id=location_id,
        status=DrawerStatus.OPEN,
    ).first()


def get_active_shift_for_drawer(drawer_id: int) -> CashShift | None:
    return db.session.query(CashShift).filter_by(
        drawer_id=drawer_id,
        status=ShiftStatus.ACTIVE,
    ).first()


def list_drawers(
    tenant_id: int,
    *,
    location_id: int | None = None,
    status: str | None = None,
    limit: int = 50,
) -> list[CashDrawer]:
    query = db.session.query(CashDrawer).filter_by(tenant_id=tenant_id)
    if location_id is not None:
        query = query.filter_by(location_id=location_id)
    if status:
        if status not in (DrawerStatus.OPEN, DrawerStatus.CLOSED):
            raise ValidationError("status must be OPEN or CLOSED")
        query = query.filter_by(status=status)
    return query.order_by(CashDrawer.opened_at.desc(), CashDrawer.id.desc()).limit(limit).all()


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def open_drawer(
    *,
    tenant_id: int,
    location_id: int,
    opened_by_id: int,
    initial_amount_cents: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> CashDrawer:
    """
    Open a drawer for a location.

    Raises:
        ValidationError: negative initial amount
        NotFoundError: location not in this tenant
        ConflictError(DRAWER_ALREADY_OPEN): location already has an OPEN drawer
    """
    if initial_amount_cents < 0:
        raise ValidationError("initial_amount cannot be negative")

    location = require_location(tenant_id, location_id)

    existing = get_open_drawer(tenant_id, location.id)
    if existing:
        raise ConflictError(
            f"Location already has an open cash drawer (drawer {existing.id})",
            "DRAWER_ALREADY_OPEN",
            drawer_id=existing.id,
        )

    drawer = CashDrawer(
        tenant_id=tenant_id,
        location_id=location.id,
        status=DrawerStatus.OPEN,
        initial_amount_cents=initial_amount_cents,
        opened_by_id=opened_by_id,
        opened_at=now or utcnow(),
        notes=notes,
    )
    db.session.add(drawer)
    commit_or_conflict("DRAWER_ALREADY_OPEN", "Location already has an open cash drawer")

    current_app.logger.info(
        "Cash drawer %s opened at location %s with %s cents",
        drawer.id, location.id, initial_amount_cents,
    )
    return drawer


def cash_sales_since(tenant_id: int, location_id: int, since: datetime) -> int:
    """Sum of CASH payments on COMPLETED sales at a location paid at or after `since`."""
    total = db.session.query(func.coalesce(func.sum(SalePayment.amount_cents), 0)).join(
        Sale, Sale.id == SalePayment.sale_id,
    ).filter(
        Sale.tenant_id == tenant_id,
        Sale.location_id == location_id,
        Sale.status == SaleStatus.COMPLETED,
        SalePayment.payment_method == PaymentMethod.CASH,
        SalePayment.paid_at >= since,
    ).scalar()
    return int(total or 0)


def close_drawer(
    *,
    tenant_id: int,
    drawer_id: int,
    closed_by_id: int,
    final_amount_cents: int,
    notes: str | None = None,
    now: datetime | None = None,
) -> CashDrawer:
    """
    Close an OPEN drawer and reconcile it against cash sales.

    expected = initial + cash sales since opened_at
    difference = final - expected (signed; any value is a valid outcome)

    Raises:
        NotFoundError: drawer not in this tenant
        ConflictError(DRAWER_NOT_OPEN): drawer already closed
        ConflictError(DRAWER_HAS_ACTIVE_SHIFT): a shift still runs on the drawer
    """
    if final_amount_cents < 0:
        raise ValidationError("final_amount cannot be negative")

    drawer = lock_for_update(
        db.session.query(CashDrawer).filter_by(id=drawer_id, tenant_id=tenant_id)
    ).first()
    if not drawer:
        raise NotFoundError("Cash drawer not found")
    if drawer.status != DrawerStatus.OPEN:
        raise ConflictError("Cash drawer is already closed", "DRAWER_NOT_OPEN")

    active_shift = get_active_shift_for_drawer(drawer.id)
    if active_shift:
        raise ConflictError(
            f"End or hand off shift {active_shift.id} before closing the drawer",
            "DRAWER_HAS_ACTIVE_SHIFT",
            shift_id=active_shift.id,
        )

    expected = drawer.initial_amount_cents + cash_sales_since(tenant_id, drawer.location_id, drawer.opened_at)

    drawer.status = DrawerStatus.CLOSED
    drawer.final_amount_cents = final_amount_cents
    drawer.expected_amount_cents = expected
    drawer.difference_cents = final_amount_cents - expected
    drawer.closed_by_id = closed_by_id
    drawer.closed_at = now or utcnow()
    if notes:
        drawer.notes = notes

    commit_or_conflict("DRAWER_NOT_OPEN", "Cash drawer was closed by another request")

    current_app.logger.info(
        "Cash drawer %s closed: expected=%s final=%s difference=%s",
        drawer.id, expected, final_amount_cents, drawer.difference_cents,
    )
    return drawer


# =============================================================================
# TRANSACTIONS
# =============================================================================

def record_transaction(
    *,
    tenant_id: int,
    drawer_id: int,
    type: str,
    amount_cents: int,
    recorded_by_id: int | None = None,
    description: str | None = None,
    now: datetime | None = None,
) -> CashTransaction:
    """
    Append a cash movement to an OPEN drawer.

    The transaction is attributed to the drawer's ACTIVE shift, if any.
    """
    if type not in TransactionType.ALL:
        raise ValidationError(f"type must be one of: {', '.join(TransactionType.ALL)}")
    if amount_cents <= 0:
        raise ValidationError("amount must be greater than zero")

    drawer = get_drawer(tenant_id, drawer_id)
    if drawer.status != DrawerStatus.OPEN:
        raise ConflictError("Cash drawer is closed", "DRAWER_NOT_OPEN")

    shift = get_active_shift_for_drawer(drawer.id)
    transaction = CashTransaction(
        tenant_id=tenant_id,
        drawer_id=drawer.id,
        shift_id=shift.id if shift else None,
        type=type,
        amount_cents=amount_cents,
        description=description,
        recorded_by_id=recorded_by_id,
        created_at=now or utcnow(),
    )
    db.session.add(transaction)
    db.session.commit()
    return transaction


def list_transactions(tenant_id: int, drawer_id: int) -> list[CashTransaction]:
    drawer = get_drawer(tenant_id, drawer_id)
    return db.session.query(CashTransaction).filter_by(
        drawer_id=drawer.id,
    ).order_by(CashTransaction.created_at.asc(), CashTransaction.id.asc()).all()


def net_transactions(transactions) -> int:
    return sum(tx.signed_amount_cents for tx in transactions)


def get_drawer_balance(tenant_id: int, drawer_id: int) -> dict:
    """Running balance: initial amount plus net of the drawer's transactions."""
    drawer = get_drawer(tenant_id, drawer_id)
    transactions = db.session.query(CashTransaction).filter_by(drawer_id=drawer.id).all()

    income = sum(tx.amount_cents for tx in transactions if tx.type in TransactionType.INCOME)
    expenses = sum(tx.amount_cents for tx in transactions if tx.type in TransactionType.EXPENSE)
    return {
        "drawer_id": drawer.id,
        "initial_amount_cents": drawer.initial_amount_cents,
        "income_cents": income,
        "expenses_cents": expenses,
        "balance_cents": drawer.initial_amount_cents + net_transactions(transactions),
        "transaction_count": len(transactions),
    }
