from __future__ import annotations

from sqlalchemy import text

from ..extensions import db
from ..time_utils import to_utc_z


class DrawerStatus:
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ShiftStatus:
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    HANDED_OFF = "HANDED_OFF"

    TERMINAL = (ENDED, HANDED_OFF)


class TransactionType:
    SALE_CASH = "SALE_CASH"
    DEPOSIT = "DEPOSIT"
    ADJUSTMENT_IN = "ADJUSTMENT_IN"
    REFUND_CASH = "REFUND_CASH"
    WITHDRAWAL = "WITHDRAWAL"
    ADJUSTMENT_OUT = "ADJUSTMENT_OUT"

    INCOME = (SALE_CASH, DEPOSIT, ADJUSTMENT_IN)
    EXPENSE = (REFUND_CASH, WITHDRAWAL, ADJUSTMENT_OUT)
    ALL = INCOME + EXPENSE


_OPEN_ONLY = text("status = 'OPEN'")
_ACTIVE_ONLY = text("status = 'ACTIVE'")


class CashDrawer(db.Model):
    """
    One cash register session at a location ("caja").

    LIFECYCLE:
    - OPEN: accepting transactions and shifts
    - CLOSED: counted and reconciled; immutable

    CONCURRENCY: the partial unique index guarantees at most one OPEN drawer
    per (tenant, location) even when two requests race past the service-level
    check. All amounts are in cents.
    """
    __tablename__ = "cash_drawers"
    __table_args__ = (
        db.Index(
            "uq_cash_drawers_one_open_per_location",
            "tenant_id", "location_id",
            unique=True,
            sqlite_where=_OPEN_ONLY,
            postgresql_where=_OPEN_ONLY,
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=DrawerStatus.OPEN, index=True)

    initial_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=True)  # Counted at close
    expected_amount_cents = db.Column(db.Integer, nullable=True)  # initial + cash sales
    difference_cents = db.Column(db.Integer, nullable=True)  # final - expected

    opened_by_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False)
    closed_by_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    location = db.relationship("Location", backref=db.backref("cash_drawers", lazy=True))
    opened_by = db.relationship("Staff", foreign_keys=[opened_by_id])
    closed_by = db.relationship("Staff", foreign_keys=[closed_by_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "location_id": self.location_id,
            "status": self.status,
            "initial_amount_cents": self.initial_amount_cents,
            "final_amount_cents": self.final_amount_cents,
            "expected_amount_cents": self.expected_amount_cents,
            "difference_cents": self.difference_cents,
            "opened_by_id": self.opened_by_id,
            "closed_by_id": self.closed_by_id,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "notes": self.notes,
            "version_id": self.version_id,
        }


class CashShift(db.Model):
    """
    One cashier's working period against an open drawer.

    LIFECYCLE:
    - ACTIVE: cashier is responsible for the drawer
    - ENDED: counted and reconciled by the cashier (terminal)
    - HANDED_OFF: counted and transferred to another cashier (terminal);
      the successor shift points back through previous_shift_id

    CONCURRENCY: partial unique indexes allow one ACTIVE shift per drawer and
    one ACTIVE shift per cashier.
    """
    __tablename__ = "cash_shifts"
    __table_args__ = (
        db.Index(
            "uq_cash_shifts_one_active_per_drawer",
            "drawer_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
        db.Index(
            "uq_cash_shifts_one_active_per_cashier",
            "cashier_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    drawer_id = db.Column(db.Integer, db.ForeignKey("cash_drawers.id"), nullable=False, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=ShiftStatus.ACTIVE, index=True)

    starting_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    ending_balance_cents = db.Column(db.Integer, nullable=True)
    expected_balance_cents = db.Column(db.Integer, nullable=True)
    difference_cents = db.Column(db.Integer, nullable=True)

    handed_off_to_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    previous_shift_id = db.Column(db.Integer, db.ForeignKey("cash_shifts.id"), nullable=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    drawer = db.relationship("CashDrawer", backref=db.backref("shifts", lazy=True))
    cashier = db.relationship("Staff", foreign_keys=[cashier_id])
    handed_off_to = db.relationship("Staff", foreign_keys=[handed_off_to_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "drawer_id": self.drawer_id,
            "cashier_id": self.cashier_id,
            "status": self.status,
            "starting_balance_cents": self.starting_balance_cents,
            "ending_balance_cents": self.ending_balance_cents,
            "expected_balance_cents": self.expected_balance_cents,
            "difference_cents": self.difference_cents,
            "handed_off_to_id": self.handed_off_to_id,
            "previous_shift_id": self.previous_shift_id,
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at),
            "notes": self.notes,
            "version_id": self.version_id,
        }


class CashTransaction(db.Model):
    """
    Append-only cash movement against a drawer.

    amount_cents is always a positive magnitude; the type decides whether it
    adds to (TransactionType.INCOME) or subtracts from the balance.
    """
    __tablename__ = "cash_transactions"
    __table_args__ = (
        db.Index("ix_cash_transactions_drawer_created", "drawer_id", "created_at"),
        db.CheckConstraint("amount_cents > 0", name="ck_cash_transactions_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    drawer_id = db.Column(db.Integer, db.ForeignKey("cash_drawers.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("cash_shifts.id"), nullable=True, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    recorded_by_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    drawer = db.relationship("CashDrawer", backref=db.backref("transactions", lazy=True))
    shift = db.relationship("CashShift", backref=db.backref("transactions", lazy=True))

    @property
    def signed_amount_cents(self) -> int:
        return self.amount_cents if self.type in TransactionType.INCOME else -self.amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "drawer_id": self.drawer_id,
            "shift_id": self.shift_id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "recorded_by_id": self.recorded_by_id,
            "created_at": to_utc_z(self.created_at),
        }
