# Overview: Service-layer read models for cash reports; period resolution and aggregations.

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import CashDrawer, CashShift, CashTransaction, Staff, ShiftStatus, TransactionType
from ..money_utils import percentage
from ..time_utils import local_day_bounds_utc, local_today, parse_calendar_date, to_utc_z, utc_to_local, utcnow
from ..validation import ValidationError

PERIODS = ("day", "week", "month", "lastMonth", "custom")
GROUPINGS = ("drawer", "cashier", "day", "hour", "type")


def _first_of_month(day: date) -> date:
    return day.replace(day=1)


def _next_month(day: date) -> date:
    first = _first_of_month(day)
    return (first + timedelta(days=32)).replace(day=1)


def resolve_period(
    period: str,
    *,
    tz_name: str,
    now: datetime | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> tuple[datetime, datetime]:
    """
    Half-open UTC-naive range [start, end) for a named reporting period.

    Periods are whole tenant-local days; weeks start on Monday. "custom"
    needs start_date and end_date (inclusive calendar dates).
    """
    period = period or "day"
    if period not in PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(PERIODS)}")

    today = local_today(tz_name, now or utcnow())

    if period == "day":
        first, last = today, today
    elif period == "week":
        first = today - timedelta(days=today.weekday())
        last = first + timedelta(days=6)
    elif period == "month":
        first = _first_of_month(today)
        last = _next_month(today) - timedelta(days=1)
    elif period == "lastMonth":
        last = _first_of_month(today) - timedelta(days=1)
        first = _first_of_month(last)
    else:
        if not start_date or not end_date:
            raise ValidationError("start_date and end_date required for a custom period")
        try:
            first = parse_calendar_date(start_date, tz_name)
            last = parse_calendar_date(end_date, tz_name)
        except ValueError:
            raise ValidationError("start_date and end_date must be YYYY-MM-DD")
        if last < first:
            raise ValidationError("end_date cannot be before start_date")

    start, _ = local_day_bounds_utc(first, tz_name)
    _, end = local_day_bounds_utc(last, tz_name)
    return start, end


def _average(total: int, count: int) -> int:
    if count == 0:
        return 0
    return int((Decimal(total) / count).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _totals_bucket() -> dict:
    return {"income_cents": 0, "expenses_cents": 0, "net_cents": 0, "transaction_count": 0}


def _add_to_bucket(bucket: dict, tx: CashTransaction) -> None:
    if tx.type in TransactionType.INCOME:
        bucket["income_cents"] += tx.amount_cents
    else:
        bucket["expenses_cents"] += tx.amount_cents
    bucket["net_cents"] = bucket["income_cents"] - bucket["expenses_cents"]
    bucket["transaction_count"] += 1


def discrepancy_stats(shifts: list[CashShift]) -> dict:
    """
    Cross-shift discrepancy statistics for terminal shifts.

    worst_difference_cents keeps its sign (the difference with the largest
    magnitude); accuracy_percent is the share of shifts that balanced exactly.
    """
    differences = [shift.difference_cents or 0 for shift in shifts]
    worst = 0
    for diff in differences:
        if abs(diff) > abs(worst):
            worst = diff
    exact = sum(1 for diff in differences if diff == 0)
    return {
        "total_difference_cents": sum(differences),
        "shifts_with_difference": len(differences) - exact,
        "worst_difference_cents": worst,
        "accuracy_percent": percentage(exact, len(differences)),
        "shift_count": len(differences),
    }


def cash_report(
    *,
    tenant_id: int,
    tz_name: str,
    period: str = "day",
    start_date: str | None = None,
    end_date: str | None = None,
    drawer_id: int | None = None,
    cashier_id: int | None = None,
    group_by: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Aggregate cash activity for a period.

    Transactions are selected by created_at, shifts by started_at (terminal
    shifts only). Hour and day buckets use tenant-local time. With group_by
    unset, drawer and cashier breakdowns are included; otherwise only the
    named breakdown is.
    """
    if group_by and group_by not in GROUPINGS:
        raise ValidationError(f"group_by must be one of: {', '.join(GROUPINGS)}")

    start, end = resolve_period(period, tz_name=tz_name, now=now, start_date=start_date, end_date=end_date)

    tx_query = db.session.query(CashTransaction).filter(
        CashTransaction.tenant_id == tenant_id,
        CashTransaction.created_at >= start,
        CashTransaction.created_at < end,
    )
    if drawer_id is not None:
        tx_query = tx_query.filter(CashTransaction.drawer_id == drawer_id)
    if cashier_id is not None:
        tx_query = tx_query.join(CashShift, CashShift.id == CashTransaction.shift_id).filter(
            CashShift.cashier_id == cashier_id,
        )
    transactions = tx_query.order_by(CashTransaction.created_at.asc(), CashTransaction.id.asc()).all()

    shift_query = db.session.query(CashShift).filter(
        CashShift.tenant_id == tenant_id,
        CashShift.status.in_(ShiftStatus.TERMINAL),
        CashShift.started_at >= start,
        CashShift.started_at < end,
    )
    if drawer_id is not None:
        shift_query = shift_query.filter(CashShift.drawer_id == drawer_id)
    if cashier_id is not None:
        shift_query = shift_query.filter(CashShift.cashier_id == cashier_id)
    shifts = shift_query.order_by(CashShift.started_at.asc(), CashShift.id.asc()).all()

    summary = _totals_bucket()
    by_type: dict[str, dict] = {}
    for tx in transactions:
        _add_to_bucket(summary, tx)
        entry = by_type.setdefault(tx.type, {"count": 0, "total_cents": 0})
        entry["count"] += 1
        entry["total_cents"] += tx.amount_cents
    summary["average_cents"] = _average(summary["net_cents"], summary["transaction_count"])

    shift_tx_counts = _transaction_counts([shift.id for shift in shifts])

    report = {
        "period": {"name": period or "day", "start": to_utc_z(start), "end": to_utc_z(end)},
        "summary": summary,
        "by_type": by_type,
        "discrepancies": discrepancy_stats(shifts),
        "shifts": [
            dict(shift.to_dict(), transaction_count=shift_tx_counts.get(shift.id, 0))
            for shift in shifts
        ],
    }

    if group_by in (None, "drawer"):
        report["by_drawer"] = _by_drawer(transactions, shifts)
    if group_by in (None, "cashier"):
        report["by_cashier"] = _by_cashier(shifts, shift_tx_counts)
    if group_by == "day":
        report["by_day"] = _by_local_key(transactions, tz_name, lambda local: local.date().isoformat(), "date")
    if group_by == "hour":
        report["by_hour"] = _by_local_key(transactions, tz_name, lambda local: local.hour, "hour")
    return report


def _transaction_counts(shift_ids: list[int]) -> dict[int, int]:
    if not shift_ids:
        return {}
    rows = db.session.query(
        CashTransaction.shift_id,
        db.func.count(CashTransaction.id),
    ).filter(CashTransaction.shift_id.in_(shift_ids)).group_by(CashTransaction.shift_id).all()
    return {shift_id: count for shift_id, count in rows}


def _by_drawer(transactions: list[CashTransaction], shifts: list[CashShift]) -> list[dict]:
    buckets: dict[int, dict] = OrderedDict()

    def bucket_for(drawer_id: int) -> dict:
        if drawer_id not in buckets:
            buckets[drawer_id] = dict(_totals_bucket(), drawer_id=drawer_id, shift_count=0, total_difference_cents=0)
        return buckets[drawer_id]

    for tx in transactions:
        _add_to_bucket(bucket_for(tx.drawer_id), tx)
    for shift in shifts:
        bucket = bucket_for(shift.drawer_id)
        bucket["shift_count"] += 1
        bucket["total_difference_cents"] += shift.difference_cents or 0

    if buckets:
        drawers = db.session.query(CashDrawer.id, CashDrawer.location_id).filter(
            CashDrawer.id.in_(list(buckets)),
        ).all()
        for drawer_id, location_id in drawers:
            buckets[drawer_id]["location_id"] = location_id
    return list(buckets.values())


def _by_cashier(shifts: list[CashShift], tx_counts: dict[int, int]) -> list[dict]:
    buckets: dict[int, dict] = OrderedDict()
    for shift in shifts:
        bucket = buckets.setdefault(shift.cashier_id, {
            "cashier_id": shift.cashier_id,
            "shift_count": 0,
            "minutes": 0,
            "transaction_count": 0,
            "total_difference_cents": 0,
            "exact_shifts": 0,
        })
        bucket["shift_count"] += 1
        bucket["transaction_count"] += tx_counts.get(shift.id, 0)
        bucket["total_difference_cents"] += shift.difference_cents or 0
        if shift.ended_at:
            bucket["minutes"] += (shift.ended_at - shift.started_at).total_seconds() / 60
        if not shift.difference_cents:
            bucket["exact_shifts"] += 1

    names = {}
    if buckets:
        names = dict(db.session.query(Staff.id, Staff.name).filter(Staff.id.in_(list(buckets))).all())

    results = []
    for cashier_id, bucket in buckets.items():
        results.append({
            "cashier_id": cashier_id,
            "cashier_name": names.get(cashier_id),
            "shift_count": bucket["shift_count"],
            "total_hours": float(
                (Decimal(str(bucket["minutes"])) / 60).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            ),
            "transaction_count": bucket["transaction_count"],
            "total_difference_cents": bucket["total_difference_cents"],
            "accuracy_percent": percentage(bucket["exact_shifts"], bucket["shift_count"]),
        })
    return results


def _by_local_key(transactions: list[CashTransaction], tz_name: str, key_fn, key_name: str) -> list[dict]:
    buckets: dict = {}
    for tx in transactions:
        key = key_fn(utc_to_local(tx.created_at, tz_name))
        bucket = buckets.setdefault(key, dict(_totals_bucket(), **{key_name: key}))
        _add_to_bucket(bucket, tx)
    return [buckets[key] for key in sorted(buckets)]
