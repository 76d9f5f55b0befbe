"""Cashier performance: per-cashier sales, hourly histogram and attendance."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from backend.app.models.pos import Shift
from backend.app.models.transaction import Transaction
from backend.app.services.reports.transaction_query import fetch_transactions_with_fallback
from backend.app.services.reports.utils import (
    ZERO,
    StoreScope,
    average,
    cashier_label,
    iso,
    local_hour,
    resolve_user_names,
    store_label,
    to_decimal,
    to_local,
)
from backend.app.services.shifts import list_shifts_for_range

_SECONDS_PER_HOUR = Decimal("3600")


def _hours_worked(shift: Shift) -> str | None:
    if shift.start_time is None or shift.end_time is None:
        return None
    # Compared as local wall-clock time; naive values are already local
    start = to_local(shift.start_time).replace(tzinfo=None)
    end = to_local(shift.end_time).replace(tzinfo=None)
    seconds = Decimal(str((end - start).total_seconds()))
    return str((seconds / _SECONDS_PER_HOUR).quantize(Decimal("0.01")))


def aggregate_cashier_performance(
    transactions: Sequence[Transaction],
    shifts: Sequence[Shift],
    user_names: Mapping[UUID, str],
    from_date: date,
    to_date: date,
    store_scope: StoreScope,
) -> dict[str, object] | None:
    """Cashier sales and attendance for the range.

    Cashiers come from transactions, attendance from shifts; neither side
    filters the other. Returns None when there is neither.
    """
    if not transactions and not shifts:
        return None

    def name_of(user_id: UUID | None) -> str:
        if user_id is None:
            return cashier_label(None)
        return user_names.get(user_id, cashier_label(user_id))

    sales: dict[UUID | None, Decimal] = {}
    counts: dict[UUID | None, int] = {}
    hourly_sales = [ZERO] * 24
    hourly_count = [0] * 24

    for tx in transactions:
        amount = to_decimal(tx.total)
        sales[tx.user_id] = sales.get(tx.user_id, ZERO) + amount
        counts[tx.user_id] = counts.get(tx.user_id, 0) + 1
        hour = local_hour(tx.created_at)
        hourly_sales[hour] += amount
        hourly_count[hour] += 1

    cashiers = [
        {
            "user_id": str(uid) if uid is not None else None,
            "name": name_of(uid),
            "transaction_count": counts[uid],
            "total_sales": str(sales[uid]),
            "average_transaction_value": str(average(sales[uid], counts[uid])),
        }
        for uid in sorted(sales, key=lambda u: (-sales[u], name_of(u)))
    ]

    attendance = [
        {
            "shift_id": str(s.id),
            "user_id": str(s.user_id),
            "name": name_of(s.user_id),
            "start_time": iso(s.start_time),
            "end_time": iso(s.end_time),
            "starting_cash": str(to_decimal(s.starting_cash)),
            "ending_cash": str(s.ending_cash) if s.ending_cash is not None else None,
            "status": s.status,
            "start_photo": s.start_photo,
            "end_photo": s.end_photo,
            "hours_worked": _hours_worked(s),
        }
        for s in shifts
    ]

    total_sales = sum(sales.values(), ZERO)
    return {
        "report_type": "cashier_performance",
        "store_id": store_label(store_scope),
        "from_date": from_date.isoformat(),
        "to_date": to_date.isoformat(),
        "total_cashiers": len(cashiers),
        "total_transactions": len(transactions),
        "total_sales": str(total_sales),
        "average_transaction_value": str(average(total_sales, len(transactions))),
        "cashiers": cashiers,
        "hourly_data": [
            {"hour": h, "transaction_count": hourly_count[h], "sales": str(hourly_sales[h])}
            for h in range(24)
        ],
        "attendance": attendance,
    }


def fetch_cashier_report(
    db: Session, store_scope: StoreScope, from_date: date, to_date: date,
) -> dict[str, object] | None:
    result = fetch_transactions_with_fallback(db, store_scope, from_date, to_date)
    shifts = list_shifts_for_range(db, store_scope, from_date, to_date)
    user_ids = {tx.user_id for tx in result.transactions} | {s.user_id for s in shifts}
    names = resolve_user_names(db, user_ids)
    return aggregate_cashier_performance(
        result.transactions, shifts, names, from_date, to_date, store_scope,
    )
