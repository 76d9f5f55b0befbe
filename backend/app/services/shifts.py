from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from backend.app.models.pos import Shift, ShiftStatus
from backend.app.services.audit import record_audit
from backend.app.services.reports.utils import ALL_STORES, StoreScope, local_date

logger = logging.getLogger(__name__)


def list_shifts_for_range(
    db: Session, store_scope: StoreScope, from_date: date, to_date: date,
) -> list[Shift]:
    """Shifts that started on a local calendar day within the range, oldest first.

    The SQL window is one day wider on each side; the exact day match is
    done on the reporting-timezone date of ``start_time``.
    """
    start = datetime.combine(from_date - timedelta(days=1), time.min)
    end = datetime.combine(to_date + timedelta(days=1), time.max)
    query = db.query(Shift).filter(Shift.start_time >= start, Shift.start_time <= end)
    if store_scope != ALL_STORES:
        query = query.filter(Shift.store_id == store_scope)
    shifts = query.order_by(Shift.start_time).all()
    return [s for s in shifts if from_date <= local_date(s.start_time) <= to_date]


def list_shifts_for_day(db: Session, store_id: UUID, business_date: date) -> list[Shift]:
    return list_shifts_for_range(db, store_id, business_date, business_date)


def find_report_shift(db: Session, store_id: UUID, business_date: date) -> Shift | None:
    """The day's active shift, else the most recent shift started that day."""
    shifts = list_shifts_for_day(db, store_id, business_date)
    for shift in reversed(shifts):
        if shift.status == ShiftStatus.ACTIVE.value:
            return shift
    return shifts[-1] if shifts else None


def close_shift(
    db: Session,
    shift: Shift,
    ending_cash: Decimal,
    user_id: UUID | None = None,
    ip_address: str | None = None,
    commit: bool = False,
) -> Shift:
    """Mark a shift closed with its counted ending cash.

    The change is flushed but only committed when ``commit`` is set, so the
    caller can close the shift inside a larger unit of work.
    """
    if shift.status == ShiftStatus.CLOSED.value:
        raise ValueError("Shift is already closed")

    shift.status = ShiftStatus.CLOSED.value
    shift.end_time = datetime.now(timezone.utc)
    shift.ending_cash = ending_cash

    record_audit(
        db,
        action="SHIFT_CLOSED",
        table_name="shifts",
        record_id=str(shift.id),
        user_id=user_id,
        ip_address=ip_address,
        new_values={
            "starting_cash": str(shift.starting_cash),
            "ending_cash": str(ending_cash),
        },
    )
    db.flush()
    logger.info("Closed shift %s for user %s", shift.id, shift.user_id)

    if commit:
        db.commit()
        db.refresh(shift)
    return shift
