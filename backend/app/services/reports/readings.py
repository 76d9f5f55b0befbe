"""BIR X-Reading and Z-Reading.

An X-Reading is a mid-day snapshot that can be printed any number of times.
A Z-Reading is the end-of-day closing report: ``compute_z_reading`` only
aggregates, while ``close_business_day`` composes it with the side effects
of closing the day (shift closure, grand totals, reading log).

Both readings are compliance documents, so a day without sales still yields
a complete, zero-valued reading.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from pydantic import TypeAdapter
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.models.bir import BirCumulativeSales, BirStoreConfig, ZReadingLog
from backend.app.models.pos import Shift, ShiftStatus
from backend.app.models.transaction import DiscountType, PaymentMethod, Transaction
from backend.app.schemas.reports import ReportResponse
from backend.app.services.audit import record_audit
from backend.app.services.reports.transaction_query import fetch_transactions_with_fallback
from backend.app.services.reports.utils import (
    ZERO,
    cashier_label,
    get_store,
    iso,
    resolve_user_names,
    to_decimal,
)
from backend.app.services.shifts import close_shift, find_report_shift, list_shifts_for_day

logger = logging.getLogger(__name__)

_REPORT_ADAPTER: TypeAdapter[ReportResponse] = TypeAdapter(ReportResponse)

NOT_CONFIGURED = "Not Configured"
NO_ACTIVE_SHIFT = "No Active Shift"

_DISCOUNT_BUCKETS = {
    DiscountType.SENIOR.value: "senior_discount",
    DiscountType.PWD.value: "pwd_discount",
    DiscountType.EMPLOYEE.value: "employee_discount",
}

_PAYMENT_BUCKETS = {
    PaymentMethod.CASH.value: "cash_payments",
    PaymentMethod.CARD.value: "card_payments",
    PaymentMethod.E_WALLET.value: "ewallet_payments",
    "ewallet": "ewallet_payments",
}


class ZReadingExistsError(ValueError):
    """A Z-Reading was already generated for the store, day and terminal."""


@dataclass
class ReadingContext:
    """Everything a reading prints besides the day's transactions."""

    store_id: UUID
    business_date: date
    business_name: str
    business_address: str
    taxpayer_name: str
    tin: str
    machine_id: str
    serial_number: str
    pos_version: str
    permit_number: str
    terminal_id: str
    cashier_name: str
    shift: Shift | None
    reset_counter: int
    reading_number: int
    previous_gross_sales: Decimal = ZERO
    previous_net_sales: Decimal = ZERO
    previous_vat: Decimal = ZERO


def _first_text(*values: str | None, default: str) -> str:
    for value in values:
        if value and value.strip():
            return value
    return default


def load_reading_context(db: Session, store_id: UUID, business_date: date) -> ReadingContext:
    store = get_store(db, store_id)
    config = db.query(BirStoreConfig).filter(BirStoreConfig.store_id == store_id).first()
    cumulative = (
        db.query(BirCumulativeSales).filter(BirCumulativeSales.store_id == store_id).first()
    )

    shift = find_report_shift(db, store_id, business_date)
    cashier_name = NO_ACTIVE_SHIFT
    if shift is not None:
        names = resolve_user_names(db, [shift.user_id])
        cashier_name = names.get(shift.user_id, cashier_label(shift.user_id))

    return ReadingContext(
        store_id=store_id,
        business_date=business_date,
        business_name=_first_text(
            config.business_name if config else None, store.name, default="Store"
        ),
        business_address=_first_text(
            config.business_address if config else None, store.address, default=""
        ),
        taxpayer_name=_first_text(
            config.taxpayer_name if config else None,
            store.owner_name,
            store.business_name,
            default=NOT_CONFIGURED,
        ),
        tin=_first_text(config.tin if config else None, store.tin, default=NOT_CONFIGURED),
        machine_id=_first_text(
            config.machine_identification_number if config else None,
            store.machine_serial_number,
            default="MACHINE-001",
        ),
        serial_number=_first_text(
            config.machine_serial_number if config else None,
            store.machine_serial_number,
            default="SERIAL-001",
        ),
        pos_version=_first_text(config.pos_version if config else None, default="1.0"),
        permit_number=_first_text(config.permit_number if config else None, default=""),
        terminal_id=_first_text(store.machine_serial_number, default=settings.DEFAULT_TERMINAL_ID),
        cashier_name=cashier_name,
        shift=shift,
        reset_counter=cumulative.reset_counter if cumulative else 0,
        reading_number=(cumulative.last_reading_number if cumulative else 0) + 1,
        previous_gross_sales=to_decimal(cumulative.grand_total_sales) if cumulative else ZERO,
        previous_net_sales=to_decimal(cumulative.grand_total_net_sales) if cumulative else ZERO,
        previous_vat=to_decimal(cumulative.grand_total_vat) if cumulative else ZERO,
    )


# ── Aggregation ──────────────────────────────────────────────────────────────


def _bucket_discount(tx: Transaction, bucket: str) -> Decimal:
    """Discount booked to a BIR bucket; the dedicated column wins over ``discount``."""
    if bucket == "senior_discount" and tx.senior_citizen_discount is not None:
        return to_decimal(tx.senior_citizen_discount)
    if bucket == "pwd_discount" and tx.pwd_discount is not None:
        return to_decimal(tx.pwd_discount)
    return to_decimal(tx.discount)


def summarize_day(transactions: Sequence[Transaction]) -> dict[str, Decimal]:
    """Sales, VAT, discount and payment buckets shared by X and Z readings."""
    s = {
        key: ZERO
        for key in (
            "gross_sales", "vat_sales", "vat_amount", "vat_exempt_sales", "zero_rated_sales",
            "senior_discount", "pwd_discount", "employee_discount", "other_discounts",
            "cash_payments", "card_payments", "ewallet_payments", "other_payments",
        )
    }
    for tx in transactions:
        subtotal = to_decimal(tx.subtotal)
        discount = to_decimal(tx.discount)
        s["gross_sales"] += subtotal
        s["vat_sales"] += (
            to_decimal(tx.vat_sales) if tx.vat_sales is not None else subtotal - discount
        )
        s["vat_amount"] += to_decimal(tx.tax)
        s["vat_exempt_sales"] += to_decimal(tx.vat_exempt_sales)
        s["zero_rated_sales"] += to_decimal(tx.zero_rated_sales)

        bucket = _DISCOUNT_BUCKETS.get((tx.discount_type or "").lower())
        if bucket is not None:
            s[bucket] += _bucket_discount(tx, bucket)
        elif discount > ZERO:
            s["other_discounts"] += discount

        method = (tx.payment_method or "").lower()
        s[_PAYMENT_BUCKETS.get(method, "other_payments")] += to_decimal(tx.total)

    s["total_discounts"] = (
        s["senior_discount"] + s["pwd_discount"] + s["employee_discount"] + s["other_discounts"]
    )
    s["net_sales"] = s["gross_sales"] - s["total_discounts"]
    return s


def _receipt_range(transactions: Sequence[Transaction]) -> tuple[str, str]:
    receipts = sorted(tx.receipt_number for tx in transactions if tx.receipt_number)
    if not receipts:
        return "-", "-"
    return receipts[0], receipts[-1]


def compute_x_reading(
    transactions: Sequence[Transaction], context: ReadingContext,
) -> dict[str, object]:
    summary = summarize_day(transactions)
    first_receipt, last_receipt = _receipt_range(transactions)
    shift = context.shift

    reading: dict[str, object] = {
        "report_type": "x_reading",
        "store_id": str(context.store_id),
        "business_date": context.business_date.isoformat(),
        "reading_date": datetime.combine(context.business_date, time(23, 59, 59)).isoformat(),
        "business_name": context.business_name,
        "business_address": context.business_address,
        "taxpayer_name": context.taxpayer_name,
        "tin": context.tin,
        "machine_id": context.machine_id,
        "serial_number": context.serial_number,
        "pos_version": context.pos_version,
        "permit_number": context.permit_number,
        "terminal_id": context.terminal_id,
        "reading_number": context.reading_number,
        "reset_counter": context.reset_counter,
        "cashier_name": context.cashier_name,
        "shift_id": str(shift.id) if shift else None,
        "shift_start": iso(shift.start_time) if shift else None,
        "shift_end": iso(shift.end_time) if shift else None,
        "beginning_receipt_number": first_receipt,
        "ending_receipt_number": last_receipt,
        "transaction_count": len(transactions),
    }
    reading.update({key: str(value) for key, value in summary.items()})
    reading["accumulated_gross_sales"] = str(
        context.previous_gross_sales + summary["gross_sales"]
    )
    reading["accumulated_net_sales"] = str(context.previous_net_sales + summary["net_sales"])
    reading["accumulated_vat"] = str(context.previous_vat + summary["vat_amount"])
    return reading


def compute_z_reading(
    transactions: Sequence[Transaction],
    context: ReadingContext,
    shifts: Sequence[Shift],
    actual_cash: Decimal | None = None,
    payouts: Decimal = ZERO,
) -> dict[str, object]:
    """X-Reading figures plus grand totals and the cash-drawer reconciliation.

    ``actual_cash`` is the counted drawer; when omitted the ending cash
    recorded on the day's shifts is used. The variance keeps its sign:
    negative is a shortage, positive an overage.
    """
    reading = compute_x_reading(transactions, context)
    reading["report_type"] = "z_reading"

    beginning_cash = sum((to_decimal(s.starting_cash) for s in shifts), ZERO)
    cash_sales = sum(
        (
            to_decimal(tx.total)
            for tx in transactions
            if (tx.payment_method or "").lower() == PaymentMethod.CASH.value
        ),
        ZERO,
    )
    expected_cash = beginning_cash + cash_sales - payouts
    if actual_cash is None:
        actual_cash = sum(
            (to_decimal(s.ending_cash) for s in shifts if s.ending_cash is not None), ZERO
        )

    reading.update({
        "previous_grand_total": str(context.previous_gross_sales),
        "current_grand_total": reading["accumulated_gross_sales"],
        "shift_count": len(shifts),
        "beginning_cash": str(beginning_cash),
        "cash_sales": str(cash_sales),
        "payouts": str(payouts),
        "expected_cash": str(expected_cash),
        "actual_cash": str(actual_cash),
        "cash_variance": str(actual_cash - expected_cash),
    })
    return reading


# ── Loading / orchestration ──────────────────────────────────────────────────


def fetch_x_reading(db: Session, store_id: UUID, business_date: date) -> dict[str, object]:
    context = load_reading_context(db, store_id, business_date)
    result = fetch_transactions_with_fallback(db, store_id, business_date, business_date)
    return compute_x_reading(result.transactions, context)


def fetch_z_reading(
    db: Session,
    store_id: UUID,
    business_date: date,
    actual_cash: Decimal | None = None,
    payouts: Decimal = ZERO,
) -> dict[str, object]:
    """Preview of the Z-Reading; nothing is written."""
    context = load_reading_context(db, store_id, business_date)
    result = fetch_transactions_with_fallback(db, store_id, business_date, business_date)
    shifts = list_shifts_for_day(db, store_id, business_date)
    return compute_z_reading(result.transactions, context, shifts, actual_cash, payouts)


def _z_reading_exists(db: Session, store_id: UUID, business_date: date, terminal_id: str) -> bool:
    return (
        db.query(ZReadingLog.id)
        .filter(
            ZReadingLog.store_id == store_id,
            ZReadingLog.business_date == business_date,
            ZReadingLog.terminal_id == terminal_id,
        )
        .first()
        is not None
    )


def close_business_day(
    db: Session,
    store_id: UUID,
    business_date: date,
    actual_cash: Decimal,
    payouts: Decimal,
    user_id: UUID | None,
    terminal_id: str | None = None,
    ip_address: str | None = None,
) -> dict[str, object]:
    """Generate the day's Z-Reading and close the day in one commit.

    Closes the reporting shift if it is still active, rolls the day's
    figures into the store's grand totals and logs the reading. A second
    Z-Reading for the same store, day and terminal raises ValueError.
    """
    context = load_reading_context(db, store_id, business_date)
    if terminal_id:
        context.terminal_id = terminal_id
    if _z_reading_exists(db, store_id, business_date, context.terminal_id):
        raise ZReadingExistsError(
            f"Z-Reading already generated for {business_date.isoformat()} "
            f"on terminal {context.terminal_id}"
        )

    result = fetch_transactions_with_fallback(db, store_id, business_date, business_date)
    shifts = list_shifts_for_day(db, store_id, business_date)
    reading = compute_z_reading(result.transactions, context, shifts, actual_cash, payouts)
    summary = summarize_day(result.transactions)

    shift = context.shift
    if shift is not None and shift.status == ShiftStatus.ACTIVE.value:
        close_shift(db, shift, actual_cash, user_id=user_id, ip_address=ip_address)

    cumulative = (
        db.query(BirCumulativeSales).filter(BirCumulativeSales.store_id == store_id).first()
    )
    if cumulative is None:
        cumulative = BirCumulativeSales(
            store_id=store_id,
            grand_total_sales=ZERO,
            grand_total_net_sales=ZERO,
            grand_total_vat=ZERO,
            last_reading_number=0,
            reset_counter=0,
        )
        db.add(cumulative)
    cumulative.grand_total_sales = context.previous_gross_sales + summary["gross_sales"]
    cumulative.grand_total_net_sales = context.previous_net_sales + summary["net_sales"]
    cumulative.grand_total_vat = context.previous_vat + summary["vat_amount"]
    cumulative.last_reading_number = context.reading_number

    log = ZReadingLog(
        store_id=store_id,
        business_date=business_date,
        terminal_id=context.terminal_id,
        reading_number=context.reading_number,
        gross_sales=summary["gross_sales"],
        net_sales=summary["net_sales"],
        cash_variance=Decimal(str(reading["cash_variance"])),
        payload=_REPORT_ADAPTER.dump_python(
            _REPORT_ADAPTER.validate_python(reading), mode="json",
        ),
        generated_by=user_id,
    )
    db.add(log)
    db.flush()

    record_audit(
        db,
        action="Z_READING_GENERATED",
        table_name="bir_z_readings",
        record_id=str(log.id),
        user_id=user_id,
        ip_address=ip_address,
        new_values={
            "business_date": business_date.isoformat(),
            "terminal_id": context.terminal_id,
            "reading_number": context.reading_number,
            "gross_sales": reading["gross_sales"],
            "cash_variance": reading["cash_variance"],
        },
    )

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ZReadingExistsError(
            f"Z-Reading already generated for {business_date.isoformat()} "
            f"on terminal {context.terminal_id}"
        ) from exc

    logger.info(
        "Z-Reading #%d generated for store %s on %s (terminal %s, %d transactions, variance %s)",
        context.reading_number, store_id, business_date, context.terminal_id,
        len(result.transactions), reading["cash_variance"],
    )
    return reading
