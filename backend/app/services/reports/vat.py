"""VAT report. Categorisation is per transaction, never per line item."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from backend.app.models.transaction import Transaction
from backend.app.services.reports.transaction_query import fetch_transactions_with_fallback
from backend.app.services.reports.utils import (
    ZERO,
    StoreScope,
    local_date,
    store_label,
    to_decimal,
)

_FIELDS = ("vatable_sales", "vat_amount", "vat_exempt_sales", "zero_rated_sales", "total")


def vat_row(tx: Transaction) -> dict[str, Decimal]:
    """VAT figures of one transaction.

    Vatable sales are subtotal less discount, VAT is the stored tax, and the
    exempt / zero-rated amounts come from their own columns as recorded.
    """
    return {
        "vatable_sales": to_decimal(tx.subtotal) - to_decimal(tx.discount),
        "vat_amount": to_decimal(tx.tax),
        "vat_exempt_sales": to_decimal(tx.vat_exempt_sales),
        "zero_rated_sales": to_decimal(tx.zero_rated_sales),
        "total": to_decimal(tx.total),
    }


def aggregate_vat(
    transactions: Sequence[Transaction],
    from_date: date,
    to_date: date,
    store_scope: StoreScope,
) -> dict[str, object] | None:
    if not transactions:
        return None

    totals = {f: ZERO for f in _FIELDS}
    daily: dict[date, dict[str, Decimal]] = {}
    daily_count: dict[date, int] = {}
    rows: list[dict[str, object]] = []

    for tx in transactions:
        figures = vat_row(tx)
        day = local_date(tx.created_at)
        bucket = daily.setdefault(day, {f: ZERO for f in _FIELDS})
        for f in _FIELDS:
            totals[f] += figures[f]
            bucket[f] += figures[f]
        daily_count[day] = daily_count.get(day, 0) + 1

        rows.append({
            "transaction_id": str(tx.id),
            "receipt_number": tx.receipt_number,
            "date": day.isoformat(),
            **{f: str(v) for f, v in figures.items()},
        })

    return {
        "report_type": "vat",
        "store_id": store_label(store_scope),
        "from_date": from_date.isoformat(),
        "to_date": to_date.isoformat(),
        "transaction_count": len(transactions),
        "total_vatable_sales": str(totals["vatable_sales"]),
        "total_vat_amount": str(totals["vat_amount"]),
        "total_vat_exempt_sales": str(totals["vat_exempt_sales"]),
        "total_zero_rated_sales": str(totals["zero_rated_sales"]),
        "total_sales": str(totals["total"]),
        "transactions": rows,
        "by_date": [
            {
                "date": day.isoformat(),
                "transactions": daily_count[day],
                **{f: str(v) for f, v in daily[day].items()},
            }
            for day in sorted(daily)
        ],
    }


def fetch_vat_report(
    db: Session, store_scope: StoreScope, from_date: date, to_date: date,
) -> dict[str, object] | None:
    result = fetch_transactions_with_fallback(db, store_scope, from_date, to_date)
    return aggregate_vat(result.transactions, from_date, to_date, store_scope)
