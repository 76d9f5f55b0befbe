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
    average,
    local_date,
    percentage,
    store_label,
    to_decimal,
)

_FIELDS = ("gross_sales", "discounts", "net_sales", "vat")


def aggregate_daily_summary(
    transactions: Sequence[Transaction],
    from_date: date,
    to_date: date,
    store_scope: StoreScope,
) -> dict[str, object] | None:
    """Day-by-day gross / discount / net / VAT figures with an order-type mix."""
    if not transactions:
        return None

    days: dict[date, dict[str, Decimal]] = {}
    day_count: dict[date, int] = {}
    order_amount: dict[str, Decimal] = {}
    order_count: dict[str, int] = {}
    platform_amount: dict[str, Decimal] = {}
    platform_count: dict[str, int] = {}

    for tx in transactions:
        day = local_date(tx.created_at)
        bucket = days.setdefault(day, {f: ZERO for f in _FIELDS})
        bucket["gross_sales"] += to_decimal(tx.subtotal)
        bucket["discounts"] += to_decimal(tx.discount)
        bucket["net_sales"] += to_decimal(tx.total)
        bucket["vat"] += to_decimal(tx.tax)
        day_count[day] = day_count.get(day, 0) + 1

        amount = to_decimal(tx.total)
        order_type = (tx.order_type or "dine_in").lower()
        order_amount[order_type] = order_amount.get(order_type, ZERO) + amount
        order_count[order_type] = order_count.get(order_type, 0) + 1
        if tx.delivery_platform:
            platform = tx.delivery_platform.lower()
            platform_amount[platform] = platform_amount.get(platform, ZERO) + amount
            platform_count[platform] = platform_count.get(platform, 0) + 1

    totals = {f: sum((d[f] for d in days.values()), ZERO) for f in _FIELDS}

    return {
        "report_type": "daily_summary",
        "store_id": store_label(store_scope),
        "from_date": from_date.isoformat(),
        "to_date": to_date.isoformat(),
        "total_transactions": len(transactions),
        "total_gross_sales": str(totals["gross_sales"]),
        "total_discounts": str(totals["discounts"]),
        "total_net_sales": str(totals["net_sales"]),
        "total_vat": str(totals["vat"]),
        "average_ticket": str(average(totals["net_sales"], len(transactions))),
        "days": [
            {
                "date": day.isoformat(),
                "transactions": day_count[day],
                **{f: str(v) for f, v in days[day].items()},
                "average_ticket": str(average(days[day]["net_sales"], day_count[day])),
            }
            for day in sorted(days)
        ],
        "order_types": [
            {
                "order_type": key,
                "transactions": order_count[key],
                "amount": str(order_amount[key]),
                "percentage": str(percentage(order_amount[key], totals["net_sales"])),
            }
            for key in sorted(order_amount, key=lambda k: (-order_amount[k], k))
        ],
        "delivery_platforms": [
            {
                "platform": key,
                "transactions": platform_count[key],
                "amount": str(platform_amount[key]),
            }
            for key in sorted(platform_amount, key=lambda k: (-platform_amount[k], k))
        ],
    }


def fetch_daily_summary(
    db: Session, store_scope: StoreScope, from_date: date, to_date: date,
) -> dict[str, object] | None:
    result = fetch_transactions_with_fallback(db, store_scope, from_date, to_date)
    return aggregate_daily_summary(result.transactions, from_date, to_date, store_scope)
