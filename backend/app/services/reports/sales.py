"""Sales report: totals, daily series, top sellers and payment mix."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.models.transaction import Transaction
from backend.app.services.reports.transaction_query import fetch_transactions_with_fallback
from backend.app.services.reports.utils import (
    ZERO,
    StoreScope,
    average,
    line_items,
    local_date,
    percentage,
    store_label,
    to_decimal,
)


def aggregate_sales(
    transactions: Sequence[Transaction],
    from_date: date,
    to_date: date,
    store_scope: StoreScope,
    top_limit: int | None = None,
) -> dict[str, object] | None:
    """Reduce resolved transactions into the sales report, or None if empty."""
    if not transactions:
        return None
    if top_limit is None:
        top_limit = settings.TOP_PRODUCTS_LIMIT

    total_sales = ZERO
    date_amount: dict[date, Decimal] = {}
    date_count: dict[date, int] = {}
    method_amount: dict[str, Decimal] = {}
    method_count: dict[str, int] = {}
    product_name: dict[str, str] = {}
    product_id: dict[str, str | None] = {}
    product_qty: dict[str, Decimal] = {}
    product_revenue: dict[str, Decimal] = {}

    for tx in transactions:
        amount = to_decimal(tx.total)
        total_sales += amount

        day = local_date(tx.created_at)
        date_amount[day] = date_amount.get(day, ZERO) + amount
        date_count[day] = date_count.get(day, 0) + 1

        method = (tx.payment_method or "unknown").lower()
        method_amount[method] = method_amount.get(method, ZERO) + amount
        method_count[method] = method_count.get(method, 0) + 1

        # Line items without a product id are grouped by name
        for item in line_items(tx):
            key = item.product_id or f"name:{item.name}"
            product_id.setdefault(key, item.product_id)
            product_name.setdefault(key, item.name)
            product_qty[key] = product_qty.get(key, ZERO) + item.quantity
            product_revenue[key] = product_revenue.get(key, ZERO) + item.total_price

    ranked = sorted(product_revenue, key=lambda k: (-product_revenue[k], product_name[k]))
    methods = sorted(method_amount, key=lambda m: (-method_amount[m], m))

    return {
        "report_type": "sales",
        "store_id": store_label(store_scope),
        "from_date": from_date.isoformat(),
        "to_date": to_date.isoformat(),
        "total_sales": str(total_sales),
        "total_transactions": len(transactions),
        "average_transaction_value": str(average(total_sales, len(transactions))),
        "sales_by_date": [
            {
                "date": day.isoformat(),
                "amount": str(date_amount[day]),
                "transactions": date_count[day],
            }
            for day in sorted(date_amount)
        ],
        "top_products": [
            {
                "product_id": product_id[key],
                "name": product_name[key],
                "quantity": str(product_qty[key]),
                "revenue": str(product_revenue[key]),
            }
            for key in ranked[:top_limit]
        ],
        "payment_methods": [
            {
                "method": method,
                "amount": str(method_amount[method]),
                "transactions": method_count[method],
                "percentage": str(percentage(method_amount[method], total_sales)),
            }
            for method in methods
        ],
    }


def fetch_sales_report(
    db: Session, store_scope: StoreScope, from_date: date, to_date: date,
) -> dict[str, object] | None:
    result = fetch_transactions_with_fallback(db, store_scope, from_date, to_date)
    return aggregate_sales(result.transactions, from_date, to_date, store_scope)
