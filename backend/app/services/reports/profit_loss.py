"""Profit & loss report built from line items and product unit costs.

Expenses are not stored by this service; callers pass them in.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import NamedTuple
from uuid import UUID

from sqlalchemy.orm import Session

from backend.app.models.inventory import Category, Product
from backend.app.models.transaction import Transaction
from backend.app.services.reports.transaction_query import fetch_transactions_with_fallback
from backend.app.services.reports.utils import (
    ZERO,
    StoreScope,
    line_items,
    local_date,
    percentage,
    store_label,
)

UNCATEGORIZED = "Uncategorized"


class ProductCost(NamedTuple):
    name: str
    cost: Decimal
    category: str


def load_product_costs(db: Session, product_ids: Iterable[str]) -> dict[str, ProductCost]:
    """Unit cost, name and category for the given product ids (as strings)."""
    ids: set[UUID] = set()
    for raw in product_ids:
        try:
            ids.add(UUID(str(raw)))
        except ValueError:
            continue
    if not ids:
        return {}

    rows = (
        db.query(Product.id, Product.name, Product.cost, Category.name.label("category"))
        .outerjoin(Category, Product.category_id == Category.id)
        .filter(Product.id.in_(ids))
        .all()
    )
    return {
        str(r.id): ProductCost(
            name=r.name,
            cost=Decimal(str(r.cost)) if r.cost is not None else ZERO,
            category=r.category or UNCATEGORIZED,
        )
        for r in rows
    }


def aggregate_profit_loss(
    transactions: Sequence[Transaction],
    product_costs: Mapping[str, ProductCost],
    from_date: date,
    to_date: date,
    store_scope: StoreScope,
    expenses: Decimal = ZERO,
) -> dict[str, object] | None:
    if not transactions:
        return None

    revenue_by_product: dict[str, Decimal] = {}
    cost_by_product: dict[str, Decimal] = {}
    qty_by_product: dict[str, Decimal] = {}
    meta: dict[str, tuple[str | None, str, str]] = {}
    revenue_by_day: dict[date, Decimal] = {}
    cost_by_day: dict[date, Decimal] = {}

    for tx in transactions:
        day = local_date(tx.created_at)
        for item in line_items(tx):
            known = product_costs.get(item.product_id) if item.product_id else None
            unit_cost = known.cost if known else ZERO
            line_cost = unit_cost * item.quantity

            key = item.product_id or f"name:{item.name}"
            meta.setdefault(key, (
                item.product_id,
                known.name if known else item.name,
                known.category if known else UNCATEGORIZED,
            ))
            revenue_by_product[key] = revenue_by_product.get(key, ZERO) + item.total_price
            cost_by_product[key] = cost_by_product.get(key, ZERO) + line_cost
            qty_by_product[key] = qty_by_product.get(key, ZERO) + item.quantity
            revenue_by_day[day] = revenue_by_day.get(day, ZERO) + item.total_price
            cost_by_day[day] = cost_by_day.get(day, ZERO) + line_cost

    # Days with sales but no line items still belong in the daily series
    for tx in transactions:
        day = local_date(tx.created_at)
        revenue_by_day.setdefault(day, ZERO)
        cost_by_day.setdefault(day, ZERO)

    total_revenue = sum(revenue_by_product.values(), ZERO)
    cost_of_goods = sum(cost_by_product.values(), ZERO)
    gross_profit = total_revenue - cost_of_goods
    net_profit = gross_profit - expenses

    by_product = []
    for key in sorted(revenue_by_product, key=lambda k: (-revenue_by_product[k], meta[k][1])):
        pid, name, category = meta[key]
        revenue = revenue_by_product[key]
        cost = cost_by_product[key]
        by_product.append({
            "product_id": pid,
            "name": name,
            "category": category,
            "quantity": str(qty_by_product[key]),
            "revenue": str(revenue),
            "cost": str(cost),
            "profit": str(revenue - cost),
            "margin": str(percentage(revenue - cost, revenue)),
        })

    return {
        "report_type": "profit_loss",
        "store_id": store_label(store_scope),
        "from_date": from_date.isoformat(),
        "to_date": to_date.isoformat(),
        "total_revenue": str(total_revenue),
        "cost_of_goods": str(cost_of_goods),
        "gross_profit": str(gross_profit),
        "expenses": str(expenses),
        "net_profit": str(net_profit),
        "gross_margin": str(percentage(gross_profit, total_revenue)),
        "cost_percentage": str(percentage(cost_of_goods, total_revenue)),
        "net_margin": str(percentage(net_profit, total_revenue)),
        "by_product": by_product,
        "by_date": [
            {
                "date": day.isoformat(),
                "revenue": str(revenue_by_day[day]),
                "cost": str(cost_by_day[day]),
                "profit": str(revenue_by_day[day] - cost_by_day[day]),
            }
            for day in sorted(revenue_by_day)
        ],
    }


def fetch_profit_loss_report(
    db: Session,
    store_scope: StoreScope,
    from_date: date,
    to_date: date,
    expenses: Decimal = ZERO,
) -> dict[str, object] | None:
    result = fetch_transactions_with_fallback(db, store_scope, from_date, to_date)
    if result.is_empty:
        return None
    referenced = {
        item.product_id
        for tx in result.transactions
        for item in line_items(tx)
        if item.product_id
    }
    costs = load_product_costs(db, referenced)
    return aggregate_profit_loss(
        result.transactions, costs, from_date, to_date, store_scope, expenses,
    )
