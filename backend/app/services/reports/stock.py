from __future__ import annotations

import enum
from collections.abc import Sequence

from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.models.inventory import InventoryStock
from backend.app.services.reports.utils import ALL_STORES, ZERO, StoreScope, store_label, to_decimal


class StockStatus(str, enum.Enum):
    OK = "ok"
    LOW = "low"
    OUT = "out"


def aggregate_stock(
    items: Sequence[InventoryStock],
    store_scope: StoreScope,
    default_threshold: int | None = None,
) -> dict[str, object]:
    """Stock levels with a status per item. Never None: an empty store is an empty list."""
    if default_threshold is None:
        default_threshold = settings.LOW_STOCK_DEFAULT_THRESHOLD

    counts = {status: 0 for status in StockStatus}
    total_value = ZERO
    rows = []
    for item in items:
        quantity = to_decimal(item.stock_quantity)
        threshold = (
            to_decimal(item.minimum_threshold)
            if item.minimum_threshold is not None
            else to_decimal(default_threshold)
        )
        if quantity <= ZERO:
            status = StockStatus.OUT
        elif quantity <= threshold:
            status = StockStatus.LOW
        else:
            status = StockStatus.OK
        value = quantity * to_decimal(item.cost)
        counts[status] += 1
        total_value += value
        rows.append({
            "id": str(item.id),
            "store_id": str(item.store_id),
            "item": item.item,
            "unit": item.unit,
            "stock_quantity": str(quantity),
            "minimum_threshold": str(threshold),
            "cost": str(to_decimal(item.cost)),
            "value": str(value),
            "status": status.value,
        })

    # Items needing attention first
    order = {StockStatus.OUT.value: 0, StockStatus.LOW.value: 1, StockStatus.OK.value: 2}
    rows.sort(key=lambda r: (order[r["status"]], r["item"].lower()))

    return {
        "report_type": "stock",
        "store_id": store_label(store_scope),
        "total_items": len(rows),
        "ok_count": counts[StockStatus.OK],
        "low_stock_count": counts[StockStatus.LOW],
        "out_of_stock_count": counts[StockStatus.OUT],
        "total_value": str(total_value),
        "items": rows,
    }


def fetch_stock_report(db: Session, store_scope: StoreScope) -> dict[str, object]:
    query = db.query(InventoryStock).filter(InventoryStock.is_active.is_(True))
    if store_scope != ALL_STORES:
        query = query.filter(InventoryStock.store_id == store_scope)
    return aggregate_stock(query.order_by(InventoryStock.item).all(), store_scope)
