"""Tests for the daily summary report."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.models.store import Store
from backend.app.services.reports.daily_summary import aggregate_daily_summary
from backend.tests.conftest import add_tx, make_tx

DAY = date(2024, 1, 15)
STORE = uuid.uuid4()


class TestAggregateDailySummary:

    def test_gross_discount_net_per_day(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 80, subtotal=100, discount=20, tax="8.57"),
            make_tx(datetime(2024, 1, 15, 10), 112, tax=12),
            make_tx(datetime(2024, 1, 16, 10), 56, tax=6),
        ]
        report = aggregate_daily_summary(txs, DAY, date(2024, 1, 16), STORE)

        assert report is not None
        assert Decimal(report["total_gross_sales"]) == Decimal("268")
        assert Decimal(report["total_discounts"]) == Decimal("20")
        assert Decimal(report["total_net_sales"]) == Decimal("248")
        assert Decimal(report["total_vat"]) == Decimal("26.57")
        first, second = report["days"]
        assert first["date"] == "2024-01-15"
        assert first["transactions"] == 2
        assert Decimal(first["average_ticket"]) == Decimal("96")
        assert Decimal(second["net_sales"]) == Decimal("56")

    def test_order_type_mix(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 100),
            make_tx(datetime(2024, 1, 15, 10), 300, order_type="delivery", delivery_platform="GrabFood"),
            make_tx(datetime(2024, 1, 15, 11), 100, order_type="takeout"),
        ]
        report = aggregate_daily_summary(txs, DAY, DAY, STORE)

        assert report is not None
        mix = {row["order_type"]: row for row in report["order_types"]}
        assert mix["dine_in"]["transactions"] == 1
        assert mix["delivery"]["percentage"] == "60.00"
        assert report["order_types"][0]["order_type"] == "delivery"
        assert report["delivery_platforms"] == [
            {"platform": "grabfood", "transactions": 1, "amount": "300"},
        ]

    def test_empty_returns_none(self) -> None:
        assert aggregate_daily_summary([], DAY, DAY, STORE) is None


def test_daily_summary_endpoint(client: TestClient, db: Session, store_a: Store) -> None:
    add_tx(db, store_a, datetime(2024, 1, 15, 9), 100)
    add_tx(db, store_a, datetime(2024, 1, 15, 10), 50, status="voided")

    res = client.get(
        "/api/v1/reports/daily-summary",
        params={"store_id": str(store_a.id), "from_date": "2024-01-15", "to_date": "2024-01-15"},
    )
    assert res.status_code == 200
    data = res.json()
    assert data["report_type"] == "daily_summary"
    assert data["total_transactions"] == 1
    assert Decimal(data["total_net_sales"]) == Decimal("100")
