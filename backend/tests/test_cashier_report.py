"""Tests for the cashier performance report."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.models.pos import Shift
from backend.app.models.store import Store
from backend.app.models.user import AppUser, Cashier
from backend.app.services.reports.cashier import aggregate_cashier_performance
from backend.app.services.reports.utils import resolve_user_names
from backend.tests.conftest import add_shift, add_tx, make_tx

DAY = date(2024, 1, 15)
STORE = uuid.uuid4()
ANA = uuid.uuid4()
BEN = uuid.uuid4()


def _shift(user_id: uuid.UUID, start: datetime, end: datetime | None = None) -> Shift:
    return Shift(
        id=uuid.uuid4(),
        store_id=STORE,
        user_id=user_id,
        status="closed" if end else "active",
        start_time=start,
        end_time=end,
        starting_cash=Decimal("1000"),
        ending_cash=Decimal("1500") if end else None,
    )


class TestAggregateCashierPerformance:

    def test_per_cashier_sales(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 100, user_id=ANA),
            make_tx(datetime(2024, 1, 15, 10), 300, user_id=BEN),
            make_tx(datetime(2024, 1, 15, 11), 50, user_id=ANA),
        ]
        names = {ANA: "Ana Reyes", BEN: "Ben Cruz"}

        report = aggregate_cashier_performance(txs, [], names, DAY, DAY, STORE)

        assert report is not None
        assert report["total_cashiers"] == 2
        assert Decimal(report["total_sales"]) == Decimal("450")
        ben, ana = report["cashiers"]
        assert ben["name"] == "Ben Cruz"
        assert ana["transaction_count"] == 2
        assert Decimal(ana["average_transaction_value"]) == Decimal("75.00")

    def test_unresolved_cashier_keeps_a_label(self) -> None:
        stranger = uuid.uuid4()
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 10, user_id=stranger),
            make_tx(datetime(2024, 1, 15, 9), 5),
        ]
        report = aggregate_cashier_performance(txs, [], {}, DAY, DAY, STORE)

        assert report is not None
        names = [c["name"] for c in report["cashiers"]]
        assert names == [f"Cashier {str(stranger)[:8]}", "Unknown Cashier"]

    def test_hourly_buckets(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9, 5), 10),
            make_tx(datetime(2024, 1, 15, 9, 55), 20),
            make_tx(datetime(2024, 1, 15, 23, 30), 5),
        ]
        report = aggregate_cashier_performance(txs, [], {}, DAY, DAY, STORE)

        assert report is not None
        hourly = report["hourly_data"]
        assert len(hourly) == 24
        assert hourly[9]["transaction_count"] == 2
        assert Decimal(hourly[9]["sales"]) == Decimal("30")
        assert hourly[23]["transaction_count"] == 1
        assert sum(h["transaction_count"] for h in hourly) == 3

    def test_attendance_without_sales(self) -> None:
        shifts = [
            _shift(ANA, datetime(2024, 1, 15, 8), datetime(2024, 1, 15, 16, 30)),
            _shift(BEN, datetime(2024, 1, 15, 12)),
        ]
        report = aggregate_cashier_performance([], shifts, {ANA: "Ana Reyes"}, DAY, DAY, STORE)

        assert report is not None
        assert report["cashiers"] == []
        first, second = report["attendance"]
        assert first["name"] == "Ana Reyes"
        assert first["hours_worked"] == "8.50"
        assert first["ending_cash"] == "1500"
        assert second["hours_worked"] is None
        assert second["end_time"] is None

    def test_empty_returns_none(self) -> None:
        assert aggregate_cashier_performance([], [], {}, DAY, DAY, STORE) is None


class TestNameResolution:

    def test_app_user_then_cashier_table(self, db: Session, store_a: Store) -> None:
        carla = uuid.uuid4()
        nobody = uuid.uuid4()
        db.add(AppUser(user_id=ANA, first_name="Ana", last_name="Reyes"))
        db.add(AppUser(user_id=BEN, first_name=None, last_name=None))
        db.add(Cashier(store_id=store_a.id, user_id=BEN, full_name="Ben Cruz"))
        db.add(Cashier(store_id=store_a.id, user_id=carla, full_name="Carla Lim"))
        db.commit()

        names = resolve_user_names(db, [ANA, BEN, carla, nobody, None])

        assert names == {ANA: "Ana Reyes", BEN: "Ben Cruz", carla: "Carla Lim"}


def test_cashier_endpoint(client: TestClient, db: Session, store_a: Store) -> None:
    db.add(AppUser(user_id=ANA, first_name="Ana", last_name="Reyes"))
    db.commit()
    add_tx(db, store_a, datetime(2024, 1, 15, 9), 120, user_id=ANA)
    add_tx(db, store_a, datetime(2024, 1, 15, 10), 80, user_id=uuid.uuid4())
    add_shift(
        db, store_a, datetime(2024, 1, 15, 8), user_id=ANA,
        end_time=datetime(2024, 1, 15, 17), ending_cash=1200, status="closed",
    )

    res = client.get(
        "/api/v1/reports/cashiers",
        params={"store_id": str(store_a.id), "from_date": "2024-01-15", "to_date": "2024-01-15"},
    )
    assert res.status_code == 200
    data = res.json()
    assert data["report_type"] == "cashier_performance"
    assert data["total_cashiers"] == 2
    assert data["cashiers"][0]["name"] == "Ana Reyes"
    assert data["attendance"][0]["hours_worked"] == "9.00"
