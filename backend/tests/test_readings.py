"""Tests for BIR X-Reading / Z-Reading and closing the business day."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.models.audit import AuditLog
from backend.app.models.bir import BirCumulativeSales, BirStoreConfig, ZReadingLog
from backend.app.models.pos import Shift
from backend.app.models.store import Store
from backend.app.models.user import AppUser
from backend.app.schemas.reports import ZReadingResponse
from backend.app.services.reports.readings import (
    ReadingContext,
    ZReadingExistsError,
    close_business_day,
    compute_x_reading,
    compute_z_reading,
    fetch_x_reading,
    load_reading_context,
)
from backend.app.services.reports.utils import StoreNotFoundError
from backend.tests.conftest import add_shift, add_tx, make_tx

DAY = date(2024, 1, 15)
ZERO = Decimal("0")


def _context(**overrides: object) -> ReadingContext:
    fields: dict[str, object] = {
        "store_id": uuid.uuid4(),
        "business_date": DAY,
        "business_name": "Croffle Store",
        "business_address": "Cebu City",
        "taxpayer_name": "Juan Dela Cruz",
        "tin": "123-456-789-000",
        "machine_id": "MACHINE-001",
        "serial_number": "SERIAL-001",
        "pos_version": "1.0",
        "permit_number": "",
        "terminal_id": "TERMINAL-01",
        "cashier_name": "No Active Shift",
        "shift": None,
        "reset_counter": 0,
        "reading_number": 1,
    }
    fields.update(overrides)
    return ReadingContext(**fields)  # type: ignore[arg-type]


def _shift(starting: str, ending: str | None = None) -> Shift:
    return Shift(
        id=uuid.uuid4(),
        store_id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        status="active",
        start_time=datetime(2024, 1, 15, 8),
        end_time=None,
        starting_cash=Decimal(starting),
        ending_cash=Decimal(ending) if ending is not None else None,
    )


# ── Pure aggregation ─────────────────────────────────────────────────────────


class TestXReading:

    def test_empty_day_is_zero_valued(self) -> None:
        reading = compute_x_reading([], _context())

        assert reading["transaction_count"] == 0
        assert reading["beginning_receipt_number"] == "-"
        assert reading["ending_receipt_number"] == "-"
        assert reading["cashier_name"] == "No Active Shift"
        for key in ("gross_sales", "net_sales", "vat_amount", "total_discounts", "cash_payments"):
            assert Decimal(reading[key]) == ZERO

    def test_discount_buckets_sum_to_total(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 80, subtotal=100, discount=20, discount_type="senior"),
            make_tx(datetime(2024, 1, 15, 10), 80, subtotal=100, discount=20, discount_type="pwd"),
            make_tx(datetime(2024, 1, 15, 11), 90, subtotal=100, discount=10, discount_type="employee"),
            make_tx(datetime(2024, 1, 15, 12), 95, subtotal=100, discount=5, discount_type="naac"),
            make_tx(datetime(2024, 1, 15, 13), 97, subtotal=100, discount=3, discount_type=None),
            make_tx(datetime(2024, 1, 15, 14), 100, subtotal=100),
        ]
        reading = compute_x_reading(txs, _context())

        buckets = sum(
            Decimal(reading[k])
            for k in ("senior_discount", "pwd_discount", "employee_discount", "other_discounts")
        )
        assert buckets == Decimal(reading["total_discounts"]) == Decimal("58")
        assert Decimal(reading["other_discounts"]) == Decimal("8")
        assert Decimal(reading["gross_sales"]) == Decimal("600")
        assert Decimal(reading["net_sales"]) == Decimal("542")

    def test_bir_discount_columns_preferred(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 80, subtotal=100, discount=20, discount_type="senior",
                    senior_citizen_discount=Decimal("17.86")),
            make_tx(datetime(2024, 1, 15, 10), 80, subtotal=100, discount=20, discount_type="pwd",
                    pwd_discount=Decimal("16.50")),
            make_tx(datetime(2024, 1, 15, 11), 80, subtotal=100, discount=20, discount_type="senior"),
        ]
        reading = compute_x_reading(txs, _context())

        assert Decimal(reading["senior_discount"]) == Decimal("37.86")
        assert Decimal(reading["pwd_discount"]) == Decimal("16.50")
        assert Decimal(reading["total_discounts"]) == Decimal("54.36")
        assert Decimal(reading["net_sales"]) == Decimal("245.64")

    def test_payment_buckets_and_receipts(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 100, payment_method="cash", receipt_number="0000102"),
            make_tx(datetime(2024, 1, 15, 10), 200, payment_method="card", receipt_number="0000100"),
            make_tx(datetime(2024, 1, 15, 11), 50, payment_method="e-wallet", receipt_number="0000101"),
            make_tx(datetime(2024, 1, 15, 12), 25, payment_method="gift-certificate"),
        ]
        reading = compute_x_reading(txs, _context())

        assert Decimal(reading["cash_payments"]) == Decimal("100")
        assert Decimal(reading["card_payments"]) == Decimal("200")
        assert Decimal(reading["ewallet_payments"]) == Decimal("50")
        assert Decimal(reading["other_payments"]) == Decimal("25")
        assert reading["beginning_receipt_number"] == "0000100"
        assert reading["ending_receipt_number"] == "0000102"

    def test_vat_sales_prefers_stored_column(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 9), 112, subtotal=112, tax=12, vat_sales=Decimal("100")),
            make_tx(datetime(2024, 1, 15, 10), 50, subtotal=60, discount=10),
        ]
        reading = compute_x_reading(txs, _context())

        assert Decimal(reading["vat_sales"]) == Decimal("150")

    def test_accumulated_totals_include_previous(self) -> None:
        context = _context(
            previous_gross_sales=Decimal("10000"),
            previous_net_sales=Decimal("9000"),
            previous_vat=Decimal("1000"),
        )
        txs = [make_tx(datetime(2024, 1, 15, 9), 112, subtotal=112, tax=12)]
        reading = compute_x_reading(txs, context)

        assert Decimal(reading["accumulated_gross_sales"]) == Decimal("10112")
        assert Decimal(reading["accumulated_net_sales"]) == Decimal("9112")
        assert Decimal(reading["accumulated_vat"]) == Decimal("1012")


class TestZReading:

    def test_cash_variance_shortage(self) -> None:
        txs = [
            make_tx(datetime(2024, 1, 15, 10), 10000, payment_method="cash"),
            make_tx(datetime(2024, 1, 15, 14), 8500, payment_method="cash"),
            make_tx(datetime(2024, 1, 15, 15), 3000, payment_method="card"),
        ]
        shifts = [_shift("3000"), _shift("2000")]

        reading = compute_z_reading(
            txs, _context(), shifts, actual_cash=Decimal("21950"), payouts=Decimal("1500"),
        )

        assert reading["report_type"] == "z_reading"
        assert Decimal(reading["beginning_cash"]) == Decimal("5000")
        assert Decimal(reading["cash_sales"]) == Decimal("18500")
        assert Decimal(reading["expected_cash"]) == Decimal("22000")
        assert Decimal(reading["cash_variance"]) == Decimal("-50")

    def test_overage_is_not_clamped(self) -> None:
        txs = [make_tx(datetime(2024, 1, 15, 10), 100, payment_method="cash")]
        reading = compute_z_reading(txs, _context(), [_shift("500")], actual_cash=Decimal("650"))

        assert Decimal(reading["cash_variance"]) == Decimal("50")

    def test_actual_cash_defaults_to_recorded_ending_cash(self) -> None:
        shifts = [_shift("1000", "1200"), _shift("500")]
        txs = [make_tx(datetime(2024, 1, 15, 10), 200, payment_method="cash")]

        reading = compute_z_reading(txs, _context(), shifts)

        assert Decimal(reading["actual_cash"]) == Decimal("1200")
        assert Decimal(reading["expected_cash"]) == Decimal("1700")
        assert Decimal(reading["cash_variance"]) == Decimal("-500")

    def test_empty_day_is_zero_valued(self) -> None:
        reading = compute_z_reading([], _context(), [])

        assert reading["transaction_count"] == 0
        assert reading["shift_count"] == 0
        for key in ("expected_cash", "actual_cash", "cash_variance", "gross_sales"):
            assert Decimal(reading[key]) == ZERO

    def test_grand_totals(self) -> None:
        context = _context(previous_gross_sales=Decimal("5000"))
        txs = [make_tx(datetime(2024, 1, 15, 10), 250)]

        reading = compute_z_reading(txs, context, [])

        assert Decimal(reading["previous_grand_total"]) == Decimal("5000")
        assert Decimal(reading["current_grand_total"]) == Decimal("5250")


# ── Context loading ──────────────────────────────────────────────────────────


class TestReadingContext:

    def test_store_fallbacks(self, db: Session, store_a: Store) -> None:
        context = load_reading_context(db, store_a.id, DAY)

        assert context.business_name == store_a.name
        assert context.tin == "123-456-789-000"
        assert context.taxpayer_name == "Not Configured"
        assert context.machine_id == "MACHINE-001"
        assert context.terminal_id == "TERMINAL-01"
        assert context.cashier_name == "No Active Shift"
        assert context.reading_number == 1

    def test_bir_config_and_shift(self, db: Session, store_a: Store) -> None:
        cashier_id = uuid.uuid4()
        db.add(BirStoreConfig(
            store_id=store_a.id,
            business_name="Croffle Store Inc.",
            taxpayer_name="Maria Santos",
            machine_identification_number="MIN-7788",
            pos_version="2.3",
        ))
        db.add(AppUser(user_id=cashier_id, first_name="Ana", last_name="Reyes"))
        db.add(BirCumulativeSales(
            store_id=store_a.id,
            grand_total_sales=Decimal("1000"),
            grand_total_net_sales=Decimal("900"),
            grand_total_vat=Decimal("100"),
            last_reading_number=41,
            reset_counter=2,
        ))
        db.commit()
        add_shift(db, store_a, datetime(2024, 1, 15, 7), user_id=uuid.uuid4(), status="closed")
        active = add_shift(db, store_a, datetime(2024, 1, 15, 6), user_id=cashier_id)

        context = load_reading_context(db, store_a.id, DAY)

        assert context.business_name == "Croffle Store Inc."
        assert context.taxpayer_name == "Maria Santos"
        assert context.machine_id == "MIN-7788"
        assert context.pos_version == "2.3"
        assert context.shift is not None and context.shift.id == active.id
        assert context.cashier_name == "Ana Reyes"
        assert context.reading_number == 42
        assert context.reset_counter == 2
        assert context.previous_gross_sales == Decimal("1000")

    def test_missing_store(self, db: Session) -> None:
        with pytest.raises(StoreNotFoundError):
            load_reading_context(db, uuid.uuid4(), DAY)

    def test_fetch_x_reading_empty_day(self, db: Session, store_a: Store) -> None:
        reading = fetch_x_reading(db, store_a.id, DAY)

        assert reading["transaction_count"] == 0
        assert Decimal(reading["gross_sales"]) == ZERO


# ── Closing the day ──────────────────────────────────────────────────────────


class TestCloseBusinessDay:

    def test_closes_shift_and_rolls_totals(self, db: Session, store_a: Store) -> None:
        user_id = uuid.uuid4()
        shift = add_shift(db, store_a, datetime(2024, 1, 15, 8), starting_cash=1000)
        add_tx(db, store_a, datetime(2024, 1, 15, 9), 500, subtotal=500, tax="53.57")
        add_tx(db, store_a, datetime(2024, 1, 15, 10), 300, subtotal=300, payment_method="card")

        reading = close_business_day(
            db, store_a.id, DAY, Decimal("1490"), Decimal("0"), user_id,
        )

        assert Decimal(reading["cash_variance"]) == Decimal("-10")
        db.refresh(shift)
        assert shift.status == "closed"
        assert shift.ending_cash == Decimal("1490")
        assert shift.end_time is not None

        cumulative = db.query(BirCumulativeSales).filter_by(store_id=store_a.id).one()
        assert cumulative.grand_total_sales == Decimal("800")
        assert cumulative.last_reading_number == 1

        log = db.query(ZReadingLog).filter_by(store_id=store_a.id).one()
        assert log.business_date == DAY
        assert log.terminal_id == "TERMINAL-01"
        assert log.payload["report_type"] == "z_reading"
        assert Decimal(ZReadingResponse.model_validate(log.payload).cash_variance) == Decimal("-10")

        actions = {a.action for a in db.query(AuditLog).all()}
        assert {"Z_READING_GENERATED", "SHIFT_CLOSED"} <= actions

    def test_second_close_rejected(self, db: Session, store_a: Store) -> None:
        close_business_day(db, store_a.id, DAY, ZERO, ZERO, None)

        with pytest.raises(ZReadingExistsError):
            close_business_day(db, store_a.id, DAY, ZERO, ZERO, None)

        # Another terminal may still close the same day
        close_business_day(db, store_a.id, DAY, ZERO, ZERO, None, terminal_id="TERMINAL-02")
        assert db.query(ZReadingLog).count() == 2

    def test_reading_numbers_increase(self, db: Session, store_a: Store) -> None:
        first = close_business_day(db, store_a.id, DAY, ZERO, ZERO, None)
        second = close_business_day(db, store_a.id, date(2024, 1, 16), ZERO, ZERO, None)

        assert first["reading_number"] == 1
        assert second["reading_number"] == 2


class TestReadingEndpoints:

    def test_x_reading(self, client: TestClient, db: Session, store_a: Store) -> None:
        add_tx(db, store_a, datetime(2024, 1, 15, 9), 100, receipt_number="0001")

        res = client.get(
            "/api/v1/reports/x-reading",
            params={"store_id": str(store_a.id), "date": "2024-01-15"},
        )
        assert res.status_code == 200
        data = res.json()
        assert data["report_type"] == "x_reading"
        assert data["transaction_count"] == 1
        assert data["beginning_receipt_number"] == "0001"

    def test_x_reading_requires_store_uuid(self, client: TestClient) -> None:
        res = client.get("/api/v1/reports/x-reading", params={"store_id": "all"})
        assert res.status_code == 422

    def test_x_reading_unknown_store(self, client: TestClient) -> None:
        res = client.get("/api/v1/reports/x-reading", params={"store_id": str(uuid.uuid4())})
        assert res.status_code == 404

    def test_z_reading_preview_does_not_close(
        self, client: TestClient, db: Session, store_a: Store,
    ) -> None:
        shift = add_shift(db, store_a, datetime(2024, 1, 15, 8), starting_cash=5000)

        res = client.get(
            "/api/v1/reports/z-reading",
            params={"store_id": str(store_a.id), "date": "2024-01-15", "actual_cash": "4950"},
        )
        assert res.status_code == 200
        assert Decimal(res.json()["cash_variance"]) == Decimal("-50")
        db.refresh(shift)
        assert shift.status == "active"
        assert db.query(ZReadingLog).count() == 0

    def test_close_then_duplicate(self, client: TestClient, store_a: Store) -> None:
        body = {"store_id": str(store_a.id), "business_date": "2024-01-15", "actual_cash": "0"}

        first = client.post("/api/v1/reports/z-reading/close", json=body)
        second = client.post("/api/v1/reports/z-reading/close", json=body)

        assert first.status_code == 200
        assert first.json()["report_type"] == "z_reading"
        assert second.status_code == 409
