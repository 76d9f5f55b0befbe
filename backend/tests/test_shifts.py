"""Tests for shift lookup and closure."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from backend.app.models.audit import AuditLog
from backend.app.models.store import Store
from backend.app.services.reports.utils import ALL_STORES
from backend.app.services.shifts import close_shift, find_report_shift, list_shifts_for_range
from backend.tests.conftest import add_shift

DAY = date(2024, 1, 15)


class TestListShifts:

    def test_matches_local_start_day(self, db: Session, store_a: Store, store_b: Store) -> None:
        add_shift(db, store_a, datetime(2024, 1, 14, 23, 30))
        inside = add_shift(db, store_a, datetime(2024, 1, 15, 0, 15))
        add_shift(db, store_a, datetime(2024, 1, 16, 6))
        other = add_shift(db, store_b, datetime(2024, 1, 15, 9))

        assert [s.id for s in list_shifts_for_range(db, store_a.id, DAY, DAY)] == [inside.id]
        assert [s.id for s in list_shifts_for_range(db, ALL_STORES, DAY, DAY)] == [
            inside.id, other.id,
        ]

    def test_report_shift_prefers_active(self, db: Session, store_a: Store) -> None:
        active = add_shift(db, store_a, datetime(2024, 1, 15, 6))
        add_shift(db, store_a, datetime(2024, 1, 15, 14), status="closed")

        assert find_report_shift(db, store_a.id, DAY).id == active.id

    def test_report_shift_falls_back_to_latest(self, db: Session, store_a: Store) -> None:
        add_shift(db, store_a, datetime(2024, 1, 15, 6), status="closed")
        latest = add_shift(db, store_a, datetime(2024, 1, 15, 14), status="closed")

        assert find_report_shift(db, store_a.id, DAY).id == latest.id
        assert find_report_shift(db, store_a.id, date(2024, 1, 16)) is None


class TestCloseShift:

    def test_close_records_cash_and_audit(self, db: Session, store_a: Store) -> None:
        shift = add_shift(db, store_a, datetime(2024, 1, 15, 8), starting_cash=1000)

        close_shift(db, shift, Decimal("1450"), commit=True)

        assert shift.status == "closed"
        assert shift.ending_cash == Decimal("1450")
        assert shift.end_time is not None
        entry = db.query(AuditLog).one()
        assert entry.action == "SHIFT_CLOSED"
        assert entry.record_id == str(shift.id)
        assert entry.new_values["ending_cash"] == "1450"

    def test_already_closed(self, db: Session, store_a: Store) -> None:
        shift = add_shift(db, store_a, datetime(2024, 1, 15, 8), status="closed")

        with pytest.raises(ValueError, match="already closed"):
            close_shift(db, shift, Decimal("0"))
