"""Shared test fixtures.

Tests run against an in-memory SQLite database. Tables are created before
and dropped after every test, so tests never see each other's rows and
service code is free to commit or roll back.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.core.database import Base, SessionLocal, engine, get_db
from backend.app.main import app
from backend.app.models import audit, bir, inventory, pos, store, transaction, user  # noqa: F401
from backend.app.models.pos import Shift, ShiftStatus
from backend.app.models.store import Store
from backend.app.models.transaction import Transaction, TransactionStatus


# ─── DB session on a fresh schema per test ───────────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Stores ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def store_a(db: Session) -> Store:
    s = Store(name="Croffle Store Robinsons", address="Cebu City", tin="123-456-789-000")
    db.add(s)
    db.commit()
    return s


@pytest.fixture()
def store_b(db: Session) -> Store:
    s = Store(name="Croffle Store SM", address="Mandaue City")
    db.add(s)
    db.commit()
    return s


# ─── Builders ────────────────────────────────────────────────────────────────


def make_tx(
    created_at: datetime,
    total: Decimal | str | int,
    *,
    store_id: uuid.UUID | None = None,
    payment_method: str = "cash",
    subtotal: Decimal | str | int | None = None,
    tax: Decimal | str | int = 0,
    discount: Decimal | str | int = 0,
    discount_type: str | None = None,
    status: str = TransactionStatus.COMPLETED.value,
    items: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> Transaction:
    """Build a transient Transaction with every reported column set."""
    fields: dict[str, Any] = {
        "id": uuid.uuid4(),
        "store_id": store_id or uuid.uuid4(),
        "user_id": None,
        "shift_id": None,
        "created_at": created_at,
        "receipt_number": None,
        "status": status,
        "void_reason": None,
        "subtotal": Decimal(str(subtotal if subtotal is not None else total)),
        "tax": Decimal(str(tax)),
        "discount": Decimal(str(discount)),
        "discount_type": discount_type,
        "total": Decimal(str(total)),
        "payment_method": payment_method,
        "items": items or [],
        "order_type": None,
        "delivery_platform": None,
        "vat_sales": None,
        "vat_exempt_sales": None,
        "zero_rated_sales": None,
        "senior_citizen_discount": None,
        "pwd_discount": None,
    }
    fields.update(extra)
    return Transaction(**fields)


def add_tx(db: Session, store: Store, created_at: datetime, total: Any, **kw: Any) -> Transaction:
    tx = make_tx(created_at, total, store_id=store.id, **kw)
    db.add(tx)
    db.commit()
    return tx


def add_shift(
    db: Session,
    store: Store,
    start_time: datetime,
    *,
    user_id: uuid.UUID | None = None,
    starting_cash: Decimal | str | int = 0,
    ending_cash: Decimal | str | int | None = None,
    end_time: datetime | None = None,
    status: str = ShiftStatus.ACTIVE.value,
) -> Shift:
    shift = Shift(
        store_id=store.id,
        user_id=user_id or uuid.uuid4(),
        status=status,
        start_time=start_time,
        end_time=end_time,
        starting_cash=Decimal(str(starting_cash)),
        ending_cash=Decimal(str(ending_cash)) if ending_cash is not None else None,
    )
    db.add(shift)
    db.commit()
    return shift
