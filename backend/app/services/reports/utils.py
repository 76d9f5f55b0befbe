"""Helpers shared by the report aggregators."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, NamedTuple, Union
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.models.store import Store
from backend.app.models.transaction import Transaction
from backend.app.models.user import AppUser, Cashier

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
PCT_Q = Decimal("0.01")

ALL_STORES = "all"

StoreScope = Union[UUID, str]


class StoreNotFoundError(ValueError):
    pass


class LineItem(NamedTuple):
    product_id: str | None
    name: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


# ── Numbers ──────────────────────────────────────────────────────────────────


def to_decimal(value: object) -> Decimal:
    """Coerce a stored numeric (Decimal, float, int, str or None) to Decimal.

    Historical rows sometimes hold free text ("2 pcs") or NaN in numeric
    JSON fields; those count as 0 instead of failing the whole report.
    """
    if value is None or value == "":
        return ZERO
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.debug("Treating non-numeric value %r as 0", value)
        return ZERO
    if not result.is_finite():
        logger.debug("Treating non-finite value %r as 0", value)
        return ZERO
    return result


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """``part`` as a percentage of ``whole``; 0 when ``whole`` is 0."""
    if whole == ZERO:
        return ZERO
    return (part / whole * Decimal("100")).quantize(PCT_Q, rounding=ROUND_HALF_UP)


def average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return total / count


# ── Dates ────────────────────────────────────────────────────────────────────


def report_timezone() -> ZoneInfo:
    return ZoneInfo(settings.REPORT_TIMEZONE)


def to_local(dt: datetime) -> datetime:
    """Express a stored timestamp in the reporting timezone.

    Naive timestamps are taken to be local already.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(report_timezone())


def local_date(dt: datetime) -> date:
    return to_local(dt).date()


def local_hour(dt: datetime) -> int:
    return to_local(dt).hour


def local_today() -> date:
    """Current business day in the reporting timezone."""
    return datetime.now(report_timezone()).date()


def day_bounds(from_date: date, to_date: date) -> tuple[datetime, datetime]:
    """Naive ``[from 00:00:00, to 23:59:59.999999]`` bounds."""
    return datetime.combine(from_date, time.min), datetime.combine(to_date, time.max)


def iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# ── Store scope ──────────────────────────────────────────────────────────────


def parse_store_scope(value: str) -> StoreScope:
    """Parse a ``store_id`` parameter: a store UUID or ``"all"``.

    Raises ValueError for anything else.
    """
    if value.strip().lower() == ALL_STORES:
        return ALL_STORES
    return UUID(value)


def store_label(store_scope: StoreScope) -> str:
    return ALL_STORES if store_scope == ALL_STORES else str(store_scope)


def get_store(db: Session, store_id: UUID) -> Store:
    store = db.query(Store).filter(Store.id == store_id).first()
    if not store:
        raise StoreNotFoundError("Store information not found")
    return store


# ── Line items ───────────────────────────────────────────────────────────────


def _first(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def line_items(tx: Transaction) -> list[LineItem]:
    """Normalise the serialized line items of a transaction.

    Checkout versions wrote camelCase or snake_case keys; both are accepted.
    A missing line total falls back to unit price times quantity.
    """
    out: list[LineItem] = []
    for raw in tx.items or []:
        if not isinstance(raw, dict):
            continue
        product_id = _first(raw, "productId", "product_id")
        quantity = to_decimal(_first(raw, "quantity", "qty"))
        unit_price = to_decimal(_first(raw, "unitPrice", "unit_price", "price"))
        total_price = _first(raw, "totalPrice", "total_price", "lineTotal", "line_total")
        out.append(LineItem(
            product_id=str(product_id) if product_id is not None else None,
            name=str(_first(raw, "name", "productName", "product_name") or "Unknown Item"),
            quantity=quantity,
            unit_price=unit_price,
            total_price=(
                to_decimal(total_price) if total_price is not None
                else unit_price * quantity
            ),
        ))
    return out


# ── Cashier names ────────────────────────────────────────────────────────────


def cashier_label(user_id: UUID | None) -> str:
    """Display label used when a user id has no resolvable name."""
    if user_id is None:
        return "Unknown Cashier"
    return f"Cashier {str(user_id)[:8]}"


def resolve_user_names(db: Session, user_ids: Iterable[UUID | None]) -> dict[UUID, str]:
    """Map user ids to display names from app_users, then cashiers."""
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}

    names: dict[UUID, str] = {}
    for user in db.query(AppUser).filter(AppUser.user_id.in_(ids)).all():
        full = " ".join(p for p in (user.first_name, user.last_name) if p)
        if full.strip():
            names[user.user_id] = full.strip()

    missing = ids - names.keys()
    if missing:
        for cashier in db.query(Cashier).filter(Cashier.user_id.in_(missing)).all():
            if cashier.user_id is not None and cashier.full_name.strip():
                names.setdefault(cashier.user_id, cashier.full_name.strip())
    return names
