from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from backend.app.models.transaction import Transaction, TransactionStatus
from backend.app.services.reports.transaction_query import fetch_transactions_with_fallback
from backend.app.services.reports.utils import (
    ZERO,
    StoreScope,
    cashier_label,
    iso,
    resolve_user_names,
    store_label,
    to_decimal,
)

NO_REASON = "No reason given"


def aggregate_voids(
    transactions: Sequence[Transaction],
    user_names: Mapping[UUID, str],
    from_date: date,
    to_date: date,
    store_scope: StoreScope,
) -> dict[str, object] | None:
    if not transactions:
        return None

    by_cashier_amount: dict[str, Decimal] = {}
    by_cashier_count: dict[str, int] = {}
    by_reason_amount: dict[str, Decimal] = {}
    by_reason_count: dict[str, int] = {}
    rows = []

    for tx in transactions:
        amount = to_decimal(tx.total)
        cashier = (
            user_names.get(tx.user_id, cashier_label(tx.user_id))
            if tx.user_id is not None
            else cashier_label(None)
        )
        reason = (tx.void_reason or "").strip() or NO_REASON

        by_cashier_amount[cashier] = by_cashier_amount.get(cashier, ZERO) + amount
        by_cashier_count[cashier] = by_cashier_count.get(cashier, 0) + 1
        by_reason_amount[reason] = by_reason_amount.get(reason, ZERO) + amount
        by_reason_count[reason] = by_reason_count.get(reason, 0) + 1

        rows.append({
            "transaction_id": str(tx.id),
            "receipt_number": tx.receipt_number,
            "created_at": iso(tx.created_at),
            "total": str(amount),
            "cashier": cashier,
            "reason": reason,
        })

    return {
        "report_type": "voids",
        "store_id": store_label(store_scope),
        "from_date": from_date.isoformat(),
        "to_date": to_date.isoformat(),
        "void_count": len(transactions),
        "total_voided": str(sum(by_cashier_amount.values(), ZERO)),
        "voids": rows,
        "by_cashier": [
            {"cashier": k, "count": by_cashier_count[k], "amount": str(by_cashier_amount[k])}
            for k in sorted(by_cashier_amount, key=lambda k: (-by_cashier_amount[k], k))
        ],
        "by_reason": [
            {"reason": k, "count": by_reason_count[k], "amount": str(by_reason_amount[k])}
            for k in sorted(by_reason_count, key=lambda k: (-by_reason_count[k], k))
        ],
    }


def fetch_void_report(
    db: Session, store_scope: StoreScope, from_date: date, to_date: date,
) -> dict[str, object] | None:
    result = fetch_transactions_with_fallback(
        db, store_scope, from_date, to_date, status=TransactionStatus.VOIDED.value,
    )
    names = resolve_user_names(db, (tx.user_id for tx in result.transactions))
    return aggregate_voids(result.transactions, names, from_date, to_date, store_scope)
