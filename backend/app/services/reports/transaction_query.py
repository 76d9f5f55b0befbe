"""Transaction query resolver with cascading fallback strategies.

Transaction timestamps are not always stored in the timezone convention the
report dates are expressed in, so a single query formulation can miss rows.
The resolver tries progressively looser query shapes, in order, and stops at
the first one that returns rows on a local business day inside the range:

1. ``exact_date``       date(created_at) between the requested dates
2. ``timestamp_range``  created_at between from 00:00:00 and to 23:59:59 (naive)
3. ``manual_scan``      most recent transactions, filtered in memory by
                        store and local calendar date

Strategies run sequentially. An error in one strategy is recorded and the
next one is tried, except for session expiry and lost connections, which are
surfaced immediately. When every strategy errors the last error is raised.
An empty result with no error is a valid "no transactions" answer.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import Date, func
from sqlalchemy.exc import DBAPIError, InterfaceError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from backend.app.core.config import settings
from backend.app.models.transaction import Transaction, TransactionStatus
from backend.app.services.reports.utils import (
    ALL_STORES,
    StoreScope,
    day_bounds,
    local_date,
    store_label,
)

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Session expired, please refresh and log in again."

_AUTH_PHRASES = (
    "jwt",
    "session expired",
    "session_not_found",
    "refresh token",
    "not authenticated",
    "invalid token",
    "password authentication failed",
)


class ReportQueryError(Exception):
    """The backing store could not produce the transactions for a report."""

    def __init__(self, message: str, diagnostics: QueryDiagnostics | None = None) -> None:
        self.diagnostics = diagnostics
        super().__init__(message)


class SessionExpiredError(ReportQueryError):
    """The database session / credentials expired; retrying will not help."""


class StrategyOutcome(str, enum.Enum):
    ROWS = "rows"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class TransactionQuery:
    store_scope: StoreScope
    from_date: date
    to_date: date
    status: str | None = TransactionStatus.COMPLETED.value


@dataclass
class StrategyAttempt:
    name: str
    outcome: StrategyOutcome
    row_count: int = 0
    error: str | None = None


@dataclass
class QueryDiagnostics:
    strategy: str | None = None
    attempts: list[StrategyAttempt] = field(default_factory=list)
    scan_truncated: bool = False

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    def as_dict(self) -> dict[str, object]:
        return {
            "strategy": self.strategy,
            "attempt_count": self.attempt_count,
            "scan_truncated": self.scan_truncated,
            "attempts": [
                {
                    "name": a.name,
                    "outcome": a.outcome.value,
                    "row_count": a.row_count,
                    "error": a.error,
                }
                for a in self.attempts
            ],
        }


@dataclass
class TransactionQueryResult:
    transactions: list[Transaction]
    diagnostics: QueryDiagnostics

    @property
    def is_empty(self) -> bool:
        return not self.transactions


StrategyFn = Callable[[Session, TransactionQuery, QueryDiagnostics], list[Transaction]]


# ── Strategies ───────────────────────────────────────────────────────────────


def _base_query(db: Session, q: TransactionQuery) -> Query[Transaction]:
    query = db.query(Transaction)
    if q.store_scope != ALL_STORES:
        query = query.filter(Transaction.store_id == q.store_scope)
    if q.status is not None:
        query = query.filter(Transaction.status == q.status)
    return query


def exact_date_strategy(
    db: Session, q: TransactionQuery, diagnostics: QueryDiagnostics,
) -> list[Transaction]:
    """Match on the date component of created_at, ignoring time of day."""
    created_day = func.date(Transaction.created_at, type_=Date)
    query = _base_query(db, q)
    if q.from_date == q.to_date:
        query = query.filter(created_day == q.from_date)
    else:
        query = query.filter(created_day >= q.from_date, created_day <= q.to_date)
    return query.order_by(Transaction.created_at).all()


def timestamp_range_strategy(
    db: Session, q: TransactionQuery, diagnostics: QueryDiagnostics,
) -> list[Transaction]:
    """Match created_at against naive start/end-of-day timestamps."""
    start, end = day_bounds(q.from_date, q.to_date)
    return (
        _base_query(db, q)
        .filter(Transaction.created_at >= start, Transaction.created_at <= end)
        .order_by(Transaction.created_at)
        .all()
    )


def manual_scan_strategy(
    db: Session, q: TransactionQuery, diagnostics: QueryDiagnostics,
) -> list[Transaction]:
    """Scan recent transactions newest-first and filter them in memory.

    Pages of ``MANUAL_SCAN_PAGE_SIZE`` rows are read until a page reaches
    back past ``from_date``, the table runs out, or ``MANUAL_SCAN_MAX_ROWS``
    rows have been read. Hitting the row cap with older rows left unread
    flags the result as truncated.
    """
    page_size = settings.MANUAL_SCAN_PAGE_SIZE
    max_rows = settings.MANUAL_SCAN_MAX_ROWS

    query = db.query(Transaction)
    if q.status is not None:
        query = query.filter(Transaction.status == q.status)
    query = query.order_by(Transaction.created_at.desc(), Transaction.id)

    matched: list[Transaction] = []
    scanned = 0
    while True:
        if scanned >= max_rows:
            # Only a cap with rows still behind it loses data
            if query.offset(scanned).limit(1).first() is not None:
                diagnostics.scan_truncated = True
                logger.warning(
                    "Manual transaction scan stopped at %d rows for store=%s %s..%s; "
                    "older in-range transactions may be missing",
                    max_rows, store_label(q.store_scope), q.from_date, q.to_date,
                )
            break
        limit = min(page_size, max_rows - scanned)
        page = query.offset(scanned).limit(limit).all()
        scanned += len(page)
        for tx in page:
            if tx.created_at is None:
                continue
            if q.store_scope != ALL_STORES and tx.store_id != q.store_scope:
                continue
            if q.from_date <= local_date(tx.created_at) <= q.to_date:
                matched.append(tx)
        if len(page) < limit:
            break
        oldest = page[-1].created_at
        if oldest is not None and local_date(oldest) < q.from_date:
            break

    matched.sort(key=lambda tx: tx.created_at)
    return matched


DEFAULT_STRATEGIES: tuple[tuple[str, StrategyFn], ...] = (
    ("exact_date", exact_date_strategy),
    ("timestamp_range", timestamp_range_strategy),
    ("manual_scan", manual_scan_strategy),
)


# ── Error classification ─────────────────────────────────────────────────────


def is_session_expired(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(phrase in message for phrase in _AUTH_PHRASES)


def _is_connection_lost(exc: BaseException) -> bool:
    if isinstance(exc, InterfaceError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def _within_local_range(rows: list[Transaction], q: TransactionQuery) -> list[Transaction]:
    """Keep rows whose created_at falls on a local business day in range."""
    return [
        tx for tx in rows
        if tx.created_at is not None
        and q.from_date <= local_date(tx.created_at) <= q.to_date
    ]


# ── Cascade ──────────────────────────────────────────────────────────────────


def fetch_transactions_with_fallback(
    db: Session,
    store_scope: StoreScope,
    from_date: date,
    to_date: date,
    status: str | None = TransactionStatus.COMPLETED.value,
    strategies: Sequence[tuple[str, StrategyFn]] = DEFAULT_STRATEGIES,
) -> TransactionQueryResult:
    """Resolve the transactions of ``store_scope`` between two calendar dates.

    Returns the rows plus a diagnostic trail of the strategies attempted.
    Raises SessionExpiredError or ReportQueryError on failure; an empty list
    means the range genuinely has no transactions.
    """
    if from_date > to_date:
        raise ValueError("from_date must not be after to_date")

    q = TransactionQuery(store_scope, from_date, to_date, status)
    diagnostics = QueryDiagnostics()
    last_error: SQLAlchemyError | None = None
    succeeded = False

    for name, strategy in strategies:
        try:
            rows = strategy(db, q, diagnostics)
        except SQLAlchemyError as exc:
            db.rollback()
            diagnostics.attempts.append(
                StrategyAttempt(name, StrategyOutcome.ERROR, error=str(exc))
            )
            if is_session_expired(exc):
                logger.warning("Transaction query '%s' hit an expired session", name)
                raise SessionExpiredError(SESSION_EXPIRED_MESSAGE, diagnostics) from exc
            if _is_connection_lost(exc):
                raise ReportQueryError(
                    f"Database connection lost while loading transactions: {exc}",
                    diagnostics,
                ) from exc
            logger.warning("Transaction query '%s' failed, falling back: %s", name, exc)
            last_error = exc
            continue

        succeeded = True
        in_range = _within_local_range(rows, q)
        if len(in_range) < len(rows):
            logger.debug(
                "Strategy '%s' returned %d row(s) outside %s..%s local time",
                name, len(rows) - len(in_range), from_date, to_date,
            )
        rows = in_range
        if rows:
            diagnostics.attempts.append(
                StrategyAttempt(name, StrategyOutcome.ROWS, row_count=len(rows))
            )
            diagnostics.strategy = name
            logger.info(
                "Resolved %d transactions for store=%s %s..%s via '%s' after %d attempt(s)",
                len(rows), store_label(store_scope), from_date, to_date,
                name, diagnostics.attempt_count,
            )
            logger.debug("Transaction query diagnostics: %s", diagnostics.as_dict())
            return TransactionQueryResult(rows, diagnostics)

        diagnostics.attempts.append(StrategyAttempt(name, StrategyOutcome.EMPTY))

    if not succeeded and last_error is not None:
        raise ReportQueryError(
            f"Failed to load transactions: {last_error}", diagnostics,
        ) from last_error

    logger.info(
        "No transactions for store=%s %s..%s after %d attempt(s)",
        store_label(store_scope), from_date, to_date, diagnostics.attempt_count,
    )
    logger.debug("Transaction query diagnostics: %s", diagnostics.as_dict())
    return TransactionQueryResult([], diagnostics)
