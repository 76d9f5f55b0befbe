from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from backend.app.core.database import get_db
from backend.app.schemas.reports import (
    CashierReportResponse,
    DailySummaryResponse,
    ProfitLossReportResponse,
    SalesReportResponse,
    StockReportResponse,
    VATReportResponse,
    VoidReportResponse,
    XReadingResponse,
    ZReadingCloseRequest,
    ZReadingResponse,
)
from backend.app.services.export_excel import (
    export_sales_excel,
    export_x_reading_excel,
    export_z_reading_excel,
)
from backend.app.services.reports.cashier import fetch_cashier_report
from backend.app.services.reports.daily_summary import fetch_daily_summary
from backend.app.services.reports.profit_loss import fetch_profit_loss_report
from backend.app.services.reports.readings import (
    ZReadingExistsError,
    close_business_day,
    fetch_x_reading,
    fetch_z_reading,
)
from backend.app.services.reports.sales import fetch_sales_report
from backend.app.services.reports.stock import fetch_stock_report
from backend.app.services.reports.transaction_query import (
    ReportQueryError,
    SessionExpiredError,
)
from backend.app.services.reports.utils import (
    StoreNotFoundError,
    StoreScope,
    local_today,
    parse_store_scope,
    store_label,
)
from backend.app.services.reports.vat import fetch_vat_report
from backend.app.services.reports.voids import fetch_void_report

logger = logging.getLogger(__name__)

router = APIRouter()

_XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _default_dates(
    from_date: date | None, to_date: date | None,
) -> tuple[date, date]:
    today = local_today()
    if from_date is None:
        from_date = today.replace(day=1)
    if to_date is None:
        to_date = today
    return from_date, to_date


def _store_scope(store_id: str = Query(..., description="Store UUID or 'all'")) -> StoreScope:
    try:
        return parse_store_scope(store_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="store_id must be a store UUID or 'all'",
        )


@contextmanager
def _report_errors() -> Iterator[None]:
    """Translate service failures into HTTP errors."""
    try:
        yield
    except SessionExpiredError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except ReportQueryError as e:
        logger.error("Report query failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except StoreNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ZReadingExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _export_response(buf: object, filename: str) -> StreamingResponse:
    return StreamingResponse(
        buf,  # type: ignore[arg-type]
        media_type=_XLSX_MIME,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Sales / P&L / VAT ───────────────────────────────────────────────────────


@router.get("/sales", response_model=SalesReportResponse | None)
def sales_report(
    store_scope: StoreScope = Depends(_store_scope),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, object] | None:
    fd, td = _default_dates(from_date, to_date)
    with _report_errors():
        return fetch_sales_report(db, store_scope, fd, td)


@router.get("/profit-loss", response_model=ProfitLossReportResponse | None)
def profit_loss_report(
    store_scope: StoreScope = Depends(_store_scope),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    expenses: Decimal = Query(Decimal("0"), ge=0),
    db: Session = Depends(get_db),
) -> dict[str, object] | None:
    fd, td = _default_dates(from_date, to_date)
    with _report_errors():
        return fetch_profit_loss_report(db, store_scope, fd, td, expenses)


@router.get("/vat", response_model=VATReportResponse | None)
def vat_report(
    store_scope: StoreScope = Depends(_store_scope),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, object] | None:
    fd, td = _default_dates(from_date, to_date)
    with _report_errors():
        return fetch_vat_report(db, store_scope, fd, td)


# ── Operations ──────────────────────────────────────────────────────────────


@router.get("/daily-summary", response_model=DailySummaryResponse | None)
def daily_summary(
    store_scope: StoreScope = Depends(_store_scope),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, object] | None:
    fd, td = _default_dates(from_date, to_date)
    with _report_errors():
        return fetch_daily_summary(db, store_scope, fd, td)


@router.get("/cashiers", response_model=CashierReportResponse | None)
def cashier_report(
    store_scope: StoreScope = Depends(_store_scope),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, object] | None:
    fd, td = _default_dates(from_date, to_date)
    with _report_errors():
        return fetch_cashier_report(db, store_scope, fd, td)


@router.get("/voids", response_model=VoidReportResponse | None)
def void_report(
    store_scope: StoreScope = Depends(_store_scope),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, object] | None:
    fd, td = _default_dates(from_date, to_date)
    with _report_errors():
        return fetch_void_report(db, store_scope, fd, td)


@router.get("/stock", response_model=StockReportResponse)
def stock_report(
    store_scope: StoreScope = Depends(_store_scope),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    return fetch_stock_report(db, store_scope)


# ── BIR Readings ────────────────────────────────────────────────────────────


@router.get("/x-reading", response_model=XReadingResponse)
def x_reading(
    store_id: UUID = Query(...),
    reading_date: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    with _report_errors():
        return fetch_x_reading(db, store_id, reading_date or local_today())


@router.get("/z-reading", response_model=ZReadingResponse)
def z_reading_preview(
    store_id: UUID = Query(...),
    reading_date: date | None = Query(None, alias="date"),
    actual_cash: Decimal | None = Query(None, ge=0),
    payouts: Decimal = Query(Decimal("0"), ge=0),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    with _report_errors():
        return fetch_z_reading(
            db, store_id, reading_date or local_today(), actual_cash, payouts,
        )


@router.post("/z-reading/close", response_model=ZReadingResponse)
def z_reading_close(
    body: ZReadingCloseRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> dict[str, object]:
    ip = request.client.host if request.client else None
    with _report_errors():
        return close_business_day(
            db,
            body.store_id,
            body.business_date or local_today(),
            body.actual_cash,
            body.payouts,
            body.user_id,
            terminal_id=body.terminal_id,
            ip_address=ip,
        )


# ── Excel exports ───────────────────────────────────────────────────────────


@router.get("/sales/export/excel")
def sales_export_excel(
    store_scope: StoreScope = Depends(_store_scope),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
) -> StreamingResponse:
    fd, td = _default_dates(from_date, to_date)
    with _report_errors():
        data = fetch_sales_report(db, store_scope, fd, td)
    buf = export_sales_excel(data, store_label(store_scope), fd.isoformat(), td.isoformat())
    return _export_response(buf, f"sales-{fd.isoformat()}-{td.isoformat()}.xlsx")


@router.get("/x-reading/export/excel")
def x_reading_export_excel(
    store_id: UUID = Query(...),
    reading_date: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
) -> StreamingResponse:
    day = reading_date or local_today()
    with _report_errors():
        data = fetch_x_reading(db, store_id, day)
    return _export_response(export_x_reading_excel(data), f"x-reading-{day.isoformat()}.xlsx")


@router.get("/z-reading/export/excel")
def z_reading_export_excel(
    store_id: UUID = Query(...),
    reading_date: date | None = Query(None, alias="date"),
    actual_cash: Decimal | None = Query(None, ge=0),
    payouts: Decimal = Query(Decimal("0"), ge=0),
    db: Session = Depends(get_db),
) -> StreamingResponse:
    day = reading_date or local_today()
    with _report_errors():
        data = fetch_z_reading(db, store_id, day, actual_cash, payouts)
    return _export_response(export_z_reading_excel(data), f"z-reading-{day.isoformat()}.xlsx")
