"""Pydantic response schemas for back-office reports.

Money and percentages are decimal strings. Every report carries a
``report_type`` tag so ``ReportResponse`` can discriminate between them.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field


class _RangeReport(BaseModel):
    store_id: str
    from_date: str
    to_date: str


# ── Sales ────────────────────────────────────────────────────────────────────

class SalesByDateRow(BaseModel):
    date: str
    amount: str
    transactions: int


class TopProductRow(BaseModel):
    product_id: str | None
    name: str
    quantity: str
    revenue: str


class PaymentMethodRow(BaseModel):
    method: str
    amount: str
    transactions: int
    percentage: str


class SalesReportResponse(_RangeReport):
    report_type: Literal["sales"] = "sales"
    total_sales: str
    total_transactions: int
    average_transaction_value: str
    sales_by_date: list[SalesByDateRow]
    top_products: list[TopProductRow]
    payment_methods: list[PaymentMethodRow]


# ── Profit & Loss ────────────────────────────────────────────────────────────

class ProductProfitRow(BaseModel):
    product_id: str | None
    name: str
    category: str
    quantity: str
    revenue: str
    cost: str
    profit: str
    margin: str


class DailyProfitRow(BaseModel):
    date: str
    revenue: str
    cost: str
    profit: str


class ProfitLossReportResponse(_RangeReport):
    report_type: Literal["profit_loss"] = "profit_loss"
    total_revenue: str
    cost_of_goods: str
    gross_profit: str
    expenses: str
    net_profit: str
    gross_margin: str
    cost_percentage: str
    net_margin: str
    by_product: list[ProductProfitRow]
    by_date: list[DailyProfitRow]


# ── VAT ──────────────────────────────────────────────────────────────────────

class VATTransactionRow(BaseModel):
    transaction_id: str
    receipt_number: str | None
    date: str
    vatable_sales: str
    vat_amount: str
    vat_exempt_sales: str
    zero_rated_sales: str
    total: str


class VATDailyRow(BaseModel):
    date: str
    transactions: int
    vatable_sales: str
    vat_amount: str
    vat_exempt_sales: str
    zero_rated_sales: str
    total: str


class VATReportResponse(_RangeReport):
    report_type: Literal["vat"] = "vat"
    transaction_count: int
    total_vatable_sales: str
    total_vat_amount: str
    total_vat_exempt_sales: str
    total_zero_rated_sales: str
    total_sales: str
    transactions: list[VATTransactionRow]
    by_date: list[VATDailyRow]


# ── Daily Summary ────────────────────────────────────────────────────────────

class DailySummaryRow(BaseModel):
    date: str
    transactions: int
    gross_sales: str
    discounts: str
    net_sales: str
    vat: str
    average_ticket: str


class OrderTypeRow(BaseModel):
    order_type: str
    transactions: int
    amount: str
    percentage: str


class DeliveryPlatformRow(BaseModel):
    platform: str
    transactions: int
    amount: str


class DailySummaryResponse(_RangeReport):
    report_type: Literal["daily_summary"] = "daily_summary"
    total_transactions: int
    total_gross_sales: str
    total_discounts: str
    total_net_sales: str
    total_vat: str
    average_ticket: str
    days: list[DailySummaryRow]
    order_types: list[OrderTypeRow]
    delivery_platforms: list[DeliveryPlatformRow]


# ── Cashier Performance ──────────────────────────────────────────────────────

class CashierRow(BaseModel):
    user_id: str | None
    name: str
    transaction_count: int
    total_sales: str
    average_transaction_value: str


class HourlyRow(BaseModel):
    hour: int
    transaction_count: int
    sales: str


class AttendanceRow(BaseModel):
    shift_id: str
    user_id: str
    name: str
    start_time: str | None
    end_time: str | None
    starting_cash: str
    ending_cash: str | None
    status: str
    start_photo: str | None
    end_photo: str | None
    hours_worked: str | None


class CashierReportResponse(_RangeReport):
    report_type: Literal["cashier_performance"] = "cashier_performance"
    total_cashiers: int
    total_transactions: int
    total_sales: str
    average_transaction_value: str
    cashiers: list[CashierRow]
    hourly_data: list[HourlyRow]
    attendance: list[AttendanceRow]


# ── Voids ────────────────────────────────────────────────────────────────────

class VoidRow(BaseModel):
    transaction_id: str
    receipt_number: str | None
    created_at: str | None
    total: str
    cashier: str
    reason: str


class VoidsByCashierRow(BaseModel):
    cashier: str
    count: int
    amount: str


class VoidsByReasonRow(BaseModel):
    reason: str
    count: int
    amount: str


class VoidReportResponse(_RangeReport):
    report_type: Literal["voids"] = "voids"
    void_count: int
    total_voided: str
    voids: list[VoidRow]
    by_cashier: list[VoidsByCashierRow]
    by_reason: list[VoidsByReasonRow]


# ── Stock ────────────────────────────────────────────────────────────────────

class StockItemRow(BaseModel):
    id: str
    store_id: str
    item: str
    unit: str | None
    stock_quantity: str
    minimum_threshold: str
    cost: str
    value: str
    status: Literal["ok", "low", "out"]


class StockReportResponse(BaseModel):
    report_type: Literal["stock"] = "stock"
    store_id: str
    total_items: int
    ok_count: int
    low_stock_count: int
    out_of_stock_count: int
    total_value: str
    items: list[StockItemRow]


# ── X / Z Reading ────────────────────────────────────────────────────────────

class _ReadingBase(BaseModel):
    store_id: str
    business_date: str
    reading_date: str
    business_name: str
    business_address: str
    taxpayer_name: str
    tin: str
    machine_id: str
    serial_number: str
    pos_version: str
    permit_number: str
    terminal_id: str
    reading_number: int
    reset_counter: int
    cashier_name: str
    shift_id: str | None
    shift_start: str | None
    shift_end: str | None
    beginning_receipt_number: str
    ending_receipt_number: str
    transaction_count: int
    gross_sales: str
    vat_sales: str
    vat_amount: str
    vat_exempt_sales: str
    zero_rated_sales: str
    senior_discount: str
    pwd_discount: str
    employee_discount: str
    other_discounts: str
    total_discounts: str
    net_sales: str
    cash_payments: str
    card_payments: str
    ewallet_payments: str
    other_payments: str
    accumulated_gross_sales: str
    accumulated_net_sales: str
    accumulated_vat: str


class XReadingResponse(_ReadingBase):
    report_type: Literal["x_reading"] = "x_reading"


class ZReadingResponse(_ReadingBase):
    report_type: Literal["z_reading"] = "z_reading"
    previous_grand_total: str
    current_grand_total: str
    shift_count: int
    beginning_cash: str
    cash_sales: str
    payouts: str
    expected_cash: str
    actual_cash: str
    cash_variance: str


class ZReadingCloseRequest(BaseModel):
    store_id: UUID
    business_date: date | None = None
    actual_cash: Decimal = Field(..., ge=0)
    payouts: Decimal = Field(Decimal("0"), ge=0)
    user_id: UUID | None = None
    terminal_id: str | None = None


ReportResponse = Annotated[
    Union[
        SalesReportResponse,
        ProfitLossReportResponse,
        VATReportResponse,
        DailySummaryResponse,
        CashierReportResponse,
        VoidReportResponse,
        StockReportResponse,
        XReadingResponse,
        ZReadingResponse,
    ],
    Field(discriminator="report_type"),
]
