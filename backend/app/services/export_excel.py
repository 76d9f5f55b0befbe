"""Excel export functions for back-office reports using openpyxl."""
from __future__ import annotations

import io
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

# ── Shared styling constants ────────────────────────────────────────────────

_HEADER_FONT = Font(name="Calibri", bold=True, color="FFFFFF", size=11)
_HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
_SECTION_FONT = Font(name="Calibri", bold=True, size=11)
_SECTION_FILL = PatternFill(start_color="D6E4F0", end_color="D6E4F0", fill_type="solid")
_TOTAL_FONT = Font(name="Calibri", bold=True, size=11)
_TOTAL_BORDER = Border(
    top=Side(style="thin"),
    bottom=Side(style="double"),
)
_CURRENCY_FMT = '#,##0.00'
_PCT_FMT = '0.00"%"'
_RIGHT = Alignment(horizontal="right")
_LEFT = Alignment(horizontal="left")


def _auto_width(ws: Any) -> None:
    """Auto-fit column widths based on content."""
    for col_idx in range(1, ws.max_column + 1):
        max_len = 0
        col_letter = get_column_letter(col_idx)
        for row in ws.iter_rows(min_col=col_idx, max_col=col_idx, values_only=False):
            cell = row[0]
            if cell.value is not None:
                max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_len + 4, 40)


def _write_header_row(ws: Any, row: int, values: list[str]) -> None:
    for col, val in enumerate(values, 1):
        cell = ws.cell(row=row, column=col, value=val)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _RIGHT if col > 1 else _LEFT


def _write_title(ws: Any, title: str, subtitle: str) -> int:
    """Write report title and subtitle, return next available row."""
    ws.cell(row=1, column=1, value=title).font = Font(name="Calibri", bold=True, size=14)
    ws.cell(row=2, column=1, value=subtitle).font = Font(name="Calibri", size=10, italic=True)
    return 4


def _write_section(ws: Any, row: int, title: str, width: int = 2) -> int:
    ws.cell(row=row, column=1, value=title).font = _SECTION_FONT
    for col in range(1, width + 1):
        ws.cell(row=row, column=col).fill = _SECTION_FILL
    return row + 1


def _money(ws: Any, row: int, col: int, value: str | None, total: bool = False) -> None:
    c = ws.cell(row=row, column=col, value=float(value or 0))
    c.number_format = _CURRENCY_FMT
    c.alignment = _RIGHT
    if total:
        c.font = _TOTAL_FONT
        c.border = _TOTAL_BORDER


def _write_pairs(ws: Any, row: int, pairs: list[tuple[str, Any]], money: bool = True) -> int:
    """Label / value rows; values are money unless ``money`` is False."""
    for label, value in pairs:
        ws.cell(row=row, column=1, value=f"  {label}")
        if money:
            _money(ws, row, 2, value)
        else:
            ws.cell(row=row, column=2, value=value).alignment = _RIGHT
        row += 1
    return row + 1


def _to_workbook(ws: Any, wb: Workbook) -> io.BytesIO:
    """Finalize workbook and return as BytesIO."""
    _auto_width(ws)
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


# ── 1. Sales Report ─────────────────────────────────────────────────────────


def export_sales_excel(
    data: dict[str, Any] | None, store_id: str, from_date: str, to_date: str,
) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    ws.title = "Sales Report"

    row = _write_title(ws, "Sales Report", f"Store: {store_id} | Period: {from_date} to {to_date}")

    if data is None:
        ws.cell(row=row, column=1, value="No transactions found for this period.")
        return _to_workbook(ws, wb)

    ws.cell(row=row, column=1, value="Total Sales").font = _TOTAL_FONT
    _money(ws, row, 2, data["total_sales"], total=True)
    row += 1
    ws.cell(row=row, column=1, value="Transactions")
    ws.cell(row=row, column=2, value=data["total_transactions"]).alignment = _RIGHT
    row += 1
    ws.cell(row=row, column=1, value="Average Transaction")
    _money(ws, row, 2, data["average_transaction_value"])
    row += 2

    row = _write_section(ws, row, "Sales by Date", 3)
    _write_header_row(ws, row, ["Date", "Transactions", "Amount"])
    row += 1
    for item in data.get("sales_by_date", []):
        ws.cell(row=row, column=1, value=item["date"])
        ws.cell(row=row, column=2, value=item["transactions"]).alignment = _RIGHT
        _money(ws, row, 3, item["amount"])
        row += 1
    row += 1

    row = _write_section(ws, row, "Top Products", 3)
    _write_header_row(ws, row, ["Product", "Quantity", "Revenue"])
    row += 1
    for item in data.get("top_products", []):
        ws.cell(row=row, column=1, value=item["name"])
        ws.cell(row=row, column=2, value=float(item["quantity"])).alignment = _RIGHT
        _money(ws, row, 3, item["revenue"])
        row += 1
    row += 1

    row = _write_section(ws, row, "Payment Methods", 4)
    _write_header_row(ws, row, ["Method", "Transactions", "Amount", "Share"])
    row += 1
    for item in data.get("payment_methods", []):
        ws.cell(row=row, column=1, value=item["method"])
        ws.cell(row=row, column=2, value=item["transactions"]).alignment = _RIGHT
        _money(ws, row, 3, item["amount"])
        c = ws.cell(row=row, column=4, value=float(item["percentage"]))
        c.number_format = _PCT_FMT
        c.alignment = _RIGHT
        row += 1

    return _to_workbook(ws, wb)


# ── 2. X / Z Readings ───────────────────────────────────────────────────────


def _write_reading(ws: Any, data: dict[str, Any], title: str) -> int:
    row = _write_title(
        ws, title, f"{data['business_name']} | Business date: {data['business_date']}",
    )

    row = _write_section(ws, row, "Business Information")
    row = _write_pairs(ws, row, [
        ("Business Name", data["business_name"]),
        ("Address", data["business_address"]),
        ("Taxpayer", data["taxpayer_name"]),
        ("TIN", data["tin"]),
        ("Machine ID", data["machine_id"]),
        ("Serial No.", data["serial_number"]),
        ("POS Version", data["pos_version"]),
        ("Permit No.", data["permit_number"]),
    ], money=False)

    row = _write_section(ws, row, "Reading")
    row = _write_pairs(ws, row, [
        ("Reading No.", data["reading_number"]),
        ("Reset Counter", data["reset_counter"]),
        ("Terminal", data["terminal_id"]),
        ("Cashier", data["cashier_name"]),
        ("Beginning Receipt", data["beginning_receipt_number"]),
        ("Ending Receipt", data["ending_receipt_number"]),
        ("Transactions", data["transaction_count"]),
    ], money=False)

    row = _write_section(ws, row, "Sales")
    row = _write_pairs(ws, row, [
        ("Gross Sales", data["gross_sales"]),
        ("VATable Sales", data["vat_sales"]),
        ("VAT Amount", data["vat_amount"]),
        ("VAT-Exempt Sales", data["vat_exempt_sales"]),
        ("Zero-Rated Sales", data["zero_rated_sales"]),
    ])

    row = _write_section(ws, row, "Discounts")
    row = _write_pairs(ws, row, [
        ("Senior Citizen", data["senior_discount"]),
        ("PWD", data["pwd_discount"]),
        ("Employee", data["employee_discount"]),
        ("Other", data["other_discounts"]),
    ])
    ws.cell(row=row - 1, column=1, value="Total Discounts").font = _TOTAL_FONT
    _money(ws, row - 1, 2, data["total_discounts"], total=True)
    ws.cell(row=row, column=1, value="Net Sales").font = Font(name="Calibri", bold=True, size=12)
    _money(ws, row, 2, data["net_sales"], total=True)
    row += 2

    row = _write_section(ws, row, "Payments")
    row = _write_pairs(ws, row, [
        ("Cash", data["cash_payments"]),
        ("Card", data["card_payments"]),
        ("E-Wallet", data["ewallet_payments"]),
        ("Other", data["other_payments"]),
    ])

    row = _write_section(ws, row, "Accumulated Totals")
    row = _write_pairs(ws, row, [
        ("Accumulated Gross Sales", data["accumulated_gross_sales"]),
        ("Accumulated Net Sales", data["accumulated_net_sales"]),
        ("Accumulated VAT", data["accumulated_vat"]),
    ])
    return row


def export_x_reading_excel(data: dict[str, Any]) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    ws.title = "X-Reading"
    _write_reading(ws, data, "X-Reading Report")
    return _to_workbook(ws, wb)


def export_z_reading_excel(data: dict[str, Any]) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    ws.title = "Z-Reading"
    row = _write_reading(ws, data, "Z-Reading Report")

    row = _write_section(ws, row, "Grand Totals")
    row = _write_pairs(ws, row, [
        ("Previous Grand Total", data["previous_grand_total"]),
        ("Current Grand Total", data["current_grand_total"]),
    ])

    row = _write_section(ws, row, "Cash Drawer")
    row = _write_pairs(ws, row, [
        ("Beginning Cash", data["beginning_cash"]),
        ("Cash Sales", data["cash_sales"]),
        ("Payouts", data["payouts"]),
        ("Expected Cash", data["expected_cash"]),
        ("Actual Cash", data["actual_cash"]),
    ])
    ws.cell(row=row, column=1, value="Cash Variance").font = _TOTAL_FONT
    _money(ws, row, 2, data["cash_variance"], total=True)

    return _to_workbook(ws, wb)
