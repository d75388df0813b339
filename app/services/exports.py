from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from app.models import SalaryLog
from app.services.financials import FinancialOverview, payment_date_label
from app.services.work_log import coerce_number
from app.settings import get_settings

PAYMENT_HEADERS = [
    "Payment ID",
    "Date",
    "Month",
    "Staff",
    "Role",
    "Gross Total",
    "Deductions",
    "Net Pay",
    "Status",
]
BRANCH_HEADERS = ["Branch", "Expense", "Revenue", "Profit", "Margin %"]
BRANCH_MONTHLY_HEADERS = ["Branch", "Month", "Amount"]
MONTHLY_HEADERS = ["Month", "Payroll", "Deductions"]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="047857")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="ECFDF5")
META_VALUE_FILL = PatternFill(fill_type="solid", fgColor="F8FFFC")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBF9")
LOSS_FILL = PatternFill(fill_type="solid", fgColor="FDE2E4")
PROFIT_FILL = PatternFill(fill_type="solid", fgColor="E6F4EA")
SUMMARY_FILL = PatternFill(fill_type="solid", fgColor="E9F5F0")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="047857", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)

AMOUNT_FORMAT = "#,##0.00"


def _to_excel_datetime(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _style_header(ws: Worksheet, row: int = 1) -> None:
    for cell in ws[row]:
        if cell.value is None:
            continue
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _merge_title(ws: Worksheet, row: int, text: str, *, width: int) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=max(width, 2))
    cell = ws.cell(row=row, column=1, value=text)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")


def _style_metadata_rows(ws: Worksheet, *, start_row: int, end_row: int) -> None:
    for row_idx in range(start_row, end_row + 1):
        label_cell = ws.cell(row=row_idx, column=1)
        value_cell = ws.cell(row=row_idx, column=2)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        label_cell.alignment = Alignment(horizontal="left", vertical="center")
        label_cell.border = THIN_BORDER

        value_cell.font = MUTED_FONT
        value_cell.fill = META_VALUE_FILL
        value_cell.alignment = Alignment(horizontal="left", vertical="center")
        value_cell.border = THIN_BORDER
        if isinstance(value_cell.value, (int, float)):
            value_cell.number_format = AMOUNT_FORMAT


def _style_table_region(
    ws: Worksheet,
    *,
    header_row: int,
    data_start_row: int,
    data_end_row: int,
    width: int,
    profit_col: int | None = None,
) -> None:
    ws.freeze_panes = f"A{header_row + 1}"
    if data_end_row < data_start_row:
        return
    ws.auto_filter.ref = f"A{header_row}:{get_column_letter(width)}{data_end_row}"

    for row_idx in range(data_start_row, data_end_row + 1):
        for col_idx in range(1, width + 1):
            cell = ws.cell(row=row_idx, column=col_idx)
            cell.border = THIN_BORDER
            if row_idx % 2 == 0:
                cell.fill = ZEBRA_FILL
            if isinstance(cell.value, float):
                cell.number_format = AMOUNT_FORMAT
                cell.alignment = Alignment(horizontal="right", vertical="center")
            elif isinstance(cell.value, int):
                cell.alignment = Alignment(horizontal="center", vertical="center")
            else:
                cell.alignment = Alignment(horizontal="left", vertical="center")

        if profit_col is not None:
            profit_cell = ws.cell(row=row_idx, column=profit_col)
            if isinstance(profit_cell.value, (int, float)):
                profit_cell.fill = LOSS_FILL if profit_cell.value < 0 else PROFIT_FILL
                profit_cell.font = Font(bold=True, color="9F1239" if profit_cell.value < 0 else "166534")


def _append_table(
    ws: Worksheet,
    *,
    start_row: int,
    headers: list[str],
    rows: list[list[object]],
    profit_col: int | None = None,
) -> int:
    for col_idx, header in enumerate(headers, start=1):
        ws.cell(row=start_row, column=col_idx, value=header)
    _style_header(ws, start_row)
    for offset, values in enumerate(rows, start=1):
        for col_idx, value in enumerate(values, start=1):
            ws.cell(row=start_row + offset, column=col_idx, value=value)
    end_row = start_row + len(rows)
    _style_table_region(
        ws,
        header_row=start_row,
        data_start_row=start_row + 1,
        data_end_row=end_row,
        width=len(headers),
        profit_col=profit_col,
    )
    return end_row


def _build_payment_sheet(ws: Worksheet, payments: list[SalaryLog], overview: FinancialOverview) -> None:
    settings = get_settings()
    ws.title = "Payments"
    _merge_title(ws, 1, f"{settings.company_name} Payroll Register", width=len(PAYMENT_HEADERS))

    totals = overview.totals
    metadata = [
        ("Currency", settings.currency_code),
        ("Payments", totals.payment_count),
        ("Total Payroll", totals.total_payroll),
        ("Total Gross", totals.total_gross),
        ("Total Deductions", totals.total_deductions),
        ("Average Payment", totals.average_payment),
        ("Personnel Cost", totals.personnel_cost),
    ]
    for offset, (label, value) in enumerate(metadata, start=3):
        ws.cell(row=offset, column=1, value=label)
        ws.cell(row=offset, column=2, value=value)
    meta_end = 2 + len(metadata)
    _style_metadata_rows(ws, start_row=3, end_row=meta_end)

    rows = [
        [
            payment.payment_id,
            payment_date_label(payment.date),
            payment.month.value if payment.month is not None else "",
            payment.staff_name,
            payment.role or "",
            coerce_number(payment.gross_total),
            coerce_number(payment.deductions),
            coerce_number(payment.net_pay),
            payment.status,
        ]
        for payment in payments
    ]
    _append_table(ws, start_row=meta_end + 2, headers=PAYMENT_HEADERS, rows=rows)
    _auto_width(ws)


def _build_branch_sheet(ws: Worksheet, overview: FinancialOverview) -> None:
    _merge_title(ws, 1, "Branch Expenses", width=len(BRANCH_HEADERS))
    rows = [
        [item.name, item.expense, item.revenue, item.profit, item.profit_margin]
        for item in overview.branch_profits
    ]
    end_row = _append_table(ws, start_row=3, headers=BRANCH_HEADERS, rows=rows, profit_col=4)

    monthly_start = end_row + 3
    _merge_title(ws, monthly_start - 1, "Monthly Breakdown", width=len(BRANCH_MONTHLY_HEADERS))
    monthly_rows = [[item.branch, item.month, item.amount] for item in overview.branch_monthly_expenses]
    monthly_end = _append_table(ws, start_row=monthly_start, headers=BRANCH_MONTHLY_HEADERS, rows=monthly_rows)
    # Only the top table keeps its filter and frozen header.
    ws.freeze_panes = "A4"
    ws.auto_filter.ref = f"A3:{get_column_letter(len(BRANCH_HEADERS))}{max(end_row, 3)}"

    if overview.skipped_work_log_payment_ids:
        note_row = monthly_end + 2
        cell = ws.cell(
            row=note_row,
            column=1,
            value="Skipped payments (unreadable work log): "
            + ", ".join(overview.skipped_work_log_payment_ids),
        )
        cell.font = Font(italic=True, color="9F1239")
    _auto_width(ws)


def _build_monthly_sheet(ws: Worksheet, overview: FinancialOverview) -> None:
    _merge_title(ws, 1, "Monthly Summary", width=len(MONTHLY_HEADERS))
    rows = [[item.month, item.payroll, item.deductions] for item in overview.monthly]
    end_row = _append_table(ws, start_row=3, headers=MONTHLY_HEADERS, rows=rows)

    total_row = end_row + 1
    ws.cell(row=total_row, column=1, value="Total")
    ws.cell(row=total_row, column=2, value=overview.totals.total_payroll)
    ws.cell(row=total_row, column=3, value=overview.totals.total_deductions)
    for col_idx in range(1, len(MONTHLY_HEADERS) + 1):
        cell = ws.cell(row=total_row, column=col_idx)
        cell.font = BOLD_FONT
        cell.fill = SUMMARY_FILL
        cell.border = THIN_BORDER
        if col_idx > 1:
            cell.number_format = AMOUNT_FORMAT
    _auto_width(ws)


def build_financial_xlsx_bytes(
    payments: list[SalaryLog],
    overview: FinancialOverview,
    *,
    generated_at: datetime | None = None,
) -> bytes:
    wb = Workbook()
    _build_payment_sheet(wb.active, payments, overview)
    _build_branch_sheet(wb.create_sheet("Branch Expenses"), overview)
    _build_monthly_sheet(wb.create_sheet("Monthly Summary"), overview)

    wb.properties.creator = get_settings().app_name
    wb.properties.created = _to_excel_datetime(generated_at or datetime.now(timezone.utc))

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
