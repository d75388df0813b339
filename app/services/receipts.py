"""
Payment receipt rendering. One finalised SalaryLog becomes either a plain-text
receipt or a paginated A4 PDF with letterhead, staff details, the itemised work
log and the payment summary.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas

from app.models import SalaryLog
from app.services.work_log import WorkLogEntry, WorkLogParseError, parse_work_log
from app.settings import get_receipt_letterhead_path, get_settings

logger = logging.getLogger("app.receipts")

PDF_MEDIA_TYPE = "application/pdf"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"

FOOTER_DISCLAIMER = "This is a computer-generated receipt and is valid without signature."

PRIMARY_RGB = (16 / 255, 185 / 255, 129 / 255)
SECONDARY_RGB = (51 / 255, 65 / 255, 85 / 255)
LIGHT_GRAY_RGB = (241 / 255, 245 / 255, 249 / 255)
MUTED_RGB = (150 / 255, 150 / 255, 150 / 255)

PAGE_MARGIN = 20 * mm
TOP_MARGIN = 20 * mm
# Work-log rows below this distance from the page bottom go to a new page.
ROW_BREAK_THRESHOLD = 47 * mm
ROW_HEIGHT = 7 * mm
LETTERHEAD_HEIGHT = 42 * mm
FALLBACK_HEADER_HEIGHT = 45 * mm


@dataclass(frozen=True, slots=True)
class ReceiptDocument:
    payment_id: str
    date: date | None
    month: str
    staff_name: str
    role: str
    work_log: list[WorkLogEntry]
    gross_total: float
    deductions: float
    net_pay: float


@dataclass(frozen=True, slots=True)
class ReceiptArtifact:
    filename: str
    media_type: str
    content: bytes


def receipt_from_salary_log(record: SalaryLog) -> ReceiptDocument:
    try:
        work_log = parse_work_log(record.work_log)
    except WorkLogParseError:
        logger.warning("receipt_work_log_unreadable", extra={"payment_id": record.payment_id})
        work_log = []
    return ReceiptDocument(
        payment_id=record.payment_id,
        date=record.date,
        month=record.month.value if record.month is not None else "",
        staff_name=record.staff_name,
        role=record.role or "",
        work_log=work_log,
        gross_total=float(record.gross_total or 0),
        deductions=float(record.deductions or 0),
        net_pay=float(record.net_pay or 0),
    )


def format_amount(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_quantity(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def receipt_filename(staff_name: str, month: str, pay_date: date | None, ext: str) -> str:
    # Header-safe: spaces become underscores, anything outside [A-Za-z0-9_.-] is dropped.
    safe_staff = re.sub(r"[^A-Za-z0-9_.-]", "", re.sub(r"\s+", "_", staff_name.strip())) or "Staff"
    parts = ["Receipt", safe_staff, month or "Unknown"]
    if pay_date is not None:
        parts.append(pay_date.isoformat())
    return "_".join(parts) + f".{ext}"


def render_text_receipt(receipt: ReceiptDocument, *, generated_at: datetime | None = None) -> str:
    settings = get_settings()
    currency = settings.currency_code
    generated = generated_at or datetime.now()
    rule = "=" * 64
    thin_rule = "-" * 64

    lines = [
        rule,
        settings.company_name.center(64).rstrip(),
        settings.company_tagline.center(64).rstrip(),
        rule,
        "PAYMENT RECEIPT".center(64).rstrip(),
        f"Receipt #: {receipt.payment_id}".center(64).rstrip(),
        "",
        f"Date:  {receipt.date.isoformat() if receipt.date else '-'}",
        f"Month: {receipt.month or '-'}",
        "",
        "STAFF INFORMATION",
        thin_rule,
        f"Name: {receipt.staff_name}",
        f"Role: {receipt.role or '-'}",
        "",
        "WORK LOG",
        thin_rule,
        f"{'#':>3}  {'Branch':<24} {'Days':>6} {f'Rate ({currency})':>12} {f'Total ({currency})':>13}",
    ]
    for index, entry in enumerate(receipt.work_log, start=1):
        lines.append(
            f"{index:>3}  {entry.branch[:24]:<24} {format_quantity(entry.days):>6} "
            f"{format_amount(entry.rate):>12} {format_amount(entry.total):>13}"
        )
    lines.extend(
        [
            "",
            "PAYMENT SUMMARY",
            thin_rule,
            f"{'Gross Total:':<16}{currency} {format_amount(receipt.gross_total)}",
            f"{'Deductions:':<16}{currency} {format_amount(receipt.deductions)}",
            f"{'NET PAY:':<16}{currency} {format_amount(receipt.net_pay)}",
            "",
            thin_rule,
            FOOTER_DISCLAIMER,
            f"Generated on: {generated.strftime('%Y-%m-%d %H:%M:%S')}",
        ]
    )
    return "\n".join(lines) + "\n"


def _draw_letterhead(canvas: pdf_canvas.Canvas, letterhead_path: Path, page_width: float, page_height: float) -> float:
    image = ImageReader(str(letterhead_path))
    image_width, image_height = image.getSize()
    if not image_height:
        raise ValueError("letterhead image has no height")
    draw_width = LETTERHEAD_HEIGHT * image_width / image_height
    x = (page_width - draw_width) / 2
    top = page_height - 5 * mm
    canvas.drawImage(image, x, top - LETTERHEAD_HEIGHT, width=draw_width, height=LETTERHEAD_HEIGHT)
    return top - LETTERHEAD_HEIGHT - 15 * mm


def _draw_fallback_header(canvas: pdf_canvas.Canvas, page_width: float, page_height: float) -> float:
    settings = get_settings()
    canvas.setFillColorRGB(*PRIMARY_RGB)
    canvas.rect(0, page_height - FALLBACK_HEADER_HEIGHT, page_width, FALLBACK_HEADER_HEIGHT, stroke=0, fill=1)
    canvas.setFillColorRGB(1, 1, 1)
    canvas.setFont("Helvetica-Bold", 28)
    canvas.drawString(PAGE_MARGIN, page_height - 25 * mm, settings.company_name)
    canvas.setFont("Helvetica", 10)
    canvas.drawString(PAGE_MARGIN, page_height - 35 * mm, settings.company_tagline)
    return page_height - 55 * mm


def _draw_header(canvas: pdf_canvas.Canvas, page_width: float, page_height: float) -> float:
    letterhead_path = get_receipt_letterhead_path()
    if letterhead_path is not None:
        try:
            return _draw_letterhead(canvas, letterhead_path, page_width, page_height)
        except Exception:
            logger.warning(
                "receipt_letterhead_unavailable",
                extra={"letterhead_path": str(letterhead_path)},
                exc_info=True,
            )
    return _draw_fallback_header(canvas, page_width, page_height)


def _section_bar(canvas: pdf_canvas.Canvas, title: str, y: float, page_width: float) -> None:
    canvas.setFillColorRGB(*LIGHT_GRAY_RGB)
    canvas.rect(PAGE_MARGIN, y - 8 * mm, page_width - 2 * PAGE_MARGIN, 8 * mm, stroke=0, fill=1)
    canvas.setFillColorRGB(*SECONDARY_RGB)
    canvas.setFont("Helvetica-Bold", 11)
    canvas.drawString(PAGE_MARGIN + 2 * mm, y - 5.5 * mm, title)


def draw_receipt(
    canvas: pdf_canvas.Canvas,
    receipt: ReceiptDocument,
    *,
    generated_at: datetime | None = None,
) -> None:
    """Lay the receipt out on ``canvas``; the caller saves it."""
    settings = get_settings()
    currency = settings.currency_code
    page_width, page_height = A4
    right = page_width - PAGE_MARGIN

    y = _draw_header(canvas, page_width, page_height)

    canvas.setFillColorRGB(*SECONDARY_RGB)
    canvas.setFont("Helvetica-Bold", 16)
    canvas.drawCentredString(page_width / 2, y, "PAYMENT RECEIPT")
    y -= 5 * mm
    canvas.setFont("Helvetica", 9)
    canvas.drawCentredString(page_width / 2, y, f"Receipt #: {receipt.payment_id}")
    y -= 15 * mm

    canvas.setFont("Helvetica-Bold", 10)
    canvas.drawString(PAGE_MARGIN, y, "Date:")
    canvas.drawString(PAGE_MARGIN + 80 * mm, y, "Month:")
    canvas.setFont("Helvetica", 10)
    canvas.drawString(PAGE_MARGIN + 30 * mm, y, receipt.date.isoformat() if receipt.date else "-")
    canvas.drawString(PAGE_MARGIN + 110 * mm, y, receipt.month or "-")
    y -= 15 * mm

    _section_bar(canvas, "STAFF INFORMATION", y, page_width)
    y -= 15 * mm
    canvas.setFont("Helvetica-Bold", 10)
    canvas.drawString(PAGE_MARGIN + 5 * mm, y, "Name:")
    canvas.setFont("Helvetica", 10)
    canvas.drawString(PAGE_MARGIN + 40 * mm, y, receipt.staff_name)
    y -= 7 * mm
    canvas.setFont("Helvetica-Bold", 10)
    canvas.drawString(PAGE_MARGIN + 5 * mm, y, "Role:")
    canvas.setFont("Helvetica", 10)
    canvas.drawString(PAGE_MARGIN + 40 * mm, y, receipt.role or "-")
    y -= 15 * mm

    _section_bar(canvas, "WORK LOG", y, page_width)
    y -= 12 * mm
    canvas.setFont("Helvetica-Bold", 9)
    canvas.drawString(PAGE_MARGIN + 5 * mm, y, "#")
    canvas.drawString(PAGE_MARGIN + 15 * mm, y, "Branch")
    canvas.drawString(PAGE_MARGIN + 100 * mm, y, "Days")
    canvas.drawString(PAGE_MARGIN + 125 * mm, y, f"Rate ({currency})")
    canvas.drawRightString(right, y, f"Total ({currency})")
    canvas.setStrokeColorRGB(200 / 255, 200 / 255, 200 / 255)
    canvas.line(PAGE_MARGIN, y - 2 * mm, right, y - 2 * mm)
    y -= 8 * mm

    canvas.setFont("Helvetica", 9)
    for index, entry in enumerate(receipt.work_log, start=1):
        if y < ROW_BREAK_THRESHOLD:
            canvas.showPage()
            canvas.setFillColorRGB(*SECONDARY_RGB)
            canvas.setFont("Helvetica", 9)
            y = page_height - TOP_MARGIN
        canvas.drawString(PAGE_MARGIN + 5 * mm, y, str(index))
        canvas.drawString(PAGE_MARGIN + 15 * mm, y, entry.branch[:48])
        canvas.drawString(PAGE_MARGIN + 100 * mm, y, format_quantity(entry.days))
        canvas.drawString(PAGE_MARGIN + 125 * mm, y, format_amount(entry.rate))
        canvas.drawRightString(right, y, format_amount(entry.total))
        y -= ROW_HEIGHT
    y -= 5 * mm

    # Summary block is kept together with its heading.
    if y < ROW_BREAK_THRESHOLD + 20 * mm:
        canvas.showPage()
        y = page_height - TOP_MARGIN

    _section_bar(canvas, "PAYMENT SUMMARY", y, page_width)
    y -= 15 * mm
    summary_x = right - 70 * mm
    canvas.setFillColorRGB(*SECONDARY_RGB)
    canvas.setFont("Helvetica", 10)
    canvas.drawString(summary_x, y, "Gross Total:")
    canvas.drawRightString(right, y, f"{currency} {format_amount(receipt.gross_total)}")
    y -= 7 * mm
    canvas.drawString(summary_x, y, "Deductions:")
    canvas.drawRightString(right, y, f"{currency} {format_amount(receipt.deductions)}")
    y -= 2 * mm
    canvas.setLineWidth(0.5)
    canvas.line(summary_x, y, right, y)
    y -= 8 * mm
    canvas.setFont("Helvetica-Bold", 12)
    canvas.setFillColorRGB(*PRIMARY_RGB)
    canvas.drawString(summary_x, y, "NET PAY:")
    canvas.drawRightString(right, y, f"{currency} {format_amount(receipt.net_pay)}")

    generated = generated_at or datetime.now()
    footer_y = 20 * mm
    canvas.setFillColorRGB(*MUTED_RGB)
    canvas.setFont("Helvetica-Oblique", 8)
    canvas.drawCentredString(page_width / 2, footer_y, FOOTER_DISCLAIMER)
    canvas.drawCentredString(
        page_width / 2,
        footer_y - 5 * mm,
        f"Generated on: {generated.strftime('%Y-%m-%d %H:%M:%S')}",
    )
    canvas.setStrokeColorRGB(*PRIMARY_RGB)
    canvas.setLineWidth(2)
    canvas.line(0, 10 * mm, page_width, 10 * mm)


def render_pdf_receipt(receipt: ReceiptDocument, *, generated_at: datetime | None = None) -> bytes:
    buffer = BytesIO()
    canvas = pdf_canvas.Canvas(buffer, pagesize=A4)
    canvas.setTitle(f"Receipt {receipt.payment_id}")
    draw_receipt(canvas, receipt, generated_at=generated_at)
    canvas.save()
    return buffer.getvalue()


def build_receipt_artifact(record: SalaryLog, *, fmt: str) -> ReceiptArtifact:
    receipt = receipt_from_salary_log(record)
    if fmt == "pdf":
        return ReceiptArtifact(
            filename=receipt_filename(receipt.staff_name, receipt.month, receipt.date, "pdf"),
            media_type=PDF_MEDIA_TYPE,
            content=render_pdf_receipt(receipt),
        )
    if fmt == "txt":
        return ReceiptArtifact(
            filename=receipt_filename(receipt.staff_name, receipt.month, receipt.date, "txt"),
            media_type=TEXT_MEDIA_TYPE,
            content=render_text_receipt(receipt).encode("utf-8"),
        )
    raise ValueError(f"Unsupported receipt format: {fmt}")
