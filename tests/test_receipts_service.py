from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from io import BytesIO
from pathlib import Path
from unittest.mock import patch

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas as pdf_canvas

from app.models import PayMonth, SalaryLog
from app.services.receipts import (
    FOOTER_DISCLAIMER,
    ReceiptDocument,
    build_receipt_artifact,
    draw_receipt,
    format_amount,
    receipt_filename,
    receipt_from_salary_log,
    render_pdf_receipt,
    render_text_receipt,
)
from app.services.work_log import WorkLogEntry


def _receipt(row_count: int = 2) -> ReceiptDocument:
    rows = [
        WorkLogEntry(branch=f"Branch {index}", days=2, rate=500, total=1000)
        for index in range(1, row_count + 1)
    ]
    gross = sum(row.total for row in rows)
    return ReceiptDocument(
        payment_id="PAY-1700000000000-AB12",
        date=date(2026, 3, 31),
        month="March",
        staff_name="Nimal Perera",
        role="Cleaner",
        work_log=rows,
        gross_total=gross,
        deductions=250,
        net_pay=gross - 250,
    )


class ReceiptFilenameTests(unittest.TestCase):
    def test_filename_convention(self) -> None:
        self.assertEqual(
            receipt_filename("Nimal Perera", "March", date(2026, 3, 31), "pdf"),
            "Receipt_Nimal_Perera_March_2026-03-31.pdf",
        )
        self.assertEqual(receipt_filename("Nimal  Perera", "March", None, "txt"), "Receipt_Nimal_Perera_March.txt")

    def test_filename_drops_header_unsafe_characters(self) -> None:
        self.assertEqual(receipt_filename('A"B', "May", None, "txt"), "Receipt_AB_May.txt")
        self.assertEqual(receipt_filename("   ", "May", None, "txt"), "Receipt_Staff_May.txt")


class TextReceiptTests(unittest.TestCase):
    def test_text_receipt_lists_every_section(self) -> None:
        text = render_text_receipt(_receipt(), generated_at=datetime(2026, 4, 1, 9, 30, 0))

        self.assertIn("PAYMENT RECEIPT", text)
        self.assertIn("Receipt #: PAY-1700000000000-AB12", text)
        self.assertIn("Date:  2026-03-31", text)
        self.assertIn("Month: March", text)
        self.assertIn("Name: Nimal Perera", text)
        self.assertIn("Role: Cleaner", text)
        self.assertIn("Branch 1", text)
        self.assertIn("Branch 2", text)
        self.assertIn("Gross Total:    LKR 2,000", text)
        self.assertIn("Deductions:     LKR 250", text)
        self.assertIn("NET PAY:        LKR 1,750", text)
        self.assertIn(FOOTER_DISCLAIMER, text)
        self.assertIn("Generated on: 2026-04-01 09:30:00", text)

    def test_amount_formatting(self) -> None:
        self.assertEqual(format_amount(5000), "5,000")
        self.assertEqual(format_amount(-300.5), "-300.50")


class PdfReceiptTests(unittest.TestCase):
    def test_pdf_bytes(self) -> None:
        with patch("app.services.receipts.get_receipt_letterhead_path", return_value=None):
            payload = render_pdf_receipt(_receipt())

        self.assertTrue(payload.startswith(b"%PDF"))

    def test_long_work_log_spills_onto_more_pages(self) -> None:
        canvas = pdf_canvas.Canvas(BytesIO(), pagesize=A4)
        with patch("app.services.receipts.get_receipt_letterhead_path", return_value=None):
            draw_receipt(canvas, _receipt(row_count=60))

        self.assertGreater(canvas.getPageNumber(), 1)

    def test_short_work_log_fits_one_page(self) -> None:
        canvas = pdf_canvas.Canvas(BytesIO(), pagesize=A4)
        with patch("app.services.receipts.get_receipt_letterhead_path", return_value=None):
            draw_receipt(canvas, _receipt(row_count=3))

        self.assertEqual(canvas.getPageNumber(), 1)

    def test_unreadable_letterhead_falls_back_to_drawn_header(self) -> None:
        missing = Path("/nonexistent/letterhead.png")
        with patch("app.services.receipts.get_receipt_letterhead_path", return_value=missing):
            with self.assertLogs("app.receipts", level="WARNING") as captured:
                payload = render_pdf_receipt(_receipt())

        self.assertTrue(payload.startswith(b"%PDF"))
        self.assertTrue(any("receipt_letterhead_unavailable" in line for line in captured.output))


class ReceiptArtifactTests(unittest.TestCase):
    def _salary_log(self, work_log) -> SalaryLog:  # type: ignore[no-untyped-def]
        return SalaryLog(
            id="abc",
            payment_id="PAY-1-0000",
            staff_name="Kamal Silva",
            role="Supervisor",
            month=PayMonth.APRIL,
            date=date(2026, 4, 30),
            gross_total=1500,
            deductions=0,
            net_pay=1500,
            work_log=work_log,
            status="Paid",
        )

    def test_text_artifact_naming_and_type(self) -> None:
        artifact = build_receipt_artifact(
            self._salary_log([{"branch": "B", "days": 3, "rate": 500, "total": 1500}]),
            fmt="txt",
        )

        self.assertEqual(artifact.filename, "Receipt_Kamal_Silva_April_2026-04-30.txt")
        self.assertTrue(artifact.media_type.startswith("text/plain"))
        self.assertIn(b"Kamal Silva", artifact.content)

    def test_legacy_string_work_log_is_read(self) -> None:
        receipt = receipt_from_salary_log(
            self._salary_log('[{"branch": "B", "days": 3, "rate": 500, "total": 1500}]')
        )

        self.assertEqual(receipt.work_log, [WorkLogEntry(branch="B", days=3.0, rate=500.0, total=1500.0)])
        self.assertEqual(receipt.month, "April")

    def test_unknown_format_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            build_receipt_artifact(self._salary_log([]), fmt="docx")


if __name__ == "__main__":
    unittest.main()
