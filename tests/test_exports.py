from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from io import BytesIO

from openpyxl import load_workbook

from app.models import Cleaner, PayMonth, SalaryLog, StaffRole
from app.services.exports import BRANCH_HEADERS, MONTHLY_HEADERS, PAYMENT_HEADERS, build_financial_xlsx_bytes
from app.services.financials import build_financial_overview


def _payment(payment_id: str, work_log, *, net_pay: float, month: PayMonth = PayMonth.MARCH) -> SalaryLog:  # type: ignore[no-untyped-def]
    return SalaryLog(
        id=payment_id.lower(),
        payment_id=payment_id,
        staff_name="Nimal",
        role="Cleaner",
        month=month,
        date=date(2026, 3, 31),
        gross_total=net_pay,
        deductions=0,
        net_pay=net_pay,
        work_log=work_log,
        status="Paid",
        created_date=datetime(2026, 3, 31, tzinfo=timezone.utc),
    )


class FinancialWorkbookTests(unittest.TestCase):
    def setUp(self) -> None:
        self.payments = [
            _payment("PAY-1-AAAA", [{"branch": "Kandy", "days": 4, "rate": 500, "total": 2000}], net_pay=2000),
            _payment("PAY-2-BBBB", "not json", net_pay=1000, month=PayMonth.APRIL),
        ]
        roster = [Cleaner(name="Nimal", role=StaffRole.CLEANER)]
        self.overview = build_financial_overview(self.payments, roster, {"Kandy": 5000})

    def _workbook(self):  # type: ignore[no-untyped-def]
        payload = build_financial_xlsx_bytes(
            self.payments,
            self.overview,
            generated_at=datetime(2026, 4, 1, tzinfo=timezone.utc),
        )
        return load_workbook(BytesIO(payload))

    def test_sheets_and_headers(self) -> None:
        wb = self._workbook()

        self.assertEqual(wb.sheetnames, ["Payments", "Branch Expenses", "Monthly Summary"])
        payments = wb["Payments"]
        header_row = next(
            row for row in payments.iter_rows(values_only=True) if row[0] == PAYMENT_HEADERS[0]
        )
        self.assertEqual(list(header_row[: len(PAYMENT_HEADERS)]), PAYMENT_HEADERS)
        self.assertEqual([cell.value for cell in wb["Branch Expenses"][3]][: len(BRANCH_HEADERS)], BRANCH_HEADERS)
        self.assertEqual([cell.value for cell in wb["Monthly Summary"][3]][: len(MONTHLY_HEADERS)], MONTHLY_HEADERS)

    def test_payment_register_lists_every_payment(self) -> None:
        values = [row for row in self._workbook()["Payments"].iter_rows(values_only=True)]
        payment_ids = [row[0] for row in values if isinstance(row[0], str) and row[0].startswith("PAY-")]

        self.assertEqual(payment_ids, ["PAY-1-AAAA", "PAY-2-BBBB"])

    def test_branch_sheet_reports_profit_and_skipped_payments(self) -> None:
        ws = self._workbook()["Branch Expenses"]

        self.assertEqual([cell.value for cell in ws[4]][:5], ["Kandy", 2000, 5000, 3000, 60.0])
        notes = [
            row[0]
            for row in ws.iter_rows(values_only=True)
            if isinstance(row[0], str) and row[0].startswith("Skipped payments")
        ]
        self.assertEqual(notes, ["Skipped payments (unreadable work log): PAY-2-BBBB"])

    def test_monthly_sheet_ends_with_total_row(self) -> None:
        ws = self._workbook()["Monthly Summary"]

        self.assertEqual([cell.value for cell in ws[4]][:3], ["March", 2000, 0])
        self.assertEqual([cell.value for cell in ws[5]][:3], ["April", 1000, 0])
        self.assertEqual([cell.value for cell in ws[6]][:3], ["Total", 3000, 0])


if __name__ == "__main__":
    unittest.main()
