from __future__ import annotations

import re
import unittest
from datetime import date, datetime, timezone
from unittest.mock import patch

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base
from app.errors import ApiError
from app.models import Cleaner, PayMonth, SalaryLog, StaffRole
from app.schemas import PaymentSaveRequest
from app.services.payroll import (
    UNKNOWN_ROLE,
    compute_payroll,
    current_month_name,
    generate_payment_id,
    save_payment,
    validate_payment,
)

PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


def _sqlite_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


class ComputePayrollTests(unittest.TestCase):
    def test_invalid_rows_are_excluded_from_gross(self) -> None:
        computation = compute_payroll(
            [
                {"branch": "A", "days": 10, "rate": 500},
                {"branch": "B", "days": 0, "rate": 700},
            ],
            1000,
        )

        self.assertEqual(computation.gross_total, 5000.0)
        self.assertEqual(computation.net_pay, 4000.0)
        self.assertEqual([row.branch for row in computation.billable_rows], ["A"])
        self.assertEqual(computation.excluded_row_count, 1)

    def test_deductions_larger_than_gross_give_negative_net_pay(self) -> None:
        computation = compute_payroll([{"branch": "A", "days": 1, "rate": 500}], "800")

        self.assertEqual(computation.net_pay, -300.0)

    def test_non_numeric_inputs_coerce_to_zero(self) -> None:
        computation = compute_payroll(
            [
                {"branch": "A", "days": "abc", "rate": 500},
                {"branch": "B", "days": 2, "rate": None},
            ],
            "",
        )

        self.assertEqual(computation.gross_total, 0.0)
        self.assertEqual(computation.deductions, 0.0)
        self.assertEqual(computation.rows[1].total, 0.0)


class ValidatePaymentTests(unittest.TestCase):
    def test_missing_staff_is_rejected_first(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            validate_payment("  ", compute_payroll([], 0))
        self.assertEqual(ctx.exception.code, "STAFF_REQUIRED")
        self.assertEqual(ctx.exception.status_code, 422)

    def test_no_billable_rows_is_rejected(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            validate_payment("Nimal", compute_payroll([{"branch": "", "days": 3, "rate": 500}], 0))
        self.assertEqual(ctx.exception.code, "WORK_LOG_EMPTY")

    def test_zero_gross_is_rejected(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            validate_payment("Nimal", compute_payroll([{"branch": "A", "days": 3, "rate": 0}], 0))
        self.assertEqual(ctx.exception.code, "GROSS_NOT_POSITIVE")


class PaymentIdentifierTests(unittest.TestCase):
    def test_payment_id_format(self) -> None:
        moment = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        payment_id = generate_payment_id(moment)

        self.assertRegex(payment_id, r"^PAY-\d+-[0-9A-F]{4}$")
        self.assertEqual(int(re.split("-", payment_id)[1]), int(moment.timestamp() * 1000))

    def test_current_month_name(self) -> None:
        self.assertEqual(current_month_name(date(2026, 10, 19)), "October")


class SavePaymentTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _sqlite_session()

    def tearDown(self) -> None:
        self.db.close()

    def _payment_count(self) -> int:
        return int(self.db.scalar(select(func.count()).select_from(SalaryLog)) or 0)

    def test_save_snapshots_role_and_persists_billable_rows(self) -> None:
        self.db.add(Cleaner(name="Nimal Perera", role=StaffRole.SUPERVISOR))
        self.db.commit()

        payment = save_payment(
            self.db,
            PaymentSaveRequest(
                staff_name="Nimal Perera",
                month=PayMonth.MARCH,
                date=date(2026, 3, 31),
                deductions=1000,
                work_log=[
                    {"branch": "A", "days": 10, "rate": 500},
                    {"branch": "B", "days": 0, "rate": 700},
                ],
                transaction_slip_url=PNG_DATA_URL,
            ),
        )

        self.assertEqual(payment.role, "Supervisor")
        self.assertEqual(payment.gross_total, 5000.0)
        self.assertEqual(payment.net_pay, 4000.0)
        self.assertEqual(payment.status, "Paid")
        self.assertEqual(payment.work_log, [{"branch": "A", "days": 10.0, "rate": 500.0, "total": 5000.0}])
        self.assertEqual(payment.transaction_slip_url, PNG_DATA_URL)
        self.assertTrue(payment.payment_id.startswith("PAY-"))

    def test_unknown_staff_gets_unknown_role_and_default_period(self) -> None:
        with patch("app.services.payroll.current_month_name", return_value="October"):
            payment = save_payment(
                self.db,
                PaymentSaveRequest(staff_name="Walk-in", work_log=[{"branch": "A", "days": 1, "rate": 500}]),
            )

        self.assertEqual(payment.role, UNKNOWN_ROLE)
        self.assertEqual(payment.month, PayMonth.OCTOBER)
        self.assertEqual(payment.date, date.today())

    def test_edit_keeps_payment_id_and_staff(self) -> None:
        first = save_payment(
            self.db,
            PaymentSaveRequest(staff_name="Kamal", work_log=[{"branch": "A", "days": 2, "rate": 500}]),
        )

        edited = save_payment(
            self.db,
            PaymentSaveRequest(
                staff_name="Someone Else",
                work_log=[{"branch": "A", "days": 4, "rate": 500}, {"branch": "C", "days": 1, "rate": 800}],
                deductions=300,
            ),
            existing=first,
        )

        self.assertEqual(edited.id, first.id)
        self.assertEqual(edited.payment_id, first.payment_id)
        self.assertEqual(edited.staff_name, "Kamal")
        self.assertEqual(edited.gross_total, 2800.0)
        self.assertEqual(edited.net_pay, 2500.0)
        self.assertEqual(self._payment_count(), 1)

    def test_edit_keeps_stored_period_and_slip_when_omitted(self) -> None:
        first = save_payment(
            self.db,
            PaymentSaveRequest(
                staff_name="Kamal",
                month=PayMonth.MARCH,
                date=date(2024, 3, 31),
                transaction_slip_url=PNG_DATA_URL,
                deductions=1000,
                work_log=[{"branch": "A", "days": 10, "rate": 500}, {"branch": "B", "days": 0, "rate": 700}],
            ),
        )

        edited = save_payment(
            self.db,
            PaymentSaveRequest(deductions=500, work_log=[{"branch": "A", "days": 8, "rate": 500}]),
            existing=first,
        )

        self.assertEqual(edited.payment_id, first.payment_id)
        self.assertEqual(edited.month, PayMonth.MARCH)
        self.assertEqual(edited.date, date(2024, 3, 31))
        self.assertEqual(edited.transaction_slip_url, PNG_DATA_URL)
        self.assertEqual(edited.gross_total, 4000.0)
        self.assertEqual(edited.net_pay, 3500.0)

    def test_edit_can_clear_slip_explicitly(self) -> None:
        first = save_payment(
            self.db,
            PaymentSaveRequest(
                staff_name="Kamal",
                transaction_slip_url=PNG_DATA_URL,
                work_log=[{"branch": "A", "days": 1, "rate": 500}],
            ),
        )

        edited = save_payment(
            self.db,
            PaymentSaveRequest(transaction_slip_url=None, work_log=[{"branch": "A", "days": 1, "rate": 500}]),
            existing=first,
        )

        self.assertIsNone(edited.transaction_slip_url)

    def test_validation_failure_happens_before_any_store_call(self) -> None:
        with patch("app.services.payroll.EntityStore") as store_cls:
            with self.assertRaises(ApiError) as ctx:
                save_payment(self.db, PaymentSaveRequest(staff_name="", work_log=[]))

        self.assertEqual(ctx.exception.code, "STAFF_REQUIRED")
        store_cls.assert_not_called()
        self.assertEqual(self._payment_count(), 0)

    def test_oversized_slip_is_rejected_before_persistence(self) -> None:
        with patch("app.services.uploads.get_settings") as settings_mock:
            settings_mock.return_value.max_upload_bytes = 4
            with self.assertRaises(ApiError) as ctx:
                save_payment(
                    self.db,
                    PaymentSaveRequest(
                        staff_name="Kamal",
                        work_log=[{"branch": "A", "days": 1, "rate": 500}],
                        transaction_slip_url=PNG_DATA_URL,
                    ),
                )

        self.assertEqual(ctx.exception.code, "UPLOAD_TOO_LARGE")
        self.assertEqual(ctx.exception.status_code, 413)
        self.assertEqual(self._payment_count(), 0)


if __name__ == "__main__":
    unittest.main()
