from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.errors import validation_error
from app.models import Cleaner, PayMonth, SalaryLog
from app.schemas import PaymentSaveRequest
from app.services.entity_store import EntityStore
from app.services.uploads import validate_image_data_url
from app.services.work_log import (
    WorkLogEntry,
    coerce_number,
    entry_from_row,
    is_billable,
    serialize_work_log,
)

logger = logging.getLogger("app.payroll")

PAYMENT_STATUS_PAID = "Paid"
UNKNOWN_ROLE = "Unknown"
MONTH_NAMES: tuple[str, ...] = tuple(month.value for month in PayMonth)


@dataclass(frozen=True, slots=True)
class PayrollComputation:
    rows: list[WorkLogEntry]
    billable_rows: list[WorkLogEntry]
    gross_total: float
    deductions: float
    net_pay: float

    @property
    def excluded_row_count(self) -> int:
        return len(self.rows) - len(self.billable_rows)


def compute_payroll(work_log: Iterable[Any], deductions: Any) -> PayrollComputation:
    """Price every row, then total only rows with a branch and positive days.

    Deductions are subtracted as-is, so net pay goes negative when they
    exceed the gross.
    """
    rows = [entry_from_row(row) for row in work_log]
    billable_rows = [row for row in rows if is_billable(row)]
    gross_total = sum((row.total for row in billable_rows), 0.0)
    deduction_amount = coerce_number(deductions)
    return PayrollComputation(
        rows=rows,
        billable_rows=billable_rows,
        gross_total=gross_total,
        deductions=deduction_amount,
        net_pay=gross_total - deduction_amount,
    )


def validate_payment(staff_name: str | None, computation: PayrollComputation) -> None:
    if not (staff_name or "").strip():
        raise validation_error("STAFF_REQUIRED", "Please select a staff member.")
    if not computation.billable_rows:
        raise validation_error("WORK_LOG_EMPTY", "Please add at least one valid work log entry.")
    if computation.gross_total <= 0:
        raise validation_error("GROSS_NOT_POSITIVE", "Gross total must be greater than zero.")


def generate_payment_id(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    millis = int(moment.timestamp() * 1000)
    return f"PAY-{millis}-{secrets.token_hex(2).upper()}"


def current_month_name(today: date | None = None) -> str:
    value = today or date.today()
    return MONTH_NAMES[value.month - 1]


def resolve_staff_role(db: Session, staff_name: str) -> str:
    matches = EntityStore(db, Cleaner).filter({"name": staff_name}, limit=1)
    if not matches:
        return UNKNOWN_ROLE
    return matches[0].role.value


def build_payment_fields(
    *,
    payment_id: str,
    staff_name: str,
    role: str,
    month: str,
    pay_date: date,
    computation: PayrollComputation,
    transaction_slip_url: str | None,
) -> dict[str, Any]:
    return {
        "payment_id": payment_id,
        "date": pay_date,
        "month": month,
        "staff_name": staff_name,
        "role": role,
        "gross_total": computation.gross_total,
        "deductions": computation.deductions,
        "net_pay": computation.net_pay,
        "work_log": serialize_work_log(computation.billable_rows),
        "transaction_slip_url": transaction_slip_url,
        "status": PAYMENT_STATUS_PAID,
    }


def save_payment(
    db: Session,
    payload: PaymentSaveRequest,
    *,
    existing: SalaryLog | None = None,
) -> SalaryLog:
    """Validate, price and persist one payment.

    With ``existing`` the record is rewritten in place: the payee and the
    payment identifier are kept and totals are recomputed from the new work
    log. Month, date and slip left out of the payload keep their stored
    values; sending the slip as null clears it.
    """
    staff_name = existing.staff_name if existing is not None else (payload.staff_name or "").strip()
    computation = compute_payroll(payload.work_log, payload.deductions)
    validate_payment(staff_name, computation)

    sent = payload.model_fields_set
    if existing is not None and "transaction_slip_url" not in sent:
        transaction_slip_url = existing.transaction_slip_url
    else:
        transaction_slip_url = validate_image_data_url(payload.transaction_slip_url, field="transaction_slip_url")

    if payload.month is not None:
        month = payload.month.value
    elif existing is not None and existing.month is not None:
        month = getattr(existing.month, "value", existing.month)
    else:
        month = current_month_name()

    if payload.date is not None:
        pay_date = payload.date
    elif existing is not None and existing.date is not None:
        pay_date = existing.date
    else:
        pay_date = date.today()

    fields = build_payment_fields(
        payment_id=existing.payment_id if existing is not None else generate_payment_id(),
        staff_name=staff_name,
        role=resolve_staff_role(db, staff_name),
        month=month,
        pay_date=pay_date,
        computation=computation,
        transaction_slip_url=transaction_slip_url,
    )

    store = EntityStore(db, SalaryLog)
    if existing is None:
        record = store.create(fields)
    else:
        record = store.update(existing.id, fields)

    logger.info(
        "payment_saved",
        extra={
            "payment_id": record.payment_id,
            "record_id": record.id,
            "staff_name": record.staff_name,
            "gross_total": record.gross_total,
            "net_pay": record.net_pay,
            "row_count": len(computation.billable_rows),
            "excluded_row_count": computation.excluded_row_count,
            "edit": existing is not None,
        },
    )
    return record
