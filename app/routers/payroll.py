from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from app.audit import audit_request
from app.db import get_db
from app.models import PayMonth, SalaryLog
from app.schemas import (
    PaymentSaveRequest,
    PaymentSlipUpdate,
    PayrollCalculateRequest,
    PayrollCalculateResponse,
    SalaryLogRead,
    WorkLogEntryRead,
)
from app.services.entity_store import EntityStore
from app.services.payroll import compute_payroll, save_payment
from app.services.receipts import build_receipt_artifact
from app.services.uploads import validate_image_data_url

router = APIRouter(prefix="/api/payroll", tags=["payroll"])


def _payment_audit_details(payment: SalaryLog) -> dict[str, object]:
    return {
        "payment_id": payment.payment_id,
        "staff_name": payment.staff_name,
        "month": payment.month.value if payment.month is not None else None,
        "gross_total": payment.gross_total,
        "deductions": payment.deductions,
        "net_pay": payment.net_pay,
    }


@router.post("/calculate", response_model=PayrollCalculateResponse)
def calculate_payroll(payload: PayrollCalculateRequest) -> PayrollCalculateResponse:
    computation = compute_payroll(payload.work_log, payload.deductions)
    return PayrollCalculateResponse(
        rows=[WorkLogEntryRead.model_validate(row) for row in computation.rows],
        billable_rows=[WorkLogEntryRead.model_validate(row) for row in computation.billable_rows],
        excluded_row_count=computation.excluded_row_count,
        gross_total=computation.gross_total,
        deductions=computation.deductions,
        net_pay=computation.net_pay,
    )


@router.get("/payments", response_model=list[SalaryLogRead])
def list_payments(
    sort: str | None = Query(default="-created_date"),
    limit: int | None = Query(default=None, ge=0),
    staff_name: str | None = Query(default=None),
    month: PayMonth | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[SalaryLog]:
    predicates = {
        key: value
        for key, value in {"staff_name": staff_name, "month": month}.items()
        if value is not None
    }
    store = EntityStore(db, SalaryLog)
    if predicates:
        return store.filter(predicates, sort=sort, limit=limit)
    return store.list(sort=sort, limit=limit)


@router.post("/payments", response_model=SalaryLogRead, status_code=201)
def create_payment(payload: PaymentSaveRequest, request: Request, db: Session = Depends(get_db)) -> SalaryLog:
    payment = save_payment(db, payload)
    audit_request(
        db,
        request,
        action="PAYMENT_SAVED",
        entity_type="salary_log",
        entity_id=payment.id,
        details=_payment_audit_details(payment),
    )
    return payment


@router.get("/payments/{payment_id}", response_model=SalaryLogRead)
def get_payment(payment_id: str, db: Session = Depends(get_db)) -> SalaryLog:
    return EntityStore(db, SalaryLog).get(payment_id)


@router.put("/payments/{payment_id}", response_model=SalaryLogRead)
def edit_payment(
    payment_id: str,
    payload: PaymentSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SalaryLog:
    existing = EntityStore(db, SalaryLog).get(payment_id)
    payment = save_payment(db, payload, existing=existing)
    audit_request(
        db,
        request,
        action="PAYMENT_EDITED",
        entity_type="salary_log",
        entity_id=payment.id,
        details=_payment_audit_details(payment),
    )
    return payment


@router.patch("/payments/{payment_id}", response_model=SalaryLogRead)
def update_payment_slip(
    payment_id: str,
    payload: PaymentSlipUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> SalaryLog:
    slip = validate_image_data_url(payload.transaction_slip_url, field="transaction_slip_url")
    payment = EntityStore(db, SalaryLog).update(payment_id, {"transaction_slip_url": slip})
    audit_request(
        db,
        request,
        action="PAYMENT_SLIP_UPDATED",
        entity_type="salary_log",
        entity_id=payment.id,
        details={"payment_id": payment.payment_id, "has_slip": slip is not None},
    )
    return payment


@router.delete("/payments/{payment_id}", status_code=204)
def delete_payment(payment_id: str, request: Request, db: Session = Depends(get_db)) -> None:
    EntityStore(db, SalaryLog).delete(payment_id)
    audit_request(db, request, action="PAYMENT_DELETED", entity_type="salary_log", entity_id=payment_id)


def _receipt_response(db: Session, payment_id: str, fmt: str) -> Response:
    payment = EntityStore(db, SalaryLog).get(payment_id)
    artifact = build_receipt_artifact(payment, fmt=fmt)
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.filename}"',
        },
    )


@router.get("/payments/{payment_id}/receipt.pdf")
def download_receipt_pdf(payment_id: str, db: Session = Depends(get_db)) -> Response:
    return _receipt_response(db, payment_id, "pdf")


@router.get("/payments/{payment_id}/receipt.txt")
def download_receipt_text(payment_id: str, db: Session = Depends(get_db)) -> Response:
    return _receipt_response(db, payment_id, "txt")
