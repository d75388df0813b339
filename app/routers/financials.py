from datetime import date

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.audit import audit_request
from app.db import get_db
from app.models import Cleaner, SalaryLog
from app.schemas import (
    BranchExpenseRead,
    BranchMonthlyExpenseRead,
    BranchProfitRead,
    BranchRevenuesRead,
    BranchRevenueUpsert,
    FinancialOverviewResponse,
    FinancialTotalsRead,
    MonthlyTotalRead,
    RoleTotalRead,
    SalaryLogRead,
    StaffPaymentHistoryRead,
)
from app.services.entity_store import EntityStore
from app.services.exports import build_financial_xlsx_bytes
from app.services.financials import FinancialOverview, build_financial_overview
from app.services.revenue_store import get_revenue_store

router = APIRouter(prefix="/api/financials", tags=["financials"])
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _load_overview(db: Session) -> tuple[list[SalaryLog], FinancialOverview]:
    payments = EntityStore(db, SalaryLog).list(sort="-created_date")
    roster = EntityStore(db, Cleaner).list()
    overview = build_financial_overview(payments, roster, get_revenue_store().all())
    return payments, overview


def _to_overview_response(overview: FinancialOverview) -> FinancialOverviewResponse:
    totals = overview.totals
    return FinancialOverviewResponse(
        totals=FinancialTotalsRead(
            total_payroll=totals.total_payroll,
            total_gross=totals.total_gross,
            total_deductions=totals.total_deductions,
            average_payment=totals.average_payment,
            payment_count=totals.payment_count,
            personnel_cost=totals.personnel_cost,
        ),
        monthly=[
            MonthlyTotalRead(month=item.month, payroll=item.payroll, deductions=item.deductions)
            for item in overview.monthly
        ],
        branch_expenses=[BranchExpenseRead(name=item.name, value=item.value) for item in overview.branch_expenses],
        branch_monthly_expenses=[
            BranchMonthlyExpenseRead(branch=item.branch, month=item.month, amount=item.amount)
            for item in overview.branch_monthly_expenses
        ],
        branch_profits=[
            BranchProfitRead(
                name=item.name,
                revenue=item.revenue,
                expense=item.expense,
                profit=item.profit,
                profit_margin=item.profit_margin,
            )
            for item in overview.branch_profits
        ],
        staff_history=[
            StaffPaymentHistoryRead(
                name=item.name,
                role=item.role,
                total_paid=item.total_paid,
                payment_count=item.payment_count,
                latest_payment=(
                    SalaryLogRead.model_validate(item.latest_payment) if item.latest_payment is not None else None
                ),
                payments=[SalaryLogRead.model_validate(payment) for payment in item.payments],
            )
            for item in overview.staff_history
        ],
        role_distribution=[RoleTotalRead(name=item.name, value=item.value) for item in overview.role_distribution],
        skipped_work_log_payment_ids=overview.skipped_work_log_payment_ids,
    )


@router.get("/overview", response_model=FinancialOverviewResponse)
def get_financial_overview(db: Session = Depends(get_db)) -> FinancialOverviewResponse:
    _, overview = _load_overview(db)
    return _to_overview_response(overview)


@router.get("/revenues", response_model=BranchRevenuesRead)
def get_branch_revenues() -> BranchRevenuesRead:
    return BranchRevenuesRead(revenues=get_revenue_store().all())


@router.put("/revenues/{branch_name}", response_model=BranchRevenuesRead)
def put_branch_revenue(
    branch_name: str,
    payload: BranchRevenueUpsert,
    request: Request,
    db: Session = Depends(get_db),
) -> BranchRevenuesRead:
    revenues = get_revenue_store().set(branch_name, payload.revenue)
    audit_request(
        db,
        request,
        action="BRANCH_REVENUE_SET",
        entity_type="branch_revenue",
        entity_id=branch_name.strip()[:100],
        details={"revenue": revenues.get(branch_name.strip())},
    )
    return BranchRevenuesRead(revenues=revenues)


@router.get("/export.xlsx")
def export_financials(request: Request, db: Session = Depends(get_db)) -> Response:
    payments, overview = _load_overview(db)
    payload = build_financial_xlsx_bytes(payments, overview)
    audit_request(
        db,
        request,
        action="FINANCIAL_EXPORT",
        entity_type="salary_log",
        entity_id=None,
        details={"payment_count": overview.totals.payment_count},
    )
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="financials-{date.today().isoformat()}.xlsx"',
        },
    )
