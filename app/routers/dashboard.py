from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas import (
    ComplaintRead,
    DashboardCountRead,
    DashboardSummaryResponse,
    SalaryLogRead,
)
from app.services.dashboard import build_dashboard_summary

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummaryResponse)
def get_dashboard_summary(db: Session = Depends(get_db)) -> DashboardSummaryResponse:
    summary = build_dashboard_summary(db)
    return DashboardSummaryResponse(
        branches=DashboardCountRead(active=summary.branches.active, total=summary.branches.total),
        staff=DashboardCountRead(active=summary.staff.active, total=summary.staff.total),
        complaints=DashboardCountRead(active=summary.complaints.active, total=summary.complaints.total),
        recent_payments=[SalaryLogRead.model_validate(item) for item in summary.recent_payments],
        recent_complaints=[ComplaintRead.model_validate(item) for item in summary.recent_complaints],
    )
