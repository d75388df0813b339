from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.models import (
    Branch,
    BranchStatus,
    Cleaner,
    Complaint,
    ComplaintStatus,
    SalaryLog,
    StaffStatus,
)
from app.services.entity_store import EntityStore

RECENT_PAYMENT_LIMIT = 5
RECENT_COMPLAINT_LIMIT = 4
OPEN_COMPLAINT_STATUSES = frozenset({ComplaintStatus.OPEN, ComplaintStatus.IN_PROGRESS})


@dataclass(frozen=True, slots=True)
class DashboardCount:
    active: int
    total: int


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    branches: DashboardCount
    staff: DashboardCount
    complaints: DashboardCount
    recent_payments: list[SalaryLog]
    recent_complaints: list[Complaint]


def build_dashboard_summary(db: Session) -> DashboardSummary:
    branches = EntityStore(db, Branch).list()
    cleaners = EntityStore(db, Cleaner).list()
    complaints = EntityStore(db, Complaint).list(sort="-created_date")
    recent_payments = EntityStore(db, SalaryLog).list(sort="-created_date", limit=RECENT_PAYMENT_LIMIT)

    return DashboardSummary(
        branches=DashboardCount(
            active=sum(1 for branch in branches if branch.status == BranchStatus.ACTIVE),
            total=len(branches),
        ),
        staff=DashboardCount(
            active=sum(1 for cleaner in cleaners if cleaner.status == StaffStatus.ACTIVE),
            total=len(cleaners),
        ),
        complaints=DashboardCount(
            active=sum(1 for complaint in complaints if complaint.status in OPEN_COMPLAINT_STATUSES),
            total=len(complaints),
        ),
        recent_payments=recent_payments,
        recent_complaints=complaints[:RECENT_COMPLAINT_LIMIT],
    )
