from datetime import date as calendar_date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models import (
    BranchStatus,
    ComplaintPriority,
    ComplaintStatus,
    ComplaintType,
    NotificationPriority,
    NotificationType,
    PayMonth,
    StaffRole,
    StaffStatus,
)
from app.services.work_log import WorkLogParseError, parse_work_log
from app.settings import get_settings

NumericInput = float | int | str | None


class BranchCreate(BaseModel):
    branch_name: str = Field(min_length=1, max_length=255)
    manager: str | None = None
    manager_phone: str | None = None
    branch_contact: str | None = None
    backup_contact: str | None = None
    status: BranchStatus = BranchStatus.ACTIVE
    map_link: str | None = None


class BranchUpdate(BaseModel):
    branch_name: str | None = Field(default=None, min_length=1, max_length=255)
    manager: str | None = None
    manager_phone: str | None = None
    branch_contact: str | None = None
    backup_contact: str | None = None
    status: BranchStatus | None = None
    map_link: str | None = None


class BranchRead(BaseModel):
    id: str
    branch_name: str
    manager: str | None = None
    manager_phone: str | None = None
    branch_contact: str | None = None
    backup_contact: str | None = None
    status: BranchStatus
    map_link: str | None = None
    created_date: datetime

    model_config = ConfigDict(from_attributes=True)


class CleanerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    role: StaffRole = StaffRole.CLEANER
    phone: str | None = None
    assigned_branch: str | None = None
    status: StaffStatus = StaffStatus.ACTIVE
    photo_url: str | None = None


class CleanerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    role: StaffRole | None = None
    phone: str | None = None
    assigned_branch: str | None = None
    status: StaffStatus | None = None
    photo_url: str | None = None


class CleanerRead(BaseModel):
    id: str
    name: str
    role: StaffRole
    phone: str | None = None
    assigned_branch: str | None = None
    status: StaffStatus
    photo_url: str | None = None
    created_date: datetime

    model_config = ConfigDict(from_attributes=True)


class ComplaintCreate(BaseModel):
    date: calendar_date | None = Field(default_factory=calendar_date.today)
    branch: str = Field(min_length=1, max_length=255)
    complaint_type: ComplaintType = ComplaintType.SERVICE_QUALITY
    description: str = Field(min_length=1)
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    status: ComplaintStatus = ComplaintStatus.OPEN


class ComplaintUpdate(BaseModel):
    date: calendar_date | None = None
    branch: str | None = Field(default=None, min_length=1, max_length=255)
    complaint_type: ComplaintType | None = None
    description: str | None = Field(default=None, min_length=1)
    priority: ComplaintPriority | None = None
    status: ComplaintStatus | None = None


class ComplaintRead(BaseModel):
    id: str
    date: calendar_date | None = None
    branch: str
    complaint_type: ComplaintType
    description: str
    priority: ComplaintPriority
    status: ComplaintStatus
    created_date: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    type: NotificationType
    priority: NotificationPriority = NotificationPriority.MEDIUM
    related_id: str | None = None
    related_entity: str | None = None
    is_read: bool = False


class NotificationUpdate(BaseModel):
    is_read: bool | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    message: str | None = Field(default=None, min_length=1)
    priority: NotificationPriority | None = None


class NotificationRead(BaseModel):
    id: str
    title: str
    message: str
    type: NotificationType
    priority: NotificationPriority
    related_id: str | None = None
    related_entity: str | None = None
    is_read: bool
    created_date: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkAllReadResponse(BaseModel):
    requested: int
    updated: int
    failed_ids: list[str] = Field(default_factory=list)


class UnreadCountResponse(BaseModel):
    unread: int


class WorkLogRowInput(BaseModel):
    branch: str | None = None
    days: NumericInput = None
    # Omitted means a fresh row; an explicit blank still prices at zero.
    rate: NumericInput = Field(default_factory=lambda: get_settings().default_daily_rate)


class WorkLogEntryRead(BaseModel):
    branch: str
    days: float
    rate: float
    total: float

    model_config = ConfigDict(from_attributes=True)


class PayrollCalculateRequest(BaseModel):
    work_log: list[WorkLogRowInput] = Field(default_factory=list)
    deductions: NumericInput = None


class PayrollCalculateResponse(BaseModel):
    rows: list[WorkLogEntryRead]
    billable_rows: list[WorkLogEntryRead]
    excluded_row_count: int
    gross_total: float
    deductions: float
    net_pay: float


class PaymentSaveRequest(BaseModel):
    staff_name: str | None = None
    month: PayMonth | None = None
    date: calendar_date | None = None
    deductions: NumericInput = None
    work_log: list[WorkLogRowInput] = Field(default_factory=list)
    transaction_slip_url: str | None = None


class PaymentSlipUpdate(BaseModel):
    transaction_slip_url: str | None = None


class SalaryLogRead(BaseModel):
    id: str
    payment_id: str
    date: calendar_date | None = None
    month: PayMonth | None = None
    staff_name: str
    role: str | None = None
    gross_total: float
    deductions: float
    net_pay: float
    work_log: list[WorkLogEntryRead] = Field(default_factory=list)
    transaction_slip_url: str | None = None
    status: str
    created_date: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("work_log", mode="before")
    @classmethod
    def _decode_work_log(cls, value: Any) -> Any:
        try:
            return [entry.to_dict() for entry in parse_work_log(value)]
        except WorkLogParseError:
            return []


class FinancialTotalsRead(BaseModel):
    total_payroll: float
    total_gross: float
    total_deductions: float
    average_payment: float
    payment_count: int
    personnel_cost: float


class MonthlyTotalRead(BaseModel):
    month: str
    payroll: float
    deductions: float


class BranchExpenseRead(BaseModel):
    name: str
    value: float


class BranchMonthlyExpenseRead(BaseModel):
    branch: str
    month: str
    amount: float


class BranchProfitRead(BaseModel):
    name: str
    revenue: float
    expense: float
    profit: float
    profit_margin: float


class StaffPaymentHistoryRead(BaseModel):
    name: str
    role: str | None = None
    total_paid: float
    payment_count: int
    latest_payment: SalaryLogRead | None = None
    payments: list[SalaryLogRead] = Field(default_factory=list)


class RoleTotalRead(BaseModel):
    name: str
    value: float


class FinancialOverviewResponse(BaseModel):
    totals: FinancialTotalsRead
    monthly: list[MonthlyTotalRead]
    branch_expenses: list[BranchExpenseRead]
    branch_monthly_expenses: list[BranchMonthlyExpenseRead]
    branch_profits: list[BranchProfitRead]
    staff_history: list[StaffPaymentHistoryRead]
    role_distribution: list[RoleTotalRead]
    skipped_work_log_payment_ids: list[str] = Field(default_factory=list)


class BranchRevenueUpsert(BaseModel):
    revenue: NumericInput = None


class BranchRevenuesRead(BaseModel):
    revenues: dict[str, float]


class DashboardCountRead(BaseModel):
    active: int
    total: int


class DashboardSummaryResponse(BaseModel):
    branches: DashboardCountRead
    staff: DashboardCountRead
    complaints: DashboardCountRead
    recent_payments: list[SalaryLogRead]
    recent_complaints: list[ComplaintRead]


class HealthResponse(BaseModel):
    status: Literal["ok"]
    schema_guard: dict[str, Any]
