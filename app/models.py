from __future__ import annotations

import enum
from datetime import date as calendar_date, datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def _new_record_id() -> str:
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Persist the human-readable value ("Minor Issue"), not the member name.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class BranchStatus(str, enum.Enum):
    ACTIVE = "Active"
    MINOR_ISSUE = "Minor Issue"
    CRITICAL = "Critical"
    RENOVATION = "Renovation"


class StaffRole(str, enum.Enum):
    CLEANER = "Cleaner"
    ASSISTANT = "Assistant"
    SUPERVISOR = "Supervisor"
    MANAGER = "Manager"


class StaffStatus(str, enum.Enum):
    ACTIVE = "Active"
    ON_LEAVE = "On Leave"
    RESIGNED = "Resigned"


class ComplaintType(str, enum.Enum):
    SERVICE_QUALITY = "Service Quality"
    STAFF_BEHAVIOR = "Staff Behavior"
    EQUIPMENT = "Equipment"
    SCHEDULE = "Schedule"
    SAFETY = "Safety"
    OTHER = "Other"


class ComplaintPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ComplaintStatus(str, enum.Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class NotificationType(str, enum.Enum):
    COMPLAINT = "complaint"
    BRANCH_STATUS = "branch_status"
    PAYMENT = "payment"
    STAFF = "staff"
    SYSTEM = "system"


class NotificationPriority(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PayMonth(str, enum.Enum):
    JANUARY = "January"
    FEBRUARY = "February"
    MARCH = "March"
    APRIL = "April"
    MAY = "May"
    JUNE = "June"
    JULY = "July"
    AUGUST = "August"
    SEPTEMBER = "September"
    OCTOBER = "October"
    NOVEMBER = "November"
    DECEMBER = "December"


class AuditActorType(str, enum.Enum):
    OPERATOR = "OPERATOR"
    SYSTEM = "SYSTEM"


class Branch(Base):
    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_record_id)
    branch_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    manager: Mapped[str | None] = mapped_column(String(255), nullable=True)
    manager_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    branch_contact: Mapped[str | None] = mapped_column(String(64), nullable=True)
    backup_contact: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[BranchStatus] = mapped_column(
        _enum_column(BranchStatus, "branch_status"),
        nullable=False,
        default=BranchStatus.ACTIVE,
    )
    map_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class Cleaner(Base):
    __tablename__ = "cleaners"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_record_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[StaffRole] = mapped_column(
        _enum_column(StaffRole, "staff_role"),
        nullable=False,
        default=StaffRole.CLEANER,
    )
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assigned_branch: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[StaffStatus] = mapped_column(
        _enum_column(StaffStatus, "staff_status"),
        nullable=False,
        default=StaffStatus.ACTIVE,
    )
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class Complaint(Base):
    __tablename__ = "complaints"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_record_id)
    date: Mapped[calendar_date | None] = mapped_column(Date, nullable=True)
    branch: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    complaint_type: Mapped[ComplaintType] = mapped_column(
        _enum_column(ComplaintType, "complaint_type"),
        nullable=False,
        default=ComplaintType.SERVICE_QUALITY,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[ComplaintPriority] = mapped_column(
        _enum_column(ComplaintPriority, "complaint_priority"),
        nullable=False,
        default=ComplaintPriority.MEDIUM,
    )
    status: Mapped[ComplaintStatus] = mapped_column(
        _enum_column(ComplaintStatus, "complaint_status"),
        nullable=False,
        default=ComplaintStatus.OPEN,
    )
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_record_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        _enum_column(NotificationType, "notification_type"),
        nullable=False,
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        _enum_column(NotificationPriority, "notification_priority"),
        nullable=False,
        default=NotificationPriority.MEDIUM,
    )
    related_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    related_entity: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class SalaryLog(Base):
    __tablename__ = "salary_logs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_record_id)
    payment_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    date: Mapped[calendar_date | None] = mapped_column(Date, nullable=True)
    month: Mapped[PayMonth | None] = mapped_column(_enum_column(PayMonth, "pay_month"), nullable=True)
    staff_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    gross_total: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    deductions: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    net_pay: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    # Ordered list of {"branch", "days", "rate", "total"}; legacy rows may hold a JSON string.
    work_log: Mapped[Any] = mapped_column(JSONDocument, nullable=False, default=list)
    transaction_slip_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="Paid")
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ts_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    actor_type: Mapped[AuditActorType] = mapped_column(
        Enum(AuditActorType, name="audit_actor_type", native_enum=False, length=16),
        nullable=False,
    )
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
