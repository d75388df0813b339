"""
Business rules that turn Branch and Complaint mutations into Notification
records. Evaluation is pure; issuing goes through the entity store and runs
as a post-commit hook so a failure never undoes the mutation that caused it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from app import events
from app.errors import ApiError
from app.models import (
    Branch,
    BranchStatus,
    Complaint,
    ComplaintPriority,
    Notification,
    NotificationPriority,
    NotificationType,
)
from app.services.entity_store import EntityStore

logger = logging.getLogger("app.notification_triggers")

ALERT_BRANCH_STATUSES = frozenset({BranchStatus.MINOR_ISSUE, BranchStatus.CRITICAL})
ALERT_COMPLAINT_PRIORITIES = frozenset({ComplaintPriority.HIGH, ComplaintPriority.CRITICAL})


@dataclass(frozen=True, slots=True)
class NotificationDraft:
    title: str
    message: str
    type: NotificationType
    priority: NotificationPriority
    related_id: str
    related_entity: str

    def to_fields(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": self.priority,
            "related_id": self.related_id,
            "related_entity": self.related_entity,
            "is_read": False,
        }


def _severity(is_critical: bool) -> NotificationPriority:
    return NotificationPriority.CRITICAL if is_critical else NotificationPriority.HIGH


def branch_status_draft(branch: Branch) -> NotificationDraft | None:
    status = BranchStatus(branch.status)
    if status not in ALERT_BRANCH_STATUSES:
        return None
    is_critical = status is BranchStatus.CRITICAL
    follow_up = "Immediate attention required!" if is_critical else "Please review the situation."
    return NotificationDraft(
        title=f"Branch Status: {status.value}",
        message=f"{branch.branch_name} status changed to {status.value}. {follow_up}",
        type=NotificationType.BRANCH_STATUS,
        priority=_severity(is_critical),
        related_id=branch.id,
        related_entity="branch",
    )


def complaint_draft(complaint: Complaint, *, created: bool) -> NotificationDraft | None:
    priority = ComplaintPriority(complaint.priority)
    if priority not in ALERT_COMPLAINT_PRIORITIES:
        return None
    if created:
        title = f"{priority.value} Priority Complaint"
        message = (
            f"New {priority.value.lower()} priority complaint logged at "
            f"{complaint.branch}: {complaint.description}"
        )
    else:
        title = f"{priority.value} Priority Complaint Updated"
        message = (
            f"Complaint at {complaint.branch} updated to {priority.value.lower()} "
            f"priority: {complaint.description}"
        )
    return NotificationDraft(
        title=title,
        message=message,
        type=NotificationType.COMPLAINT,
        priority=_severity(priority is ComplaintPriority.CRITICAL),
        related_id=complaint.id,
        related_entity="complaint",
    )


def issue_notification(db: Session, draft: NotificationDraft, *, request_id: str | None = None) -> Notification | None:
    try:
        notification = EntityStore(db, Notification).create(draft.to_fields())
    except ApiError:
        logger.exception(
            "notification_trigger_failed",
            extra={
                "related_entity": draft.related_entity,
                "related_id": draft.related_id,
                "request_id": request_id,
            },
        )
        return None
    logger.info(
        "notification_issued",
        extra={
            "notification_id": notification.id,
            "notification_priority": notification.priority.value,
            "related_entity": draft.related_entity,
            "related_id": draft.related_id,
            "request_id": request_id,
        },
    )
    return notification


def on_branch_updated(db: Session, event: events.EntityEvent) -> None:
    draft = branch_status_draft(event.record)
    if draft is not None:
        issue_notification(db, draft, request_id=event.request_id)


def on_complaint_created(db: Session, event: events.EntityEvent) -> None:
    draft = complaint_draft(event.record, created=True)
    if draft is not None:
        issue_notification(db, draft, request_id=event.request_id)


def on_complaint_updated(db: Session, event: events.EntityEvent) -> None:
    draft = complaint_draft(event.record, created=False)
    if draft is not None:
        issue_notification(db, draft, request_id=event.request_id)


def register_notification_triggers(hooks: events.PostCommitHooks | None = None) -> None:
    target = hooks or events.hooks
    target.subscribe(events.BRANCH_UPDATED, on_branch_updated)
    target.subscribe(events.COMPLAINT_CREATED, on_complaint_created)
    target.subscribe(events.COMPLAINT_UPDATED, on_complaint_updated)
