from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import ApiError, StoreError, validation_error
from app.models import Notification, NotificationPriority
from app.services.entity_store import EntityStore

logger = logging.getLogger("app.notifications")

VIEW_ALL = "all"
VIEW_UNREAD = "unread"
NOTIFICATION_VIEWS: tuple[str, ...] = (VIEW_ALL, VIEW_UNREAD) + tuple(p.value for p in NotificationPriority)


@dataclass(slots=True)
class MarkAllReadResult:
    requested: int = 0
    updated: int = 0
    failed_ids: list[str] = field(default_factory=list)


def list_notifications(
    db: Session,
    *,
    view: str = VIEW_ALL,
    sort: str | None = "-created_date",
    limit: int | None = None,
) -> list[Notification]:
    store = EntityStore(db, Notification)
    normalized = (view or VIEW_ALL).strip().lower()
    if normalized == VIEW_ALL:
        return store.list(sort=sort, limit=limit)
    if normalized == VIEW_UNREAD:
        return store.filter({"is_read": False}, sort=sort, limit=limit)
    if normalized in NOTIFICATION_VIEWS:
        return store.filter({"priority": normalized}, sort=sort, limit=limit)
    raise validation_error("INVALID_NOTIFICATION_VIEW", f"Unknown notification view: {view}")


def count_unread(db: Session) -> int:
    try:
        return int(
            db.scalar(select(func.count()).select_from(Notification).where(Notification.is_read.is_(False))) or 0
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("notification_unread_count_failed")
        raise StoreError("Could not count unread notifications.") from exc


def mark_read(db: Session, notification_id: str) -> Notification:
    return EntityStore(db, Notification).update(notification_id, {"is_read": True})


def mark_all_read(db: Session) -> MarkAllReadResult:
    """Mark every notification unread at call time as read.

    Updates run one at a time within the request. Each id is updated on its
    own; ids that fail are reported and the updates that succeeded are kept.
    Notifications created after the snapshot are left alone.
    """
    store = EntityStore(db, Notification)
    unread_ids = [notification.id for notification in store.filter({"is_read": False})]
    result = MarkAllReadResult(requested=len(unread_ids))
    for notification_id in unread_ids:
        try:
            store.update(notification_id, {"is_read": True})
        except ApiError:
            logger.warning("notification_mark_read_failed", extra={"notification_id": notification_id})
            result.failed_ids.append(notification_id)
            continue
        result.updated += 1

    logger.info(
        "notifications_marked_read",
        extra={
            "requested": result.requested,
            "updated": result.updated,
            "failed": len(result.failed_ids),
        },
    )
    return result
