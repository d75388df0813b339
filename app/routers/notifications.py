from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.audit import audit_request
from app.db import get_db
from app.models import Notification
from app.schemas import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationRead,
    NotificationUpdate,
    UnreadCountResponse,
)
from app.services.entity_store import EntityStore
from app.services.notifications import count_unread, list_notifications, mark_all_read, mark_read

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationRead])
def get_notifications(
    view: str = Query(default="all"),
    sort: str | None = Query(default="-created_date"),
    limit: int | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
) -> list[Notification]:
    return list_notifications(db, view=view, sort=sort, limit=limit)


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(db: Session = Depends(get_db)) -> UnreadCountResponse:
    return UnreadCountResponse(unread=count_unread(db))


@router.post("/read-all", response_model=MarkAllReadResponse)
def read_all_notifications(request: Request, db: Session = Depends(get_db)) -> MarkAllReadResponse:
    result = mark_all_read(db)
    audit_request(
        db,
        request,
        action="NOTIFICATIONS_MARKED_READ",
        entity_type="notification",
        entity_id=None,
        details={"requested": result.requested, "updated": result.updated, "failed_ids": result.failed_ids},
        success=not result.failed_ids,
    )
    return MarkAllReadResponse(requested=result.requested, updated=result.updated, failed_ids=result.failed_ids)


@router.post("", response_model=NotificationRead, status_code=201)
def create_notification(
    payload: NotificationCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> Notification:
    notification = EntityStore(db, Notification).create(payload.model_dump())
    audit_request(
        db,
        request,
        action="NOTIFICATION_CREATED",
        entity_type="notification",
        entity_id=notification.id,
        details={"type": notification.type.value, "priority": notification.priority.value},
    )
    return notification


@router.get("/{notification_id}", response_model=NotificationRead)
def get_notification(notification_id: str, db: Session = Depends(get_db)) -> Notification:
    return EntityStore(db, Notification).get(notification_id)


@router.post("/{notification_id}/read", response_model=NotificationRead)
def read_notification(notification_id: str, db: Session = Depends(get_db)) -> Notification:
    return mark_read(db, notification_id)


@router.patch("/{notification_id}", response_model=NotificationRead)
def update_notification(
    notification_id: str,
    payload: NotificationUpdate,
    db: Session = Depends(get_db),
) -> Notification:
    return EntityStore(db, Notification).update(notification_id, payload.model_dump(exclude_unset=True))


@router.delete("/{notification_id}", status_code=204)
def delete_notification(notification_id: str, request: Request, db: Session = Depends(get_db)) -> None:
    EntityStore(db, Notification).delete(notification_id)
    audit_request(db, request, action="NOTIFICATION_DELETED", entity_type="notification", entity_id=notification_id)
