from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app import events
from app.audit import audit_request
from app.db import get_db
from app.errors import get_request_id
from app.models import Complaint, ComplaintPriority, ComplaintStatus
from app.schemas import ComplaintCreate, ComplaintRead, ComplaintUpdate
from app.services.entity_store import EntityStore

router = APIRouter(prefix="/api/complaints", tags=["complaints"])


@router.get("", response_model=list[ComplaintRead])
def list_complaints(
    sort: str | None = Query(default="-created_date"),
    limit: int | None = Query(default=None, ge=0),
    status: ComplaintStatus | None = Query(default=None),
    priority: ComplaintPriority | None = Query(default=None),
    branch: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Complaint]:
    predicates = {
        key: value
        for key, value in {"status": status, "priority": priority, "branch": branch}.items()
        if value is not None
    }
    store = EntityStore(db, Complaint)
    if predicates:
        return store.filter(predicates, sort=sort, limit=limit)
    return store.list(sort=sort, limit=limit)


@router.post("", response_model=ComplaintRead, status_code=201)
def create_complaint(payload: ComplaintCreate, request: Request, db: Session = Depends(get_db)) -> Complaint:
    complaint = EntityStore(db, Complaint).create(payload.model_dump())
    audit_request(
        db,
        request,
        action="COMPLAINT_CREATED",
        entity_type="complaint",
        entity_id=complaint.id,
        details={"branch": complaint.branch, "priority": complaint.priority.value},
    )
    events.emit(db, events.COMPLAINT_CREATED, "Complaint", complaint, request_id=get_request_id(request))
    return complaint


@router.get("/{complaint_id}", response_model=ComplaintRead)
def get_complaint(complaint_id: str, db: Session = Depends(get_db)) -> Complaint:
    return EntityStore(db, Complaint).get(complaint_id)


@router.patch("/{complaint_id}", response_model=ComplaintRead)
def update_complaint(
    complaint_id: str,
    payload: ComplaintUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> Complaint:
    changes = payload.model_dump(exclude_unset=True)
    complaint = EntityStore(db, Complaint).update(complaint_id, changes)
    audit_request(
        db,
        request,
        action="COMPLAINT_UPDATED",
        entity_type="complaint",
        entity_id=complaint.id,
        details={"fields": sorted(changes), "priority": complaint.priority.value},
    )
    events.emit(db, events.COMPLAINT_UPDATED, "Complaint", complaint, request_id=get_request_id(request))
    return complaint


@router.delete("/{complaint_id}", status_code=204)
def delete_complaint(complaint_id: str, request: Request, db: Session = Depends(get_db)) -> None:
    EntityStore(db, Complaint).delete(complaint_id)
    audit_request(db, request, action="COMPLAINT_DELETED", entity_type="complaint", entity_id=complaint_id)
