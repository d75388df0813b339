from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.audit import audit_request
from app.db import get_db
from app.models import Cleaner, SalaryLog, StaffRole, StaffStatus
from app.schemas import CleanerCreate, CleanerRead, CleanerUpdate, SalaryLogRead
from app.services.entity_store import EntityStore
from app.services.financials import payments_for_staff
from app.services.uploads import validate_image_data_url

router = APIRouter(prefix="/api/staff", tags=["staff"])


@router.get("", response_model=list[CleanerRead])
def list_staff(
    sort: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=0),
    status: StaffStatus | None = Query(default=None),
    role: StaffRole | None = Query(default=None),
    assigned_branch: str | None = Query(default=None),
    name: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Cleaner]:
    predicates = {
        key: value
        for key, value in {
            "status": status,
            "role": role,
            "assigned_branch": assigned_branch,
            "name": name,
        }.items()
        if value is not None
    }
    store = EntityStore(db, Cleaner)
    if predicates:
        return store.filter(predicates, sort=sort, limit=limit)
    return store.list(sort=sort, limit=limit)


@router.post("", response_model=CleanerRead, status_code=201)
def create_staff(payload: CleanerCreate, request: Request, db: Session = Depends(get_db)) -> Cleaner:
    fields = payload.model_dump()
    fields["photo_url"] = validate_image_data_url(payload.photo_url, field="photo_url")
    cleaner = EntityStore(db, Cleaner).create(fields)
    audit_request(
        db,
        request,
        action="STAFF_CREATED",
        entity_type="cleaner",
        entity_id=cleaner.id,
        details={"name": cleaner.name, "role": cleaner.role.value},
    )
    return cleaner


@router.get("/{staff_id}", response_model=CleanerRead)
def get_staff(staff_id: str, db: Session = Depends(get_db)) -> Cleaner:
    return EntityStore(db, Cleaner).get(staff_id)


@router.get("/{staff_id}/payments", response_model=list[SalaryLogRead])
def list_staff_payments(staff_id: str, db: Session = Depends(get_db)) -> list[SalaryLog]:
    cleaner = EntityStore(db, Cleaner).get(staff_id)
    payments = EntityStore(db, SalaryLog).filter({"staff_name": cleaner.name})
    return payments_for_staff(payments, cleaner.name)


@router.patch("/{staff_id}", response_model=CleanerRead)
def update_staff(
    staff_id: str,
    payload: CleanerUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> Cleaner:
    changes = payload.model_dump(exclude_unset=True)
    if "photo_url" in changes:
        changes["photo_url"] = validate_image_data_url(changes["photo_url"], field="photo_url")
    cleaner = EntityStore(db, Cleaner).update(staff_id, changes)
    audit_request(
        db,
        request,
        action="STAFF_UPDATED",
        entity_type="cleaner",
        entity_id=cleaner.id,
        details={"fields": sorted(changes)},
    )
    return cleaner


@router.delete("/{staff_id}", status_code=204)
def delete_staff(staff_id: str, request: Request, db: Session = Depends(get_db)) -> None:
    EntityStore(db, Cleaner).delete(staff_id)
    audit_request(db, request, action="STAFF_DELETED", entity_type="cleaner", entity_id=staff_id)
