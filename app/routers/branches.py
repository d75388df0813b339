from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app import events
from app.audit import audit_request
from app.db import get_db
from app.errors import get_request_id
from app.models import Branch, BranchStatus
from app.schemas import BranchCreate, BranchRead, BranchUpdate
from app.services.entity_store import EntityStore

router = APIRouter(prefix="/api/branches", tags=["branches"])


@router.get("", response_model=list[BranchRead])
def list_branches(
    sort: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=0),
    status: BranchStatus | None = Query(default=None),
    branch_name: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Branch]:
    predicates = {
        key: value
        for key, value in {"status": status, "branch_name": branch_name}.items()
        if value is not None
    }
    store = EntityStore(db, Branch)
    if predicates:
        return store.filter(predicates, sort=sort, limit=limit)
    return store.list(sort=sort, limit=limit)


@router.post("", response_model=BranchRead, status_code=201)
def create_branch(payload: BranchCreate, request: Request, db: Session = Depends(get_db)) -> Branch:
    branch = EntityStore(db, Branch).create(payload.model_dump())
    audit_request(
        db,
        request,
        action="BRANCH_CREATED",
        entity_type="branch",
        entity_id=branch.id,
        details={"branch_name": branch.branch_name, "status": branch.status.value},
    )
    return branch


@router.get("/{branch_id}", response_model=BranchRead)
def get_branch(branch_id: str, db: Session = Depends(get_db)) -> Branch:
    return EntityStore(db, Branch).get(branch_id)


@router.patch("/{branch_id}", response_model=BranchRead)
def update_branch(
    branch_id: str,
    payload: BranchUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> Branch:
    changes = payload.model_dump(exclude_unset=True)
    branch = EntityStore(db, Branch).update(branch_id, changes)
    audit_request(
        db,
        request,
        action="BRANCH_UPDATED",
        entity_type="branch",
        entity_id=branch.id,
        details={"fields": sorted(changes), "status": branch.status.value},
    )
    events.emit(db, events.BRANCH_UPDATED, "Branch", branch, request_id=get_request_id(request))
    return branch


@router.delete("/{branch_id}", status_code=204)
def delete_branch(branch_id: str, request: Request, db: Session = Depends(get_db)) -> None:
    EntityStore(db, Branch).delete(branch_id)
    audit_request(db, request, action="BRANCH_DELETED", entity_type="branch", entity_id=branch_id)
