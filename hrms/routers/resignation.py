from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.enums import ResignationStatus
from hrms.models.resignation import Resignation
from hrms.models.user import User
from hrms.schemas.resignation import (
    ResignationCreate,
    ResignationDecision,
    ResignationProcessUpdate,
    ResignationRead,
)
from hrms.services.activity import log_activity
from hrms.services.resignation import (
    apply_process_step,
    decide_resignation,
    derive_clearance_status,
    exit_progress,
    submit_resignation,
)

router = APIRouter(prefix="/api/resignation", tags=["resignation"])

PROCESSABLE_STATUSES = {ResignationStatus.APPROVED, ResignationStatus.IN_PROGRESS}


def _get_resignation_or_404(db: Session, resignation_id: int) -> Resignation:
    resignation = db.get(Resignation, resignation_id)
    if not resignation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resignation not found")
    return resignation


def _to_read(resignation: Resignation) -> ResignationRead:
    data = ResignationRead.model_validate(resignation)
    data.clearance_status = derive_clearance_status(resignation.clearances)
    data.exit_progress = exit_progress(resignation)
    return data


@router.get("", response_model=List[ResignationRead])
def list_resignations(
    status_filter: Optional[ResignationStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[ResignationRead]:
    query = db.query(Resignation)
    if not rbac.is_privileged(current_user):
        query = query.filter(Resignation.user_id == current_user.id)
    if status_filter:
        query = query.filter(Resignation.status == status_filter)
    resignations = query.order_by(Resignation.created_at.desc(), Resignation.id.desc()).all()
    return [_to_read(resignation) for resignation in resignations]


@router.post("", response_model=ResignationRead, status_code=status.HTTP_201_CREATED)
def create_resignation(
    resignation_in: ResignationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ResignationRead:
    resignation = submit_resignation(db, user=current_user, payload=resignation_in)
    db.commit()
    db.refresh(resignation)
    return _to_read(resignation)


@router.get("/{resignation_id}", response_model=ResignationRead)
def get_resignation(
    resignation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ResignationRead:
    resignation = _get_resignation_or_404(db, resignation_id)
    if resignation.user_id != current_user.id and not rbac.is_privileged(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorised")
    return _to_read(resignation)


@router.post("/{resignation_id}/decision", response_model=ResignationRead)
def decide(
    resignation_id: int,
    decision: ResignationDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> ResignationRead:
    resignation = _get_resignation_or_404(db, resignation_id)
    decide_resignation(
        db,
        resignation=resignation,
        approver=current_user,
        decision=ResignationStatus(decision.status),
        rejection_reason=decision.rejection_reason,
    )
    db.commit()
    db.refresh(resignation)
    return _to_read(resignation)


@router.patch("/{resignation_id}/process", response_model=ResignationRead)
def process_step(
    resignation_id: int,
    update: ResignationProcessUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> ResignationRead:
    resignation = _get_resignation_or_404(db, resignation_id)
    if resignation.status not in PROCESSABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only approved resignations can be processed",
        )
    apply_process_step(db, resignation=resignation, actor=current_user, update=update)
    db.commit()
    db.refresh(resignation)
    return _to_read(resignation)


@router.delete("/{resignation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_resignation(
    resignation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    resignation = _get_resignation_or_404(db, resignation_id)
    if not rbac.is_privileged(current_user):
        if resignation.user_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorised")
        if resignation.status != ResignationStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only pending resignations can be withdrawn",
            )
    db.delete(resignation)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="RESIGNATION_DELETED",
        message=f"Resignation deleted: {resignation_id}",
        payload={"resignation_id": resignation_id, "user_id": resignation.user_id},
    )
    db.commit()
    return None
