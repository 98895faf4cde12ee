from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.deps import get_current_user, require_privileged
from hrms.db.session import get_db
from hrms.models.enums import FinanceStatus
from hrms.models.finance import Finance
from hrms.models.user import User
from hrms.schemas.finance import FinanceCreate, FinanceRead, FinanceUpdate
from hrms.services.activity import log_activity

router = APIRouter(prefix="/api/finance", tags=["finance"])


def _get_record_or_404(db: Session, record_id: int) -> Finance:
    record = db.get(Finance, record_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Finance record not found")
    return record


def _sync_paid_at(record: Finance) -> None:
    if record.status == FinanceStatus.PAID and record.paid_at is None:
        record.paid_at = datetime.now(timezone.utc)
    elif record.status != FinanceStatus.PAID:
        record.paid_at = None


@router.get("", response_model=List[FinanceRead])
def list_finance(
    user_id: Optional[int] = Query(None),
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[FinanceRead]:
    query = db.query(Finance)
    if rbac.is_privileged(current_user):
        if user_id is not None:
            query = query.filter(Finance.user_id == user_id)
    else:
        query = query.filter(Finance.user_id == current_user.id)
    if year is not None:
        query = query.filter(Finance.year == year)
    if month is not None:
        query = query.filter(Finance.month == month)
    records = query.order_by(Finance.year.desc(), Finance.month.desc(), Finance.id.desc()).all()
    return [FinanceRead.model_validate(record) for record in records]


@router.post("", response_model=FinanceRead, status_code=status.HTTP_201_CREATED)
def create_finance(
    record_in: FinanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> FinanceRead:
    if not db.get(User, record_in.user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    duplicate = (
        db.query(Finance)
        .filter(
            Finance.user_id == record_in.user_id,
            Finance.month == record_in.month,
            Finance.year == record_in.year,
        )
        .first()
    )
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Finance record already exists for this period",
        )

    record = Finance(**record_in.model_dump())
    record.recompute_total()
    _sync_paid_at(record)
    db.add(record)
    db.flush()
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="FINANCE_CREATED",
        message=f"Finance record created for {record.month}/{record.year}",
        payload={"finance_id": record.id, "user_id": record.user_id},
    )
    db.commit()
    db.refresh(record)
    return FinanceRead.model_validate(record)


@router.get("/{record_id}", response_model=FinanceRead)
def get_finance(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FinanceRead:
    record = _get_record_or_404(db, record_id)
    if record.user_id != current_user.id and not rbac.is_privileged(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorised")
    return FinanceRead.model_validate(record)


@router.patch("/{record_id}", response_model=FinanceRead)
def update_finance(
    record_id: int,
    record_update: FinanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> FinanceRead:
    record = _get_record_or_404(db, record_id)
    update_data = record_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(record, field, value)
    record.recompute_total()
    _sync_paid_at(record)
    db.add(record)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="FINANCE_UPDATED",
        message=f"Finance record updated: {record.id}",
        payload={"finance_id": record.id, "fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(record)
    return FinanceRead.model_validate(record)


@router.post("/{record_id}/mark-paid", response_model=FinanceRead)
def mark_paid(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> FinanceRead:
    record = _get_record_or_404(db, record_id)
    if record.status == FinanceStatus.PAID:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Finance record already paid")
    record.status = FinanceStatus.PAID
    _sync_paid_at(record)
    db.add(record)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="FINANCE_PAID",
        message=f"Salary marked paid for {record.month}/{record.year}",
        payload={"finance_id": record.id, "user_id": record.user_id},
    )
    db.commit()
    db.refresh(record)
    return FinanceRead.model_validate(record)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_finance(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> None:
    record = _get_record_or_404(db, record_id)
    db.delete(record)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="FINANCE_DELETED",
        message=f"Finance record deleted: {record_id}",
        payload={"finance_id": record_id},
    )
    db.commit()
    return None
