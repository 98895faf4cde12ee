"""Resignation submission, decisions and the exit checklist."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Mapping, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from hrms.core import rbac
from hrms.models.enums import (
    ClearanceDepartment,
    ClearanceStatus,
    FnFStatus,
    NotificationType,
    ResignationStatus,
    Role,
)
from hrms.models.resignation import Resignation, default_clearances
from hrms.models.user import User
from hrms.schemas.resignation import ResignationCreate, ResignationProcessUpdate
from hrms.services.activity import log_activity
from hrms.services.notifications import create_notification, notify_roles


def derive_clearance_status(clearances: Optional[Mapping[str, Mapping]]) -> ClearanceStatus:
    """
    Overall clearance across the four departments: approved only when all
    are approved, rejected when any is rejected, pending while none has moved.
    """
    statuses = []
    for department in ClearanceDepartment:
        entry = (clearances or {}).get(department.value) or {}
        statuses.append(entry.get("status") or ClearanceStatus.PENDING.value)
    if any(value == ClearanceStatus.REJECTED.value for value in statuses):
        return ClearanceStatus.REJECTED
    if all(value == ClearanceStatus.APPROVED.value for value in statuses):
        return ClearanceStatus.APPROVED
    if all(value == ClearanceStatus.PENDING.value for value in statuses):
        return ClearanceStatus.PENDING
    return ClearanceStatus.IN_PROGRESS


def exit_progress(resignation: Resignation) -> int:
    """Percentage of exit checklist steps completed."""
    steps = [
        resignation.notice_period_complied,
        resignation.knowledge_transfer_completed,
        resignation.assets_returned,
        derive_clearance_status(resignation.clearances) == ClearanceStatus.APPROVED,
        resignation.exit_interview_completed,
        resignation.fnf_status == FnFStatus.COMPLETED,
        bool((resignation.exit_documents or {}).get("uploaded_at")),
        resignation.system_access_deactivated,
        resignation.exit_closed,
    ]
    return round(100 * sum(1 for step in steps if step) / len(steps))


def submit_resignation(db: Session, *, user: User, payload: ResignationCreate) -> Resignation:
    if not rbac.user_has_role(user, Role.EMPLOYEE):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only employees can submit resignations")
    pending = (
        db.query(Resignation)
        .filter(Resignation.user_id == user.id, Resignation.status == ResignationStatus.PENDING)
        .first()
    )
    if pending:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already have a pending resignation request",
        )
    resignation = Resignation(
        user_id=user.id,
        resignation_date=payload.resignation_date,
        reason=payload.reason,
        feedback=payload.feedback,
        assets=payload.assets,
        handover_notes=payload.handover_notes,
        notice_period_start_date=payload.notice_period_start_date,
        notice_period_end_date=payload.notice_period_end_date,
        clearances=default_clearances(),
        exit_documents={},
        status=ResignationStatus.PENDING,
    )
    db.add(resignation)
    db.flush()

    notify_roles(
        db,
        roles=(Role.ADMIN, Role.HR),
        notif_type=NotificationType.RESIGNATION_SUBMITTED,
        title="Resignation submitted",
        message=f"{user.full_name} submitted a resignation effective {resignation.resignation_date}",
        payload={"resignation_id": resignation.id},
        exclude_user_ids=[user.id],
    )
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="RESIGNATION_SUBMITTED",
        message=f"Resignation submitted: {resignation.id}",
        payload={"resignation_id": resignation.id},
    )
    return resignation


def decide_resignation(
    db: Session,
    *,
    resignation: Resignation,
    approver: User,
    decision: ResignationStatus,
    rejection_reason: Optional[str] = None,
) -> Resignation:
    if resignation.status != ResignationStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Resignation already decided")
    if decision == ResignationStatus.REJECTED and not (rejection_reason or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rejection reason is required")

    resignation.status = decision
    resignation.approved_by_user_id = approver.id
    resignation.approved_at = datetime.now(timezone.utc)
    resignation.rejection_reason = rejection_reason if decision == ResignationStatus.REJECTED else None
    db.add(resignation)
    db.flush()

    create_notification(
        db,
        user_id=resignation.user_id,
        notif_type=NotificationType.RESIGNATION_DECIDED,
        title=f"Resignation {decision.value}",
        message=f"Your resignation was {decision.value}",
        payload={"resignation_id": resignation.id, "rejection_reason": resignation.rejection_reason},
    )
    log_activity(
        db,
        actor_user_id=approver.id,
        activity_type=f"RESIGNATION_{decision.name}",
        message=f"Resignation {decision.value}: {resignation.id}",
        payload={"resignation_id": resignation.id},
    )
    return resignation


def _step_date(value: Optional[date]) -> date:
    return value or datetime.now(timezone.utc).date()


def apply_process_step(
    db: Session,
    *,
    resignation: Resignation,
    actor: User,
    update: ResignationProcessUpdate,
) -> Resignation:
    """Record one exit checklist step on the resignation."""
    field = update.field
    flag = update.value is True

    if field == "notice_period_complied":
        resignation.notice_period_complied = flag
    elif field == "knowledge_transfer_completed":
        resignation.knowledge_transfer_completed = flag
        resignation.handover_completed_date = _step_date(update.effective_date) if flag else None
        if update.notes:
            resignation.handover_notes = update.notes
    elif field == "assets_returned":
        resignation.assets_returned = flag
        resignation.assets_return_date = _step_date(update.effective_date) if flag else None
        if flag and update.notes:
            resignation.assets_return_notes = update.notes
    elif field == "clearance":
        clearances = dict(resignation.clearances or default_clearances())
        entry = {
            "status": update.status,
            "approved_by": actor.id,
            "approved_at": datetime.now(timezone.utc).isoformat(),
        }
        if update.notes:
            entry["notes"] = update.notes
        clearances[update.department.value] = entry
        resignation.clearances = clearances
        flag_modified(resignation, "clearances")
    elif field == "exit_interview_completed":
        resignation.exit_interview_completed = flag
        resignation.exit_interview_date = _step_date(update.effective_date) if flag else None
        if flag and update.notes:
            resignation.exit_interview_feedback = update.notes
    elif field == "fnf_status":
        resignation.fnf_status = FnFStatus(update.status)
        if resignation.fnf_status == FnFStatus.COMPLETED:
            resignation.fnf_processed_date = _step_date(update.effective_date)
            if update.amount is not None:
                resignation.fnf_amount = update.amount
            if update.notes:
                resignation.fnf_notes = update.notes
    elif field == "exit_documents":
        documents = dict(resignation.exit_documents or {})
        for key, value in (update.files or {}).items():
            if value:
                documents[key] = value
        documents["uploaded_at"] = datetime.now(timezone.utc).isoformat()
        resignation.exit_documents = documents
        flag_modified(resignation, "exit_documents")
    elif field == "system_access_deactivated":
        resignation.system_access_deactivated = flag
        resignation.system_access_deactivated_date = _step_date(update.effective_date) if flag else None
        if flag:
            resignation.user.is_active = False
            db.add(resignation.user)
    elif field == "exit_closed":
        resignation.exit_closed = flag
        if flag:
            resignation.exit_closed_date = _step_date(update.effective_date)
            resignation.exit_closed_by_user_id = actor.id
            resignation.status = ResignationStatus.COMPLETED

    if (
        resignation.status == ResignationStatus.APPROVED
        and field != "exit_closed"
        and exit_progress(resignation) > 0
    ):
        resignation.status = ResignationStatus.IN_PROGRESS

    db.add(resignation)
    db.flush()
    log_activity(
        db,
        actor_user_id=actor.id,
        activity_type="RESIGNATION_STEP_UPDATED",
        message=f"Resignation {resignation.id}: {field}",
        payload={"resignation_id": resignation.id, "field": field},
    )
    return resignation
