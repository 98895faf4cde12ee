from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.deps import get_current_user, require_privileged
from hrms.core.security import generate_url_token, get_password_hash
from hrms.core.settings import settings
from hrms.db.session import get_db
from hrms.models.enums import NotificationType, Role
from hrms.models.user import User
from hrms.schemas.user import DirectoryEntry, UpcomingBirthday, UserCreate, UserRead, UserUpdate
from hrms.services.activity import log_activity
from hrms.services.directory import search_employees, upcoming_birthdays
from hrms.services.email_delivery import deliver_email
from hrms.services.employee_ids import assign_employee_id
from hrms.services.notifications import create_notification

router = APIRouter(prefix="/api/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _guard_admin_target(actor: User, role: Optional[Role]) -> None:
    if role == Role.ADMIN and not rbac.user_has_role(actor, Role.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can manage admin accounts")


@router.get("", response_model=List[UserRead])
def list_users(
    role: Optional[Role] = Query(None),
    pending: Optional[bool] = Query(None, description="Only users awaiting approval"),
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_privileged),
) -> List[UserRead]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if pending is not None:
        query = query.filter(User.is_approved.is_(not pending))
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    users = query.order_by(User.created_at.desc(), User.id.desc()).all()
    return [UserRead.model_validate(user) for user in users]


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    user_in: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> UserRead:
    _guard_admin_target(current_user, user_in.role)
    if db.query(User).filter(User.email == user_in.email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    token = generate_url_token()
    user = User(
        email=user_in.email,
        full_name=user_in.full_name.strip(),
        hashed_password=get_password_hash(user_in.password),
        role=user_in.role,
        designation=user_in.designation,
        joining_year=user_in.joining_year,
        clock_in_time=user_in.clock_in_time,
        is_active=True,
        is_approved=True,
        email_verified=False,
        verification_token=token,
        verification_token_expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.verification_token_hours),
    )
    db.add(user)
    db.flush()
    assign_employee_id(db, user)

    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="USER_CREATED",
        message=f"User created: {user.email}",
        payload={"user_id": user.id, "role": user.role.value},
    )
    db.commit()
    db.refresh(user)

    background_tasks.add_task(deliver_email, "verify_email", [user.email], {"name": user.full_name, "token": token})
    return UserRead.model_validate(user)


@router.get("/search", response_model=List[DirectoryEntry])
def search(
    q: str = Query("", max_length=100),
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> List[DirectoryEntry]:
    return [DirectoryEntry.model_validate(user) for user in search_employees(db, q)]


@router.get("/upcoming-birthdays", response_model=List[UpcomingBirthday])
def birthdays(
    include_all: bool = Query(False, alias="all", description="Every birthday in calendar order instead of the next few"),
    on_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> List[UpcomingBirthday]:
    return [UpcomingBirthday(**row) for row in upcoming_birthdays(db, today=on_date, include_all=include_all)]


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_privileged),
) -> UserRead:
    return UserRead.model_validate(_get_user_or_404(db, user_id))


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> UserRead:
    user = _get_user_or_404(db, user_id)
    _guard_admin_target(current_user, user.role)
    update_data = user_update.model_dump(exclude_unset=True)
    _guard_admin_target(current_user, update_data.get("role"))

    joining_year_changed = "joining_year" in update_data and update_data["joining_year"] != user.joining_year
    for field, value in update_data.items():
        setattr(user, field, value)
    db.add(user)
    db.flush()

    if user.is_approved and user.joining_year:
        # A new joining year means a new per-year sequence.
        assign_employee_id(db, user, force=joining_year_changed)

    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="USER_UPDATED",
        message=f"User updated: {user.email}",
        payload={"user_id": user.id, "fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(user)
    return UserRead.model_validate(user)


@router.post("/{user_id}/approve", response_model=UserRead)
def approve_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> UserRead:
    user = _get_user_or_404(db, user_id)
    if user.is_approved:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already approved")

    user.is_approved = True
    db.add(user)
    db.flush()
    assign_employee_id(db, user)

    create_notification(
        db,
        user_id=user.id,
        notif_type=NotificationType.ACCOUNT_APPROVED,
        title="Account approved",
        message="Your account has been approved. Welcome aboard!",
    )
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="USER_APPROVED",
        message=f"User approved: {user.email}",
        payload={"user_id": user.id, "emp_id": user.emp_id},
    )
    db.commit()
    db.refresh(user)

    background_tasks.add_task(deliver_email, "account_approved", [user.email], {"emp_id": user.emp_id})
    return UserRead.model_validate(user)


@router.post("/{user_id}/deactivate", response_model=UserRead)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_privileged),
) -> UserRead:
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate yourself")
    _guard_admin_target(current_user, user.role)

    user.is_active = False
    db.add(user)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="USER_DEACTIVATED",
        message=f"User deactivated: {user.email}",
        payload={"user_id": user.id},
    )
    db.commit()
    db.refresh(user)
    return UserRead.model_validate(user)
