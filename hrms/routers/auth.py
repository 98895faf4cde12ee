from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms.core.deps import get_current_user, log_security_event
from hrms.core.security import create_access_token, generate_url_token, get_password_hash, verify_password
from hrms.core.settings import settings
from hrms.db.session import get_db
from hrms.models.enums import NotificationType, Role
from hrms.models.support import ActivityLog
from hrms.models.user import User
from hrms.schemas.user import (
    LoginResponse,
    PasswordChange,
    PasswordResetConfirm,
    PasswordResetRequest,
    SignupRequest,
    UserRead,
)
from hrms.services.activity import log_activity
from hrms.services.email_delivery import deliver_email
from hrms.services.notifications import notify_roles

router = APIRouter(prefix="/api/auth", tags=["auth"])

LOGIN_FAILED = "USER_LOGIN_FAILED"


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _expired(value: datetime | None) -> bool:
    value = _as_utc(value)
    return value is None or value < datetime.now(timezone.utc)


def _recent_failures(db: Session, *, email: str, client_ip: str) -> int:
    """Failed logins inside the throttle window for this address or this client."""
    since = datetime.now(timezone.utc) - timedelta(minutes=settings.login_window_minutes)
    stmt = (
        select(ActivityLog.payload_json)
        .where(ActivityLog.type == LOGIN_FAILED, ActivityLog.created_at >= since)
        .order_by(ActivityLog.id.desc())
        .limit(200)
    )
    return sum(
        1
        for attempt in db.scalars(stmt)
        if attempt and (attempt.get("email") == email or attempt.get("ip") == client_ip)
    )


@router.post("/signup", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def signup(
    request: Request,
    body: SignupRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> UserRead:
    if db.scalar(select(User).where(User.email == body.email)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    token = generate_url_token()
    user = User(
        email=body.email,
        full_name=body.full_name.strip(),
        hashed_password=get_password_hash(body.password),
        role=Role.EMPLOYEE,
        is_active=True,
        is_approved=False,
        email_verified=False,
        verification_token=token,
        verification_token_expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.verification_token_hours),
    )
    db.add(user)
    db.flush()

    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="USER_SIGNUP",
        message=f"User signed up: {user.email}",
    )
    notify_roles(
        db,
        roles=[Role.ADMIN, Role.HR],
        notif_type=NotificationType.GENERAL,
        title="New signup awaiting approval",
        message=f"{user.full_name} ({user.email}) signed up and is awaiting approval",
        payload={"user_id": user.id},
    )
    db.commit()
    db.refresh(user)

    log_security_event("signup", request, user.id)
    background_tasks.add_task(deliver_email, "verify_email", [user.email], {"name": user.full_name, "token": token})
    return UserRead.model_validate(user)


@router.get("/verify", response_model=UserRead)
def verify_email(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
) -> UserRead:
    user = db.scalar(select(User).where(User.verification_token == token))
    if user is None or _expired(user.verification_token_expires_at):
        log_security_event("verification_invalid", request)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired verification token")

    user.email_verified = True
    user.verification_token = None
    user.verification_token_expires_at = None
    db.add(user)
    log_activity(db, actor_user_id=user.id, activity_type="USER_EMAIL_VERIFIED", message="Email verified")
    db.commit()
    db.refresh(user)
    return UserRead.model_validate(user)


@router.post("/login", response_model=LoginResponse)
def login(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> LoginResponse:
    email = form_data.username.strip().lower()
    client_ip = request.client.host if request.client else "unknown"
    user = db.scalar(select(User).where(User.email == email))

    if user is None or not verify_password(form_data.password, user.hashed_password):
        attempt = {"email": email, "ip": client_ip}
        if _recent_failures(db, email=email, client_ip=client_ip) >= settings.login_max_attempts:
            log_activity(db, actor_user_id=None, activity_type="USER_LOGIN_RATE_LIMIT", payload=attempt)
            db.commit()
            log_security_event("login_rate_limited", request, email=email)
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many login attempts")
        log_activity(db, actor_user_id=None, activity_type=LOGIN_FAILED, payload=attempt)
        db.commit()
        log_security_event("login_failed", request, email=email)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Incorrect email or password")

    if not user.is_active:
        log_security_event("login_inactive", request, user.id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is inactive")
    if not user.email_verified:
        log_security_event("login_unverified", request, user.id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please verify your email first")

    user.last_login_at = datetime.now(timezone.utc)
    log_activity(db, actor_user_id=user.id, activity_type="USER_LOGIN", message="User logged in")
    db.commit()
    db.refresh(user)

    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    response.set_cookie(
        "access_token",
        token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=settings.access_token_expire_minutes * 60,
    )
    return LoginResponse(access_token=token, user=UserRead.model_validate(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(response: Response) -> None:
    response.delete_cookie("access_token")
    return None


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(get_current_user)) -> UserRead:
    return UserRead.model_validate(current_user)


@router.post("/forgot-password")
def forgot_password(
    request: Request,
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> dict:
    message = {"message": "If the account exists, a reset link has been sent"}
    user = db.scalar(select(User).where(User.email == body.email.lower()))
    if not user or not user.is_active:
        log_security_event("password_reset_unknown", request, email=body.email)
        return message

    token = generate_url_token()
    user.reset_token = token
    user.reset_token_expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.reset_token_minutes)
    db.add(user)
    log_activity(db, actor_user_id=user.id, activity_type="PASSWORD_RESET_REQUESTED", message="Password reset requested")
    db.commit()

    background_tasks.add_task(deliver_email, "password_reset", [user.email], {"token": token})
    return message


@router.post("/reset-password")
def reset_password(
    request: Request,
    body: PasswordResetConfirm,
    db: Session = Depends(get_db),
) -> dict:
    user = db.scalar(select(User).where(User.reset_token == body.token))
    if user is None or _expired(user.reset_token_expires_at):
        log_security_event("password_reset_invalid", request)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

    user.hashed_password = get_password_hash(body.new_password)
    user.reset_token = None
    user.reset_token_expires_at = None
    db.add(user)
    log_activity(db, actor_user_id=user.id, activity_type="PASSWORD_RESET", message="Password reset")
    db.commit()
    return {"message": "Password has been reset"}


@router.post("/change-password")
def change_password(
    body: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    if not verify_password(body.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    current_user.hashed_password = get_password_hash(body.new_password)
    db.add(current_user)
    log_activity(db, actor_user_id=current_user.id, activity_type="PASSWORD_CHANGED", message="Password changed")
    db.commit()
    return {"message": "Password updated"}
