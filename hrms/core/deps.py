from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from hrms.core import rbac
from hrms.core.security import decode_token
from hrms.db.session import get_db
from hrms.models.enums import Role
from hrms.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)
logger = logging.getLogger("security")

# Employees awaiting approval may only see who they are.
UNAPPROVED_ALLOWED_PATHS = frozenset({"/api/auth/me"})


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def log_security_event(event: str, request: Request, user_id: Optional[int] = None, **detail) -> None:
    logger.info(
        event,
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "user_id": user_id,
            "detail": detail or None,
            "path": request.url.path,
            "method": request.method,
            "client": request.client.host if request.client else None,
        },
    )


def _user_id_from_token(token: str) -> Optional[int]:
    try:
        subject = decode_token(token).get("sub")
        return int(subject) if subject is not None else None
    except (JWTError, ValueError, TypeError):
        return None


def get_current_user(
    request: Request,
    token: Optional[str] = Security(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from a bearer token or the ``access_token`` cookie."""
    token = token or request.cookies.get("access_token")
    if not token:
        log_security_event("token_missing", request)
        raise _unauthorized()

    user_id = _user_id_from_token(token)
    if user_id is None:
        log_security_event("token_invalid", request)
        raise _unauthorized()

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        log_security_event("user_inactive_or_missing", request, user_id)
        raise _unauthorized()

    awaiting_approval = rbac.user_has_role(user, Role.EMPLOYEE) and not user.is_approved
    if awaiting_approval and request.url.path not in UNAPPROVED_ALLOWED_PATHS:
        log_security_event("unapproved_forbidden", request, user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account pending approval")
    return user


def require_privileged(current_user: User = Depends(get_current_user)) -> User:
    """Dependency for admin/HR-only endpoints."""
    rbac.require_roles(current_user, rbac.PRIVILEGED_ROLES)
    return current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    rbac.require_roles(current_user, [Role.ADMIN])
    return current_user
