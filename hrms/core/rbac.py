from __future__ import annotations

from typing import Iterable, Optional

from fastapi import HTTPException, status

from hrms.models.enums import Role


PRIVILEGED_ROLES = (Role.ADMIN, Role.HR)


def _coerce_role(value: Role | str | None) -> Optional[Role]:
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value))
    except ValueError:
        return None


def user_has_role(user, role: Role) -> bool:
    return _coerce_role(getattr(user, "role", None)) == role


def user_has_any_role(user, roles: Iterable[Role]) -> bool:
    return _coerce_role(getattr(user, "role", None)) in set(roles)


def is_privileged(user) -> bool:
    return user_has_any_role(user, PRIVILEGED_ROLES)


def require_roles(user, required_roles: Iterable[Role]) -> None:
    """
    Require that the user has at least one of the specified roles.
    Raises HTTPException with 403 status if user doesn't have required roles.
    """
    required = list(required_roles)
    if not user_has_any_role(user, required):
        role_names = ", ".join(role.value for role in required)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Required roles: {role_names}",
        )
