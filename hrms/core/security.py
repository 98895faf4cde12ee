"""Password hashing, JWT access tokens and one-time link tokens."""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import jwt
from passlib.context import CryptContext

from hrms.core.settings import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_access_token(claims: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    issued = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=max(settings.access_token_expire_minutes, 1))
    token_claims = {"iat": issued, **claims, "exp": issued + lifetime}
    return jwt.encode(token_claims, settings.jwt_secret, algorithm=settings.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Verified claims of ``token``; raises ``jose.JWTError`` when invalid or expired."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.algorithm])


def generate_url_token() -> str:
    return secrets.token_urlsafe(32)
