from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("EMAIL_PROVIDER", "disabled")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hrms.core.security import create_access_token
from hrms.db.base import Base
from hrms.db.session import get_db
from hrms.main import app
from hrms.models.enums import Role
from hrms.models.leave import LeaveType
from hrms.models.user import User


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client_instance = TestClient(app)
    try:
        yield client_instance
    finally:
        client_instance.close()
        app.dependency_overrides.clear()


def make_user(db, *, email: str, role: Role, full_name: str, **extra) -> User:
    user = User(
        email=email,
        hashed_password="not-used",
        role=role,
        full_name=full_name,
        is_active=True,
        is_approved=extra.pop("is_approved", True),
        email_verified=extra.pop("email_verified", True),
        joining_year=extra.pop("joining_year", datetime.now(timezone.utc).year),
        **extra,
    )
    db.add(user)
    db.commit()
    return user


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin(db):
    return make_user(db, email="admin@example.com", role=Role.ADMIN, full_name="Admin")


@pytest.fixture()
def hr(db):
    return make_user(db, email="hr@example.com", role=Role.HR, full_name="HR Manager")


@pytest.fixture()
def employee(db):
    return make_user(db, email="asha@example.com", role=Role.EMPLOYEE, full_name="Asha Rao")


@pytest.fixture()
def employee2(db):
    return make_user(db, email="vikram@example.com", role=Role.EMPLOYEE, full_name="Vikram Shah")


@pytest.fixture()
def casual(db):
    leave_type = LeaveType(name="Casual Leave", max_days=12, is_active=True, is_short_day=False)
    db.add(leave_type)
    db.commit()
    return leave_type


@pytest.fixture()
def sick(db):
    leave_type = LeaveType(name="Sick Leave", max_days=10, is_active=True, is_short_day=False)
    db.add(leave_type)
    db.commit()
    return leave_type


@pytest.fixture()
def short_day(db):
    leave_type = LeaveType(name="Short Day Leave", is_active=True, is_short_day=True)
    db.add(leave_type)
    db.commit()
    return leave_type


@pytest.fixture()
def auth():
    return auth_headers


@pytest.fixture()
def user_factory(db):
    def factory(email: str, role: Role = Role.EMPLOYEE, full_name: str = "Test User", **extra) -> User:
        return make_user(db, email=email, role=role, full_name=full_name, **extra)

    return factory
