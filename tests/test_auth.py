from __future__ import annotations

from hrms.core.settings import settings
from hrms.models.enums import NotificationType
from hrms.models.notification import Notification
from hrms.models.user import User

PASSWORD = "Secret123"


def _signup(client, email="new.hire@example.com", password=PASSWORD):
    return client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "full_name": "New Hire"},
    )


def _login(client, email="new.hire@example.com", password=PASSWORD):
    return client.post("/api/auth/login", data={"username": email, "password": password})


def _verify(client, db, email="new.hire@example.com"):
    token = db.query(User).filter(User.email == email).one().verification_token
    return client.get("/api/auth/verify", params={"token": token})


def test_signup_creates_unapproved_employee_and_notifies_admins(client, db, admin, hr):
    response = _signup(client, email="New.Hire@Example.com")
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["email"] == "new.hire@example.com"
    assert body["role"] == "employee"
    assert body["is_approved"] is False
    assert body["email_verified"] is False

    notified = {
        n.user_id
        for n in db.query(Notification).filter(Notification.type == NotificationType.GENERAL).all()
    }
    assert notified == {admin.id, hr.id}

    duplicate = _signup(client)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Email already registered"


def test_weak_password_is_rejected(client):
    assert _signup(client, password="short").status_code == 422
    assert _signup(client, password="lettersonly").status_code == 422


def test_login_requires_verified_email(client, db):
    _signup(client)
    unverified = _login(client)
    assert unverified.status_code == 400
    assert unverified.json()["detail"] == "Please verify your email first"

    verified = _verify(client, db)
    assert verified.status_code == 200
    assert verified.json()["email_verified"] is True

    assert client.get("/api/auth/verify", params={"token": "bogus"}).status_code == 400

    response = _login(client)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["last_login_at"] is not None
    assert "access_token" in response.cookies


def test_unapproved_employee_may_only_read_me(client, db):
    _signup(client)
    _verify(client, db)
    token = _login(client).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get("/api/auth/me", headers=headers).status_code == 200
    blocked = client.get("/api/leave", headers=headers)
    assert blocked.status_code == 403
    assert blocked.json()["detail"] == "Account pending approval"


def test_bad_credentials_and_rate_limit(client):
    for _ in range(settings.login_max_attempts):
        response = _login(client, email="ghost@example.com", password="Wrong1234")
        assert response.status_code == 400
        assert response.json()["detail"] == "Incorrect email or password"

    limited = _login(client, email="ghost@example.com", password="Wrong1234")
    assert limited.status_code == 429


def test_missing_or_invalid_token_is_unauthorised(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_password_reset_flow(client, db):
    _signup(client)
    _verify(client, db)

    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    known = client.post("/api/auth/forgot-password", json={"email": "new.hire@example.com"})
    assert unknown.json() == known.json()

    token = db.query(User).filter(User.email == "new.hire@example.com").one().reset_token
    assert token
    reset = client.post("/api/auth/reset-password", json={"token": token, "new_password": "Changed456"})
    assert reset.status_code == 200, reset.text

    assert _login(client).status_code == 400
    assert _login(client, password="Changed456").status_code == 200
    again = client.post("/api/auth/reset-password", json={"token": token, "new_password": "Changed789"})
    assert again.status_code == 400


def test_change_password_checks_current(client, db):
    _signup(client)
    _verify(client, db)
    user = db.query(User).filter(User.email == "new.hire@example.com").one()
    user.is_approved = True
    db.commit()
    headers = {"Authorization": f"Bearer {_login(client).json()['access_token']}"}

    wrong = client.post(
        "/api/auth/change-password",
        json={"current_password": "Nope1234", "new_password": "Another123"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect"

    ok = client.post(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "Another123"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert _login(client, password="Another123").status_code == 200
