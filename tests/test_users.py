from __future__ import annotations

from datetime import date

from hrms.models.enums import LeaveKind, LeaveStatus, Role
from hrms.models.leave import Leave
from hrms.services.directory import next_birthday


def test_admin_created_user_is_approved_with_employee_id(client, auth, admin):
    response = client.post(
        "/api/users",
        json={
            "email": "joiner@example.com",
            "password": "Welcome123",
            "full_name": "Joiner",
            "joining_year": 2026,
            "clock_in_time": "09:30",
        },
        headers=auth(admin),
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["is_approved"] is True
    assert body["email_verified"] is False
    assert body["emp_id"] == "2026EMP-001"
    assert body["clock_in_time"] == "09:30"


def test_hr_cannot_manage_admin_accounts(client, auth, admin, hr):
    create = client.post(
        "/api/users",
        json={"email": "boss@example.com", "password": "Welcome123", "full_name": "Boss", "role": "admin"},
        headers=auth(hr),
    )
    assert create.status_code == 403
    assert client.post(f"/api/users/{admin.id}/deactivate", headers=auth(hr)).status_code == 403


def test_pending_filter_and_deactivation(client, auth, admin, employee, user_factory):
    waiting = user_factory("waiting@example.com", is_approved=False)

    pending = client.get("/api/users", params={"pending": True}, headers=auth(admin)).json()
    assert [user["id"] for user in pending] == [waiting.id]

    assert client.post(f"/api/users/{admin.id}/deactivate", headers=auth(admin)).status_code == 400
    response = client.post(f"/api/users/{employee.id}/deactivate", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    active = client.get("/api/users", params={"include_inactive": False, "role": Role.EMPLOYEE.value}, headers=auth(admin))
    assert [user["id"] for user in active.json()] == [waiting.id]


def test_invalid_clock_in_time_is_rejected(client, auth, admin, employee):
    response = client.patch(f"/api/users/{employee.id}", json={"clock_in_time": "9am"}, headers=auth(admin))
    assert response.status_code == 422
    ok = client.patch(f"/api/users/{employee.id}", json={"clock_in_time": "N/R"}, headers=auth(admin))
    assert ok.json()["clock_in_time"] == "N/R"


def test_profile_update_uppercases_identity_numbers(client, auth, employee):
    response = client.patch(
        "/api/profile",
        json={"mobile_number": "9876543210", "pan_number": "abcde1234f", "ifsc_code": "hdfc0001234"},
        headers=auth(employee),
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["pan_number"] == "ABCDE1234F"
    assert body["ifsc_code"] == "HDFC0001234"
    assert client.get("/api/profile", headers=auth(employee)).json()["mobile_number"] == "9876543210"


def test_leave_type_lifecycle(client, db, auth, admin, employee):
    created = client.post("/api/leave-types", json={"name": " Short Day Leave ", "max_days": 2}, headers=auth(admin))
    assert created.status_code == 201, created.text
    assert created.json()["name"] == "Short Day Leave"
    assert created.json()["is_short_day"] is True

    duplicate = client.post("/api/leave-types", json={"name": "Short Day Leave"}, headers=auth(admin))
    assert duplicate.status_code == 409

    type_id = created.json()["id"]
    db.add(
        Leave(
            user_id=employee.id,
            leave_type_id=type_id,
            kind=LeaveKind.ALLOTMENT,
            status=LeaveStatus.APPROVED,
            hours=4,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 1),
        )
    )
    db.commit()
    in_use = client.delete(f"/api/leave-types/{type_id}", headers=auth(admin))
    assert in_use.status_code == 409

    deactivated = client.patch(f"/api/leave-types/{type_id}", json={"is_active": False}, headers=auth(admin))
    assert deactivated.json()["is_active"] is False
    assert client.get("/api/leave-types", headers=auth(employee)).json() == []
    assert len(client.get("/api/leave-types", params={"include_inactive": True}, headers=auth(employee)).json()) == 1


def test_directory_search_matches_employees_only(client, auth, hr, employee, employee2, user_factory):
    user_factory("mobile@example.com", full_name="Meera Iyer", mobile_number="9876501234")

    def search(q):
        response = client.get("/api/users/search", params={"q": q}, headers=auth(employee))
        assert response.status_code == 200, response.text
        return [item["full_name"] for item in response.json()]

    assert search("vik") == ["Vikram Shah"]
    assert search("01234") == ["Meera Iyer"]
    assert search("a") == []
    assert "HR Manager" not in search("example.com")
    assert search("example.com") == ["Asha Rao", "Meera Iyer", "Vikram Shah"]


def test_upcoming_birthdays_order_and_leap_day(client, auth, employee, user_factory):
    user_factory("soon@example.com", full_name="Soon", date_of_birth=date(1990, 3, 10))
    user_factory("today@example.com", full_name="Today", date_of_birth=date(1992, 3, 3))
    user_factory("leap@example.com", full_name="Leap", date_of_birth=date(1988, 2, 29))

    upcoming = client.get(
        "/api/users/upcoming-birthdays",
        params={"on_date": "2026-03-03"},
        headers=auth(employee),
    ).json()
    assert [(item["full_name"], item["days_until"]) for item in upcoming] == [("Today", 0), ("Soon", 7), ("Leap", 362)]
    assert upcoming[2]["next_birthday"] == "2027-02-28"

    calendar_order = client.get(
        "/api/users/upcoming-birthdays",
        params={"on_date": "2026-03-03", "all": "true"},
        headers=auth(employee),
    ).json()
    assert [item["full_name"] for item in calendar_order] == ["Leap", "Today", "Soon"]


def test_next_birthday_keeps_leap_day_in_leap_years():
    assert next_birthday(date(1988, 2, 29), date(2028, 1, 1)) == date(2028, 2, 29)
    assert next_birthday(date(1988, 2, 29), date(2026, 3, 1)) == date(2027, 2, 28)
