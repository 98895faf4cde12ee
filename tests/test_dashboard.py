from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from hrms.models.attendance import Attendance
from hrms.models.enums import LeaveKind, LeaveStatus
from hrms.models.leave import Leave

DAY = date(2026, 3, 3)


def _leave(user, leave_type, *, kind=LeaveKind.REQUEST, status=LeaveStatus.APPROVED, start=DAY, end=DAY):
    return Leave(
        user_id=user.id,
        leave_type_id=leave_type.id,
        kind=kind,
        status=status,
        days=(end - start).days + 1,
        start_date=start,
        end_date=end,
    )


@pytest.fixture()
def activity(db, admin, hr, employee, employee2, casual, user_factory):
    user_factory("joiner@example.com", is_approved=False, email_verified=False)
    db.add_all(
        [
            _leave(employee, casual),
            _leave(employee2, casual, status=LeaveStatus.PENDING, start=date(2026, 3, 10), end=date(2026, 3, 10)),
            _leave(employee2, casual, kind=LeaveKind.ALLOTMENT, start=date(2026, 1, 1), end=date(2026, 12, 31)),
            Attendance(user_id=employee2.id, work_date=DAY, clock_in=datetime(2026, 3, 3, 4, 0, tzinfo=timezone.utc)),
        ]
    )
    db.commit()


def test_admin_stats_counts(client, auth, admin, employee, activity):
    client.post(
        "/api/resignation",
        json={"resignation_date": "2026-04-30", "reason": "Relocating"},
        headers=auth(employee),
    )
    response = client.get("/api/admin/stats", params={"on_date": DAY.isoformat()}, headers=auth(admin))
    assert response.status_code == 200, response.text
    assert response.json() == {
        "total_employees": 3,
        "employee_count": 2,
        "hr_count": 1,
        "pending_approvals": 1,
        "pending_leaves": 1,
        "clocked_in_today": 1,
        "on_leave_today": 1,
        "pending_resignations": 1,
    }


def test_hr_stats_counts(client, auth, hr, activity):
    response = client.get("/api/hr/stats", params={"on_date": DAY.isoformat()}, headers=auth(hr))
    assert response.status_code == 200, response.text
    assert response.json() == {
        "pending_leaves": 1,
        "approved_leaves": 1,
        "today_attendance": 1,
        "on_leave_today": 1,
    }


def test_stats_access(client, auth, admin, hr, employee):
    assert client.get("/api/admin/stats", headers=auth(hr)).status_code == 403
    assert client.get("/api/hr/stats", headers=auth(employee)).status_code == 403
    assert client.get("/api/hr/stats", headers=auth(admin)).status_code == 200
