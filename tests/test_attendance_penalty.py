from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException

from hrms.models.attendance import Attendance, Penalty
from hrms.models.enums import AttendanceStatus, LeaveKind
from hrms.models.leave import Leave
from hrms.models.user import NO_RESTRICTION
from hrms.schemas.leave import AllocationIn
from hrms.services.attendance import clock_in, clock_out, close_stale_sessions, monthly_stats, parse_hhmm
from hrms.services.leave import find_allotment
from hrms.services.leave_allotment import allot_leave
from hrms.services.system_config import DEFAULT_CLOCK_IN_TIME_LIMIT, MAX_LATE_DAYS, set_config

IST = ZoneInfo("Asia/Kolkata")


def _at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, day, hour, minute, tzinfo=IST).astimezone(timezone.utc)


def _configure(db, limit="10:00", max_late_days=0):
    set_config(db, DEFAULT_CLOCK_IN_TIME_LIMIT, limit)
    set_config(db, MAX_LATE_DAYS, str(max_late_days))
    db.commit()


@pytest.mark.parametrize(
    "value, expected",
    [("09:30", 570), ("9:05", 545), ("24:00", None), ("N/R", None), ("", None), (None, None)],
)
def test_parse_hhmm(value, expected):
    assert parse_hhmm(value) == expected


def test_on_time_arrival_is_present(db, employee):
    _configure(db)
    record, penalty = clock_in(db, user=employee, now=_at(2, 9, 55))
    assert record.status == AttendanceStatus.PRESENT
    assert record.work_date == date(2026, 3, 2)
    assert penalty is None


def test_late_arrival_with_zero_allowance_deducts_half_day(db, admin, employee, casual):
    allot_leave(db, allocator=admin, item=AllocationIn(user_id=employee.id, leave_type_id=casual.id, days=5))
    _configure(db, max_late_days=0)

    record, penalty = clock_in(db, user=employee, now=_at(2, 10, 30))
    db.commit()

    assert record.status == AttendanceStatus.LATE
    assert penalty is not None
    assert penalty.clock_in_time == "10:30"
    assert penalty.time_limit == "10:00"
    assert penalty.late_arrival_count == 1
    assert penalty.leave_deducted == 0.5

    deduction = db.get(Leave, penalty.leave_id)
    assert deduction.kind == LeaveKind.PENALTY
    assert deduction.leave_type_id == casual.id
    assert find_allotment(db, user_id=employee.id, leave_type_id=casual.id).remaining_days == 4.5


def test_penalty_only_after_allowance_is_exceeded(db, employee, casual):
    _configure(db, max_late_days=1)

    _, first = clock_in(db, user=employee, now=_at(2, 10, 15))
    clock_out(db, user=employee, now=_at(2, 18))
    _, second = clock_in(db, user=employee, now=_at(3, 10, 20))
    db.commit()

    assert first is None
    assert second is not None
    assert second.late_arrival_count == 2
    assert second.penalty_date == date(2026, 3, 3)


def test_unrestricted_user_is_never_late(db, user_factory):
    _configure(db)
    free = user_factory("free@example.com", clock_in_time=NO_RESTRICTION)
    record, penalty = clock_in(db, user=free, now=_at(2, 13))
    assert record.status == AttendanceStatus.PRESENT
    assert penalty is None


def test_personal_limit_overrides_default(db, user_factory, casual):
    _configure(db, limit="10:00")
    early_bird = user_factory("early@example.com", clock_in_time="09:00")
    record, penalty = clock_in(db, user=early_bird, now=_at(2, 9, 30))
    assert record.status == AttendanceStatus.LATE
    assert penalty is not None
    assert penalty.time_limit == "09:00"


def test_penalty_is_created_without_casual_leave_type(db, employee):
    _configure(db)
    _, penalty = clock_in(db, user=employee, now=_at(2, 11))
    db.commit()
    assert penalty is not None
    assert db.get(Leave, penalty.leave_id).leave_type.name == "Casual Leave"


def test_second_clock_in_same_day_is_rejected(db, employee):
    clock_in(db, user=employee, now=_at(2, 9))
    with pytest.raises(HTTPException) as excinfo:
        clock_in(db, user=employee, now=_at(2, 12))
    assert excinfo.value.status_code == 400


def test_stale_session_is_closed_on_next_clock_in(db, employee):
    record, _ = clock_in(db, user=employee, now=_at(2, 9))
    db.commit()

    closed = close_stale_sessions(db, user_id=employee.id, now=_at(3, 8))
    db.commit()
    db.refresh(record)

    assert closed == 1
    assert record.hours_worked == pytest.approx(14.18, abs=0.01)


def test_monthly_stats(db, employee):
    _configure(db)
    clock_in(db, user=employee, now=_at(2, 9, 30))
    clock_out(db, user=employee, now=_at(2, 17, 30))
    clock_in(db, user=employee, now=_at(3, 10, 30))
    clock_out(db, user=employee, now=_at(3, 18, 30))
    db.commit()

    stats = monthly_stats(db, user_id=employee.id, year=2026, month=3)
    assert stats["days_present"] == 2
    assert stats["late_days"] == 1
    assert stats["total_hours"] == 16.0
    assert stats["average_hours"] == 8.0
    assert stats["penalties"] == 1


def test_clock_in_and_out_endpoints(client, db, auth, employee):
    response = client.post("/api/attendance/clock-in", headers=auth(employee))
    assert response.status_code == 201, response.text
    assert response.json()["penalty"] is None

    again = client.post("/api/attendance/clock-in", headers=auth(employee))
    assert again.status_code == 400

    out = client.post("/api/attendance/clock-out", headers=auth(employee))
    assert out.status_code == 200, out.text
    assert out.json()["hours_worked"] is not None


def test_penalties_are_scoped_to_the_employee(client, db, auth, admin, employee, employee2):
    _configure(db)
    clock_in(db, user=employee, now=_at(2, 11))
    db.commit()

    assert len(client.get("/api/attendance/penalties", headers=auth(employee)).json()) == 1
    assert client.get("/api/attendance/penalties", headers=auth(employee2)).json() == []
    assert db.query(Penalty).count() == 1
    assert len(client.get("/api/attendance/penalties", headers=auth(admin)).json()) == 1


def test_attendance_settings_require_admin_to_change(client, auth, admin, hr):
    body = {"default_clock_in_time_limit": "09:30", "max_late_days": 2}
    assert client.put("/api/settings/attendance", json=body, headers=auth(hr)).status_code == 403

    response = client.put("/api/settings/attendance", json=body, headers=auth(admin))
    assert response.status_code == 200, response.text
    assert response.json() == body
    assert client.get("/api/settings/attendance", headers=auth(hr)).json() == body

    trail = client.get("/api/settings/activity", params={"activity_type": "SETTINGS_UPDATED"}, headers=auth(admin))
    assert trail.status_code == 200
    assert [entry["payload_json"] for entry in trail.json()] == [body]
    assert client.get("/api/settings/activity", headers=auth(hr)).status_code == 403


def test_weekly_hours_counts_completed_sessions_from_monday(client, db, auth, employee, employee2):
    def session(day, hours, closed=True):
        start = _at(day, 9)
        return Attendance(
            user_id=employee.id,
            work_date=date(2026, 3, day),
            clock_in=start,
            clock_out=start.replace(hour=start.hour + 1) if closed else None,
            hours_worked=hours if closed else None,
        )

    db.add_all([session(1, 4), session(2, 8), session(4, 7.5), session(5, 0, closed=False), session(9, 9)])
    db.commit()

    response = client.get("/api/attendance/weekly-hours", params={"on_date": "2026-03-04"}, headers=auth(employee))
    assert response.status_code == 200, response.text
    assert response.json() == {
        "user_id": employee.id,
        "week_start": "2026-03-02",
        "week_end": "2026-03-08",
        "weekly_hours": 15.5,
        "days_worked": 2,
    }

    other = client.get(
        "/api/attendance/weekly-hours",
        params={"on_date": "2026-03-04", "user_id": employee.id},
        headers=auth(employee2),
    )
    assert other.status_code == 403
