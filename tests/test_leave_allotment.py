from __future__ import annotations

from hrms.models.enums import LeaveKind
from hrms.models.leave import Leave


def _allotments(db, user_id=None):
    query = db.query(Leave).filter(Leave.kind == LeaveKind.ALLOTMENT)
    if user_id is not None:
        query = query.filter(Leave.user_id == user_id)
    return query.order_by(Leave.leave_type_id.asc()).all()


def test_bulk_allot_creates_one_allotment_per_pair(client, db, auth, admin, employee, employee2, casual, sick):
    allocations = [
        {"user_id": user.id, "leave_type_id": leave_type.id, "days": days}
        for user in (employee, employee2)
        for leave_type, days in ((casual, 5), (sick, 3))
    ]
    response = client.post("/api/leave/allot/bulk", json={"allocations": allocations}, headers=auth(admin))
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success_count"] == 4
    assert body["error_count"] == 0
    for item in body["results"]:
        assert item["kind"] == "allotment"
        assert item["status"] == "approved"
        assert item["allotted_by_user_id"] == admin.id
        assert item["remaining_days"] == item["days"]

    rows = _allotments(db)
    assert len(rows) == 4
    assert {(row.user_id, row.leave_type_id, row.days) for row in rows} == {
        (employee.id, casual.id, 5.0),
        (employee.id, sick.id, 3.0),
        (employee2.id, casual.id, 5.0),
        (employee2.id, sick.id, 3.0),
    }


def test_bulk_allot_rejects_non_positive_days(client, db, auth, admin, employee, casual):
    response = client.post(
        "/api/leave/allot/bulk",
        json={"allocations": [{"user_id": employee.id, "leave_type_id": casual.id, "days": 0}]},
        headers=auth(admin),
    )
    assert response.status_code == 422
    assert _allotments(db) == []


def test_short_day_allotment_needs_hours_or_minutes(client, db, auth, admin, employee, short_day):
    response = client.post(
        "/api/leave/allot",
        json={"user_id": employee.id, "leave_type_id": short_day.id, "hours": 0, "minutes": 0},
        headers=auth(admin),
    )
    assert response.status_code == 422
    assert _allotments(db) == []

    response = client.post(
        "/api/leave/allot",
        json={"user_id": employee.id, "leave_type_id": short_day.id, "hours": 2, "minutes": 30},
        headers=auth(admin),
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert (body["days"], body["hours"], body["minutes"]) == (0, 2, 30)
    assert (body["remaining_hours"], body["remaining_minutes"]) == (2, 30)


def test_duplicate_allotment_is_reported_per_item(client, auth, admin, employee, casual, sick):
    allocations = [
        {"user_id": employee.id, "leave_type_id": casual.id, "days": 5},
        {"user_id": employee.id, "leave_type_id": casual.id, "days": 2},
        {"user_id": employee.id, "leave_type_id": sick.id, "days": 3},
    ]
    response = client.post("/api/leave/allot/bulk", json={"allocations": allocations}, headers=auth(admin))
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success_count"] == 2
    assert body["errors"] == [{"user_id": employee.id, "leave_type_id": casual.id, "error": "Already allotted"}]


def test_allot_over_type_maximum_is_rejected(client, db, auth, admin, employee, sick):
    response = client.post(
        "/api/leave/allot",
        json={"user_id": employee.id, "leave_type_id": sick.id, "days": 11},
        headers=auth(admin),
    )
    assert response.status_code == 400
    assert "at most" in response.json()["detail"]
    assert _allotments(db) == []


def test_employee_cannot_allot(client, auth, employee, casual):
    response = client.post(
        "/api/leave/allot",
        json={"user_id": employee.id, "leave_type_id": casual.id, "days": 5},
        headers=auth(employee),
    )
    assert response.status_code == 403


def test_replace_allotments_is_idempotent(client, db, auth, admin, employee, casual, sick):
    body = {
        "allocations": [
            {"leave_type_id": casual.id, "days": 5},
            {"leave_type_id": sick.id, "days": 3, "carry_forward": True},
        ]
    }

    def snapshot():
        return [(row.leave_type_id, row.days, row.remaining_days, row.carry_forward) for row in _allotments(db, employee.id)]

    first = client.put(f"/api/leave/allot/users/{employee.id}", json=body, headers=auth(admin))
    assert first.status_code == 200, first.text
    after_first = snapshot()

    second = client.put(f"/api/leave/allot/users/{employee.id}", json=body, headers=auth(admin))
    assert second.status_code == 200, second.text
    assert snapshot() == after_first
    assert after_first == [(casual.id, 5.0, 5.0, False), (sick.id, 3.0, 3.0, True)]


def test_replace_failure_keeps_prior_allotments(client, db, auth, admin, employee, casual):
    created = client.post(
        "/api/leave/allot",
        json={"user_id": employee.id, "leave_type_id": casual.id, "days": 5},
        headers=auth(admin),
    )
    assert created.status_code == 201, created.text
    original_id = created.json()["id"]

    response = client.put(
        f"/api/leave/allot/users/{employee.id}",
        json={"allocations": [{"leave_type_id": casual.id, "days": 7}, {"leave_type_id": 9999, "days": 1}]},
        headers=auth(admin),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Leave type not found"

    rows = _allotments(db, employee.id)
    assert [(row.id, row.days) for row in rows] == [(original_id, 5.0)]


def test_replace_rejects_repeated_leave_type(client, auth, admin, employee, casual):
    response = client.put(
        f"/api/leave/allot/users/{employee.id}",
        json={"allocations": [{"leave_type_id": casual.id, "days": 2}, {"leave_type_id": casual.id, "days": 3}]},
        headers=auth(admin),
    )
    assert response.status_code == 422


def test_edit_allotment_recalculates_remaining(client, auth, admin, employee, casual):
    created = client.post(
        "/api/leave/allot",
        json={"user_id": employee.id, "leave_type_id": casual.id, "days": 5},
        headers=auth(admin),
    ).json()

    response = client.patch(f"/api/leave/{created['id']}", json={"days": 8}, headers=auth(admin))
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["days"] == 8
    assert body["remaining_days"] == 8


def _allot(client, auth, admin, employee, leave_type, **quantity):
    response = client.post(
        "/api/leave/allot",
        json={"user_id": employee.id, "leave_type_id": leave_type.id, **quantity},
        headers=auth(admin),
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_edit_days_respects_leave_type_maximum(client, db, auth, admin, employee, casual):
    created = _allot(client, auth, admin, employee, casual, days=5)

    response = client.patch(f"/api/leave/{created['id']}", json={"days": 500}, headers=auth(admin))
    assert response.status_code == 400
    assert "at most" in response.json()["detail"]
    assert [row.days for row in _allotments(db, employee.id)] == [5.0]


def test_edit_to_already_allotted_type_is_rejected(client, auth, admin, employee, casual, sick):
    created = _allot(client, auth, admin, employee, casual, days=5)
    _allot(client, auth, admin, employee, sick, days=3)

    response = client.patch(f"/api/leave/{created['id']}", json={"leave_type_id": sick.id}, headers=auth(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == "This leave type is already allotted to the employee"


def test_edit_to_short_day_type_requires_hours(client, db, auth, admin, employee, casual, short_day):
    created = _allot(client, auth, admin, employee, casual, days=5)

    bare = client.patch(f"/api/leave/{created['id']}", json={"leave_type_id": short_day.id}, headers=auth(admin))
    assert bare.status_code == 400
    assert bare.json()["detail"] == "Short Day Leave is allotted in hours and minutes"
    assert [(row.leave_type_id, row.days) for row in _allotments(db, employee.id)] == [(casual.id, 5.0)]

    response = client.patch(
        f"/api/leave/{created['id']}",
        json={"leave_type_id": short_day.id, "minutes": 90},
        headers=auth(admin),
    )
    assert response.status_code == 422

    response = client.patch(
        f"/api/leave/{created['id']}",
        json={"leave_type_id": short_day.id, "hours": 3},
        headers=auth(admin),
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert (body["leave_type_id"], body["days"], body["hours"], body["minutes"]) == (short_day.id, 0.0, 3, 0)
    assert (body["remaining_hours"], body["remaining_minutes"]) == (3, 0)


def test_edit_to_day_type_requires_days(client, auth, admin, employee, casual, short_day):
    created = _allot(client, auth, admin, employee, short_day, hours=2)

    bare = client.patch(f"/api/leave/{created['id']}", json={"leave_type_id": casual.id}, headers=auth(admin))
    assert bare.status_code == 400
    assert bare.json()["detail"] == "Casual Leave is allotted in days"

    response = client.patch(
        f"/api/leave/{created['id']}",
        json={"leave_type_id": casual.id, "days": 4},
        headers=auth(admin),
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert (body["leave_type_id"], body["days"], body["hours"], body["minutes"]) == (casual.id, 4.0, 0, 0)
    assert body["remaining_days"] == 4.0
