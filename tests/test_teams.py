from __future__ import annotations

from datetime import date

from hrms.models.enums import LeaveKind, LeaveStatus
from hrms.models.leave import Leave


def test_team_always_includes_its_leader(client, auth, admin, employee, employee2):
    response = client.post(
        "/api/teams",
        json={"name": "Platform", "leader_id": employee.id, "member_ids": [employee2.id]},
        headers=auth(admin),
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["leader"]["id"] == employee.id
    assert sorted(member["id"] for member in body["members"]) == sorted([employee.id, employee2.id])


def test_unknown_members_are_rejected(client, auth, admin, employee):
    response = client.post(
        "/api/teams",
        json={"name": "Ghosts", "leader_id": employee.id, "member_ids": [9999]},
        headers=auth(admin),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown users: [9999]"


def test_my_team_and_membership_checks(client, auth, admin, employee, employee2, user_factory):
    outsider = user_factory("outsider@example.com")
    team = client.post(
        "/api/teams",
        json={"name": "Design", "leader_id": employee.id, "member_ids": [employee2.id]},
        headers=auth(admin),
    ).json()

    mine = client.get("/api/teams/my-team", headers=auth(employee2))
    assert mine.status_code == 200
    assert mine.json()["id"] == team["id"]
    assert client.get("/api/teams/my-team", headers=auth(outsider)).json() is None

    assert client.get(f"/api/teams/{team['id']}", headers=auth(employee2)).status_code == 200
    assert client.get(f"/api/teams/{team['id']}", headers=auth(outsider)).status_code == 403
    assert client.get("/api/teams", headers=auth(employee)).status_code == 403


def test_update_replaces_members_but_keeps_leader(client, auth, hr, employee, employee2):
    team = client.post(
        "/api/teams",
        json={"name": "Ops", "leader_id": employee.id, "member_ids": [employee2.id]},
        headers=auth(hr),
    ).json()

    updated = client.patch(f"/api/teams/{team['id']}", json={"member_ids": []}, headers=auth(hr))
    assert updated.status_code == 200, updated.text
    assert [member["id"] for member in updated.json()["members"]] == [employee.id]

    assert client.delete(f"/api/teams/{team['id']}", headers=auth(hr)).status_code == 204
    assert client.get("/api/teams", headers=auth(hr)).json() == []


def test_team_members_on_leave_covers_only_teammates(client, db, auth, admin, employee, employee2, casual, user_factory):
    outsider = user_factory("outsider@example.com")
    client.post(
        "/api/teams",
        json={"name": "Platform", "leader_id": employee.id, "member_ids": [employee2.id]},
        headers=auth(admin),
    )

    def leave(user, status, start, end):
        return Leave(
            user_id=user.id,
            leave_type_id=casual.id,
            kind=LeaveKind.REQUEST,
            status=status,
            days=(end - start).days + 1,
            start_date=start,
            end_date=end,
        )

    db.add_all(
        [
            leave(employee2, LeaveStatus.APPROVED, date(2026, 3, 2), date(2026, 3, 3)),
            leave(employee2, LeaveStatus.REJECTED, date(2026, 3, 4), date(2026, 3, 4)),
            leave(employee2, LeaveStatus.PENDING, date(2026, 3, 20), date(2026, 3, 20)),
            leave(employee, LeaveStatus.PENDING, date(2026, 3, 5), date(2026, 3, 5)),
            leave(outsider, LeaveStatus.APPROVED, date(2026, 3, 3), date(2026, 3, 3)),
        ]
    )
    db.commit()
    week = {"start_date": "2026-03-01", "end_date": "2026-03-07"}

    leader_view = client.get("/api/leave/team-members-on-leave", params=week, headers=auth(employee)).json()
    assert [entry["user"]["id"] for entry in leader_view] == [employee2.id]
    assert [(item["leave_type_name"], item["status"]) for item in leader_view[0]["leaves"]] == [("Casual Leave", "approved")]

    member_view = client.get("/api/leave/team-members-on-leave", params=week, headers=auth(employee2)).json()
    assert [entry["user"]["id"] for entry in member_view] == [employee.id]

    assert client.get("/api/leave/team-members-on-leave", params=week, headers=auth(outsider)).json() == []
    backwards = {"start_date": "2026-03-07", "end_date": "2026-03-01"}
    assert client.get("/api/leave/team-members-on-leave", params=backwards, headers=auth(employee)).status_code == 400
