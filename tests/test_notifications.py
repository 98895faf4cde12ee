from __future__ import annotations

from hrms.models.enums import NotificationType
from hrms.services.notifications import create_notification


def _notify(db, user, notif_type=NotificationType.GENERAL, title="Hello"):
    notification = create_notification(db, user_id=user.id, notif_type=notif_type, title=title, message=f"{title} body")
    db.commit()
    return notification


def test_list_is_newest_first_and_honours_since_id(client, db, auth, employee, employee2):
    first = _notify(db, employee, title="First")
    second = _notify(db, employee, title="Second")
    _notify(db, employee2, title="Someone else")

    response = client.get("/api/notifications", headers=auth(employee))
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [second.id, first.id]

    newer = client.get("/api/notifications", params={"since_id": first.id}, headers=auth(employee)).json()
    assert [item["title"] for item in newer] == ["Second"]


def test_dismissed_notifications_are_not_listed(client, db, auth, employee):
    keep = _notify(db, employee, title="Keep")
    drop = _notify(db, employee, title="Drop")

    dismissed = client.patch(f"/api/notifications/{drop.id}/dismiss", headers=auth(employee))
    assert dismissed.status_code == 200
    assert dismissed.json()["dismissed"] is True
    assert dismissed.json()["read_at"] is not None

    listed = client.get("/api/notifications", headers=auth(employee)).json()
    assert [item["id"] for item in listed] == [keep.id]


def test_unread_count_groups_by_type(client, db, auth, employee):
    _notify(db, employee, NotificationType.LEAVE_APPROVED)
    _notify(db, employee, NotificationType.LEAVE_APPROVED)
    read = _notify(db, employee, NotificationType.ANNOUNCEMENT)
    client.post(f"/api/notifications/{read.id}/read", headers=auth(employee))

    counts = client.get("/api/notifications/unread-count", headers=auth(employee)).json()
    assert counts == {"total": 2, "by_type": {"leave_approved": 2}}


def test_read_all_marks_everything(client, db, auth, employee):
    _notify(db, employee)
    _notify(db, employee)

    response = client.post("/api/notifications/read-all", headers=auth(employee))
    assert response.json() == {"marked": 2}
    unread = client.get("/api/notifications", params={"unread_only": True}, headers=auth(employee)).json()
    assert unread == []


def test_cannot_touch_another_users_notification(client, db, auth, employee, employee2):
    other = _notify(db, employee2)
    assert client.post(f"/api/notifications/{other.id}/read", headers=auth(employee)).status_code == 404


def test_admin_can_send_notification(client, auth, admin, employee):
    response = client.post(
        "/api/notifications",
        json={"user_id": employee.id, "title": "Policy update", "message": "Please read the new policy"},
        headers=auth(admin),
    )
    assert response.status_code == 201, response.text
    assert response.json()["payload_json"] == {"sent_by": admin.id}

    inbox = client.get("/api/notifications", headers=auth(employee)).json()
    assert [item["title"] for item in inbox] == ["Policy update"]

    forbidden = client.post(
        "/api/notifications",
        json={"user_id": admin.id, "title": "Hi", "message": "Hi"},
        headers=auth(employee),
    )
    assert forbidden.status_code == 403
