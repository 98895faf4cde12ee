from __future__ import annotations

from hrms.models.enums import NotificationType
from hrms.models.notification import Notification


def _post(client, headers, content, **extra):
    return client.post("/api/feed", json={"content": content, **extra}, headers=headers)


def _mention_notifications(db):
    return db.query(Notification).filter(Notification.type == NotificationType.FEED_MENTION).all()


def test_mentions_by_first_name_and_email_notify_each_user(client, db, auth, hr, employee, employee2):
    response = _post(client, auth(hr), "  @Vikram please review the rota, cc @asha@example.com  ")
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["content"] == "@Vikram please review the rota, cc @asha@example.com"
    assert body["author"]["id"] == hr.id
    assert sorted(user["id"] for user in body["mentions"]) == sorted([employee.id, employee2.id])

    notified = _mention_notifications(db)
    assert sorted(n.user_id for n in notified) == sorted([employee.id, employee2.id])
    assert all(n.payload_json["post_id"] == body["id"] for n in notified)


def test_plain_email_addresses_and_self_mentions_do_not_notify(client, db, auth, employee, employee2):
    body = _post(client, auth(employee), "Mail vikram@example.com, or ping @asha").json()
    assert [user["id"] for user in body["mentions"]] == [employee.id]
    assert _mention_notifications(db) == []


def test_explicit_mentions_are_validated(client, db, auth, employee, employee2):
    body = _post(client, auth(employee), "Thanks for the help!", mentioned_user_ids=[employee2.id]).json()
    assert [user["id"] for user in body["mentions"]] == [employee2.id]

    unknown = _post(client, auth(employee), "Hello", mentioned_user_ids=[9999])
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "Unknown users: [9999]"


def test_blank_posts_are_rejected(client, auth, employee):
    assert _post(client, auth(employee), "   ").status_code == 422
    assert _post(client, auth(employee), "x" * 5001).status_code == 422


def test_feed_lists_newest_first_and_pages_backwards(client, auth, employee, employee2):
    ids = [_post(client, auth(employee), f"Post {n}").json()["id"] for n in range(3)]

    listed = client.get("/api/feed", headers=auth(employee2)).json()
    assert [item["id"] for item in listed] == list(reversed(ids))

    older = client.get("/api/feed", params={"before_id": ids[2], "limit": 1}, headers=auth(employee2)).json()
    assert [item["id"] for item in older] == [ids[1]]


def test_only_author_or_privileged_can_delete(client, auth, hr, employee, employee2):
    first = _post(client, auth(employee), "Lunch at one?").json()
    second = _post(client, auth(employee), "Standup moved").json()

    assert client.delete(f"/api/feed/{first['id']}", headers=auth(employee2)).status_code == 403
    assert client.delete(f"/api/feed/{first['id']}", headers=auth(employee)).status_code == 204
    assert client.delete(f"/api/feed/{second['id']}", headers=auth(hr)).status_code == 204
    assert client.delete(f"/api/feed/{second['id']}", headers=auth(hr)).status_code == 404
    assert client.get("/api/feed", headers=auth(employee)).json() == []
