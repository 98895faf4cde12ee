from __future__ import annotations

from hrms.services.employee_ids import assign_employee_id, backfill_employee_ids, generate_employee_id


def test_ids_follow_a_per_year_sequence(db):
    assert generate_employee_id(db, 2024) == "2024EMP-001"
    assert generate_employee_id(db, 2024) == "2024EMP-002"
    assert generate_employee_id(db, 2025) == "2025EMP-001"


def test_assign_keeps_existing_id_unless_forced(db, user_factory):
    user = user_factory("new@example.com", joining_year=2024)
    assert assign_employee_id(db, user) == "2024EMP-001"
    assert assign_employee_id(db, user) == "2024EMP-001"

    user.joining_year = 2025
    assert assign_employee_id(db, user, force=True) == "2025EMP-001"


def test_assign_without_joining_year_is_a_noop(db, user_factory):
    user = user_factory("nojoin@example.com", joining_year=None)
    assert assign_employee_id(db, user) is None


def test_backfill_covers_approved_users_only(db, user_factory):
    first = user_factory("first@example.com", joining_year=2023)
    second = user_factory("second@example.com", joining_year=2023)
    pending = user_factory("pending@example.com", joining_year=2023, is_approved=False)

    assert backfill_employee_ids(db) == 2
    db.commit()
    assert (first.emp_id, second.emp_id) == ("2023EMP-001", "2023EMP-002")
    assert pending.emp_id is None
    assert backfill_employee_ids(db) == 0


def test_approving_a_signup_assigns_an_id(client, auth, admin, user_factory):
    applicant = user_factory("applicant@example.com", joining_year=2026, is_approved=False)

    response = client.post(f"/api/users/{applicant.id}/approve", headers=auth(admin))
    assert response.status_code == 200, response.text
    assert response.json()["is_approved"] is True
    assert response.json()["emp_id"] == "2026EMP-001"

    again = client.post(f"/api/users/{applicant.id}/approve", headers=auth(admin))
    assert again.status_code == 400


def test_changing_joining_year_regenerates_the_id(client, auth, admin, user_factory, db):
    user = user_factory("mover@example.com", joining_year=2024)
    assign_employee_id(db, user)
    db.commit()

    response = client.patch(f"/api/users/{user.id}", json={"joining_year": 2025}, headers=auth(admin))
    assert response.status_code == 200, response.text
    assert response.json()["emp_id"] == "2025EMP-001"
