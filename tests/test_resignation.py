from __future__ import annotations

import pytest

from hrms.models.enums import ClearanceStatus
from hrms.services.resignation import derive_clearance_status


def _clearances(**statuses):
    departments = ("reporting_manager", "it", "admin", "finance")
    return {name: {"status": statuses.get(name, "pending")} for name in departments}


@pytest.mark.parametrize(
    "clearances, expected",
    [
        (_clearances(reporting_manager="approved", it="approved", admin="approved", finance="approved"), ClearanceStatus.APPROVED),
        (_clearances(reporting_manager="approved", it="rejected"), ClearanceStatus.REJECTED),
        (_clearances(), ClearanceStatus.PENDING),
        (_clearances(it="approved"), ClearanceStatus.IN_PROGRESS),
        (None, ClearanceStatus.PENDING),
    ],
)
def test_derive_clearance_status(clearances, expected):
    assert derive_clearance_status(clearances) == expected


def _submit(client, headers):
    response = client.post(
        "/api/resignation",
        json={
            "resignation_date": "2026-04-30",
            "reason": "Relocating",
            "assets": "Laptop, Badge",
            "notice_period_start_date": "2026-04-01",
            "notice_period_end_date": "2026-04-30",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _process(client, headers, resignation_id, **update):
    return client.patch(f"/api/resignation/{resignation_id}/process", json=update, headers=headers)


def test_submit_normalises_assets_and_blocks_second_pending(client, auth, employee):
    created = _submit(client, auth(employee))
    assert created["status"] == "pending"
    assert created["assets"] == ["Laptop", "Badge"]
    assert created["clearance_status"] == "pending"
    assert created["exit_progress"] == 0

    again = client.post(
        "/api/resignation",
        json={"resignation_date": "2026-05-31", "reason": "Again"},
        headers=auth(employee),
    )
    assert again.status_code == 400


def test_rejection_requires_reason(client, auth, admin, employee):
    created = _submit(client, auth(employee))
    response = client.post(
        f"/api/resignation/{created['id']}/decision",
        json={"status": "rejected"},
        headers=auth(admin),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Rejection reason is required"


def test_pending_resignation_cannot_be_processed(client, auth, admin, employee):
    created = _submit(client, auth(employee))
    response = _process(client, auth(admin), created["id"], field="assets_returned", value=True)
    assert response.status_code == 400
    assert response.json()["detail"] == "Only approved resignations can be processed"


def test_exit_process_flow(client, db, auth, admin, hr, employee):
    created = _submit(client, auth(employee))
    decided = client.post(
        f"/api/resignation/{created['id']}/decision",
        json={"status": "approved"},
        headers=auth(hr),
    )
    assert decided.status_code == 200, decided.text
    assert decided.json()["status"] == "approved"

    step = _process(client, auth(hr), created["id"], field="knowledge_transfer_completed", value=True, notes="Docs handed over")
    assert step.status_code == 200, step.text
    body = step.json()
    assert body["status"] == "in-progress"
    assert body["handover_notes"] == "Docs handed over"
    assert body["handover_completed_date"] is not None

    for department in ("reporting_manager", "it", "admin"):
        body = _process(client, auth(hr), created["id"], field="clearance", department=department, status="approved").json()
    assert body["clearance_status"] == "in-progress"
    body = _process(client, auth(hr), created["id"], field="clearance", department="finance", status="approved").json()
    assert body["clearance_status"] == "approved"
    assert body["clearances"]["finance"]["approved_by"] == hr.id

    body = _process(client, auth(hr), created["id"], field="fnf_status", status="completed", amount="12500.50").json()
    assert body["fnf_status"] == "completed"
    assert body["fnf_processed_date"] is not None

    body = _process(
        client,
        auth(hr),
        created["id"],
        field="exit_documents",
        files={"experience_letter": "https://files.example.com/exp.pdf"},
    ).json()
    assert body["exit_documents"]["experience_letter"] == "https://files.example.com/exp.pdf"
    assert "uploaded_at" in body["exit_documents"]

    closed = _process(client, auth(admin), created["id"], field="exit_closed", value=True)
    assert closed.status_code == 200, closed.text
    body = closed.json()
    assert body["status"] == "completed"
    assert body["exit_closed_by_user_id"] == admin.id
    assert 0 < body["exit_progress"] < 100


def test_invalid_clearance_status_is_rejected(client, auth, admin, employee):
    created = _submit(client, auth(employee))
    client.post(f"/api/resignation/{created['id']}/decision", json={"status": "approved"}, headers=auth(admin))
    response = _process(client, auth(admin), created["id"], field="clearance", department="it", status="in-progress")
    assert response.status_code == 422


def test_system_access_deactivation_locks_out_employee(client, db, auth, admin, employee):
    created = _submit(client, auth(employee))
    client.post(f"/api/resignation/{created['id']}/decision", json={"status": "approved"}, headers=auth(admin))
    headers = auth(employee)

    response = _process(client, auth(admin), created["id"], field="system_access_deactivated", value=True)
    assert response.status_code == 200, response.text
    assert response.json()["system_access_deactivated"] is True

    db.refresh(employee)
    assert employee.is_active is False
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_employee_may_withdraw_only_pending(client, auth, admin, employee):
    created = _submit(client, auth(employee))
    client.post(
        f"/api/resignation/{created['id']}/decision",
        json={"status": "rejected", "rejection_reason": "Counter offer accepted"},
        headers=auth(admin),
    )
    response = client.delete(f"/api/resignation/{created['id']}", headers=auth(employee))
    assert response.status_code == 400

    second = _submit(client, auth(employee))
    assert client.delete(f"/api/resignation/{second['id']}", headers=auth(employee)).status_code == 204


def test_employees_only_see_their_own(client, auth, admin, employee, employee2):
    _submit(client, auth(employee))
    _submit(client, auth(employee2))
    assert len(client.get("/api/resignation", headers=auth(employee)).json()) == 1
    assert len(client.get("/api/resignation", headers=auth(admin)).json()) == 2


def test_only_employees_can_submit(client, auth, admin, hr):
    body = {"resignation_date": "2026-04-30", "reason": "Relocating"}
    for user in (admin, hr):
        response = client.post("/api/resignation", json=body, headers=auth(user))
        assert response.status_code == 403
        assert response.json()["detail"] == "Only employees can submit resignations"


def test_handover_notes_accepted_at_submission(client, auth, employee):
    response = client.post(
        "/api/resignation",
        json={"resignation_date": "2026-04-30", "reason": "Relocating", "handover_notes": "Runbooks in the wiki"},
        headers=auth(employee),
    )
    assert response.status_code == 201, response.text
    assert response.json()["handover_notes"] == "Runbooks in the wiki"
