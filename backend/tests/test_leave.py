from __future__ import annotations

from datetime import date

from greythr.models import Leave, Notification


def apply(client, account, start="2025-01-10", end="2025-01-12", type="casual", reason="Family visit"):
    return client.post(
        "/api/leave",
        json={"type": type, "startDate": start, "endDate": end, "reason": reason},
        headers=account.headers,
    )


def test_days_are_inclusive(client, employee):
    response = apply(client, employee)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["days"] == 3
    assert data["status"] == "pending"


def test_single_day_leave(client, employee):
    assert apply(client, employee, "2025-03-03", "2025-03-03").json()["data"]["days"] == 1


def test_end_before_start_rejected(client, employee):
    response = apply(client, employee, "2025-01-12", "2025-01-10")

    assert response.status_code == 400
    assert response.json()["message"] == "Validation Error"


def test_unknown_type_rejected(client, employee):
    assert apply(client, employee, type="vacation").status_code == 400


def test_overlapping_request_rejected(client, employee):
    apply(client, employee, "2025-01-10", "2025-01-12")

    response = apply(client, employee, "2025-01-12", "2025-01-14")

    assert response.status_code == 400
    assert response.json()["message"] == "You have overlapping leave requests"


def test_days_recomputed_on_every_save(db, employee):
    leave = Leave(employee_id=employee.employee_id, type="sick", start_date=date(2025, 1, 10), end_date=date(2025, 1, 12))
    db.add(leave)
    db.commit()
    assert leave.days == 3

    leave.end_date = date(2025, 1, 20)
    db.commit()
    assert leave.days == 11

    leave.reason = "still sick"
    db.commit()
    assert leave.days == 11


def test_application_notifies_hr_and_admin(client, db, admin, hr, employee):
    response = apply(client, employee)
    leave_id = response.json()["data"]["id"]

    recipients = {n.user_id for n in db.query(Notification).filter(Notification.title == "New Leave Application")}
    assert recipients == {admin.user_id, hr.user_id}
    note = db.query(Notification).filter(Notification.user_id == hr.user_id).one()
    assert note.data == {"leaveId": leave_id, "employeeId": employee.employee_id}


def test_approve_records_approver_and_notifies(client, db, hr, employee):
    leave_id = apply(client, employee).json()["data"]["id"]

    response = client.put(f"/api/leave/{leave_id}/status", json={"status": "approved"}, headers=hr.headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "approved"
    assert data["approvedBy"] == hr.user_id
    assert data["approvedOn"] is not None
    note = db.query(Notification).filter(Notification.user_id == employee.user_id).one()
    assert note.title == "Leave Request Approved"
    assert note.type == "success"


def test_reject_with_reason(client, db, hr, employee):
    leave_id = apply(client, employee).json()["data"]["id"]

    response = client.put(
        f"/api/leave/{leave_id}/status",
        json={"status": "rejected", "rejectionReason": "Quarter close"},
        headers=hr.headers,
    )

    assert response.json()["data"]["rejectionReason"] == "Quarter close"
    note = db.query(Notification).filter(Notification.user_id == employee.user_id).one()
    assert note.message == "Your casual leave request has been rejected: Quarter close"


def test_decided_leave_cannot_be_decided_again(client, hr, employee):
    leave_id = apply(client, employee).json()["data"]["id"]
    client.put(f"/api/leave/{leave_id}/status", json={"status": "rejected"}, headers=hr.headers)

    response = client.put(f"/api/leave/{leave_id}/status", json={"status": "approved"}, headers=hr.headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Leave request has already been processed"


def test_employee_cannot_approve(client, employee):
    leave_id = apply(client, employee).json()["data"]["id"]

    response = client.put(f"/api/leave/{leave_id}/status", json={"status": "approved"}, headers=employee.headers)

    assert response.status_code == 403
    assert response.json()["message"] == "User role employee is not authorized to access this route"


def test_cancel_pending_only(client, hr, employee):
    first = apply(client, employee, "2025-01-10", "2025-01-12").json()["data"]["id"]
    second = apply(client, employee, "2025-02-10", "2025-02-12").json()["data"]["id"]
    client.put(f"/api/leave/{second}/status", json={"status": "approved"}, headers=hr.headers)

    assert client.delete(f"/api/leave/{first}", headers=employee.headers).status_code == 200
    blocked = client.delete(f"/api/leave/{second}", headers=employee.headers)
    assert blocked.status_code == 400
    assert blocked.json()["message"] == "Can only cancel pending leave requests"


def test_cannot_cancel_someone_elses_leave(client, employee, colleague):
    leave_id = apply(client, employee).json()["data"]["id"]

    assert client.delete(f"/api/leave/{leave_id}", headers=colleague.headers).status_code == 404


def test_listing_scopes(client, hr, employee, colleague):
    apply(client, employee)
    apply(client, colleague)

    mine = client.get("/api/leave", headers=employee.headers).json()
    assert mine["pagination"]["total"] == 1

    everyone = client.get("/api/leave", headers=hr.headers).json()
    assert everyone["pagination"]["total"] == 2

    by_user = client.get(f"/api/leave/{colleague.user_id}", headers=hr.headers).json()
    assert [row["employeeId"] for row in by_user["data"]] == [colleague.employee_id]

    assert client.get(f"/api/leave/{colleague.user_id}", headers=employee.headers).status_code == 403


def test_balance_counts_approved_days(client, hr, employee):
    leave_id = apply(client, employee, "2025-01-10", "2025-01-12").json()["data"]["id"]
    client.put(f"/api/leave/{leave_id}/status", json={"status": "approved"}, headers=hr.headers)

    response = client.get("/api/leave/balance", params={"year": 2025}, headers=employee.headers)

    casual = response.json()["data"]["casual"]
    assert casual == {"allocated": 12, "used": 3, "remaining": 9}


def test_stats(client, hr, employee):
    apply(client, employee, "2025-01-10", "2025-01-12")
    apply(client, employee, "2025-02-10", "2025-02-10", type="sick")

    data = client.get("/api/leave/stats", params={"year": 2025}, headers=hr.headers).json()["data"]

    assert data["byStatus"]["pending"] == 2
    assert data["byType"]["sick"] == 1
    assert data["totalLeaves"] == 2
    assert data["totalDays"] == 4
