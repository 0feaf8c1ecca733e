from __future__ import annotations

import pytest

from greythr.domains.payroll import service
from greythr.models import Notification


def generate(client, account, **body):
    return client.post("/api/payroll", json=body, headers=account.headers)


def test_generate_with_flat_components(client, hr, employee):
    response = generate(
        client, hr, userId=employee.user_id, period="2025-01", baseSalary=5000, allowances=500, deductions=200
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["grossSalary"] == 5500
    assert data["netPay"] == 5300
    assert data["netSalary"] == 5300
    assert data["status"] == "draft"
    assert data["allowances"] == {"other": 500}


def test_generate_twice_for_same_period_rejected(client, hr, employee):
    body = {"userId": employee.user_id, "period": "2025-01", "baseSalary": 5000, "allowances": 500, "deductions": 200}
    generate(client, hr, **body)

    response = generate(client, hr, **body)

    assert response.status_code == 400
    assert response.json()["message"] == "Payroll already exists for this period"


def test_default_components_when_omitted(client, hr, employee):
    response = generate(client, hr, employeeId=employee.employee_id, month=3, year=2025, basicSalary=50000)

    data = response.json()["data"]
    assert data["period"] == "2025-03"
    assert data["allowances"] == {"hra": 20000, "da": 5000, "transport": 2000, "medical": 1500, "other": 0}
    assert data["deductions"] == {"pf": 6000, "esi": 875, "tax": 5000, "other": 0}
    assert data["grossSalary"] == 78500
    assert data["netSalary"] == 66625


def test_explicit_empty_components_are_kept(client, hr, employee):
    data = generate(
        client, hr, userId=employee.user_id, period="2025-01", baseSalary=1000, allowances={}, deductions={}
    ).json()["data"]

    assert data["grossSalary"] == 1000
    assert data["netSalary"] == 1000


def test_period_or_month_year_required(client, hr, employee):
    response = generate(client, hr, userId=employee.user_id, baseSalary=1000)

    assert response.status_code == 400


@pytest.mark.parametrize("period", ["2025-13", "2025-1", "25-01"])
def test_malformed_period_rejected(client, hr, employee, period):
    assert generate(client, hr, userId=employee.user_id, period=period, baseSalary=1000).status_code == 400


def test_negative_amounts_rejected(client, hr, employee):
    response = generate(client, hr, userId=employee.user_id, period="2025-01", baseSalary=1000, allowances=-5)

    assert response.status_code == 400


def test_employee_cannot_generate(client, employee):
    response = generate(client, employee, userId=employee.user_id, period="2025-01", baseSalary=1000)

    assert response.status_code == 403


def test_update_recomputes_totals(client, hr, employee):
    payroll_id = generate(
        client, hr, userId=employee.user_id, period="2025-01", baseSalary=5000, allowances=500, deductions=200
    ).json()["data"]["id"]

    response = client.put(
        f"/api/payroll/{payroll_id}",
        json={"basicSalary": 6000, "deductions": {"tax": 600, "pf": 400}},
        headers=hr.headers,
    )

    data = response.json()["data"]
    assert data["grossSalary"] == 6500
    assert data["netSalary"] == 5500


def test_process_then_mark_paid(client, db, hr, employee):
    payroll_id = generate(client, hr, userId=employee.user_id, period="2025-01", baseSalary=1000).json()["data"]["id"]

    processed = client.put(f"/api/payroll/{payroll_id}/process", headers=hr.headers)
    assert processed.json()["data"]["status"] == "processed"
    assert processed.json()["data"]["payDate"] is not None

    again = client.put(f"/api/payroll/{payroll_id}/process", headers=hr.headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Payroll already processed"

    paid = client.put(f"/api/payroll/{payroll_id}/mark-paid", headers=hr.headers)
    assert paid.json()["data"]["status"] == "paid"

    titles = [n.title for n in db.query(Notification).filter(Notification.user_id == employee.user_id)]
    assert titles == ["Payroll Processed", "Salary Paid"]


def test_paid_payroll_is_frozen(client, hr, employee):
    payroll_id = generate(client, hr, userId=employee.user_id, period="2025-01", baseSalary=1000).json()["data"]["id"]
    client.put(f"/api/payroll/{payroll_id}/mark-paid", headers=hr.headers)

    edit = client.put(f"/api/payroll/{payroll_id}", json={"basicSalary": 2000}, headers=hr.headers)
    assert edit.status_code == 400
    assert edit.json()["message"] == "Paid payroll cannot be modified"

    process = client.put(f"/api/payroll/{payroll_id}/process", headers=hr.headers)
    assert process.json()["message"] == "Payroll already processed and paid"


def test_status_is_not_editable_through_update(client, hr, employee):
    payroll_id = generate(client, hr, userId=employee.user_id, period="2025-01", baseSalary=1000).json()["data"]["id"]

    response = client.put(f"/api/payroll/{payroll_id}", json={"status": "paid"}, headers=hr.headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Validation Error"
    rows = client.get(f"/api/payroll/{employee.user_id}", headers=hr.headers).json()["data"]
    assert [(row["status"], row["payDate"]) for row in rows] == [("draft", None)]


def test_null_basic_salary_rejected(client, hr, employee):
    payroll_id = generate(client, hr, userId=employee.user_id, period="2025-01", baseSalary=1000).json()["data"]["id"]

    response = client.put(f"/api/payroll/{payroll_id}", json={"basicSalary": None}, headers=hr.headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Validation Error"


def test_null_components_clear_the_breakdown(client, hr, employee):
    payroll_id = generate(
        client, hr, userId=employee.user_id, period="2025-01", baseSalary=1000, allowances=100, deductions=50
    ).json()["data"]["id"]

    response = client.put(f"/api/payroll/{payroll_id}", json={"allowances": None}, headers=hr.headers)

    data = response.json()["data"]
    assert data["allowances"] == {}
    assert data["grossSalary"] == 1000
    assert data["netSalary"] == 950


def test_bulk_generate_reports_failures(client, hr, employee, colleague):
    generate(client, hr, userId=colleague.user_id, period="2025-02", baseSalary=1000)

    response = client.post(
        "/api/payroll/bulk",
        json={
            "period": "2025-02",
            "basicSalaries": [
                {"employeeId": employee.employee_id, "basicSalary": 40000},
                {"employeeId": colleague.employee_id, "basicSalary": 40000},
                {"employeeId": 9999, "basicSalary": 40000},
            ],
        },
        headers=hr.headers,
    )

    data = response.json()["data"]
    assert data["generated"] == 1
    assert data["errors"] == 2
    assert data["details"]["results"][0]["employeeId"] == employee.employee_id
    assert {e["error"] for e in data["details"]["errors"]} == {
        "Payroll already exists for this period",
        "Employee not found",
    }


def test_listing_scopes_and_stats(client, hr, employee, colleague):
    generate(client, hr, userId=employee.user_id, period="2025-01", baseSalary=5000, allowances=500, deductions=200)
    generate(client, hr, userId=colleague.user_id, period="2025-01", baseSalary=1000, allowances=0, deductions=0)

    mine = client.get("/api/payroll", headers=employee.headers).json()
    assert [row["employeeId"] for row in mine["data"]] == [employee.employee_id]
    assert client.get("/api/payroll", headers=hr.headers).json()["pagination"]["total"] == 2
    assert client.get(f"/api/payroll/{colleague.user_id}", headers=employee.headers).status_code == 403

    stats = client.get("/api/payroll/stats", params={"month": 1, "year": 2025}, headers=hr.headers).json()["data"]
    assert stats["totalEmployees"] == 2
    assert stats["totalGrossSalary"] == 6500
    assert stats["totalNetSalary"] == 6300
    assert stats["byStatus"]["draft"]["count"] == 2
    assert stats["byDepartment"]["Engineering"]["count"] == 2


def test_parse_period():
    assert service.parse_period("2025-01") == (1, 2025)
    assert service.format_period(1, 2025) == "2025-01"


def test_flat_amount_becomes_other_component():
    assert service.as_components(250) == {"other": 250.0}
    assert service.as_components({"bonus": 10}) == {"bonus": 10.0}
    assert service.as_components(None) is None
