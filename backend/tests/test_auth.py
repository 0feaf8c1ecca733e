from __future__ import annotations

from greythr.models import Employee, User


def login(client, email, password="password"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_login_returns_token_and_role(client, admin):
    response = login(client, "admin@greyhr.com")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["role"] == "admin"
    assert body["user"]["email"] == "admin@greyhr.com"
    assert "hashedPassword" not in body["user"]


def test_login_wrong_password_rejected(client, admin):
    response = login(client, "admin@greyhr.com", "not-the-password")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_login_unknown_email_rejected(client):
    response = login(client, "nobody@greyhr.com")

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid credentials"


def test_login_email_is_case_insensitive(client, hr):
    response = login(client, "HR@GreyHR.com")

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "hr"


def test_login_inactive_account_rejected(client, db, employee):
    db.get(User, employee.user_id).is_active = False
    db.commit()

    response = login(client, employee.email)

    assert response.status_code == 400
    assert response.json()["message"] == "Account is inactive"


def test_login_token_opens_profile(client, employee):
    token = login(client, employee.email).json()["token"]

    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["id"] == employee.user_id


def test_register_creates_user_and_employee(client, db):
    response = client.post(
        "/api/auth/register",
        json={"name": "Ada Lovelace", "email": "ada@greyhr.com", "password": "secret1", "department": "Engineering"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["role"] == "employee"
    user_id = body["user"]["id"]
    employee = db.query(Employee).filter(Employee.user_id == user_id).one()
    assert employee.full_name == "Ada Lovelace"
    assert employee.department == "Engineering"


def test_register_duplicate_email_rejected(client, employee):
    response = client.post(
        "/api/auth/register",
        json={"name": "Someone", "email": employee.email, "password": "secret1"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "User already exists with this email"


def test_register_cannot_choose_role(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Mallory", "email": "mallory@greyhr.com", "password": "secret1", "role": "admin"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Validation Error"


def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, no token"


def test_profile_rejects_garbage_token(client):
    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, token failed"


def test_update_profile(client, employee):
    response = client.put(
        "/api/auth/profile",
        json={"name": "Renamed", "avatar": "https://cdn.example.com/a.png"},
        headers=employee.headers,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["avatar"] == "https://cdn.example.com/a.png"


def test_profile_update_syncs_employee_record(client, employee):
    client.put("/api/auth/profile", json={"name": "Renamed", "department": "Platform"}, headers=employee.headers)

    record = client.get(f"/api/employee/user/{employee.user_id}", headers=employee.headers).json()

    assert record["fullName"] == "Renamed"
    assert record["department"] == "Platform"


def test_profile_name_cannot_be_null(client, employee):
    response = client.put("/api/auth/profile", json={"name": None}, headers=employee.headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Validation Error"
    assert client.get("/api/auth/profile", headers=employee.headers).json()["name"] == "Employee User"


def test_change_password(client, employee):
    wrong = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "nope", "newPassword": "brand-new"},
        headers=employee.headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["message"] == "Current password is incorrect"

    ok = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "password", "newPassword": "brand-new"},
        headers=employee.headers,
    )
    assert ok.status_code == 200

    assert login(client, employee.email).status_code == 400
    assert login(client, employee.email, "brand-new").status_code == 200
