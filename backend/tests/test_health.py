from __future__ import annotations

from greythr.core.config import settings


def test_healthcheck_reports_connections(client, employee):
    assert client.get("/health").json() == {"status": "ok", "environment": settings.env, "connections": 0}

    with client.websocket_connect(f"/ws?token={employee.token}") as ws:
        ws.receive_json()
        assert client.get("/health").json()["connections"] == 1


def test_root_banner(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["message"] == "GreytHR API running"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "API endpoint not found"}
