from __future__ import annotations

from fastapi.testclient import TestClient


def test_health(client: TestClient):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json().get("status") == "ok"


def test_unknown_route_uses_envelope(client: TestClient):
    res = client.get("/api/v2/nothing-here")
    assert res.status_code == 404
    assert res.json() == {
        "success": False,
        "error": {"code": "NotFound", "message": "Not Found"},
    }


def test_wrong_method_uses_envelope(client: TestClient):
    res = client.put("/api/v2/ratings", json={})
    assert res.status_code == 405
    assert res.json()["error"]["code"] == "MethodNotAllowed"


def test_missing_query_parameters(client: TestClient):
    res = client.get("/api/v2/ratings", params={"targetType": "paper"})
    assert res.status_code == 400
    payload = res.json()
    assert payload["success"] is False
    assert payload["error"]["code"] == "ValidationError"
    assert "targetId" in payload["error"]["message"]
