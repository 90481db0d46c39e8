from fastapi.testclient import TestClient


def test_health(client: TestClient):
    response = client.get("/utility/health")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ok"
    assert response.headers["X-Request-ID"]


def test_storage_status(client: TestClient):
    response = client.get("/utility/storage")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["active"] == "relational"
    assert data["missing_tables"] == []
    assert data["fallback_reason"] is None


def test_unknown_route_uses_error_envelope(client: TestClient):
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
