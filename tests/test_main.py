from fastapi.testclient import TestClient

from flashsync.main import app


def test_root_and_routes_are_mounted():
    with TestClient(app) as client:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to FlashSync API V2!"}

        unauthenticated = client.get("/api/v2/stats/overview")
        assert unauthenticated.status_code == 401

    paths = app.openapi()["paths"]
    assert "/api/v2/cards/scopes/{scope_id}/due" in paths
    assert "/api/v2/cards/{content_unit_id}/attempt" in paths
    assert "/api/v2/cards/{content_unit_id}/history" in paths
    assert "/api/v2/scopes/{scope_id}" in paths
