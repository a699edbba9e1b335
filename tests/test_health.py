"""Test health check endpoint and router wiring."""

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_health_check():
    """Test that /health returns 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_v1_routes_mounted():
    paths = app.openapi()["paths"]
    assert "/v1/registrations" in paths
    assert "/v1/admin/waitlist/stats" in paths
    assert "/v1/privacy/export" in paths
    assert "/v1/webhooks/registrants" in paths
