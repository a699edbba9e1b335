"""Tests for the admin waitlist endpoints."""

from types import SimpleNamespace
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)

ADMIN = {"X-API-Key": "test-admin-key"}


class TestAuth:
    def test_missing_credentials_rejected(self, fake_db):
        response = client.get("/v1/admin/waitlist/stats")
        assert response.status_code == 401

    def test_wrong_api_key_rejected(self, fake_db):
        response = client.get("/v1/admin/waitlist/stats", headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    def test_bearer_token_for_admin_email(self, fake_db, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAILS", '["boss@example.com"]')
        with patch(
            "app.core.auth_middleware._email_from_identity_provider",
            return_value="boss@example.com",
        ):
            response = client.get(
                "/v1/admin/waitlist/stats", headers={"Authorization": "Bearer token"}
            )
        assert response.status_code == 200

    def test_bearer_token_for_non_admin_forbidden(self, fake_db, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAILS", '["boss@example.com"]')
        with patch(
            "app.core.auth_middleware._email_from_identity_provider",
            return_value="intern@example.com",
        ):
            response = client.get(
                "/v1/admin/waitlist/stats", headers={"Authorization": "Bearer token"}
            )
        assert response.status_code == 403

    def test_invalid_bearer_token(self, fake_db):
        with patch("app.core.auth_middleware._email_from_identity_provider", return_value=None):
            response = client.get(
                "/v1/admin/waitlist/stats", headers={"Authorization": "Bearer expired"}
            )
        assert response.status_code == 401


def test_identity_provider_lookup_lowercases_email():
    from app.core.auth_middleware import _email_from_identity_provider

    with patch("app.db.supabase_client.get_supabase") as mock_get_supabase:
        mock_get_supabase.return_value.auth.get_user.return_value = SimpleNamespace(
            user=SimpleNamespace(email="Boss@Example.com")
        )
        assert _email_from_identity_provider("token") == "boss@example.com"


def test_stats(fake_db):
    fake_db.add_registrant(status="pending")
    fake_db.add_registrant(status="approved")

    response = client.get("/v1/admin/waitlist/stats", headers=ADMIN)

    assert response.status_code == 200
    data = response.json()
    assert data["totalUsers"] == 2
    assert data["pendingCount"] == 1
    assert data["approvedCount"] == 1


def test_list_waitlist_filters_status(fake_db):
    fake_db.add_registrant(email="p@example.com")
    fake_db.add_registrant(email="w@example.com", status="waitlist")

    response = client.get("/v1/admin/waitlist?status=waitlist", headers=ADMIN)

    assert response.status_code == 200
    assert [r["email"] for r in response.json()] == ["w@example.com"]


def test_export_csv(fake_db):
    fake_db.add_registrant(email="p@example.com", name="Pat")

    response = client.get("/v1/admin/waitlist/export", headers=ADMIN)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "waitlist-pending.csv" in response.headers["content-disposition"]
    assert "Pat" in response.text


def test_bulk_approve(fake_db):
    for i in range(3):
        fake_db.add_registrant(email=f"{i}@example.com", createdAt=f"2026-01-0{i + 1}T00:00:00+00:00")

    response = client.post("/v1/admin/waitlist/bulk-approve", json={"count": 5}, headers=ADMIN)

    assert response.status_code == 200
    data = response.json()
    assert data["approvedCount"] == 3
    assert data["completed"] is True
    assert fake_db.count_registrants("approved") == 3


def test_bulk_approve_rejects_zero(fake_db):
    response = client.post("/v1/admin/waitlist/bulk-approve", json={"count": 0}, headers=ADMIN)
    assert response.status_code == 422


def test_status_update(fake_db):
    fake_db.add_registrant(email="a@example.com")

    response = client.patch(
        "/v1/admin/registrants/a@example.com/status",
        json={"status": "approved"},
        headers=ADMIN,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["approvedAt"] is not None


def test_status_update_illegal_transition(fake_db):
    fake_db.add_registrant(email="a@example.com", status="active")

    response = client.patch(
        "/v1/admin/registrants/a@example.com/status",
        json={"status": "pending"},
        headers=ADMIN,
    )

    assert response.status_code == 409


def test_status_update_unknown(fake_db):
    response = client.patch(
        "/v1/admin/registrants/ghost@example.com/status",
        json={"status": "approved"},
        headers=ADMIN,
    )
    assert response.status_code == 404


def test_priority(fake_db):
    row = fake_db.add_registrant(email="a@example.com", referralCode="MFOUR-AAAAA", waitlistPosition=10)
    fake_db.add_registrant(email="b@example.com", referredBy="MFOUR-AAAAA")

    response = client.get(f"/v1/admin/registrants/{row['id']}/priority", headers=ADMIN)

    assert response.status_code == 200
    data = response.json()
    assert data["referralBonus"] == 20
    assert data["calculatedPosition"] == 8


def test_priority_unknown(fake_db):
    response = client.get("/v1/admin/registrants/missing/priority", headers=ADMIN)
    assert response.status_code == 404


def test_top_referrers(fake_db):
    fake_db.add_registrant(email="a@example.com", referralCode="MFOUR-AAAAA")
    fake_db.add_registrant(email="b@example.com", referredBy="MFOUR-AAAAA")

    response = client.get("/v1/admin/referrers/top?limit=5", headers=ADMIN)

    assert response.status_code == 200
    assert response.json()[0]["totalReferrals"] == 1
    assert response.json()[0]["positionImprovement"] == 2


def test_process_deletion_request(fake_db):
    fake_db.add_registrant(email="a@example.com")
    created = client.post("/v1/privacy/deletion-requests", json={"email": "a@example.com"})
    request_id = created.json()["requestId"]

    response = client.post(
        f"/v1/admin/privacy/deletion-requests/{request_id}/process", headers=ADMIN
    )

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert fake_db.registrants == []


def test_process_unknown_deletion_request(fake_db):
    response = client.post("/v1/admin/privacy/deletion-requests/missing/process", headers=ADMIN)
    assert response.status_code == 404


def test_store_failure_returns_500(fake_db):
    fake_db.failing.add("count_registrants")

    response = client.get("/v1/admin/waitlist/stats", headers=ADMIN)

    assert response.status_code == 500
