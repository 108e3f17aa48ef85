"""
Tests for the dashboard endpoint.
"""
import pytest
from fastapi.testclient import TestClient

from app.core import lifecycle
from app.core.config import settings
from shared.enums import UserRole


class TestDashboard:
    """GET /api/dashboard"""

    def test_client_dashboard(self, client: TestClient, client_user, reported_investigation, db):
        user, headers = client_user
        lifecycle.create_request(db, user.id, "Second request", "Still waiting for someone.")

        response = client.get("/api/dashboard", headers=headers)
        assert response.status_code == 200
        data = response.json()

        assert data["roles"] == ["client"]
        assert data["active_role"] == "client"
        assert data["statistics"]["investigator"] is None
        assert data["statistics"]["client"] == {
            "total_requests": 2,
            "submitted_requests": 1,
            "pending_requests": 0,
            "completed_requests": 1,
        }

        recent = data["recent_investigations"]["client"]
        assert len(recent) == 2
        assert data["recent_investigations"]["investigator"] == []

        unrated = data["pending_actions"]["client"]
        assert [r["investigation_request_id"] for r in unrated] == [str(reported_investigation.id)]
        assert unrated[0]["title"] == reported_investigation.title

    def test_rated_report_leaves_pending_actions(self, client: TestClient, client_user, reported_investigation):
        _, headers = client_user
        client.post(f"/api/reports/{reported_investigation.id}/rate", headers=headers, json={"rating": 2})

        data = client.get("/api/dashboard", headers=headers).json()
        assert data["pending_actions"]["client"] == []

    def test_investigator_dashboard(self, client: TestClient, investigator_user, pending_investigation, db, client_user):
        investigator, headers = investigator_user
        client_account, _ = client_user

        finished = lifecycle.create_request(db, client_account.id, "Finished job", "Completed and rated job.")
        lifecycle.accept_request(db, finished.id, investigator.id)
        lifecycle.complete_request(db, finished.id, investigator.id)
        lifecycle.submit_report(db, finished.id, investigator.id, "All done.")
        lifecycle.rate_report(db, finished.id, client_account.id, 4)

        data = client.get("/api/dashboard", headers=headers).json()

        assert data["statistics"]["client"] is None
        assert data["statistics"]["investigator"] == {
            "total_assignments": 2,
            "active_assignments": 1,
            "completed_assignments": 1,
            "average_rating": 4.0,
        }
        pending = data["pending_actions"]["investigator"]
        assert [p["id"] for p in pending] == [str(pending_investigation.id)]
        assert len(data["recent_investigations"]["investigator"]) == 2

    def test_dual_role_dashboard(self, client: TestClient, dual_user, headers_for):
        data = client.get("/api/dashboard", headers=headers_for(dual_user, UserRole.INVESTIGATOR)).json()
        assert data["active_role"] == "investigator"
        assert data["statistics"]["client"]["total_requests"] == 0
        assert data["statistics"]["investigator"]["total_assignments"] == 0
        assert data["statistics"]["investigator"]["average_rating"] is None

    def test_recent_list_is_capped(self, client: TestClient, client_user, db):
        user, headers = client_user
        for n in range(settings.DASHBOARD_RECENT_LIMIT + 2):
            lifecycle.create_request(db, user.id, f"Request {n}", "Filling up the dashboard.")

        data = client.get("/api/dashboard", headers=headers).json()
        assert len(data["recent_investigations"]["client"]) == settings.DASHBOARD_RECENT_LIMIT
        assert data["statistics"]["client"]["total_requests"] == settings.DASHBOARD_RECENT_LIMIT + 2
