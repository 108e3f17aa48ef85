"""
Tests for role enforcement.

Roles:
- CLIENT: post requests, rate reports
- INVESTIGATOR: accept, decline, complete requests and submit reports

Authorization checks active grants; the token's active role only selects
which listing a caller sees.
"""
import pytest
from fastapi.testclient import TestClient
from uuid import uuid4

from shared.enums import UserRole


NEW_REQUEST = {
    "title": "Background check",
    "description": "Verify employment history for a new hire.",
}


class TestRBAC:
    """Role enforcement tests."""

    # =========================================================================
    # Investigator-only actions
    # =========================================================================

    def test_client_cannot_accept(self, client: TestClient, client_user, submitted_investigation):
        _, headers = client_user
        response = client.patch(
            f"/api/investigations/{submitted_investigation.id}/accept",
            headers=headers,
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Requires investigator role"

    def test_client_cannot_decline(self, client: TestClient, client_user, submitted_investigation):
        _, headers = client_user
        response = client.post(
            f"/api/investigations/{submitted_investigation.id}/decline",
            headers=headers,
        )
        assert response.status_code == 403

    def test_client_cannot_complete(self, client: TestClient, client_user, pending_investigation):
        _, headers = client_user
        response = client.patch(
            f"/api/investigations/{pending_investigation.id}/complete",
            headers=headers,
        )
        assert response.status_code == 403

    def test_client_cannot_submit_report(self, client: TestClient, client_user, completed_investigation):
        _, headers = client_user
        response = client.post(
            f"/api/reports/{completed_investigation.id}",
            headers=headers,
            json={"report_content": "Not my job."},
        )
        assert response.status_code == 403

    # =========================================================================
    # Client-only actions
    # =========================================================================

    def test_investigator_cannot_create_request(self, client: TestClient, investigator_user):
        _, headers = investigator_user
        response = client.post("/api/investigations", headers=headers, json=NEW_REQUEST)
        assert response.status_code == 403
        assert response.json()["detail"] == "Requires client role"

    def test_investigator_cannot_rate(self, client: TestClient, investigator_user, reported_investigation):
        _, headers = investigator_user
        response = client.post(
            f"/api/reports/{reported_investigation.id}/rate",
            headers=headers,
            json={"rating": 5},
        )
        assert response.status_code == 403

    # =========================================================================
    # Grants, not the active role, decide authorization
    # =========================================================================

    def test_dual_role_user_can_act_in_either_role(
        self, client: TestClient, dual_user, headers_for, submitted_investigation
    ):
        """A dual-role user acting as client may still accept requests."""
        headers = headers_for(dual_user, UserRole.CLIENT)
        response = client.patch(
            f"/api/investigations/{submitted_investigation.id}/accept",
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["investigator_id"] == str(dual_user.id)

    def test_revoked_grant_is_forbidden(self, client: TestClient, investigator_user, db, submitted_investigation):
        """Deactivating a grant takes effect on the next request."""
        from sqlalchemy import update
        from app.models.user import UserRole as Grant

        user, headers = investigator_user
        db.execute(update(Grant).where(Grant.user_id == user.id).values(is_active=False))
        db.commit()

        response = client.patch(
            f"/api/investigations/{submitted_investigation.id}/accept",
            headers=headers,
        )
        assert response.status_code == 403

    # =========================================================================
    # Authentication
    # =========================================================================

    def test_unauthenticated_requests_rejected(self, client: TestClient):
        for method, path in [
            ("get", "/api/investigations"),
            ("post", "/api/investigations"),
            ("get", "/api/dashboard"),
            ("get", "/api/users/profile"),
            ("get", f"/api/reports/{uuid4()}"),
        ]:
            response = getattr(client, method)(path)
            assert response.status_code in (401, 403), f"{method.upper()} {path}"

    def test_deactivated_user_token_rejected(self, client: TestClient, client_user, db):
        user, headers = client_user
        user.is_active = False
        db.commit()

        response = client.get("/api/investigations", headers=headers)
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found or inactive"

    def test_token_for_unknown_user_rejected(self, client: TestClient, headers_for):
        from app.models.user import User

        ghost = User(id=uuid4(), email="ghost@example.com")
        response = client.get("/api/auth/me", headers=headers_for(ghost, UserRole.CLIENT))
        assert response.status_code == 401
