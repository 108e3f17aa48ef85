"""
Tests for error responses and service endpoints.

- Operational errors: {"status": "fail", "detail": ...}
- Request validation: 400 with per-field errors
- Unexpected errors: generic 500 without internals
"""
import pytest
from fastapi.testclient import TestClient

from app.main import app


class TestErrorShape:
    """Error body shape."""

    def test_not_found_shape(self, client: TestClient, client_user):
        from uuid import uuid4

        _, headers = client_user
        response = client.get(f"/api/investigations/{uuid4()}", headers=headers)
        assert response.status_code == 404
        assert response.json() == {"status": "fail", "detail": "Investigation request not found"}

    def test_forbidden_shape(self, client: TestClient, investigator_user):
        _, headers = investigator_user
        response = client.post(
            "/api/investigations",
            headers=headers,
            json={"title": "Nope", "description": "Investigators cannot post."},
        )
        assert response.status_code == 403
        assert response.json() == {"status": "fail", "detail": "Requires client role"}

    def test_unauthorized_has_www_authenticate(self, client: TestClient):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_validation_error_shape(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={"email": "bad", "password": "x", "first_name": "A", "last_name": "Valid", "roles": ["client"]},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["status"] == "fail"
        assert data["detail"] == "Validation failed"
        fields = {e["field"] for e in data["errors"]}
        assert {"email", "password", "first_name"} <= fields
        assert all(e["message"] for e in data["errors"])

    def test_malformed_json(self, client: TestClient):
        response = client.post(
            "/api/auth/login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_unexpected_error_is_generic_500(self, client_user, monkeypatch):
        """Unhandled exceptions are reported without leaking details."""
        from app.core.rate_limit import BYPASS_HEADER
        from app.routers import dashboard

        def explode(*args, **kwargs):
            raise RuntimeError("database exploded: secret connection string")

        monkeypatch.setattr(dashboard, "client_statistics", explode)

        _, headers = client_user
        with TestClient(app, raise_server_exceptions=False) as raw_client:
            response = raw_client.get("/api/dashboard", headers={**headers, BYPASS_HEADER: "1"})

        assert response.status_code == 500
        assert response.json() == {"status": "error", "detail": "Internal server error"}
        assert "secret" not in response.text


class TestAppErrors:
    """AppError hierarchy."""

    def test_status_codes(self):
        from app.core.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError

        assert ValidationError().status_code == 400
        assert UnauthorizedError().status_code == 401
        assert ForbiddenError().status_code == 403
        assert NotFoundError().status_code == 404

    def test_status_label(self):
        from app.core.errors import AppError, NotFoundError

        assert NotFoundError("gone").status == "fail"
        assert AppError("boom").status == "error"
        assert AppError("teapot", status_code=418).status == "fail"

    def test_default_message(self):
        from app.core.errors import NotFoundError

        assert NotFoundError().message == "Resource not found"
        assert str(NotFoundError("Custom")) == "Custom"


class TestServiceEndpoints:
    """Root, health and metrics."""

    def test_root(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "investigation-hub"
        assert data["endpoints"]["investigations"] == "/api/investigations"

    def test_healthz(self, client: TestClient):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_readyz_reports_dependencies(self, client: TestClient):
        with patch_redis_ping(True):
            response = client.get("/readyz")
        assert response.status_code == 200
        data = response.json()
        assert data["db"] is True
        assert data["redis"] is True
        assert data["ok"] is True

    def test_readyz_redis_down(self, client: TestClient):
        with patch_redis_ping(False):
            response = client.get("/readyz")
        assert response.status_code == 503
        data = response.json()
        assert data["redis"] is False
        assert data["ok"] is False

    def test_metrics_exposed(self, client: TestClient, submitted_investigation):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "hub_investigations_created_total" in response.text
        assert "hub_investigation_transitions_total" in response.text


def patch_redis_ping(ok: bool):
    from unittest.mock import patch

    return patch("app.routers.health.check_redis", return_value=ok)
