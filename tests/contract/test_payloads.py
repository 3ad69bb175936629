from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import create_app


class TestPayloadValidation:
    def setup_method(self):
        app = create_app()
        self.ctx = TestClient(app)
        self.client = self.ctx.__enter__()

    def teardown_method(self):
        self.ctx.__exit__(None, None, None)

    def test_login_missing_password(self):
        resp = self.client.post("/api/v1/auth/login", json={"login": "sara.ali"})
        assert resp.status_code == 422

    def test_login_empty_login(self):
        resp = self.client.post("/api/v1/auth/login", json={"login": "", "password": "x"})
        assert resp.status_code == 422

    def test_signup_password_too_short(self):
        resp = self.client.post(
            "/api/v1/auth/signup", json={"email": "sara.ali@ienergy.local", "password": "12345"}
        )
        assert resp.status_code == 422

    def test_forgot_password_missing_login(self):
        resp = self.client.post("/api/v1/auth/forgot-password", json={})
        assert resp.status_code == 422

    def test_reset_password_too_short(self):
        resp = self.client.post("/api/v1/auth/reset-password", json={"password": "1"})
        assert resp.status_code == 422

    def test_recovery_session_missing_refresh_token(self):
        resp = self.client.post("/api/v1/auth/recovery-session", json={"access_token": "t"})
        assert resp.status_code == 422

    def test_view_path_too_long(self):
        resp = self.client.get("/api/v1/view", params={"path": "/" + "a" * 300})
        assert resp.status_code == 422

    def test_session_shape_without_login(self):
        resp = self.client.get("/api/v1/session")
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "NO_SESSION"
        assert data["effective"] is False
        assert data["started_at"] is None

    def test_error_shape_for_protected_call(self):
        resp = self.client.get("/api/v1/me")
        assert resp.status_code == 401
        assert set(resp.json()) == {"error_code", "message", "detail"}

    def test_health_response_shape(self):
        resp = self.client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["service"] == "leave-manager-client"
