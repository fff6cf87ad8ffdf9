"""
Tests for the application shell: status endpoints, problem responses and
bearer-token resolution.
"""
from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from tenant_admin.auth.dependencies import get_current_user_id, get_token_issuer
from tenant_admin.auth.jwt_auth import TokenIssuer
from tenant_admin.errors import AccountLocked, ConflictAlreadyPending, register_exception_handlers
from tests.utils import ProblemResponseHelper


@pytest.fixture
def probe_app(test_settings):
    """Small app exercising the error handlers and auth dependency"""
    app = FastAPI()
    register_exception_handlers(app)
    app.dependency_overrides[get_token_issuer] = lambda: TokenIssuer(test_settings)

    @app.get("/whoami")
    def whoami(user_id: int = Depends(get_current_user_id)):
        return {"user_id": user_id}

    @app.get("/locked")
    def locked():
        raise AccountLocked(remaining=timedelta(minutes=9, seconds=30))

    @app.get("/conflict")
    def conflict():
        raise ConflictAlreadyPending()

    @app.get("/boom")
    def boom():
        raise RuntimeError("database password is hunter2")

    return app


@pytest.mark.api
class TestStatusEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_status(self, client):
        response = client.get("/api/v1/status")
        assert response.status_code == 200
        assert response.json()["environment"] == "test"

    def test_mailer_follows_dispatch_flag(self, client):
        assert client.app.state.mailer.enabled is False


@pytest.mark.api
class TestProblemResponses:

    def test_service_error_rendered_as_problem(self, probe_app):
        with TestClient(probe_app) as client:
            body = ProblemResponseHelper.assert_problem(client.get("/conflict"), 409, "Conflict")
        assert body["instance"] == "/conflict"
        assert "pending invitation" in body["detail"]

    def test_account_locked_carries_retry_after(self, probe_app):
        with TestClient(probe_app) as client:
            body = ProblemResponseHelper.assert_problem(client.get("/locked"), 401, "Account Locked")
        assert body["retry_after_seconds"] == 570
        assert "10 minute" in body["detail"]

    def test_unexpected_error_is_opaque(self, probe_app):
        with TestClient(probe_app, raise_server_exceptions=False) as client:
            response = client.get("/boom")
        assert response.status_code == 500
        assert "hunter2" not in response.text
        assert response.json()["detail"] == "An unexpected error occurred"


@pytest.mark.api
@pytest.mark.auth
class TestBearerDependency:

    def test_valid_token(self, probe_app, test_settings):
        token = TokenIssuer(test_settings).issue(11)
        with TestClient(probe_app) as client:
            response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json() == {"user_id": 11}

    def test_missing_header(self, probe_app):
        with TestClient(probe_app) as client:
            ProblemResponseHelper.assert_problem(client.get("/whoami"), 401, "Unauthorized")

    def test_bad_token(self, probe_app):
        with TestClient(probe_app) as client:
            response = client.get("/whoami", headers={"Authorization": "Bearer nope"})
        ProblemResponseHelper.assert_problem(response, 401, "Unauthorized")
