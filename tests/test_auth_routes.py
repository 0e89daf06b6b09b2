import pytest
from fastapi.testclient import TestClient

from reachmai.database import Database
from reachmai.main import create_app
from reachmai.models.account import Account
from reachmai.models.profile import Profile
from reachmai.services.auth import AuthService

from conftest import bearer, login


class TestLogin:
    def test_login_returns_session_for_account(self, client, tokens, admin_account):
        body = login(client, "Director@Example.com", "director-pass-1")
        claims = tokens.verify(body["token"])
        assert claims["accountId"] == admin_account.id
        assert claims["email"] == "director@example.com"
        assert body["account"]["email"] == "director@example.com"
        assert [p["type"] for p in body["account"]["profiles"]] == ["admin"]

    def test_wrong_password(self, client, admin_account):
        response = client.post(
            "/api/auth/login", json={"email": "director@example.com", "password": "wrong-password"}
        )
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid credentials", "code": "INVALID_CREDENTIALS"}

    def test_unknown_email_looks_like_wrong_password(self, client):
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "whatever"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_rate_limited(self, settings, database, notifier):
        limited = settings.model_copy(update={"login_rate_limit_requests": 2})
        app = create_app(settings=limited, database=database, notifier=notifier)
        with TestClient(app) as client:
            for _ in range(2):
                response = client.post("/api/auth/login", json={"email": "x@example.com", "password": "nope"})
                assert response.status_code == 401
            response = client.post("/api/auth/login", json={"email": "x@example.com", "password": "nope"})
            assert response.status_code == 429
            assert response.json()["code"] == "RATE_LIMITED"
            assert int(response.headers["retry-after"]) > 0


class TestRegister:
    def test_register_and_fetch_me(self, client):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "Parent@Example.com",
                "password": "parent-pass-1",
                "profile": {"type": "parent", "firstName": "Paula", "lastName": "Parent"},
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["account"]["email"] == "parent@example.com"

        me = client.get("/api/auth/me", headers=bearer(body["token"]))
        assert me.status_code == 200
        assert me.json()["profiles"][0]["type"] == "parent"
        assert me.json()["profiles"][0]["firstName"] == "Paula"

    def test_register_existing_email(self, client, admin_account):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "director@example.com",
                "password": "another-pass",
                "profile": {"type": "adult", "firstName": "A", "lastName": "B"},
            },
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Account already exists", "code": "DUPLICATE_ACCOUNT"}

    def test_short_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "short@example.com",
                "password": "short",
                "profile": {"type": "adult", "firstName": "A", "lastName": "B"},
            },
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("profile_type", ["admin", "manager", "teacher"])
    def test_staff_profile_types_cannot_self_register(self, client, db, profile_type):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "climber@example.com",
                "password": "climber-pass-1",
                "profile": {"type": profile_type, "firstName": "Cli", "lastName": "Mber"},
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "PROFILE_TYPE_NOT_ALLOWED"
        assert db.query(Account).count() == 0

        login_attempt = client.post(
            "/api/auth/login", json={"email": "climber@example.com", "password": "climber-pass-1"}
        )
        assert login_attempt.status_code == 401


class TestProfiles:
    def test_add_profile_to_own_account(self, client, student_headers):
        response = client.post(
            "/api/profiles",
            headers=student_headers,
            json={"type": "adult", "firstName": "Sam", "lastName": "Student"},
        )
        assert response.status_code == 201, response.text
        assert response.json()["type"] == "adult"
        assert response.json()["isActive"] is True

        listed = client.get("/api/profiles", headers=student_headers)
        assert sorted(p["type"] for p in listed.json()) == ["adult", "student"]

    @pytest.mark.parametrize("profile_type", ["admin", "manager", "teacher"])
    def test_cannot_add_staff_profile(self, client, db, student_headers, profile_type):
        response = client.post(
            "/api/profiles",
            headers=student_headers,
            json={"type": profile_type, "firstName": "Sam", "lastName": "Student"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "PROFILE_TYPE_NOT_ALLOWED"
        assert db.query(Profile).filter(Profile.profile_type == profile_type).count() == 0

        assert client.get("/api/staff/invitations", headers=student_headers).status_code == 403

    def test_requires_bearer(self, client):
        assert client.get("/api/profiles").status_code == 401


class TestErrorHandling:
    def test_unexpected_error_is_opaque(self, settings, notifier, monkeypatch):
        def broken_authenticate(db, email, password):
            raise RuntimeError("connection to db-primary:5432 refused")

        monkeypatch.setattr(AuthService, "authenticate", staticmethod(broken_authenticate))
        app = create_app(settings=settings, database=Database("sqlite:///:memory:"), notifier=notifier)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.post(
                "/api/auth/login", json={"email": "director@example.com", "password": "director-pass-1"}
            )
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert "db-primary" not in response.text

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


@pytest.mark.parametrize("path", ["/api/staff/invitations", "/api/users"])
def test_management_routes_need_authentication(client, path):
    response = client.get(path)
    assert response.status_code == 401
