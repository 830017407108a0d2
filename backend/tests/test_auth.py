"""
Authentication endpoint tests.

Verifies:
- Registration creates staff accounts and rejects duplicate emails case-insensitively (409)
- Weak passwords are rejected
- Login records security events and returns a token
- Login and register are rate limited per address (429)
- Profile edits, including password change with the current password
"""

import pytest

from stockline.extensions import db
from stockline.models import SecurityEvent, User
from stockline.services import auth_service
from stockline.validation import ConflictError, ValidationError

from .conftest import PASSWORD, auth_headers, build_app, get_auth_token


def register(client, email="new@stockline.test", password=PASSWORD, **extra):
    body = {"name": "New User", "email": email, "password": password}
    body.update(extra)
    return client.post("/api/auth/register", json=body)


class TestRegister:

    def test_creates_staff_user(self, client):
        resp = register(client, role="admin")

        assert resp.status_code == 201
        assert resp.json["data"]["role"] == "staff"
        assert "password_hash" not in resp.json["data"]

    def test_duplicate_email_case_insensitive(self, client):
        assert register(client, email="dup@stockline.test").status_code == 201

        resp = register(client, email="DUP@Stockline.test")

        assert resp.status_code == 409
        assert db.session.query(User).count() == 1

    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_password(self, client, password):
        resp = register(client, password=password)
        assert resp.status_code == 400

    def test_invalid_email(self, client):
        assert register(client, email="not-an-email").status_code == 400


class TestLogin:

    def test_success(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"email": "STAFF@stockline.test", "password": PASSWORD})

        assert resp.status_code == 200
        assert resp.json["data"]["user"]["id"] == staff_user.id
        assert len(resp.json["data"]["token"]) == 64
        assert db.session.query(SecurityEvent).filter_by(event_type="LOGIN_SUCCESS").count() == 1

    def test_wrong_password(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"email": staff_user.email, "password": "Wrong123!"})

        assert resp.status_code == 401
        event = db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.success is False

    def test_inactive_user(self, client, staff_user):
        staff_user.is_active = False
        db.session.commit()

        resp = client.post("/api/auth/login", json={"email": staff_user.email, "password": PASSWORD})
        assert resp.status_code == 401

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "a@b.co"})
        assert resp.status_code == 400

    def test_logout_clears_cookie(self, app, staff_user):
        client = app.test_client()
        client.post("/api/auth/login", json={"email": staff_user.email, "password": PASSWORD})

        resp = client.post("/api/auth/logout")

        assert resp.status_code == 200
        assert "stockline_session=;" in resp.headers["Set-Cookie"]
        assert client.get("/api/auth/profile").status_code == 401


class TestRateLimits:
    """Uses the default limits: login 5 / 60s, register 3 / 300s."""

    @pytest.fixture
    def limited_app(self):
        app = build_app(LOGIN_RATE_LIMIT=5, REGISTER_RATE_LIMIT=3)
        with app.app_context():
            db.create_all()
            yield app
            db.session.remove()
            db.drop_all()

    def test_login_sixth_attempt_429(self, limited_app):
        client = limited_app.test_client()
        for _ in range(5):
            resp = client.post("/api/auth/login", json={"email": "nobody@stockline.test", "password": "x"})
            assert resp.status_code == 401

        resp = client.post("/api/auth/login", json={"email": "nobody@stockline.test", "password": "x"})

        assert resp.status_code == 429
        assert 1 <= resp.json["retry_after_seconds"] <= 61
        assert db.session.query(SecurityEvent).filter_by(event_type="RATE_LIMITED").count() == 1

    def test_register_fourth_attempt_429(self, limited_app):
        client = limited_app.test_client()
        for i in range(3):
            assert register(client, email=f"user{i}@stockline.test").status_code == 201

        resp = register(client, email="user9@stockline.test")

        assert resp.status_code == 429
        assert db.session.query(User).count() == 3

    def test_limits_are_per_address(self, limited_app):
        client = limited_app.test_client()
        for _ in range(5):
            client.post("/api/auth/login", json={"email": "a@stockline.test", "password": "x"})

        resp = client.post(
            "/api/auth/login",
            json={"email": "a@stockline.test", "password": "x"},
            environ_base={"REMOTE_ADDR": "10.0.0.2"},
        )
        assert resp.status_code == 401


class TestProfile:

    def test_update_name(self, app, client, staff_user):
        headers = auth_headers(get_auth_token(app, staff_user.email))
        resp = client.put("/api/auth/profile", json={"name": "Renamed", "role": "admin"}, headers=headers)

        assert resp.status_code == 200
        assert resp.json["data"]["name"] == "Renamed"
        assert resp.json["data"]["role"] == "staff"

    def test_password_change_requires_current(self, app, client, staff_user):
        headers = auth_headers(get_auth_token(app, staff_user.email))
        resp = client.put("/api/auth/profile", json={"password": "Changed123!"}, headers=headers)
        assert resp.status_code == 400

    def test_password_change_revokes_other_sessions(self, app, client, staff_user):
        current = auth_headers(get_auth_token(app, staff_user.email))
        other = auth_headers(get_auth_token(app, staff_user.email))

        resp = client.put(
            "/api/auth/profile",
            json={"password": "Changed123!", "current_password": PASSWORD},
            headers=current,
        )

        assert resp.status_code == 200
        assert client.get("/api/auth/profile", headers=current).status_code == 200
        assert client.get("/api/auth/profile", headers=other).status_code == 401
        assert auth_service.authenticate(staff_user.email, "Changed123!") is not None

    def test_failed_password_change_keeps_profile(self, app, client, staff_user):
        headers = auth_headers(get_auth_token(app, staff_user.email))

        resp = client.put(
            "/api/auth/profile",
            json={"name": "Renamed", "password": "Changed123!", "current_password": "wrong"},
            headers=headers,
        )

        assert resp.status_code == 400
        db.session.expire_all()
        assert db.session.get(User, staff_user.id).name == "Staff"
        assert auth_service.authenticate(staff_user.email, PASSWORD) is not None

    def test_weak_new_password_keeps_email(self, app, client, staff_user):
        headers = auth_headers(get_auth_token(app, staff_user.email))

        resp = client.put(
            "/api/auth/profile",
            json={"email": "moved@stockline.test", "password": "weak", "current_password": PASSWORD},
            headers=headers,
        )

        assert resp.status_code == 400
        db.session.expire_all()
        assert db.session.get(User, staff_user.id).email == "staff@stockline.test"

    def test_my_permissions(self, app, client, staff_user):
        headers = auth_headers(get_auth_token(app, staff_user.email))

        resp = client.get("/api/auth/permissions", headers=headers)

        assert resp.status_code == 200
        assert resp.json["data"]["role"] == "staff"
        codes = {perm["code"] for perm in resp.json["data"]["permissions"]}
        assert "CREATE_SALE" in codes
        assert "VOID_SALE" not in codes
        assert "VIEW_REPORTS" not in codes


class TestAuthService:

    def test_create_user_duplicate(self, app, staff_user):
        with pytest.raises(ConflictError):
            auth_service.create_user("Again", "Staff@Stockline.test", PASSWORD)

    def test_unknown_role(self, app):
        with pytest.raises(ValidationError):
            auth_service.create_user("X", "x@stockline.test", PASSWORD, role="owner")

    def test_password_hashed_with_bcrypt(self, app, staff_user):
        assert staff_user.password_hash.startswith("$2")
        assert auth_service.verify_password(PASSWORD, staff_user.password_hash)
        assert not auth_service.verify_password("nope", staff_user.password_hash)
