"""
Authentication tests.

Verifies:
- Signup validation and duplicate detection
- Shopper and admin login issue bearer tokens
- Logout revokes the token
- Login errors are reported as a retryable server error
"""

import pytest
from sqlalchemy.exc import OperationalError

from storefront.services import auth_service, session_service
from storefront.services.auth_service import PasswordValidationError, validate_password_strength

from conftest import PASSWORD, auth_headers


SIGNUP = {
    "name": "Bilal",
    "email": "Bilal@Example.com",
    "password": PASSWORD,
    "phone": "03001234567",
    "street_no": 4,
    "house_no": 19,
    "city": "Karachi",
    "country": "Pakistan",
}


# =============================================================================
# SIGNUP
# =============================================================================


class TestSignup:
    def test_creates_account(self, client, db_session):
        resp = client.post("/signup", json=SIGNUP)

        assert resp.status_code == 201
        profile = client.get(f"/user/{resp.json['userId']}").json
        assert profile["email"] == "bilal@example.com"
        assert profile["phone"] == "03001234567"
        assert profile["shipping_address"] == "4 19 Karachi Pakistan"

    def test_missing_personal_information(self, client, db_session):
        resp = client.post("/signup", json={**SIGNUP, "phone": ""})
        assert resp.status_code == 400
        assert resp.json["error"] == "Missing required personal information"

    def test_missing_address_information(self, client, db_session):
        body = dict(SIGNUP)
        del body["city"]
        resp = client.post("/signup", json=body)
        assert resp.status_code == 400
        assert resp.json["error"] == "Missing required address information"

    def test_duplicate_email(self, client, db_session):
        client.post("/signup", json=SIGNUP)
        resp = client.post("/signup", json={**SIGNUP, "email": "bilal@example.com", "phone": "0300999"})
        assert resp.status_code == 400
        assert resp.json["error"] == "Email address is already in use"

    def test_duplicate_phone(self, client, db_session):
        client.post("/signup", json=SIGNUP)
        resp = client.post("/signup", json={**SIGNUP, "email": "other@example.com"})
        assert resp.status_code == 400
        assert resp.json["error"] == "Phone number is already in use"

    def test_weak_password(self, client, db_session):
        resp = client.post("/signup", json={**SIGNUP, "password": "password"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("password", ["Short1!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12"])
    def test_password_rules(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLogin:
    def test_shopper_login(self, client, db_session, user):
        resp = client.post("/login", json={"email": user.email.upper(), "password": PASSWORD})

        assert resp.status_code == 200
        assert resp.json["userId"] == user.id
        assert resp.json["username"] == "Ayesha"
        assert session_service.validate_session(resp.json["token"]) is not None

    def test_wrong_password(self, client, user):
        resp = client.post("/login", json={"email": user.email, "password": "Nope123!x"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/login", json={"email": "a@b.c"}).status_code == 400

    def test_persistent_database_error(self, client, db_session, monkeypatch, user):
        calls = []

        def _flaky(email, password):
            calls.append(email)
            raise OperationalError("SELECT 1", {}, Exception("connection reset by peer"))

        monkeypatch.setattr(auth_service, "authenticate_user", _flaky)
        resp = client.post("/login", json={"email": user.email, "password": PASSWORD})

        assert resp.status_code == 500
        assert "try again" in resp.json["error"]
        assert calls == [user.email]

    def test_transient_error_retried(self, app, db_session, monkeypatch, user):
        real_verify = auth_service.verify_password
        attempts = []

        def _verify(password, password_hash):
            attempts.append(1)
            if len(attempts) == 1:
                raise OperationalError("SELECT 1", {}, Exception("connection reset by peer"))
            return real_verify(password, password_hash)

        monkeypatch.setattr(auth_service, "verify_password", _verify)

        assert auth_service.authenticate_user(user.email, PASSWORD).id == user.id
        assert len(attempts) == 2

    def test_admin_login(self, client, admin):
        resp = client.post("/admin/login", json={"email": admin.email, "password": PASSWORD})

        assert resp.status_code == 200
        assert resp.json["adminId"] == admin.id
        context = session_service.validate_session(resp.json["token"])
        assert context.is_admin


class TestLogout:
    def test_logout_revokes_token(self, client, user_headers):
        assert client.post("/logout", headers=user_headers).status_code == 200
        assert client.post("/logout", headers=user_headers).status_code == 401

    def test_logout_without_token(self, client, db_session):
        assert client.post("/logout").status_code == 401

    def test_unknown_profile(self, client, db_session):
        assert client.get("/user/31337").status_code == 404

    def test_garbage_token(self, client, db_session):
        assert client.post("/logout", headers=auth_headers("not-a-token")).status_code == 401
