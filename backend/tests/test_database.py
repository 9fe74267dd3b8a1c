"""
Infrastructure tests.

Verifies:
- /health reports the database round-trip
- Session absolute and idle timeouts
- CLI bootstrap commands are idempotent
"""

from datetime import timedelta

from sqlalchemy.exc import OperationalError

from storefront.database import bootstrap_schema, is_transient
from storefront.models import Admin, SessionToken, Voucher
from storefront.services import session_service
from storefront.services.session_service import PRINCIPAL_USER
from storefront.services.voucher_service import WELCOME_VOUCHER_CODE
from storefront.time_utils import utcnow


class TestHealth:
    def test_healthy(self, client, db_session):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["status"] == "healthy"

    def test_transient_classification(self):
        assert is_transient(OperationalError("SELECT 1", {}, Exception("connection reset by peer")))
        assert not is_transient(OperationalError("SELECT 1", {}, Exception("no such table: users")))
        assert not is_transient(ValueError("connection reset by peer"))


class TestSessionTimeouts:
    def test_absolute_expiry(self, db_session, user):
        session, token = session_service.create_session(PRINCIPAL_USER, user.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        assert session_service.validate_session(token) is None

    def test_idle_timeout_revokes(self, db_session, user):
        session, token = session_service.create_session(PRINCIPAL_USER, user.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.expire_all()
        assert db_session.get(SessionToken, session.id).is_revoked

    def test_use_bumps_last_used(self, db_session, user):
        session, token = session_service.create_session(PRINCIPAL_USER, user.id)
        stale = utcnow() - timedelta(minutes=30)
        session.last_used_at = stale
        db_session.commit()

        assert session_service.validate_session(token) is not None
        assert session.last_used_at > stale

    def test_only_hash_stored(self, db_session, user):
        session, token = session_service.create_session(PRINCIPAL_USER, user.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token


class TestCli:
    def test_bootstrap_is_idempotent(self, app, db_session):
        assert bootstrap_schema() == []

    def test_system_init_seeds_welcome_voucher_once(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        second = runner.invoke(args=["system", "init"])

        assert first.exit_code == 0
        assert f"Created voucher {WELCOME_VOUCHER_CODE}" in first.output
        assert "No admin accounts yet" in first.output
        assert "already exists" in second.output
        assert db_session.query(Voucher).filter_by(code=WELCOME_VOUCHER_CODE).count() == 1

    def test_admins_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "admins", "create", "--name", "Ops", "--email", "ops@store.local", "--password", "Password123!",
        ])
        listing = runner.invoke(args=["admins", "list"])

        assert "PASS Created admin" in result.output
        assert db_session.query(Admin).filter_by(email="ops@store.local").count() == 1
        assert "ops@store.local" in listing.output

    def test_admins_create_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "admins", "create", "--name", "Ops", "--email", "ops@store.local", "--password", "weak",
        ])

        assert "FAIL" in result.output
        assert db_session.query(Admin).count() == 0

    def test_purge_sessions(self, app, db_session, user):
        session, _ = session_service.create_session(PRINCIPAL_USER, user.id)
        session.is_revoked = True
        session.created_at = utcnow() - timedelta(days=30)
        db_session.commit()
        live, _ = session_service.create_session(PRINCIPAL_USER, user.id)

        result = app.test_cli_runner().invoke(args=["maintenance", "purge-sessions", "--retention-days", "7"])

        assert "Deleted 1 session token(s)" in result.output
        db_session.expire_all()
        assert db_session.query(SessionToken).count() == 1
