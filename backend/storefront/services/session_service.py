# Overview: Service-layer operations for session tokens; encapsulates business logic and database work.

"""
Session Token Management Service

Bearer tokens for both shoppers and back-office admins. A token row
records which kind of principal it was issued to, so a shopper token can
never pass an admin check.

- 32 random bytes from secrets, sent to the client as hex
- only the SHA-256 hash is stored
- 24-hour absolute timeout, 2-hour idle timeout
- revocable on logout
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta
from ..extensions import db
from ..models import SessionToken, User, Admin
from storefront.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

PRINCIPAL_USER = "user"
PRINCIPAL_ADMIN = "admin"


@dataclass
class SessionContext:
    """Resolved principal for a valid token."""
    principal_type: str
    principal: User | Admin
    session: SessionToken

    @property
    def is_admin(self) -> bool:
        return self.principal_type == PRINCIPAL_ADMIN


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _principal_model(principal_type: str):
    if principal_type == PRINCIPAL_USER:
        return User
    if principal_type == PRINCIPAL_ADMIN:
        return Admin
    raise ValueError(f"Unknown principal type: {principal_type}")


def create_session(principal_type: str, principal_id: int) -> tuple[SessionToken, str]:
    """
    Create a session for a user or admin.

    Returns (session_record, plaintext_token). The plaintext token is never
    stored.
    """
    model = _principal_model(principal_type)
    if db.session.get(model, principal_id) is None:
        raise ValueError(f"{principal_type.capitalize()} not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        principal_type=principal_type,
        principal_id=principal_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, now) -> None:
    session.is_revoked = True
    session.revoked_at = now
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a live token, or None.

    Idle sessions and sessions whose principal has been deleted are revoked
    on the way out. A successful check bumps last_used_at.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, now)
        return None

    principal = db.session.get(_principal_model(session.principal_type), session.principal_id)
    if principal is None:
        _revoke(session, now)
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(principal_type=session.principal_type, principal=principal, session=session)


def end_session(session: SessionToken) -> None:
    """Revoke the token behind an authenticated request (logout)."""
    _revoke(session, utcnow())


def revoke_all_sessions(principal_type: str, principal_id: int, keep_session_id: int | None = None) -> int:
    """Revoke every live token of one principal (password change, account removal)."""
    now = utcnow()
    query = db.session.query(SessionToken).filter_by(
        principal_type=principal_type,
        principal_id=principal_id,
        is_revoked=False,
    )
    if keep_session_id is not None:
        query = query.filter(SessionToken.id != keep_session_id)
    count = query.update({"is_revoked": True, "revoked_at": now}, synchronize_session=False)
    db.session.commit()
    return count
