# Overview: Service-layer operations for shopper accounts as seen from the back office and the profile page.

from __future__ import annotations

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import User
from ..validation import NotFoundError
from . import auth_service, session_service


def get_profile(user_id: int) -> dict:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    data = user.to_dict()
    data["username"] = user.name
    data["phone"] = user.phones[0].phone if user.phones else None
    data["shipping_address"] = user.address.one_line() if user.address else ""
    return data


def list_users() -> list[dict]:
    users = (
        db.session.query(User)
        .options(selectinload(User.address), selectinload(User.phones))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return [u.to_dict() for u in users]


def create_user(data: dict) -> User:
    """Back-office account creation; same rules as self-signup."""
    return auth_service.signup(data)


def delete_user(user_id: int) -> None:
    """Removes the account and everything hanging off it, and ends its sessions."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    db.session.delete(user)
    db.session.commit()
    session_service.revoke_all_sessions(session_service.PRINCIPAL_USER, user_id)
