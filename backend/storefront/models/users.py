from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class User(db.Model):
    """
    Storefront customer account.

    Credentials are bcrypt hashes (see services/auth_service.py). The
    address is 1:1 and phone numbers are 1:N, each phone unique across
    all users.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    address = db.relationship(
        "UserAddress", uselist=False, backref="user", cascade="all, delete-orphan", passive_deletes=True
    )
    phones = db.relationship(
        "UserContactPhone", backref="user", lazy=True, cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
            "phones": [p.phone for p in self.phones],
            "address": self.address.to_dict() if self.address else None,
        }


class UserAddress(db.Model):
    __tablename__ = "user_addresses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    street_no = db.Column(db.Integer, nullable=False)
    house_no = db.Column(db.Integer, nullable=False)
    block_name = db.Column(db.String(50), nullable=True)
    society = db.Column(db.String(100), nullable=True)
    city = db.Column(db.String(100), nullable=False)
    country = db.Column(db.String(100), nullable=False)

    def one_line(self) -> str:
        parts = [str(self.street_no), str(self.house_no), self.block_name, self.society, self.city, self.country]
        return " ".join(p for p in parts if p)

    def to_dict(self) -> dict:
        return {
            "street_no": self.street_no,
            "house_no": self.house_no,
            "block_name": self.block_name,
            "society": self.society,
            "city": self.city,
            "country": self.country,
        }


class UserContactPhone(db.Model):
    __tablename__ = "user_contact_phones"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    phone = db.Column(db.String(20), nullable=False, unique=True)


class Admin(db.Model):
    """Back-office account. Separate credential table, no relation to User."""
    __tablename__ = "admins"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Admin id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Bearer session for a user or an admin.

    Only the SHA-256 hash of the token is stored. principal_type tells
    which table principal_id points into.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_principal", "principal_type", "principal_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    principal_type = db.Column(db.String(16), nullable=False)  # user, admin
    principal_id = db.Column(db.Integer, nullable=False)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "principal_type": self.principal_type,
            "principal_id": self.principal_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
