# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Shopper signup/login and admin login. Passwords are bcrypt hashes
(cost factor 12) and must pass validate_password_strength:
- Minimum 8 characters
- Uppercase, lowercase, digit and special character

Session tokens are handled separately (see session_service.py).
"""

import bcrypt
import re
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, UserAddress, UserContactPhone, Admin
from ..validation import ValidationError, parse_int
from ..database import is_transient
from .concurrency import run_with_retry
from storefront.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Bad credentials."""
    pass


def validate_password_strength(password: str) -> None:
    """Raises PasswordValidationError if the password is too weak."""
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-+=]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt with the configured cost factor (12 by default)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Not a bcrypt hash
        return False


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def signup(data: dict) -> User:
    """
    Create a shopper account with its address and phone in one transaction.

    Raises ValidationError for missing fields or a duplicate email/phone,
    PasswordValidationError for a weak password.
    """
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    phone = str(data.get("phone") or "").strip()

    if not name or not email or not password or not phone:
        raise ValidationError("Missing required personal information")

    for field in ("street_no", "house_no", "city", "country"):
        if data.get(field) in (None, ""):
            raise ValidationError("Missing required address information")

    street_no = parse_int(data["street_no"], "street_no")
    house_no = parse_int(data["house_no"], "house_no")
    email = _normalize_email(email)

    if db.session.query(User.id).filter_by(email=email).first():
        raise ValidationError("Email address is already in use")
    if db.session.query(UserContactPhone.id).filter_by(phone=phone).first():
        raise ValidationError("Phone number is already in use")

    user = User(name=name, email=email, password_hash=hash_password(password))
    user.address = UserAddress(
        street_no=street_no,
        house_no=house_no,
        block_name=(data.get("block_name") or "").strip() or None,
        society=(data.get("society") or "").strip() or None,
        city=str(data["city"]).strip(),
        country=str(data["country"]).strip(),
    )
    user.phones.append(UserContactPhone(phone=phone))

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email or phone
        db.session.rollback()
        raise ValidationError("Email address or phone number is already in use")

    current_app.logger.info("Created user account %s", user.id)
    return user


def authenticate_user(email: str, password: str) -> User | None:
    """
    Shopper login.

    Transient connection failures (reset, timeout) are retried with a fixed
    backoff, LOGIN_RETRY_ATTEMPTS in total. Everything else propagates.
    Returns None on bad credentials.
    """
    email = _normalize_email(email)

    def _attempt():
        user = db.session.query(User).filter_by(email=email).first()
        if not user or not verify_password(password, user.password_hash):
            return None
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return run_with_retry(
        _attempt,
        attempts=current_app.config.get("LOGIN_RETRY_ATTEMPTS", 3),
        backoff_base=current_app.config.get("LOGIN_RETRY_BACKOFF_SECONDS", 1.0),
        exponential=False,
        retry_on=is_transient,
    )


def authenticate_admin(email: str, password: str) -> Admin | None:
    admin = db.session.query(Admin).filter_by(email=_normalize_email(email)).first()
    if not admin or not verify_password(password, admin.password_hash):
        return None
    return admin


def create_admin(name: str, email: str, password: str) -> Admin:
    email = _normalize_email(email)
    if db.session.query(Admin.id).filter_by(email=email).first():
        raise ValidationError("Admin email already exists")

    admin = Admin(name=name.strip(), email=email, password_hash=hash_password(password))
    db.session.add(admin)
    db.session.commit()
    return admin


def change_admin_password(admin: Admin, current_password: str, new_password: str) -> None:
    """Raises AuthError if current_password is wrong."""
    if not verify_password(current_password, admin.password_hash):
        raise AuthError("Current password is incorrect")
    admin.password_hash = hash_password(new_password)
    db.session.commit()
