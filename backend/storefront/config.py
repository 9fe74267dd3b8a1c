# backend/storefront/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file in the working directory unless DATABASE_URL points elsewhere
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///storefront.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pool sizing; applied by storefront.database.engine_options()
    DB_POOL_SIZE = int(os.environ.get("DB_POOL_SIZE", "10"))
    DB_POOL_RECYCLE = int(os.environ.get("DB_POOL_RECYCLE", "1800"))
    DB_TIMEOUT_SECONDS = int(os.environ.get("DB_TIMEOUT_SECONDS", "60"))

    # Startup bootstrap
    AUTO_CREATE_SCHEMA = _env_bool("AUTO_CREATE_SCHEMA", True)
    SEED_WELCOME_VOUCHER = _env_bool("SEED_WELCOME_VOUCHER", True)

    # bcrypt cost factor for new password hashes
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Login is the only endpoint that retries transient connection errors
    LOGIN_RETRY_ATTEMPTS = int(os.environ.get("LOGIN_RETRY_ATTEMPTS", "3"))
    LOGIN_RETRY_BACKOFF_SECONDS = float(os.environ.get("LOGIN_RETRY_BACKOFF_SECONDS", "1.0"))

    # Ceiling for percentage vouchers without their own max_discount_cents (1000.00)
    PERCENT_DISCOUNT_CAP_CENTS = int(os.environ.get("PERCENT_DISCOUNT_CAP_CENTS", "100000"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }
