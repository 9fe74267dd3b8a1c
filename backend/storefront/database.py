# Overview: Connection pool ownership and idempotent schema bootstrap for the storefront.

"""
Database lifecycle helpers.

The engine (and its connection pool) belongs to the Flask app through
Flask-SQLAlchemy and lives as long as the app does. Sessions are scoped to
the app context, so every request gets its own session and returns its
connection to the pool at teardown.

Reconnect policy:
- pool_pre_ping tests a pooled connection before handing it out and
  transparently replaces dead ones.
- When a statement fails because the connection dropped, SQLAlchemy
  invalidates the whole pool; the handle_error listener below logs it.
- reset_pool() disposes the pool explicitly (health check failure, CLI).
"""

from __future__ import annotations

from flask import Flask, current_app
from sqlalchemy import event, inspect
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from .extensions import db


def engine_options(config) -> dict:
    """Build SQLALCHEMY_ENGINE_OPTIONS for the configured backend."""
    options = dict(config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    options.setdefault("pool_pre_ping", True)
    options.setdefault("pool_recycle", config.get("DB_POOL_RECYCLE", 1800))

    timeout = config.get("DB_TIMEOUT_SECONDS", 60)
    url = make_url(config["SQLALCHEMY_DATABASE_URI"])
    if url.get_backend_name() == "sqlite":
        # sqlite3 busy timeout; pool sizing does not apply to SQLite pools
        connect_args = options.setdefault("connect_args", {})
        connect_args.setdefault("timeout", timeout)
    else:
        options.setdefault("pool_size", config.get("DB_POOL_SIZE", 10))
        options.setdefault("pool_timeout", timeout)
    return options


def is_transient(exc: BaseException) -> bool:
    """True for connection reset / timeout style failures worth retrying."""
    if isinstance(exc, (DisconnectionError, PoolTimeoutError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError):
        message = str(exc.orig or exc).lower()
        return any(marker in message for marker in ("timeout", "timed out", "reset", "closed", "lost connection"))
    return False


def reset_pool() -> None:
    """Drop every pooled connection; the next checkout opens a fresh one."""
    db.engine.dispose()
    current_app.logger.warning("Database connection pool reset")


def _install_error_listener(app: Flask) -> None:
    def _on_error(context):
        if context.is_disconnect:
            app.logger.warning(
                "Database connection lost (%s); pool invalidated",
                type(context.original_exception).__name__,
            )

    event.listen(db.engine, "handle_error", _on_error)


def _install_sqlite_pragmas() -> None:
    # SQLite ships with foreign keys off; ON DELETE CASCADE needs them on
    if db.engine.dialect.name != "sqlite":
        return

    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    event.listen(db.engine, "connect", _on_connect)


def bootstrap_schema() -> list[str]:
    """
    Create any missing tables. Safe to run on every startup.

    Returns the names of tables that were created on this run.
    """
    from . import models  # noqa: F401

    existing = set(inspect(db.engine).get_table_names())
    db.create_all()
    created = sorted(t.name for t in db.metadata.sorted_tables if t.name not in existing)
    if created:
        current_app.logger.info("Created tables: %s", ", ".join(created))
    return created


def init_database(app: Flask) -> None:
    """Startup hook: listener, optional schema bootstrap, optional voucher seed."""
    with app.app_context():
        _install_error_listener(app)
        _install_sqlite_pragmas()

        if app.config.get("AUTO_CREATE_SCHEMA"):
            bootstrap_schema()

        if app.config.get("AUTO_CREATE_SCHEMA") and app.config.get("SEED_WELCOME_VOUCHER"):
            from .services.voucher_service import seed_welcome_voucher
            seed_welcome_voucher()
