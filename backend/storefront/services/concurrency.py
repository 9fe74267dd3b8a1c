# Overview: Service-layer helpers for transactions, row locking and bounded retries.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Start the write phase of a multi-statement operation.

    Ends whatever read transaction the session has open first. On SQLite the
    write lock is taken up front with BEGIN IMMEDIATE so two writers
    serialize instead of failing on lock upgrade.
    """
    db.session.commit()
    if db.session.get_bind().dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, (OperationalError, StaleDataError))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, exponential: bool = True, retry_on=None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks, dropped connections) and
    StaleDataError by default; pass retry_on to narrow that. The session is
    rolled back before every retry. With exponential=False the delay between
    attempts is a fixed backoff_base.
    """
    should_retry = retry_on or _is_retryable
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except Exception as exc:
            if not should_retry(exc):
                raise
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt) if exponential else backoff_base
            if delay > 0:
                time.sleep(delay)
    if last_exc:
        raise last_exc
