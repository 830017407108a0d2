# Overview: Transaction and retry helpers shared by services that mutate stock and counters.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError (optimistic locking conflicts). The session is rolled
    back before every retry, so func must redo all of its work.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def begin_write() -> None:
    """
    Take the database write lock up front on SQLite.

    SQLite's default deferred transactions let two writers read the same
    state and then fail at commit. BEGIN IMMEDIATE serializes writers from
    the first statement. Other backends rely on row-level conditional updates.
    """
    if db.engine.dialect.name != "sqlite":
        return
    conn = db.session.connection()
    # pysqlite only opens a real transaction before DML, so earlier SELECTs
    # in this session leave it free to start an immediate one.
    if conn.connection.dbapi_connection.in_transaction:
        return
    conn.exec_driver_sql("BEGIN IMMEDIATE")


@contextmanager
def atomic():
    """
    One all-or-nothing unit of work: commit on success, roll back on any error.

        with atomic():
            allocate(...)
            db.session.add(sale)
    """
    begin_write()
    try:
        yield db.session
        db.session.commit()
    except BaseException:
        db.session.rollback()
        raise

