# Overview: Daily-reset document numbering for sales, orders and demands.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentCounter
from ..time_utils import date_key as make_date_key
from .concurrency import atomic, run_with_retry

SCOPE_SALE = "sale"
SCOPE_ORDER = "order"
SCOPE_DEMAND = "demand"

PREFIXES = {
    SCOPE_SALE: "S",
    SCOPE_ORDER: "O",
    SCOPE_DEMAND: "D",
}


class CounterError(Exception):
    """Raised when a counter cannot be advanced."""
    pass


def _increment(scope: str, date_key: str) -> int | None:
    stmt = (
        update(DocumentCounter)
        .where(DocumentCounter.scope == scope, DocumentCounter.date_key == date_key)
        .values(seq=DocumentCounter.seq + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    return (
        db.session.query(DocumentCounter.seq)
        .filter_by(scope=scope, date_key=date_key)
        .scalar()
    )


def _ensure_row(scope: str, date_key: str) -> None:
    """
    Create the day's counter row at 0 if it is missing.

    SQLite and PostgreSQL use INSERT ... ON CONFLICT DO NOTHING, so a lost
    race is a no-op. Other backends insert inside a savepoint and treat a
    unique violation as "someone else created it".
    """
    values = {"scope": scope, "date_key": date_key, "seq": 0}
    dialect = db.engine.dialect.name

    if dialect in ("sqlite", "postgresql"):
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            from sqlalchemy.dialects.postgresql import insert
        stmt = insert(DocumentCounter).values(**values).on_conflict_do_nothing(
            index_elements=["scope", "date_key"]
        )
        db.session.execute(stmt)
        return

    try:
        with db.session.begin_nested():
            db.session.add(DocumentCounter(**values))
    except IntegrityError:
        pass


def next_sequence(scope: str, date_key: str) -> int:
    """
    Atomically advance and return the counter for (scope, date_key).

    The first call of the day creates the row at 1. Every later call is a
    single UPDATE ... SET seq = seq + 1, so concurrent callers always get
    distinct values. Runs inside the caller's transaction and never commits.
    """
    if not scope:
        raise CounterError("scope is required")
    if not date_key:
        raise CounterError("date_key is required")

    seq = _increment(scope, date_key)
    if seq is not None:
        return seq

    _ensure_row(scope, date_key)
    seq = _increment(scope, date_key)
    if seq is None:
        raise CounterError(f"Counter row for {scope}/{date_key} could not be created")
    return seq


def format_document_number(prefix: str, date_key: str, seq: int, pad: int = 4) -> str:
    return f"{prefix}{date_key}{seq:0{pad}d}"


def next_document_number(
    scope: str,
    prefix: str | None = None,
    *,
    pad: int = 4,
    moment: datetime | None = None,
) -> str:
    """
    Allocate the next human-readable number, e.g. "S2610190007".

    Format is prefix + YYMMDD + zero-padded daily sequence. Numbers wider
    than pad are not truncated.
    """
    prefix = prefix if prefix is not None else PREFIXES.get(scope)
    if prefix is None:
        raise CounterError(f"No prefix configured for scope '{scope}'")
    key = make_date_key(moment)
    return format_document_number(prefix, key, next_sequence(scope, key), pad)


def allocate_document_number(scope: str, prefix: str | None = None, *, pad: int = 4) -> str:
    """
    Allocate a number in its own committed transaction, retrying on lock errors.

    Used by tooling that needs a number outside a larger unit of work.
    """
    def _op() -> str:
        with atomic():
            number = next_document_number(scope, prefix, pad=pad)
        return number

    return run_with_retry(_op)
