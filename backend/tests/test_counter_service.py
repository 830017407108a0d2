"""
Document counter tests.

Verifies:
- Sequences start at 1 and increase by one per call
- Each (scope, day) pair counts independently, so numbering resets daily
- Concurrent callers on a file database receive exactly {1..N}
"""

import threading
from datetime import datetime

import pytest

from stockline.extensions import db
from stockline.models import DocumentCounter
from stockline.services.counter_service import (
    CounterError,
    SCOPE_SALE,
    SCOPE_ORDER,
    allocate_document_number,
    format_document_number,
    next_document_number,
    next_sequence,
)

from .conftest import build_app


class TestNextSequence:

    def test_first_call_creates_row_at_one(self, app):
        assert next_sequence(SCOPE_SALE, "261019") == 1
        db.session.commit()

        row = db.session.query(DocumentCounter).filter_by(scope=SCOPE_SALE, date_key="261019").one()
        assert row.seq == 1

    def test_increments_by_one(self, app):
        values = [next_sequence(SCOPE_SALE, "261019") for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    def test_new_day_resets(self, app):
        next_sequence(SCOPE_SALE, "261019")
        next_sequence(SCOPE_SALE, "261019")
        assert next_sequence(SCOPE_SALE, "261020") == 1

    def test_scopes_are_independent(self, app):
        next_sequence(SCOPE_SALE, "261019")
        next_sequence(SCOPE_SALE, "261019")
        assert next_sequence(SCOPE_ORDER, "261019") == 1

    def test_rollback_discards_increment(self, app):
        next_sequence(SCOPE_SALE, "261019")
        db.session.commit()
        next_sequence(SCOPE_SALE, "261019")
        db.session.rollback()
        assert next_sequence(SCOPE_SALE, "261019") == 2

    def test_requires_scope(self, app):
        with pytest.raises(CounterError):
            next_sequence("", "261019")


class TestDocumentNumbers:

    def test_format(self):
        assert format_document_number("S", "261019", 7) == "S2610190007"

    def test_wide_sequence_not_truncated(self):
        assert format_document_number("S", "261019", 12345) == "S26101912345"

    def test_uses_scope_prefix_and_day(self, app):
        moment = datetime(2026, 10, 19, 15, 30)
        assert next_document_number(SCOPE_SALE, moment=moment) == "S2610190001"
        assert next_document_number(SCOPE_ORDER, moment=moment) == "O2610190001"
        assert next_document_number(SCOPE_SALE, moment=moment) == "S2610190002"

    def test_unknown_scope_without_prefix(self, app):
        with pytest.raises(CounterError):
            next_document_number("mystery")


class TestConcurrentAllocation:
    """Many threads, one SQLite file: every number handed out exactly once."""

    def test_threads_receive_distinct_contiguous_numbers(self, tmp_path):
        app = build_app(SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'counter.sqlite3'}")
        with app.app_context():
            db.create_all()

        threads_count = 8
        per_thread = 5
        numbers = []
        errors = []
        lock = threading.Lock()

        def worker():
            try:
                with app.app_context():
                    for _ in range(per_thread):
                        number = allocate_document_number(SCOPE_SALE)
                        with lock:
                            numbers.append(number)
                    db.session.remove()
            except Exception as e:  # surfaced by the assertion below
                with lock:
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        total = threads_count * per_thread
        assert len(numbers) == total
        assert sorted(int(n[-4:]) for n in numbers) == list(range(1, total + 1))

        with app.app_context():
            db.drop_all()
            db.engine.dispose()
