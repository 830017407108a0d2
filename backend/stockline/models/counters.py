from __future__ import annotations

from ..extensions import db


class DocumentCounter(db.Model):
    """
    Per-scope, per-day document counter.

    seq holds the last number handed out for (scope, date_key). A new day
    gets a new row, so numbering restarts at 1 every day.
    """
    __tablename__ = "document_counters"
    __table_args__ = (
        db.UniqueConstraint("scope", "date_key", name="uq_document_counters_scope_day"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    scope = db.Column(db.String(32), nullable=False)
    date_key = db.Column(db.String(6), nullable=False)  # YYMMDD
    seq = db.Column(db.Integer, nullable=False, default=0)
