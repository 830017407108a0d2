from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log.

    Tracks login attempts, rate-limited requests, and denied access. The
    rate limiter counts rows in this table, so limits hold across workers.

    IMMUTABLE: Never update. Only the maintenance cleanup deletes old rows.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_type_action_occurred", "event_type", "action", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for anonymous

    # LOGIN_FAILED, LOGIN_SUCCESS, RATE_LIMIT_ATTEMPT, RATE_LIMITED, PERMISSION_DENIED
    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)  # e.g. "/api/auth/login"
    action = db.Column(db.String(255), nullable=True)    # e.g. "login:10.0.0.7"

    success = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    user = db.relationship("User", backref=db.backref("security_events", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
