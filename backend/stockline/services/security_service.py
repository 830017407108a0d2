# Overview: Append-only security event log backing login audit and rate limiting.

from __future__ import annotations


from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import days_ago, utcnow


def log_security_event(
    *,
    event_type: str,
    success: bool,
    user_id: int | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    if commit:
        db.session.commit()
    return event


def list_security_events_query(*, event_type: str | None = None, user_id: int | None = None):
    query = db.session.query(SecurityEvent)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    if user_id:
        query = query.filter(SecurityEvent.user_id == user_id)
    return query


def cleanup_security_events(older_than_days: int = 90) -> int:
    """Delete security events older than the retention window."""
    cutoff = days_ago(older_than_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
