# Overview: Service-layer operations for session tokens; creation, validation, revocation and cleanup.

"""
Session Token Management Service

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage; the plaintext only lives in
  the client's HTTP-only cookie
- Absolute timeout (SESSION_ABSOLUTE_HOURS, default 24h)
- Idle timeout (SESSION_IDLE_MINUTES, default 2h); idle sessions are revoked
- Revocable on logout, deactivation or password change
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import days_ago, utcnow


@dataclass
class SessionContext:
    """Result of a successful validate_session."""
    user: User
    session: SessionToken


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(minutes=current_app.config.get("SESSION_IDLE_MINUTES", 120))


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is sufficient for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session for an active user.

    Returns (session_record, plaintext_token).
    """
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise ValueError("User not found or inactive")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Return SessionContext if the token is valid, else None.

    Invalid when: unknown, revoked, past absolute expiry, idle too long
    (auto-revoked), or the user is missing/deactivated (auto-revoked).
    Updates last_used_at on success.
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke one session. Returns False if it was not active."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """Revoke every active session for a user. Returns count revoked."""
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """
    Delete expired or revoked sessions created more than older_than_days ago.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = days_ago(older_than_days, now)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted


def revoke_other_sessions(user_id: int, keep: SessionToken, reason: str) -> int:
    """Revoke every active session of a user except `keep`."""
    now = utcnow()
    revoked = db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
        SessionToken.id != keep.id,
    ).update(
        {"is_revoked": True, "revoked_at": now, "revoked_reason": reason},
        synchronize_session=False,
    )
    db.session.commit()
    return revoked
