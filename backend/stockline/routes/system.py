# backend/stockline/routes/system.py
"""
System health endpoint.

Reports database reachability and session table state for deployment
checks. No authentication.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Round-trip a trivial query and count users."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        user_count = db.session.query(User).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= utcnow(),
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "active_sessions": active_sessions,
            },
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    body = {
        "success": healthy,
        "data": {
            "status": database_health["status"],
            "timestamp": to_utc_z(utcnow()),
            "checks": {"database": database_health},
        },
    }
    return body, 200 if healthy else 503
