# Overview: Per-client, per-endpoint rate limiting persisted as security events.

"""
Rate Limiting Service

Limits attempts per client address on sensitive endpoints (login, register).
Every attempt is stored as a RATE_LIMIT_ATTEMPT security event keyed by
"<endpoint>:<address>" in the action column, so limits hold across worker
processes with no in-memory state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow
from .security_service import log_security_event

EVENT_ATTEMPT = "RATE_LIMIT_ATTEMPT"
EVENT_LIMITED = "RATE_LIMITED"

# endpoint -> (limit config key, window config key)
ENDPOINT_LIMITS = {
    "login": ("LOGIN_RATE_LIMIT", "LOGIN_RATE_WINDOW_SECONDS"),
    "register": ("REGISTER_RATE_LIMIT", "REGISTER_RATE_WINDOW_SECONDS"),
}


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    window_seconds: int
    retry_after_seconds: int = 0


def client_ip(request) -> str | None:
    """
    Client address for rate limiting and audit.

    X-Forwarded-For is only honored when TRUST_PROXY_HEADERS is on; the
    first hop is the original client.
    """
    if current_app.config.get("TRUST_PROXY_HEADERS"):
        forwarded = request.headers.get("X-Forwarded-For", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.remote_addr


def _limits_for(endpoint: str) -> tuple[int, int]:
    limit_key, window_key = ENDPOINT_LIMITS[endpoint]
    return int(current_app.config[limit_key]), int(current_app.config[window_key])


def hit(endpoint: str, ip_address: str | None, *, resource: str | None = None,
        user_agent: str | None = None) -> RateLimitResult:
    """
    Count one attempt against (endpoint, ip_address).

    Attempts beyond the limit inside the sliding window are refused and
    logged as RATE_LIMITED; refused attempts do not extend the window.
    """
    limit, window = _limits_for(endpoint)
    key = f"{endpoint}:{ip_address or 'unknown'}"
    now = utcnow()
    cutoff = now - timedelta(seconds=window)

    recent = db.session.query(SecurityEvent.occurred_at).filter(
        SecurityEvent.event_type == EVENT_ATTEMPT,
        SecurityEvent.action == key,
        SecurityEvent.occurred_at >= cutoff,
    ).order_by(SecurityEvent.occurred_at.asc())

    count = recent.count()
    if count >= limit:
        oldest = recent.first()[0]
        retry_after = max(1, int((oldest + timedelta(seconds=window) - now).total_seconds()) + 1)
        current_app.logger.warning("Rate limit hit for %s (%s attempts in %ss)", key, count, window)
        log_security_event(
            event_type=EVENT_LIMITED,
            success=False,
            resource=resource,
            action=key,
            reason=f"More than {limit} attempts in {window}s",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return RateLimitResult(False, limit, window, retry_after)

    log_security_event(
        event_type=EVENT_ATTEMPT,
        success=True,
        resource=resource,
        action=key,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return RateLimitResult(True, limit, window)
