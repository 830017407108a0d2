# Overview: Request authorization gate; session validity then role membership.

"""
Authorization Gate

    Unauthenticated --(valid session)--> Authenticated --(role allowed)--> Authorized

- no token, or an invalid/expired/revoked session -> 401
- authenticated but role not in the allowed set    -> 403

The session token is read from the HTTP-only cookie (AUTH_COOKIE_NAME) and,
for non-browser clients, from an "Authorization: Bearer <token>" header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..models import User, SessionToken
from . import session_service


@dataclass
class AuthResult:
    success: bool
    user: User | None = None
    status: int = 200
    error: str | None = None
    session: SessionToken | None = None


def extract_token(request) -> str | None:
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "stockline_session")
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def role_allowed(user: User, required_roles: Iterable[str] | None) -> bool:
    if not required_roles:
        return True
    return user.role in set(required_roles)


def authorize(request, require_auth: bool = True, required_roles: Iterable[str] | None = None) -> AuthResult:
    """
    Decide whether a request may proceed.

    With require_auth=False a missing or bad session is not an error; the
    result simply has no user.
    """
    token = extract_token(request)
    if not token:
        if not require_auth:
            return AuthResult(True)
        return AuthResult(False, status=401, error="Authentication required")

    context = session_service.validate_session(token)
    if context is None:
        if not require_auth:
            return AuthResult(True)
        return AuthResult(False, status=401, error="Invalid or expired session")

    if not role_allowed(context.user, required_roles):
        return AuthResult(False, user=context.user, status=403, error="Insufficient permissions",
                          session=context.session)

    return AuthResult(True, user=context.user, session=context.session)
