# Overview: Flask API routes for auth operations; login, registration, logout and profile.

"""
Authentication API routes

SECURITY FEATURES:
- Session token delivered in an HTTP-only, SameSite cookie
- Per-address rate limiting on login and register (429 when exceeded)
- Failed and successful logins recorded as security events
- Password strength validation on registration and password change
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth
from ..permissions import ROLE_PERMISSIONS, get_permission_definition
from ..responses import ok, fail
from ..services import auth_service
from ..services import rate_limit_service
from ..services import session_service
from ..services.authorization import extract_token
from ..services.rate_limit_service import client_ip
from ..services.security_service import log_security_event
from .common import DOMAIN_ERRORS, error_response, json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

PROFILE_FIELDS = ("name", "email", "avatar")


def _set_session_cookie(response, token: str):
    config = current_app.config
    response.set_cookie(
        config["AUTH_COOKIE_NAME"],
        token,
        max_age=int(config["SESSION_ABSOLUTE_HOURS"]) * 3600,
        httponly=True,
        secure=bool(config["AUTH_COOKIE_SECURE"]),
        samesite=config["AUTH_COOKIE_SAMESITE"],
        path="/",
    )
    return response


def _clear_session_cookie(response):
    config = current_app.config
    response.delete_cookie(
        config["AUTH_COOKIE_NAME"],
        path="/",
        httponly=True,
        secure=bool(config["AUTH_COOKIE_SECURE"]),
        samesite=config["AUTH_COOKIE_SAMESITE"],
    )
    return response


def _rate_limited(result):
    return fail(
        "Too many attempts, try again later",
        429,
        retry_after_seconds=result.retry_after_seconds,
    )


@auth_bp.post("/register")
def register_route():
    """
    Self-registration. New accounts always get the staff role.

    Request body: {"name", "email", "password", "avatar"?}
    """
    ip_address = client_ip(request)
    user_agent = request.headers.get("User-Agent")

    limit = rate_limit_service.hit("register", ip_address, resource=request.path, user_agent=user_agent)
    if not limit.allowed:
        return _rate_limited(limit)

    try:
        data = json_body()
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            avatar=data.get("avatar"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("User %s registered from %s", user.id, ip_address)
    return ok(user.to_dict(), "Registration successful", 201)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email and password.

    Sets the session cookie and also returns the token for clients that
    send it as "Authorization: Bearer <token>".
    """
    ip_address = client_ip(request)
    user_agent = request.headers.get("User-Agent")

    limit = rate_limit_service.hit("login", ip_address, resource=request.path, user_agent=user_agent)
    if not limit.allowed:
        return _rate_limited(limit)

    try:
        data = json_body()
    except DOMAIN_ERRORS as e:
        return error_response(e)

    email = (data.get("email") or "").strip()
    password = data.get("password")
    if not email or not password:
        return fail("email and password required", 400)

    user = auth_service.authenticate(email, password)
    if not user:
        current_app.logger.info("Failed login for %s from %s", email.lower(), ip_address)
        log_security_event(
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            action=email.lower(),
            reason="Invalid credentials",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return fail("Invalid credentials", 401)

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    log_security_event(
        user_id=user.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        resource=request.path,
        action=user.email,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    current_app.logger.info("User %s logged in from %s", user.id, ip_address)

    response, status = ok(
        {
            "user": user.to_dict(),
            "token": token,
            "expires_at": session.to_dict()["expires_at"],
        },
        "Login successful",
    )
    return _set_session_cookie(response, token), status


@auth_bp.post("/logout")
def logout_route():
    """Revoke the current session and clear the cookie. Idempotent."""
    token = extract_token(request)
    if token:
        session_service.revoke_session(token, reason="User logout")

    response, status = ok(message="Logout successful")
    return _clear_session_cookie(response), status


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return ok(g.current_user.to_dict())


@auth_bp.get("/permissions")
@require_auth
def my_permissions_route():
    """Operations the caller's role may perform, for hiding controls client-side."""
    role = g.current_user.role
    return ok({
        "role": role,
        "permissions": [get_permission_definition(code) for code in ROLE_PERMISSIONS.get(role, [])],
    })


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    """
    Edit the caller's own profile.

    Request body: {"name"?, "email"?, "avatar"?, "password"?, "current_password"?}
    Changing the password requires current_password and revokes every other
    session of the user.
    """
    user = g.current_user
    try:
        data = json_body()
        patch = {key: data[key] for key in PROFILE_FIELDS if key in data}
        auth_service.update_user(
            user, patch, new_password=data.get("password"), current_password=data.get("current_password"),
        )
        if data.get("password"):
            session_service.revoke_other_sessions(user.id, g.session_token, "Password changed")
    except DOMAIN_ERRORS as e:
        return error_response(e)

    return ok(user.to_dict(), "Profile updated")
