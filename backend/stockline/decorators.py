# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import request, g

from .permissions import allowed_roles
from .responses import fail
from .services.authorization import authorize, role_allowed
from .services.rate_limit_service import client_ip
from .services.security_service import log_security_event


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def require_auth(f):
    """
    Require a valid session.

    Sets on flask.g:
    - g.current_user: the authenticated User
    - g.session_token: the SessionToken record

    Returns 401 when the token is missing, unknown, revoked, expired, idle
    or belongs to a deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        result = authorize(request, require_auth=True)
        if not result.success:
            return fail(result.error, result.status)

        g.current_user = result.user
        g.session_token = result.session
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require the current user's role to be allowed the operation.

    Allowed roles come from the static table in permissions.definitions.
    Denials are written to security_events.
    """
    roles = allowed_roles(permission_code)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return fail("Authentication required", 401)

            user = g.current_user
            if not role_allowed(user, roles):
                log_security_event(
                    user_id=user.id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    resource=request.path,
                    action=permission_code,
                    reason=f"Role '{user.role}' lacks {permission_code}",
                    ip_address=client_ip(request),
                    user_agent=request.headers.get("User-Agent"),
                )
                return fail(
                    "Insufficient permissions",
                    403,
                    required_permission=permission_code,
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator
