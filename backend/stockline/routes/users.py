# Overview: Flask API routes for user administration.

"""
User Administration Routes

Listing requires VIEW_USERS; creating, editing and deleting requires
MANAGE_USERS. Deleting a user deactivates the account and revokes all of
its sessions so historical sales keep their author.
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_permission
from ..models import User
from ..permissions import ROLE_PERMISSIONS, get_all_permission_codes, get_permission_definition
from ..responses import ok, fail, list_params, paginate, paginated
from ..services import auth_service
from ..services.session_service import revoke_all_user_sessions
from ..validation import parse_bool
from .common import DOMAIN_ERRORS, error_response, json_body, bool_arg


users_bp = Blueprint("users", __name__, url_prefix="/api/users")

SORTABLE = {
    "name": User.name,
    "email": User.email,
    "role": User.role,
    "createdAt": User.created_at,
}


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    params = list_params()
    query = auth_service.list_users_query(
        role=request.args.get("role"),
        include_inactive=bool_arg("include_inactive", True),
        search=params.search,
    )
    items, pagination = paginate(query, params, sortable=SORTABLE, default_sort=User.id)
    return paginated(items, pagination)


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Create a user.

    Request body: {"name", "email", "password", "role"?: "admin"|"manager"|"staff", "avatar"?}
    """
    try:
        data = json_body()
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role") or "staff",
            avatar=data.get("avatar"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("User %s (%s) created by user=%s", user.id, user.role, g.current_user.id)
    return ok(user.to_dict(), "User created", 201)


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user_route(user_id: int):
    try:
        user = auth_service.get_user(user_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(user.to_dict())


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: int):
    """
    Edit a user. A "password" key resets the password without the current
    one; deactivating through is_active also revokes the user's sessions.
    """
    try:
        data = json_body()
        user = auth_service.get_user(user_id)
        deactivating = "is_active" in data and not parse_bool(data["is_active"], "is_active")
        if user.id == g.current_user.id and deactivating:
            return fail("You cannot deactivate your own account", 400)

        user = auth_service.update_user(user, data, new_password=data.get("password"), require_current=False)
        if data.get("password"):
            revoke_all_user_sessions(user.id, reason="Password reset by administrator")
        elif not user.is_active:
            revoke_all_user_sessions(user.id, reason="User deactivated")
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(user.to_dict(), "User updated")


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def delete_user_route(user_id: int):
    if user_id == g.current_user.id:
        return fail("You cannot delete your own account", 400)
    try:
        user = auth_service.get_user(user_id)
        auth_service.deactivate_user(user)
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("User %s deactivated by user=%s", user_id, g.current_user.id)
    return ok(message="User deleted")


@users_bp.get("/permissions")
@require_auth
@require_permission("VIEW_USERS")
def permission_catalog_route():
    """Every operation code with its name, category and allowed roles."""
    definitions = [get_permission_definition(code) for code in get_all_permission_codes()]
    roles = {role: len(codes) for role, codes in ROLE_PERMISSIONS.items()}
    return ok({"permissions": definitions, "role_permission_counts": roles})
